"""
Manifest Scanner

Finds the export manifests that arrived after the watermark and resolves them
into the list of data files to read.

Both steps are fail-fast: a day that cannot be listed or a manifest that cannot
be read stops the run, since carrying on would silently skip domains.
"""

import json
from datetime import datetime
from typing import List, Optional
from segment_pipeline import config
from segment_pipeline.fan_out import fan_out, flatten
from segment_pipeline.partitions import manifest_time_token, partition_prefix, sort_manifest_keys
from segment_pipeline.watermark import time_token, to_utc, token_is_after


class ManifestScanner:
    """List new manifests per day and read the data file URLs they point to."""

    def __init__(
        self,
        reader,
        notifier,
        export_prefix: str = config.default_export_prefix,
        max_workers: int = config.default_max_workers
    ):
        """
        Args:
            reader: S3ExportReader (or anything with list_keys / get_object_bytes)
            notifier: SlackNotifier used to report failures
            export_prefix: Top-level prefix of the partitioned exports
            max_workers: Concurrency ceiling for listing and manifest reads
        """
        self.reader = reader
        self.notifier = notifier
        self.export_prefix = export_prefix
        self.max_workers = max_workers

    def lower_bound_for_day(self, day: datetime, watermark: datetime) -> Optional[str]:
        """
        Time token a manifest must exceed to be new.

        Only the watermark's own day is partially processed; any later day is
        scanned from the start (None).
        """
        if to_utc(day).date() == to_utc(watermark).date():
            return time_token(watermark)
        return None

    def scan_day(self, day: datetime, watermark: datetime) -> List[str]:
        """
        List manifest keys for one day that are newer than the watermark.

        Args:
            day: UTC day to scan
            watermark: Last processed point in time

        Returns:
            Manifest keys (unsorted)
        """
        prefix = partition_prefix(day, self.export_prefix)
        lower_bound = self.lower_bound_for_day(day, watermark)

        try:
            keys = self.reader.list_keys(prefix)
        except Exception as e:
            print(f"❌ Error listing {prefix}: {e}", flush=True)
            self.notifier.send_error(f"Error processing List at {prefix}: {e}")
            raise

        manifests = []
        for key in keys:
            token = manifest_time_token(key, self.export_prefix)
            if token and token_is_after(token, lower_bound):
                manifests.append(key)

        print(f"   {prefix}: {len(manifests)} new manifest(s) after {lower_bound or 'start of day'}", flush=True)
        return manifests

    def scan_days(self, days: List[datetime], watermark: datetime) -> List[str]:
        """
        Scan all days concurrently.

        Returns:
            Manifest keys from every day, sorted chronologically
        """
        per_day = fan_out(
            lambda day: self.scan_day(day, watermark),
            days,
            max_workers=self.max_workers,
            thread_name_prefix="scan-day"
        )
        return sort_manifest_keys(flatten(per_day), self.export_prefix)

    def resolve_manifest(self, key: str) -> List[str]:
        """
        Read one manifest and return the data file URLs it lists.

        Args:
            key: Manifest object key

        Returns:
            List of `entries[].url` values, in manifest order
        """
        try:
            body = self.reader.get_object_bytes(key)
            if body is None:
                raise FileNotFoundError(f"Manifest not found: {key}")

            manifest = json.loads(body.decode('utf-8'))
            urls = [entry['url'] for entry in manifest['entries']]
            for url in urls:
                if not isinstance(url, str) or not url:
                    raise ValueError(f"Manifest entry url is not a non-empty string: {url!r}")
            return urls
        except Exception as e:
            print(f"❌ Error reading manifest {key}: {e}", flush=True)
            self.notifier.send_error(f"Error processing manifest at {key}: {e}")
            raise

    def resolve_manifests(self, keys: List[str]) -> List[str]:
        """
        Resolve manifests concurrently.

        Returns:
            Data file URLs, grouped in the order of `keys`
        """
        per_manifest = fan_out(
            self.resolve_manifest,
            keys,
            max_workers=self.max_workers,
            thread_name_prefix="resolve-manifest"
        )
        return flatten(per_manifest)
