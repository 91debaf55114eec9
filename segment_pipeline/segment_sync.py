"""
Sync Newly Exported Email Domains to a LaunchDarkly Segment

Reads the daily domain exports from S3 that arrived since the last run and adds
their domains to the first rule of a LaunchDarkly segment. The time of the last
processed export is kept in the rule description, so a run that fails before
the PATCH leaves the segment untouched and the next run picks the same data up.

Usage:
    python run_segment_sync.py [--dry-run]

Environment Variables:
    BUCKET_NAME: Bucket holding the exports
    LIMIT: Max domains per segment rule
    PROJECT_KEY, ENVIRONMENT_KEY, SEGMENT_KEY: Segment to update
    API_KEY: LaunchDarkly access token
    LD_BASE_URL: LaunchDarkly API base URL
    SLACK_WEBHOOK: Slack incoming webhook for status messages
    FALLBACK_DATE: Where to start when the segment has no watermark (default 2024-01-01)
    EXPORT_PREFIX: Top-level prefix of the exports (default pqa_trials)
    MAX_WORKERS: Concurrent S3 requests per stage (default 8)
"""

import os
import json
import requests
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List
from segment_pipeline import config
from segment_pipeline.domain_extractor import DomainExtractor
from segment_pipeline.launchdarkly_client import LaunchDarklySegmentClient, describe_request_error
from segment_pipeline.manifest_scanner import ManifestScanner
from segment_pipeline.partitions import days_to_process
from segment_pipeline.s3_export_reader import S3ExportReader
from segment_pipeline.segment_merge import (
    build_patch_operations,
    dedupe_domains,
    exclude_existing,
    existing_domains,
    next_watermark,
)
from segment_pipeline.slack_notifier import SlackNotifier, format_success_message
from segment_pipeline.watermark import extract_watermark, format_watermark, parse_fallback_date


@dataclass
class SyncResult:
    """Outcome of one sync run."""

    status: str  # "updated", "no_new_domains" or "dry_run"
    domains_added: int
    last_updated: str
    watermark_advanced: bool = False
    operations: List[Dict] = field(default_factory=list)
    manifests_scanned: int = 0
    files_scanned: int = 0


def _positive_int(value, name: str) -> int:
    if value is None or value == "":
        raise ValueError(f"{name} must be set")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if number < 1:
        raise ValueError(f"{name} must be positive, got {number}")
    return number


class SegmentDomainSyncer:
    """
    Merge new domains from the S3 exports into the LaunchDarkly segment.
    """

    def __init__(
        self,
        reader: S3ExportReader = None,
        api_client: LaunchDarklySegmentClient = None,
        notifier: SlackNotifier = None,
        limit: int = None,
        fallback_date: str = None,
        export_prefix: str = None,
        max_workers: int = None
    ):
        self.limit = _positive_int(limit if limit is not None else os.getenv("LIMIT"), "LIMIT")
        self.max_workers = _positive_int(
            max_workers if max_workers is not None else os.getenv("MAX_WORKERS", config.default_max_workers),
            "MAX_WORKERS"
        )
        self.fallback_date = fallback_date or os.getenv("FALLBACK_DATE") or config.default_fallback_date
        parse_fallback_date(self.fallback_date)
        self.export_prefix = (
            export_prefix or os.getenv("EXPORT_PREFIX") or config.default_export_prefix
        ).strip("/")

        self.notifier = notifier or SlackNotifier()
        self.reader = reader or S3ExportReader()
        self.api_client = api_client or LaunchDarklySegmentClient()

        self.scanner = ManifestScanner(self.reader, self.notifier, self.export_prefix, self.max_workers)
        self.extractor = DomainExtractor(self.reader, self.notifier, self.max_workers)

        print("✅ Segment Domain Syncer initialized", flush=True)
        print(f"   Bucket: {self.reader.bucket_name}/{self.export_prefix}", flush=True)
        print(f"   Limit per rule: {self.limit}", flush=True)

    def fetch_segment(self) -> Dict:
        """Fetch the segment, reporting any failure before re-raising it."""
        try:
            return self.api_client.get_segment()
        except requests.exceptions.RequestException as e:
            print(f"❌ Error fetching segment: {e}", flush=True)
            self.notifier.send_error(describe_request_error("GET", e))
            raise

    def patch_segment(self, operations: List[Dict]) -> Dict:
        """Send the patch operations, reporting any failure before re-raising it."""
        try:
            return self.api_client.patch_segment(operations)
        except requests.exceptions.RequestException as e:
            print(f"❌ Error patching segment: {e}", flush=True)
            self.notifier.send_error(f"Error patching segment: {describe_request_error('PATCH', e)}")
            raise

    def sync(self, dry_run: bool = False, today: datetime = None) -> SyncResult:
        """
        Run one sync.

        Args:
            dry_run: If True, build the patch but don't send it
            today: Reference time for the days to scan (defaults to now)

        Returns:
            SyncResult
        """
        print("\n" + "=" * 80, flush=True)
        print("SYNC EMAIL DOMAINS TO LAUNCHDARKLY SEGMENT", flush=True)
        print("=" * 80, flush=True)

        if dry_run:
            print("🔍 DRY RUN MODE - The segment will not be changed", flush=True)

        segment = self.fetch_segment()
        print(f"✅ Loaded segment with {len(segment.get('rules') or [])} rule(s)", flush=True)

        watermark = extract_watermark(segment, self.fallback_date)
        if watermark.is_fallback:
            print(f"ℹ️  No watermark on the segment, starting from {watermark.display}", flush=True)
            self.notifier.send(
                "Fallback to default date as no valid date found in rules. "
                f"Using fallback date: {watermark.display}"
            )
        else:
            print(f"   Last updated: {watermark.display}", flush=True)

        days = days_to_process(watermark.value, today)
        print(f"\n📅 Scanning {len(days)} day(s) of exports...", flush=True)
        manifest_keys = self.scanner.scan_days(days, watermark.value)
        print(f"📊 Found {len(manifest_keys)} new manifest(s)", flush=True)

        file_urls = self.scanner.resolve_manifests(manifest_keys)
        print(f"📊 Manifests list {len(file_urls)} data file(s)", flush=True)

        extracted = dedupe_domains(self.extractor.extract_all(file_urls))
        domains = exclude_existing(extracted, existing_domains(segment))
        print(f"📊 Extracted {len(extracted)} unique domain(s), {len(domains)} not yet in the segment", flush=True)

        if not domains:
            print("\nℹ️  No new domains, segment not updated", flush=True)
            self.notifier.send(f"domains is empty, so not updating on {watermark.display}")
            return SyncResult(
                status="no_new_domains",
                domains_added=0,
                last_updated=watermark.display,
                manifests_scanned=len(manifest_keys),
                files_scanned=len(file_urls)
            )

        new_value = watermark.value
        try:
            new_value = next_watermark(watermark.value, file_urls)
        except ValueError as e:
            print(f"⚠️  {e}, keeping the previous watermark", flush=True)
            self.notifier.send_error(str(e))

        last_updated = format_watermark(new_value)
        operations = build_patch_operations(segment, domains, self.limit, last_updated)

        result = SyncResult(
            status="dry_run" if dry_run else "updated",
            domains_added=len(domains),
            last_updated=last_updated,
            watermark_advanced=new_value != watermark.value,
            operations=operations,
            manifests_scanned=len(manifest_keys),
            files_scanned=len(file_urls)
        )

        if dry_run:
            print(f"\n[DRY RUN] Would send {len(operations)} patch operation(s):", flush=True)
            print(json.dumps(operations, indent=2)[:5000], flush=True)
            return result

        self.patch_segment(operations)
        print(f"\n✅ Added {len(domains)} domain(s), last updated {last_updated}", flush=True)
        self.notifier.send(format_success_message(last_updated, len(domains)))

        return result
