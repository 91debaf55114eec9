"""
CSV Domain Extractor

Reads the gzipped, headerless CSV data files listed in the manifests and pulls
the email domain out of the first column.

A data file that is missing or unreadable only costs that file's domains: it is
reported and contributes an empty list, the rest of the run carries on.
"""

import io
import pandas as pd
from typing import List
from segment_pipeline import config
from segment_pipeline.fan_out import fan_out
from segment_pipeline.partitions import data_file_key


def parse_domain_csv(gzipped_data: bytes, column_index: int = config.domain_column_index) -> List[str]:
    """
    Decompress a gzipped CSV and return one column as strings.

    Args:
        gzipped_data: Raw object body
        column_index: Column to extract (0 = domain)

    Returns:
        Column values in file order; empty fields come back as ""
    """
    try:
        df = pd.read_csv(
            io.BytesIO(gzipped_data),
            compression="gzip",
            header=None,
            usecols=[column_index],
            dtype=str,
            keep_default_na=False
        )
    except pd.errors.EmptyDataError:
        return []

    return df[column_index].tolist()


class DomainExtractor:
    """Fetch data files and extract their domains, one task per file."""

    def __init__(self, reader, notifier, max_workers: int = config.default_max_workers):
        """
        Args:
            reader: S3ExportReader (anything with bucket_name / get_object_bytes)
            notifier: SlackNotifier used to report skipped files
            max_workers: Concurrency ceiling for downloads
        """
        self.reader = reader
        self.notifier = notifier
        self.max_workers = max_workers

    def extract_file(self, file_url: str) -> List[str]:
        """
        Extract domains from one data file.

        Args:
            file_url: s3:// URL from a manifest entry

        Returns:
            Domains in the file, or [] if the file is missing or unreadable
        """
        key = data_file_key(file_url, self.reader.bucket_name)

        try:
            body = self.reader.get_object_bytes(key)
            if not body:
                print(f"⚠️  {key} is missing or empty, skipping", flush=True)
                self.notifier.send_error(f"{key}, skipping... ")
                return []

            return parse_domain_csv(body)
        except Exception as e:
            print(f"⚠️  Error processing file {key}: {e}", flush=True)
            self.notifier.send_error(f"Error processing file {key}: {e}")
            return []

    def extract_all(self, file_urls: List[str]) -> List[List[str]]:
        """
        Extract domains from every data file concurrently.

        Returns:
            One list of domains per file, in the order of `file_urls`
        """
        return fan_out(
            self.extract_file,
            file_urls,
            max_workers=self.max_workers,
            thread_name_prefix="extract-domains"
        )
