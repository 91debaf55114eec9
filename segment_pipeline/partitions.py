"""
Export Partition Layout

Daily exports land in the bucket as

    <prefix>/<YYYY>/<MM>/<DD>/<HHMMSSxxxx>/manifest

and every manifest lists its data files as URLs of the form

    s3://<bucket>/<prefix>/<YYYY>/<MM>/<DD>/<HHMMSSxxxx>/<file>.csv.gz

Everything that depends on that layout (which days to scan, which keys are
manifests, chronological ordering, timestamps recovered from paths) is here.
"""

import pandas as pd
from datetime import datetime, timezone
from typing import List, Optional
from segment_pipeline import config
from segment_pipeline.watermark import is_valid_time_token, to_utc

# Positions of year/month/day/time token in a data file URL split on "/"
DATA_FILE_YEAR_INDEX = 4
DATA_FILE_TIME_INDEX = 7


def days_to_process(watermark: datetime, today: datetime = None) -> List[datetime]:
    """
    List every UTC day from the watermark's day through today, inclusive.

    Args:
        watermark: Last processed point in time
        today: Reference time (defaults to now)

    Returns:
        List of UTC midnight datetimes, oldest first
    """
    if today is None:
        today = datetime.now(timezone.utc)

    start = pd.Timestamp(to_utc(watermark)).normalize()
    end = pd.Timestamp(to_utc(today)).normalize()

    return [day.to_pydatetime() for day in pd.date_range(start=start, end=end, freq="D")]


def partition_prefix(day: datetime, export_prefix: str = config.default_export_prefix) -> str:
    """Object-store prefix holding one day of exports."""
    return f"{export_prefix}/{day.year}/{day.month:02d}/{day.day:02d}/"


def manifest_time_token(key: str, export_prefix: str = config.default_export_prefix) -> Optional[str]:
    """
    Return the time token of a manifest key, or None if `key` is not a manifest.

    Args:
        key: Object key, e.g. "pqa_trials/2024/01/02/1230000000/manifest"
        export_prefix: Top-level prefix the key lives under
    """
    if not key.startswith(f"{export_prefix}/"):
        return None

    parts = key[len(export_prefix) + 1:].split("/")
    if len(parts) != 5 or parts[4] != config.manifest_suffix or not parts[3]:
        return None
    return parts[3]


def manifest_sort_key(key: str, export_prefix: str = config.default_export_prefix) -> str:
    parts = key[len(export_prefix) + 1:].split("/") if key.startswith(f"{export_prefix}/") else []
    if len(parts) < 4:
        return key
    year, month, day, token = parts[:4]
    return f"{year}{month}{day}{token}"


def sort_manifest_keys(keys: List[str], export_prefix: str = config.default_export_prefix) -> List[str]:
    """Sort manifest keys chronologically by (year, month, day, time token)."""
    return sorted(keys, key=lambda key: manifest_sort_key(key, export_prefix))


def data_file_key(url: str, bucket_name: str) -> str:
    """Turn an s3://<bucket>/... URL from a manifest into an object key."""
    bucket_prefix = f"s3://{bucket_name}/"
    if url.startswith(bucket_prefix):
        return url[len(bucket_prefix):]
    return url


def data_file_sort_key(url: str) -> str:
    parts = url.split("/")
    return "".join(parts[DATA_FILE_YEAR_INDEX:DATA_FILE_TIME_INDEX + 1])


def sort_data_file_urls(urls: List[str]) -> List[str]:
    """Sort data file URLs chronologically by the timestamp embedded in their path."""
    return sorted(urls, key=data_file_sort_key)


def data_file_timestamp(url: str) -> datetime:
    """
    Recover the export timestamp of a data file from its URL.

    Args:
        url: Data file URL as listed in a manifest

    Returns:
        Aware UTC datetime

    Raises:
        ValueError: If the time token is not a 10 digit string or the date is invalid
    """
    parts = url.split("/")
    token = parts[DATA_FILE_TIME_INDEX] if len(parts) > DATA_FILE_TIME_INDEX else None
    if not is_valid_time_token(token):
        raise ValueError(f"Invalid numeric part format in: {url}")

    year, month, day = parts[DATA_FILE_YEAR_INDEX:DATA_FILE_YEAR_INDEX + 3]
    iso_string = f"{year}-{month}-{day}T{token[0:2]}:{token[2:4]}:{token[4:6]}Z"
    try:
        parsed = datetime.strptime(iso_string, "%Y-%m-%dT%H:%M:%SZ")
    except ValueError:
        raise ValueError(f"Invalid timestamp in: {url}")

    return parsed.replace(tzinfo=timezone.utc)
