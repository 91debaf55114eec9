"""
Segment merge engine.

Turns the domains extracted in a run into the patch operations written back to
the segment, and works out how far the watermark can move.
"""

import pandas as pd
from datetime import datetime
from typing import Dict, List, Optional
from segment_pipeline import config
from segment_pipeline.partitions import data_file_timestamp, sort_data_file_urls
from segment_pipeline.watermark import to_utc


def dedupe_domains(domain_lists: List[List[str]]) -> List[str]:
    """
    Flatten per-file domain lists, drop null/empty values and duplicates.

    Args:
        domain_lists: One list of domains per data file

    Returns:
        Unique domains, in first-seen order
    """
    domains = pd.Series([domain for domains in domain_lists for domain in domains], dtype=object)
    domains = domains.dropna()
    domains = domains[domains != ""]
    return domains.drop_duplicates().tolist()


def existing_domains(segment: Dict) -> List[str]:
    """Values of the first clause of the segment's first rule, if any."""
    rules = segment.get("rules") or []
    if not rules:
        return []
    clauses = rules[0].get("clauses") or []
    if not clauses:
        return []
    return list(clauses[0].get("values") or [])


def exclude_existing(domains: List[str], existing: List[str]) -> List[str]:
    """Drop domains the segment's first rule already holds, keeping order."""
    known = set(existing)
    return [domain for domain in domains if domain not in known]


def build_rule(values: List[str], description: str) -> Dict:
    """Full rule value for one patch operation."""
    return {
        "clauses": [
            {
                "contextKind": config.clause_context_kind,
                "attribute": config.clause_attribute,
                "op": config.clause_op,
                "values": values,
                "negate": False
            }
        ],
        "description": description
    }


def chunk_values(values: List[str], limit: int) -> List[List[str]]:
    """Split values into consecutive chunks of at most `limit`."""
    if limit < 1:
        raise ValueError(f"limit must be a positive integer, got {limit}")
    if len(values) <= limit:
        return [values]
    return [values[start:start + limit] for start in range(0, len(values), limit)]


def build_patch_operations(segment: Dict, new_domains: List[str], limit: int, description: str) -> List[Dict]:
    """
    Build the patch operations that merge new domains into the segment.

    If the segment already has a rule, its values are kept and the new domains
    appended, and the first operation replaces /rules/0. Otherwise the first
    operation adds it. When the merged list exceeds `limit` it is split into
    chunks; every chunk after the first is an "add" that inserts another rule.

    Args:
        segment: Segment document as fetched at the start of the run
        new_domains: Deduplicated domains found in this run
        limit: Max values per rule
        description: Watermark text stored on every rule written

    Returns:
        List of {op, path, value} dicts
    """
    if segment.get("rules"):
        operation_type = "replace"
        merged = existing_domains(segment) + list(new_domains)
    else:
        operation_type = "add"
        merged = list(new_domains)

    operations = []
    for index, chunk in enumerate(chunk_values(merged, limit)):
        operations.append({
            "op": operation_type if index == 0 else "add",
            "path": config.rule_path,
            "value": build_rule(chunk, description)
        })
    return operations


def latest_file_timestamp(file_urls: List[str]) -> Optional[datetime]:
    """
    Timestamp of the chronologically last data file.

    Returns:
        Aware UTC datetime, or None when there are no files

    Raises:
        ValueError: If the last file's time token is malformed
    """
    if not file_urls:
        return None
    return data_file_timestamp(sort_data_file_urls(file_urls)[-1])


def next_watermark(current: datetime, file_urls: List[str]) -> datetime:
    """
    Watermark after processing `file_urls`; never earlier than `current`.

    Raises:
        ValueError: If the last file's time token is malformed
    """
    latest = latest_file_timestamp(file_urls)
    if latest is None or latest <= to_utc(current):
        return current
    return latest
