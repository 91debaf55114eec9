"""
Segment Domain Sync Runner

Adds email domains from the newest S3 exports to the LaunchDarkly segment and
reports the outcome to Slack.

Usage:
    python run_segment_sync.py
    python run_segment_sync.py --dry-run

Or set up as cron job:
    0 * * * * cd /path/to/project && source venv/bin/activate && python run_segment_sync.py

Also deployable as an AWS Lambda with handler `run_segment_sync.lambda_handler`.
"""

import os
import sys
import json
import argparse
import datetime
import traceback
from typing import List
from segment_pipeline import config
from segment_pipeline.segment_sync import SegmentDomainSyncer, SyncResult
from segment_pipeline.slack_notifier import SlackNotifier


def missing_settings() -> List[str]:
    """Required environment variables that are not set."""
    return [name for name in config.required_settings if not os.getenv(name)]


def notify_failure(error: Exception):
    try:
        SlackNotifier().send_error(f"Segment sync failed: {error}")
    except ValueError:
        print("⚠️  SLACK_WEBHOOK not set, failure not reported to Slack", flush=True)


def run_segment_sync(dry_run: bool = False) -> SyncResult:
    """Run one segment sync with settings from the environment."""
    print(f"\n{'='*80}", flush=True)
    print(f"SEGMENT DOMAIN SYNC - {datetime.datetime.now().strftime('%Y-%m-%d %H:%M:%S')}", flush=True)
    print(f"{'='*80}\n", flush=True)

    syncer = SegmentDomainSyncer()
    result = syncer.sync(dry_run=dry_run)

    print(f"\n{'='*80}", flush=True)
    print(f"SEGMENT SYNC COMPLETE - {result.status} ({result.domains_added} domains)", flush=True)
    print(f"{'='*80}\n", flush=True)
    return result


def main(argv: List[str] = None) -> int:
    """Run the sync from the command line; returns the process exit code."""
    parser = argparse.ArgumentParser(description="Sync new email domains to a LaunchDarkly segment")
    parser.add_argument("--dry-run", action="store_true", help="Build the patch without sending it")
    args = parser.parse_args(argv)

    from dotenv import load_dotenv
    load_dotenv()

    missing = missing_settings()
    if missing:
        print(f"❌ Missing required settings: {', '.join(missing)}", flush=True)
        return 1

    try:
        run_segment_sync(dry_run=args.dry_run)
        return 0
    except Exception as e:
        print(f"\n❌ Segment sync failed: {e}", flush=True)
        traceback.print_exc()
        notify_failure(e)
        return 1


def lambda_handler(event, context):
    """AWS Lambda entry point."""
    dry_run = bool((event or {}).get("dry_run", False))
    try:
        run_segment_sync(dry_run=dry_run)
        return {"statusCode": 200, "body": json.dumps("Success")}
    except Exception as e:
        print(f"❌ Lambda execution failed: {e}", flush=True)
        traceback.print_exc()
        notify_failure(e)
        return {
            "statusCode": 500,
            "body": json.dumps({"message": "Internal Server Error"})
        }


if __name__ == "__main__":
    # Force unbuffered output for cron / CI logs
    sys.stdout.reconfigure(line_buffering=True)
    sys.stderr.reconfigure(line_buffering=True)
    sys.exit(main())
