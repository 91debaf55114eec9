"""
LaunchDarkly Segment API client

Reads a segment and applies JSON patch operations to it.

Environment Variables:
    API_KEY: LaunchDarkly access token
    LD_BASE_URL: API base URL (e.g., https://app.launchdarkly.com/api/v2)
    PROJECT_KEY, ENVIRONMENT_KEY, SEGMENT_KEY: Segment to sync
"""

import os
import requests
from typing import Dict, List
from segment_pipeline import config


class LaunchDarklySegmentClient:
    """
    Thin wrapper around the segment endpoint of the LaunchDarkly REST API.
    """

    def __init__(
        self,
        api_key: str = None,
        base_url: str = None,
        project_key: str = None,
        environment_key: str = None,
        segment_key: str = None,
        timeout: int = config.request_timeout
    ):
        self.api_key = api_key or os.getenv("API_KEY")
        self.base_url = base_url or os.getenv("LD_BASE_URL")
        self.project_key = project_key or os.getenv("PROJECT_KEY")
        self.environment_key = environment_key or os.getenv("ENVIRONMENT_KEY")
        self.segment_key = segment_key or os.getenv("SEGMENT_KEY")

        settings = {
            "API_KEY": self.api_key,
            "LD_BASE_URL": self.base_url,
            "PROJECT_KEY": self.project_key,
            "ENVIRONMENT_KEY": self.environment_key,
            "SEGMENT_KEY": self.segment_key,
        }
        missing = [name for name, value in settings.items() if not value]
        if missing:
            raise ValueError(f"{', '.join(missing)} must be set")

        self.timeout = timeout
        self.segment_url = (
            f"{self.base_url.rstrip('/')}/segments/"
            f"{self.project_key}/{self.environment_key}/{self.segment_key}"
        )
        self.headers = {
            "Authorization": self.api_key,
            "Content-Type": "application/json"
        }

    def get_segment(self) -> Dict:
        """
        Fetch the current segment document.

        Returns:
            Segment JSON (with `rules`)

        Raises:
            requests.exceptions.RequestException: On transport errors or non-2xx responses
        """
        response = requests.get(self.segment_url, headers=self.headers, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def patch_segment(self, operations: List[Dict], comment: str = config.patch_comment) -> Dict:
        """
        Apply patch operations to the segment.

        Args:
            operations: List of {op, path, value} dicts
            comment: Change comment shown in the LaunchDarkly audit log

        Returns:
            Updated segment JSON (empty dict if the response has no body)

        Raises:
            requests.exceptions.RequestException: On transport errors or non-2xx responses
        """
        payload = {
            "patch": operations,
            "comment": comment
        }
        response = requests.patch(self.segment_url, headers=self.headers, json=payload, timeout=self.timeout)
        response.raise_for_status()

        if not response.content:
            return {}
        return response.json()


def describe_request_error(method: str, error: requests.exceptions.RequestException) -> str:
    """Human readable summary of a failed API call, for notifications."""
    response = getattr(error, 'response', None)
    if response is not None:
        return f"{method} request failed with status {response.status_code}: {response.text[:500]}"
    return f"{method} request failed: {error}"
