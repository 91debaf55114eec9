"""
Slack webhook notifications for the segment sync.

Notifications are best effort: a failed post is printed and never raised.
"""

import os
import requests
from typing import Dict, Union
from segment_pipeline import config


class SlackNotifier:
    """Post plain text or Block Kit messages to a Slack incoming webhook."""

    def __init__(self, webhook_url: str = None, mention: str = None, timeout: int = config.request_timeout):
        self.webhook_url = webhook_url or os.getenv("SLACK_WEBHOOK")
        if not self.webhook_url:
            raise ValueError("SLACK_WEBHOOK must be set")

        # Prefixed to error messages so someone gets pinged, e.g. "<@U024BE7LH> "
        self.mention = mention if mention is not None else os.getenv("SLACK_MENTION", "")
        self.timeout = timeout

    def send(self, message: Union[str, Dict]) -> bool:
        """
        Send a message to the webhook.

        Args:
            message: Plain text, or a dict with `blocks` posted as-is

        Returns:
            True if Slack accepted the message, False otherwise
        """
        payload = message if isinstance(message, dict) and "blocks" in message else {"text": str(message)}

        try:
            response = requests.post(self.webhook_url, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            print(f"❌ Error sending Slack message: {e}", flush=True)
            return False

        if response.status_code != 200:
            print(f"⚠️  Slack webhook returned {response.status_code}: {response.text[:200]}", flush=True)
            return False
        return True

    def send_error(self, message: str) -> bool:
        """Send a message that needs someone's attention."""
        return self.send(f"{self.mention}{message}")


def format_success_message(last_updated: str, domains_added: int) -> Dict:
    """
    Block Kit message for a successful segment update.

    Args:
        last_updated: Watermark now stored on the segment
        domains_added: Number of new domains (not the merged total)
    """
    return {
        "text": "Domain Update Summary",
        "blocks": [
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": "*LaunchDarkly Domain Update - Success*"
                }
            },
            {
                "type": "section",
                "fields": [
                    {
                        "type": "mrkdwn",
                        "text": f"*Total Domains Added:* {domains_added}"
                    },
                    {
                        "type": "mrkdwn",
                        "text": f"*Last Updated On:* {last_updated}"
                    }
                ]
            }
        ]
    }

