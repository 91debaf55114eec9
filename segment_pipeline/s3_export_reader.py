import os
import boto3
from botocore.exceptions import ClientError
from typing import List, Optional

NOT_FOUND_CODES = ("NoSuchKey", "404", "NotFound")


class S3ExportReader:
    """
    Read-only access to the bucket holding the daily domain exports.
    """

    def __init__(self, bucket_name: str = None, region_name: str = None, s3_client=None):
        self.bucket_name = bucket_name or os.getenv("BUCKET_NAME")
        if not self.bucket_name:
            raise ValueError("BUCKET_NAME must be set")

        if s3_client is None:
            s3_client = boto3.client(
                's3',
                aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
                aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
                region_name=region_name or os.getenv("AWS_REGION")
            )
        self.s3_client = s3_client

    def list_keys(self, prefix: str = "") -> List[str]:
        """Keys of every export object under one day's partition prefix, across all result pages."""
        paginator = self.s3_client.get_paginator('list_objects_v2')
        return [
            obj['Key']
            for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix)
            for obj in page.get('Contents', [])
        ]

    def get_object_bytes(self, key: str) -> Optional[bytes]:
        """
        Download an object.

        Args:
            key: Object key

        Returns:
            Object body, or None if the key does not exist
        """
        try:
            obj = self.s3_client.get_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in NOT_FOUND_CODES:
                return None
            raise
        return obj['Body'].read()
