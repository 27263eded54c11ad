"""
=============================================================================
S3 SERVICE - Reading meter exports from Amazon S3
=============================================================================

The smart plug's CSV export can live in an S3 bucket instead of on local
disk. The loader calls this service when the configured data location is
an s3:// URI, or when USE_S3_STORAGE is enabled.

Example:
    Bucket: energy-profile-data
    Key: exports/data.csv
    Full path: s3://energy-profile-data/exports/data.csv
=============================================================================
"""

# boto3 - The official AWS SDK for Python
import boto3

# ClientError - AWS API errors (missing bucket/key, access denied)
# BotoCoreError - errors raised before a response arrives (no network, no credentials)
from botocore.exceptions import BotoCoreError, ClientError

import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)


class S3Service:
    """
    Read-only access to CSV exports in one S3 bucket.

    Usage:
        s3 = S3Service("energy-profile-data")
        content = s3.download_file("exports/data.csv")
    """

    def __init__(self, bucket_name: str = None, s3_client=None):
        """
        Initialize the S3 service.

        AWS credentials are loaded from these environment variables:
        - AWS_ACCESS_KEY_ID: Your AWS access key
        - AWS_SECRET_ACCESS_KEY: Your AWS secret key
        - AWS_SESSION_TOKEN: Session token (for temporary credentials)
        - AWS_REGION: The AWS region (e.g., 'us-east-1')

        Args:
            bucket_name: Optional bucket name. If not provided,
                        uses S3_BUCKET_NAME from environment or default.
            s3_client: Optional pre-built boto3 S3 client.
        """
        self.bucket_name = bucket_name or os.getenv('S3_BUCKET_NAME', 'energy-profile-data')
        self.region = os.getenv('AWS_REGION', 'us-east-1')

        if s3_client is None:
            session_token = os.getenv('AWS_SESSION_TOKEN')
            s3_client = boto3.client(
                's3',
                region_name=self.region,
                aws_access_key_id=os.getenv('AWS_ACCESS_KEY_ID'),
                aws_secret_access_key=os.getenv('AWS_SECRET_ACCESS_KEY'),
                # Only include session_token if it exists
                aws_session_token=session_token if session_token else None
            )
        self.s3_client = s3_client

    def download_file(self, s3_key: str, bucket_name: str = None) -> Optional[bytes]:
        """
        Download a file from S3.

        Args:
            s3_key: The S3 key (path) of the file to download
            bucket_name: Read from this bucket instead of the default one

        Returns:
            bytes: The file content, or None if failed

        Example:
            content = s3.download_file("exports/data.csv")
            text = content.decode('utf-8')
        """
        bucket = bucket_name or self.bucket_name
        try:
            response = self.s3_client.get_object(Bucket=bucket, Key=s3_key)
            return response['Body'].read()

        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to download s3://%s/%s: %s", bucket, s3_key, e)
            return None
