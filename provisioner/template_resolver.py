"""
Template Resolver

Maps a cluster type to the URL of its main infrastructure template in S3.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from provisioner.constants import DEFAULT_AWS_MAX_ATTEMPTS, TEMPLATE_KEY_SUFFIX
from provisioner.exceptions import InternalError, TemplateNotFoundError
from provisioner.models.cluster import ClusterType

MISSING_OBJECT_CODES = ("404", "NoSuchKey", "NotFound")


@dataclass
class TemplateInfo:
    """Location and metadata of a stored template."""

    key: str
    url: str
    size: int = 0
    etag: str = ""
    last_modified: Optional[datetime] = None
    version_id: Optional[str] = None


class TemplateResolver:
    """Looks up `<type>-main-template.yaml` in the template bucket."""

    def __init__(
        self,
        bucket: str,
        region: str,
        key_prefix: str = "",
        max_attempts: int = DEFAULT_AWS_MAX_ATTEMPTS,
        client: Any = None,
    ):
        self.bucket = bucket
        self.region = region
        self.key_prefix = key_prefix.strip("/")
        self.client = client or boto3.client(
            "s3",
            region_name=region,
            config=Config(retries={"max_attempts": max_attempts, "mode": "standard"}),
        )

    def template_key(self, cluster_type: ClusterType) -> str:
        """Object key for a cluster type's main template."""
        name = f"{cluster_type.value}{TEMPLATE_KEY_SUFFIX}"
        return f"{self.key_prefix}/{name}" if self.key_prefix else name

    def template_url(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def resolve(self, cluster_type: ClusterType) -> TemplateInfo:
        """
        Resolve the template for a cluster type.

        Args:
            cluster_type: Cluster tenancy model

        Returns:
            TemplateInfo with a URL the template engine can fetch

        Raises:
            TemplateNotFoundError: If the object does not exist
            InternalError: If the lookup itself fails
        """
        key = self.template_key(cluster_type)

        if not self.bucket:
            raise TemplateNotFoundError(key, "<not configured>")

        try:
            response = self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in MISSING_OBJECT_CODES:
                raise TemplateNotFoundError(key, self.bucket)
            raise InternalError(
                f"Failed to look up template {key}",
                context=f"Bucket: {self.bucket}, Error: {code}",
            )
        except BotoCoreError as e:
            raise InternalError(
                f"Failed to look up template {key}",
                context=f"Bucket: {self.bucket}, Error: {str(e)}",
            )

        return TemplateInfo(
            key=key,
            url=self.template_url(key),
            size=response.get("ContentLength", 0),
            etag=response.get("ETag", ""),
            last_modified=response.get("LastModified"),
            version_id=response.get("VersionId"),
        )
