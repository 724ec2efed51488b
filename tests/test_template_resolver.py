"""
Tests for template lookup in S3.
"""

from datetime import datetime, timezone

import boto3
import pytest
from botocore.stub import Stubber

from provisioner.exceptions import InternalError, TemplateNotFoundError
from provisioner.models.cluster import ClusterType
from provisioner.template_resolver import TemplateResolver


@pytest.fixture
def s3():
    client = boto3.client("s3", region_name="us-east-1")
    with Stubber(client) as stubber:
        yield client, stubber
        stubber.assert_no_pending_responses()


class TestTemplateResolver:
    """Test cluster type to template URL resolution."""

    def test_resolves_existing_template(self, s3):
        client, stubber = s3
        modified = datetime(2026, 1, 1, tzinfo=timezone.utc)
        stubber.add_response(
            "head_object",
            {"ContentLength": 2048, "ETag": '"abc"', "LastModified": modified},
            {"Bucket": "templates-bucket", "Key": "dedicated-main-template.yaml"},
        )
        resolver = TemplateResolver("templates-bucket", "us-east-1", client=client)

        info = resolver.resolve(ClusterType.DEDICATED)

        assert info.url == (
            "https://templates-bucket.s3.us-east-1.amazonaws.com/dedicated-main-template.yaml"
        )
        assert info.size == 2048
        assert info.last_modified == modified

    def test_key_prefix(self, s3):
        client, stubber = s3
        stubber.add_response(
            "head_object",
            {"ContentLength": 1},
            {"Bucket": "templates-bucket", "Key": "cluster/v2/shared-main-template.yaml"},
        )
        resolver = TemplateResolver(
            "templates-bucket", "eu-west-1", key_prefix="/cluster/v2/", client=client
        )

        info = resolver.resolve(ClusterType.SHARED)

        assert info.key == "cluster/v2/shared-main-template.yaml"
        assert info.url.startswith("https://templates-bucket.s3.eu-west-1.amazonaws.com/")

    def test_missing_template(self, s3):
        client, stubber = s3
        stubber.add_client_error("head_object", service_error_code="404", http_status_code=404)
        resolver = TemplateResolver("templates-bucket", "us-east-1", client=client)

        with pytest.raises(TemplateNotFoundError) as exc_info:
            resolver.resolve(ClusterType.SHARED)

        assert "shared-main-template.yaml" in exc_info.value.message

    def test_access_denied_is_internal(self, s3):
        client, stubber = s3
        stubber.add_client_error("head_object", service_error_code="403", http_status_code=403)
        resolver = TemplateResolver("templates-bucket", "us-east-1", client=client)

        with pytest.raises(InternalError) as exc_info:
            resolver.resolve(ClusterType.DEDICATED)

        assert not isinstance(exc_info.value, TemplateNotFoundError)

    def test_unconfigured_bucket(self, s3):
        client, _ = s3
        resolver = TemplateResolver("", "us-east-1", client=client)

        with pytest.raises(TemplateNotFoundError):
            resolver.resolve(ClusterType.DEDICATED)
