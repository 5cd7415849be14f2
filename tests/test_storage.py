"""
Tests for storage resources and their security policy.
"""

import pytest

from querystack import Stack
from querystack.core.refs import Reference
from querystack.storage.resources import (
    BLOCK_ALL,
    DATABASE_BUCKET_POLICY,
    BlockPublicAccess,
    BucketEncryption,
    RemovalPolicy,
    SecurityPolicy,
    StorageResource,
)


class TestStorageResource:
    """Tests for StorageResource."""

    def test_declared_bucket_is_secure(self):
        """Test that every declared bucket is encrypted, private and retained."""
        bucket = Stack(name="QueryStack").declare_storage()

        assert bucket.logical_id == "DatabaseBucket"
        assert bucket.encrypted
        assert bucket.policy.encryption == BucketEncryption.S3_MANAGED
        assert bucket.policy.public_access.blocks_all
        assert bucket.policy.removal_policy == RemovalPolicy.RETAIN
        assert bucket.retained_on_delete

    def test_policy_cannot_be_replaced(self):
        """Test that the security policy is read-only."""
        bucket = Stack(name="QueryStack").declare_storage()

        with pytest.raises(AttributeError):
            bucket.policy = SecurityPolicy(removal_policy=RemovalPolicy.DESTROY)

        assert bucket.policy is DATABASE_BUCKET_POLICY

    def test_policy_fields_are_frozen(self):
        """Test that the shared policy cannot be weakened in place."""
        with pytest.raises(AttributeError):
            DATABASE_BUCKET_POLICY.removal_policy = RemovalPolicy.DESTROY
        with pytest.raises(AttributeError):
            BLOCK_ALL.block_public_acls = False

    def test_identity_is_deferred(self):
        """Test that name and ARN are References, not strings."""
        bucket = Stack(name="QueryStack").declare_storage("DatabaseBucket")

        assert isinstance(bucket.bucket_name, Reference)
        assert bucket.bucket_name.resource is bucket
        assert bucket.bucket_name.attribute == "bucket_name"
        assert str(bucket.bucket_arn) == "${DatabaseBucket.bucket_arn}"

    def test_no_dependencies(self):
        """Test that buckets depend on nothing."""
        bucket = Stack(name="QueryStack").declare_storage()

        assert bucket.dependencies() == []

    def test_to_dict(self):
        """Test plain-data description."""
        bucket = Stack(name="QueryStack").declare_storage()

        assert bucket.to_dict() == {
            "type": "storage",
            "service": "s3",
            "logical_id": "DatabaseBucket",
            "policy": {
                "encryption": "AES256",
                "block_public_access": True,
                "removal_policy": "retain",
            },
        }


class TestSecurityPolicy:
    """Tests for SecurityPolicy compatibility."""

    def test_same_policy_is_compatible(self):
        """Test that an identical policy is compatible."""
        assert DATABASE_BUCKET_POLICY.is_compatible_with(SecurityPolicy())

    def test_kms_encryption_is_compatible(self):
        """Test that a different encryption mode is still encrypted."""
        kms = SecurityPolicy(encryption=BucketEncryption.KMS_MANAGED)

        assert DATABASE_BUCKET_POLICY.is_compatible_with(kms)

    def test_public_bucket_is_incompatible(self):
        """Test that a bucket allowing public policies is rejected."""
        public = SecurityPolicy(public_access=BlockPublicAccess(block_public_policy=False))

        assert not DATABASE_BUCKET_POLICY.is_compatible_with(public)

    def test_destroy_policy_is_incompatible(self):
        """Test that a bucket deleted with its stack is rejected."""
        destroy = SecurityPolicy(removal_policy=RemovalPolicy.DESTROY)

        assert not DATABASE_BUCKET_POLICY.is_compatible_with(destroy)
