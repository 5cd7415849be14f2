"""
Tests for permission bindings and policy evaluation.
"""

import json

import pytest

from querystack import Stack
from querystack.compute.resources import ArtifactRef
from querystack.permissions.binding import (
    READ_ACTIONS,
    WRITE_ACTIONS,
    AccessLevel,
    PolicyDocument,
    PolicyStatement,
    bucket_policy,
)

BUCKET_ARN = "arn:aws:s3:::query-stack-database-bucket-1a2b3c"
OBJECT_ARN = f"{BUCKET_ARN}/databases/posts.db"


@pytest.fixture
def declared():
    stack = Stack(name="QueryStack")
    bucket = stack.declare_storage()
    query = stack.declare_compute(
        "QueryLambda",
        artifact=ArtifactRef("lambda/database/Cargo.toml", "query"),
        runtime={"memory": 256, "timeout": 30},
        environment={"DATABASE_BUCKET_NAME": bucket.bucket_name},
    )
    return stack, bucket, query


class TestAccessLevel:
    """Tests for the actions granted at each level."""

    def test_read_actions(self):
        """Test read grants only Get and List actions."""
        assert AccessLevel.READ.actions == ["s3:GetObject*", "s3:GetBucket*", "s3:List*"]

    def test_read_write_is_union(self):
        """Test read-write grants both sets."""
        assert set(AccessLevel.READ_WRITE.actions) == set(READ_ACTIONS) | set(WRITE_ACTIONS)

    def test_levels_from_strings(self):
        """Test levels can be given by value."""
        assert AccessLevel("read-write") is AccessLevel.READ_WRITE


class TestReadPolicy:
    """Tests for the read policy of one bucket."""

    policy = bucket_policy(AccessLevel.READ, BUCKET_ARN)

    @pytest.mark.parametrize("action,resource", [
        ("s3:GetObject", OBJECT_ARN),
        ("s3:GetObjectVersion", OBJECT_ARN),
        ("s3:ListBucket", BUCKET_ARN),
        ("s3:GetBucketLocation", BUCKET_ARN),
        ("S3:getobject", OBJECT_ARN),
    ])
    def test_allows_reads(self, action, resource):
        """Test that read actions on the bucket and its objects are allowed."""
        assert self.policy.allows(action, resource)

    @pytest.mark.parametrize("action", [
        "s3:PutObject",
        "s3:DeleteObject",
        "s3:DeleteObjectVersion",
        "s3:PutBucketPolicy",
        "s3:AbortMultipartUpload",
    ])
    def test_rejects_writes_and_deletes(self, action):
        """Test that write and delete actions are implicitly denied."""
        assert not self.policy.allows(action, OBJECT_ARN)

    def test_rejects_other_buckets(self):
        """Test that the policy is scoped to one bucket."""
        assert not self.policy.allows("s3:GetObject", "arn:aws:s3:::someone-else/key")
        assert not self.policy.allows("s3:GetObject", f"{BUCKET_ARN}-other/key")

    def test_policy_document_shape(self):
        """Test the rendered IAM policy."""
        document = json.loads(self.policy.to_json())

        assert document["Version"] == "2012-10-17"
        assert document["Statement"] == [{
            "Effect": "Allow",
            "Action": ["s3:GetObject*", "s3:GetBucket*", "s3:List*"],
            "Resource": [BUCKET_ARN, f"{BUCKET_ARN}/*"],
        }]


class TestPolicyDocument:
    """Tests for policy evaluation."""

    def test_empty_policy_denies(self):
        """Test implicit deny."""
        assert not PolicyDocument().allows("s3:GetObject", OBJECT_ARN)

    def test_explicit_deny_wins(self):
        """Test that a matching Deny overrides an Allow."""
        document = PolicyDocument(statements=(
            PolicyStatement(actions=("s3:*",), resources=("*",)),
            PolicyStatement(actions=("s3:GetObject",), resources=(OBJECT_ARN,), effect="Deny"),
        ))

        assert not document.allows("s3:GetObject", OBJECT_ARN)
        assert document.allows("s3:PutObject", OBJECT_ARN)

    def test_write_policy(self):
        """Test write access allows puts but not reads."""
        document = bucket_policy(AccessLevel.WRITE, BUCKET_ARN)

        assert document.allows("s3:PutObject", OBJECT_ARN)
        assert document.allows("s3:DeleteObject", OBJECT_ARN)
        assert not document.allows("s3:GetObject", OBJECT_ARN)


class TestPermissionBinding:
    """Tests for bindings declared on a stack."""

    def test_binding_policy_resolves_target(self, declared):
        """Test that the binding policy targets the resolved bucket."""
        stack, bucket, query = declared
        binding = stack.grant_access(query, bucket, "read")

        document = binding.policy(lambda resource, attribute: BUCKET_ARN)

        assert document.allows("s3:GetObject", OBJECT_ARN)
        assert not document.allows("s3:PutObject", OBJECT_ARN)

    def test_logical_id(self, declared):
        """Test binding names are derived from the relation."""
        stack, bucket, query = declared

        read = stack.grant_access(query, bucket, "read")
        read_write = stack.grant_access(query, bucket, "read-write")

        assert read.logical_id == "QueryLambdaDatabaseBucketReadPolicy"
        assert read_write.logical_id == "QueryLambdaDatabaseBucketReadWritePolicy"

    def test_dependencies(self, declared):
        """Test bindings depend on both grantee and target."""
        stack, bucket, query = declared
        binding = stack.grant_access(query, bucket)

        assert binding.dependencies() == [query, bucket]
        assert binding.level is AccessLevel.READ
