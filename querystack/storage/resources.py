"""
Storage Resources: the encrypted, private bucket backing the query service.

The security posture of a StorageResource is not configurable. Every bucket
declared through a Stack is encrypted at rest, blocks all public access
and is retained when the stack is deleted.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TYPE_CHECKING

from querystack.core.refs import Reference

if TYPE_CHECKING:
    from querystack.core.stack import Stack


class BucketEncryption(str, Enum):
    """Server-side encryption modes."""

    S3_MANAGED = "AES256"
    KMS_MANAGED = "aws:kms"


class RemovalPolicy(str, Enum):
    """What happens to a resource when its stack is deleted."""

    RETAIN = "retain"
    DESTROY = "destroy"


@dataclass(frozen=True)
class BlockPublicAccess:
    """S3 public access block settings."""

    block_public_acls: bool = True
    block_public_policy: bool = True
    ignore_public_acls: bool = True
    restrict_public_buckets: bool = True

    @property
    def blocks_all(self) -> bool:
        return all((
            self.block_public_acls,
            self.block_public_policy,
            self.ignore_public_acls,
            self.restrict_public_buckets,
        ))


BLOCK_ALL = BlockPublicAccess()


@dataclass(frozen=True)
class SecurityPolicy:
    """Encryption, public access and retention of a bucket."""

    encryption: BucketEncryption = BucketEncryption.S3_MANAGED
    public_access: BlockPublicAccess = BLOCK_ALL
    removal_policy: RemovalPolicy = RemovalPolicy.RETAIN

    def is_compatible_with(self, other: 'SecurityPolicy') -> bool:
        """
        Whether an existing bucket with policy `other` may stand in for this one.

        Anything weaker than this policy is incompatible.
        """
        return (
            other.encryption is not None
            and other.public_access.blocks_all
            and other.removal_policy == self.removal_policy
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "encryption": self.encryption.value,
            "block_public_access": self.public_access.blocks_all,
            "removal_policy": self.removal_policy.value,
        }


# The only policy a Stack will ever attach to a bucket
DATABASE_BUCKET_POLICY = SecurityPolicy()


@dataclass(eq=False)
class StorageResource:
    """
    An object-storage bucket declared in a stack.

    The bucket's name is assigned by the platform when the stack is
    provisioned, so `bucket_name` and `bucket_arn` are References rather
    than strings.

    Users should not instantiate this directly - use
    stack.declare_storage(...) instead.
    """

    logical_id: str
    """Name of the resource inside its stack"""

    stack: 'Stack' = field(repr=False)
    """Stack that owns this resource"""

    kind = "storage"
    attributes = ("bucket_name", "bucket_arn")

    @property
    def policy(self) -> SecurityPolicy:
        """Fixed security policy; not settable."""
        return DATABASE_BUCKET_POLICY

    @property
    def bucket_name(self) -> Reference:
        """Deferred bucket name assigned by the platform."""
        return Reference(self, "bucket_name")

    @property
    def bucket_arn(self) -> Reference:
        """Deferred bucket ARN."""
        return Reference(self, "bucket_arn")

    @property
    def encrypted(self) -> bool:
        return self.policy.encryption is not None

    @property
    def retained_on_delete(self) -> bool:
        return self.policy.removal_policy == RemovalPolicy.RETAIN

    def dependencies(self) -> list[Any]:
        """Buckets depend on nothing else in the stack."""
        return []

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "storage",
            "service": "s3",
            "logical_id": self.logical_id,
            "policy": self.policy.to_dict(),
        }

    def __repr__(self) -> str:
        return f"StorageResource({self.logical_id}, encryption={self.policy.encryption.value})"
