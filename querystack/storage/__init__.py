"""
Storage resources.
"""

from querystack.storage.resources import (
    BLOCK_ALL,
    DATABASE_BUCKET_POLICY,
    BlockPublicAccess,
    BucketEncryption,
    RemovalPolicy,
    SecurityPolicy,
    StorageResource,
)

__all__ = [
    "StorageResource",
    "SecurityPolicy",
    "BucketEncryption",
    "BlockPublicAccess",
    "RemovalPolicy",
    "BLOCK_ALL",
    "DATABASE_BUCKET_POLICY",
]
