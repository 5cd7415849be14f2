"""
querystack: infrastructure for a serverless data-query service.

querystack declares an encrypted, private S3 bucket holding a database file
and a Lambda function that queries it. Resources are declared on a Stack;
the Stack derives dependencies, permissions and outputs, and an engine
applies it (Pulumi, or the in-memory LocalEngine).

Core concepts:
- Stack: owns every resource declared through it
- StorageResource: bucket with a fixed security policy
- ComputeResource: function built from a pre-built artifact
- PermissionBinding: least-privilege access from a function to a bucket
- Reference: attribute only known after provisioning (e.g. bucket name)

Example:
    from querystack import Stack, ArtifactRef, RuntimeConfig

    stack = Stack(name="QueryStack")
    bucket = stack.declare_storage("DatabaseBucket")
    query = stack.declare_compute(
        "QueryLambda",
        artifact=ArtifactRef("lambda/database/Cargo.toml", "query"),
        runtime=RuntimeConfig(memory=256, timeout=30),
        environment={"DATABASE_BUCKET_NAME": bucket.bucket_name},
    )
    stack.grant_access(query, bucket, "read")
    stack.add_output("DatabaseBucketName", bucket.bucket_name)

    # Inside a Pulumi program
    stack.compile().export_outputs()
"""

from querystack.compute.resources import (
    Architecture,
    ArtifactRef,
    ComputeResource,
    RuntimeConfig,
)
from querystack.core.errors import (
    ArtifactNotFound,
    InvalidGrantee,
    InvalidRuntimeConfig,
    InvalidTarget,
    ProvisioningConflict,
    ProvisioningError,
)
from querystack.core.refs import Reference
from querystack.core.stack import ProvisioningOutput, Stack, StackState
from querystack.permissions.binding import AccessLevel, PermissionBinding
from querystack.storage.resources import SecurityPolicy, StorageResource

__version__ = "0.1.0"
__all__ = [
    "Stack",
    "StackState",
    "ProvisioningOutput",
    "StorageResource",
    "SecurityPolicy",
    "ComputeResource",
    "ArtifactRef",
    "RuntimeConfig",
    "Architecture",
    "PermissionBinding",
    "AccessLevel",
    "Reference",
    # Errors
    "ProvisioningError",
    "ProvisioningConflict",
    "ArtifactNotFound",
    "InvalidRuntimeConfig",
    "InvalidGrantee",
    "InvalidTarget",
]
