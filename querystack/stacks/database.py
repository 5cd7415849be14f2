"""
The query service stack: a database bucket and the function that reads it.

The stack is declared in four steps, each depending only on the previous
ones:
1. Declare the database bucket
2. Declare the query function, handing it the bucket's name through its
   environment
3. Grant the function read access on the bucket
4. Publish the bucket's name as a stack output
"""

from querystack.compute.resources import Architecture, ArtifactRef, RuntimeConfig
from querystack.config.constants import (
    DATABASE_BUCKET_ENV,
    DATABASE_BUCKET_OUTPUT,
    DATABASE_KEY_ENV,
    QUERY_BINARY_NAME,
    QUERY_MANIFEST_PATH,
    QUERY_MEMORY_MB,
    QUERY_TIMEOUT_SECONDS,
)
from querystack.config.settings import StackSettings
from querystack.core.stack import Stack
from querystack.permissions.binding import AccessLevel

DATABASE_BUCKET_ID = "DatabaseBucket"
QUERY_FUNCTION_ID = "QueryLambda"

QUERY_ARTIFACT = ArtifactRef(
    manifest_path=QUERY_MANIFEST_PATH,
    binary_name=QUERY_BINARY_NAME,
    architecture=Architecture.ARM_64,
)

QUERY_RUNTIME = RuntimeConfig(
    architecture=Architecture.ARM_64,
    memory=QUERY_MEMORY_MB,
    timeout=QUERY_TIMEOUT_SECONDS,
)


def build_database_stack(settings: StackSettings | None = None) -> Stack:
    """
    Declare the query service stack.

    Args:
        settings: Stack settings (defaults to StackSettings())

    Returns:
        Stack in the DECLARED state, ready for an engine

    Example:
        stack = build_database_stack(StackSettings(environment="prod"))
        LocalEngine(project_root=".").provision(stack)
    """
    settings = settings or StackSettings()
    stack = Stack(name=settings.stack_name, tags=settings.resource_tags())

    bucket = stack.declare_storage(DATABASE_BUCKET_ID)

    environment = dict(settings.extra_environment)
    environment[DATABASE_BUCKET_ENV] = bucket.bucket_name
    if settings.database_key:
        environment[DATABASE_KEY_ENV] = settings.database_key

    query = stack.declare_compute(
        QUERY_FUNCTION_ID,
        artifact=QUERY_ARTIFACT,
        runtime=QUERY_RUNTIME,
        environment=environment,
    )

    stack.grant_access(query, bucket, AccessLevel.READ)

    stack.add_output(
        DATABASE_BUCKET_OUTPUT,
        bucket.bucket_name,
        description="Name of the S3 bucket for database",
    )

    return stack
