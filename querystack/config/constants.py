"""
Platform bounds and fixed values for the query service stack.
"""

from typing import Final

# Lambda platform bounds
LAMBDA_MIN_MEMORY_MB: Final[int] = 128
LAMBDA_MAX_MEMORY_MB: Final[int] = 10240
LAMBDA_MIN_TIMEOUT_SECONDS: Final[int] = 1
LAMBDA_MAX_TIMEOUT_SECONDS: Final[int] = 900

# Custom runtime used by Rust functions built with cargo-lambda
LAMBDA_RUNTIME: Final[str] = "provided.al2023"
LAMBDA_HANDLER: Final[str] = "bootstrap"

# Query function
QUERY_MANIFEST_PATH: Final[str] = "lambda/database/Cargo.toml"
QUERY_BINARY_NAME: Final[str] = "query"
QUERY_MEMORY_MB: Final[int] = 256
QUERY_TIMEOUT_SECONDS: Final[int] = 30

# Contract between the stack and the query function
DATABASE_BUCKET_ENV: Final[str] = "DATABASE_BUCKET_NAME"
DATABASE_KEY_ENV: Final[str] = "DATABASE_KEY"
DATABASE_BUCKET_OUTPUT: Final[str] = "DatabaseBucketName"

# CloudWatch only accepts these retention periods
LOG_RETENTION_DAYS: Final[tuple[int, ...]] = (
    1, 3, 5, 7, 14, 30, 60, 90, 120, 150, 180, 365, 400, 545, 731,
    1096, 1827, 2192, 2557, 2922, 3288, 3653,
)

DEFAULT_TAGS: Final[dict[str, str]] = {
    "Project": "querystack",
    "ManagedBy": "pulumi",
}
