"""
Stack definitions.
"""

from querystack.stacks.database import (
    DATABASE_BUCKET_ID,
    QUERY_FUNCTION_ID,
    build_database_stack,
)

__all__ = [
    "build_database_stack",
    "DATABASE_BUCKET_ID",
    "QUERY_FUNCTION_ID",
]
