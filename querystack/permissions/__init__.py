"""
Permission bindings and the policies derived from them.
"""

from querystack.permissions.binding import (
    READ_ACTIONS,
    WRITE_ACTIONS,
    AccessLevel,
    PermissionBinding,
    PolicyDocument,
    PolicyStatement,
    bucket_policy,
)

__all__ = [
    "AccessLevel",
    "PermissionBinding",
    "PolicyDocument",
    "PolicyStatement",
    "bucket_policy",
    "READ_ACTIONS",
    "WRITE_ACTIONS",
]
