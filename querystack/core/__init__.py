"""
Core querystack functionality.

- Reference: deferred attribute of a declared resource
- DAG: dependency graph used to order provisioning
- Errors raised while declaring or provisioning a stack

The Stack itself lives in querystack.core.stack.
"""

from querystack.core.dag import DAG, ResourceNode
from querystack.core.errors import (
    ArtifactNotFound,
    InvalidGrantee,
    InvalidRuntimeConfig,
    InvalidTarget,
    ProvisioningConflict,
    ProvisioningError,
)
from querystack.core.refs import Reference, resolve_value

__all__ = [
    "DAG",
    "ResourceNode",
    "Reference",
    "resolve_value",
    "ProvisioningError",
    "ProvisioningConflict",
    "ArtifactNotFound",
    "InvalidRuntimeConfig",
    "InvalidGrantee",
    "InvalidTarget",
]
