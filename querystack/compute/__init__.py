"""
Compute resources.
"""

from querystack.compute.resources import (
    Architecture,
    ArtifactRef,
    ComputeResource,
    RuntimeConfig,
)

__all__ = [
    "Architecture",
    "ArtifactRef",
    "ComputeResource",
    "RuntimeConfig",
]
