"""
In-process engines for applying stacks without a cloud account.
"""

from querystack.runtime.local import Deployment, DeployedResource, LocalEngine

__all__ = [
    "LocalEngine",
    "Deployment",
    "DeployedResource",
]
