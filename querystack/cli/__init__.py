"""
querystack command-line interface.
"""

from querystack.cli.deploy import DeploymentCLI, DeploymentError
from querystack.cli.main import cli

__all__ = [
    "cli",
    "DeploymentCLI",
    "DeploymentError",
]
