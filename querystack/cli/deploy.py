"""
Pulumi helpers for the query service stack.

Wraps the Pulumi CLI for reading the published stack outputs.
"""

import json
import subprocess
from pathlib import Path
from typing import Any

from querystack.core.errors import ProvisioningError


class DeploymentError(ProvisioningError):
    """Raised when a Pulumi command fails."""
    pass


class DeploymentCLI:
    """
    Reads the outputs of deployed stacks through the Pulumi CLI.
    """

    def __init__(self, project_dir: str | Path = ".", verbose: bool = True):
        """
        Initialize deployment CLI.

        Args:
            project_dir: Directory containing Pulumi.yaml
            verbose: Print detailed output
        """
        self.project_dir = Path(project_dir)
        self.verbose = verbose

    def stack_outputs(self, stack: str | None = None) -> dict[str, Any]:
        """
        Get stack outputs as dictionary.

        Args:
            stack: Optional stack name

        Returns:
            Dictionary of stack outputs

        Raises:
            DeploymentError: If getting outputs fails
        """
        result = self._run_pulumi_command(
            ["stack", "output", "--json"],
            stack,
            description="Getting stack outputs"
        )

        try:
            outputs = json.loads(result.stdout or "{}")
        except json.JSONDecodeError as e:
            raise DeploymentError(f"Failed to parse stack outputs: {e}") from e
        if not isinstance(outputs, dict):
            raise DeploymentError("Failed to parse stack outputs: expected a JSON object")
        return outputs

    def lookup_output(self, stack: str, key: str) -> Any:
        """
        Look up one output by stack name and key.

        Raises:
            DeploymentError: If the stack has no such output
        """
        outputs = self.stack_outputs(stack)
        if key not in outputs:
            raise DeploymentError(f"Stack '{stack}' has no output '{key}'")
        return outputs[key]

    def _run_pulumi_command(
        self,
        command: list[str],
        stack: str | None = None,
        extra_args: list[str] | None = None,
        description: str | None = None
    ) -> subprocess.CompletedProcess:
        """
        Run a Pulumi CLI command.

        Args:
            command: Pulumi command and subcommands to run
            stack: Optional stack name
            extra_args: Optional extra arguments
            description: Optional description for verbose output

        Returns:
            CompletedProcess with command results

        Raises:
            DeploymentError: If command fails
        """
        if not self.project_dir.exists():
            raise DeploymentError(f"Pulumi project directory not found: {self.project_dir}")

        cmd = ["pulumi", *command]
        if stack:
            cmd.extend(["--stack", stack])
        if extra_args:
            cmd.extend(extra_args)

        if self.verbose and description:
            print(f"{description}...")
            print(f"  Command: {' '.join(cmd)}")
            print(f"  Directory: {self.project_dir}")

        try:
            result = subprocess.run(
                cmd,
                cwd=self.project_dir,
                check=True,
                capture_output=True,
                text=True
            )
        except FileNotFoundError as e:
            raise DeploymentError("Pulumi CLI not found on PATH") from e
        except subprocess.CalledProcessError as e:
            error_msg = f"Pulumi command failed: {' '.join(cmd)}"
            if e.stderr:
                error_msg += f"\n{e.stderr}"
            raise DeploymentError(error_msg) from e

        if self.verbose:
            print("✓ Command completed successfully")

        return result
