"""
Compiled stacks and compilation errors.
"""

from dataclasses import dataclass, field
from typing import Any, TypedDict

from querystack.core.errors import ProvisioningError


class StackMetadata(TypedDict, total=False):
    """Metadata about stack compilation."""
    resource_count: int
    binding_count: int
    output_count: int
    creation_order: list[str]


@dataclass
class CompiledStack:
    """
    A stack compiled to Pulumi resources.

    Holds the Pulumi resource objects registered with the Pulumi runtime,
    keyed by resource name, and the stack outputs as Pulumi Outputs.
    """

    stack_name: str
    """Stack name"""

    resources: dict[str, Any]
    """Pulumi resources by name"""

    outputs: dict[str, Any] = field(default_factory=dict)
    """Output values (pulumi.Output) by output key"""

    descriptions: dict[str, str] = field(default_factory=dict)
    """Output descriptions by output key"""

    metadata: StackMetadata = field(default_factory=dict)
    """Compilation metadata"""

    def get_resource(self, name: str) -> Any | None:
        """Get a resource by name."""
        return self.resources.get(name)

    def list_resources(self) -> list[str]:
        """List all resource names."""
        return list(self.resources.keys())

    def export_outputs(self) -> dict[str, Any]:
        """
        Export every output as a Pulumi stack output.

        After `pulumi up`, each value can be read with
        `pulumi stack output <key> --stack <stack>`.

        Returns:
            Dictionary of exported outputs
        """
        import pulumi

        for key, value in self.outputs.items():
            pulumi.export(key, value)
        return dict(self.outputs)


class CompilationError(ProvisioningError):
    """Raised when a stack cannot be compiled to Pulumi resources."""
    pass
