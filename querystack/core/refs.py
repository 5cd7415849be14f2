"""
Deferred value cells for attributes that are only known after provisioning.

A Reference names a resource and one of its attributes (for example the
bucket name the platform assigns). References can be placed anywhere a
value is expected at declaration time: environment variables, outputs,
policy resources. The engine resolves them in dependency order.
"""

from dataclasses import dataclass
from typing import Any, Callable, TYPE_CHECKING

if TYPE_CHECKING:
    from querystack.core.stack import Stack


@dataclass(frozen=True)
class Reference:
    """
    A deferred attribute of a declared resource.

    Example:
        bucket = stack.declare_storage("DatabaseBucket")
        ref = bucket.bucket_name      # Reference, not a string
        ref.resolve(lambda resource, attr: identities[resource.logical_id])
    """

    resource: Any
    """Descriptor the attribute belongs to (StorageResource, ComputeResource)"""

    attribute: str
    """Attribute name, e.g. 'bucket_name' or 'function_arn'"""

    @property
    def logical_id(self) -> str:
        return self.resource.logical_id

    @property
    def stack(self) -> 'Stack':
        return self.resource.stack

    def resolve(self, resolver: Callable[[Any, str], Any]) -> Any:
        """
        Resolve this reference with an engine-specific resolver.

        Args:
            resolver: Callable receiving (resource, attribute) and returning
                the resolved value (a string locally, a pulumi.Output in Pulumi)

        Returns:
            Whatever the resolver returns
        """
        return resolver(self.resource, self.attribute)

    def __str__(self) -> str:
        return f"${{{self.logical_id}.{self.attribute}}}"

    def __repr__(self) -> str:
        return f"Reference({self.logical_id}.{self.attribute})"


def resolve_value(value: Any, resolver: Callable[[Any, str], Any]) -> Any:
    """Resolve value if it is a Reference, otherwise return it unchanged."""
    if isinstance(value, Reference):
        return value.resolve(resolver)
    return value
