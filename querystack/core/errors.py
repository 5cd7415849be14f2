"""
Errors raised while declaring or provisioning a stack.

Declaration-time errors are raised synchronously by the Stack. Engine-time
errors are raised by whatever applies the graph (the local engine, or the
Pulumi compiler wrapping them in a CompilationError).
"""


class ProvisioningError(Exception):
    """Base class for all provisioning errors."""
    pass


class ProvisioningConflict(ProvisioningError):
    """Raised when a resource with the same name exists with an incompatible policy."""
    pass


class ArtifactNotFound(ProvisioningError):
    """Raised when a build artifact reference does not resolve to a package."""
    pass


class InvalidRuntimeConfig(ProvisioningError, ValueError):
    """Raised when memory, timeout or architecture are outside platform bounds."""
    pass


class InvalidGrantee(ProvisioningError):
    """Raised when a permission grantee is not a compute resource of the stack."""
    pass


class InvalidTarget(ProvisioningError):
    """Raised when a permission target or reference points outside the stack."""
    pass
