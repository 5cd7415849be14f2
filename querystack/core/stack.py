"""
Stack: the provisioning unit.

A Stack owns every resource declared through it, the permission bindings
between them and the outputs it publishes. Declaring resources only builds
a graph; applying it is the job of an engine (Pulumi via StackCompiler, or
the LocalEngine for tests and dry runs).
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, TYPE_CHECKING

from querystack.compute.resources import ArtifactRef, ComputeResource, RuntimeConfig
from querystack.core.dag import DAG
from querystack.core.errors import (
    InvalidGrantee,
    InvalidRuntimeConfig,
    InvalidTarget,
    ProvisioningError,
)
from querystack.core.refs import Reference
from querystack.permissions.binding import AccessLevel, PermissionBinding
from querystack.storage.resources import StorageResource

if TYPE_CHECKING:
    from querystack.compilation.compiler import CompiledStack


class StackState(str, Enum):
    """Observable lifecycle of a stack."""

    DECLARED = "declared"
    PROVISIONED = "provisioned"


@dataclass
class ProvisioningOutput:
    """A named value published for lookup after provisioning."""

    key: str
    """Output key, e.g. 'DatabaseBucketName'"""

    value: str | Reference
    """Literal value or deferred attribute of a resource"""

    description: str | None = None
    """What the value is, for operators"""

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "value": str(self.value),
            "description": self.description,
        }


@dataclass
class Stack:
    """
    A named, atomically deployed collection of resources.

    Example:
        stack = Stack(name="QueryStack")

        bucket = stack.declare_storage("DatabaseBucket")
        query = stack.declare_compute(
            "QueryLambda",
            artifact=ArtifactRef("lambda/database/Cargo.toml", "query"),
            runtime=RuntimeConfig(memory=256, timeout=30),
            environment={"DATABASE_BUCKET_NAME": bucket.bucket_name},
        )
        stack.grant_access(query, bucket, "read")
        stack.add_output("DatabaseBucketName", bucket.bucket_name)
    """

    name: str
    """Stack name, used to look up outputs"""

    tags: dict[str, str] = field(default_factory=dict)
    """Tags applied to every resource"""

    _resources: dict[str, Any] = field(default_factory=dict, repr=False)
    """Declared storage and compute resources, by logical id"""

    _bindings: list[PermissionBinding] = field(default_factory=list, repr=False)
    """Permission bindings, in declaration order"""

    _outputs: dict[str, ProvisioningOutput] = field(default_factory=dict, repr=False)
    """Published outputs, by key"""

    state: StackState = StackState.DECLARED
    """DECLARED until an engine provisions the stack"""

    def declare_storage(self, logical_id: str = "DatabaseBucket") -> StorageResource:
        """
        Declare an encrypted, private, retained bucket.

        The security policy is fixed and cannot be weakened.

        Args:
            logical_id: Name of the bucket inside this stack

        Returns:
            StorageResource whose name is resolved at provisioning time
        """
        self._check_writable()
        self._check_new_id(logical_id)

        resource = StorageResource(logical_id=logical_id, stack=self)
        self._resources[logical_id] = resource
        return resource

    def declare_compute(
        self,
        logical_id: str,
        artifact: ArtifactRef,
        runtime: RuntimeConfig | Mapping[str, Any],
        environment: Mapping[str, str | Reference] | None = None,
    ) -> ComputeResource:
        """
        Declare a function built from a pre-built artifact.

        Args:
            logical_id: Name of the function inside this stack
            artifact: Locator of the built package
            runtime: RuntimeConfig, or a mapping of its fields
            environment: Environment variables; values may be References to
                resources of this stack

        Returns:
            ComputeResource

        Raises:
            InvalidRuntimeConfig: If memory/timeout/architecture are out of bounds
            InvalidTarget: If an environment value references another stack
        """
        self._check_writable()
        self._check_new_id(logical_id)

        if not isinstance(runtime, RuntimeConfig):
            runtime = RuntimeConfig(**dict(runtime))
        if artifact.architecture != runtime.architecture:
            raise InvalidRuntimeConfig(
                f"Artifact '{artifact.binary_name}' is built for {artifact.architecture.value} "
                f"but '{logical_id}' runs on {runtime.architecture.value}"
            )

        env = dict(environment or {})
        for key, value in env.items():
            if not isinstance(key, str) or not key:
                raise InvalidRuntimeConfig(f"Environment variable names must be non-empty strings: {key!r}")
            if isinstance(value, Reference):
                self._check_reference(value, f"environment variable {key}")
            elif not isinstance(value, str):
                raise InvalidRuntimeConfig(
                    f"Environment variable {key} must be a string or Reference, got {type(value).__name__}"
                )

        resource = ComputeResource(
            logical_id=logical_id,
            stack=self,
            artifact=artifact,
            runtime=runtime,
            environment=env,
        )
        self._resources[logical_id] = resource
        return resource

    def grant_access(
        self,
        grantee: ComputeResource,
        target: StorageResource,
        level: AccessLevel | str = AccessLevel.READ,
    ) -> PermissionBinding:
        """
        Grant `level` access on target to grantee.

        Bindings are additive. Granting the same access twice returns the
        existing binding; there is no revoke.

        Raises:
            InvalidGrantee: If grantee is not a compute resource of this stack
            InvalidTarget: If target is not a storage resource of this stack
        """
        self._check_writable()

        if not isinstance(grantee, ComputeResource):
            raise InvalidGrantee(f"Grantee must be a compute resource, got {type(grantee).__name__}")
        if not isinstance(target, StorageResource):
            raise InvalidTarget(f"Target must be a storage resource, got {type(target).__name__}")
        self._check_owned(grantee, InvalidGrantee, "grantee")
        self._check_owned(target, InvalidTarget, "target")

        try:
            level = AccessLevel(level)
        except ValueError as e:
            raise ProvisioningError(
                f"Unknown access level '{level}'; expected one of "
                f"{', '.join(choice.value for choice in AccessLevel)}"
            ) from e
        for existing in self._bindings:
            if existing.grantee is grantee and existing.target is target and existing.level == level:
                return existing

        binding = PermissionBinding(grantee=grantee, target=target, level=level, stack=self)
        if binding.logical_id in self._resources:
            raise ProvisioningError(
                f"Binding '{binding.logical_id}' clashes with a resource of the same id "
                f"in stack '{self.name}'"
            )
        self._bindings.append(binding)
        return binding

    def add_output(
        self,
        key: str,
        value: str | Reference,
        description: str | None = None,
    ) -> ProvisioningOutput:
        """
        Publish a named output.

        Raises:
            ProvisioningError: If the key is already published
            InvalidTarget: If value references another stack
        """
        self._check_writable()
        if key in self._outputs:
            raise ProvisioningError(f"Output '{key}' is already defined in stack '{self.name}'")
        if isinstance(value, Reference):
            self._check_reference(value, f"output {key}")

        output = ProvisioningOutput(key=key, value=value, description=description)
        self._outputs[key] = output
        return output

    @property
    def resources(self) -> list[Any]:
        """Declared storage and compute resources."""
        return list(self._resources.values())

    @property
    def bindings(self) -> list[PermissionBinding]:
        return list(self._bindings)

    @property
    def outputs(self) -> list[ProvisioningOutput]:
        return list(self._outputs.values())

    def get_resource(self, logical_id: str) -> Any | None:
        """Get a resource by logical id."""
        return self._resources.get(logical_id)

    def get_output(self, key: str) -> ProvisioningOutput | None:
        """Get an output by key."""
        return self._outputs.get(key)

    def graph(self) -> DAG:
        """
        Build the dependency graph of resources and bindings.

        Returns:
            DAG whose topological order is a valid creation order
        """
        dag = DAG()
        try:
            for resource in self._resources.values():
                dag.add_node(resource.logical_id, resource, resource.kind)
            for binding in self._bindings:
                dag.add_node(binding.logical_id, binding, binding.kind)

            for node in list(dag.nodes.values()):
                for dependency in node.resource.dependencies():
                    dag.add_edge(dependency.logical_id, node.logical_id)
        except ValueError as e:
            raise ProvisioningError(f"Stack '{self.name}' has an invalid graph: {e}") from e

        return dag

    def validate(self, project_root: str | Path = ".") -> list[str]:
        """
        Check everything that can fail before provisioning.

        Resolves every artifact and orders the graph. Nothing is created.

        Args:
            project_root: Directory artifact manifest paths are relative to

        Returns:
            Creation order of the resources

        Raises:
            ArtifactNotFound: If an artifact is not built
            ProvisioningError: If the graph cannot be ordered
        """
        for resource in self._resources.values():
            if isinstance(resource, ComputeResource):
                resource.artifact.resolve(project_root)

        try:
            return self.graph().topological_sort()
        except ValueError as e:
            raise ProvisioningError(f"Stack '{self.name}' cannot be ordered: {e}") from e

    def describe(self) -> dict[str, Any]:
        """
        Plain-data description of the declared stack.

        Used by `querystack synth`; no artifact is resolved.
        """
        dag = self.graph()
        return {
            "stack": self.name,
            "state": self.state.value,
            "tags": dict(self.tags),
            "resources": [resource.to_dict() for resource in self._resources.values()],
            "bindings": [binding.to_dict() for binding in self._bindings],
            "outputs": [output.to_dict() for output in self._outputs.values()],
            "creation_order": dag.topological_sort(),
            "creation_waves": dag.get_execution_levels(),
        }

    def compile(
        self,
        project_root: str | Path = ".",
        log_retention_days: int = 30,
    ) -> 'CompiledStack':
        """
        Compile the stack to Pulumi resources.

        Must run inside a Pulumi program (or with Pulumi mocks set).

        Returns:
            CompiledStack with the created Pulumi resources
        """
        from querystack.compilation.stack_compiler import StackCompiler

        compiler = StackCompiler(project_root=project_root, log_retention_days=log_retention_days)
        return compiler.compile(self)

    def mark_provisioned(self) -> None:
        """Record that an engine has applied this stack. Further declarations fail."""
        self.state = StackState.PROVISIONED

    def _check_writable(self) -> None:
        if self.state is not StackState.DECLARED:
            raise ProvisioningError(
                f"Stack '{self.name}' is {self.state.value}; declare changes in a new revision"
            )

    def _check_new_id(self, logical_id: str) -> None:
        if not logical_id:
            raise ProvisioningError("Logical id must not be empty")
        if logical_id in self._resources:
            raise ProvisioningError(
                f"Resource '{logical_id}' is already declared in stack '{self.name}'"
            )
        if any(binding.logical_id == logical_id for binding in self._bindings):
            raise ProvisioningError(
                f"'{logical_id}' is already the id of a binding in stack '{self.name}'"
            )

    def _check_owned(self, resource: Any, error: type[ProvisioningError], role: str) -> None:
        owner = getattr(resource, "stack", None)
        if owner is not self or self._resources.get(resource.logical_id) is not resource:
            owner_name = owner.name if owner is not None else "no stack"
            raise error(
                f"{role} '{getattr(resource, 'logical_id', resource)}' belongs to "
                f"{owner_name}, not to stack '{self.name}'"
            )

    def _check_reference(self, reference: Reference, role: str) -> None:
        self._check_owned(reference.resource, InvalidTarget, role)
        known = getattr(reference.resource, "attributes", ())
        if reference.attribute not in known:
            raise InvalidTarget(
                f"{role}: '{reference.logical_id}' has no attribute '{reference.attribute}' "
                f"(expected one of {', '.join(known)})"
            )
