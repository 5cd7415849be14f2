"""
Local engine for provisioning stacks in memory.

The LocalEngine applies a Stack the way a deployment engine would, against
an in-memory inventory instead of a cloud account. It is primarily used for:
1. Testing the provisioning contract (identities, outputs, permissions)
2. Dry runs of a stack before `pulumi up`
3. Checking teardown behavior (retained resources survive)
"""

import hashlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TYPE_CHECKING

from querystack.core.errors import (
    ProvisioningConflict,
    ProvisioningError,
)
from querystack.core.refs import resolve_value
from querystack.permissions.binding import PolicyDocument
from querystack.storage.resources import SecurityPolicy
from querystack.utils.naming import ResourceNamer

if TYPE_CHECKING:
    from querystack.core.stack import Stack


@dataclass
class DeployedResource:
    """A resource present in the local inventory."""

    physical_id: str
    """Platform-assigned name"""

    kind: str
    """storage, compute or binding"""

    stack_name: str | None
    """Owning stack; None once orphaned by a teardown"""

    logical_id: str
    attributes: dict[str, Any] = field(default_factory=dict)
    policy: SecurityPolicy | None = None
    retain: bool = False


@dataclass
class Deployment:
    """Result of provisioning one stack."""

    stack_name: str
    identities: dict[str, str]
    """Physical id of every resource, by logical id"""

    outputs: dict[str, str]
    """Resolved outputs, by key"""

    environments: dict[str, dict[str, str]]
    """Resolved environment variables of every function, by logical id"""

    policies: dict[str, PolicyDocument]
    """Policy attached to each function's role, by logical id"""

    def can(self, logical_id: str, action: str, resource_arn: str) -> bool:
        """Whether the function `logical_id` is authorized to perform action on resource_arn."""
        policy = self.policies.get(logical_id)
        return policy is not None and policy.allows(action, resource_arn)


class LocalEngine:
    """
    In-memory deployment engine.

    Example:
        engine = LocalEngine(project_root=".")
        deployment = engine.provision(stack)
        deployment.outputs["DatabaseBucketName"]

        engine.destroy(stack.name)   # retained buckets stay in the inventory
    """

    def __init__(
        self,
        project_root: str | Path = ".",
        account_id: str = "123456789012",
        region: str = "us-east-1",
        verbose: bool = False,
    ):
        """
        Initialize the engine.

        Args:
            project_root: Directory artifact manifest paths are relative to
            account_id: Account used to build ARNs
            region: Region used to build ARNs
            verbose: Print each step
        """
        self.project_root = Path(project_root)
        self.account_id = account_id
        self.region = region
        self.verbose = verbose
        self.inventory: dict[str, DeployedResource] = {}
        self.deployments: dict[str, Deployment] = {}

    def register_existing_bucket(self, name: str, policy: SecurityPolicy) -> None:
        """Add a bucket created outside any stack to the inventory."""
        self.inventory[name] = DeployedResource(
            physical_id=name,
            kind="storage",
            stack_name=None,
            logical_id=name,
            attributes=self._bucket_attributes(name),
            policy=policy,
            retain=True,
        )

    def provision(self, stack: 'Stack') -> Deployment:
        """
        Apply a stack.

        Validation runs first, so declaration errors and missing artifacts
        abort before anything is created. If a step fails, every resource
        created during this run is removed again.

        Returns:
            Deployment with resolved identities and outputs

        Raises:
            ArtifactNotFound: If an artifact is not built
            ProvisioningConflict: If a bucket name is taken with an incompatible policy
            ProvisioningError: If the stack was already provisioned by this engine
        """
        if stack.name in self.deployments:
            raise ProvisioningError(f"Stack '{stack.name}' is already provisioned")

        order = stack.validate(self.project_root)
        dag = stack.graph()
        identities: dict[str, str] = {}
        attributes: dict[str, dict[str, Any]] = {}
        environments: dict[str, dict[str, str]] = {}
        policies: dict[str, PolicyDocument] = {}
        created: list[str] = []
        adopted: list[str] = []

        def resolver(resource: Any, attribute: str) -> str:
            resolved = attributes.get(resource.logical_id)
            if resolved is None or attribute not in resolved:
                raise ProvisioningError(
                    f"Cannot resolve {resource.logical_id}.{attribute}: not provisioned in this run"
                )
            return resolved[attribute]

        self._log(f"Provisioning stack '{stack.name}' ({len(order)} resources)")
        try:
            for logical_id in order:
                node = dag.nodes[logical_id]
                physical_id = self.physical_id(stack.name, logical_id, node.kind)

                if node.kind == "storage":
                    attributes[logical_id] = self._bucket_attributes(physical_id)
                    if self._claim_bucket(physical_id, node.resource.policy):
                        self.inventory[physical_id].stack_name = stack.name
                        adopted.append(physical_id)
                    else:
                        self._create(DeployedResource(
                            physical_id=physical_id,
                            kind="storage",
                            stack_name=stack.name,
                            logical_id=logical_id,
                            attributes=attributes[logical_id],
                            policy=node.resource.policy,
                            retain=node.resource.retained_on_delete,
                        ))
                        created.append(physical_id)

                elif node.kind == "compute":
                    environments[logical_id] = {
                        key: resolve_value(value, resolver)
                        for key, value in node.resource.environment.items()
                    }
                    attributes[logical_id] = self._function_attributes(physical_id)
                    self._create(DeployedResource(
                        physical_id=physical_id,
                        kind="compute",
                        stack_name=stack.name,
                        logical_id=logical_id,
                        attributes={**attributes[logical_id], "environment": environments[logical_id]},
                    ))
                    created.append(physical_id)

                else:
                    binding = node.resource
                    document = binding.policy(resolver)
                    grantee_id = binding.grantee.logical_id
                    existing = policies.get(grantee_id, PolicyDocument())
                    policies[grantee_id] = PolicyDocument(
                        statements=existing.statements + document.statements
                    )
                    self._create(DeployedResource(
                        physical_id=physical_id,
                        kind="binding",
                        stack_name=stack.name,
                        logical_id=logical_id,
                        attributes={"policy": document.to_dict()},
                    ))
                    created.append(physical_id)

                identities[logical_id] = physical_id
                self._log(f"  ✓ {node.kind} {logical_id} -> {physical_id}")

            outputs = {
                output.key: resolve_value(output.value, resolver)
                for output in stack.outputs
            }

        except ProvisioningError:
            self._rollback(created, adopted)
            raise
        except Exception as e:
            self._rollback(created, adopted)
            raise ProvisioningError(f"Failed to provision stack '{stack.name}': {e}") from e

        stack.mark_provisioned()
        deployment = Deployment(
            stack_name=stack.name,
            identities=identities,
            outputs=outputs,
            environments=environments,
            policies=policies,
        )
        self.deployments[stack.name] = deployment
        return deployment

    def destroy(self, stack_name: str) -> list[str]:
        """
        Tear down a stack.

        Resources with a retain policy are orphaned instead of deleted: they
        stay in the inventory, detached from the stack.

        Returns:
            Physical ids of the retained resources

        Raises:
            ProvisioningError: If the stack is not provisioned
        """
        if stack_name not in self.deployments:
            raise ProvisioningError(f"Stack '{stack_name}' is not provisioned")

        retained = []
        for physical_id, resource in list(self.inventory.items()):
            if resource.stack_name != stack_name:
                continue
            if resource.retain:
                resource.stack_name = None
                retained.append(physical_id)
                self._log(f"  - retained {physical_id}")
            else:
                del self.inventory[physical_id]
                self._log(f"  - deleted {physical_id}")

        del self.deployments[stack_name]
        return retained

    def lookup_output(self, stack_name: str, key: str) -> str:
        """
        Look up a published output by stack name and key.

        Raises:
            KeyError: If the stack is not provisioned or has no such output
        """
        deployment = self.deployments.get(stack_name)
        if deployment is None:
            raise KeyError(f"Stack '{stack_name}' is not provisioned")
        if key not in deployment.outputs:
            raise KeyError(f"Stack '{stack_name}' has no output '{key}'")
        return deployment.outputs[key]

    def exists(self, physical_id: str) -> bool:
        return physical_id in self.inventory

    def physical_id(self, stack_name: str, logical_id: str, kind: str = "storage") -> str:
        """Deterministic platform-style name: <stack>-<logical>-<hash>."""
        namer = ResourceNamer(stack_name)
        digest = hashlib.sha256(f"{stack_name}/{logical_id}".encode()).hexdigest()[:12]
        base = namer.function_name(logical_id) if kind == "compute" else namer.name(logical_id)
        # S3 bucket names are limited to 63 characters
        return f"{base[:63 - len(digest) - 1].rstrip('-')}-{digest}"

    def _claim_bucket(self, name: str, policy: SecurityPolicy) -> bool:
        """
        Reserve a bucket name.

        Returns:
            True if an orphaned compatible bucket was adopted

        Raises:
            ProvisioningConflict: If the name is taken by an incompatible or owned bucket
        """
        existing = self.inventory.get(name)
        if existing is None:
            return False
        if existing.stack_name is not None:
            raise ProvisioningConflict(
                f"Bucket '{name}' already belongs to stack '{existing.stack_name}'"
            )
        if existing.policy is None or not policy.is_compatible_with(existing.policy):
            raise ProvisioningConflict(
                f"Bucket '{name}' already exists with an incompatible policy"
            )
        self._log(f"  ~ adopting retained bucket {name}")
        return True

    def _create(self, resource: DeployedResource) -> None:
        if resource.physical_id in self.inventory:
            raise ProvisioningConflict(f"Resource '{resource.physical_id}' already exists")
        self.inventory[resource.physical_id] = resource

    def _rollback(self, created: list[str], adopted: list[str]) -> None:
        for physical_id in adopted:
            self.inventory[physical_id].stack_name = None
        for physical_id in reversed(created):
            self.inventory.pop(physical_id, None)
            self._log(f"  ↺ rolled back {physical_id}")

    def _bucket_attributes(self, name: str) -> dict[str, str]:
        return {"bucket_name": name, "bucket_arn": f"arn:aws:s3:::{name}"}

    def _function_attributes(self, name: str) -> dict[str, str]:
        prefix = f"arn:aws:lambda:{self.region}:{self.account_id}:function"
        return {
            "function_name": name,
            "function_arn": f"{prefix}:{name}",
            "role_arn": f"arn:aws:iam::{self.account_id}:role/{name}-role",
        }

    def _log(self, message: str) -> None:
        if self.verbose:
            print(message)
