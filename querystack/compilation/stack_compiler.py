"""
Stack Compiler: turns a declared Stack into AWS resources via Pulumi.

Resources are created in the stack's dependency order. References are
resolved to Pulumi Outputs of resources created earlier in the same pass,
so Pulumi sees the same edges the Stack declared (bucket before function,
function and bucket before the policy binding them).
"""

import json
from pathlib import Path
from typing import Any, TYPE_CHECKING

try:
    import pulumi
    import pulumi_aws as aws
except ImportError:
    raise ImportError(
        "pulumi and pulumi_aws required for StackCompiler. "
        "Install with: pip install pulumi pulumi-aws"
    )

from querystack.compilation.compiler import CompilationError, CompiledStack
from querystack.config.constants import LAMBDA_HANDLER, LAMBDA_RUNTIME
from querystack.core.errors import ProvisioningError
from querystack.core.refs import resolve_value
from querystack.utils.naming import ResourceNamer

if TYPE_CHECKING:
    from querystack.compute.resources import ComputeResource
    from querystack.core.stack import Stack
    from querystack.permissions.binding import PermissionBinding
    from querystack.storage.resources import StorageResource


LAMBDA_ASSUME_ROLE_POLICY = json.dumps({
    "Version": "2012-10-17",
    "Statement": [{
        "Effect": "Allow",
        "Principal": {"Service": "lambda.amazonaws.com"},
        "Action": "sts:AssumeRole",
    }],
})

LAMBDA_BASIC_EXECUTION_POLICY_ARN = (
    "arn:aws:iam::aws:policy/service-role/AWSLambdaBasicExecutionRole"
)


class StackCompiler:
    """
    Compiles a Stack to Pulumi AWS resources.

    The StackCompiler:
    1. Validates the stack (artifacts resolve, graph is acyclic) before
       creating anything
    2. Creates each resource in dependency order:
       - storage: S3 bucket, encryption configuration, public access block
       - compute: IAM role, log group, Lambda function
       - binding: inline role policy scoped to the target bucket
    3. Resolves outputs to Pulumi Outputs
    """

    def __init__(self, project_root: str | Path = ".", log_retention_days: int = 30):
        """
        Initialize the compiler.

        Args:
            project_root: Directory artifact manifest paths are relative to
            log_retention_days: Retention of function log groups
        """
        self.project_root = Path(project_root)
        self.log_retention_days = log_retention_days
        self._resources: dict[str, Any] = {}
        self._attributes: dict[str, dict[str, Any]] = {}
        self._roles: dict[str, Any] = {}

    def compile(self, stack: 'Stack') -> CompiledStack:
        """
        Compile a stack to Pulumi resources.

        Args:
            stack: The stack to compile

        Returns:
            CompiledStack with all Pulumi resources and outputs

        Raises:
            ArtifactNotFound, ProvisioningError: If validation fails; raised
                before any resource is created
            CompilationError: If creating the resources fails
        """
        order = stack.validate(self.project_root)
        namer = ResourceNamer(stack.name)
        dag = stack.graph()

        self._resources = {}
        self._attributes = {}
        self._roles = {}

        try:
            for logical_id in order:
                node = dag.nodes[logical_id]
                if node.kind == "storage":
                    self._compile_storage(stack, node.resource, namer)
                elif node.kind == "compute":
                    self._compile_compute(stack, node.resource, namer)
                elif node.kind == "binding":
                    self._compile_binding(stack, node.resource, namer)
                else:
                    raise CompilationError(f"Unknown resource kind '{node.kind}' for {logical_id}")

            outputs = {
                output.key: resolve_value(output.value, self._resolve)
                for output in stack.outputs
            }

        except ProvisioningError:
            raise
        except Exception as e:
            raise CompilationError(f"Failed to compile stack '{stack.name}': {e}") from e

        stack.mark_provisioned()

        return CompiledStack(
            stack_name=stack.name,
            resources=dict(self._resources),
            outputs=outputs,
            descriptions={
                output.key: output.description
                for output in stack.outputs
                if output.description
            },
            metadata={
                "resource_count": len(stack.resources),
                "binding_count": len(stack.bindings),
                "output_count": len(stack.outputs),
                "creation_order": order,
            },
        )

    def _resolve(self, resource: Any, attribute: str) -> Any:
        """Resolve a Reference to the Output of an already created resource."""
        attributes = self._attributes.get(resource.logical_id)
        if attributes is None:
            raise CompilationError(
                f"'{resource.logical_id}' is referenced before it was created"
            )
        if attribute not in attributes:
            raise CompilationError(
                f"'{resource.logical_id}' has no attribute '{attribute}'"
            )
        return attributes[attribute]

    def _compile_storage(
        self,
        stack: 'Stack',
        resource: 'StorageResource',
        namer: ResourceNamer,
    ) -> None:
        """Create the bucket and the resources enforcing its security policy."""
        name = namer.name(resource.logical_id)
        policy = resource.policy

        # Everything guarding the bucket shares its removal policy, so a
        # retained bucket never outlives its encryption or access block.
        opts = pulumi.ResourceOptions(retain_on_delete=resource.retained_on_delete)

        bucket = aws.s3.Bucket(
            name,
            tags={**stack.tags, "Name": name},
            opts=opts,
        )
        self._resources[name] = bucket

        encryption = aws.s3.BucketServerSideEncryptionConfiguration(
            f"{name}-encryption",
            bucket=bucket.id,
            rules=[aws.s3.BucketServerSideEncryptionConfigurationRuleArgs(
                apply_server_side_encryption_by_default=aws.s3.BucketServerSideEncryptionConfigurationRuleApplyServerSideEncryptionByDefaultArgs(
                    sse_algorithm=policy.encryption.value,
                ),
            )],
            opts=opts,
        )
        self._resources[f"{name}-encryption"] = encryption

        access = policy.public_access
        public_block = aws.s3.BucketPublicAccessBlock(
            f"{name}-public-block",
            bucket=bucket.id,
            block_public_acls=access.block_public_acls,
            block_public_policy=access.block_public_policy,
            ignore_public_acls=access.ignore_public_acls,
            restrict_public_buckets=access.restrict_public_buckets,
            opts=opts,
        )
        self._resources[f"{name}-public-block"] = public_block

        self._attributes[resource.logical_id] = {
            "bucket_name": bucket.bucket,
            "bucket_arn": bucket.arn,
        }
        pulumi.log.info(f"Declared bucket {name} (retain_on_delete={resource.retained_on_delete})")

    def _compile_compute(
        self,
        stack: 'Stack',
        resource: 'ComputeResource',
        namer: ResourceNamer,
    ) -> None:
        """Create the execution role, log group and Lambda function."""
        package_dir = resource.artifact.resolve(self.project_root)
        name = namer.name(resource.logical_id)
        function_name = namer.function_name(resource.logical_id)

        role = aws.iam.Role(
            f"{name}-role",
            assume_role_policy=LAMBDA_ASSUME_ROLE_POLICY,
            tags={**stack.tags, "Name": f"{name}-role"},
        )
        self._resources[f"{name}-role"] = role
        self._roles[resource.logical_id] = role

        basic_execution = aws.iam.RolePolicyAttachment(
            f"{name}-basic-execution",
            role=role.name,
            policy_arn=LAMBDA_BASIC_EXECUTION_POLICY_ARN,
        )
        self._resources[f"{name}-basic-execution"] = basic_execution

        log_group = aws.cloudwatch.LogGroup(
            f"{name}-logs",
            name=namer.log_group_name(resource.logical_id),
            retention_in_days=self.log_retention_days,
            tags={**stack.tags, "Name": f"{name}-logs"},
        )
        self._resources[f"{name}-logs"] = log_group

        variables = {
            key: resolve_value(value, self._resolve)
            for key, value in resource.environment.items()
        }

        function = aws.lambda_.Function(
            name,
            name=function_name,
            role=role.arn,
            runtime=LAMBDA_RUNTIME,
            handler=LAMBDA_HANDLER,
            architectures=[resource.runtime.architecture.value],
            code=pulumi.FileArchive(str(package_dir)),
            memory_size=resource.runtime.memory,
            timeout=resource.runtime.timeout_seconds,
            environment=aws.lambda_.FunctionEnvironmentArgs(variables=variables),
            tags={**stack.tags, "Name": name},
            opts=pulumi.ResourceOptions(depends_on=[log_group, basic_execution]),
        )
        self._resources[name] = function

        self._attributes[resource.logical_id] = {
            "function_name": function.name,
            "function_arn": function.arn,
            "role_arn": role.arn,
        }
        pulumi.log.info(
            f"Declared function {function_name} "
            f"({resource.runtime.architecture.value}, {resource.runtime.memory}MB, "
            f"{resource.runtime.timeout_seconds}s)"
        )

    def _compile_binding(
        self,
        stack: 'Stack',
        binding: 'PermissionBinding',
        namer: ResourceNamer,
    ) -> None:
        """Attach the binding's least-privilege policy to the grantee's role."""
        role = self._roles.get(binding.grantee.logical_id)
        if role is None:
            raise CompilationError(
                f"Role for '{binding.grantee.logical_id}' is not created yet"
            )

        bucket_arn = self._resolve(binding.target, "bucket_arn")
        policy = pulumi.Output.from_input(bucket_arn).apply(
            lambda arn: binding.policy(lambda _resource, _attribute: arn).to_json()
        )

        name = namer.name(binding.logical_id)
        role_policy = aws.iam.RolePolicy(
            name,
            role=role.id,
            policy=policy,
        )
        self._resources[name] = role_policy
        pulumi.log.info(
            f"Granted {binding.level.value} on {binding.target.logical_id} "
            f"to {binding.grantee.logical_id}"
        )
