"""
Compute Resources: the managed function serving queries.

A ComputeResource is built from a pre-built artifact and a fixed runtime
configuration. Anything the function needs to find at runtime (which bucket
to read) reaches it only through its environment variables.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Any, TYPE_CHECKING

from pydantic import BaseModel, Field, ValidationError, field_validator

from querystack.config.constants import (
    LAMBDA_MAX_MEMORY_MB,
    LAMBDA_MAX_TIMEOUT_SECONDS,
    LAMBDA_MIN_MEMORY_MB,
    LAMBDA_MIN_TIMEOUT_SECONDS,
)
from querystack.core.errors import ArtifactNotFound, InvalidRuntimeConfig
from querystack.core.refs import Reference

if TYPE_CHECKING:
    from querystack.core.stack import Stack


class Architecture(str, Enum):
    """Instruction set architectures supported by Lambda."""

    ARM_64 = "arm64"
    X86_64 = "x86_64"


@dataclass(frozen=True)
class ArtifactRef:
    """
    Locator for a pre-built function package.

    Points at a Cargo manifest and one of its binaries. The package itself
    is produced by `cargo lambda build`, which writes the executable to
    `<manifest dir>/target/lambda/<binary>/bootstrap`.

    Example:
        ArtifactRef("lambda/database/Cargo.toml", "query", Architecture.ARM_64)
    """

    manifest_path: str
    """Path to Cargo.toml, relative to the project root"""

    binary_name: str
    """Binary target to deploy"""

    architecture: Architecture = Architecture.ARM_64
    """Architecture the binary was built for"""

    def build_dir(self, project_root: str | Path = ".") -> Path:
        """Directory the build writes this binary's package to."""
        manifest = Path(project_root) / self.manifest_path
        return manifest.parent / "target" / "lambda" / self.binary_name

    def resolve(self, project_root: str | Path = ".") -> Path:
        """
        Resolve the locator to the directory holding the built package.

        Args:
            project_root: Directory manifest_path is relative to

        Returns:
            Path to the package directory (contains `bootstrap`)

        Raises:
            ArtifactNotFound: If the manifest or the built binary is missing
        """
        manifest = Path(project_root) / self.manifest_path
        if not manifest.is_file():
            raise ArtifactNotFound(f"Cargo manifest not found: {manifest}")

        package_dir = self.build_dir(project_root)
        if not (package_dir / "bootstrap").is_file():
            raise ArtifactNotFound(
                f"Binary '{self.binary_name}' has not been built: "
                f"expected {package_dir / 'bootstrap'} "
                f"(run `cargo lambda build --release --{self.architecture.value.replace('_', '-')} "
                f"--manifest-path {self.manifest_path}`)"
            )
        return package_dir

    def to_dict(self) -> dict[str, Any]:
        return {
            "manifest_path": self.manifest_path,
            "binary_name": self.binary_name,
            "architecture": self.architecture.value,
        }


class RuntimeConfig(BaseModel):
    """
    Runtime configuration of a function.

    Out-of-bounds values raise InvalidRuntimeConfig on construction.

    Example:
        RuntimeConfig(architecture="arm64", memory=256, timeout=30)
    """

    architecture: Architecture = Field(
        default=Architecture.ARM_64,
        description="Instruction set architecture (arm64, x86_64)"
    )
    memory: int = Field(
        ...,
        description=f"Memory allocation in MB ({LAMBDA_MIN_MEMORY_MB}-{LAMBDA_MAX_MEMORY_MB})"
    )
    timeout: timedelta = Field(
        ...,
        description=f"Timeout, seconds or timedelta ({LAMBDA_MIN_TIMEOUT_SECONDS}-{LAMBDA_MAX_TIMEOUT_SECONDS}s)"
    )

    class Config:
        frozen = True

    def __init__(self, **data: Any):
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise InvalidRuntimeConfig(f"Invalid runtime configuration: {e}") from e

    @classmethod
    def model_validate(cls, obj: Any, **kwargs: Any) -> 'RuntimeConfig':
        """Validate a mapping, raising InvalidRuntimeConfig on bad values."""
        try:
            return super().model_validate(obj, **kwargs)
        except ValidationError as e:
            raise InvalidRuntimeConfig(f"Invalid runtime configuration: {e}") from e

    @field_validator("memory")
    @classmethod
    def _memory_in_bounds(cls, value: int) -> int:
        if not LAMBDA_MIN_MEMORY_MB <= value <= LAMBDA_MAX_MEMORY_MB:
            raise ValueError(
                f"memory must be between {LAMBDA_MIN_MEMORY_MB} and "
                f"{LAMBDA_MAX_MEMORY_MB} MB, got {value}"
            )
        return value

    @field_validator("timeout")
    @classmethod
    def _timeout_in_bounds(cls, value: timedelta) -> timedelta:
        seconds = value.total_seconds()
        if seconds != int(seconds):
            raise ValueError(f"timeout must be a whole number of seconds, got {seconds}")
        if not LAMBDA_MIN_TIMEOUT_SECONDS <= seconds <= LAMBDA_MAX_TIMEOUT_SECONDS:
            raise ValueError(
                f"timeout must be between {LAMBDA_MIN_TIMEOUT_SECONDS} and "
                f"{LAMBDA_MAX_TIMEOUT_SECONDS} seconds, got {seconds:g}"
            )
        return value

    @property
    def timeout_seconds(self) -> int:
        return int(self.timeout.total_seconds())

    def to_dict(self) -> dict[str, Any]:
        return {
            "architecture": self.architecture.value,
            "memory": self.memory,
            "timeout": self.timeout_seconds,
        }


@dataclass(eq=False)
class ComputeResource:
    """
    A managed function declared in a stack.

    Users should not instantiate this directly - use
    stack.declare_compute(...) instead.
    """

    logical_id: str
    """Name of the resource inside its stack"""

    stack: 'Stack' = field(repr=False)
    """Stack that owns this resource"""

    artifact: ArtifactRef
    """Where the function package comes from"""

    runtime: RuntimeConfig
    """Architecture, memory and timeout"""

    environment: dict[str, str | Reference] = field(default_factory=dict)
    """Environment variables; values may be deferred References"""

    kind = "compute"
    attributes = ("function_name", "function_arn", "role_arn")

    @property
    def function_name(self) -> Reference:
        """Deferred function name assigned by the platform."""
        return Reference(self, "function_name")

    @property
    def function_arn(self) -> Reference:
        """Deferred function ARN."""
        return Reference(self, "function_arn")

    @property
    def role_arn(self) -> Reference:
        """Deferred ARN of the function's execution role."""
        return Reference(self, "role_arn")

    def dependencies(self) -> list[Any]:
        """Resources whose attributes appear in the environment."""
        deps = []
        for value in self.environment.values():
            if isinstance(value, Reference) and value.resource not in deps:
                deps.append(value.resource)
        return deps

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "compute",
            "service": "lambda",
            "logical_id": self.logical_id,
            "artifact": self.artifact.to_dict(),
            "runtime": self.runtime.to_dict(),
            "environment": {key: str(value) for key, value in self.environment.items()},
        }

    def __repr__(self) -> str:
        return (
            f"ComputeResource({self.logical_id}, memory={self.runtime.memory}MB, "
            f"timeout={self.runtime.timeout_seconds}s)"
        )
