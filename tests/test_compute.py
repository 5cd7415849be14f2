"""
Tests for compute resources: artifacts and runtime configuration.
"""

from datetime import timedelta

import pytest

from querystack import Stack
from querystack.compute.resources import Architecture, ArtifactRef, RuntimeConfig
from querystack.core.errors import ArtifactNotFound, InvalidRuntimeConfig, ProvisioningError


QUERY_ARTIFACT = ArtifactRef("lambda/database/Cargo.toml", "query")


class TestRuntimeConfig:
    """Tests for RuntimeConfig bounds."""

    def test_valid_config(self):
        """Test the query function's runtime."""
        runtime = RuntimeConfig(architecture="arm64", memory=256, timeout=30)

        assert runtime.architecture == Architecture.ARM_64
        assert runtime.memory == 256
        assert runtime.timeout == timedelta(seconds=30)
        assert runtime.timeout_seconds == 30

    def test_timeout_as_timedelta(self):
        """Test that timeouts may be given as timedelta."""
        runtime = RuntimeConfig(memory=128, timeout=timedelta(minutes=15))

        assert runtime.timeout_seconds == 900

    @pytest.mark.parametrize("memory", [127, 0, 10241, -256])
    def test_memory_out_of_bounds(self, memory):
        """Test that memory outside 128-10240 MB is rejected."""
        with pytest.raises(InvalidRuntimeConfig, match="memory"):
            RuntimeConfig(memory=memory, timeout=30)

    @pytest.mark.parametrize("timeout", [0, 901, 1.5])
    def test_timeout_out_of_bounds(self, timeout):
        """Test that timeouts outside 1-900 whole seconds are rejected."""
        with pytest.raises(InvalidRuntimeConfig, match="timeout"):
            RuntimeConfig(memory=256, timeout=timeout)

    def test_unknown_architecture(self):
        """Test that only arm64 and x86_64 are accepted."""
        with pytest.raises(InvalidRuntimeConfig):
            RuntimeConfig(architecture="riscv64", memory=256, timeout=30)

    def test_error_is_provisioning_and_value_error(self):
        """Test the error hierarchy of invalid runtime configs."""
        with pytest.raises(ProvisioningError):
            RuntimeConfig(memory=1, timeout=30)
        with pytest.raises(ValueError):
            RuntimeConfig(memory=1, timeout=30)

    def test_model_validate_raises_invalid_runtime_config(self):
        """Test validating a mapping reports the same error as the constructor."""
        with pytest.raises(InvalidRuntimeConfig, match="memory"):
            RuntimeConfig.model_validate({"memory": 64, "timeout": 30})

        runtime = RuntimeConfig.model_validate({"memory": 256, "timeout": 30})
        assert runtime.timeout_seconds == 30

    def test_frozen(self):
        """Test that runtime configs cannot be changed after validation."""
        runtime = RuntimeConfig(memory=256, timeout=30)

        with pytest.raises(Exception):
            runtime.memory = 100000


class TestArtifactRef:
    """Tests for ArtifactRef resolution."""

    def test_resolve_built_artifact(self, project_root):
        """Test resolving a built binary to its package directory."""
        package_dir = QUERY_ARTIFACT.resolve(project_root)

        assert package_dir == project_root / "lambda" / "database" / "target" / "lambda" / "query"
        assert (package_dir / "bootstrap").is_file()

    def test_missing_manifest(self, tmp_path):
        """Test that a missing manifest is reported."""
        with pytest.raises(ArtifactNotFound, match="Cargo manifest not found"):
            QUERY_ARTIFACT.resolve(tmp_path)

    def test_binary_not_built(self, tmp_path):
        """Test that an unbuilt binary is reported with the build command."""
        manifest = tmp_path / "lambda" / "database" / "Cargo.toml"
        manifest.parent.mkdir(parents=True)
        manifest.write_text("[package]\n")

        with pytest.raises(ArtifactNotFound, match="cargo lambda build --release --arm64"):
            QUERY_ARTIFACT.resolve(tmp_path)

    def test_other_binary_not_found(self, project_root):
        """Test that another binary of the same manifest is not picked up."""
        other = ArtifactRef("lambda/database/Cargo.toml", "ingest")

        with pytest.raises(ArtifactNotFound, match="ingest"):
            other.resolve(project_root)


class TestComputeResource:
    """Tests for declaring compute resources."""

    def test_declare_with_mapping_runtime(self):
        """Test that the runtime may be given as a mapping."""
        stack = Stack(name="QueryStack")

        query = stack.declare_compute(
            "QueryLambda",
            artifact=QUERY_ARTIFACT,
            runtime={"architecture": "arm64", "memory": 256, "timeout": 30},
        )

        assert query.runtime.memory == 256
        assert query.environment == {}

    def test_out_of_bounds_memory_fails_at_declaration(self):
        """Test that bad memory fails before anything is declared."""
        stack = Stack(name="QueryStack")

        with pytest.raises(InvalidRuntimeConfig):
            stack.declare_compute(
                "QueryLambda",
                artifact=QUERY_ARTIFACT,
                runtime={"memory": 64, "timeout": 30},
            )

        assert stack.get_resource("QueryLambda") is None

    def test_architecture_mismatch(self):
        """Test that the artifact and runtime must agree on architecture."""
        stack = Stack(name="QueryStack")

        with pytest.raises(InvalidRuntimeConfig, match="x86_64"):
            stack.declare_compute(
                "QueryLambda",
                artifact=QUERY_ARTIFACT,
                runtime=RuntimeConfig(architecture="x86_64", memory=256, timeout=30),
            )

    def test_environment_values_must_be_strings(self):
        """Test that environment values are strings or References."""
        stack = Stack(name="QueryStack")

        with pytest.raises(InvalidRuntimeConfig, match="PORT"):
            stack.declare_compute(
                "QueryLambda",
                artifact=QUERY_ARTIFACT,
                runtime={"memory": 256, "timeout": 30},
                environment={"PORT": 8080},
            )

    def test_dependencies_follow_environment(self):
        """Test that referenced resources become dependencies."""
        stack = Stack(name="QueryStack")
        bucket = stack.declare_storage()

        query = stack.declare_compute(
            "QueryLambda",
            artifact=QUERY_ARTIFACT,
            runtime={"memory": 256, "timeout": 30},
            environment={
                "DATABASE_BUCKET_NAME": bucket.bucket_name,
                "DATABASE_BUCKET_ARN": bucket.bucket_arn,
                "MODE": "read-only",
            },
        )

        assert query.dependencies() == [bucket]

    def test_to_dict_renders_references(self):
        """Test that References are rendered as placeholders."""
        stack = Stack(name="QueryStack")
        bucket = stack.declare_storage()
        query = stack.declare_compute(
            "QueryLambda",
            artifact=QUERY_ARTIFACT,
            runtime={"memory": 256, "timeout": 30},
            environment={"DATABASE_BUCKET_NAME": bucket.bucket_name},
        )

        data = query.to_dict()

        assert data["environment"] == {"DATABASE_BUCKET_NAME": "${DatabaseBucket.bucket_name}"}
        assert data["runtime"] == {"architecture": "arm64", "memory": 256, "timeout": 30}
        assert data["artifact"]["binary_name"] == "query"
