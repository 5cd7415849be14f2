"""
Tests for the Pulumi program entry point.
"""

import pulumi
import pytest

from querystack import program


class FakeConfig:
    """Stands in for pulumi.Config with fixed values."""

    values: dict = {}

    def __init__(self, name=None):
        self.name = name

    def _get(self, key):
        if self.name == "aws":
            return self.values.get(f"aws:{key}")
        return self.values.get(key)

    def get(self, key):
        return self._get(key)

    def get_object(self, key):
        return self._get(key)

    def get_int(self, key):
        value = self._get(key)
        return int(value) if value is not None else None


@pytest.fixture
def pulumi_config(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(FakeConfig, "values", {})
    monkeypatch.setattr(program.pulumi, "Config", FakeConfig)
    return FakeConfig.values


class TestGetSettings:
    """Tests for reading settings inside a Pulumi run."""

    def test_defaults(self, pulumi_config):
        """Test settings default when nothing is configured."""
        settings = program.get_settings()

        assert settings.stack_name == "QueryStack"
        assert settings.region == "us-east-1"

    def test_config_overrides_file(self, pulumi_config, tmp_path):
        """Test Pulumi config values take precedence over the settings file."""
        (tmp_path / "querystack.yaml").write_text("environment: staging\ndatabase_key: old\n")
        pulumi_config.update({
            "environment": "prod",
            "aws:region": "eu-west-1",
            "log_retention_days": "90",
            "tags": {"Team": "data"},
        })

        settings = program.get_settings()

        assert settings.environment == "prod"
        assert settings.database_key == "old"
        assert settings.region == "eu-west-1"
        assert settings.log_retention_days == 90
        assert settings.tags == {"Team": "data"}


class TestMain:
    """Tests for the program's main()."""

    def test_exports_bucket_name(self, pulumi_config, project_root, monkeypatch):
        """Test main() compiles the stack and exports DatabaseBucketName."""
        exported = {}
        monkeypatch.setattr(pulumi, "export", lambda key, value: exported.setdefault(key, value))
        pulumi_config["project_root"] = str(project_root)

        program.main()

        assert list(exported) == ["DatabaseBucketName"]
        assert isinstance(exported["DatabaseBucketName"], pulumi.Output)
