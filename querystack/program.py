"""
Pulumi program for the query service stack.

Run through `pulumi up` from the project root; Pulumi.yaml points at the
root __main__.py, which calls main().

Settings come from querystack.yaml (if present), overridden by the Pulumi
stack configuration:

    pulumi config set environment prod
    pulumi config set database_key databases/posts
    pulumi config set log_retention_days 90
"""

from typing import Any

import pulumi

from querystack.config.settings import StackSettings, load_settings
from querystack.stacks.database import build_database_stack


def get_settings() -> StackSettings:
    """
    Load settings from the settings file and the Pulumi stack config.

    Returns:
        Validated StackSettings

    Raises:
        SettingsError: If the merged settings are invalid
    """
    config = pulumi.Config()

    overrides: dict[str, Any] = {
        "stack_name": config.get("stack_name"),
        "environment": config.get("environment"),
        "project_root": config.get("project_root"),
        "region": pulumi.Config("aws").get("region"),
        "tags": config.get_object("tags"),
        "database_key": config.get("database_key"),
        "extra_environment": config.get_object("extra_environment"),
        "log_retention_days": config.get_int("log_retention_days"),
    }
    return load_settings(config.get("settings_file"), **overrides)


def main() -> None:
    """Declare, compile and export the query service stack."""
    settings = get_settings()
    pulumi.log.info(
        f"Deploying {settings.stack_name} ({settings.environment}) to {settings.region}"
    )

    stack = build_database_stack(settings)
    compiled = stack.compile(
        project_root=settings.project_root,
        log_retention_days=settings.log_retention_days,
    )
    compiled.export_outputs()

    pulumi.log.info(
        f"✓ {compiled.metadata['resource_count']} resources, "
        f"{compiled.metadata['binding_count']} bindings, "
        f"outputs: {', '.join(compiled.outputs)}"
    )
