"""
querystack CLI - Command-line interface for the query service stack.
"""

import json
import sys

import click
import yaml

from querystack import __version__
from querystack.cli.deploy import DeploymentCLI
from querystack.config.settings import load_settings
from querystack.core.errors import ProvisioningError
from querystack.stacks.database import build_database_stack

FORMATS = ["yaml", "json", "mermaid"]


@click.group()
@click.version_option(version=__version__)
def cli():
    """
    querystack - Encrypted S3 database bucket and the Lambda function that queries it.

    Declare the stack in Python and deploy it with Pulumi.
    """
    pass


@cli.command()
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="Settings file (defaults to ./querystack.yaml if present)",
)
@click.option("--format", type=click.Choice(FORMATS), default="yaml")
def synth(config_file: str | None, format: str):
    """
    Print the declared stack without deploying it.

    Shows resources, permission bindings, outputs and the order an engine
    creates them in. Build artifacts are not checked.

    Example:
        querystack synth
        querystack synth --config prod.yaml --format json
    """
    try:
        settings = load_settings(config_file)
        stack = build_database_stack(settings)
        plan = stack.describe()
    except (ProvisioningError, ValueError) as e:
        click.echo(f"✗ Synthesis failed: {e}", err=True)
        sys.exit(1)

    if format == "json":
        click.echo(json.dumps(plan, indent=2))

    elif format == "mermaid":
        dag = stack.graph()
        click.echo("```mermaid")
        click.echo("graph TD")
        for logical_id, node in dag.nodes.items():
            for dep in node.dependencies:
                click.echo(f"  {dep} --> {logical_id}")
        click.echo("```")

    else:
        click.echo(yaml.safe_dump(plan, sort_keys=False), nl=False)


@cli.command()
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="Settings file (defaults to ./querystack.yaml if present)",
)
def validate(config_file: str | None):
    """
    Validate the stack without deploying it.

    Checks that the settings are valid, that the query function's binary
    has been built and that the resources can be ordered.

    Example:
        querystack validate
    """
    try:
        settings = load_settings(config_file)
        stack = build_database_stack(settings)
        order = stack.validate(settings.project_root)
    except (ProvisioningError, ValueError) as e:
        click.echo(f"✗ Validation failed: {e}", err=True)
        sys.exit(1)

    click.echo(f"✓ Stack '{stack.name}' is valid")
    click.echo("\n Creation Order:")
    for i, logical_id in enumerate(order, 1):
        click.echo(f"  {i}. {logical_id}")


@cli.command()
@click.argument("stack")
@click.argument("key", required=False)
@click.option(
    "--cwd",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    help="Directory containing Pulumi.yaml",
)
def outputs(stack: str, key: str | None, cwd: str):
    """
    Look up the outputs of a deployed stack.

    Example:
        querystack outputs dev
        querystack outputs dev DatabaseBucketName
    """
    deployer = DeploymentCLI(project_dir=cwd, verbose=False)
    try:
        if key:
            click.echo(deployer.lookup_output(stack, key))
            return
        values = deployer.stack_outputs(stack)
    except ProvisioningError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)

    for name, value in values.items():
        click.echo(f"{name}: {value}")


if __name__ == "__main__":
    cli()
