"""
Shared fixtures and the Pulumi mock runtime.
"""

import pulumi
import pytest

from querystack.config.settings import StackSettings
from querystack.stacks.database import build_database_stack


class QueryStackMocks(pulumi.runtime.Mocks):
    """Returns resource inputs as outputs, plus the attributes AWS assigns."""

    def new_resource(self, args: pulumi.runtime.MockResourceArgs):
        outputs = dict(args.inputs)
        outputs.setdefault("arn", f"arn:aws:mock::123456789012:{args.name}")
        if args.typ == "aws:s3/bucket:Bucket":
            outputs["bucket"] = f"{args.name}-0a1b2c3d"
            outputs["arn"] = f"arn:aws:s3:::{args.name}-0a1b2c3d"
        return [f"{args.name}-id", outputs]

    def call(self, args: pulumi.runtime.MockCallArgs):
        return {}


pulumi.runtime.set_mocks(QueryStackMocks(), preview=False)


@pytest.fixture
def project_root(tmp_path):
    """A project directory with the query binary already built."""
    manifest = tmp_path / "lambda" / "database" / "Cargo.toml"
    manifest.parent.mkdir(parents=True)
    manifest.write_text('[package]\nname = "database"\n')

    package_dir = manifest.parent / "target" / "lambda" / "query"
    package_dir.mkdir(parents=True)
    (package_dir / "bootstrap").write_bytes(b"\x7fELF")

    return tmp_path


@pytest.fixture
def database_stack():
    """The query service stack with default settings."""
    return build_database_stack(StackSettings())
