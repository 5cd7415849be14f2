"""
Resource naming conventions.

Follows pattern: {stack}-{resource}, all lowercase kebab-case so the names
are valid for S3 buckets, IAM roles and Lambda functions alike.
"""

import re
from dataclasses import dataclass

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_INVALID = re.compile(r"[^a-z0-9-]+")


def kebab_case(value: str) -> str:
    """
    Convert a logical id to kebab-case.

    Example:
        kebab_case("DatabaseBucket")  # "database-bucket"
        kebab_case("QueryLambda")     # "query-lambda"
    """
    spaced = _CAMEL_BOUNDARY.sub("-", value.strip())
    cleaned = _INVALID.sub("-", spaced.lower())
    return re.sub(r"-{2,}", "-", cleaned).strip("-")


@dataclass
class ResourceNamer:
    """
    Generates consistent resource names for one stack.

    Attributes:
        stack_name: Name of the provisioning unit
    """
    stack_name: str

    @property
    def prefix(self) -> str:
        return kebab_case(self.stack_name)

    def name(self, logical_id: str, suffix: str | None = None) -> str:
        """
        Generate a resource name.

        Args:
            logical_id: Logical id of the resource (e.g. 'QueryLambda')
            suffix: Optional suffix for supporting resources (e.g. 'role')

        Returns:
            Formatted resource name
        """
        parts = [self.prefix, kebab_case(logical_id)]
        if suffix:
            parts.append(suffix)
        return "-".join(parts)

    def function_name(self, logical_id: str) -> str:
        """Lambda function names are limited to 64 characters."""
        return self.name(logical_id)[:64].rstrip("-")

    def log_group_name(self, logical_id: str) -> str:
        return f"/aws/lambda/{self.function_name(logical_id)}"
