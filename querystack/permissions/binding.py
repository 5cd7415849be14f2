"""
Permission bindings between compute and storage.

A binding is a relation (grantee, target, level). The IAM policy it needs is
derived from that relation rather than written by hand, and contains only
the actions for the requested level on the target bucket and its objects.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from fnmatch import fnmatchcase
from typing import Any, Callable, TYPE_CHECKING

from querystack.core.refs import Reference, resolve_value

if TYPE_CHECKING:
    from querystack.compute.resources import ComputeResource
    from querystack.storage.resources import StorageResource


class AccessLevel(str, Enum):
    """Access a grantee receives on a bucket."""

    READ = "read"
    WRITE = "write"
    READ_WRITE = "read-write"

    @property
    def actions(self) -> list[str]:
        """IAM actions granted at this level."""
        if self is AccessLevel.READ:
            return list(READ_ACTIONS)
        if self is AccessLevel.WRITE:
            return list(WRITE_ACTIONS)
        return list(READ_ACTIONS) + list(WRITE_ACTIONS)


READ_ACTIONS = (
    "s3:GetObject*",
    "s3:GetBucket*",
    "s3:List*",
)

WRITE_ACTIONS = (
    "s3:DeleteObject*",
    "s3:PutObject",
    "s3:PutObjectLegalHold",
    "s3:PutObjectRetention",
    "s3:PutObjectTagging",
    "s3:PutObjectVersionTagging",
    "s3:Abort*",
)

POLICY_VERSION = "2012-10-17"


@dataclass(frozen=True)
class PolicyStatement:
    """A single Allow statement."""

    actions: tuple[str, ...]
    resources: tuple[str, ...]
    effect: str = "Allow"

    def matches(self, action: str, resource: str) -> bool:
        """Whether this statement covers action on resource (IAM wildcards, case-insensitive actions)."""
        action_ok = any(fnmatchcase(action.lower(), pattern.lower()) for pattern in self.actions)
        resource_ok = any(fnmatchcase(resource, pattern) for pattern in self.resources)
        return action_ok and resource_ok

    def to_dict(self) -> dict[str, Any]:
        return {
            "Effect": self.effect,
            "Action": list(self.actions),
            "Resource": list(self.resources),
        }


@dataclass(frozen=True)
class PolicyDocument:
    """
    An IAM policy document with a minimal evaluator.

    Evaluation follows IAM semantics for identity policies: an explicit Deny
    wins, otherwise any matching Allow authorizes, otherwise the request is
    implicitly denied.
    """

    statements: tuple[PolicyStatement, ...] = ()

    def allows(self, action: str, resource: str) -> bool:
        """
        Check whether this policy authorizes action on resource.

        Example:
            doc.allows("s3:GetObject", "arn:aws:s3:::bucket/key")     # True for read
            doc.allows("s3:PutObject", "arn:aws:s3:::bucket/key")     # False for read
        """
        matching = [s for s in self.statements if s.matches(action, resource)]
        if any(s.effect == "Deny" for s in matching):
            return False
        return any(s.effect == "Allow" for s in matching)

    def to_dict(self) -> dict[str, Any]:
        return {
            "Version": POLICY_VERSION,
            "Statement": [statement.to_dict() for statement in self.statements],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


def bucket_policy(level: AccessLevel, bucket_arn: str) -> PolicyDocument:
    """
    Build the least-privilege policy granting `level` on one bucket.

    Args:
        level: Access level to grant
        bucket_arn: Resolved ARN of the bucket

    Returns:
        PolicyDocument with one statement scoped to the bucket and its objects
    """
    return PolicyDocument(statements=(
        PolicyStatement(
            actions=tuple(level.actions),
            resources=(bucket_arn, f"{bucket_arn}/*"),
        ),
    ))


@dataclass(eq=False)
class PermissionBinding:
    """
    Grant of `level` access from a compute resource to a storage resource.

    Users should not instantiate this directly - use
    stack.grant_access(grantee, target, level) instead.
    """

    grantee: 'ComputeResource'
    target: 'StorageResource'
    level: AccessLevel = AccessLevel.READ
    stack: Any = field(default=None, repr=False)

    kind = "binding"

    @property
    def logical_id(self) -> str:
        suffix = "".join(part.capitalize() for part in self.level.value.split("-"))
        return f"{self.grantee.logical_id}{self.target.logical_id}{suffix}Policy"

    def dependencies(self) -> list[Any]:
        return [self.grantee, self.target]

    def policy(self, resolver: Callable[[Any, str], Any]) -> PolicyDocument:
        """
        Compute the policy with the target's ARN resolved by `resolver`.

        The resolver must return a plain string here; Pulumi compilation
        resolves inside Output.apply before calling this.
        """
        arn = resolve_value(Reference(self.target, "bucket_arn"), resolver)
        return bucket_policy(self.level, arn)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "binding",
            "logical_id": self.logical_id,
            "grantee": self.grantee.logical_id,
            "target": self.target.logical_id,
            "level": self.level.value,
            "actions": self.level.actions,
        }

    def __repr__(self) -> str:
        return (
            f"PermissionBinding({self.grantee.logical_id} -> "
            f"{self.target.logical_id}, level={self.level.value})"
        )
