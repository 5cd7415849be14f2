"""Naming helpers shared by the engines."""

from querystack.utils.naming import ResourceNamer, kebab_case

__all__ = [
    "ResourceNamer",
    "kebab_case",
]
