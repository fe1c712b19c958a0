"""
Errors raised while building crate derivations.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from .models import PackageId


class DerivationError(Exception):
    """Base class for all errors raised by this package."""


class GraphInconsistency(DerivationError, LookupError):
    """The indexed graph is missing a node or package it refers to."""

    def __init__(
        self,
        message: str,
        package_id: PackageId,
        missing_id: Optional[PackageId] = None,
    ) -> None:
        super().__init__(message)
        self.package_id = package_id
        self.missing_id = missing_id if missing_id is not None else package_id


class PathResolutionFailure(DerivationError):
    """A path needed for relativization could not be canonicalized."""

    def __init__(self, message: str, path: Path) -> None:
        super().__init__(message)
        self.path = path


class MetadataError(DerivationError):
    """The dependency graph document could not be obtained or parsed."""
