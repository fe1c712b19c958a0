"""
Crate Derivations

Turn a resolved cargo dependency graph into one build description record per crate.
"""

__version__ = "0.1.0"

from .cli import main
from .models import CrateDerivation, PackageId, ResolvedDependency
from .resolve import resolve_all, resolve_derivation

__all__ = [
    "main",
    "CrateDerivation",
    "PackageId",
    "ResolvedDependency",
    "resolve_all",
    "resolve_derivation",
]
