# SPDX-License-Identifier: MIT
"""
binswap: replace source targets of native projects with prebuilt binaries.

binswap selects targets of an Xcode (or CocoaPods) project, computes a
content-addressed cache key for each, and rewrites the project so that
consumers link the prebuilt binaries stored under that key instead of
building the targets from source.
"""

from __future__ import annotations

__version__ = "0.1.0"

# Re-export commonly used classes for convenient imports
from binswap.config import Settings  # noqa: E402
from binswap.core.backup import BackupCoordinator  # noqa: E402
from binswap.core.errors import BinswapError  # noqa: E402
from binswap.core.graph import ProjectGraph  # noqa: E402
from binswap.core.hasher import TargetHasher  # noqa: E402
from binswap.core.orchestrator import (  # noqa: E402
    DropResult,
    SubstitutionOrchestrator,
    SubstitutionResult,
)
from binswap.core.scope import TargetScope  # noqa: E402
from binswap.core.store import BinaryStore  # noqa: E402
from binswap.core.target import Product, ProductType, Target  # noqa: E402

# Public API exports
__all__ = [
    "__version__",
    "BackupCoordinator",
    "BinaryStore",
    "BinswapError",
    "DropResult",
    "ProjectGraph",
    "Product",
    "ProductType",
    "Settings",
    "SubstitutionOrchestrator",
    "SubstitutionResult",
    "Target",
    "TargetHasher",
    "TargetScope",
]
