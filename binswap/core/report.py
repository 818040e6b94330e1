# SPDX-License-Identifier: MIT
"""Progress reporting for substitution runs.

Reporting is purely observational: every stage is wrapped in a named
step that is logged when it starts, finishes or fails.
"""

from __future__ import annotations

import logging
import sys
import time
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import TextIO

from binswap.core.target import Target

logger = logging.getLogger(__name__)


class Reporter:
    """Logs named stages and prints target sets.

    Attributes:
        steps: Names of the steps run so far, with their outcome
               ("done" or "failed").
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream
        self.steps: list[tuple[str, str]] = []

    @contextmanager
    def step(self, name: str) -> Iterator[None]:
        """Run a block as a named stage."""
        logger.info("%s", name)
        start = time.perf_counter()
        try:
            yield
        except Exception:
            self.steps.append((name, "failed"))
            logger.error("%s failed", name)
            raise
        elapsed = time.perf_counter() - start
        self.steps.append((name, "done"))
        logger.debug("%s done in %.2fs", name, elapsed)

    def event(self, name: str) -> None:
        """Record a step that has no work attached (e.g. "Skip")."""
        logger.info("%s", name)
        self.steps.append((name, "done"))

    def print_targets(self, targets: Mapping[str, Target]) -> None:
        """Print a human-readable summary of a target set.

        Used by try mode to show what would be substituted.
        """
        stream = self._stream or sys.stdout
        print(f"Targets ({len(targets)}):", file=stream)
        for name, target in sorted(targets.items()):
            kind = target.product.type.value if target.product else "no product"
            print(f"  {name} ({kind})", file=stream)
