# SPDX-License-Identifier: MIT
"""Runtime settings for binswap.

Settings come from environment variables and can be overridden on the
command line:

    BINSWAP_HOME           state directory (default: ~/.binswap)
    BINSWAP_CONFIGURATION  build configuration of the binaries
                           (default: Debug-iphonesimulator)
    BINSWAP_JOBS           parallel workers (default: CPU count)
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

DEFAULT_CONFIGURATION = "Debug-iphonesimulator"


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings.

    Attributes:
        home: State directory holding binaries and backups.
        configuration: Build configuration the binaries were built for.
        jobs: Maximum number of parallel workers per stage.
    """

    home: Path
    configuration: str = DEFAULT_CONFIGURATION
    jobs: int = 1

    @property
    def bin_dir(self) -> Path:
        return self.home / "bin"

    @property
    def backup_dir(self) -> Path:
        return self.home / "backup"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from environment variables."""
        env = os.environ if environ is None else environ
        home = env.get("BINSWAP_HOME") or str(Path.home() / ".binswap")
        jobs_var = env.get("BINSWAP_JOBS")
        try:
            jobs = int(jobs_var) if jobs_var else (os.cpu_count() or 1)
        except ValueError:
            raise ValueError(f"BINSWAP_JOBS must be an integer, got {jobs_var!r}") from None
        return cls(
            home=Path(home).expanduser(),
            configuration=env.get("BINSWAP_CONFIGURATION") or DEFAULT_CONFIGURATION,
            jobs=max(1, jobs),
        )

    def override(self, **changes: Any) -> Settings:
        """Return a copy with the non-None changes applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
