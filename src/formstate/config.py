"""Runtime configuration for formstate tooling."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path


@dataclass
class FormStateConfig:
    """Settings read from the environment.

    The library itself needs no configuration; these settings drive the
    command line tooling.
    """

    definitions_path: Path
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, base_path: Path | None = None) -> FormStateConfig:
        """Create config from environment variables.

        Resolution order for the definitions directory:
        1. FORMSTATE_DEFINITIONS_PATH env var
        2. {base_path}/forms
        3. ./forms
        """
        path = os.environ.get("FORMSTATE_DEFINITIONS_PATH")
        if path:
            definitions_path = Path(path)
        elif base_path:
            definitions_path = base_path / "forms"
        else:
            definitions_path = Path("forms")

        return cls(
            definitions_path=definitions_path,
            log_level=os.environ.get("FORMSTATE_LOG_LEVEL", "WARNING").upper(),
        )

    @property
    def log_level_value(self) -> int:
        """Numeric logging level; unknown names fall back to WARNING."""
        level = logging.getLevelName(self.log_level)
        return level if isinstance(level, int) else logging.WARNING

    def resolve_definition(self, name_or_path: str) -> Path:
        """Resolve a CLI argument to a definition file.

        Existing paths are used as given; bare names are looked up as
        ``<definitions_path>/<name>.yaml``.
        """
        candidate = Path(name_or_path)
        if candidate.exists() or candidate.suffix in (".yaml", ".yml"):
            return candidate
        return self.definitions_path / f"{name_or_path}.yaml"
