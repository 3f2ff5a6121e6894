"""Environment-based configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Config:
    """Immutable configuration loaded from environment variables.

    Every setting can also be overridden programmatically.
    """

    # Table naming
    root_table_name: str = field(
        default_factory=lambda: os.environ.get("NORMIFY_ROOT_TABLE", "root")
    )
    table_suffix: str = field(
        default_factory=lambda: os.environ.get("NORMIFY_TABLE_SUFFIX", "_table")
    )

    # Deepest object nesting accepted before the document is rejected
    max_depth: int = field(
        default_factory=lambda: int(os.environ.get("NORMIFY_MAX_DEPTH", "256"))
    )

    def __post_init__(self) -> None:
        if not self.root_table_name:
            raise ValueError("root_table_name must not be empty")
        if self.max_depth < 1:
            raise ValueError(f"max_depth must be positive, got {self.max_depth}")

    def child_table_name(self, key: str) -> str:
        """Return the table name used for objects found under *key*."""
        return f"{key}{self.table_suffix}"
