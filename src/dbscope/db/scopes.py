"""Named scopes that group table and view names.

Scopes are configured as a JSON object (``DBSCOPE_SCOPES``) or a YAML file
(``DBSCOPE_SCOPES_FILE``) mapping a scope name to a list of tables::

    {"bug_analysis": ["bug_reports", "error_logs"], "sales": ["orders"]}

Loading never fails: malformed configuration is logged and treated as
"no scopes defined".
"""

import json
import logging
from collections.abc import Iterator, Mapping, Sequence
from pathlib import Path
from typing import Any

import yaml

from dbscope.config import Settings

logger = logging.getLogger(__name__)


def _parse_scopes(data: Any) -> dict[str, tuple[str, ...]]:
    """Validate raw scope data.

    Raises:
        ValueError: If the data is not a mapping of names to lists of strings
    """
    if not isinstance(data, dict):
        raise ValueError(f"expected an object of scope lists, got {type(data).__name__}")

    scopes: dict[str, tuple[str, ...]] = {}
    for name, tables in data.items():
        if not isinstance(name, str):
            raise ValueError(f"scope name must be a string, got {name!r}")
        if not isinstance(tables, list):
            raise ValueError(f"scope '{name}' must be a list of table names")
        if not all(isinstance(t, str) for t in tables):
            raise ValueError(f"scope '{name}' contains a non-string table name")
        scopes[name] = tuple(tables)
    return scopes


class ScopeRegistry(Mapping[str, tuple[str, ...]]):
    """Immutable mapping of scope name to table names.

    Scope names are case-sensitive; table names are matched case-insensitively.
    """

    def __init__(self, scopes: Mapping[str, Sequence[str]] | None = None) -> None:
        self._scopes: dict[str, tuple[str, ...]] = {
            name: tuple(tables) for name, tables in (scopes or {}).items()
        }

    def __getitem__(self, name: str) -> tuple[str, ...]:
        return self._scopes[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._scopes)

    def __len__(self) -> int:
        return len(self._scopes)

    def __repr__(self) -> str:
        return f"ScopeRegistry({self._scopes!r})"

    def has_scope(self, name: str) -> bool:
        return name in self._scopes

    def names(self) -> list[str]:
        """Scope names, sorted."""
        return sorted(self._scopes)

    def matches(self, scope: str, table_name: str) -> bool:
        """Check whether a table belongs to a scope (case-insensitive)."""
        target = table_name.casefold()
        return any(t.casefold() == target for t in self._scopes.get(scope, ()))

    # ==========================================================================
    # Loaders
    # ==========================================================================

    @classmethod
    def from_json(cls, text: str) -> "ScopeRegistry":
        """Load scopes from a JSON object string."""
        try:
            scopes = _parse_scopes(json.loads(text))
        except ValueError as e:
            # json.JSONDecodeError is a ValueError too
            logger.error(f"Failed to parse scope definitions: {e}. Scope filtering disabled.")
            return cls()
        logger.info(f"Loaded {len(scopes)} scope(s): {sorted(scopes)}")
        return cls(scopes)

    @classmethod
    def from_yaml_file(cls, path: str | Path) -> "ScopeRegistry":
        """Load scopes from a YAML file."""
        path = Path(path)
        try:
            with open(path) as f:
                scopes = _parse_scopes(yaml.safe_load(f))
        except (OSError, yaml.YAMLError, ValueError) as e:
            logger.error(f"Failed to load scope file {path}: {e}. Scope filtering disabled.")
            return cls()
        logger.info(f"Loaded {len(scopes)} scope(s) from {path}: {sorted(scopes)}")
        return cls(scopes)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ScopeRegistry":
        """Load scopes from the environment.

        ``DBSCOPE_SCOPES`` takes precedence over ``DBSCOPE_SCOPES_FILE``.
        A fresh Settings instance is read when none is given.
        """
        if settings is None:
            settings = Settings()

        if settings.scopes.strip():
            return cls.from_json(settings.scopes)
        if settings.scopes_file.strip():
            return cls.from_yaml_file(settings.scopes_file)

        logger.info("No scopes configured - scope filtering disabled")
        return cls()
