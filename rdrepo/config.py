"""Runtime settings for repository wiring.

This module owns all environment variable parsing and validation.
Other modules consume a typed Settings object instead of raw env reads.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from rdrepo.domain.exceptions import ConfigError

ENV_PREFIX = "RDREPO_"


@dataclass(frozen=True)
class Settings:
    """Validated runtime settings.

    Attributes:
        db_path: SQLite database path, ':memory:' for in-memory.
        storage_driver: Default storage driver id for new datasets.
        pid_authority: DOI prefix used for new identifiers.
        pid_shoulder: Prefix of every generated identifier.
        register_when_published: Defer PID registration to publication.
        index_workers: Thread pool size for asynchronous indexing.
        default_terms: Terms of use assigned to new versions.
        required_fields: "block.field" names a validated version must set.
        system_metadata_keys: System block name -> key requests must send.
    """

    db_path: str = ":memory:"
    storage_driver: str = "file"
    pid_authority: str = "10.5072"
    pid_shoulder: str = "FK2/"
    register_when_published: bool = False
    index_workers: int = 2
    default_terms: str = "CC0 1.0"
    required_fields: tuple[str, ...] = ("citation.title",)
    system_metadata_keys: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "Settings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``.

        Returns:
            Validated settings.

        Raises:
            ConfigError: If a value is invalid.
        """
        env = os.environ if environ is None else environ

        def get(name: str, default: str) -> str:
            return env.get(ENV_PREFIX + name, default)

        return cls(
            db_path=get("DB_PATH", ":memory:"),
            storage_driver=_parse_driver(get("STORAGE_DRIVER", "file")),
            pid_authority=get("PID_AUTHORITY", "10.5072"),
            pid_shoulder=get("PID_SHOULDER", "FK2/"),
            register_when_published=_parse_bool(
                "REGISTER_WHEN_PUBLISHED", get("REGISTER_WHEN_PUBLISHED", "false")
            ),
            index_workers=_parse_workers(get("INDEX_WORKERS", "2")),
            default_terms=get("DEFAULT_TERMS", "CC0 1.0"),
            required_fields=_parse_list(get("REQUIRED_FIELDS", "citation.title")),
            system_metadata_keys=_parse_keys(get("SYSTEM_METADATA_KEYS", "")),
        )


def _parse_driver(raw_value: str) -> str:
    value = raw_value.strip()
    if not value or "://" in value:
        raise ConfigError(
            f"Invalid {ENV_PREFIX}STORAGE_DRIVER value: '{raw_value}'. "
            "Use a bare driver id such as 'file' or 's3'."
        )
    return value


def _parse_bool(name: str, raw_value: str) -> bool:
    value = raw_value.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off", ""):
        return False
    raise ConfigError(
        f"Invalid {ENV_PREFIX}{name} value: expected boolean, got '{raw_value}'."
    )


def _parse_workers(raw_value: str) -> int:
    try:
        workers = int(raw_value)
    except ValueError as error:
        raise ConfigError(
            f"Invalid {ENV_PREFIX}INDEX_WORKERS value: "
            f"expected integer, got '{raw_value}'."
        ) from error
    if workers < 1:
        raise ConfigError(
            f"Invalid {ENV_PREFIX}INDEX_WORKERS value: must be >= 1, "
            f"got {workers}."
        )
    return workers


def _parse_list(raw_value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in raw_value.split(",") if item.strip())


def _parse_keys(raw_value: str) -> dict[str, str]:
    """Parse ``block=key,block2=key2`` into a mapping."""
    keys = {}
    for item in _parse_list(raw_value):
        block, sep, key = item.partition("=")
        if not sep or not block.strip() or not key.strip():
            raise ConfigError(
                f"Invalid {ENV_PREFIX}SYSTEM_METADATA_KEYS entry '{item}': "
                "expected block=key."
            )
        keys[block.strip()] = key.strip()
    return keys
