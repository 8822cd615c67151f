#!/usr/bin/env python3
# CUI // SP-CTI
"""Migration settings.

Defaults live in ``_DEFAULT_CONFIG``; ``args/appmig_config.yaml`` may override
any of them, and CLI flags override the file. The merged result is frozen
into a single ``MigrationSettings`` built once in ``main()`` and passed down.

``args/appmig_config.yaml`` is read from a source checkout (or an editable
install) only; it is not packaged. An installed ``appmig`` runs on the
built-in defaults unless ``--config`` names a file.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from appmig.resilience.errors import ConfigurationError

logger = logging.getLogger("appmig.traffic.config")

BASE_DIR = Path(__file__).resolve().parent.parent.parent
CONFIG_PATH = BASE_DIR / "args" / "appmig_config.yaml"

_DEFAULT_CONFIG: Dict[str, Dict[str, Any]] = {
    "platform": {
        "binary": "gcloud",
        "command_timeout_seconds": 300,
    },
    "migration": {
        "interval_seconds": 10,
        "split_by": "ip",
    },
    "progress": {
        "frame_interval_seconds": 0.1,
        "flush_delay_seconds": 0.0005,
        "marks": "-\\|/",
    },
}


def load_config(config_path: Optional[Path] = None) -> Dict[str, Dict[str, Any]]:
    """Load YAML config merged section-by-section over the defaults.

    A missing file yields the defaults. A file that cannot be parsed, or
    whose top level (or any known section) is not a mapping, raises
    ConfigurationError.
    """
    path = Path(config_path) if config_path else CONFIG_PATH
    merged = {section: dict(values) for section, values in _DEFAULT_CONFIG.items()}
    if not path.exists():
        logger.debug("No config at %s, using defaults", path)
        return merged

    try:
        with open(path, "r") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"cannot read config {path}: {exc}", config_key=str(path)) from exc

    if not isinstance(raw, dict):
        raise ConfigurationError(f"config {path} must be a mapping", config_key=str(path))

    for section, values in raw.items():
        if section not in merged:
            logger.warning("Ignoring unknown config section %r in %s", section, path)
            continue
        if not isinstance(values, dict):
            raise ConfigurationError(f"config section {section!r} must be a mapping", config_key=section)
        merged[section].update(values)
    return merged


@dataclass(frozen=True)
class MigrationSettings:
    """Immutable per-run configuration."""

    project: str
    service: str
    interval_seconds: float = 10
    verbose: bool = False
    auto_confirm: bool = False
    dry_run: bool = False
    json_output: bool = False
    platform_binary: str = "gcloud"
    command_timeout_seconds: int = 300
    split_by: str = "ip"
    frame_interval_seconds: float = 0.1
    flush_delay_seconds: float = 0.0005
    progress_marks: str = "-\\|/"

    def __post_init__(self):
        if self.interval_seconds < 0:
            raise ConfigurationError("interval must not be negative", config_key="interval_seconds")

    @classmethod
    def from_config(
        cls,
        config: Dict[str, Dict[str, Any]],
        project: str,
        service: str,
        interval_seconds: Optional[float] = None,
        **flags: Any,
    ) -> "MigrationSettings":
        """Combine a loaded config with CLI values (``None`` interval = config default)."""
        platform = config.get("platform", {})
        migration = config.get("migration", {})
        progress = config.get("progress", {})
        if interval_seconds is None:
            interval_seconds = migration.get("interval_seconds", 10)
        try:
            return cls(
                project=project,
                service=service,
                interval_seconds=float(interval_seconds),
                platform_binary=str(platform.get("binary", "gcloud")),
                command_timeout_seconds=int(platform.get("command_timeout_seconds", 300)),
                split_by=str(migration.get("split_by", "ip")),
                frame_interval_seconds=float(progress.get("frame_interval_seconds", 0.1)),
                flush_delay_seconds=float(progress.get("flush_delay_seconds", 0.0005)),
                progress_marks=str(progress.get("marks", "-\\|/")),
                **flags,
            )
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"invalid config value: {exc}") from exc
