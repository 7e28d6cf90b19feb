"""
restoration_config -- single public entrypoint for workflow configuration.

Responsibility:
    ``get_active_config()`` is the only way runtime code obtains
    configuration.  It loads a YAML set (the bundled ``sets/default.yaml``
    unless a path is given), parses it into frozen dataclasses and logs a
    ``config_loaded`` trace carrying the document checksum.

Architecture position:
    Sits beside ``restoration_kernel`` and below ``restoration_services``.
    The kernel never imports from this package.

Failure modes:
    - ``FileNotFoundError`` -- the requested file does not exist.
    - ``ValueError`` / ``KeyError`` -- schema violations.
"""

from __future__ import annotations

import logging
from pathlib import Path

from restoration_config.loader import load_yaml_file, parse_config
from restoration_config.schema import (
    DatabaseSettings,
    RestorationConfig,
    RolePolicyDef,
    WorkflowSettings,
)

_logger = logging.getLogger("restoration.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | str | None = None) -> RestorationConfig:
    """Load, validate and return the active configuration.

    Args:
        config_path: Override path to a YAML configuration file.
            Defaults to restoration_config/sets/default.yaml.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the configuration is malformed.
        KeyError: If a required key is missing.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = parse_config(load_yaml_file(path))

    _logger.info(
        "config_loaded",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(path),
            "operation_count": len(config.role_policy.operations),
        },
    )
    return config


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DatabaseSettings",
    "RestorationConfig",
    "RolePolicyDef",
    "WorkflowSettings",
    "get_active_config",
]
