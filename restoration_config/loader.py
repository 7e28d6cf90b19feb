"""
Configuration Loader (``restoration_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen dataclasses
of ``restoration_config.schema``.  Runtime callers go through
``restoration_config.get_active_config()`` rather than calling this
module directly.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Wrongly typed values  -> ``ValueError`` with the offending key.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from restoration_config.schema import (
    DatabaseSettings,
    RestorationConfig,
    RolePolicyDef,
    WorkflowSettings,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def parse_workflow(data: dict[str, Any]) -> WorkflowSettings:
    """Parse WorkflowSettings; every key is optional."""
    attempts = data.get("conflict_retry_attempts", 3)
    if not isinstance(attempts, int) or isinstance(attempts, bool):
        raise ValueError(f"workflow.conflict_retry_attempts must be an integer, got {attempts!r}")
    return WorkflowSettings(
        conflict_retry_attempts=attempts,
        default_currency=str(data.get("default_currency", "USD")).upper(),
    )


def parse_role_policy(data: dict[str, Any]) -> RolePolicyDef:
    """
    Parse a ``RolePolicyDef``.

    Expected shape::

        operations:
          project.set_status: [ADMIN, TEAM_MEMBER]
          estimate.approve: [ADMIN, CUSTOMER]
        customer_scoped: [estimate.approve]
    """
    raw_ops = data["operations"]
    if not isinstance(raw_ops, dict):
        raise ValueError("role_policy.operations must be a mapping")

    operations: dict[str, tuple[str, ...]] = {}
    for name, roles in raw_ops.items():
        if not isinstance(roles, list) or not all(isinstance(r, str) for r in roles):
            raise ValueError(f"role_policy.operations.{name} must be a list of role names")
        operations[str(name)] = tuple(r.upper() for r in roles)

    return RolePolicyDef(
        operations=operations,
        customer_scoped=frozenset(data.get("customer_scoped", ())),
    )


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    return DatabaseSettings(
        url=data.get("url", DatabaseSettings.url),
        echo=bool(data.get("echo", False)),
        pool_size=int(data.get("pool_size", DatabaseSettings.pool_size)),
        max_overflow=int(data.get("max_overflow", DatabaseSettings.max_overflow)),
    )


def parse_config(data: dict[str, Any]) -> RestorationConfig:
    """Parse a whole configuration document."""
    return RestorationConfig(
        config_id=data["config_id"],
        version=int(data["version"]),
        workflow=parse_workflow(data.get("workflow") or {}),
        role_policy=parse_role_policy(data["role_policy"]),
        database=parse_database(data.get("database") or {}),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
