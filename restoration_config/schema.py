"""
Restoration configuration schema.

Frozen dataclasses that YAML configuration is parsed into.  These carry
data only; the role policy and the workflow engine interpret them.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkflowSettings:
    """Engine tunables."""

    conflict_retry_attempts: int = 3
    default_currency: str = "USD"

    def __post_init__(self) -> None:
        if self.conflict_retry_attempts < 1:
            raise ValueError(
                f"conflict_retry_attempts must be >= 1, got {self.conflict_retry_attempts}"
            )


# ---------------------------------------------------------------------------
# Role policy
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RolePolicyDef:
    """Operation name -> roles allowed to perform it.

    ``customer_scoped`` names operations a CUSTOMER may perform only on a
    project they own.
    """

    operations: Mapping[str, tuple[str, ...]]
    customer_scoped: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "operations", MappingProxyType(dict(self.operations)))
        unknown = self.customer_scoped - set(self.operations)
        if unknown:
            raise ValueError(
                f"customer_scoped names undeclared operations: {sorted(unknown)}"
            )


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    url: str = "sqlite:///restoration.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10


# ---------------------------------------------------------------------------
# Top-level
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RestorationConfig:
    """A loaded configuration set.

    ``checksum`` is the SHA-256 of the canonical JSON form of the source
    document, so two loads of the same file always compare equal.
    """

    config_id: str
    version: int
    workflow: WorkflowSettings
    role_policy: RolePolicyDef
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    checksum: str = ""
