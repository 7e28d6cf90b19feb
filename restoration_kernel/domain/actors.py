"""Actor identity supplied by the caller's authentication layer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class ActorRole(str, Enum):
    ADMIN = "ADMIN"
    TEAM_MEMBER = "TEAM_MEMBER"
    CUSTOMER = "CUSTOMER"


@dataclass(frozen=True)
class Actor:
    """
    Authenticated principal performing an operation.

    Trusted as given; the kernel never looks the actor up.  ``name`` is
    snapshotted onto timeline events so history survives user renames.
    """
    id: UUID
    name: str
    role: ActorRole

    def __post_init__(self) -> None:
        if not isinstance(self.role, ActorRole):
            object.__setattr__(self, "role", ActorRole(self.role))

    @property
    def is_staff(self) -> bool:
        return self.role in (ActorRole.ADMIN, ActorRole.TEAM_MEMBER)
