"""
restoration_services.role_policy -- Role-gated operation policy.

Responsibility:
    Decide whether an actor may perform a named operation.  The policy is an
    injectable object built from configuration, so deployments and tests can
    swap grants without touching the engine.

Architecture position:
    Services layer.  Consumes ``RolePolicyDef`` from restoration_config.
    Called by the workflow engine, the billing desk and the document service
    before any write.

Invariants:
    - ADMIN may perform every declared operation.
    - An undeclared operation is denied for every role.
    - A CUSTOMER may perform a customer-scoped operation only when they own
      the project (``owner_id == actor.id``).
"""

from __future__ import annotations

from collections.abc import Mapping
from uuid import UUID

from restoration_config import get_active_config
from restoration_config.schema import RolePolicyDef
from restoration_kernel.domain.actors import Actor, ActorRole
from restoration_kernel.exceptions import ForbiddenError
from restoration_kernel.logging_config import get_logger

logger = get_logger("services.role_policy")


# Operation names used by the engine, billing desk and document service.
PROJECT_CREATE = "project.create"
PROJECT_UPDATE = "project.update"
PROJECT_UPDATE_INTERNAL = "project.update_internal"
PROJECT_SET_STATUS = "project.set_status"
PROJECT_ASSIGN = "project.assign"
ESTIMATE_CREATE = "estimate.create"
ESTIMATE_APPROVE = "estimate.approve"
CHANGE_ORDER_SUBMIT = "change_order.submit"
CHANGE_ORDER_RESOLVE = "change_order.resolve"
DOCUMENT_ATTACH = "document.attach"
INVOICE_ISSUE = "invoice.issue"
INVOICE_UPDATE = "invoice.update"
INVOICE_DELETE = "invoice.delete"
INVOICE_RECORD_PAYMENT = "invoice.record_payment"
INVOICE_MARK_OVERDUE = "invoice.mark_overdue"


class RolePolicy:
    """Operation -> allowed roles, plus customer ownership scoping."""

    def __init__(
        self,
        operations: Mapping[str, frozenset[ActorRole] | tuple[ActorRole, ...]],
        customer_scoped: frozenset[str] = frozenset(),
    ) -> None:
        self._operations: dict[str, frozenset[ActorRole]] = {
            name: frozenset(ActorRole(r) for r in roles) | {ActorRole.ADMIN}
            for name, roles in operations.items()
        }
        self._customer_scoped = frozenset(customer_scoped)

    @classmethod
    def from_config(cls, definition: RolePolicyDef) -> RolePolicy:
        return cls(
            {name: tuple(ActorRole(r) for r in roles) for name, roles in definition.operations.items()},
            customer_scoped=definition.customer_scoped,
        )

    @classmethod
    def default(cls) -> RolePolicy:
        """Policy from the bundled default configuration set."""
        return cls.from_config(get_active_config().role_policy)

    @property
    def operations(self) -> frozenset[str]:
        return frozenset(self._operations)

    def allowed_roles(self, operation: str) -> frozenset[ActorRole]:
        return self._operations.get(operation, frozenset())

    def requires_ownership(self, actor: Actor, operation: str) -> bool:
        """True when ``check`` needs the project's owner for this actor."""
        return actor.role == ActorRole.CUSTOMER and operation in self._customer_scoped

    def check(self, actor: Actor, operation: str, owner_id: UUID | None = None) -> None:
        """
        Raise unless ``actor`` may perform ``operation``.

        Args:
            owner_id: Customer who owns the target project.  Only consulted
                for customer-scoped operations performed by a CUSTOMER.

        Raises:
            ForbiddenError: role not granted, operation undeclared, or a
                customer acting on a project they do not own.
        """
        allowed = self.allowed_roles(operation)
        required = tuple(sorted(r.value for r in allowed))

        if actor.role not in allowed:
            reason = None if allowed else "operation is not declared in the role policy"
            self._deny(actor, operation, required, reason)

        if self.requires_ownership(actor, operation) and owner_id != actor.id:
            self._deny(actor, operation, required, "customer does not own this project")

    @staticmethod
    def _deny(
        actor: Actor, operation: str, required: tuple[str, ...], reason: str | None
    ) -> None:
        logger.warning(
            "authorization_denied",
            extra={
                "actor_id": str(actor.id),
                "actor_role": actor.role.value,
                "operation": operation,
                "reason": reason or "role_not_granted",
            },
        )
        raise ForbiddenError(actor.role.value, required, operation, reason=reason)
