"""Audit records for access checks.

Every top-level access check produces one audit record holding the ordered
list of rule matches made while the decision was evaluated, plus the final
decision.  A record is *open* while the check runs and *complete* once the
decision is set; a complete record rejects every further mutation with
:class:`~rbac_policy.core.errors.InvalidAuditState`.

Model scope checks run two model evaluations against the same record, so
:meth:`AccessAudit.set_allow` leaves ``modelScope`` records open and only
:meth:`AccessAudit.set_scope` completes them.

:class:`NullAudit` implements the same :class:`AuditTrail` interface as
no-ops and is used when auditing is disabled.

Naming of serialised fields:

* Record and rule entry keys are snake_case (``access_control_id``,
  ``allow_type``, ``rule_type``, ``allow_scope``, ``rule_scope``).
* Values keep their wire spelling.  ``allow_type`` is one of ``model``,
  ``modelScope``, ``module`` or ``route``, and ``allow_args`` holds the
  check arguments and session exactly as the caller passed them
  (``sessionId``, ``accountId``).
* The rules id digests ``{"accessIdNames": ..., "rules": ...}`` (see
  :func:`rbac_policy.core.hashing.compute_rules_id`).  Those keys are part
  of the id and do not appear in audit records.
"""
from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

from rbac_policy.core.errors import InvalidAuditState
from rbac_policy.core.types import AllowType, Scope

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------

@runtime_checkable
class AuditTrail(Protocol):
    """Interface shared by real and null audit records."""

    def set_allow(self, allow: bool) -> bool:
        """Record the decision and return it unchanged."""
        ...

    def set_rule(self, rule: dict[str, Any]) -> None:
        """Append a rule match entry."""
        ...

    def set_scope(self, scope: Scope | None) -> Scope | None:
        """Record the allowed scope and return it unchanged."""
        ...


# ---------------------------------------------------------------------------
# Real audit record
# ---------------------------------------------------------------------------

class AccessAudit:
    """The audit record of a single access check.

    Parameters
    ----------
    access_control_id:
        Id of the rule set the check was evaluated against.
    allow_type:
        ``"model"``, ``"modelScope"``, ``"module"`` or ``"route"``.
    allow_args:
        The arguments the check was called with.

    Raises
    ------
    ValueError
        If *access_control_id* is empty or *allow_type* is unknown.
    """

    def __init__(
        self,
        *,
        access_control_id: str,
        allow_type: AllowType | str,
        allow_args: dict[str, Any] | None = None,
    ) -> None:
        if not access_control_id:
            msg = "access_control_id required"
            raise ValueError(msg)
        try:
            self._allow_type = AllowType(allow_type)
        except ValueError:
            msg = f"invalid allow_type {allow_type!r}"
            raise ValueError(msg) from None
        self._access_control_id = access_control_id
        self._allow_args: dict[str, Any] = dict(allow_args or {})
        self._rules: list[dict[str, Any]] = []
        self._allow: bool | None = None
        self._scope: Scope | None = None
        self._complete = False

    # -- Read-only view -------------------------------------------------------

    @property
    def access_control_id(self) -> str:
        return self._access_control_id

    @property
    def allow_type(self) -> AllowType:
        return self._allow_type

    @property
    def allow_args(self) -> dict[str, Any]:
        return dict(self._allow_args)

    @property
    def rules(self) -> list[dict[str, Any]]:
        """Rule match entries in evaluation order."""
        return list(self._rules)

    @property
    def allow(self) -> bool | None:
        return self._allow

    @property
    def scope(self) -> Scope | None:
        return self._scope

    @property
    def complete(self) -> bool:
        return self._complete

    # -- Mutation -------------------------------------------------------------

    def set_allow(self, allow: bool) -> bool:
        """Record whether access is allowed and return *allow*.

        Completes the record unless it belongs to a model scope check.
        """
        self._require_open("set_allow")
        self._allow = allow
        if self._allow_type is not AllowType.MODEL_SCOPE:
            self._seal()
        return allow

    def set_rule(self, rule: dict[str, Any]) -> None:
        """Append a rule match entry."""
        self._require_open("set_rule")
        self._rules.append(rule)

    def set_scope(self, scope: Scope | None) -> Scope | None:
        """Record the allowed scope, complete the record and return *scope*."""
        self._require_open("set_scope")
        self._scope = scope
        self._seal()
        return scope

    def to_dict(self) -> dict[str, Any]:
        """Serialise the record to plain Python types."""
        return {
            "access_control_id": self._access_control_id,
            "allow_args": dict(self._allow_args),
            "allow_type": self._allow_type.value,
            "rules": [dict(rule) for rule in self._rules],
            "allow": self._allow,
            "scope": self._scope.value if self._scope is not None else None,
            "complete": self._complete,
        }

    def _require_open(self, operation: str) -> None:
        if self._complete:
            raise InvalidAuditState(
                f"cannot {operation} on complete audit record",
                details={
                    "operation": operation,
                    "allow_type": self._allow_type.value,
                    "access_control_id": self._access_control_id,
                },
            )

    def _seal(self) -> None:
        self._complete = True
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("access audit: %s", self.to_dict())

    def __repr__(self) -> str:
        return (
            f"AccessAudit(allow_type={self._allow_type.value!r}, "
            f"allow={self._allow!r}, scope={self._scope!r}, "
            f"complete={self._complete!r})"
        )


# ---------------------------------------------------------------------------
# Null audit record
# ---------------------------------------------------------------------------

class NullAudit:
    """An :class:`AuditTrail` that records nothing.

    Accepts any number of calls in any order, including after a decision
    has been set, and returns pass-through values.
    """

    __slots__ = ()

    def set_allow(self, allow: bool) -> bool:
        return allow

    def set_rule(self, rule: dict[str, Any]) -> None:
        return None

    def set_scope(self, scope: Scope | None) -> Scope | None:
        return scope

    def __repr__(self) -> str:
        return "NullAudit()"


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def create_audit(
    *,
    enabled: bool,
    access_control_id: str,
    allow_type: AllowType | str,
    allow_args: dict[str, Any] | None = None,
) -> AuditTrail:
    """Return an open :class:`AccessAudit`, or a :class:`NullAudit` when disabled."""
    if not enabled:
        return NullAudit()
    return AccessAudit(
        access_control_id=access_control_id,
        allow_type=allow_type,
        allow_args=allow_args,
    )
