"""Shared domain types for the access control engine.

Key design decisions:
* Enums use *string* values (``enum.StrEnum``) so they compare equal to
  the plain strings found in rule clauses and request arguments.
* Sessions are plain mappings supplied by the caller; the engine only
  reads ``roles``, ``sessionId`` and ownership properties from them.
* :class:`AccessDecision` is the value returned by the ``check_*``
  methods and carries the audit record alongside the decision.
"""
from __future__ import annotations

import enum
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from rbac_policy.audit.records import AuditTrail

# ---------------------------------------------------------------------------
# Aliases
# ---------------------------------------------------------------------------

Session = Mapping[str, Any]
"""A validated session descriptor (``roles``, ``sessionId``, ``accountId``...)."""

RuleTuple = Sequence[str]
"""One or more role names followed by a single rule string."""

RoleAllowMap = dict[str, bool]
"""Role name to decision (``True`` allow, ``False`` deny)."""


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

ALL_ROLE = "all"
"""The universal role; the only role a deny rule may be set for."""

AUTHENTICATED_ROLE = "authenticated"
ANONYMOUS_ROLE = "anonymous"

DELETED_STATE = "deleted"
"""Reserved record state that is denied unless a rule allows it."""

CREATE_ACTION = "create"
"""Model action that has no ownership scope."""

INDEX_SEGMENT = "index"
"""Path segment appended to route paths ending in ``/``."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ResourceType(enum.StrEnum):
    """Resource types addressable by rules.

    ``ANY`` (``*``) is only valid in rule strings, where it sets a
    blanket decision on every other resource type.
    """

    ANY = "*"
    MODEL = "model"
    MODULE = "module"
    ROUTE = "route"


class Scope(enum.StrEnum):
    """Ownership scope of a model access.

    * **OWN** -- the session owns the target record.
    * **ANY** -- no ownership restriction.
    """

    OWN = "own"
    ANY = "any"


class AllowType(enum.StrEnum):
    """The kind of access check an audit record belongs to."""

    MODEL = "model"
    MODEL_SCOPE = "modelScope"
    MODULE = "module"
    ROUTE = "route"


# ---------------------------------------------------------------------------
# Decision result
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class AccessDecision:
    """The result of an access check.

    Attributes
    ----------
    allowed:
        Whether access is permitted.
    scope:
        For model scope checks, the widest scope access is allowed for
        (``"any"`` or ``"own"``), or ``None`` when access is denied.
        Always ``None`` for other checks.
    audit:
        The audit record produced by the check (a null audit when
        auditing was disabled).
    """

    allowed: bool
    audit: AuditTrail
    scope: Scope | None = None
