"""Strict mode request validation.

In strict mode every access check must carry a usable session and every
argument its resource type needs.  These checks run before an audit
record is created, so a rejected request leaves no audit behind.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from rbac_policy.core.errors import InvalidArgs, InvalidSession
from rbac_policy.core.types import CREATE_ACTION, Scope


def validate_session(session: Any) -> None:
    """Require a mapping session with a string ``sessionId`` and list ``roles``.

    Raises
    ------
    rbac_policy.core.errors.InvalidSession
        If the session or one of its required fields is missing.
    """
    if not isinstance(session, Mapping):
        raise InvalidSession("session required")
    if not isinstance(session.get("sessionId"), str):
        raise InvalidSession("session.sessionId required")
    if not isinstance(session.get("roles"), list):
        raise InvalidSession("session.roles required")


def _require(name: str, value: Any) -> None:
    if not isinstance(value, str) or not value:
        raise InvalidArgs(f"{name} required", details={"argument": name})


def coerce_scope(scope: Any) -> Scope:
    """Convert a scope argument to :class:`Scope`.

    Raises
    ------
    rbac_policy.core.errors.InvalidArgs
        If *scope* is not ``"own"`` or ``"any"``.
    """
    try:
        return Scope(scope)
    except ValueError:
        raise InvalidArgs(
            "scope must be own or any", details={"argument": "scope", "scope": scope}
        ) from None


def validate_model_request(
    *,
    model: Any,
    action: Any,
    access_id: Any,
    scope: Any,
    session: Any,
    states: Any,
    require_scope: bool = True,
) -> None:
    """Validate the arguments of a model access check.

    Actions other than ``create`` need either an ``access_id`` or an
    explicit ``scope`` to determine ownership; model scope checks pass
    ``require_scope=False`` because they supply the scope themselves.
    """
    _require("model", model)
    _require("action", action)
    validate_session(session)
    if states is not None and (
        isinstance(states, str)
        or not isinstance(states, Sequence)
        or not all(isinstance(state, str) for state in states)
    ):
        raise InvalidArgs("states must be a list of strings", details={"argument": "states"})
    if not require_scope or action == CREATE_ACTION:
        return
    if access_id is None and scope is None:
        raise InvalidArgs(
            "accessId or scope required for action other than create",
            details={"argument": "scope", "action": action},
        )
    if scope is not None:
        coerce_scope(scope)


def validate_module_request(*, module: Any, method: Any, session: Any) -> None:
    """Validate the arguments of a module access check."""
    _require("module", module)
    _require("method", method)
    validate_session(session)


def validate_route_request(*, path: Any, method: Any, session: Any) -> None:
    """Validate the arguments of a route access check."""
    _require("path", path)
    _require("method", method)
    validate_session(session)
