"""Decision evaluation over a compiled rule tree.

Every check descends the tree from the most general rules to the most
specific ones, applying :func:`is_role_allowed` at each level that holds
an ``allow`` map.  The precedence at a single level is:

1. an allow for any of the request's roles wins,
2. otherwise a deny for the ``all`` role applies,
3. otherwise the decision so far is kept.

Deeper levels therefore override shallower ones, and a role specific
allow always overrides an ``all`` deny on the same level.

Model checks add two dimensions on top of that:

* **Scope** -- ``own`` when the session owns the record, ``any``
  otherwise.  An ``any`` allow implies ``own``; an ``own`` allow never
  grants ``any``.
* **States** -- every requested state must resolve to allow.  The
  ``deleted`` state is denied unless a rule explicitly allows it.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from rbac_policy.audit.records import AuditTrail, NullAudit
from rbac_policy.core.types import (
    ALL_ROLE,
    CREATE_ACTION,
    DELETED_STATE,
    Scope,
    Session,
)
from rbac_policy.evaluation.requests import coerce_scope
from rbac_policy.rules.compiler import split_path
from rbac_policy.rules.tree import ActionNode, RuleTree, StateNode

_NULL_AUDIT = NullAudit()


# ---------------------------------------------------------------------------
# Precedence primitive
# ---------------------------------------------------------------------------

def is_role_allowed(
    current_allow: bool,
    roles: Sequence[str],
    rule_allow: Mapping[str, Any] | None,
    matched: bool = False,
    rule_type: str | None = None,
    audit: AuditTrail | None = None,
    **extra: Any,
) -> bool | None:
    """Apply one level of rules to the decision so far.

    Parameters
    ----------
    current_allow:
        The decision reached by the more general levels.
    roles:
        The request's roles, in priority order.
    rule_allow:
        The level's role -> decision map.
    matched:
        When ``True`` the caller needs to know whether a rule applied at
        all: ``None`` is returned instead of *current_allow* when none did.
    rule_type:
        Level name recorded in the audit entry.
    audit:
        Audit record to append the entry to.
    **extra:
        Additional fields for the audit entry.

    Returns
    -------
    bool | None
        ``True`` if one of *roles* is allowed, ``False`` if ``all`` is
        denied, otherwise *current_allow* (or ``None`` when *matched*).
    """
    audit = audit if audit is not None else _NULL_AUDIT
    rule_allow = rule_allow or {}

    for role in roles:
        decision = rule_allow.get(role)
        if decision is not None and decision:
            audit.set_rule({
                "allow": True,
                "role": role,
                "rule_type": rule_type,
                "rules": dict(rule_allow),
                **extra,
            })
            return True

    decision = rule_allow.get(ALL_ROLE)
    if decision is not None and not decision:
        audit.set_rule({
            "allow": False,
            "role": ALL_ROLE,
            "rule_type": rule_type,
            "rules": dict(rule_allow),
            **extra,
        })
        return False

    audit.set_rule({
        "matched": False,
        "rule_type": rule_type,
        "rules": dict(rule_allow),
        **extra,
    })
    return None if matched else current_allow


def _scope_allow(node: StateNode | ActionNode, scope: Scope) -> dict[str, bool] | None:
    scope_node = node.get_scope(scope)
    return scope_node.allow if scope_node is not None else None


def _state_list(states: Sequence[str] | str | None) -> list[str]:
    # a bare state name is one state, not a sequence of characters
    if isinstance(states, str):
        return [states]
    return list(states or [])


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------

class DecisionEvaluator:
    """Evaluates access checks against one snapshot of a rule tree.

    Parameters
    ----------
    tree:
        The compiled rules.  The evaluator only reads it.
    access_id_names:
        Model name -> session property holding the owner id.
    default_access_id_name:
        Session property used for models without an entry in
        *access_id_names*.
    """

    def __init__(
        self,
        tree: RuleTree,
        *,
        access_id_names: Mapping[str, str] | None = None,
        default_access_id_name: str = "accountId",
    ) -> None:
        self._tree = tree
        self._access_id_names = dict(access_id_names or {})
        self._default_access_id_name = default_access_id_name

    def access_id_name(self, model: str) -> str:
        """Return the session property that identifies the owner of *model* records."""
        return self._access_id_names.get(model, self._default_access_id_name)

    # -- Model ----------------------------------------------------------------

    def allow_model(
        self,
        audit: AuditTrail,
        roles: Sequence[str],
        *,
        model: str,
        action: str,
        access_id: Any = None,
        scope: str | None = None,
        session: Session | None = None,
        states: Sequence[str] | None = None,
    ) -> bool:
        """Decide a model access and record the decision on *audit*."""
        allow = self._model_decision(
            audit,
            roles,
            model=model,
            action=action,
            access_id=access_id,
            scope=scope,
            session=session,
            states=_state_list(states),
        )
        return audit.set_allow(allow)

    def allow_model_scope(
        self,
        audit: AuditTrail,
        roles: Sequence[str],
        *,
        model: str,
        action: str,
        session: Session | None = None,
        states: Sequence[str] | None = None,
    ) -> Scope | None:
        """Return the widest scope a model access is allowed for.

        Both model evaluations append to *audit*, which must be a
        ``modelScope`` record so that it stays open until the scope is set.
        """
        for scope in (Scope.ANY, Scope.OWN):
            if self.allow_model(
                audit,
                roles,
                model=model,
                action=action,
                scope=scope,
                session=session,
                states=states,
            ):
                return audit.set_scope(scope)
        return audit.set_scope(None)

    def _model_decision(
        self,
        audit: AuditTrail,
        roles: Sequence[str],
        *,
        model: str,
        action: str,
        access_id: Any,
        scope: str | None,
        session: Session | None,
        states: list[str],
    ) -> bool:
        deleted = DELETED_STATE in states
        allow = not deleted
        audit.set_rule({"deleted": deleted, "allow": allow})

        rules = self._tree.model
        if rules is None:
            return allow
        if rules.allow is not None:
            allow = is_role_allowed(allow, roles, rules.allow, False, "global", audit)

        model_node = (rules.model or {}).get(model)
        if model_node is None:
            return allow
        if model_node.allow is not None:
            allow = is_role_allowed(allow, roles, model_node.allow, False, "model", audit)

        action_node = (model_node.action or {}).get(action)
        if action_node is None:
            return allow
        if action_node.allow is not None:
            allow = is_role_allowed(allow, roles, action_node.allow, False, "action", audit)

        if action == CREATE_ACTION:
            return allow

        request_scope = self._request_scope(model, access_id, scope, session)

        for state in states:
            state_deleted = state == DELETED_STATE
            if state_deleted:
                allow = False
            state_node = (action_node.state or {}).get(state)
            if state_node is None:
                if state_deleted:
                    return False
                continue

            allow_any: bool | None = None
            allow_own: bool | None = None

            any_rules = _scope_allow(state_node, Scope.ANY)
            if any_rules is not None:
                allow_any = is_role_allowed(
                    allow, roles, any_rules, True, "state", audit,
                    allow_scope=request_scope.value, rule_scope=Scope.ANY.value, state=state,
                )
                if allow_any is True:
                    # an any allow covers own as well
                    allow = True
                    continue
                if allow_any is False and request_scope is Scope.ANY:
                    return False

            own_rules = _scope_allow(state_node, Scope.OWN)
            if own_rules is not None:
                allow_own = is_role_allowed(
                    allow, roles, own_rules, True, "state", audit,
                    allow_scope=request_scope.value, rule_scope=Scope.OWN.value, state=state,
                )
                if allow_own is True and request_scope is Scope.OWN:
                    allow = True
                    continue
                if allow_own is False:
                    # a deny on own also denies any
                    return False

            if allow_any is False:
                return False
            if state_deleted:
                return False

        any_rules = _scope_allow(action_node, Scope.ANY)
        if any_rules is not None:
            allow_any = is_role_allowed(
                allow, roles, any_rules, True, "action", audit,
                allow_scope=request_scope.value, rule_scope=Scope.ANY.value,
            )
            if allow_any is True:
                return True
            if allow_any is False:
                if request_scope is Scope.ANY:
                    return False
                allow = False

        own_rules = _scope_allow(action_node, Scope.OWN)
        if request_scope is Scope.OWN and own_rules is not None:
            allow = is_role_allowed(
                allow, roles, own_rules, False, "action", audit,
                allow_scope=request_scope.value, rule_scope=Scope.OWN.value,
            )
        return allow

    def _request_scope(
        self,
        model: str,
        access_id: Any,
        scope: str | None,
        session: Session | None,
    ) -> Scope:
        if access_id is not None:
            owner = None
            if isinstance(session, Mapping):
                owner = session.get(self.access_id_name(model))
            return Scope.OWN if owner == access_id else Scope.ANY
        if scope is not None:
            return coerce_scope(scope)
        return Scope.ANY

    # -- Module ---------------------------------------------------------------

    def allow_module(
        self,
        audit: AuditTrail,
        roles: Sequence[str],
        *,
        module: str,
        method: str,
    ) -> bool:
        """Decide a module method access and record the decision on *audit*."""
        allow = True
        rules = self._tree.module
        if rules is None:
            return audit.set_allow(allow)
        if rules.allow is not None:
            allow = is_role_allowed(allow, roles, rules.allow, False, "global", audit)

        module_node = (rules.module or {}).get(module)
        if module_node is None:
            return audit.set_allow(allow)
        if module_node.allow is not None:
            allow = is_role_allowed(allow, roles, module_node.allow, False, "module", audit)

        method_node = (module_node.method or {}).get(method)
        if method_node is not None and method_node.allow is not None:
            allow = is_role_allowed(allow, roles, method_node.allow, False, "method", audit)
        return audit.set_allow(allow)

    # -- Route ----------------------------------------------------------------

    def allow_route(
        self,
        audit: AuditTrail,
        roles: Sequence[str],
        *,
        path: str,
        method: str,
    ) -> bool:
        """Decide a route access and record the decision on *audit*.

        Rules on a path apply to every path below it unless overridden
        there.  The walk stops at the first segment without a node since
        no rule can exist below it.
        """
        allow = True
        node = self._tree.route
        if node is None:
            return audit.set_allow(allow)
        if node.allow is not None:
            allow = is_role_allowed(allow, roles, node.allow, False, "global", audit)

        for segment in split_path(path):
            node = (node.path or {}).get(segment)
            if node is None:
                break
            method_node = (node.method or {}).get(method)
            method_rules = method_node.allow if method_node is not None else None
            if node.allow is None and method_rules is None:
                audit.set_rule({"rule_type": "none", "segment": segment})
                continue
            if node.allow is not None:
                allow = is_role_allowed(
                    allow, roles, node.allow, False, "path", audit, segment=segment
                )
            # method rules come last so they override the path blanket
            if method_rules is not None:
                allow = is_role_allowed(
                    allow, roles, method_rules, False, "method", audit, segment=segment
                )
        return audit.set_allow(allow)
