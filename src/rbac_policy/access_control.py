"""Access control -- the main entry point.

This module implements :class:`AccessControl`, which composes the rule
compiler, the decision evaluator and the audit records behind one object
that applications construct once and share.

Check pipeline
--------------

1. **Validate** -- in strict mode, the session and every resource
   argument (:mod:`~rbac_policy.evaluation.requests`).
2. **Snapshot** -- capture the current rule tree and its id.
3. **Audit** -- open an :class:`~rbac_policy.audit.records.AccessAudit`,
   or a null audit when auditing is disabled.
4. **Resolve roles** from the session.
5. **Evaluate** the rule tree from general to specific rules.
6. **Return** the decision; the audit record is sealed.

Rule updates are copy-on-write: a rule is compiled into a copy of the
current tree and the copy replaces it only when compilation succeeds, so
checks never observe a half-applied rule.

Usage
-----
::

    from rbac_policy import AccessControl

    access_control = AccessControl([
        ["all", "model:0"],
        ["user", "model:post:read:any:1"],
        ["user", "model:post:update:own:1"],
    ])

    access_control.allow_model(
        model="post",
        action="update",
        access_id="42",
        session={"sessionId": "s1", "accountId": "42", "roles": ["all", "user"]},
    )
"""
from __future__ import annotations

import copy
import logging
import threading
from collections.abc import Mapping, Sequence
from typing import Any

from rbac_policy.audit.records import AuditTrail, create_audit
from rbac_policy.core.config import AccessControlConfig
from rbac_policy.core.errors import InvalidArgs, RuleError
from rbac_policy.core.hashing import compute_rules_id
from rbac_policy.core.types import AccessDecision, AllowType, RuleTuple, Scope, Session
from rbac_policy.evaluation.evaluator import DecisionEvaluator
from rbac_policy.evaluation.evaluator import is_role_allowed as _is_role_allowed
from rbac_policy.evaluation.requests import (
    coerce_scope,
    validate_model_request,
    validate_module_request,
    validate_route_request,
)
from rbac_policy.evaluation.roles import get_roles
from rbac_policy.rules.compiler import RuleCompiler
from rbac_policy.rules.tree import RuleTree

logger = logging.getLogger(__name__)


def _request_args(**kwargs: Any) -> dict[str, Any]:
    return {name: value for name, value in kwargs.items() if value is not None}


class AccessControl:
    """Compiles access control rules and evaluates access checks against them.

    Each ``allow_*`` method returns the plain decision and stores the audit
    record of the check on :attr:`audit`.  Its ``check_*`` twin returns an
    :class:`~rbac_policy.core.types.AccessDecision` holding both, which is
    the form to use when one instance serves concurrent checks.

    Parameters
    ----------
    rules:
        Initial rule tuples.  They are set as default rules, so
        :meth:`replace_rules` keeps them.
    strict:
        Overrides ``config.strict``.
    audit:
        Overrides ``config.audit``.
    config:
        Instance configuration.  ``AccessControlConfig()`` when ``None``.

    Raises
    ------
    rbac_policy.core.errors.RuleError
        If one of the initial *rules* is invalid.
    """

    def __init__(
        self,
        rules: Sequence[RuleTuple] | None = None,
        *,
        strict: bool | None = None,
        audit: bool | None = None,
        config: AccessControlConfig | None = None,
    ) -> None:
        config = config if config is not None else AccessControlConfig()
        overrides = _request_args(strict=strict, audit=audit)
        if overrides:
            config = AccessControlConfig(**{**config.model_dump(), **overrides})
        self._config = config

        self._lock = threading.Lock()
        self._rules = RuleTree()
        self._access_id_names: dict[str, str] = {}
        self._default_rules: list[list[str]] = []
        self._id: str | None = None

        self.audit: AuditTrail | None = None
        """Audit record of the most recent ``allow_*`` check."""

        if rules is not None:
            self.set_rules(rules, is_default=True)

    # ------------------------------------------------------------------
    # Properties for introspection
    # ------------------------------------------------------------------

    @property
    def config(self) -> AccessControlConfig:
        """The instance configuration."""
        return self._config

    @property
    def strict(self) -> bool:
        """Whether checks validate their session and arguments."""
        return self._config.strict

    @property
    def audit_enabled(self) -> bool:
        """Whether checks record an audit trail by default."""
        return self._config.audit

    @property
    def rules(self) -> RuleTree:
        """The current compiled rule tree.  Treat it as read-only."""
        return self._rules

    @property
    def access_id_names(self) -> dict[str, str]:
        """Model name to ownership property overrides (a copy)."""
        return dict(self._access_id_names)

    @property
    def default_rules(self) -> list[list[str]]:
        """Rule tuples kept across :meth:`replace_rules` (a copy)."""
        return copy.deepcopy(self._default_rules)

    @property
    def id(self) -> str | None:
        """The cached rules id, ``None`` until computed by :meth:`get_rules`."""
        return self._id

    # ------------------------------------------------------------------
    # Rule management
    # ------------------------------------------------------------------

    def set_rule(self, rule: RuleTuple, is_default: bool = False) -> None:
        """Compile a single rule tuple.

        Each call compiles into a copy of the whole rule tree, so load rule
        lists with :meth:`set_rules`, which copies the tree once per batch.

        Parameters
        ----------
        rule:
            One or more role names followed by a rule string, e.g.
            ``["user", "model:post:read:any:1"]``.
        is_default:
            Keep the rule when rules are replaced.

        Raises
        ------
        rbac_policy.core.errors.InvalidInput
            If the rule tuple is malformed.
        rbac_policy.core.errors.InvalidRule
            If the rule string violates the grammar.
        """
        self.set_rules([rule], is_default=is_default)

    def set_rules(self, rules: Sequence[RuleTuple], is_default: bool = False) -> None:
        """Compile a list of rule tuples.

        The rules are applied together: if any of them is invalid none is
        set.

        Raises
        ------
        rbac_policy.core.errors.InvalidInput
            If *rules* is not a list or one of its tuples is malformed.
        rbac_policy.core.errors.InvalidRule
            If a rule string violates the grammar.
        """
        with self._lock:
            compiler = RuleCompiler(self._rules.copy_tree())
            compiler.set_rules(rules)
            self._rules = compiler.tree
            self._id = None
            if is_default:
                self._default_rules.extend(copy.deepcopy(list(rule)) for rule in rules)

    def replace_rules(self, rules: Sequence[RuleTuple]) -> None:
        """Replace every rule that is not a default rule with *rules*.

        Default rules are compiled first, then *rules*, into a new tree.
        The current rules and id are only replaced when every rule
        compiles.

        Raises
        ------
        rbac_policy.core.errors.RuleError
            If a rule is invalid.  The current rules are kept.
        """
        with self._lock:
            compiler = RuleCompiler()
            try:
                compiler.set_rules(self._default_rules)
                compiler.set_rules(rules)
            except RuleError as exc:
                logger.warning("rule replacement rejected: %s", exc.message)
                raise
            self._rules = compiler.tree
            self._id = None
        logger.info(
            "replaced rules: %d default, %d dynamic",
            len(self._default_rules),
            len(rules),
        )

    def set_access_id_name(self, model: str, access_id_name: str) -> None:
        """Set the session property that identifies the owner of *model* records.

        Raises
        ------
        rbac_policy.core.errors.InvalidArgs
            If *model* or *access_id_name* is not a non-empty string.
        """
        for name, value in (("model", model), ("access_id_name", access_id_name)):
            if not isinstance(value, str) or not value:
                raise InvalidArgs(f"{name} required", details={"argument": name})
        with self._lock:
            self._access_id_names[model] = access_id_name
            self._id = None

    def get_access_id_name(self, model: str) -> str:
        """Return the ownership property for *model* (``accountId`` by default)."""
        return self._access_id_names.get(model, self._config.default_access_id_name)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_roles(self, session: Any = None) -> list[str]:
        """Return the roles *session* acts with."""
        return get_roles(session)

    def get_rules(self, resource_type: str | None = None) -> dict[str, Any] | None:
        """Return the compiled rules as nested plain mappings.

        Also computes and caches the rules id when it is not set.

        Parameters
        ----------
        resource_type:
            ``"model"``, ``"module"`` or ``"route"`` to return only that
            sub-tree.  ``None`` returns every resource type.

        Returns
        -------
        dict | None
            The rules, or ``None`` when no rule was set for
            *resource_type*.
        """
        with self._lock:
            tree = self._rules
            self._current_id()
        if resource_type is None:
            return tree.to_dict()
        node = tree.get(resource_type)
        return node.to_dict() if node is not None else None

    def get_id(self) -> str:
        """Return the rules id, computing it if needed."""
        with self._lock:
            return self._current_id()

    def is_role_allowed(
        self,
        current_allow: bool,
        roles: Sequence[str],
        rule_allow: Mapping[str, Any] | None,
        matched: bool = False,
        rule_type: str | None = None,
        **extra: Any,
    ) -> bool | None:
        """Apply one level of rules to a decision without recording an audit.

        See :func:`rbac_policy.evaluation.evaluator.is_role_allowed`.
        """
        return _is_role_allowed(current_allow, roles, rule_allow, matched, rule_type, None, **extra)

    # ------------------------------------------------------------------
    # Access checks
    # ------------------------------------------------------------------

    def check_model(
        self,
        *,
        model: str,
        action: str,
        access_id: Any = None,
        scope: str | None = None,
        session: Session | None = None,
        states: Sequence[str] | None = None,
        audit: bool | None = None,
    ) -> AccessDecision:
        """Decide whether *session* may perform *action* on a *model* record.

        Parameters
        ----------
        model:
            Model name.
        action:
            Action name, e.g. ``"read"``.  ``"create"`` has no scope.
        access_id:
            Owner id of the target record.  The record is owned when it
            equals the session's ownership property for *model*.
        scope:
            ``"own"`` or ``"any"``, used when *access_id* is not given.
        session:
            The session the check is made for.
        states:
            States of the target record.  Every state must be allowed.
        audit:
            Overrides the instance audit setting for this check.

        Raises
        ------
        rbac_policy.core.errors.InvalidSession
            In strict mode, if the session is missing or incomplete.
        rbac_policy.core.errors.InvalidArgs
            In strict mode, if an argument is missing; in any mode, if
            *scope* is not ``"own"`` or ``"any"``.
        """
        if self._config.strict:
            validate_model_request(
                model=model,
                action=action,
                access_id=access_id,
                scope=scope,
                session=session,
                states=states,
            )
        elif scope is not None:
            coerce_scope(scope)

        evaluator, trail = self._begin(
            AllowType.MODEL,
            audit,
            _request_args(
                model=model,
                action=action,
                access_id=access_id,
                scope=scope,
                session=session,
                states=states,
            ),
        )
        allowed = evaluator.allow_model(
            trail,
            get_roles(session),
            model=model,
            action=action,
            access_id=access_id,
            scope=scope,
            session=session,
            states=states,
        )
        return AccessDecision(allowed=allowed, audit=trail)

    def check_model_scope(
        self,
        *,
        model: str,
        action: str,
        session: Session | None = None,
        states: Sequence[str] | None = None,
        audit: bool | None = None,
        access_id: Any = None,
        scope: str | None = None,
    ) -> AccessDecision:
        """Determine the widest scope *session* may perform *action* with.

        ``decision.scope`` is ``"any"`` when the action is allowed on any
        record, ``"own"`` when it is only allowed on owned records and
        ``None`` when it is denied.  *access_id* and *scope* are accepted
        so that model check arguments can be passed through unchanged; both
        are ignored.  Any other keyword raises :class:`TypeError`.
        """
        if self._config.strict:
            validate_model_request(
                model=model,
                action=action,
                access_id=None,
                scope=None,
                session=session,
                states=states,
                require_scope=False,
            )

        evaluator, trail = self._begin(
            AllowType.MODEL_SCOPE,
            audit,
            _request_args(model=model, action=action, session=session, states=states),
        )
        scope = evaluator.allow_model_scope(
            trail,
            get_roles(session),
            model=model,
            action=action,
            session=session,
            states=states,
        )
        return AccessDecision(allowed=scope is not None, audit=trail, scope=scope)

    def check_module(
        self,
        *,
        module: str,
        method: str,
        session: Session | None = None,
        audit: bool | None = None,
    ) -> AccessDecision:
        """Decide whether *session* may call *method* of *module*."""
        if self._config.strict:
            validate_module_request(module=module, method=method, session=session)

        evaluator, trail = self._begin(
            AllowType.MODULE,
            audit,
            _request_args(module=module, method=method, session=session),
        )
        allowed = evaluator.allow_module(
            trail, get_roles(session), module=module, method=method
        )
        return AccessDecision(allowed=allowed, audit=trail)

    def check_route(
        self,
        *,
        path: str,
        method: str,
        session: Session | None = None,
        audit: bool | None = None,
    ) -> AccessDecision:
        """Decide whether *session* may request *path* with HTTP *method*."""
        if self._config.strict:
            validate_route_request(path=path, method=method, session=session)

        evaluator, trail = self._begin(
            AllowType.ROUTE,
            audit,
            _request_args(path=path, method=method, session=session),
        )
        allowed = evaluator.allow_route(
            trail, get_roles(session), path=path, method=method
        )
        return AccessDecision(allowed=allowed, audit=trail)

    def allow_model(self, **kwargs: Any) -> bool:
        """Like :meth:`check_model`, returning only the decision."""
        decision = self.check_model(**kwargs)
        self.audit = decision.audit
        return decision.allowed

    def allow_model_scope(self, **kwargs: Any) -> Scope | None:
        """Like :meth:`check_model_scope`, returning only the scope."""
        decision = self.check_model_scope(**kwargs)
        self.audit = decision.audit
        return decision.scope

    def allow_module(self, **kwargs: Any) -> bool:
        """Like :meth:`check_module`, returning only the decision."""
        decision = self.check_module(**kwargs)
        self.audit = decision.audit
        return decision.allowed

    def allow_route(self, **kwargs: Any) -> bool:
        """Like :meth:`check_route`, returning only the decision."""
        decision = self.check_route(**kwargs)
        self.audit = decision.audit
        return decision.allowed

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _begin(
        self,
        allow_type: AllowType,
        audit: bool | None,
        allow_args: dict[str, Any],
    ) -> tuple[DecisionEvaluator, AuditTrail]:
        enabled = self._config.audit if audit is None else audit
        with self._lock:
            access_control_id = self._current_id() if enabled else ""
            evaluator = DecisionEvaluator(
                self._rules,
                access_id_names=self._access_id_names,
                default_access_id_name=self._config.default_access_id_name,
            )
        trail = create_audit(
            enabled=enabled,
            access_control_id=access_control_id,
            allow_type=allow_type,
            allow_args=allow_args,
        )
        return evaluator, trail

    def _current_id(self) -> str:
        # caller holds the lock
        if self._id is None:
            self._id = compute_rules_id(self._rules.to_dict(), dict(self._access_id_names))
            logger.debug("computed rules id %s", self._id)
        return self._id

    def __repr__(self) -> str:
        return (
            f"AccessControl(strict={self._config.strict!r}, "
            f"audit={self._config.audit!r}, id={self._id!r})"
        )
