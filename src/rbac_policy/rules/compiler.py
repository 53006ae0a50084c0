"""Rule compiler.

Parses rule tuples -- one or more role names followed by a rule string --
and merges them into a :class:`~rbac_policy.rules.tree.RuleTree`.

Rule string grammar (clauses separated by ``:``, last clause ``0`` or ``1``)::

    *:<0|1>
    model[:<name>[:<action>[:(<own|any>)|(<state>:<own|any>)]]]:<0|1>
    module[:<name>[:<method>]]:<0|1>
    route[:<path>[:<method>]]:<0|1>

A deny (``0``) may only be set for the single role ``all``; role specific
allows are what override it at evaluation time.  Each rule is fully
validated before the tree is touched, so a rejected rule never leaves a
partial insertion behind.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, NoReturn

from rbac_policy.core.errors import InvalidInput, InvalidRule
from rbac_policy.core.types import (
    ALL_ROLE,
    CREATE_ACTION,
    INDEX_SEGMENT,
    ResourceType,
    Scope,
)
from rbac_policy.rules.tree import RuleTree

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Parsed rule
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ParsedRule:
    """A rule tuple split into its parts.

    Attributes
    ----------
    roles:
        Roles the decision applies to.
    resource_type:
        The first clause of the rule string.
    clauses:
        The clauses between the resource type and the decision.
    allow:
        ``True`` for ``1`` (allow), ``False`` for ``0`` (deny).
    source:
        The input rule tuple joined with ``,`` for error messages.
    """

    roles: tuple[str, ...]
    resource_type: ResourceType
    clauses: tuple[str, ...]
    allow: bool
    source: str


def parse_rule(rule: Any) -> ParsedRule:
    """Validate the shape of *rule* and split it into a :class:`ParsedRule`.

    Raises
    ------
    rbac_policy.core.errors.InvalidInput
        If *rule* is not a list or tuple, has no role, or its last element
        is not a string.
    rbac_policy.core.errors.InvalidRule
        If the decision is not ``0``/``1``, a deny is set for a role other
        than ``all``, or the resource type is unknown.
    """
    if not isinstance(rule, (list, tuple)):
        raise InvalidInput(
            "rule must be a list of roles followed by a rule string",
            details={"rule": repr(rule)},
        )
    source = ",".join(str(part) for part in rule)
    if not rule or not isinstance(rule[-1], str):
        raise InvalidInput(f"invalid rule {source}", details={"rule": source})
    roles = tuple(rule[:-1])
    if not roles:
        raise InvalidInput(
            f"one or more roles required {source}", details={"rule": source}
        )
    if not all(isinstance(role, str) and role for role in roles):
        raise InvalidInput(
            f"roles must be non-empty strings {source}", details={"rule": source}
        )

    resource, *clauses = rule[-1].split(":")
    decision = clauses.pop() if clauses else ""
    if decision not in ("0", "1"):
        raise InvalidRule(f"allow must be 0 or 1 {source}", details={"rule": source})
    allow = decision == "1"
    if not allow and roles != (ALL_ROLE,):
        raise InvalidRule(
            f"deny can only be set for all role {source}", details={"rule": source}
        )
    try:
        resource_type = ResourceType(resource)
    except ValueError:
        raise InvalidRule(
            f"invalid resource type {source}", details={"rule": source}
        ) from None
    if any(clause == "" for clause in clauses):
        raise InvalidRule(f"empty clause in rule {source}", details={"rule": source})

    return ParsedRule(
        roles=roles,
        resource_type=resource_type,
        clauses=tuple(clauses),
        allow=allow,
        source=source,
    )


def split_path(path: str) -> list[str]:
    """Split a route path into trie segments.

    A trailing ``/`` is rewritten to the literal segment ``index``, so
    ``/`` becomes ``["index"]`` and ``/foo/`` becomes ``["foo", "index"]``.
    The leading empty segment is discarded.
    """
    if path.endswith("/"):
        path += INDEX_SEGMENT
    segments = path.split("/")
    if segments[0] == "":
        del segments[0]
    return segments


# ---------------------------------------------------------------------------
# Compiler
# ---------------------------------------------------------------------------

class RuleCompiler:
    """Compiles rule tuples into a :class:`RuleTree`.

    Parameters
    ----------
    tree:
        The tree to merge rules into.  A new empty tree is used when
        ``None``.
    """

    def __init__(self, tree: RuleTree | None = None) -> None:
        self._tree = tree if tree is not None else RuleTree()

    @property
    def tree(self) -> RuleTree:
        """The tree rules are compiled into."""
        return self._tree

    def set_rule(self, rule: Sequence[str]) -> ParsedRule:
        """Compile a single rule tuple into the tree.

        Returns
        -------
        ParsedRule
            The parsed form of the compiled rule.

        Raises
        ------
        rbac_policy.core.errors.InvalidInput
            If the rule tuple is malformed.
        rbac_policy.core.errors.InvalidRule
            If the rule string violates the grammar.
        """
        parsed = parse_rule(rule)
        if parsed.resource_type is ResourceType.ANY:
            self._set_any(parsed)
        elif parsed.resource_type is ResourceType.MODEL:
            self._set_model(parsed)
        elif parsed.resource_type is ResourceType.MODULE:
            self._set_module(parsed)
        else:
            self._set_route(parsed)
        logger.debug("compiled rule %s", parsed.source)
        return parsed

    def set_rules(self, rules: Sequence[Sequence[str]]) -> None:
        """Compile each rule tuple in *rules*, in order.

        Compilation stops at the first invalid rule; rules before it stay
        compiled.

        Raises
        ------
        rbac_policy.core.errors.InvalidInput
            If *rules* is not a list or tuple.
        """
        if not isinstance(rules, (list, tuple)):
            raise InvalidInput(
                "rules must be a list of rule tuples",
                details={"rules": repr(rules)},
            )
        for rule in rules:
            self.set_rule(rule)

    # -- Per resource type ----------------------------------------------------

    def _set_any(self, parsed: ParsedRule) -> None:
        if parsed.clauses:
            raise InvalidRule(
                f"* rule must have single clause {parsed.source}",
                details={"rule": parsed.source},
            )
        for resource_type in (ResourceType.MODEL, ResourceType.MODULE, ResourceType.ROUTE):
            self._tree.resource(resource_type).set_allow(parsed.roles, parsed.allow)

    def _set_model(self, parsed: ParsedRule) -> None:
        clauses = parsed.clauses
        if len(clauses) > 2:
            action = clauses[1]
            if action == CREATE_ACTION or len(clauses) > 4:
                self._invalid(parsed)
            scope = self._scope(clauses[-1], parsed)
        elif len(clauses) == 2 and clauses[1] != CREATE_ACTION:
            # actions other than create require an own/any scope
            self._invalid(parsed)

        rules = self._tree.model_rules()
        if not clauses:
            rules.set_allow(parsed.roles, parsed.allow)
            return
        model = rules.model_node(clauses[0])
        if len(clauses) == 1:
            model.set_allow(parsed.roles, parsed.allow)
            return
        action_node = model.action_node(clauses[1])
        if len(clauses) == 2:
            action_node.set_allow(parsed.roles, parsed.allow)
        elif len(clauses) == 3:
            action_node.scope_node(scope).set_allow(parsed.roles, parsed.allow)
        else:
            state = action_node.state_node(clauses[2])
            state.scope_node(scope).set_allow(parsed.roles, parsed.allow)

    def _set_module(self, parsed: ParsedRule) -> None:
        clauses = parsed.clauses
        if len(clauses) > 2:
            self._invalid(parsed)

        rules = self._tree.module_rules()
        if not clauses:
            rules.set_allow(parsed.roles, parsed.allow)
            return
        module = rules.module_node(clauses[0])
        if len(clauses) == 1:
            module.set_allow(parsed.roles, parsed.allow)
        else:
            module.method_node(clauses[1]).set_allow(parsed.roles, parsed.allow)

    def _set_route(self, parsed: ParsedRule) -> None:
        clauses = parsed.clauses
        if len(clauses) > 2:
            self._invalid(parsed)
        segments: list[str] = []
        if clauses:
            path = clauses[0]
            if not path.startswith("/"):
                raise InvalidRule(
                    f"path must start with slash {parsed.source}",
                    details={"rule": parsed.source, "path": path},
                )
            segments = split_path(path)
            if not all(segments):
                raise InvalidRule(
                    f"invalid path {parsed.source}",
                    details={"rule": parsed.source, "path": path},
                )

        node = self._tree.route_rules()
        for segment in segments:
            node = node.path_node(segment)
        if len(clauses) == 2:
            node.method_node(clauses[1]).set_allow(parsed.roles, parsed.allow)
        else:
            node.set_allow(parsed.roles, parsed.allow)

    # -- Helpers ------------------------------------------------------------------

    def _scope(self, clause: str, parsed: ParsedRule) -> Scope:
        try:
            return Scope(clause)
        except ValueError:
            raise InvalidRule(
                f"scope must be own or any {parsed.source}",
                details={"rule": parsed.source, "scope": clause},
            ) from None

    @staticmethod
    def _invalid(parsed: ParsedRule) -> NoReturn:
        raise InvalidRule(f"invalid rule {parsed.source}", details={"rule": parsed.source})
