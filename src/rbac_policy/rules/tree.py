"""Typed rule tree.

Compiled rules are held in a tree with one sub-tree per resource type.
Each level is keyed by an increasingly specific dimension::

    model   -> model name -> action -> (own | any | state -> own | any)
    module  -> module name -> method
    route   -> path segment -> path segment ... (-> method at any depth)

Every node is created lazily by the builder methods below and rules merge
cumulatively: setting a rule never removes a previously set sibling.
:meth:`RuleNode.to_dict` renders only the populated fields, producing the
nested-mapping shape used for introspection and for the rules id.
"""
from __future__ import annotations

from collections.abc import Iterable
from typing import TypeVar

from pydantic import BaseModel, ConfigDict

from rbac_policy.core.types import ResourceType, RoleAllowMap, Scope

_N = TypeVar("_N", bound="RuleNode")


# ---------------------------------------------------------------------------
# Base nodes
# ---------------------------------------------------------------------------

class RuleNode(BaseModel):
    """Base class of every rule tree node."""

    model_config = ConfigDict(extra="forbid")

    def to_dict(self) -> dict:
        """Return the populated fields as nested plain mappings."""
        return self.model_dump(exclude_none=True)

    def _branch(self, field: str, key: str, node_type: type[_N]) -> _N:
        """Return child *key* of mapping *field*, creating both if missing."""
        branches = getattr(self, field)
        if branches is None:
            branches = {}
            setattr(self, field, branches)
        node = branches.get(key)
        if node is None:
            node = branches[key] = node_type()
        return node


class AllowNode(RuleNode):
    """A node that can hold a role -> decision map."""

    allow: RoleAllowMap | None = None

    def set_allow(self, roles: Iterable[str], allow: bool) -> None:
        """Merge *allow* for every role into this node's ``allow`` map."""
        if self.allow is None:
            self.allow = {}
        for role in roles:
            self.allow[role] = allow


class ScopeNode(AllowNode):
    """Decisions restricted to one ownership scope (``own`` or ``any``)."""


class MethodNode(AllowNode):
    """Decisions for a single module method or HTTP method."""


class _ScopedNode(RuleNode):
    own: ScopeNode | None = None
    any: ScopeNode | None = None

    def scope_node(self, scope: Scope) -> ScopeNode:
        node = getattr(self, scope.value)
        if node is None:
            node = ScopeNode()
            setattr(self, scope.value, node)
        return node

    def get_scope(self, scope: Scope) -> ScopeNode | None:
        return getattr(self, scope.value)


# ---------------------------------------------------------------------------
# Model rules
# ---------------------------------------------------------------------------

class StateNode(_ScopedNode):
    """Scope decisions that apply while a record is in a given state."""


class ActionNode(_ScopedNode, AllowNode):
    """Decisions for one model action.

    ``allow`` is only populated for the ``create`` action; every other
    action carries its decisions on the ``own``/``any`` scope nodes and
    on per-state nodes.
    """

    state: dict[str, StateNode] | None = None

    def state_node(self, state: str) -> StateNode:
        return self._branch("state", state, StateNode)


class ModelNode(AllowNode):
    """Decisions for a single model."""

    action: dict[str, ActionNode] | None = None

    def action_node(self, action: str) -> ActionNode:
        return self._branch("action", action, ActionNode)


class ModelRules(AllowNode):
    """Root of the ``model`` resource type."""

    model: dict[str, ModelNode] | None = None

    def model_node(self, model: str) -> ModelNode:
        return self._branch("model", model, ModelNode)


# ---------------------------------------------------------------------------
# Module rules
# ---------------------------------------------------------------------------

class ModuleNode(AllowNode):
    """Decisions for a single module."""

    method: dict[str, MethodNode] | None = None

    def method_node(self, method: str) -> MethodNode:
        return self._branch("method", method, MethodNode)


class ModuleRules(AllowNode):
    """Root of the ``module`` resource type."""

    module: dict[str, ModuleNode] | None = None

    def module_node(self, module: str) -> ModuleNode:
        return self._branch("module", module, ModuleNode)


# ---------------------------------------------------------------------------
# Route rules
# ---------------------------------------------------------------------------

class RouteNode(AllowNode):
    """A route trie node; the root of the ``route`` resource type is one too.

    ``path`` maps the next path segment to its child node, so a rule set
    on ``/foo/bar`` lives at ``root.path["foo"].path["bar"]``.
    """

    method: dict[str, MethodNode] | None = None
    path: dict[str, RouteNode] | None = None

    def method_node(self, method: str) -> MethodNode:
        return self._branch("method", method, MethodNode)

    def path_node(self, segment: str) -> RouteNode:
        return self._branch("path", segment, RouteNode)


# ---------------------------------------------------------------------------
# Tree root
# ---------------------------------------------------------------------------

ResourceRules = ModelRules | ModuleRules | RouteNode

_ROOT_TYPES: dict[ResourceType, type[AllowNode]] = {
    ResourceType.MODEL: ModelRules,
    ResourceType.MODULE: ModuleRules,
    ResourceType.ROUTE: RouteNode,
}


class RuleTree(RuleNode):
    """All compiled rules, one sub-tree per resource type."""

    model: ModelRules | None = None
    module: ModuleRules | None = None
    route: RouteNode | None = None

    def resource(self, resource_type: ResourceType) -> ResourceRules:
        """Return the sub-tree for *resource_type*, creating it if missing."""
        node = getattr(self, resource_type.value)
        if node is None:
            node = _ROOT_TYPES[resource_type]()
            setattr(self, resource_type.value, node)
        return node

    def model_rules(self) -> ModelRules:
        if self.model is None:
            self.model = ModelRules()
        return self.model

    def module_rules(self) -> ModuleRules:
        if self.module is None:
            self.module = ModuleRules()
        return self.module

    def route_rules(self) -> RouteNode:
        if self.route is None:
            self.route = RouteNode()
        return self.route

    def get(self, resource_type: str) -> ResourceRules | None:
        """Return the sub-tree for *resource_type*, or ``None``."""
        if resource_type not in _ROOT_TYPES:
            return None
        return getattr(self, resource_type)

    def copy_tree(self) -> RuleTree:
        """Return an independent deep copy of the tree."""
        return self.model_copy(deep=True)
