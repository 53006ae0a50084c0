"""Rule compilation.

This subpackage turns rule tuples into a typed decision tree:

* **RuleTree** -- per resource type nodes with lazy builder methods
  (:mod:`~rbac_policy.rules.tree`).
* **RuleCompiler** -- rule string parsing and cumulative merging
  (:mod:`~rbac_policy.rules.compiler`).
"""
from __future__ import annotations

from rbac_policy.rules.compiler import ParsedRule, RuleCompiler, parse_rule, split_path
from rbac_policy.rules.tree import (
    ActionNode,
    AllowNode,
    MethodNode,
    ModelNode,
    ModelRules,
    ModuleNode,
    ModuleRules,
    RouteNode,
    RuleNode,
    RuleTree,
    ScopeNode,
    StateNode,
)

__all__ = [
    # Compiler
    "ParsedRule",
    "RuleCompiler",
    "parse_rule",
    "split_path",
    # Tree
    "RuleNode",
    "AllowNode",
    "RuleTree",
    "ModelRules",
    "ModelNode",
    "ActionNode",
    "StateNode",
    "ScopeNode",
    "ModuleRules",
    "ModuleNode",
    "MethodNode",
    "RouteNode",
]
