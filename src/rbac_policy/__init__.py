"""RBAC policy engine.

Compiles compact role-based access control rules into a decision tree and
evaluates access checks against it.

Components
----------
1. Rule compilation (:mod:`rbac_policy.rules`)
2. Access check evaluation (:mod:`rbac_policy.evaluation`)
3. Audit records (:mod:`rbac_policy.audit`)
4. The :class:`AccessControl` entry point (:mod:`rbac_policy.access_control`)
"""
from __future__ import annotations

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------
from rbac_policy.access_control import AccessControl

# ---------------------------------------------------------------------------
# Audit records
# ---------------------------------------------------------------------------
from rbac_policy.audit import AccessAudit, AuditTrail, NullAudit, create_audit

# ---------------------------------------------------------------------------
# Core types, errors, config
# ---------------------------------------------------------------------------
from rbac_policy.core.config import AccessControlConfig
from rbac_policy.core.errors import (
    AccessControlError,
    AuditError,
    InvalidArgs,
    InvalidAuditState,
    InvalidInput,
    InvalidRule,
    InvalidSession,
    RequestError,
    RuleError,
    error_from_code,
)
from rbac_policy.core.hashing import canonical_json, compute_rules_id
from rbac_policy.core.types import (
    AccessDecision,
    AllowType,
    ResourceType,
    Scope,
)

# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------
from rbac_policy.evaluation import DecisionEvaluator, get_roles, is_role_allowed

# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------
from rbac_policy.rules import RuleCompiler, RuleTree, parse_rule

__all__ = [
    "__version__",
    # Entry point
    "AccessControl",
    "AccessControlConfig",
    # Types
    "AccessDecision",
    "AllowType",
    "ResourceType",
    "Scope",
    # Errors
    "AccessControlError",
    "RuleError",
    "RequestError",
    "AuditError",
    "InvalidInput",
    "InvalidRule",
    "InvalidSession",
    "InvalidArgs",
    "InvalidAuditState",
    "error_from_code",
    # Rules
    "RuleCompiler",
    "RuleTree",
    "parse_rule",
    # Evaluation
    "DecisionEvaluator",
    "get_roles",
    "is_role_allowed",
    # Audit
    "AccessAudit",
    "AuditTrail",
    "NullAudit",
    "create_audit",
    # Hashing
    "canonical_json",
    "compute_rules_id",
]
