"""Access check evaluation.

* **get_roles** -- role resolution from a session mapping
  (:mod:`~rbac_policy.evaluation.roles`).
* **DecisionEvaluator** -- model, model scope, module and route checks
  over a rule tree (:mod:`~rbac_policy.evaluation.evaluator`).
* **validate_*_request** -- strict mode argument validation
  (:mod:`~rbac_policy.evaluation.requests`).
"""
from __future__ import annotations

from rbac_policy.evaluation.evaluator import DecisionEvaluator, is_role_allowed
from rbac_policy.evaluation.requests import (
    coerce_scope,
    validate_model_request,
    validate_module_request,
    validate_route_request,
    validate_session,
)
from rbac_policy.evaluation.roles import get_roles

__all__ = [
    "DecisionEvaluator",
    "is_role_allowed",
    "get_roles",
    "coerce_scope",
    "validate_session",
    "validate_model_request",
    "validate_module_request",
    "validate_route_request",
]
