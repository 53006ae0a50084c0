"""Access check auditing.

* **AccessAudit** -- the append-only record of one access check.
* **NullAudit** -- the no-op record used when auditing is disabled.
* **AuditTrail** -- the runtime-checkable interface both implement.
"""
from __future__ import annotations

from rbac_policy.audit.records import AccessAudit, AuditTrail, NullAudit, create_audit

__all__ = [
    "AccessAudit",
    "AuditTrail",
    "NullAudit",
    "create_audit",
]
