"""Access control configuration.

Defines the validated configuration model accepted by
:class:`~rbac_policy.access_control.AccessControl` at construction.
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class AccessControlConfig(BaseModel):
    """Configuration for an :class:`~rbac_policy.access_control.AccessControl`.

    All fields carry defaults so that ``AccessControlConfig()`` yields a
    production-safe instance: strict request validation with auditing on.
    """

    model_config = ConfigDict(strict=True, frozen=True)

    strict: bool = Field(
        default=True,
        description=(
            "Require a session with 'sessionId' and 'roles' plus every "
            "resource argument on each access check."
        ),
    )
    audit: bool = Field(
        default=True,
        description=(
            "Record an audit trail for each access check unless the call "
            "passes audit=False."
        ),
    )
    default_access_id_name: str = Field(
        default="accountId",
        min_length=1,
        description=(
            "Session property compared with a record's access id when the "
            "model has no explicit access id name."
        ),
    )
