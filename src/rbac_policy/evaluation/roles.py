"""Role resolution from session descriptors."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from rbac_policy.core.types import ALL_ROLE, ANONYMOUS_ROLE, AUTHENTICATED_ROLE


def get_roles(session: Any = None) -> list[str]:
    """Return the roles a session acts with.

    A mapping session with a list ``roles`` value is returned as-is, even
    when the list is empty.  Anything else gets the default roles
    ``["all", "authenticated"]`` when it is a mapping with a truthy
    ``accountId`` and ``["all", "anonymous"]`` otherwise.
    """
    if isinstance(session, Mapping):
        roles = session.get("roles")
        if isinstance(roles, list):
            return roles
        if session.get("accountId"):
            return [ALL_ROLE, AUTHENTICATED_ROLE]
    return [ALL_ROLE, ANONYMOUS_ROLE]
