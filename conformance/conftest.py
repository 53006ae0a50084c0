"""Shared fixtures for access control conformance tests.

Provides sessions and instance factories reused across the conformance
suites.
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import pytest

from rbac_policy import AccessControl

# ---------------------------------------------------------------------------
# Common sessions
# ---------------------------------------------------------------------------
ACCOUNT_ID = "account-1"
OTHER_ACCOUNT_ID = "account-2"


def make_session(*roles: str, account_id: str | None = ACCOUNT_ID) -> dict[str, Any]:
    """Build a strict mode session acting with *roles*."""
    session: dict[str, Any] = {"sessionId": "session-1", "roles": list(roles)}
    if account_id is not None:
        session["accountId"] = account_id
    return session


# ---------------------------------------------------------------------------
# Instance helpers
# ---------------------------------------------------------------------------
def make_access_control(
    rules: Sequence[Sequence[str]] = (),
    *,
    strict: bool = False,
) -> AccessControl:
    """Build an instance holding *rules* as dynamic rules."""
    access_control = AccessControl(strict=strict)
    access_control.set_rules(list(rules))
    return access_control


@pytest.fixture()
def access_control() -> AccessControl:
    """A non-strict, auditing instance without rules."""
    return AccessControl(strict=False)


@pytest.fixture()
def strict_access_control() -> AccessControl:
    """A strict, auditing instance without rules."""
    return AccessControl()
