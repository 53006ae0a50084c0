"""Access-control error-code hierarchy.

Every failure the engine can report is represented as a concrete
exception class carrying a stable error code.

Hierarchy
---------
::

    AccessControlError
    +-- RuleError             (AC-E1xx)
    |   +-- InvalidInput      (AC-E100)
    |   +-- InvalidRule       (AC-E101)
    +-- RequestError          (AC-E2xx)
    |   +-- InvalidSession    (AC-E200)
    |   +-- InvalidArgs       (AC-E201)
    +-- AuditError            (AC-E3xx)
        +-- InvalidAuditState (AC-E300)

Usage
-----
Raise concrete subclasses directly::

    raise InvalidRule("deny can only be set for all role", details={"rule": rule})

Catch by category::

    try:
        access_control.set_rules(rules)
    except RuleError:
        # handles InvalidInput and InvalidRule
        ...
"""
from __future__ import annotations

from typing import Any

# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

class AccessControlError(Exception):
    """Base exception for all access-control errors.

    Attributes
    ----------
    code : str
        Error code, e.g. ``"AC-E101"``.
    message : str
        Human-readable description.
    details : dict[str, Any]
        Machine-readable context specific to the error instance.
    resolution : str
        Suggested action for the caller.
    """

    code: str = "AC-E000"
    message: str = "Unknown access control error"
    resolution: str = ""

    def __init__(
        self,
        message: str | None = None,
        *,
        details: dict[str, Any] | None = None,
        resolution: str | None = None,
    ) -> None:
        self.details: dict[str, Any] = details or {}
        if message is not None:
            self.message = message
        if resolution is not None:
            self.resolution = resolution
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialise the error to a plain ``{"error": {...}}`` mapping."""
        payload: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            payload["detail"] = self.details
        if self.resolution:
            payload["resolution"] = self.resolution
        return {"error": payload}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


# ===================================================================
# Category base classes
# ===================================================================

class RuleError(AccessControlError):
    """AC-E1xx -- Rule compilation errors."""

    code = "AC-E1XX"


class RequestError(AccessControlError):
    """AC-E2xx -- Access check request errors."""

    code = "AC-E2XX"


class AuditError(AccessControlError):
    """AC-E3xx -- Audit bookkeeping errors."""

    code = "AC-E3XX"


# ===================================================================
# AC-E1xx  Rule Errors
# ===================================================================

class InvalidInput(RuleError):
    """AC-E100 -- A rule tuple or rule list has the wrong shape."""

    code = "AC-E100"
    message = "Invalid rule input"
    resolution = (
        "Pass rules as a list of sequences holding one or more role names "
        "followed by a single rule string."
    )


class InvalidRule(RuleError):
    """AC-E101 -- A rule string violates the clause grammar."""

    code = "AC-E101"
    message = "Invalid rule"
    resolution = (
        "Use '<model|module|route|*>[:<clause>...]:<0|1>'. Deny (0) rules "
        "may only be set for the 'all' role."
    )


# ===================================================================
# AC-E2xx  Request Errors
# ===================================================================

class InvalidSession(RequestError):
    """AC-E200 -- Strict mode check without a usable session."""

    code = "AC-E200"
    message = "Invalid session"
    resolution = (
        "Provide a session mapping with a string 'sessionId' and a list "
        "of 'roles', or construct the access control with strict=False."
    )


class InvalidArgs(RequestError):
    """AC-E201 -- Strict mode check with missing or malformed arguments."""

    code = "AC-E201"
    message = "Invalid access check arguments"
    resolution = "Provide every argument required by the access check."


# ===================================================================
# AC-E3xx  Audit Errors
# ===================================================================

class InvalidAuditState(AuditError):
    """AC-E300 -- Mutation attempted on a completed audit record."""

    code = "AC-E300"
    message = "Audit record is complete"
    resolution = (
        "Audit records are sealed once the decision is set. Start a new "
        "access check to produce a new record."
    )


# ---------------------------------------------------------------------------
# Lookup helper
# ---------------------------------------------------------------------------

_CODE_MAP: dict[str, type[AccessControlError]] = {
    cls.code: cls
    for cls in [
        # E1xx
        InvalidInput,
        InvalidRule,
        # E2xx
        InvalidSession,
        InvalidArgs,
        # E3xx
        InvalidAuditState,
    ]
}


def error_from_code(code: str, message: str | None = None) -> AccessControlError:
    """Instantiate the correct exception class for an error code.

    Raises
    ------
    KeyError
        If *code* is not a recognised error code.
    """
    cls = _CODE_MAP[code]
    return cls(message) if message else cls()
