"""Rules id computation and canonical JSON serialisation.

The id of an access control instance is a deterministic digest of its
compiled rules and access id names.  Two instances holding the same rules
produce the same id whatever order the rules were set in, because the
digest is taken over RFC 8785 (JCS) canonical JSON, where object keys
are sorted and no insignificant whitespace is emitted.
"""
from __future__ import annotations

import hashlib
import json
import math
from collections.abc import Mapping
from typing import Any

RULES_ID_PREFIX = "sha256:"


# ---------------------------------------------------------------------------
# Canonical JSON
# ---------------------------------------------------------------------------

def _encode_string(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _encode_number(number: int | float) -> str:
    if isinstance(number, int):
        return str(number)
    if not math.isfinite(number):
        msg = f"{number!r} cannot be represented in JSON"
        raise ValueError(msg)
    # integral floats are written without a fraction (1.0 -> 1)
    return str(int(number)) if number.is_integer() else repr(number)


def _encode(value: Any) -> str:
    """Encode one JSON value canonically.

    Mappings are written with their keys in code-point order, sequences
    keep their order, strings are written as UTF-8 with only the
    mandatory escapes.
    """
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, (int, float)):
        return _encode_number(value)
    if isinstance(value, str):
        return _encode_string(value)
    if isinstance(value, Mapping):
        members = (f"{_encode_string(key)}:{_encode(value[key])}" for key in sorted(value))
        return "{" + ",".join(members) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_encode(item) for item in value) + "]"
    msg = f"cannot encode {type(value).__name__} as canonical JSON"
    raise TypeError(msg)


def canonical_json(data: Mapping[str, Any]) -> str:
    """Return *data* as an RFC 8785 canonical JSON string.

    Raises
    ------
    ValueError
        If *data* holds NaN or an infinity.
    TypeError
        If *data* holds a value with no JSON representation.
    """
    return _encode(data)


# ---------------------------------------------------------------------------
# Rules id
# ---------------------------------------------------------------------------

def compute_rules_id(
    rules: Mapping[str, Any],
    access_id_names: Mapping[str, str],
) -> str:
    """Compute the id of a compiled rule set.

    Parameters
    ----------
    rules:
        The plain-dict rendering of the rule tree
        (:meth:`~rbac_policy.rules.tree.RuleTree.to_dict`).
    access_id_names:
        Model name to ownership property overrides.

    Returns
    -------
    str
        ``sha256:`` followed by the hex digest.
    """
    payload = canonical_json({"accessIdNames": access_id_names, "rules": rules})
    return RULES_ID_PREFIX + hashlib.sha256(payload.encode("utf-8")).hexdigest()
