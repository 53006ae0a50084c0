"""Access decision conformance tests.

Verifies the evaluation properties every rule set must satisfy: default
allow, override precedence, ownership scopes, state gating and route
prefix semantics.
"""
from __future__ import annotations

import pytest

from rbac_policy import AccessControl
from rbac_policy.core.types import Scope

from .conftest import ACCOUNT_ID, OTHER_ACCOUNT_ID, make_access_control, make_session

# ===================================================================
# Default decisions
# ===================================================================

class TestDefaultDecisions:
    """Without applicable rules access is allowed, except for deleted records."""

    def test_MUST_allow_model_without_rules(self, access_control: AccessControl) -> None:
        assert access_control.allow_model(model="post", action="read", scope="any")

    def test_MUST_allow_module_without_rules(self, access_control: AccessControl) -> None:
        assert access_control.allow_module(module="billing", method="refund")

    def test_MUST_allow_route_without_rules(self, access_control: AccessControl) -> None:
        assert access_control.allow_route(path="/admin", method="delete")

    def test_MUST_allow_when_rules_target_other_resources(self) -> None:
        access_control = make_access_control([
            ["all", "model:comment:0"],
            ["all", "module:admin:0"],
            ["all", "route:/admin:0"],
        ])
        assert access_control.allow_model(model="post", action="read", scope="any")
        assert access_control.allow_module(module="billing", method="refund")
        assert access_control.allow_route(path="/posts", method="get")

    def test_MUST_deny_deleted_without_explicit_allow(self, access_control: AccessControl) -> None:
        assert not access_control.allow_model(
            model="post", action="read", scope="any", states=["deleted"],
        )

    def test_MUST_allow_deleted_with_explicit_allow(self) -> None:
        access_control = make_access_control([["admin", "model:post:read:deleted:any:1"]])
        assert access_control.allow_model(
            model="post",
            action="read",
            scope="any",
            states=["deleted"],
            session=make_session("all", "admin"),
        )


# ===================================================================
# Override precedence
# ===================================================================

class TestOverridePrecedence:
    """A role allow overrides an ``all`` deny at every depth."""

    @pytest.mark.parametrize(
        ("rules", "kwargs"),
        [
            (
                [["all", "model:0"], ["user", "model:1"]],
                {"model": "post", "action": "read", "scope": "any"},
            ),
            (
                [["all", "model:0"], ["user", "model:post:1"]],
                {"model": "post", "action": "read", "scope": "any"},
            ),
            (
                [["all", "model:post:create:0"], ["user", "model:post:create:1"]],
                {"model": "post", "action": "create"},
            ),
            (
                [["all", "model:post:read:any:0"], ["user", "model:post:read:any:1"]],
                {"model": "post", "action": "read", "scope": "any"},
            ),
            (
                [["all", "model:post:read:draft:any:0"], ["user", "model:post:read:draft:any:1"]],
                {"model": "post", "action": "read", "scope": "any", "states": ["draft"]},
            ),
        ],
    )
    def test_MUST_override_model_deny(self, rules: list[list[str]], kwargs: dict) -> None:
        access_control = make_access_control(rules)
        assert access_control.allow_model(session=make_session("all", "user"), **kwargs)
        assert not access_control.allow_model(session=make_session("all"), **kwargs)

    @pytest.mark.parametrize(
        "rules",
        [
            [["all", "module:0"], ["user", "module:1"]],
            [["all", "module:0"], ["user", "module:billing:1"]],
            [["all", "module:billing:refund:0"], ["user", "module:billing:refund:1"]],
            [["all", "*:0"], ["user", "module:billing:refund:1"]],
        ],
    )
    def test_MUST_override_module_deny(self, rules: list[list[str]]) -> None:
        access_control = make_access_control(rules)
        kwargs = {"module": "billing", "method": "refund"}
        assert access_control.allow_module(session=make_session("all", "user"), **kwargs)
        assert not access_control.allow_module(session=make_session("all"), **kwargs)

    @pytest.mark.parametrize(
        "rules",
        [
            [["all", "route:0"], ["user", "route:1"]],
            [["all", "route:0"], ["user", "route:/a:1"]],
            [["all", "route:/a:0"], ["user", "route:/a/b:1"]],
            [["all", "route:/a/b:0"], ["user", "route:/a/b:get:1"]],
        ],
    )
    def test_MUST_override_route_deny(self, rules: list[list[str]]) -> None:
        access_control = make_access_control(rules)
        kwargs = {"path": "/a/b", "method": "get"}
        assert access_control.allow_route(session=make_session("all", "user"), **kwargs)
        assert not access_control.allow_route(session=make_session("all"), **kwargs)

    def test_MUST_apply_deeper_deny_over_shallower_allow(self) -> None:
        access_control = make_access_control([
            ["user", "model:1"],
            ["all", "model:post:0"],
        ])
        assert not access_control.allow_model(
            model="post", action="read", scope="any", session=make_session("all", "user"),
        )


# ===================================================================
# Ownership scope
# ===================================================================

class TestOwnershipScope:
    """``any`` implies ``own``; ``own`` never grants ``any``."""

    def test_MUST_match_own_scope_by_access_id(self) -> None:
        access_control = make_access_control([
            ["all", "model:0"],
            ["foo", "model:foo:delete:own:1"],
        ])
        session = {"accountId": "x", "roles": ["all", "foo"]}
        assert access_control.allow_model(
            access_id="x", action="delete", model="foo", session=session,
        )

    def test_MUST_not_grant_any_from_own(self) -> None:
        access_control = make_access_control([
            ["all", "model:0"],
            ["user", "model:post:update:own:1"],
        ])
        session = make_session("all", "user")
        assert access_control.allow_model(
            model="post", action="update", access_id=ACCOUNT_ID, session=session,
        )
        assert not access_control.allow_model(
            model="post", action="update", access_id=OTHER_ACCOUNT_ID, session=session,
        )

    def test_MUST_grant_own_from_any(self) -> None:
        access_control = make_access_control([
            ["all", "model:0"],
            ["user", "model:post:update:any:1"],
        ])
        assert access_control.allow_model(
            model="post", action="update", scope="own", session=make_session("all", "user"),
        )

    @pytest.mark.parametrize(
        ("rules", "expected"),
        [
            ([["all", "model:0"], ["user", "model:post:read:any:1"]], Scope.ANY),
            ([["all", "model:0"], ["user", "model:post:read:own:1"]], Scope.OWN),
            ([["all", "model:0"]], None),
            ([], Scope.ANY),
        ],
    )
    def test_MUST_return_widest_allowed_scope(
        self, rules: list[list[str]], expected: Scope | None,
    ) -> None:
        access_control = make_access_control(rules)
        session = make_session("all", "user")
        scope = access_control.allow_model_scope(model="post", action="read", session=session)
        assert scope is expected
        allow_any = access_control.allow_model(
            model="post", action="read", scope="any", session=session,
        )
        allow_own = access_control.allow_model(
            model="post", action="read", scope="own", session=session,
        )
        if allow_any:
            assert scope is Scope.ANY
        elif allow_own:
            assert scope is Scope.OWN
        else:
            assert scope is None


# ===================================================================
# State gating
# ===================================================================

class TestStateGating:
    """Every requested state must resolve to allow."""

    def test_MUST_require_all_states(self) -> None:
        access_control = make_access_control([
            ["all", "model:foo:read:bar:any:0"],
            ["foo", "model:foo:read:foo:any:1"],
        ])
        for states in (["foo", "bar"], ["bar", "foo"]):
            assert not access_control.allow_model(
                model="foo",
                action="read",
                scope="any",
                states=states,
                session=make_session("foo"),
            )

    def test_MUST_deny_any_scope_when_own_state_denied(self) -> None:
        access_control = make_access_control([
            ["all", "model:post:read:locked:own:0"],
            ["user", "model:post:read:any:1"],
        ])
        assert not access_control.allow_model(
            model="post",
            action="read",
            scope="any",
            states=["locked"],
            session=make_session("all", "user"),
        )


# ===================================================================
# Route prefixes
# ===================================================================

class TestRoutePrefixes:
    """Route rules apply to every path below them unless overridden."""

    def test_MUST_apply_method_over_path(self) -> None:
        access_control = make_access_control([
            ["all", "route:0"],
            ["all", "route:/foo:1"],
            ["all", "route:/foo:post:0"],
        ])
        assert access_control.allow_route(method="get", path="/foo")
        assert not access_control.allow_route(method="post", path="/foo")

    def test_MUST_apply_prefix_rules_to_children(self) -> None:
        access_control = make_access_control([
            ["all", "route:/foo:0"],
            ["all", "route:/foo/bar:1"],
        ])
        assert not access_control.allow_route(method="get", path="/foo/baz/qux")
        assert access_control.allow_route(method="get", path="/foo/bar/qux")
        assert access_control.allow_route(method="get", path="/other")

    def test_MUST_stop_at_first_unknown_segment(self) -> None:
        access_control = make_access_control([
            ["all", "route:0"],
            ["all", "route:/foo:1"],
        ])
        access_control.allow_route(method="get", path="/foo/bar/baz")
        segments = [entry.get("segment") for entry in access_control.audit.rules]
        assert "bar" not in segments
        assert "baz" not in segments
