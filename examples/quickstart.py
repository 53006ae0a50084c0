#!/usr/bin/env python3
"""RBAC policy quickstart.

Demonstrates the core workflow:

1. Create an access control instance with default rules.
2. Check model, module and route access for a session.
3. Ask for the widest scope an action is allowed for.
4. Inspect the audit record of a check.
5. Replace the dynamic rules while keeping the defaults.

Run:
    python examples/quickstart.py
"""
from __future__ import annotations

import logging

from rbac_policy import AccessControl, InvalidRule


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    # -- Step 1: Create the instance -----------------------------------------
    access_control = AccessControl([
        ["all", "*:0"],
        ["user", "model:post:read:any:1"],
        ["user", "model:post:update:own:1"],
        ["admin", "model:post:read:deleted:any:1"],
        ["user", "module:search:1"],
        ["user", "route:/posts:1"],
        ["all", "route:/posts:delete:0"],
    ])
    print(f"[1] Rules loaded, id {access_control.get_id()}")

    session = {"sessionId": "s1", "accountId": "alice", "roles": ["all", "user"]}

    # -- Step 2: Access checks -----------------------------------------------
    own = access_control.allow_model(
        model="post", action="update", access_id="alice", session=session,
    )
    other = access_control.allow_model(
        model="post", action="update", access_id="bob", session=session,
    )
    deleted = access_control.allow_model(
        model="post", action="read", scope="any", states=["deleted"], session=session,
    )
    print(f"[2] update own post: {own}, update other post: {other}, read deleted: {deleted}")
    print(f"    search module: {access_control.allow_module(module='search', method='run', session=session)}")
    print(f"    GET /posts/1: {access_control.allow_route(path='/posts/1', method='get', session=session)}")
    print(f"    DELETE /posts: {access_control.allow_route(path='/posts', method='delete', session=session)}")

    # -- Step 3: Widest scope ------------------------------------------------
    for action in ("read", "update", "delete"):
        scope = access_control.allow_model_scope(model="post", action=action, session=session)
        print(f"[3] post {action}: {scope}")

    # -- Step 4: Audit record ------------------------------------------------
    decision = access_control.check_model(
        model="post", action="update", access_id="alice", session=session,
    )
    print(f"[4] allowed={decision.allowed}")
    for entry in decision.audit.to_dict()["rules"]:
        print(f"    {entry}")

    # -- Step 5: Replace dynamic rules ---------------------------------------
    access_control.replace_rules([["guest", "route:/about:1"]])
    try:
        access_control.replace_rules([["guest", "route:/about:0"]])
    except InvalidRule as exc:
        print(f"[5] rejected: {exc.to_dict()['error']['message']}")
    print(f"    route rules: {access_control.get_rules('route')}")


if __name__ == "__main__":
    main()
