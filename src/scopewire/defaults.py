from __future__ import annotations

DEFAULT_STRICT = False

SYNC_TEARDOWN_HOOK = "close"
ASYNC_TEARDOWN_HOOK = "aclose"
TEARDOWN_HOOKS: frozenset[str] = frozenset({SYNC_TEARDOWN_HOOK, ASYNC_TEARDOWN_HOOK})

# Hidden from every capability view.
MANAGEMENT_MEMBERS: frozenset[str] = frozenset(
    {
        "create_scope",
        "acreate_scope",
        "dispose",
        "adispose",
    },
)

RESERVED_NAMES: frozenset[str] = MANAGEMENT_MEMBERS | frozenset(
    {
        "resolve",
        "disposed",
        "strict",
        "host",
        "registrations",
    },
)
