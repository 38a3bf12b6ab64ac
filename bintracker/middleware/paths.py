"""
Bin Tracker — Path Normalization Middleware
============================================

What:  Drops a trailing "/" from the request path before routing.
How:   Pure ASGI middleware rewriting scope["path"] (and raw_path), so
       `/bin/A-12/` and `/bin/A-12/photo/` reach the same handlers as their
       slash-less forms instead of being redirected.
"""

from starlette.types import ASGIApp, Receive, Scope, Send


def normalize_path(path: str) -> str:
    """`/bin/A-12/` → `/bin/A-12`; the root path stays `/`."""
    if len(path) > 1 and path.endswith("/"):
        return path[:-1]
    return path


class TrailingSlashMiddleware:
    """Routes `/x/` exactly like `/x`."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            path = normalize_path(scope["path"])
            if path != scope["path"]:
                scope = dict(scope)
                scope["path"] = path
                raw_path = scope.get("raw_path")
                if raw_path and raw_path.endswith(b"/"):
                    scope["raw_path"] = raw_path[:-1]
        await self.app(scope, receive, send)
