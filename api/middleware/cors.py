"""
路径豁免的 CORS 中间件

Webhook 路由自行应答 OPTIONS/HEAD（对任意来源放行），
全局 CORS 白名单只作用于其余 API。
"""
from typing import Sequence

from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send


class PathScopedCORSMiddleware(CORSMiddleware):
    """CORSMiddleware，但对 ``exempt_prefixes`` 下的路径直接透传给下游应用。"""

    def __init__(self, app: ASGIApp, *, exempt_prefixes: Sequence[str] = (), **kwargs) -> None:
        super().__init__(app, **kwargs)
        self.exempt_prefixes = tuple(exempt_prefixes)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["path"].startswith(self.exempt_prefixes):
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)
