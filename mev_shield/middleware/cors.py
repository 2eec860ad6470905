"""
CORS for wallet and dapp browsers.

Starlette's CORSMiddleware checks preflights against its allow lists and
answers a 400 for anything outside them. Here every OPTIONS request gets the
same permissive 200, whatever method or headers it asks about; other requests
get the usual CORS response headers from the parent class.
"""

from starlette.middleware.cors import CORSMiddleware
from starlette.responses import Response
from starlette.types import Receive, Scope, Send

PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class PermissiveCORSMiddleware(CORSMiddleware):
    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["method"] == "OPTIONS":
            response = Response(status_code=200, headers=PREFLIGHT_HEADERS)
            await response(scope, receive, send)
            return
        await super().__call__(scope, receive, send)
