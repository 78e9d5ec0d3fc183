"""
FastAPI Integration for Tork Governance

Provides middleware and dependencies for FastAPI applications.
"""

import json
from typing import Any, Callable, List, Optional, Sequence

from ..core import GovernanceResult, Tork
from .base import (
    CONTENT_KEYS,
    OnBlock,
    blocked_payload,
    govern_body,
    method_is_governed,
    path_is_governed,
)


class TorkFastAPIMiddleware:
    """
    FastAPI/Starlette middleware that applies Tork governance to requests.

    ``on_block(scope, result)`` may return an ASGI application (for example a
    Starlette ``JSONResponse``) to send instead of the default 403 body.

    Example:
        >>> from fastapi import FastAPI
        >>> from tork_governance.adapters.fastapi import TorkFastAPIMiddleware
        >>>
        >>> app = FastAPI()
        >>> app.add_middleware(TorkFastAPIMiddleware)
        >>>
        >>> @app.post("/api/chat")
        >>> async def chat(request: Request):
        >>>     # request.state.tork_result contains governance result
        >>>     return {"message": "ok"}
    """

    def __init__(
        self,
        app: Any,
        tork: Optional[Tork] = None,
        api_key: Optional[str] = None,
        policy_version: str = "1.0.0",
        default_action: str = "redact",
        protected_paths: Optional[List[str]] = None,
        skip_paths: Optional[List[str]] = None,
        content_keys: Sequence[str] = CONTENT_KEYS,
        on_block: Optional[OnBlock] = None,
    ):
        self.app = app
        self.tork = tork or Tork(
            api_key=api_key,
            policy_version=policy_version,
            default_action=default_action,
        )
        self.protected_paths = protected_paths or ["/"]
        self.skip_paths = skip_paths or []
        self.content_keys = tuple(content_keys)
        self.on_block = on_block

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        if not path_is_governed(path, self.protected_paths, self.skip_paths):
            await self.app(scope, receive, send)
            return

        if not method_is_governed(scope.get("method")):
            await self.app(scope, receive, send)
            return

        body = await self._read_body(receive)

        governed = govern_body(self.tork, body, self.content_keys)
        if governed is not None:
            state = scope.setdefault("state", {})
            state["tork_result"] = governed.result

            if governed.blocked:
                await self._send_blocked(scope, receive, send, governed.result)
                return

            if governed.rewritten:
                body = governed.encoded_document()
                state["tork_redacted_content"] = governed.result.output
                scope["headers"] = _with_content_length(scope.get("headers", []), len(body))

        await self.app(scope, _replay_body(body, receive), send)

    async def _read_body(self, receive: Callable) -> bytes:
        chunks = []
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] != "http.request":
                break
            chunks.append(message.get("body", b""))
            more_body = message.get("more_body", False)
        return b"".join(chunks)

    async def _send_blocked(
        self,
        scope: dict,
        receive: Callable,
        send: Callable,
        result: GovernanceResult,
    ) -> None:
        if self.on_block is not None:
            response = self.on_block(scope, result)
            if response is not None:
                await response(scope, receive, send)
                return

        response_body = json.dumps(blocked_payload(result)).encode("utf-8")
        await send({
            "type": "http.response.start",
            "status": 403,
            "headers": [
                (b"content-type", b"application/json"),
                (b"content-length", str(len(response_body)).encode("latin-1")),
            ],
        })
        await send({
            "type": "http.response.body",
            "body": response_body,
        })


def _replay_body(body: bytes, receive: Callable) -> Callable:
    """
    Receive callable that yields ``body`` once, then defers to ``receive``.

    Later calls wait on the server so that ``http.disconnect`` still reaches
    responses that listen for it.
    """
    body_sent = False

    async def replay():
        nonlocal body_sent
        if not body_sent:
            body_sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


def _with_content_length(headers: list, length: int) -> list:
    updated = [(k, v) for k, v in headers if k.lower() != b"content-length"]
    updated.append((b"content-length", str(length).encode("latin-1")))
    return updated


class TorkFastAPIDependency:
    """
    FastAPI dependency that governs a ``content`` parameter.

    With ``block=True`` a denied request raises ``HTTPException(403)`` carrying
    the same payload the middleware sends; otherwise the result is returned
    and the route decides.

    Example:
        >>> from fastapi import FastAPI, Depends
        >>> from tork_governance.adapters.fastapi import TorkFastAPIDependency
        >>>
        >>> app = FastAPI()
        >>> tork_dep = TorkFastAPIDependency(default_action="deny", block=True)
        >>>
        >>> @app.post("/chat")
        >>> async def chat(content: str, tork_result: GovernanceResult = Depends(tork_dep)):
        >>>     return {"output": tork_result.output}
    """

    def __init__(
        self,
        tork: Optional[Tork] = None,
        api_key: Optional[str] = None,
        policy_version: str = "1.0.0",
        default_action: str = "redact",
        block: bool = False,
    ):
        self.tork = tork or Tork(
            api_key=api_key,
            policy_version=policy_version,
            default_action=default_action,
        )
        self.block = block

    async def __call__(self, content: str) -> GovernanceResult:
        return self.govern(content)

    def govern(self, content: str) -> GovernanceResult:
        """Govern ``content``, raising 403 for denied content when blocking."""
        result = self.tork.govern(content)
        if self.block and result.denied:
            from fastapi import HTTPException
            raise HTTPException(status_code=403, detail=blocked_payload(result))
        return result
