"""
Tests for FastAPI adapter.

Tests cover:
- Configuration
- Redaction of the governed field before the handler sees it
- 403 responses for denied requests
- Pass-through of non-JSON, skipped and read-only requests
- Custom block responses
- Dependency injection governance
"""

import json

import pytest
from tork_governance import GovernanceAction, Tork
from tork_governance.adapters.fastapi import (
    TorkFastAPIDependency,
    TorkFastAPIMiddleware,
    _replay_body,
)
from .test_data import EXPECTED_REDACTIONS, PII_MESSAGES, PII_SAMPLES, REQUEST_BODIES


class MockApp:
    """Mock ASGI app that records the request body it receives."""

    def __init__(self):
        self.calls = []
        self.bodies = []

    async def __call__(self, scope, receive, send):
        self.calls.append(scope)
        message = await receive()
        self.bodies.append(message.get("body", b""))
        await send({
            "type": "http.response.start",
            "status": 200,
            "headers": [(b"content-type", b"application/json")],
        })
        await send({
            "type": "http.response.body",
            "body": b'{"status": "ok"}',
        })


def create_mock_receive(body: bytes, chunk_size: int = 0):
    """Create a mock receive function, optionally splitting the body."""
    if chunk_size:
        chunks = [body[i:i + chunk_size] for i in range(0, len(body), chunk_size)]
    else:
        chunks = [body]
    messages = [
        {"type": "http.request", "body": chunk, "more_body": i < len(chunks) - 1}
        for i, chunk in enumerate(chunks)
    ]

    async def receive():
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    return receive


def create_mock_send():
    """Create a mock send function."""
    messages = []

    async def send(message):
        messages.append(message)

    send.messages = messages
    return send


def make_scope(path="/api/chat", method="POST", body=b""):
    return {
        "type": "http",
        "method": method,
        "path": path,
        "headers": [
            (b"content-type", b"application/json"),
            (b"content-length", str(len(body)).encode()),
        ],
    }


async def run_middleware(middleware, body_dict, path="/api/chat", method="POST", chunk_size=0):
    body = json.dumps(body_dict).encode("utf-8") if not isinstance(body_dict, bytes) else body_dict
    scope = make_scope(path, method, body)
    send = create_mock_send()
    await middleware(scope, create_mock_receive(body, chunk_size), send)
    return scope, send.messages


class TestFastAPIConfiguration:
    """Test FastAPI adapter configuration."""

    def test_middleware_defaults(self):
        """Test middleware default configuration."""
        middleware = TorkFastAPIMiddleware(MockApp())
        assert isinstance(middleware.tork, Tork)
        assert middleware.protected_paths == ["/"]
        assert middleware.skip_paths == []
        assert middleware.on_block is None

    def test_middleware_custom_tork(self, tork_instance):
        """Test middleware with a provided Tork instance."""
        middleware = TorkFastAPIMiddleware(MockApp(), tork=tork_instance)
        assert middleware.tork is tork_instance

    def test_middleware_default_action(self):
        """Test middleware builds its client with the given action."""
        middleware = TorkFastAPIMiddleware(MockApp(), default_action="deny", policy_version="2.0.0")
        assert middleware.tork.default_action == GovernanceAction.DENY
        assert middleware.tork.policy_version == "2.0.0"


class TestFastAPIMiddlewareGovernance:
    """Test middleware request governance."""

    @pytest.mark.asyncio
    async def test_redacts_body(self, tork_instance):
        """Test the handler receives the redacted body."""
        app = MockApp()
        middleware = TorkFastAPIMiddleware(app, tork=tork_instance)
        scope, messages = await run_middleware(middleware, REQUEST_BODIES["email_pii"])

        received = json.loads(app.bodies[0])
        assert received["content"] == f"Contact me at {EXPECTED_REDACTIONS['email']} for details"
        assert PII_SAMPLES["email"].encode() not in app.bodies[0]
        assert messages[0]["status"] == 200

        result = scope["state"]["tork_result"]
        assert result.action == GovernanceAction.REDACT
        assert scope["state"]["tork_redacted_content"] == received["content"]

    @pytest.mark.asyncio
    async def test_content_length_updated(self, tork_instance):
        """Test content-length reflects the rewritten body."""
        app = MockApp()
        middleware = TorkFastAPIMiddleware(app, tork=tork_instance)
        await run_middleware(middleware, REQUEST_BODIES["ssn_pii"])

        headers = dict(app.calls[0]["headers"])
        assert headers[b"content-length"] == str(len(app.bodies[0])).encode()

    @pytest.mark.asyncio
    async def test_chunked_body(self, tork_instance):
        """Test bodies arriving in several messages are governed."""
        app = MockApp()
        middleware = TorkFastAPIMiddleware(app, tork=tork_instance)
        await run_middleware(middleware, REQUEST_BODIES["credit_card_pii"], chunk_size=7)

        assert json.loads(app.bodies[0])["prompt"] == f"Card number: {EXPECTED_REDACTIONS['credit_card']}"

    @pytest.mark.asyncio
    async def test_other_fields_preserved(self, tork_instance):
        """Test fields other than the governed one are untouched."""
        app = MockApp()
        middleware = TorkFastAPIMiddleware(app, tork=tork_instance)
        await run_middleware(middleware, REQUEST_BODIES["query_pii"])

        assert json.loads(app.bodies[0]) == {"query": "My SSN is [SSN_REDACTED]", "limit": 10}

    @pytest.mark.asyncio
    async def test_clean_body_allowed(self, tork_instance):
        """Test clean content passes unchanged."""
        app = MockApp()
        middleware = TorkFastAPIMiddleware(app, tork=tork_instance)
        scope, _ = await run_middleware(middleware, REQUEST_BODIES["clean"])

        assert json.loads(app.bodies[0]) == REQUEST_BODIES["clean"]
        assert scope["state"]["tork_result"].action == GovernanceAction.ALLOW
        assert "tork_redacted_content" not in scope["state"]

    @pytest.mark.asyncio
    async def test_deny_returns_403(self, deny_tork):
        """Test denied requests never reach the handler."""
        app = MockApp()
        middleware = TorkFastAPIMiddleware(app, tork=deny_tork)
        scope, messages = await run_middleware(middleware, {"message": PII_MESSAGES["ssn_message"]})

        assert app.calls == []
        assert messages[0]["status"] == 403
        payload = json.loads(messages[1]["body"])
        assert payload["error"] == "Request blocked by governance policy"
        assert payload["pii_types"] == ["ssn"]
        assert payload["receipt_id"] == scope["state"]["tork_result"].receipt.receipt_id
        headers = dict(messages[0]["headers"])
        assert headers[b"content-length"] == str(len(messages[1]["body"])).encode()

    @pytest.mark.asyncio
    async def test_deny_clean_content_allowed(self, deny_tork):
        """Test deny mode still lets clean content through."""
        app = MockApp()
        middleware = TorkFastAPIMiddleware(app, tork=deny_tork)
        _, messages = await run_middleware(middleware, REQUEST_BODIES["clean"])

        assert len(app.calls) == 1
        assert messages[0]["status"] == 200

    @pytest.mark.asyncio
    async def test_escalate_passes_original(self, escalate_tork):
        """Test escalated requests reach the handler unmodified."""
        app = MockApp()
        middleware = TorkFastAPIMiddleware(app, tork=escalate_tork)
        scope, _ = await run_middleware(middleware, REQUEST_BODIES["phone_pii"])

        assert json.loads(app.bodies[0]) == REQUEST_BODIES["phone_pii"]
        assert scope["state"]["tork_result"].escalated

    @pytest.mark.asyncio
    async def test_on_block_response(self, deny_tork):
        """Test a custom block response replaces the default 403."""
        seen = []

        async def teapot(scope, receive, send):
            await send({"type": "http.response.start", "status": 418, "headers": []})
            await send({"type": "http.response.body", "body": b"blocked"})

        def on_block(scope, result):
            seen.append(result)
            return teapot

        app = MockApp()
        middleware = TorkFastAPIMiddleware(app, tork=deny_tork, on_block=on_block)
        _, messages = await run_middleware(middleware, REQUEST_BODIES["email_pii"])

        assert app.calls == []
        assert messages[0]["status"] == 418
        assert seen[0].denied


class TestFastAPIPassThrough:
    """Test requests the middleware does not govern."""

    @pytest.mark.asyncio
    async def test_non_json_body(self, tork_instance):
        """Test non-JSON bodies are forwarded unchanged."""
        app = MockApp()
        middleware = TorkFastAPIMiddleware(app, tork=tork_instance)
        raw = b"My SSN is 123-45-6789"
        scope, _ = await run_middleware(middleware, raw)

        assert app.bodies[0] == raw
        assert "tork_result" not in scope.get("state", {})
        assert tork_instance.stats["total_calls"] == 0

    @pytest.mark.asyncio
    async def test_no_content_field(self, tork_instance):
        """Test bodies without a candidate field are forwarded unchanged."""
        app = MockApp()
        middleware = TorkFastAPIMiddleware(app, tork=tork_instance)
        body = {"unknown_field": PII_SAMPLES["ssn"]}
        await run_middleware(middleware, body)

        assert json.loads(app.bodies[0]) == body

    @pytest.mark.asyncio
    async def test_skip_paths(self, deny_tork):
        """Test skipped paths are not governed."""
        app = MockApp()
        middleware = TorkFastAPIMiddleware(app, tork=deny_tork, skip_paths=["/health"])
        _, messages = await run_middleware(middleware, REQUEST_BODIES["ssn_pii"], path="/health")

        assert messages[0]["status"] == 200
        assert deny_tork.stats["total_calls"] == 0

    @pytest.mark.asyncio
    async def test_unprotected_paths(self, deny_tork):
        """Test paths outside the protected prefixes are not governed."""
        app = MockApp()
        middleware = TorkFastAPIMiddleware(app, tork=deny_tork, protected_paths=["/api/"])
        _, messages = await run_middleware(middleware, REQUEST_BODIES["ssn_pii"], path="/public")

        assert messages[0]["status"] == 200

    @pytest.mark.asyncio
    async def test_get_request(self, deny_tork):
        """Test read-only methods are not governed."""
        app = MockApp()
        middleware = TorkFastAPIMiddleware(app, tork=deny_tork)
        _, messages = await run_middleware(middleware, REQUEST_BODIES["ssn_pii"], method="GET")

        assert messages[0]["status"] == 200
        assert deny_tork.stats["total_calls"] == 0

    @pytest.mark.asyncio
    async def test_non_http_scope(self, tork_instance):
        """Test non-HTTP scopes pass straight through."""
        calls = []

        async def app(scope, receive, send):
            calls.append(scope)

        middleware = TorkFastAPIMiddleware(app, tork=tork_instance)
        scope = {"type": "lifespan"}
        await middleware(scope, create_mock_receive(b""), create_mock_send())
        assert calls == [scope]


class TestFastAPIDependency:
    """Test dependency injection governance."""

    def test_dependency_defaults(self):
        """Test dependency default configuration."""
        dep = TorkFastAPIDependency()
        assert isinstance(dep.tork, Tork)

    @pytest.mark.asyncio
    async def test_dependency_call(self, tork_instance):
        """Test the dependency governs its content parameter."""
        dep = TorkFastAPIDependency(tork=tork_instance)
        result = await dep(PII_MESSAGES["phone_message"])
        assert result.action == GovernanceAction.REDACT
        assert EXPECTED_REDACTIONS["phone"] in result.output

    def test_dependency_govern(self, tork_instance):
        """Test explicit governance through the dependency."""
        dep = TorkFastAPIDependency(tork=tork_instance)
        result = dep.govern("What is the weather today?")
        assert result.action == GovernanceAction.ALLOW
        assert tork_instance.stats["total_calls"] == 1

    def test_dependency_default_action(self):
        """Test the dependency builds its client with the given action."""
        dep = TorkFastAPIDependency(default_action="deny")
        assert dep.tork.default_action == GovernanceAction.DENY
        assert dep.govern(PII_MESSAGES["ssn_message"]).denied

    def test_dependency_block_raises_403(self):
        """Test a blocking dependency raises HTTPException for denied content."""
        fastapi = pytest.importorskip("fastapi")
        dep = TorkFastAPIDependency(default_action="deny", block=True)
        with pytest.raises(fastapi.HTTPException) as exc_info:
            dep.govern(PII_MESSAGES["email_message"])
        assert exc_info.value.status_code == 403
        assert exc_info.value.detail["pii_types"] == ["email"]

    def test_dependency_block_allows_clean(self):
        """Test a blocking dependency returns results for clean content."""
        dep = TorkFastAPIDependency(default_action="deny", block=True)
        assert dep.govern("What is the weather today?").allowed


class TestFastAPIReceiveReplay:
    """Test the receive callable handed to the wrapped app."""

    @pytest.mark.asyncio
    async def test_replays_body_then_defers(self):
        """Test the body is replayed once and later calls reach the server."""
        upstream_calls = []

        async def upstream():
            upstream_calls.append(True)
            return {"type": "http.disconnect"}

        receive = _replay_body(b'{"content": "x"}', upstream)
        first = await receive()
        assert first == {"type": "http.request", "body": b'{"content": "x"}', "more_body": False}
        assert await receive() == {"type": "http.disconnect"}
        assert upstream_calls == [True]


class TestFastAPIApplication:
    """Test the middleware inside a real FastAPI application."""

    def create_app(self, tork):
        fastapi = pytest.importorskip("fastapi")
        from fastapi.responses import StreamingResponse

        app = fastapi.FastAPI()
        app.add_middleware(TorkFastAPIMiddleware, tork=tork, protected_paths=["/api/"])

        @app.post("/api/stream")
        async def stream(request: fastapi.Request):
            data = await request.json()

            async def chunks():
                yield data["content"].encode("utf-8")
                yield b"|"
                yield request.state.tork_result.action.value.encode("utf-8")

            return StreamingResponse(chunks(), media_type="text/plain")

        @app.post("/api/echo")
        async def echo(request: fastapi.Request):
            return await request.json()

        return app

    async def post(self, app, path, body):
        httpx = pytest.importorskip("httpx")
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            return await client.post(path, json=body)

    @pytest.mark.asyncio
    async def test_streaming_response_completes(self, tork_instance):
        """Test streaming routes finish after a governed request."""
        app = self.create_app(tork_instance)
        response = await self.post(app, "/api/stream", REQUEST_BODIES["email_pii"])

        assert response.status_code == 200
        assert response.text == f"Contact me at {EXPECTED_REDACTIONS['email']} for details|redact"

    @pytest.mark.asyncio
    async def test_streaming_response_clean_body(self, tork_instance):
        """Test streaming routes finish for clean requests."""
        app = self.create_app(tork_instance)
        response = await self.post(app, "/api/stream", REQUEST_BODIES["clean"])

        assert response.status_code == 200
        assert response.text == "What is the weather today?|allow"

    @pytest.mark.asyncio
    async def test_json_route_sees_redacted_body(self, tork_instance):
        """Test regular routes parse the redacted body."""
        app = self.create_app(tork_instance)
        response = await self.post(app, "/api/echo", REQUEST_BODIES["ssn_pii"])

        assert response.status_code == 200
        assert response.json() == {"text": f"My SSN is {EXPECTED_REDACTIONS['ssn']}"}

    @pytest.mark.asyncio
    async def test_denied_request(self, deny_tork):
        """Test denied requests get the 403 payload from a real application."""
        app = self.create_app(deny_tork)
        response = await self.post(app, "/api/stream", REQUEST_BODIES["email_pii"])

        assert response.status_code == 403
        assert response.json()["pii_types"] == ["email"]
