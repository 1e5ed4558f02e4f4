"""
End-to-end: full requests through Application, ErrorPipeline and the
envelope formatter.
"""

import logging

import httpx
import pytest

from trellis import (
    GET,
    Application,
    ClassifiedHandlerError,
    api_module,
    controller,
    create_app,
)
from trellis.testing import TestClient


@pytest.fixture
def app(store, test_config):
    seen = {}

    @controller("/users", store=store)
    class UsersController:
        @GET("/:id")
        async def show(self, ctx):
            seen["params"] = dict(ctx.params)
            return {"id": ctx.params["id"]}

        @GET("/:id/missing")
        async def missing(self, ctx):
            raise ClassifiedHandlerError(404, "not found", details={"id": ctx.params["id"]})

        @GET("/:id/broken")
        async def broken(self, ctx):
            raise RuntimeError("db down")

    @api_module(controllers=[UsersController], store=store)
    class ApiV1:
        pass

    application = create_app([ApiV1], store=store, config=test_config)
    application.seen = seen
    return application


# ============================================================================
# Routing
# ============================================================================

class TestRouting:

    @pytest.mark.asyncio
    async def test_path_params_reach_handler(self, app):
        resp = await TestClient(app).get("/users/42")

        assert resp.status_code == 200
        assert resp.json() == {"status": "success", "data": {"id": "42"}}
        assert app.seen["params"] == {"id": "42"}

    @pytest.mark.asyncio
    async def test_unregistered_path(self, app, caplog):
        caplog.set_level(logging.WARNING)

        resp = await TestClient(app).get("/nowhere")

        assert resp.status_code == 404
        body = resp.json()
        assert body["status"] == "error"
        assert body["message"] == "Not Found"
        assert body["data"]["code"] == "ROUTE_NOT_FOUND"

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert any("GET" in r.getMessage() and "/nowhere" in r.getMessage() for r in warnings)

    @pytest.mark.asyncio
    async def test_wrong_method_is_not_found(self, app):
        resp = await TestClient(app).delete("/users/42")
        assert resp.status_code == 404


# ============================================================================
# Error envelopes
# ============================================================================

class TestErrorEnvelopes:

    @pytest.mark.asyncio
    async def test_classified_error(self, app):
        resp = await TestClient(app).get("/users/7/missing")

        assert resp.status_code == 404
        body = resp.json()
        assert body["status"] == "error"
        assert body["message"] == "not found"
        assert body["data"]["status_code"] == 404
        assert body["data"]["details"] == {"id": "7"}

    @pytest.mark.asyncio
    async def test_unclassified_error_is_not_leaked(self, app, caplog):
        caplog.set_level(logging.ERROR)

        resp = await TestClient(app).get("/users/7/broken")

        assert resp.status_code == 500
        assert "db down" not in resp.text
        body = resp.json()
        assert body["status"] == "error"
        assert body["message"] == "Internal Server Error"
        assert body["data"]["code"] == "INTERNAL_ERROR"

        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert any("db down" in r.getMessage() for r in errors)
        assert any(body["data"]["trace_id"] in r.getMessage() for r in errors)


# ============================================================================
# ASGI compliance
# ============================================================================

class TestASGI:

    @pytest.mark.asyncio
    async def test_httpx_asgi_transport(self, app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            ok = await client.get("/users/42")
            missing = await client.get("/nope")

        assert ok.status_code == 200
        assert ok.headers["content-type"].startswith("application/json")
        assert ok.json()["data"] == {"id": "42"}
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_lifespan(self, store, test_config):
        @api_module(controllers=[], store=store)
        class Empty:
            pass

        started = []
        app = Application([Empty], store=store, config=test_config, on_startup=[_append(started, "up")],
                          on_shutdown=[_append(started, "down")])

        messages = iter([{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}])
        sent = []

        async def receive():
            return next(messages)

        async def send(message):
            sent.append(message["type"])

        await app({"type": "lifespan"}, receive, send)

        assert sent == ["lifespan.startup.complete", "lifespan.shutdown.complete"]
        assert started == ["up", "down"]
        assert app.router is not None

    @pytest.mark.asyncio
    async def test_lifespan_startup_failure(self, store, test_config):
        class NotAModule:
            pass

        app = Application([NotAModule], store=store, config=test_config)
        sent = []

        async def receive():
            return {"type": "lifespan.startup"}

        async def send(message):
            sent.append(message)

        await app({"type": "lifespan"}, receive, send)

        assert sent[0]["type"] == "lifespan.startup.failed"
        assert app.router is None

    @pytest.mark.asyncio
    async def test_unsupported_scope(self, app):
        async def receive():
            return {}

        async def send(message):
            pass

        with pytest.raises(RuntimeError):
            await app({"type": "websocket"}, receive, send)


def _append(target, value):
    async def hook():
        target.append(value)
    return hook
