"""
Dispatcher and Application boot: mounting, middlewares, transformers,
handler invocation and boot-time failures.
"""

import asyncio

import pytest

from trellis import Application, Config, LoggerService, create_app
from trellis.controller import (
    GET, POST,
    Dispatcher,
    RequestCtx,
    RouteTable,
    Router,
    TransformedContext,
    api_module,
    controller,
)
from trellis.di import Container, UnboundTokenError
from trellis.faults import ConfigurationError
from trellis.middleware import RequestIdMiddleware
from trellis.response import Response
from trellis.testing import TestClient, make_test_scope


class Greeter:
    def greet(self, name: str) -> str:
        return f"hello {name}"


# ============================================================================
# Mounting
# ============================================================================

class TestMounting:

    @pytest.mark.asyncio
    async def test_module_order_decides_precedence(self, store, test_config):
        @controller("/items", store=store)
        class Wildcard:
            @GET("/:id")
            def show(self, ctx):
                return {"by": "wildcard", "id": ctx.params["id"]}

        @controller("/items", store=store)
        class Special:
            @GET("/special")
            def special(self, ctx):
                return {"by": "special"}

        @api_module(controllers=[Special, Wildcard], store=store)
        class SpecialFirst:
            pass

        @api_module(controllers=[Wildcard, Special], store=store)
        class WildcardFirst:
            pass

        a = TestClient(create_app([SpecialFirst], store=store, config=test_config))
        b = TestClient(create_app([WildcardFirst], store=store, config=test_config))

        assert (await a.get("/items/special")).json()["data"] == {"by": "special"}
        assert (await b.get("/items/special")).json()["data"] == {"by": "wildcard", "id": "special"}

    def test_routes_listed_in_mount_order(self, store, test_config):
        @controller("/users", store=store)
        class Users:
            @GET("/")
            def index(self, ctx):
                pass

            @POST("/")
            def create(self, ctx):
                pass

        @controller(store=store)
        class Health:
            @GET("/health")
            def health(self, ctx):
                pass

        @api_module(controllers=[Users, Health], store=store)
        class Api:
            pass

        app = create_app([Api], store=store, config=test_config)
        assert [(r["method"], r["path"], r["handler"]) for r in app.routes()] == [
            ("GET", "/users", "index"),
            ("POST", "/users", "create"),
            ("GET", "/health", "health"),
        ]

    def test_dispatcher_mount_directly(self, store, container):
        @controller("/ping", store=store)
        class Ping:
            @GET("/")
            def ping(self, ctx):
                return "pong"

        @api_module(controllers=[Ping], store=store)
        class Api:
            pass

        container.bind(Ping).to_self().in_singleton_scope()
        router = Router()
        mounted = Dispatcher(container, store).mount(router, [Api])

        assert [r.path for r in mounted] == ["/ping"]
        assert router.match("GET", "/ping") is not None

    def test_missing_handler_fails_at_boot(self, store, test_config):
        @controller("/broken", routes=RouteTable().get("/", "does_not_exist"), store=store)
        class Broken:
            pass

        @api_module(controllers=[Broken], store=store)
        class Api:
            pass

        app = Application([Api], store=store, config=test_config)
        with pytest.raises(ConfigurationError) as exc_info:
            app.build()

        assert exc_info.value.code == "HANDLER_NOT_FOUND"
        assert app.router is None

    def test_partial_failure_exposes_no_router(self, store, test_config):
        @controller("/ok", store=store)
        class Ok:
            @GET("/")
            def index(self, ctx):
                pass

        @controller("/needs", store=store)
        class NeedsGreeter:
            def __init__(self, greeter: Greeter):
                self.greeter = greeter

            @GET("/")
            def index(self, ctx):
                pass

        @api_module(controllers=[Ok, NeedsGreeter], store=store)
        class Api:
            pass

        app = Application([Api], store=store, config=test_config)
        with pytest.raises(UnboundTokenError):
            app.build()
        assert app.router is None

    def test_unknown_module(self, store, test_config):
        class NotAModule:
            pass

        with pytest.raises(ConfigurationError) as exc_info:
            create_app([NotAModule], store=store, config=test_config)
        assert exc_info.value.code == "MODULE_NOT_DEFINED"

    def test_build_is_idempotent(self, store, test_config):
        @controller("/once", store=store)
        class Once:
            @GET("/")
            def index(self, ctx):
                pass

        @api_module(controllers=[Once], store=store)
        class Api:
            pass

        app = create_app([Api], store=store, config=test_config)
        router = app.router
        assert app.build() is router
        assert len(app.routes()) == 1

    def test_controller_listed_twice_in_module_mounts_once(self, store, test_config, caplog):
        @controller("/x", store=store)
        class X:
            @GET("/")
            def index(self, ctx):
                pass

        @api_module(controllers=[X, X], store=store)
        class Api:
            pass

        app = create_app([Api], store=store, config=test_config)

        assert app.routes() == [{"method": "GET", "path": "/x", "controller": X.__qualname__, "handler": "index"}]
        assert any("listed again" in r.getMessage() for r in caplog.records)

    def test_controller_shared_by_two_modules_mounts_once(self, store, test_config):
        @controller("/shared", store=store)
        class Shared:
            @GET("/")
            def index(self, ctx):
                pass

        @controller("/own", store=store)
        class Own:
            @GET("/")
            def index(self, ctx):
                pass

        @api_module(controllers=[Shared], store=store)
        class First:
            pass

        @api_module(controllers=[Own, Shared], store=store)
        class Second:
            pass

        app = create_app([First, Second], store=store, config=test_config)

        assert [r["path"] for r in app.routes()] == ["/shared", "/own"]


# ============================================================================
# Dependency injection at boot
# ============================================================================

class TestControllerInjection:

    @pytest.mark.asyncio
    async def test_controller_dependencies_resolved(self, store, test_config):
        @controller("/greet", store=store)
        class GreetController:
            def __init__(self, greeter: Greeter, config: Config, logger: LoggerService):
                self.greeter = greeter
                self.config = config
                self.logger = logger

            @GET("/:name")
            def greet(self, ctx):
                return {"message": self.greeter.greet(ctx.params["name"]), "env": self.config.environment}

        @api_module(controllers=[GreetController], store=store)
        class Api:
            pass

        container = Container()
        container.bind(Greeter).to_self().in_singleton_scope()
        app = create_app([Api], store=store, config=test_config, container=container)

        resp = await TestClient(app).get("/greet/ada")
        assert resp.json()["data"] == {"message": "hello ada", "env": "test"}

        instance = container.resolve(GreetController)
        assert instance is container.resolve(GreetController)
        assert container.resolve(Config) is test_config


# ============================================================================
# Handler invocation
# ============================================================================

class TestHandlers:

    @pytest.fixture
    def client(self, store, test_config):
        @controller("/h", store=store)
        class Handlers:
            @GET("/sync")
            def sync_handler(self, ctx):
                return {"kind": "sync"}

            @GET("/async")
            async def async_handler(self, ctx):
                await asyncio.sleep(0)
                return {"kind": "async"}

            @POST("/", status_code=201)
            async def create(self, ctx):
                return ctx.body

            @GET("/raw")
            def raw(self, ctx):
                return Response.text("plain", status=202)

            @GET("/none")
            def nothing(self, ctx):
                return None

            @GET("/query")
            def query(self, ctx):
                return ctx.query

        @api_module(controllers=[Handlers], store=store)
        class Api:
            pass

        return TestClient(create_app([Api], store=store, config=test_config))

    @pytest.mark.asyncio
    async def test_sync_and_async(self, client):
        assert (await client.get("/h/sync")).json() == {"status": "success", "data": {"kind": "sync"}}
        assert (await client.get("/h/async")).json() == {"status": "success", "data": {"kind": "async"}}

    @pytest.mark.asyncio
    async def test_route_status_code(self, client):
        resp = await client.post("/h", json={"name": "ada"})
        assert resp.status_code == 201
        assert resp.json()["data"] == {"name": "ada"}

    @pytest.mark.asyncio
    async def test_response_passes_through(self, client):
        resp = await client.get("/h/raw")
        assert resp.status_code == 202
        assert resp.text == "plain"

    @pytest.mark.asyncio
    async def test_none_is_wrapped(self, client):
        assert (await client.get("/h/none")).json() == {"status": "success", "data": None}

    @pytest.mark.asyncio
    async def test_query_first_values(self, client):
        resp = await client.get("/h/query?tag=a&tag=b&page=2")
        assert resp.json()["data"] == {"tag": "a", "page": "2"}

    @pytest.mark.asyncio
    async def test_invalid_json_body(self, client):
        resp = await client.post(
            "/h", body=b"{not json", headers={"content-type": "application/json"}
        )
        assert resp.status_code == 400
        assert resp.json()["data"]["code"] == "INVALID_JSON"


# ============================================================================
# Context transformers
# ============================================================================

class TestTransformers:

    @pytest.mark.asyncio
    async def test_custom_transformer(self, store, test_config):
        async def user_id_transformer(request):
            raw = request.path_params["id"]
            if not raw.isdigit():
                raise ValueError(f"id must be numeric, got {raw!r}")
            return TransformedContext(params={"id": int(raw)})

        @controller("/users", store=store)
        class Users:
            @GET("/:id", transformer=user_id_transformer)
            def show(self, ctx):
                return {"id": ctx.params["id"], "type": type(ctx.params["id"]).__name__}

        @api_module(controllers=[Users], store=store)
        class Api:
            pass

        client = TestClient(create_app([Api], store=store, config=test_config))

        ok = await client.get("/users/7")
        assert ok.json()["data"] == {"id": 7, "type": "int"}

        bad = await client.get("/users/abc")
        assert bad.status_code == 400
        body = bad.json()
        assert body["status"] == "error"
        assert body["message"] == "id must be numeric, got 'abc'"
        assert body["data"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_sync_transformer(self, store, test_config):
        def shout(request):
            return TransformedContext(body="LOUD")

        @controller("/t", store=store)
        class T:
            @POST("/", transformer=shout)
            def create(self, ctx):
                return ctx.body

        @api_module(controllers=[T], store=store)
        class Api:
            pass

        resp = await TestClient(create_app([Api], store=store, config=test_config)).post("/t", json={"x": 1})
        assert resp.json()["data"] == "LOUD"

    @pytest.mark.asyncio
    async def test_transformer_wrong_return_type(self, store, test_config):
        def broken(request):
            return {"body": 1}

        @controller("/t", store=store)
        class T:
            @GET("/", transformer=broken)
            def index(self, ctx):
                return "unreachable"

        @api_module(controllers=[T], store=store)
        class Api:
            pass

        resp = await TestClient(create_app([Api], store=store, config=test_config)).get("/t")
        assert resp.status_code == 500
        assert resp.json()["data"]["code"] == "INTERNAL_ERROR"


# ============================================================================
# Middlewares
# ============================================================================

class TestMiddlewares:

    @pytest.mark.asyncio
    async def test_order_global_controller_route(self, store, test_config):
        calls = []

        def tracer(name):
            async def middleware(request, ctx: RequestCtx, next):
                calls.append(f"{name}:before")
                response = await next(request, ctx)
                calls.append(f"{name}:after")
                return response
            return middleware

        @controller("/m", middlewares=[tracer("ctrl1"), tracer("ctrl2")], store=store)
        class M:
            @GET("/", middlewares=[tracer("route")])
            def index(self, ctx):
                calls.append("handler")
                return "ok"

        @api_module(controllers=[M], store=store)
        class Api:
            pass

        app = create_app([Api], store=store, config=test_config, middlewares=[tracer("global")])
        resp = await TestClient(app).get("/m")

        assert resp.status_code == 200
        assert calls == [
            "global:before",
            "ctrl1:before",
            "ctrl2:before",
            "route:before",
            "handler",
            "route:after",
            "ctrl2:after",
            "ctrl1:after",
            "global:after",
        ]

    @pytest.mark.asyncio
    async def test_controller_middleware_short_circuits(self, store, test_config):
        handled = []

        async def deny(request, ctx, next):
            return Response.json({"status": "error", "message": "denied"}, status=403)

        @controller("/secret", middlewares=[deny], store=store)
        class Secret:
            @GET("/")
            def index(self, ctx):
                handled.append(True)
                return "secret"

        @api_module(controllers=[Secret], store=store)
        class Api:
            pass

        resp = await TestClient(create_app([Api], store=store, config=test_config)).get("/secret")
        assert resp.status_code == 403
        assert handled == []

    @pytest.mark.asyncio
    async def test_middleware_errors_use_error_pipeline(self, store, test_config):
        from trellis.faults import Unauthorized

        async def require_auth(request, ctx, next):
            if request.header("authorization") is None:
                raise Unauthorized("missing credentials")
            return await next(request, ctx)

        @controller("/private", middlewares=[require_auth], store=store)
        class Private:
            @GET("/")
            def index(self, ctx):
                return "welcome"

        @api_module(controllers=[Private], store=store)
        class Api:
            pass

        client = TestClient(create_app([Api], store=store, config=test_config))

        denied = await client.get("/private")
        assert denied.status_code == 401
        assert denied.json()["message"] == "missing credentials"

        allowed = await client.get("/private", headers={"Authorization": "Bearer t"})
        assert allowed.json()["data"] == "welcome"

    @pytest.mark.asyncio
    async def test_global_middleware_wraps_not_found(self, store, test_config):
        @api_module(controllers=[], store=store)
        class Empty:
            pass

        app = create_app([Empty], store=store, config=test_config, middlewares=[RequestIdMiddleware()])
        resp = await TestClient(app).get("/nope", headers={"X-Request-ID": "req-1"})

        assert resp.status_code == 404
        assert resp.header("x-request-id") == "req-1"


# ============================================================================
# Cancellation and disconnects
# ============================================================================

class TestAbort:

    @pytest.mark.asyncio
    async def test_client_disconnect_sends_nothing(self, store, test_config):
        @controller("/upload", store=store)
        class Upload:
            @POST("/")
            def create(self, ctx):
                return ctx.body

        @api_module(controllers=[Upload], store=store)
        class Api:
            pass

        app = create_app([Api], store=store, config=test_config)
        sent = []

        async def receive():
            return {"type": "http.disconnect"}

        async def send(message):
            sent.append(message)

        scope = make_test_scope("POST", "/upload", headers=[("content-type", "application/json")])
        await app(scope, receive, send)
        assert sent == []

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, store, test_config):
        @controller("/slow", store=store)
        class Slow:
            @GET("/")
            async def index(self, ctx):
                raise asyncio.CancelledError()

        @api_module(controllers=[Slow], store=store)
        class Api:
            pass

        app = create_app([Api], store=store, config=test_config)
        sent = []

        async def receive():
            return {"type": "http.request", "body": b"", "more_body": False}

        async def send(message):
            sent.append(message)

        with pytest.raises(asyncio.CancelledError):
            await app(make_test_scope("GET", "/slow"), receive, send)
        assert sent == []
