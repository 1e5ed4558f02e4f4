"""
Users API example.

Run with:
    trellis serve examples.users_api:app --port 3000
    trellis routes examples.users_api:app
"""

import itertools
from dataclasses import dataclass
from typing import Dict, Optional

from trellis import (
    GET, POST,
    Config,
    Container,
    LoggerService,
    NotFound,
    Conflict,
    TransformedContext,
    api_module,
    controller,
    create_app,
    injectable,
)
from trellis.middleware import RequestIdMiddleware


@dataclass
class User:
    id: int
    email: str
    name: str


@injectable
class UserStore:
    """In-memory table standing in for a database."""

    def __init__(self):
        self.rows: Dict[int, User] = {}
        self._ids = itertools.count(1)

    def insert(self, email: str, name: str) -> User:
        user = User(id=next(self._ids), email=email, name=name)
        self.rows[user.id] = user
        return user


@injectable
class FindByEmailRepository:
    def __init__(self, store: UserStore):
        self.store = store

    async def execute(self, email: str) -> Optional[User]:
        for user in self.store.rows.values():
            if user.email == email:
                return user
        return None


@injectable
class UsersService:
    def __init__(self, store: UserStore, find_by_email: FindByEmailRepository, logger: LoggerService):
        self.store = store
        self.find_by_email = find_by_email
        self.logger = logger

    async def get(self, user_id: int) -> User:
        user = self.store.rows.get(user_id)
        if user is None:
            raise NotFound("not found", details={"id": user_id})
        return user

    async def by_email(self, email: str) -> User:
        user = await self.find_by_email.execute(email)
        if user is None:
            raise NotFound("not found", details={"email": email})
        return user

    async def register(self, email: str, name: str) -> User:
        if await self.find_by_email.execute(email) is not None:
            raise Conflict("email already registered", details={"email": email})
        user = self.store.insert(email, name)
        self.logger.info("UsersService", f"Registered user {user.id}")
        return user


async def user_id_params(request) -> TransformedContext:
    raw = request.path_params.get("id", "")
    if not raw.isdigit():
        raise ValueError(f"id must be a positive integer, got {raw!r}")
    return TransformedContext(params={"id": int(raw)})


async def registration_body(request) -> TransformedContext:
    body = await request.json()
    if not isinstance(body, dict):
        raise ValueError("body must be a JSON object")
    missing = [f for f in ("email", "name") if not body.get(f)]
    if missing:
        raise ValueError(f"missing fields: {', '.join(missing)}")
    if not isinstance(body["email"], str) or not isinstance(body["name"], str):
        raise ValueError("email and name must be strings")
    if "@" not in body["email"]:
        raise ValueError("email is invalid")
    return TransformedContext(body={"email": body["email"], "name": body["name"]})


@controller("/users")
class UsersController:
    def __init__(self, users: UsersService):
        self.users = users

    @GET("/")
    async def find(self, ctx):
        email = ctx.query.get("email")
        if email:
            return await self.users.by_email(email)
        return list(self.users.store.rows.values())

    @GET("/:id", transformer=user_id_params)
    async def show(self, ctx):
        return await self.users.get(ctx.params["id"])

    @POST("/", transformer=registration_body, status_code=201)
    async def register(self, ctx):
        return await self.users.register(ctx.body["email"], ctx.body["name"])


@controller("/health")
class HealthController:
    def __init__(self, config: Config):
        self.config = config

    @GET("/")
    def health(self, ctx):
        return {"ok": True, "environment": self.config.environment}


@api_module(controllers=[UsersController, HealthController])
class ApiV1:
    pass


def build_container() -> Container:
    container = Container()
    for service in (UserStore, FindByEmailRepository, UsersService):
        container.bind(service).to_self().in_singleton_scope()
    return container


app = create_app(
    [ApiV1],
    container=build_container(),
    config=Config.from_env(),
    middlewares=[RequestIdMiddleware()],
)
