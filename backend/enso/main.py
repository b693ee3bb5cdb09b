"""FastAPI application entrypoint."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from enso.api import ops, presence, references
from enso.api.errors import install_error_handlers
from enso.domain.presence.profiles import PostgresUserDirectory
from enso.domain.presence.service import PresenceService
from enso.domain.presence.sockets import PresenceNamespace
from enso.domain.presence.sweeper import run_presence_sweeper
from enso.domain.references.clients import ReferenceSearchClient
from enso.domain.references.resolver import ReferenceResolver
from enso.infra import postgres
from enso.infra.http import create_search_http_client
from enso.infra.redis import close_redis_client, create_redis_client
from enso.obs import init as obs_init
from enso.settings import redacted_dsn, settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	redis_client = create_redis_client()
	pool = await postgres.create_pool()
	http_client = create_search_http_client()
	logger.info(
		"enso startup redis=%s postgres=%s search=%s",
		redacted_dsn(settings.redis_url),
		redacted_dsn(settings.postgres_url),
		settings.search_api_url,
	)

	presence_service = PresenceService(redis_client, PostgresUserDirectory(pool))
	presence_namespace.bind_service(presence_service)
	presence_service.set_notifier(presence_namespace.broadcast)
	app.state.presence_service = presence_service
	app.state.reference_resolver = ReferenceResolver(ReferenceSearchClient(http_client))

	sweeper = asyncio.create_task(run_presence_sweeper(presence_service), name="presence-sweeper")
	try:
		yield
	finally:
		sweeper.cancel()
		await asyncio.gather(sweeper, return_exceptions=True)
		presence_service.set_notifier(None)
		presence_namespace.bind_service(None)
		app.state.presence_service = None
		app.state.reference_resolver = None
		await http_client.aclose()
		await postgres.close_pool(pool)
		await close_redis_client(redis_client)


app = FastAPI(title="Enso References & Presence", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(settings.cors_allow_origins)
if not allow_origins:
	allow_origins = ["http://localhost:3000"] if settings.is_dev() else []

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)
obs_init(app)

app.include_router(ops.router)
app.include_router(references.router)
app.include_router(presence.router)

sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=allow_origins)
presence_namespace = PresenceNamespace()
sio.register_namespace(presence_namespace)
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)
