import sys
import time
from pathlib import Path

import httpx
import jwt
import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis
from httpx import ASGITransport, AsyncClient

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from enso.domain.presence.models import UserProfile
from enso.domain.presence.service import PresenceService
from enso.domain.references.clients import ReferenceSearchClient
from enso.domain.references.resolver import ReferenceResolver
from enso.infra import jwt as jwt_helper
from enso.infra.http import create_search_http_client
from enso.main import app
from enso.settings import settings

T0 = 1_700_000_000_000


class FakeClock:
	"""Millisecond clock the tests move by hand."""

	def __init__(self, start: int = T0) -> None:
		self.now = start

	def __call__(self) -> int:
		return self.now

	def advance(self, ms: int) -> None:
		self.now += ms


class StubDirectory:
	def __init__(self, *user_ids: str) -> None:
		self.profiles = {
			user_id: UserProfile(id=user_id, display_name=f"User {user_id}", handle=user_id) for user_id in user_ids
		}
		self.calls = 0

	def add(self, user_id: str) -> None:
		self.profiles[user_id] = UserProfile(id=user_id, display_name=f"User {user_id}", handle=user_id)

	def drop(self, user_id: str) -> None:
		self.profiles.pop(user_id, None)

	async def get_profiles(self, user_ids):
		self.calls += 1
		return {user_id: self.profiles[user_id] for user_id in user_ids if user_id in self.profiles}


class SearchStub:
	"""Records outbound search requests and answers with canned rows."""

	def __init__(self) -> None:
		self.requests: list[httpx.Request] = []
		self.rows: list[dict] = []
		self.status_code = 200

	def handler(self, request: httpx.Request) -> httpx.Response:
		self.requests.append(request)
		return httpx.Response(self.status_code, json=self.rows)


@pytest_asyncio.fixture
async def fake_redis():
	client = FakeRedis(decode_responses=True)
	try:
		yield client
	finally:
		await client.flushall()
		await client.aclose()


@pytest.fixture
def clock():
	return FakeClock()


@pytest.fixture
def directory():
	return StubDirectory("u1", "u2", "u3")


@pytest.fixture
def presence_service(fake_redis, directory, clock):
	return PresenceService(
		fake_redis,
		directory,
		active_window_ms=30_000,
		cleanup_window_ms=60_000,
		clock=clock,
	)


@pytest.fixture
def search_stub():
	return SearchStub()


@pytest_asyncio.fixture
async def search_http(search_stub):
	client = create_search_http_client(
		"http://search.test/api",
		timeout=1.0,
		transport=httpx.MockTransport(search_stub.handler),
	)
	try:
		yield client
	finally:
		await client.aclose()


@pytest.fixture
def resolver(search_http):
	return ReferenceResolver(ReferenceSearchClient(search_http), limit=5)


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Most API tests authenticate via X-User-Id headers, which are only accepted in dev mode."""
	original_env = settings.environment
	settings.environment = "dev"
	try:
		yield
	finally:
		settings.environment = original_env


@pytest_asyncio.fixture
async def api_client(presence_service, resolver):
	app.state.presence_service = presence_service
	app.state.reference_resolver = resolver
	transport = ASGITransport(app=app)
	try:
		async with AsyncClient(transport=transport, base_url="http://testserver") as client:
			yield client
	finally:
		app.state.presence_service = None
		app.state.reference_resolver = None


@pytest.fixture
def access_token():
	"""Mint access tokens the way the identity service does."""

	def _issue(sub: str, /, **claims) -> str:
		now = int(time.time())
		body = {"iss": jwt_helper.ISSUER, "aud": jwt_helper.AUDIENCE, "iat": now, "exp": now + 3600, "sub": sub}
		body.update(claims)
		return jwt.encode(body, settings.secret_key, algorithm=jwt_helper.ALGORITHM)

	return _issue
