"""
Pytest configuration for backend tests.

Every test gets its own in-memory SQLite database; API tests talk to the app
through httpx's ASGI transport with the DB dependency overridden.
"""
from __future__ import annotations

from typing import Callable, Dict

import httpx
import pytest
from httpx import ASGITransport
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from syllabus_editor import models  # noqa: F401  (registers tables on Base)
from syllabus_editor.db import Base, get_db
from syllabus_editor.main import app


@pytest.fixture
def anyio_backend():
	# Force asyncio backend to avoid trio in restricted environments
	return "asyncio"


@pytest.fixture
def engine():
	eng = create_engine(
		"sqlite://",
		connect_args={"check_same_thread": False},
		poolclass=StaticPool,
		future=True,
	)
	Base.metadata.create_all(bind=eng)
	yield eng
	eng.dispose()


@pytest.fixture
def session_factory(engine):
	return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


@pytest.fixture
def db_session(session_factory):
	session = session_factory()
	yield session
	session.close()


@pytest.fixture
def make_client(session_factory) -> Callable[[], httpx.AsyncClient]:
	def _get_db():
		session = session_factory()
		try:
			yield session
		finally:
			session.close()

	app.dependency_overrides[get_db] = _get_db

	def _factory() -> httpx.AsyncClient:
		return httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test")

	yield _factory
	app.dependency_overrides.clear()


async def register_and_login(client: httpx.AsyncClient, email: str, password: str = "secret123", name: str | None = None) -> Dict[str, str]:
	r = await client.post("/auth/register", json={"email": email, "password": password, "display_name": name})
	assert r.status_code == 201, r.text
	r = await client.post("/auth/token", data={"username": email, "password": password})
	assert r.status_code == 200, r.text
	return {"Authorization": f"Bearer {r.json()['access_token']}"}
