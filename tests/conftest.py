from __future__ import annotations

import json

import pytest
import pytest_asyncio

from pingwatch.database import build_engine, build_session_factory, create_tables


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'pingwatch-test.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


def script_for(url: str, assertions: list | None = None, **extra) -> str:
    """Single-step script document as stored on a monitor."""
    step = {"name": "check", "request": {"method": "GET", "url": url}}
    if assertions is not None:
        step["assert"] = assertions
    return json.dumps({"steps": [step], **extra})


@pytest.fixture
def make_script():
    return script_for
