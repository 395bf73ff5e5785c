"""Shared fixtures: throwaway SQLite database, stub uploader and extractor."""

import asyncio

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from tomekeeper.config import Settings
from tomekeeper.database import make_session_factory
from tomekeeper.ingest.items import FileSource
from tomekeeper.models import Base
from tomekeeper.repositories import RulebookRepository, WorldRepository
from tomekeeper.schemas import BatchMeta, GameSystem, StructuredContent


SAMPLE_EXTRACTION = {
    "character_options": {
        "races": ["Human", "Elf", "Dwarf"],
        "classes": ["Fighter", "Wizard"],
        "abilities": ["Second Wind"],
        "attributes": ["STR", "DEX", "CON", "INT", "WIS", "CHA"],
    },
    "game_mechanics": {
        "core_rules": "Roll a d20, add modifiers, beat a target number.",
        "dice_system": "d20",
        "progression": "Experience points and levels 1-20",
    },
    "detailed_mechanics": {
        "combat_rules": {"initiative": "DEX check", "special_actions": ["Dash", "Dodge"]},
    },
}


# ---------------------------------------------------------------------------
# Stubs
# ---------------------------------------------------------------------------

class StubUploader:
    """Uploader that fails a configurable number of times per filename.

    ``failures[name] = -1`` fails forever. ``gate``, when set, is awaited
    before every upload so tests can hold an item in ``uploading``.
    """

    def __init__(self, failures=None, gate=None):
        self.failures = dict(failures or {})
        self.gate = gate
        self.calls = []

    async def upload(self, data, filename, content_type="application/pdf"):
        self.calls.append(filename)
        if self.gate is not None:
            await self.gate.wait()
        remaining = self.failures.get(filename, 0)
        if remaining:
            if remaining > 0:
                self.failures[filename] = remaining - 1
            raise ConnectionError(f"blob store unavailable for {filename}")
        return f"https://blob.test/files/{filename}"


class StubExtractor:
    """Extractor keyed by document URL, with the same failure counters."""

    def __init__(self, failures=None, raw=None):
        self.failures = dict(failures or {})
        self.raw = SAMPLE_EXTRACTION if raw is None else raw
        self.calls = []

    async def extract(self, document_url, schema=None):
        self.calls.append(document_url)
        remaining = self.failures.get(document_url, 0)
        if remaining:
            if remaining > 0:
                self.failures[document_url] = remaining - 1
            raise RuntimeError("AI processing error")
        return StructuredContent.from_raw(self.raw)


def pdf(name):
    return FileSource(filename=name, data=b"%PDF-1.7 " + name.encode())


def blob_url(filename):
    return f"https://blob.test/files/{filename}"


async def settle(predicate, rounds=500):
    """Poll until *predicate()* holds; aiosqlite work runs on a thread."""
    for _ in range(rounds):
        if predicate():
            return
        await asyncio.sleep(0.01)
    raise AssertionError("condition never became true")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite://",
        google_api_key="test-key",
        retry_base_delay=0,
        upload_timeout_seconds=5,
        extract_timeout_seconds=5,
    )


@pytest.fixture
async def session_factory(tmp_path):
    # A file rather than :memory: so concurrent sessions get their own connections
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tomekeeper.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield make_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def rulebooks(session_factory):
    return RulebookRepository(session_factory)


@pytest.fixture
def worlds(session_factory):
    return WorldRepository(session_factory)


@pytest.fixture
def meta():
    return BatchMeta(game_system=GameSystem.DND5E, world_name="Test Realm")
