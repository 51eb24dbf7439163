import asyncio
import datetime
import os, sys
import warnings
from dataclasses import replace
from pathlib import Path

import pytest

# Add src/ to sys.path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

# Ensure required environment variables for config validation
os.environ.setdefault("DISCORD_API_TOKEN", "test-token")
os.environ.setdefault("DOCUMENT_CHANNEL_ID", "100")
os.environ.setdefault("DOCUMENT_NAMES", "settings.json")

# Silence deprecation warnings surfaced from third-party dependencies during tests
warnings.filterwarnings(
    "ignore", category=DeprecationWarning, module=r"^discord\\.player$"
)
warnings.filterwarnings("ignore", "'audioop' is deprecated", DeprecationWarning)

from threadstore.errors import StoreUnavailable  # noqa: E402
from threadstore.store import Record, RecordContent  # noqa: E402


def pytest_configure(config):
    warnings.filterwarnings(
        "ignore", category=DeprecationWarning, module=r"^discord\\.player$"
    )
    warnings.filterwarnings("ignore", "'audioop' is deprecated", DeprecationWarning)


_EPOCH = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)


class FakeRecordStore:
    """In-memory Record Store; thread ids equal their starter record id."""

    def __init__(self, author_id: int = 1) -> None:
        self.author_id = author_id
        self.streams: dict[int, list[Record]] = {}
        self.calls: list[tuple] = []
        self.failing: set[str] = set()
        self._next_id = 1000

    # -- helpers -------------------------------------------------------- #

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def _check(self, op: str, stream_id: int) -> None:
        self.calls.append((op, stream_id))
        if op in self.failing:
            raise StoreUnavailable(f"{op} failed", stream_id=stream_id)

    def _find(self, stream_id: int, record_id: int) -> int:
        for idx, record in enumerate(self.streams.get(stream_id, [])):
            if record.id == record_id:
                return idx
        raise StoreUnavailable(f"record {record_id} not found", stream_id=stream_id)

    def seed(self, stream_id: int, text: str = "", *, author_id: int | None = None, **kwargs) -> Record:
        record_id = self._new_id()
        record = Record(
            id=record_id,
            stream_id=stream_id,
            author_id=self.author_id if author_id is None else author_id,
            created_at=_EPOCH + datetime.timedelta(seconds=record_id),
            content=text,
            **kwargs,
        )
        self.streams.setdefault(stream_id, []).append(record)
        return record

    def texts(self, stream_id: int) -> list[str]:
        return [r.content for r in self.streams.get(stream_id, [])]

    def count(self, op: str) -> int:
        return sum(1 for name, _ in self.calls if name == op)

    # -- RecordStore ---------------------------------------------------- #

    async def fetch_page(self, stream_id, *, limit, before=None):
        self._check("fetch_page", stream_id)
        await asyncio.sleep(0)
        newest_first = [
            r for r in reversed(self.streams.get(stream_id, []))
            if before is None or r.id < before
        ]
        return newest_first[:limit]

    async def fetch_record(self, stream_id, record_id):
        self._check("fetch_record", stream_id)
        await asyncio.sleep(0)
        return self.streams[stream_id][self._find(stream_id, record_id)]

    async def create_record(self, stream_id, content: RecordContent):
        self._check("create_record", stream_id)
        await asyncio.sleep(0)
        return self.seed(
            stream_id,
            content.text,
            fields=dict(content.fields),
            controls=tuple(content.controls),
        )

    async def edit_record(self, stream_id, record_id, content: RecordContent):
        self._check("edit_record", stream_id)
        await asyncio.sleep(0)
        idx = self._find(stream_id, record_id)
        updated = replace(
            self.streams[stream_id][idx],
            content=content.text,
            fields=dict(content.fields),
            controls=tuple(content.controls),
        )
        self.streams[stream_id][idx] = updated
        return updated

    async def delete_record(self, stream_id, record_id):
        self._check("delete_record", stream_id)
        await asyncio.sleep(0)
        self.streams[stream_id].pop(self._find(stream_id, record_id))

    async def attach_substream(self, stream_id, record_id, name):
        self._check("attach_substream", stream_id)
        await asyncio.sleep(0)
        idx = self._find(stream_id, record_id)
        self.streams[stream_id][idx] = replace(
            self.streams[stream_id][idx],
            has_substream=True,
            substream_id=record_id,
            substream_name=name,
        )
        self.streams.setdefault(record_id, [])
        return record_id

    async def fetch_substream_of(self, stream_id, record_id):
        self._check("fetch_substream_of", stream_id)
        return self.streams[stream_id][self._find(stream_id, record_id)].substream_id

    async def detach_substream(self, stream_id, record_id):
        self._check("detach_substream", stream_id)
        idx = self._find(stream_id, record_id)
        self.streams[stream_id][idx] = replace(
            self.streams[stream_id][idx],
            has_substream=False,
            substream_id=None,
            substream_name=None,
        )
        self.streams.pop(record_id, None)


@pytest.fixture
def store():
    return FakeRecordStore()


@pytest.fixture
def store_factory():
    return FakeRecordStore
