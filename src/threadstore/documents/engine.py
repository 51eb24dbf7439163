"""
Document synchronization engine.

Each document is a JSON file on disk mirrored into a Discord thread:

* a locator record in the control channel carries the lock flag and owns the
  thread, which is named after the document;
* the thread holds a title record, the fenced JSON fragments in order, and a
  trailing control record with the Edit / Lock / Help buttons.

:meth:`DocumentEngine.initialize` compares the two copies and, when they
differ, lets the side named by the lock flag win. Reconciliation is
idempotent: re-running it after a partial failure converges on the same end
state.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List

from threadstore.errors import (
    DocumentNotFound,
    SizeLimitExceeded,
    StoreUnavailable,
    ValidationFailure,
)
from threadstore.memory.cache import StreamCache
from threadstore.store import Record, RecordContent, RecordStore

from . import backups, codec, controls
from .model import Document, LockState

logger = logging.getLogger(__name__)


class DocumentEngine:
    """Keeps named local documents and their remote threads consistent."""

    def __init__(
        self,
        store: RecordStore,
        cache: StreamCache,
        *,
        control_stream_id: int,
        directory: Path,
        author_id: int | None = None,
        fragment_length: int = 1986,
        max_edit_length: int = 4000,
    ) -> None:
        self._store = store
        self._cache = cache
        self._control_stream_id = control_stream_id
        self._directory = Path(directory)
        self.author_id = author_id
        self._fragment_length = fragment_length
        self._max_edit_length = max_edit_length
        self._documents: Dict[str, Document] = {}
        self._inflight: Dict[str, asyncio.Task[Document]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    @property
    def control_stream_id(self) -> int:
        return self._control_stream_id

    @property
    def max_edit_length(self) -> int:
        return self._max_edit_length

    # ------------------------------------------------------------------ #
    # READ helpers
    # ------------------------------------------------------------------ #

    def names(self) -> List[str]:
        return list(self._documents)

    def get(self, name: str) -> Document:
        try:
            return self._documents[name]
        except KeyError as exc:
            raise DocumentNotFound(f"Document {name!r} has not been initialized") from exc

    def values(self, name: str) -> Dict[str, Any]:
        """Return a deep copy of the document's current JSON object."""

        return copy.deepcopy(self.get(name).data)

    def document_for_locator(self, record_id: int) -> Document | None:
        for doc in self._documents.values():
            if doc.locator_record_id == record_id:
                return doc
        return None

    # ------------------------------------------------------------------ #
    # RECONCILIATION
    # ------------------------------------------------------------------ #

    async def initialize(self, name: str) -> Document:
        """
        Reconcile ``name`` and return its in-memory document.

        Concurrent calls for the same name share one run: a caller arriving
        while a reconciliation is in flight awaits that run's result.

        :raises StoreUnavailable: a Record Store call failed.
        :raises ValidationFailure: the local file or the remote copy that
            would replace it is not a JSON object.
        :raises SizeLimitExceeded: a single line cannot fit in a fragment.
        """
        inflight = self._inflight.get(name)
        if inflight is not None and not inflight.done():
            logger.debug("Joining in-flight initialization of %s", name)
            return await asyncio.shield(inflight)

        task = asyncio.create_task(self._run_initialize(name))
        self._inflight[name] = task
        task.add_done_callback(lambda t: self._clear_inflight(name, t))
        return await asyncio.shield(task)

    def _clear_inflight(self, name: str, task: asyncio.Task) -> None:
        if self._inflight.get(name) is task:
            del self._inflight[name]

    def _lock(self, name: str) -> asyncio.Lock:
        return self._locks.setdefault(name, asyncio.Lock())

    async def _run_initialize(self, name: str) -> Document:
        async with self._lock(name):
            try:
                return await self._reconcile(name)
            except StoreUnavailable as exc:
                logger.error(
                    "Failed to initialize document %s (stream %s)",
                    name,
                    exc.stream_id,
                    exc_info=True,
                )
                raise
            except (ValidationFailure, SizeLimitExceeded) as exc:
                logger.error("Document %s could not be reconciled: %s", name, exc)
                raise

    async def _reconcile(self, name: str) -> Document:
        known = self._documents.get(name)
        doc = copy.copy(known) if known else Document(name=name, local_path=self._local_path(name))

        locator = await self._cache.find_record(
            self._control_stream_id,
            lambda r: r.substream_name == name and self._is_own(r),
            strict=True,
        )
        if locator is None:
            await self._create_remote(doc)
            self._documents[name] = doc
            return doc

        doc.locator_record_id = locator.id
        doc.lock_state = LockState.from_record(locator.fields, locator.content)

        substream_id = locator.substream_id

        fragment_records: List[Record] = []
        control_records: List[Record] = []
        if substream_id is None:
            logger.warning("Thread for document %s is missing; recreating it", name)
            doc.substream_id = await self._attach(locator.id, name)
            await self._create(doc.substream_id, controls.title_content(name))
            doc.control_record_id = None
        else:
            doc.substream_id = substream_id
            records = await self._cache.get_records(substream_id, strict=True)
            for record in reversed(records):  # oldest -> newest
                if not self._is_own(record):
                    continue
                if codec.is_fragment(record.content):
                    fragment_records.append(record)
                elif controls.is_control_record(record.controls):
                    control_records.append(record)
            doc.control_record_id = control_records[-1].id if control_records else None

        remote = [codec.unwrap(r.content) for r in fragment_records]

        if not doc.local_path.exists():
            self._write_local(doc, "".join(remote) or "{}")
            logger.info('Restored missing "%s" from stream %s', name, doc.substream_id)
        self._load_local(doc)

        if remote == doc.fragments:
            logger.info('Document "%s" is in sync', name)
            await self._ensure_control(doc)

        elif doc.lock_state is LockState.LOCKED:
            remote_text = "".join(remote)
            codec.parse_document(remote_text)
            backups.backup(doc.local_path)
            self._write_local(doc, remote_text)
            self._load_local(doc)
            logger.info('Restored remote copy of "%s" from stream %s', name, doc.substream_id)
            await self._ensure_control(doc)

        else:
            await self._delete(doc.substream_id, fragment_records + control_records)
            await self._push(doc)

        self._documents[name] = doc
        return doc

    async def _create_remote(self, doc: Document) -> None:
        """First run for ``doc``: build the locator, thread and contents."""

        if not doc.local_path.exists():
            self._write_local(doc, "{}")
            logger.info('Created new document "%s"', doc.name)
        self._load_local(doc)

        doc.lock_state = LockState.UNLOCKED
        locator = await self._create(
            self._control_stream_id, controls.locator_content(doc.lock_state)
        )
        doc.locator_record_id = locator.id
        doc.substream_id = await self._attach(locator.id, doc.name)
        await self._create(doc.substream_id, controls.title_content(doc.name))
        await self._push(doc)

    async def _ensure_control(self, doc: Document) -> None:
        if doc.control_record_id is None:
            control = await self._create(
                doc.substream_id, controls.control_content(doc.lock_state)
            )
            doc.control_record_id = control.id

    async def _push(self, doc: Document) -> None:
        for fragment in doc.fragments:
            await self._create(doc.substream_id, RecordContent(text=codec.wrap(fragment)))
        control = await self._create(doc.substream_id, controls.control_content(doc.lock_state))
        doc.control_record_id = control.id
        logger.info(
            'Saved "%s" to stream %s as %d fragment(s)',
            doc.name,
            doc.substream_id,
            len(doc.fragments),
        )

    # ------------------------------------------------------------------ #
    # LOCK STATE
    # ------------------------------------------------------------------ #

    async def set_lock_state(self, name: str, state: LockState) -> Document:
        """Move ``name`` to ``state``; a no-op if it is already there."""

        async with self._lock(name):
            # Read under the lock: reconciliation swaps in a fresh Document.
            doc = self.get(name)
            if doc.lock_state is state:
                return doc

            locator = await self._store.edit_record(
                self._control_stream_id,
                doc.locator_record_id,
                controls.locator_content(state),
            )
            await self._cache.on_record_updated(locator)

            if doc.control_record_id is not None and doc.substream_id is not None:
                control = await self._store.edit_record(
                    doc.substream_id,
                    doc.control_record_id,
                    controls.control_content(state),
                )
                await self._cache.on_record_updated(control)

            doc.lock_state = state
            logger.info('Document "%s" is now %s', name, state.value)
            return doc

    async def lock(self, name: str) -> Document:
        return await self.set_lock_state(name, LockState.LOCKED)

    async def unlock(self, name: str) -> Document:
        return await self.set_lock_state(name, LockState.UNLOCKED)

    # ------------------------------------------------------------------ #
    # EDITING
    # ------------------------------------------------------------------ #

    def editable_text(self, name: str) -> str:
        """
        Return the canonical form to pre-fill an edit form with.

        :raises SizeLimitExceeded: when it does not fit the edit surface.
        """
        doc = self.get(name)
        size = len(doc.canonical_form)
        if size > self._max_edit_length:
            raise SizeLimitExceeded(
                f"Document {name!r} is {size} characters; the editor holds {self._max_edit_length}",
                size=size,
                limit=self._max_edit_length,
            )
        return doc.canonical_form

    async def edit(self, name: str, text: str) -> Document:
        """
        Replace the local file with ``text`` and reconcile.

        While the document is locked the edit is written locally and then
        immediately replaced by the remote copy during reconciliation.

        :raises ValidationFailure: ``text`` is not a JSON object; nothing is
            written.
        :raises SizeLimitExceeded: a line of ``text`` cannot fit in a
            fragment; nothing is written.
        """
        try:
            data = codec.parse_document(text)
            await self._replace_local(name, data, skip_unchanged=False)
        except (ValidationFailure, SizeLimitExceeded) as exc:
            logger.info('Rejected edit of "%s": %s', name, exc)
            raise
        return await self.initialize(name)

    async def save(self, name: str, data: Dict[str, Any]) -> Document:
        """
        Persist ``data`` as the new contents of ``name`` from code.

        Nothing happens when its canonical form equals the current one.
        Otherwise the file is backed up, rewritten and reconciled, so an
        unlocked document's thread is rebuilt from it.

        :raises ValidationFailure: ``data`` is not a JSON-serializable object.
        :raises SizeLimitExceeded: a line cannot fit in a fragment.
        """
        if not isinstance(data, dict):
            raise ValidationFailure(f"Expected a JSON object, got {type(data).__name__}")
        if not await self._replace_local(name, data, skip_unchanged=True):
            logger.debug('Document "%s" unchanged; nothing to save', name)
            return self.get(name)
        return await self.initialize(name)

    async def _replace_local(
        self, name: str, data: Dict[str, Any], *, skip_unchanged: bool
    ) -> bool:
        """Back up and rewrite the local file; returns ``False`` if skipped."""

        try:
            text = codec.serialize(data)
        except (TypeError, ValueError) as exc:
            raise ValidationFailure(f"Not serializable as JSON: {exc}") from exc
        codec.chunk(text, self._fragment_length)

        async with self._lock(name):
            doc = self.get(name)
            if skip_unchanged and text == doc.canonical_form:
                return False
            backups.backup(doc.local_path)
            self._write_local(doc, text)
            logger.info('Saved new contents of "%s"', name)
        return True

    # ------------------------------------------------------------------ #
    # INTERNALS
    # ------------------------------------------------------------------ #

    def _local_path(self, name: str) -> Path:
        """
        Resolve the file backing ``name`` inside the documents directory.

        :raises ValidationFailure: when ``name`` points outside of it.
        """
        root = self._directory.resolve()
        path = (root / name).resolve()
        if path == root or not path.is_relative_to(root):
            raise ValidationFailure(f"Document name {name!r} leaves {root}")
        return path

    def _is_own(self, record: Record) -> bool:
        return self.author_id is None or record.author_id == self.author_id

    def _load_local(self, doc: Document) -> None:
        text = doc.local_path.read_text(encoding="utf-8")
        doc.data = codec.parse_document(text)
        doc.canonical_form = codec.serialize(doc.data)
        doc.fragments = codec.chunk(doc.canonical_form, self._fragment_length)

    @staticmethod
    def _write_local(doc: Document, text: str) -> None:
        doc.local_path.parent.mkdir(parents=True, exist_ok=True)
        doc.local_path.write_text(text, encoding="utf-8")

    async def _create(self, stream_id: int, content: RecordContent) -> Record:
        record = await self._store.create_record(stream_id, content)
        await self._cache.on_record_created(record)
        return record

    async def _delete(self, stream_id: int, records: Iterable[Record]) -> None:
        for record in records:
            await self._store.delete_record(stream_id, record.id)
            await self._cache.on_record_deleted(stream_id, record.id)

    async def _attach(self, record_id: int, name: str) -> int:
        substream_id = await self._store.attach_substream(
            self._control_stream_id, record_id, name
        )
        await self._cache.on_substream_lifecycle_changed(self._control_stream_id, record_id)
        return substream_id
