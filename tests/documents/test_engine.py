import asyncio
import json
from dataclasses import replace

import pytest

from threadstore.documents import DocumentEngine, LockState, codec, controls
from threadstore.errors import (
    DocumentNotFound,
    SizeLimitExceeded,
    StoreUnavailable,
    ValidationFailure,
)
from threadstore.memory.cache import StreamCache

CONTROL = 100
NAME = "settings.json"
DATA = {f"key{i}": "v" * 20 for i in range(6)}


def _engine(store, directory, **kwargs):
    kwargs.setdefault("fragment_length", 40)
    return DocumentEngine(
        store,
        StreamCache(store),
        control_stream_id=CONTROL,
        directory=directory,
        author_id=store.author_id,
        **kwargs,
    )


def _locator(store, name=NAME):
    return next(r for r in store.streams[CONTROL] if r.substream_name == name)


def _thread(store, name=NAME):
    return store.streams[_locator(store, name).substream_id]


def _remote_text(store, name=NAME):
    return "".join(
        codec.unwrap(r.content) for r in _thread(store, name) if codec.is_fragment(r.content)
    )


def _writes(store):
    return [op for op, _ in store.calls if op not in ("fetch_page", "fetch_record", "fetch_substream_of")]


def _backups(directory):
    return sorted(p.name for p in directory.iterdir() if p.name != NAME)


def test_first_initialize_creates_file_and_thread(store, tmp_path):
    engine = _engine(store, tmp_path)

    doc = asyncio.run(engine.initialize(NAME))

    assert (tmp_path / NAME).read_text() == "{}"
    assert doc.lock_state is LockState.UNLOCKED
    assert engine.values(NAME) == {}
    assert engine.names() == [NAME]

    locator = _locator(store)
    assert locator.fields == {"lock_state": "unlocked"}
    assert locator.content.startswith("🟥")

    thread = _thread(store)
    assert [r.content for r in thread[:2]] == ["**settings.json**", codec.wrap("{}")]
    assert controls.is_control_record(thread[-1].controls)
    assert doc.control_record_id == thread[-1].id


def test_existing_local_file_is_pushed_in_fragments(store, tmp_path):
    (tmp_path / NAME).write_text(json.dumps(DATA))
    engine = _engine(store, tmp_path)

    doc = asyncio.run(engine.initialize(NAME))

    fragments = [r for r in _thread(store) if codec.is_fragment(r.content)]
    assert len(fragments) == len(doc.fragments) > 1
    assert _remote_text(store) == codec.serialize(DATA)
    assert engine.values(NAME) == DATA


def test_reinitialize_in_sync_changes_nothing(store, tmp_path):
    (tmp_path / NAME).write_text(json.dumps(DATA))
    asyncio.run(_engine(store, tmp_path).initialize(NAME))
    before = {k: list(v) for k, v in store.streams.items()}
    store.calls.clear()

    asyncio.run(_engine(store, tmp_path).initialize(NAME))

    assert _writes(store) == []
    assert store.streams == before
    assert _backups(tmp_path) == []


def test_unlocked_local_change_replaces_remote_without_backup(store, tmp_path):
    path = tmp_path / NAME
    path.write_text(json.dumps(DATA))
    asyncio.run(_engine(store, tmp_path).initialize(NAME))

    changed = dict(DATA, extra=True)
    path.write_text(json.dumps(changed))
    engine = _engine(store, tmp_path)
    asyncio.run(engine.initialize(NAME))

    thread = _thread(store)
    assert thread[0].content == "**settings.json**"
    assert controls.is_control_record(thread[-1].controls)
    assert sum(controls.is_control_record(r.controls) for r in thread) == 1
    assert _remote_text(store) == codec.serialize(changed)
    assert engine.values(NAME) == changed
    assert _backups(tmp_path) == []


def test_locked_restart_restores_remote_with_one_backup(store, tmp_path):
    path = tmp_path / NAME
    path.write_text(json.dumps(DATA))

    async def first_run():
        engine = _engine(store, tmp_path)
        await engine.initialize(NAME)
        await engine.lock(NAME)

    asyncio.run(first_run())
    remote_before = _remote_text(store)

    path.write_text(json.dumps({"local": "drift"}))
    store.calls.clear()
    engine = _engine(store, tmp_path)
    doc = asyncio.run(engine.initialize(NAME))

    assert doc.lock_state is LockState.LOCKED
    assert path.read_text() == remote_before
    assert engine.values(NAME) == DATA
    assert _backups(tmp_path) == ["settings (1).json"]
    assert json.loads((tmp_path / "settings (1).json").read_text()) == {"local": "drift"}
    assert _writes(store) == []


def test_missing_local_file_is_restored_from_remote(store, tmp_path):
    path = tmp_path / NAME
    path.write_text(json.dumps(DATA))
    asyncio.run(_engine(store, tmp_path).initialize(NAME))
    path.unlink()

    engine = _engine(store, tmp_path)
    asyncio.run(engine.initialize(NAME))

    assert path.read_text() == codec.serialize(DATA)
    assert _backups(tmp_path) == []


def test_foreign_records_in_thread_are_ignored(store, tmp_path):
    (tmp_path / NAME).write_text(json.dumps(DATA))
    asyncio.run(_engine(store, tmp_path).initialize(NAME))
    stranger = store.seed(_locator(store).substream_id, codec.wrap('{"x": 1}'), author_id=2)
    store.calls.clear()

    asyncio.run(_engine(store, tmp_path).initialize(NAME))

    assert _writes(store) == []
    assert stranger in _thread(store)


def test_deleted_thread_is_rebuilt_under_new_locator(store, tmp_path):
    (tmp_path / NAME).write_text(json.dumps(DATA))
    asyncio.run(_engine(store, tmp_path).initialize(NAME))
    old_locator_id = _locator(store).id
    asyncio.run(store.detach_substream(CONTROL, old_locator_id))

    engine = _engine(store, tmp_path)
    doc = asyncio.run(engine.initialize(NAME))

    assert doc.locator_record_id == _locator(store).id != old_locator_id
    assert _thread(store)[0].content == "**settings.json**"
    assert _remote_text(store) == codec.serialize(DATA)


def test_malformed_local_file_touches_nothing(store, tmp_path):
    (tmp_path / NAME).write_text(json.dumps(DATA))
    asyncio.run(_engine(store, tmp_path).initialize(NAME))
    (tmp_path / NAME).write_text("[1, 2, 3]")
    store.calls.clear()

    engine = _engine(store, tmp_path)
    with pytest.raises(ValidationFailure):
        asyncio.run(engine.initialize(NAME))

    assert _writes(store) == []
    assert (tmp_path / NAME).read_text() == "[1, 2, 3]"
    assert engine.names() == []


def test_oversized_line_raises_size_limit(store, tmp_path):
    (tmp_path / NAME).write_text(json.dumps({"long": "x" * 100}))
    engine = _engine(store, tmp_path)

    with pytest.raises(SizeLimitExceeded):
        asyncio.run(engine.initialize(NAME))


def test_store_failure_keeps_last_known_good(store, tmp_path):
    path = tmp_path / NAME
    path.write_text(json.dumps(DATA))
    engine = _engine(store, tmp_path)

    async def scenario():
        await engine.initialize(NAME)
        path.write_text(json.dumps({"new": 1}))
        store.failing.add("delete_record")
        await engine.initialize(NAME)

    with pytest.raises(StoreUnavailable):
        asyncio.run(scenario())

    assert engine.values(NAME) == DATA


def test_first_initialize_store_failure_loads_nothing(store, tmp_path):
    store.failing.add("create_record")
    engine = _engine(store, tmp_path)

    with pytest.raises(StoreUnavailable):
        asyncio.run(engine.initialize(NAME))

    assert engine.names() == []
    with pytest.raises(DocumentNotFound):
        engine.get(NAME)


def test_concurrent_initialize_matches_single_run(store, store_factory, tmp_path):
    (tmp_path / NAME).write_text(json.dumps(DATA))
    engine = _engine(store, tmp_path)

    async def concurrent():
        return await asyncio.gather(*(engine.initialize(NAME) for _ in range(3)))

    results = asyncio.run(concurrent())

    reference_dir = tmp_path / "reference"
    reference_dir.mkdir()
    (reference_dir / NAME).write_text(json.dumps(DATA))
    reference = store_factory()
    asyncio.run(_engine(reference, reference_dir).initialize(NAME))

    assert all(doc is results[0] for doc in results)
    assert store.texts(CONTROL) == reference.texts(CONTROL)
    assert _thread(store) == _thread(reference)
    assert store.count("create_record") == reference.count("create_record")


def test_lock_and_unlock_update_locator_and_controls(store, tmp_path):
    engine = _engine(store, tmp_path)

    async def scenario():
        await engine.initialize(NAME)
        store.calls.clear()
        await engine.lock(NAME)
        await engine.lock(NAME)

    asyncio.run(scenario())

    assert store.count("edit_record") == 2
    assert _locator(store).fields["lock_state"] == "locked"
    assert LockState.from_record(_locator(store).fields, _locator(store).content) is LockState.LOCKED
    control = _thread(store)[-1]
    assert control.control(controls.EDIT_BUTTON).disabled
    assert control.control(controls.UNLOCK_BUTTON) is not None

    asyncio.run(engine.unlock(NAME))

    assert engine.get(NAME).lock_state is LockState.UNLOCKED
    assert not _thread(store)[-1].control(controls.EDIT_BUTTON).disabled


def test_lock_state_falls_back_to_glyph():
    assert LockState.from_record({}, LockState.LOCKED.display) is LockState.LOCKED
    assert LockState.from_record({}, "anything else") is LockState.UNLOCKED
    assert LockState.from_record({"lock_state": "locked"}, "") is LockState.LOCKED


def test_edit_rejects_invalid_text_without_side_effects(store, tmp_path):
    path = tmp_path / NAME
    path.write_text(json.dumps(DATA))
    engine = _engine(store, tmp_path)
    asyncio.run(engine.initialize(NAME))
    original = path.read_text()
    store.calls.clear()

    with pytest.raises(ValidationFailure):
        asyncio.run(engine.edit(NAME, '["not", "an", "object"]'))

    assert path.read_text() == original
    assert _backups(tmp_path) == []
    assert _writes(store) == []
    assert engine.values(NAME) == DATA


def test_edit_unlocked_writes_backup_and_pushes(store, tmp_path):
    path = tmp_path / NAME
    path.write_text(json.dumps(DATA))
    engine = _engine(store, tmp_path)
    asyncio.run(engine.initialize(NAME))

    asyncio.run(engine.edit(NAME, '{"b": 2, "a": 1}'))

    assert path.read_text() == '{\n  "b": 2,\n  "a": 1\n}'
    assert _backups(tmp_path) == ["settings (1).json"]
    assert _remote_text(store) == path.read_text()
    assert engine.values(NAME) == {"b": 2, "a": 1}


def test_edit_while_locked_is_replaced_by_remote(store, tmp_path):
    path = tmp_path / NAME
    path.write_text(json.dumps(DATA))
    engine = _engine(store, tmp_path)

    async def scenario():
        await engine.initialize(NAME)
        await engine.lock(NAME)
        await engine.edit(NAME, '{"ignored": true}')

    asyncio.run(scenario())

    assert engine.values(NAME) == DATA
    assert _backups(tmp_path) == ["settings (1).json", "settings (2).json"]
    assert json.loads((tmp_path / "settings (2).json").read_text()) == {"ignored": True}


def test_editable_text_respects_edit_limit(store, tmp_path):
    (tmp_path / NAME).write_text(json.dumps(DATA))
    engine = _engine(store, tmp_path, max_edit_length=50)
    asyncio.run(engine.initialize(NAME))

    with pytest.raises(SizeLimitExceeded):
        engine.editable_text(NAME)

    roomy = _engine(store, tmp_path)
    asyncio.run(roomy.initialize(NAME))
    assert roomy.editable_text(NAME) == codec.serialize(DATA)


def test_unknown_document_raises_not_found(store, tmp_path):
    engine = _engine(store, tmp_path)

    with pytest.raises(DocumentNotFound):
        engine.values("missing.json")
    assert engine.document_for_locator(1) is None


def test_locator_without_thread_gets_a_new_thread(store, tmp_path):
    (tmp_path / NAME).write_text(json.dumps(DATA))
    locator = store.seed(
        CONTROL,
        LockState.UNLOCKED.display,
        fields={"lock_state": "unlocked"},
        substream_name=NAME,
    )

    doc = asyncio.run(_engine(store, tmp_path).initialize(NAME))

    assert doc.locator_record_id == locator.id
    assert doc.substream_id == locator.id
    assert _thread(store)[0].content == "**settings.json**"
    assert _remote_text(store) == codec.serialize(DATA)
    assert controls.is_control_record(_thread(store)[-1].controls)


def test_lock_requested_during_initialize_applies_to_reconciled_document(store, tmp_path):
    path = tmp_path / NAME
    path.write_text(json.dumps(DATA))
    engine = _engine(store, tmp_path)

    async def scenario():
        await engine.initialize(NAME)
        path.write_text(json.dumps(dict(DATA, extra=1)))
        reconcile = asyncio.ensure_future(engine.initialize(NAME))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        await engine.lock(NAME)
        await reconcile
        locked_state = (_locator(store).fields["lock_state"], engine.get(NAME).lock_state)
        await engine.unlock(NAME)
        return locked_state

    locked_state = asyncio.run(scenario())

    assert locked_state == ("locked", LockState.LOCKED)
    assert _locator(store).fields["lock_state"] == "unlocked"
    assert engine.get(NAME).lock_state is LockState.UNLOCKED


def test_edit_with_unsplittable_line_writes_nothing(store, tmp_path):
    path = tmp_path / NAME
    path.write_text('{"a": 1}')
    engine = _engine(store, tmp_path)
    asyncio.run(engine.initialize(NAME))
    store.calls.clear()

    with pytest.raises(SizeLimitExceeded):
        asyncio.run(engine.edit(NAME, json.dumps({"long": "x" * 100})))

    assert path.read_text() == '{"a": 1}'
    assert _backups(tmp_path) == []
    assert _writes(store) == []
    asyncio.run(engine.initialize(NAME))
    assert engine.values(NAME) == {"a": 1}


def test_name_outside_directory_is_rejected(store, tmp_path):
    directory = tmp_path / "docs"
    engine = _engine(store, directory)

    for name in ("../escaped.json", "/etc/escaped.json", "."):
        with pytest.raises(ValidationFailure):
            asyncio.run(engine.initialize(name))

    assert not (tmp_path / "escaped.json").exists()
    assert _writes(store) == []
    assert engine.names() == []


def test_save_skips_unchanged_and_rebuilds_thread_on_change(store, tmp_path):
    path = tmp_path / NAME
    path.write_text(json.dumps(DATA))
    engine = _engine(store, tmp_path)
    asyncio.run(engine.initialize(NAME))
    store.calls.clear()

    asyncio.run(engine.save(NAME, dict(DATA)))

    assert _writes(store) == []
    assert _backups(tmp_path) == []

    changed = dict(DATA, counter=3)
    asyncio.run(engine.save(NAME, changed))

    assert _backups(tmp_path) == ["settings (1).json"]
    assert path.read_text() == codec.serialize(changed)
    assert _remote_text(store) == codec.serialize(changed)
    assert engine.values(NAME) == changed


def test_save_rejects_non_objects(store, tmp_path):
    engine = _engine(store, tmp_path)
    asyncio.run(engine.initialize(NAME))

    with pytest.raises(ValidationFailure):
        asyncio.run(engine.save(NAME, ["not", "an", "object"]))
    with pytest.raises(ValidationFailure):
        asyncio.run(engine.save(NAME, {"when": object()}))

    assert (tmp_path / NAME).read_text() == "{}"


def _locked_with_drift(store, tmp_path):
    path = tmp_path / NAME
    path.write_text(json.dumps(DATA))

    async def first_run():
        engine = _engine(store, tmp_path)
        await engine.initialize(NAME)
        await engine.lock(NAME)

    asyncio.run(first_run())
    path.write_text(json.dumps({"local": "drift"}))
    return path


@pytest.mark.parametrize("damage", ["delete", "corrupt"])
def test_locked_with_unusable_remote_leaves_local_file(store, tmp_path, damage):
    path = _locked_with_drift(store, tmp_path)
    thread = _thread(store)
    fragments = [r for r in thread if codec.is_fragment(r.content)]
    if damage == "delete":
        for record in fragments:
            thread.remove(record)
    else:
        thread[thread.index(fragments[0])] = replace(fragments[0], content=codec.wrap('{"broken": '))

    with pytest.raises(ValidationFailure):
        asyncio.run(_engine(store, tmp_path).initialize(NAME))

    assert json.loads(path.read_text()) == {"local": "drift"}
    assert _backups(tmp_path) == []


def test_locked_restore_recreates_missing_control_record(store, tmp_path):
    _locked_with_drift(store, tmp_path)
    thread = _thread(store)
    thread.remove(next(r for r in thread if controls.is_control_record(r.controls)))

    doc = asyncio.run(_engine(store, tmp_path).initialize(NAME))

    control = _thread(store)[-1]
    assert doc.control_record_id == control.id
    assert control.control(controls.UNLOCK_BUTTON) is not None
    assert control.control(controls.EDIT_BUTTON).disabled
