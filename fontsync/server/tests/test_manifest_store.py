"""
Tests for the server's manifest store and rescan loop
"""

import asyncio

import pytest

from fontsync import inventory
from fontsync.exceptions import FontNotFoundError, ServerUnavailableError
from fontsync.models import ChangeType
from fontsync.server.manifest_store import ManifestStore
from fontsync.server.notifications import NotificationHub
from fontsync.server.server import WatchFontDirectory
from fontsync.server.watchers import RescanSource


class ScriptedSource(RescanSource):
    """Rescan source that runs a callback before each trigger"""

    def __init__(self, steps):
        self.steps = steps

    async def Triggers(self):
        for step in self.steps:
            step()
            yield "test"


def test_versions_increase_only_on_change(tmp_path):
    (tmp_path / "A.ttf").write_bytes(b"a")
    store = ManifestStore(tmp_path)

    first = asyncio.run(store.Rescan())
    assert [e.type for e in first] == [ChangeType.ADDED]
    assert store.manifest.version == 1

    assert asyncio.run(store.Rescan()) == []
    assert store.manifest.version == 1

    (tmp_path / "A.ttf").write_bytes(b"a2")
    modified = asyncio.run(store.Rescan())
    assert [(e.type, e.version) for e in modified] == [(ChangeType.MODIFIED, 2)]
    assert store.manifest.version == 2
    assert store.scan_count == 3


def test_rescan_skipped_while_scan_in_flight(tmp_path):
    store = ManifestStore(tmp_path)

    async def overlapping():
        async with store._scan_lock:
            assert store.IsScanning()
            return await store.Rescan()

    assert asyncio.run(overlapping()) is None
    assert store.scan_count == 0


def test_failed_scan_keeps_last_good_manifest(tmp_path):
    font_dir = tmp_path / "fonts"
    font_dir.mkdir()
    (font_dir / "A.ttf").write_bytes(b"a")
    store = ManifestStore(font_dir)
    asyncio.run(store.Rescan())

    (font_dir / "A.ttf").unlink()
    font_dir.rmdir()

    assert asyncio.run(store.Rescan()) == []
    assert store.manifest.Paths() == ["A.ttf"]
    with pytest.raises(ServerUnavailableError) as excinfo:
        store.GetManifest()
    assert excinfo.value.last_good_version == 1


def test_resolve_file(tmp_path):
    (tmp_path / "A.ttf").write_bytes(b"a")
    (tmp_path / "notes.txt").write_text("x")
    store = ManifestStore(tmp_path)
    asyncio.run(store.Rescan())

    file_path, font = store.ResolveFile("A.ttf")
    assert file_path == tmp_path / "A.ttf"
    assert font.size == 1

    with pytest.raises(FontNotFoundError):
        store.ResolveFile("notes.txt")
    with pytest.raises(FontNotFoundError):
        store.ResolveFile("../A.ttf")


def test_initialize_creates_font_directory(tmp_path):
    store = ManifestStore(tmp_path / "new" / "fonts")

    store.InitializeFontDirectory()

    assert (tmp_path / "new" / "fonts").is_dir()


def test_watch_loop_broadcasts_changes(tmp_path):
    """Test that each trigger rescans and only real changes are broadcast"""
    store = ManifestStore(tmp_path)
    hub = NotificationHub()
    subscriber = hub.Subscribe()

    source = ScriptedSource([
        lambda: (tmp_path / "A.ttf").write_bytes(b"a"),
        lambda: None,
        lambda: (tmp_path / "A.ttf").unlink(),
    ])
    asyncio.run(WatchFontDirectory(source, store, hub))

    received = []
    while not subscriber.queue.empty():
        received.append(subscriber.queue.get_nowait())

    assert [(e.type, e.path, e.version) for e in received] == [
        (ChangeType.ADDED, "A.ttf", 1),
        (ChangeType.REMOVED, "A.ttf", 2),
    ]
    assert store.manifest.version == 2


def test_unreadable_font_is_omitted_not_fatal(tmp_path, monkeypatch):
    """Test that one font that cannot be read leaves the rest of the directory served"""
    (tmp_path / "Good.ttf").write_bytes(b"good")
    (tmp_path / "Locked.ttf").write_bytes(b"locked")
    real_hash = inventory.CalculateFileHash

    def locked_hash(file_path, *args, **kwargs):
        if file_path.name == "Locked.ttf":
            raise PermissionError(13, "Permission denied", str(file_path))
        return real_hash(file_path, *args, **kwargs)

    monkeypatch.setattr(inventory, "CalculateFileHash", locked_hash)
    store = ManifestStore(tmp_path)

    asyncio.run(store.Rescan())

    assert store.last_scan_error is None
    assert store.GetManifest().Paths() == ["Good.ttf"]
    assert store.manifest.version == 1
