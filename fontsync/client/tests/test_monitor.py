"""
Tests for monitor mode: debouncing, resync on (re)connect and backoff

The notification channel and the sync pass are in-memory fakes; each fake
channel plays a script of events and "lost" markers, then idles until the
test's stop condition holds.
"""

import threading
import time

import pytest

from fontsync.client.operations import Backoff, MonitorOperations
from fontsync.exceptions import ConnectionLostError, FontSyncIOError
from fontsync.models import ChangeEvent, ChangeType, SyncReport

LOST = "lost"


class FakeNetwork:
    """Shared state: current server version, one script per connection"""

    def __init__(self, scripts, version=1, refuse=False):
        self.scripts = list(scripts)
        self.version = version
        self.refuse = refuse
        self.cancel_event = threading.Event()
        self.stop_when = lambda: True
        self.channels = []

    def open_channel(self):
        channel = FakeChannel(self, self.scripts.pop(0) if self.scripts else [])
        self.channels.append(channel)
        return channel


class FakeChannel:
    def __init__(self, network, script):
        self.network = network
        self.script = list(script)
        self.server_version = None
        self.closed = False

    def connect(self):
        if self.network.refuse:
            raise ConnectionLostError("connection refused")
        self.server_version = self.network.version

    def receive_event(self, timeout):
        if self.script:
            item = self.script.pop(0)
            if item == LOST:
                raise ConnectionLostError("connection reset")
            if isinstance(item, float):
                time.sleep(item)
                return None
            self.network.version = max(self.network.version, item.version)
            return item
        if self.network.stop_when():
            self.network.cancel_event.set()
        time.sleep(min(timeout, 0.01))
        return None

    def close(self):
        self.closed = True


class FakeSync:
    def __init__(self, network, errors=()):
        self.network = network
        self.errors = list(errors)
        self.calls = 0

    def pull_and_sync(self, cancel_event=None):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return SyncReport(version=self.network.version)


def _event(path, version):
    return ChangeEvent(type=ChangeType.MODIFIED, path=path, version=version)


def _monitor(network, sync, **kwargs):
    kwargs.setdefault("debounce_seconds", 0.05)
    kwargs.setdefault("debounce_max_seconds", 1.0)
    kwargs.setdefault("backoff", Backoff(initial=0.01, ceiling=0.02))
    return MonitorOperations(sync, network.open_channel, poll_interval=0.05, **kwargs)


def test_burst_of_events_triggers_one_pull():
    """Test that five events within the debounce window cause exactly one pass"""
    network = FakeNetwork([[_event(f"{i}.ttf", 2) for i in range(5)]])
    sync = FakeSync(network)
    network.stop_when = lambda: sync.calls >= 2
    monitor = _monitor(network, sync)

    monitor.run(network.cancel_event)

    assert sync.calls == 2
    assert monitor.last_synced_version == 2
    assert network.channels[0].closed


def test_first_connect_with_same_version_does_not_resync():
    network = FakeNetwork([[_event("old.ttf", 1), 0.1]])
    sync = FakeSync(network)
    monitor = _monitor(network, sync)

    monitor.run(network.cancel_event)

    assert sync.calls == 1
    assert monitor.passes == 1


def test_first_connect_with_newer_version_resyncs():
    """Test the gap between the initial sync and the connection being covered"""
    network = FakeNetwork([[]])

    class LateChange(FakeSync):
        def pull_and_sync(self, cancel_event=None):
            report = super().pull_and_sync(cancel_event)
            network.version = 3
            return report

    sync = LateChange(network)
    network.stop_when = lambda: sync.calls >= 2
    monitor = _monitor(network, sync)

    monitor.run(network.cancel_event)

    assert sync.calls == 2
    assert monitor.last_synced_version == 3


def test_reconnect_forces_full_pull():
    """Test that a dropped connection is followed by a full pull even if nothing changed"""
    network = FakeNetwork([[LOST], []])
    sync = FakeSync(network)
    network.stop_when = lambda: sync.calls >= 2
    monitor = _monitor(network, sync)

    monitor.run(network.cancel_event)

    assert monitor.connections == 2
    assert sync.calls == 2
    assert all(channel.closed for channel in network.channels)


def test_gives_up_after_max_attempts():
    network = FakeNetwork([], refuse=True)
    sync = FakeSync(network)
    monitor = _monitor(network, sync, backoff=Backoff(initial=0.01, ceiling=0.02, max_attempts=2))

    with pytest.raises(ConnectionLostError):
        monitor.run(network.cancel_event)

    assert len(network.channels) == 3
    assert sync.calls == 1


def test_initial_sync_retried_when_server_down():
    network = FakeNetwork([[]])
    sync = FakeSync(network, errors=[ConnectionLostError("refused")])
    network.stop_when = lambda: True
    monitor = _monitor(network, sync)

    monitor.run(network.cancel_event)

    assert sync.calls == 2
    assert monitor.passes == 1


def test_failed_debounced_pass_keeps_listening():
    network = FakeNetwork([[_event("A.ttf", 2)]])
    sync = FakeSync(network)
    network.stop_when = lambda: sync.calls >= 2

    def fail_second_pass(cancel_event=None):
        sync.calls += 1
        if sync.calls == 2:
            raise FontSyncIOError("disk full")
        return SyncReport(version=network.version)

    sync.pull_and_sync = fail_second_pass
    monitor = _monitor(network, sync)

    monitor.run(network.cancel_event)

    assert monitor.passes == 1
    assert monitor.connections == 1


def test_debounce_max_bounds_a_continuous_stream():
    """Test that a steady stream of events still produces passes before it ends"""
    script = []
    for version in range(2, 22):
        script.extend([_event("A.ttf", version), 0.02])
    network = FakeNetwork([script])
    sync = FakeSync(network)
    monitor = _monitor(network, sync, debounce_seconds=0.05, debounce_max_seconds=0.1)

    monitor.run(network.cancel_event)

    # Initial sync plus the passes forced by the cap while the stream runs
    assert sync.calls >= 3


def test_cancel_before_run():
    network = FakeNetwork([[]])
    sync = FakeSync(network)
    network.cancel_event.set()

    _monitor(network, sync).run(network.cancel_event)

    assert sync.calls == 0


def test_invalid_debounce_window():
    network = FakeNetwork([])
    with pytest.raises(ValueError):
        MonitorOperations(FakeSync(network), network.open_channel, debounce_seconds=5, debounce_max_seconds=1)
