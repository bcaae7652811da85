"""
Tests for reconciliation between a local and a remote manifest
"""

import hashlib

from fontsync.models import FontFile, Manifest
from fontsync.reconcile import Reconcile


def _manifest(entries, version=0):
    """Build a manifest from {path: content} pairs"""
    return Manifest(version=version, files=[
        FontFile(path=path, size=len(content), hash=hashlib.sha256(content).hexdigest(), mtime=0.0)
        for path, content in entries.items()
    ])


def test_fetch_missing_and_delete_extra():
    """Test local {} / remote {A} fetches A, local {B} / remote {} deletes B"""
    plan = Reconcile(_manifest({"B.ttf": b"b"}), _manifest({"A.ttf": b"a"}))

    assert plan.to_fetch == ["A.ttf"]
    assert plan.to_delete == ["B.ttf"]
    assert plan.up_to_date == []


def test_hash_difference_fetches():
    plan = Reconcile(_manifest({"A.ttf": b"old"}), _manifest({"A.ttf": b"new"}))

    assert plan.to_fetch == ["A.ttf"]
    assert plan.to_delete == []


def test_identical_manifests_need_nothing():
    entries = {"A.ttf": b"a", "dir/B.otf": b"b"}
    plan = Reconcile(_manifest(entries), _manifest(entries, version=7))

    assert plan.IsEmpty()
    assert plan.ActionCount() == 0
    assert plan.up_to_date == ["A.ttf", "dir/B.otf"]


def test_mtime_is_ignored():
    local = Manifest(files=[FontFile(path="A.ttf", size=1, hash="h", mtime=1.0)])
    remote = Manifest(files=[FontFile(path="A.ttf", size=1, hash="h", mtime=500.0)])

    assert Reconcile(local, remote).IsEmpty()


def test_partition_is_complete_and_disjoint():
    """Test every path lands in exactly one list"""
    local = _manifest({"a.ttf": b"1", "b.ttf": b"2", "c.ttf": b"3", "x.ttf": b"x"})
    remote = _manifest({"a.ttf": b"1", "b.ttf": b"changed", "d.ttf": b"4"})

    plan = Reconcile(local, remote)

    assert plan.to_fetch == ["b.ttf", "d.ttf"]
    assert plan.to_delete == ["c.ttf", "x.ttf"]
    assert plan.up_to_date == ["a.ttf"]

    every_path = set(local.Paths()) | set(remote.Paths())
    listed = plan.to_fetch + plan.to_delete + plan.up_to_date
    assert sorted(listed) == sorted(every_path)
    assert len(listed) == len(set(listed))


def test_applying_plan_converges():
    """Test that the manifest after applying a plan reconciles to nothing"""
    local_entries = {"keep.ttf": b"k", "stale.ttf": b"old", "extra.otf": b"e"}
    remote_entries = {"keep.ttf": b"k", "stale.ttf": b"new", "fresh.woff2": b"f"}

    plan = Reconcile(_manifest(local_entries), _manifest(remote_entries))

    applied = dict(local_entries)
    for path in plan.to_delete:
        del applied[path]
    for path in plan.to_fetch:
        applied[path] = remote_entries[path]

    assert applied == remote_entries
    assert Reconcile(_manifest(applied), _manifest(remote_entries)).IsEmpty()


def test_both_empty():
    plan = Reconcile(Manifest(), Manifest())

    assert plan.IsEmpty()
    assert plan.up_to_date == []
