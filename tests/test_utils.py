import os
import tempfile
import shutil
from datetime import timezone

import pytest

from bakultani.utils import SingleInstanceLock, atomic_write_text, new_id, parse_iso


def test_new_id_is_unique_and_prefixed():
    ids = [new_id('t') for _ in range(200)]
    assert len(set(ids)) == 200
    assert all(i.startswith('t') and i[1:].isdigit() for i in ids)


def test_parse_iso_accepts_zulu_and_naive():
    assert parse_iso('2025-03-01T10:00:00.000Z').tzinfo is not None
    assert parse_iso('2025-03-01T10:00:00').tzinfo == timezone.utc


def test_atomic_write_and_single_instance_lock():
    root = tempfile.mkdtemp(prefix='bakultani_utils_')
    try:
        target = os.path.join(root, 'nested', 'state.json')
        atomic_write_text(target, '{"a": 1}')
        with open(target, 'r', encoding='utf-8') as f:
            assert f.read() == '{"a": 1}'
        assert [f for f in os.listdir(os.path.dirname(target)) if f.startswith('.tmp_')] == []

        first = SingleInstanceLock(root)
        first.acquire()
        second = SingleInstanceLock(root)
        with pytest.raises(RuntimeError):
            second.acquire()
        # a failed acquire must not remove the holder's lock
        second.release()
        assert os.path.exists(first.lock_path)
        first.release()
        assert not os.path.exists(first.lock_path)
    finally:
        shutil.rmtree(root)


def test_lock_context_manager_and_failed_write_cleanup():
    root = tempfile.mkdtemp(prefix='bakultani_utils_')
    try:
        with SingleInstanceLock(root) as lock:
            with open(lock.lock_path, 'r', encoding='utf-8') as f:
                assert f.read() == str(os.getpid())
        assert not os.path.exists(lock.lock_path)
        lock.release()

        # replacing a directory fails; the temp file must not be left behind
        target = os.path.join(root, 'taken')
        os.makedirs(target)
        with pytest.raises(OSError):
            atomic_write_text(target, '{}')
        assert [f for f in os.listdir(root) if f.startswith('.tmp_')] == []
    finally:
        shutil.rmtree(root)
