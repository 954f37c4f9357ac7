from __future__ import annotations

import re
import threading
from datetime import datetime, UTC

import pytest

from common.ids import new_id, new_ulid, ulid_from_id, ulid_timestamp


URLSAFE = re.compile(r"^[A-Za-z0-9_-]+$")


def test_new_id_is_url_safe_and_unpadded():
    rid = new_id()
    assert URLSAFE.match(rid)
    assert "=" not in rid
    assert len(ulid_from_id(rid)) == 26


def test_new_ids_are_unique():
    ids = {new_id() for _ in range(100_000)}
    assert len(ids) == 100_000


def test_unique_across_threads():
    out: list[str] = []
    lock = threading.Lock()

    def work():
        local = [new_id() for _ in range(2_000)]
        with lock:
            out.extend(local)

    threads = [threading.Thread(target=work) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(out) == 16_000
    assert len(set(out)) == len(out)


def test_ulids_sort_by_time():
    earlier = new_ulid(now_ms=1_700_000_000_000)
    later = new_ulid(now_ms=1_700_000_000_001)
    assert earlier < later


def test_ulid_timestamp_roundtrip():
    ms = 1_700_000_123_456
    ts = ulid_timestamp(new_ulid(now_ms=ms))
    assert ts == datetime.fromtimestamp(ms / 1000, UTC)


def test_ulid_timestamp_rejects_bad_input():
    with pytest.raises(ValueError):
        ulid_timestamp("short")
    with pytest.raises(ValueError):
        ulid_timestamp("U" * 26)  # 'U' is not in the Crockford alphabet


def test_new_ulid_rejects_out_of_range_timestamp():
    with pytest.raises(ValueError):
        new_ulid(now_ms=-1)
