from __future__ import annotations

from es_bulk.buffer import PendingBuffer
from es_bulk.operations import build_operation


def _entry(kind, doc_id):
    return build_operation(kind, {"id": doc_id}, "idx", lambda d: d["id"])


def _ids(lines):
    return [line[k]["_id"] for line in lines for k in line if k in ("index", "create", "update", "delete")]


def test_empty_buffer():
    buffer = PendingBuffer()

    assert buffer.is_empty()
    assert len(buffer) == 0
    assert buffer.take_chunk(10) == []
    assert buffer.take_all() == []


def test_take_chunk_is_fifo_and_exactly_once():
    buffer = PendingBuffer()
    for i in range(1, 6):
        buffer.append(_entry("index", str(i)))

    first = buffer.take_chunk(2)
    second = buffer.take_chunk(2)
    third = buffer.take_chunk(2)

    assert len(first) == 4
    assert _ids(first) == ["1", "2"]
    assert _ids(second) == ["3", "4"]
    assert _ids(third) == ["5"]
    assert buffer.is_empty()
    assert buffer.take_chunk(2) == []


def test_take_chunk_never_splits_pairs_with_deletes():
    buffer = PendingBuffer()
    buffer.append(_entry("delete", "1"))
    buffer.append(_entry("index", "2"))
    buffer.append(_entry("delete", "3"))
    buffer.append(_entry("update", "4"))

    assert buffer.element_count == 6

    chunk = buffer.take_chunk(2)
    assert chunk == [
        {"delete": {"_index": "idx", "_id": "1"}},
        {"index": {"_index": "idx", "_id": "2"}},
        {"id": "2"},
    ]

    rest = buffer.take_all()
    assert rest == [
        {"delete": {"_index": "idx", "_id": "3"}},
        {"update": {"_index": "idx", "_id": "4"}},
        {"doc": {"id": "4"}},
    ]


def test_append_while_partially_drained():
    buffer = PendingBuffer()
    buffer.append(_entry("index", "1"))
    buffer.append(_entry("index", "2"))

    buffer.take_chunk(1)
    buffer.append(_entry("index", "3"))

    assert len(buffer) == 2
    assert _ids(buffer.take_all()) == ["2", "3"]
