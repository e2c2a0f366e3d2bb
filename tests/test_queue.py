from __future__ import annotations

import asyncio
import logging

import pytest

from conftest import FakeExecutor
from es_bulk.queue import ElasticsearchBulkQueue
from es_bulk.results import BulkResult


def _queue(executor, get_id, **kwargs):
    return ElasticsearchBulkQueue(executor, get_id=get_id, index="users", **kwargs)


def _docs(*ids):
    return [{"id": str(i)} for i in ids]


@pytest.mark.asyncio
async def test_queue_forces_batch_mode(executor, get_id):
    queue = _queue(executor, get_id, batch_mode=False, batch_size=2)

    assert queue.batch_mode is True


@pytest.mark.asyncio
async def test_wait_when_idle_returns_immediately(executor, get_id):
    queue = _queue(executor, get_id)

    assert await queue.wait_for_completion() == BulkResult()
    assert executor.calls == []


@pytest.mark.asyncio
async def test_add_and_wait_for_completion(executor, get_id):
    queue = _queue(executor, get_id, batch_size=2)

    queue.add_operations_to_queue("index", _docs(1, 2, 3))
    assert queue.is_draining

    result = await queue.wait_for_completion()

    assert executor.sent_ids == [["1", "2"], ["3"]]
    assert result == BulkResult(success=True, total=3)
    assert not queue.is_draining
    assert queue.pending == 0


@pytest.mark.asyncio
async def test_rapid_adds_share_single_drain_loop(get_id, monkeypatch):
    executor = FakeExecutor()
    queue = _queue(executor, get_id, batch_size=10)
    started = []
    original = queue._drain

    async def counting_drain():
        started.append(1)
        await original()

    monkeypatch.setattr(queue, "_drain", counting_drain)

    queue.add_operations_to_queue("index", _docs(1, 2))
    queue.add_operations_to_queue("update", _docs(3))

    result = await queue.wait_for_completion()

    assert started == [1]
    # 루프 시작 전에 두 번 추가 → 첫 청크에 모두 포함
    assert executor.sent_ids == [["1", "2", "3"]]
    assert result.total == 3


@pytest.mark.asyncio
async def test_appends_during_drain_are_picked_up(get_id):
    executor = FakeExecutor(delay=0.01)
    queue = _queue(executor, get_id, batch_size=2)

    queue.add_operations_to_queue("index", _docs(1, 2, 3))
    await asyncio.sleep(0.005)  # 첫 청크 전송 중
    assert len(executor.calls) == 1
    queue.add_operations_to_queue("index", _docs(4, 5))

    result = await queue.wait_for_completion()

    assert executor.sent_ids == [["1", "2"], ["3", "4"], ["5"]]
    assert result.total == 5


@pytest.mark.asyncio
async def test_multiple_waiters_released_together(get_id):
    executor = FakeExecutor(delay=0.01)
    queue = _queue(executor, get_id, batch_size=1)
    queue.add_operations_to_queue("index", _docs(1, 2))

    first, second = await asyncio.gather(queue.wait_for_completion(), queue.wait_for_completion())

    assert first.total == 2
    assert second.total == 2


@pytest.mark.asyncio
async def test_new_cycle_after_completion(executor, get_id):
    queue = _queue(executor, get_id, batch_size=5)
    queue.add_operations_to_queue("index", _docs(1))
    await queue.wait_for_completion()

    queue.add_operations_to_queue("index", _docs(2))
    assert queue.is_draining
    result = await queue.wait_for_completion()

    assert executor.sent_ids == [["1"], ["2"]]
    assert result.total == 2


@pytest.mark.asyncio
async def test_skipped_documents_do_not_start_drain(executor, get_id):
    queue = _queue(executor, get_id)

    queue.add_operations_to_queue("index", [{"name": "no id"}])

    assert not queue.is_draining
    assert await queue.wait_for_completion() == BulkResult()
    assert executor.calls == []


@pytest.mark.asyncio
async def test_unknown_kind_raises_from_add(executor, get_id):
    queue = _queue(executor, get_id)

    with pytest.raises(ValueError):
        queue.add_operations_to_queue("merge", _docs(1))
    assert not queue.is_draining


@pytest.mark.asyncio
async def test_transport_failure_releases_waiters_and_strands_rest(get_id, caplog):
    executor = FakeExecutor(fail_on={2})
    queue = _queue(executor, get_id, batch_size=2)

    with caplog.at_level(logging.ERROR, logger="es_bulk"):
        queue.add_operations_to_queue("index", _docs(1, 2, 3, 4, 5))
        result = await queue.wait_for_completion()

    assert "벌크 큐 전송 실패" in caplog.text
    assert result == BulkResult(success=True, total=2)
    assert executor.sent_ids == [["1", "2"], ["3", "4"]]
    assert not queue.is_draining
    assert queue.pending == 1
    assert isinstance(queue.last_error, ConnectionError)

    # 다음 추가가 루프를 재시작 → 남아 있던 5 + 새 6 전송, 실패 청크(3, 4)는 재전송 없음
    queue.add_operations_to_queue("index", _docs(6))
    result = await queue.wait_for_completion()

    assert executor.sent_ids[2:] == [["5", "6"]]
    assert result.total == 4
    assert queue.pending == 0
    assert queue.last_error is None


@pytest.mark.asyncio
async def test_execute_on_queue_drains_and_waits(executor, get_id):
    queue = _queue(executor, get_id, batch_size=2)
    queue.add_index_operation({"id": "1"})
    queue.add_index_operation({"id": "2"})
    queue.add_index_operation({"id": "3"})

    result = await queue.execute()

    assert executor.sent_ids == [["1", "2"], ["3"]]
    assert result.total == 3


def test_add_outside_event_loop_raises(executor, get_id):
    queue = _queue(executor, get_id)

    with pytest.raises(RuntimeError):
        queue.add_operations_to_queue("index", _docs(1))
