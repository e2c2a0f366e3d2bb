"""벌크 큐 — 작업을 계속 추가하면서 백그라운드 drain 루프 하나로 전송"""

from __future__ import annotations

import asyncio
from typing import Any, Iterable

from .bulk import ElasticsearchBulk
from .log import get_logger
from .operations import OperationKind
from .results import BulkResult

logger = get_logger("queue")


class ElasticsearchBulkQueue(ElasticsearchBulk):
    """
    batch_mode 고정 벌크 유닛 + 단일 drain 루프.

    상태:
      Idle     — drain 루프 없음
      Draining — drain 루프 1개 실행 중 (인스턴스당 최대 1개)

    add_operations_to_queue()는 버퍼에 추가하고, Idle이면 drain 태스크를 시작한다.
    Draining 중에 추가된 작업은 실행 중인 루프가 다음 청크에서 가져간다.
    루프가 끝나면 (버퍼 비움 또는 전송 실패) 대기 중인 wait_for_completion()을
    모두 깨우고 Idle로 돌아간다.

    전송 실패 시 남은 작업은 버퍼에 그대로 남고, 다음 add_operations_to_queue()가
    루프를 다시 시작할 때 전송된다.

    사용 예 (이벤트 루프 안에서):
        queue = ElasticsearchBulkQueue(client, get_id=..., index="users", batch_size=500)
        queue.add_operations_to_queue("index", users)
        queue.add_operations_to_queue("update", changes)
        result = await queue.wait_for_completion()
    """

    def __init__(self, *args, **kwargs):
        kwargs["batch_mode"] = True
        super().__init__(*args, **kwargs)
        self._drain_task: asyncio.Task | None = None
        self._completed: asyncio.Event | None = None
        self.last_error: Exception | None = None  # 가장 최근 drain 루프를 중단시킨 예외

    @property
    def is_draining(self) -> bool:
        return self._drain_task is not None

    def _start_drain(self) -> None:
        if self._drain_task is not None:
            return
        # 실행 중인 이벤트 루프가 없으면 RuntimeError (상태는 Idle 유지)
        loop = asyncio.get_running_loop()
        self.last_error = None
        self._completed = asyncio.Event()
        self._drain_task = loop.create_task(self._drain())

    async def _drain(self) -> None:
        try:
            await self._execute_in_batches()
        except Exception as e:
            self.last_error = e
            logger.exception(
                f"[red]벌크 큐 전송 실패[/red] — 미전송 {self.pending}건은 버퍼에 남음"
            )
        finally:
            self._on_operations_finished()

    def _on_operations_finished(self) -> None:
        completed = self._completed
        self._drain_task = None
        self._completed = None
        if completed is not None:
            completed.set()

    def add_operations_to_queue(
        self, kind: OperationKind | str, documents: Iterable[Any]
    ) -> None:
        self._add_operations(kind, documents)
        if not self._buffer.is_empty():
            self._start_drain()

    async def wait_for_completion(self) -> BulkResult:
        """현재 drain 루프가 끝날 때까지 대기 후 누적 결과 반환. Idle이면 즉시 반환."""
        completed = self._completed
        if completed is not None:
            await completed.wait()
        elif not self._buffer.is_empty():
            logger.warning(
                f"drain 루프 없음 — 미전송 {self.pending}건 (다음 add_operations_to_queue에서 재시작)"
            )
        return self.results

    async def execute(self) -> BulkResult:
        """버퍼에 남은 작업까지 drain 루프로 전송하고 완료를 기다림."""
        if not self._buffer.is_empty():
            self._start_drain()
        return await self.wait_for_completion()
