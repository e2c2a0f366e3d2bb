"""벌크 유닛 — 작업 누적 + 배치 단위 순차 전송"""

from __future__ import annotations

import time
from typing import Any, Callable, Iterable, Mapping

from .buffer import PendingBuffer
from .client import BulkExecutor
from .log import get_logger
from .operations import (
    IdGetter,
    OperationKind,
    RoutingPolicy,
    RoutingRule,
    build_operation,
)
from .results import BulkResult, BulkResultAggregator
from .retry import AsyncFailureLogger, RetryConfig, async_with_retry

logger = get_logger("bulk")

DEFAULT_BATCH_SIZE = 10000


class ElasticsearchBulk:
    """
    Elasticsearch 벌크 유닛.

    add_*_operation()으로 작업을 버퍼에 쌓고 execute()로 전송:
      - batch_mode=False: 버퍼 전체를 요청 1회로 전송, 해당 응답의 BulkResult 반환
      - batch_mode=True:  batch_size개씩 앞에서부터 꺼내 순차 전송, 누적 BulkResult 반환

    전송 실패(네트워크/4xx/5xx 예외)는 그대로 전파되고, 남은 청크는 버퍼에 남는다.
    item 단위 에러는 예외가 아니라 BulkResult.errors에 기록된다.

    사용 예:
        bulk = ElasticsearchBulk(client, get_id=lambda d: d.get("id"), index="users",
                                 batch_mode=True, batch_size=500)
        for user in users:
            bulk.add_index_operation(user)
        result = await bulk.execute()
    """

    def __init__(
        self,
        executor: BulkExecutor,
        get_id: IdGetter,
        index: str,
        *,
        routing: str | None = None,
        routing_rules: Mapping[str, RoutingRule] | None = None,
        batch_mode: bool = False,
        batch_size: int = DEFAULT_BATCH_SIZE,
        refresh: bool = False,
        retry_config: RetryConfig | None = None,
        failure_logger: AsyncFailureLogger | None = None,
        on_batch: Callable[[BulkResult], None] | None = None,
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size는 1 이상이어야 합니다: {batch_size}")

        self.executor = executor
        self.get_id = get_id
        self.index = index
        self.routing = RoutingPolicy(field=routing, rules=routing_rules)
        self.batch_mode = batch_mode
        self.batch_size = batch_size
        self.refresh = refresh
        self.on_batch = on_batch

        self._buffer = PendingBuffer()
        self._aggregator = BulkResultAggregator()
        self._batch_seq = 0
        self._send = async_with_retry(retry_config or RetryConfig(), failure_logger)(
            self._send_once
        )

    # ================================================================
    # 작업 추가 (동기, 버퍼만 변경)
    # ================================================================

    def _add_operation(self, kind: OperationKind | str, payload: Any) -> None:
        entry = build_operation(kind, payload, self.index, self.get_id, self.routing)
        if entry is not None:
            self._buffer.append(entry)

    def _add_operations(self, kind: OperationKind | str, documents: Iterable[Any]) -> None:
        kind = OperationKind.parse(kind)
        for document in documents:
            self._add_operation(kind, document)

    def add_operation(self, kind: OperationKind | str, document: Any) -> None:
        self._add_operation(kind, document)

    def add_index_operation(self, document: Any) -> None:
        self._add_operation(OperationKind.INDEX, document)

    def add_create_operation(self, document: Any) -> None:
        self._add_operation(OperationKind.CREATE, document)

    def add_update_operation(self, document: Any) -> None:
        """부분 업데이트 — 문서는 {"doc": document}로 감싸서 전송."""
        self._add_operation(OperationKind.UPDATE, document)

    def add_delete_operation(self, document: Any) -> None:
        """document에서 _id / routing만 읽고 메타데이터 한 줄만 전송."""
        self._add_operation(OperationKind.DELETE, document)

    # ================================================================
    # 전송
    # ================================================================

    async def _send_once(self, batch_id: int, operations: list[Any]) -> dict:
        t0 = time.perf_counter()
        response = await self.executor.execute_bulk(operations, refresh=self.refresh)
        logger.debug(
            f"batch {batch_id}: {len(operations)} lines, "
            f"{(time.perf_counter() - t0) * 1000:.0f}ms"
        )
        return response

    async def _send_chunk(self, operations: list[Any]) -> dict:
        self._batch_seq += 1
        return await self._send(self._batch_seq, operations)

    async def _execute_in_batches(self) -> None:
        """버퍼가 빌 때까지 batch_size 단위로 앞에서부터 꺼내 순차 전송."""
        while True:
            chunk = self._buffer.take_chunk(self.batch_size)
            if not chunk:
                return
            response = await self._send_chunk(chunk)
            batch_result = self._aggregator.add_response(response)
            if self.on_batch:
                self.on_batch(batch_result)

    async def execute(self) -> BulkResult:
        if self.batch_mode:
            await self._execute_in_batches()
            return self.results

        operations = self._buffer.take_all()
        if not operations:
            return BulkResult()
        response = await self._send_chunk(operations)
        result = BulkResult.from_response(response)
        if self.on_batch:
            self.on_batch(result)
        return result

    # ================================================================
    # 상태
    # ================================================================

    @property
    def results(self) -> BulkResult:
        """batch_mode에서 지금까지 전송된 모든 배치의 누적 결과."""
        return self._aggregator.results

    @property
    def pending(self) -> int:
        """아직 전송되지 않은 작업 수."""
        return len(self._buffer)
