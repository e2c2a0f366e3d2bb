"""Bulk API 응답 → 성공/전체/에러 요약, 배치 간 누적"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .log import get_logger

logger = get_logger("results")


@dataclass
class BulkResult:
    """
    벌크 실행 결과 요약.

    success:     top-level errors 플래그가 한 번도 없었으면 True
    total:       응답 items 수 (누적 시 합계)
    errors:      item별 error 레코드 (실행 순서대로)
    first_error: 처음 발견된 error 레코드 (한 번 정해지면 바뀌지 않음)
    """

    success: bool = True
    total: int = 0
    errors: list[Any] = field(default_factory=list)
    first_error: Any = None

    @classmethod
    def from_response(cls, response: dict | None) -> BulkResult:
        """
        Bulk API 응답 하나를 요약.

        items가 없으면 success=True, total=0.
        errors 플래그가 있을 때만 item을 훑어 error를 수집한다. 각 item은
        {"index": {...}} 처럼 작업 종류 하나를 키로 가진다.
        """
        response = response or {}
        items = response.get("items") or []
        result = cls(success=not response.get("errors"), total=len(items))

        if response.get("errors"):
            for item in items:
                outcome = next(iter(item.values()), None) or {}
                error = outcome.get("error")
                if error is None:
                    continue
                if result.first_error is None:
                    result.first_error = error
                result.errors.append(error)
        return result

    def merge(self, other: BulkResult) -> BulkResult:
        """두 결과를 합친 새 BulkResult (self가 먼저 실행된 쪽)."""
        return BulkResult(
            success=self.success and other.success,
            total=self.total + other.total,
            errors=[*self.errors, *other.errors],
            first_error=self.first_error if self.first_error is not None else other.first_error,
        )


class BulkResultAggregator:
    """배치 단위 응답을 받아 BulkResult를 누적."""

    def __init__(self):
        self._results = BulkResult()
        self.batches = 0

    def add_response(self, response: dict | None) -> BulkResult:
        """응답 하나를 요약해서 누적. 이번 배치의 BulkResult를 반환."""
        batch_result = BulkResult.from_response(response)
        self.add_result(batch_result)
        return batch_result

    def add_result(self, batch_result: BulkResult) -> None:
        self._results = self._results.merge(batch_result)
        self.batches += 1
        if not batch_result.success:
            logger.warning(
                f"[yellow]배치 item 에러[/yellow] {len(batch_result.errors)}/{batch_result.total}건 "
                f"first_error={batch_result.first_error}"
            )

    @property
    def results(self) -> BulkResult:
        return self._results
