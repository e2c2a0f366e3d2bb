"""전송 대기 중인 벌크 작업 버퍼 (FIFO)"""

from __future__ import annotations

from collections import deque
from typing import Any

from .operations import OperationEntry


class PendingBuffer:
    """
    OperationEntry 단위로 보관하는 FIFO 버퍼.

    take_chunk(n)은 앞에서부터 작업 n개를 꺼내 Bulk API용 평탄화 리스트로 반환한다.
    작업 단위로 꺼내므로 메타데이터 줄과 본문 줄이 서로 다른 청크로 갈라지지 않고,
    delete(메타데이터 1줄)가 섞여도 짝이 어긋나지 않는다.

    한 번 꺼낸 작업은 다시 반환되지 않는다.
    """

    def __init__(self):
        self._entries: deque[OperationEntry] = deque()

    def append(self, entry: OperationEntry) -> None:
        self._entries.append(entry)

    def take_chunk(self, size: int) -> list[Any]:
        """최대 size개 작업을 제거하고 평탄화된 원소 리스트로 반환. 비어 있으면 []."""
        lines: list[Any] = []
        for _ in range(min(size, len(self._entries))):
            lines.extend(self._entries.popleft().to_lines())
        return lines

    def take_all(self) -> list[Any]:
        return self.take_chunk(len(self._entries))

    def is_empty(self) -> bool:
        return not self._entries

    @property
    def element_count(self) -> int:
        """평탄화했을 때의 원소 수 (delete는 1, 나머지는 2)."""
        return sum(2 if entry.has_body else 1 for entry in self._entries)

    def __len__(self) -> int:
        return len(self._entries)
