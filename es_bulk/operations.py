"""벌크 작업 디스크립터 — (action 메타데이터, 문서 본문) 쌍 생성

Bulk API 요청 본문은 NDJSON 두 줄이 한 작업:

    {"index": {"_index": "users", "_id": "1", "routing": "kr"}}
    {"id": "1", "name": "..."}

update는 본문을 {"doc": payload}로 감싸고 (부분 업데이트),
delete는 메타데이터 한 줄만 보낸다.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping

from .log import get_logger

logger = get_logger("operations")

IdGetter = Callable[[Any], Any]
RoutingRule = Callable[[Any], Any]


class OperationKind(str, Enum):
    INDEX = "index"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"

    @classmethod
    def parse(cls, kind: OperationKind | str) -> OperationKind:
        """문자열/Enum → OperationKind. 알 수 없는 값이면 즉시 ValueError."""
        try:
            return cls(kind)
        except ValueError:
            raise ValueError(f"Invalid Elasticsearch operation type: {kind!r}") from None


def get_nested_value(obj: Any, path: str) -> Any:
    """
    점 표기 경로로 중첩 값 조회. 중간 단계가 없으면 None.

    예: get_nested_value({"user": {"country": "kr"}}, "user.country") → "kr"
    """
    current = obj
    for key in path.split("."):
        if isinstance(current, Mapping):
            current = current.get(key)
        elif isinstance(current, (list, tuple)) and key.isdigit():
            index = int(key)
            current = current[index] if index < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


def build_id_getter(
    primary_key_attribute: str = "id",
    primary_key_attributes: list[str] | None = None,
) -> IdGetter:
    """
    문서에서 _id를 뽑는 함수를 생성.

    - primary_key_attributes 지정 시: 모든 필드 값을 "_"로 이어붙인 복합 키.
      하나라도 비어 있으면 None (→ 해당 작업은 건너뜀)
    - 아니면 primary_key_attribute 하나를 점 표기로 조회
    """
    if primary_key_attributes:
        keys = list(primary_key_attributes)

        def get_composite_id(payload: Any) -> str | None:
            values = [get_nested_value(payload, key) for key in keys]
            if not all(values):
                return None
            return "_".join(str(v) for v in values)

        return get_composite_id

    def get_id(payload: Any) -> Any:
        return get_nested_value(payload, primary_key_attribute)

    return get_id


@dataclass
class RoutingPolicy:
    """
    routing 키 결정 규칙.

    - field: 단일 필드명 (점 표기). 값이 있으면 그대로 routing
    - rules: {필드명: 변환 함수}. 정의 순서대로 검사해서 처음 값이 나오는 필드의
      변환 결과를 사용 (첫 매치에서 중단)

    field가 설정되어 있으면 rules는 보지 않는다.
    """

    field: str | None = None
    rules: Mapping[str, RoutingRule] | None = None

    def apply(self, metadata: dict[str, Any], payload: Any) -> None:
        if self.field:
            value = get_nested_value(payload, self.field)
            if value:
                metadata["routing"] = value
        elif self.rules:
            for key, transform in self.rules.items():
                value = get_nested_value(payload, key)
                if value:
                    metadata["routing"] = transform(value)
                    break


@dataclass
class OperationEntry:
    kind: OperationKind
    metadata: dict[str, Any]
    body: Any = None

    @property
    def has_body(self) -> bool:
        return self.kind is not OperationKind.DELETE

    def to_lines(self) -> list[Any]:
        """Bulk API operations 리스트에 들어갈 원소 (1개 또는 2개)."""
        action = {self.kind.value: self.metadata}
        if not self.has_body:
            return [action]
        return [action, self.body]


def build_operation(
    kind: OperationKind | str,
    payload: Any,
    index: str,
    get_id: IdGetter,
    routing: RoutingPolicy | None = None,
) -> OperationEntry | None:
    """
    작업 종류 + 원본 문서 → OperationEntry.

    _id를 얻지 못하면 None (에러 없이 건너뜀).
    update의 routing은 {"doc": payload}로 감싼 본문에서 조회한다
    (필드 routing이면 "doc.country"처럼 지정).
    """
    # 종류 검사가 _id 확인보다 먼저: _id 없는 문서라도 알 수 없는 종류면 ValueError
    kind = OperationKind.parse(kind)

    doc_id = get_id(payload)
    if not doc_id:
        logger.debug(f"_id 없음 → {kind.value} 작업 건너뜀")
        return None

    body = None
    if kind is OperationKind.UPDATE:
        body = {"doc": payload}
    elif kind is not OperationKind.DELETE:
        body = payload

    metadata: dict[str, Any] = {"_index": index, "_id": doc_id}
    if routing is not None:
        routing.apply(metadata, body if body is not None else payload)

    return OperationEntry(kind=kind, metadata=metadata, body=body)
