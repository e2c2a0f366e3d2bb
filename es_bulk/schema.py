"""문서 스키마 — alias + 기본 키 + routing 규칙에서 벌크 유닛 생성"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from .bulk import DEFAULT_BATCH_SIZE, ElasticsearchBulk
from .client import BulkExecutor
from .config import Config
from .operations import build_id_getter
from .queue import ElasticsearchBulkQueue
from .retry import AsyncFailureLogger


@dataclass
class DocumentSchema:
    alias: str
    primary_key_attribute: str = "id"
    primary_key_attributes: list[str] | None = None
    routing: str | None = None
    routing_rules: dict[str, Callable[[Any], Any]] | None = None

    @classmethod
    def from_config(cls, config: Config) -> DocumentSchema:
        return cls(
            alias=config.index_name,
            primary_key_attribute=config.primary_key_attribute,
            primary_key_attributes=config.primary_key_attributes,
            routing=config.routing,
            routing_rules=config.routing_rules,
        )

    def __post_init__(self):
        self._get_id = build_id_getter(self.primary_key_attribute, self.primary_key_attributes)

    def get_id(self, payload: Any) -> Any:
        """기본 키 필드로 _id 생성. 복합 키는 "_"로 연결, 하나라도 없으면 None."""
        return self._get_id(payload)

    def init_bulk(
        self,
        executor: BulkExecutor,
        batch_mode: bool = False,
        batch_size: int = DEFAULT_BATCH_SIZE,
        refresh: bool = False,
        **options,
    ) -> ElasticsearchBulk:
        return ElasticsearchBulk(
            executor,
            get_id=self.get_id,
            index=self.alias,
            routing=self.routing,
            routing_rules=self.routing_rules,
            batch_mode=batch_mode,
            batch_size=batch_size,
            refresh=refresh,
            **options,
        )

    def init_bulk_queue(
        self,
        executor: BulkExecutor,
        batch_size: int = DEFAULT_BATCH_SIZE,
        refresh: bool = False,
        **options,
    ) -> ElasticsearchBulkQueue:
        return ElasticsearchBulkQueue(
            executor,
            get_id=self.get_id,
            index=self.alias,
            routing=self.routing,
            routing_rules=self.routing_rules,
            batch_size=batch_size,
            refresh=refresh,
            **options,
        )


def bulk_options_from_config(config: Config) -> dict[str, Any]:
    """Config의 재시도 / Dead Letter 설정 → init_bulk / init_bulk_queue 추가 인자."""
    options: dict[str, Any] = {"retry_config": config.retry_config()}
    if config.failure_log_path:
        options["failure_logger"] = AsyncFailureLogger(config.failure_log_path)
    return options
