"""Bulk API 네트워크 경계 — AsyncElasticsearch 어댑터"""

from __future__ import annotations

from typing import Any, Protocol

from elasticsearch import AsyncElasticsearch

from .config import Config


class BulkExecutor(Protocol):
    """벌크 유닛이 유일하게 의존하는 네트워크 진입점."""

    async def execute_bulk(self, operations: list[Any], refresh: bool = False) -> dict:
        ...


def build_es_client(config: Config) -> AsyncElasticsearch:
    """
    Config 연결 필드 → AsyncElasticsearch.

    es_nodes가 있으면 클러스터 (fingerprint / 인증 검사는 Config에서 이미 끝남),
    없으면 es_url 단일 노드. 인증은 api_key 우선, 없으면 basic_auth.
    """
    kwargs: dict[str, Any] = {"hosts": config.es_nodes or [config.es_url]}

    if config.es_api_key:
        kwargs["api_key"] = config.es_api_key
    elif config.es_username and config.es_password:
        kwargs["basic_auth"] = (config.es_username, config.es_password)

    if config.es_fingerprint:
        # 자체 서명 인증서: CA 검증 대신 fingerprint 고정
        kwargs.update(ssl_assert_fingerprint=config.es_fingerprint, verify_certs=False)

    return AsyncElasticsearch(**kwargs)


class ESBulkClient:
    """AsyncElasticsearch.bulk()를 BulkExecutor 인터페이스로 감싼 어댑터."""

    def __init__(self, es: AsyncElasticsearch):
        self.es = es

    @classmethod
    def from_config(cls, config: Config) -> ESBulkClient:
        return cls(build_es_client(config))

    async def execute_bulk(self, operations: list[Any], refresh: bool = False) -> dict:
        response = await self.es.bulk(
            operations=operations,
            refresh="true" if refresh else "false",
        )
        # elasticsearch 8+: ObjectApiResponse → .body가 실제 dict
        return getattr(response, "body", response)

    async def close(self):
        await self.es.close()
