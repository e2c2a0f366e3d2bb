"""
es_bulk — Elasticsearch 벌크 작업 누적 + 배치 전송 + 백그라운드 큐

One-shot / 배치 모드:
    from es_bulk import DocumentSchema, ESBulkClient, Config

    client = ESBulkClient.from_config(Config(es_url="http://localhost:9200"))
    users = DocumentSchema(alias="users", routing="country")
    bulk = users.init_bulk(client, batch_mode=True, batch_size=500)
    bulk.add_index_operation({"id": "1", "name": "Kim", "country": "kr"})
    bulk.add_update_operation({"id": "2", "age": 31})
    result = await bulk.execute()     # BulkResult(success, total, errors, first_error)

큐 모드 (작업을 계속 추가, drain 루프 1개가 순차 전송):
    queue = users.init_bulk_queue(client, batch_size=500)
    queue.add_operations_to_queue("index", docs)
    result = await queue.wait_for_completion()

JSONL 파일 적재 (CLI: bulk_load.py):
    from es_bulk import Config, run_bulk_load
    report = run_bulk_load(Config(documents_path=Path("data/users.jsonl"), index_name="users"))
    report.success   # item 에러 · 전송 실패 · 미전송 작업이 모두 없을 때만 True
"""

from .bulk import ElasticsearchBulk
from .client import BulkExecutor, ESBulkClient, build_es_client
from .config import Config
from .log import get_logger, setup_logging
from .operations import (
    OperationEntry,
    OperationKind,
    RoutingPolicy,
    build_id_getter,
    build_operation,
    get_nested_value,
)
from .pipeline import BulkLoadReport, load_documents, run_bulk_load
from .queue import ElasticsearchBulkQueue
from .results import BulkResult, BulkResultAggregator
from .retry import AsyncFailureLogger, RetryConfig, async_with_retry
from .schema import DocumentSchema, bulk_options_from_config

__all__ = [
    # Bulk
    "ElasticsearchBulk", "ElasticsearchBulkQueue", "DocumentSchema",
    "bulk_options_from_config",
    # Operations
    "OperationKind", "OperationEntry", "RoutingPolicy",
    "build_operation", "build_id_getter", "get_nested_value",
    # Results
    "BulkResult", "BulkResultAggregator",
    # Client
    "BulkExecutor", "ESBulkClient", "build_es_client",
    # Config / Retry / Logging
    "Config", "RetryConfig", "AsyncFailureLogger", "async_with_retry",
    "setup_logging", "get_logger",
    # Pipeline
    "BulkLoadReport", "load_documents", "run_bulk_load",
]
