from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from es_bulk.client import ESBulkClient, build_es_client
from es_bulk.config import Config


@patch("es_bulk.client.AsyncElasticsearch")
def test_build_es_client_single_node(mock_es):
    build_es_client(Config(es_url="http://es:9200"))

    mock_es.assert_called_once_with(hosts=["http://es:9200"])


@patch("es_bulk.client.AsyncElasticsearch")
def test_build_es_client_cluster_with_basic_auth(mock_es):
    build_es_client(
        Config(
            es_nodes=["https://es01:9200", "https://es02:9200"],
            es_fingerprint="AA:BB",
            es_username="elastic",
            es_password="changeme",
        )
    )

    mock_es.assert_called_once_with(
        hosts=["https://es01:9200", "https://es02:9200"],
        basic_auth=("elastic", "changeme"),
        ssl_assert_fingerprint="AA:BB",
        verify_certs=False,
    )


@patch("es_bulk.client.AsyncElasticsearch")
def test_build_es_client_api_key_preferred(mock_es):
    build_es_client(Config(es_api_key="key", es_username="u", es_password="p"))

    mock_es.assert_called_once_with(hosts=["http://localhost:9200"], api_key="key")


@patch("es_bulk.client.AsyncElasticsearch")
def test_build_es_client_cluster_with_api_key(mock_es):
    build_es_client(Config(es_nodes=["https://es01:9200"], es_fingerprint="AA:BB", es_api_key="key"))

    mock_es.assert_called_once_with(
        hosts=["https://es01:9200"],
        api_key="key",
        ssl_assert_fingerprint="AA:BB",
        verify_certs=False,
    )


@pytest.mark.asyncio
async def test_execute_bulk_passes_operations_and_refresh():
    es = MagicMock()
    response = MagicMock()
    response.body = {"errors": False, "items": []}
    es.bulk = AsyncMock(return_value=response)
    client = ESBulkClient(es)
    operations = [{"index": {"_index": "i", "_id": "1"}}, {"a": 1}]

    result = await client.execute_bulk(operations, refresh=True)

    es.bulk.assert_awaited_once_with(operations=operations, refresh="true")
    assert result == {"errors": False, "items": []}

    await client.execute_bulk(operations)
    assert es.bulk.await_args.kwargs["refresh"] == "false"


@pytest.mark.asyncio
async def test_execute_bulk_accepts_plain_dict_response():
    es = MagicMock()
    es.bulk = AsyncMock(return_value={"errors": False, "items": []})

    result = await ESBulkClient(es).execute_bulk([])

    assert result == {"errors": False, "items": []}


@pytest.mark.asyncio
async def test_close():
    es = MagicMock()
    es.close = AsyncMock()

    await ESBulkClient(es).close()

    es.close.assert_awaited_once()


@pytest.mark.integration
@pytest.mark.asyncio
async def test_live_bulk_roundtrip():
    import os

    from es_bulk.schema import DocumentSchema

    config = Config(es_url=os.getenv("ES_URL", "http://localhost:9200"), index_name="es-bulk-it")
    client = ESBulkClient.from_config(config)
    try:
        bulk = DocumentSchema(alias=config.index_name).init_bulk(client, batch_mode=True, batch_size=2, refresh=True)
        for i in range(1, 6):
            bulk.add_index_operation({"id": str(i), "n": i})
        result = await bulk.execute()
        assert result.success is True
        assert result.total == 5
    finally:
        await client.es.options(ignore_status=404).indices.delete(index=config.index_name)
        await client.close()
