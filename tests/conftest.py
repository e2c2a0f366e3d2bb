from __future__ import annotations

import asyncio
import os

import pytest


class FakeExecutor:
    """
    BulkExecutor 대역 — 전송된 청크를 기록하고 Bulk API 형태의 응답을 만든다.

    fail_on:      이 호출 번호(1부터)에서 ConnectionError
    item_errors:  {_id: error} — 해당 _id item에 error를 넣고 errors=True
    delay:        응답 전 asyncio.sleep (drain 루프 도중 끼어들기 테스트용)
    """

    def __init__(self, fail_on=(), item_errors=None, delay=0.0):
        self.calls: list[dict] = []
        self.fail_on = set(fail_on)
        self.item_errors = item_errors or {}
        self.delay = delay

    async def execute_bulk(self, operations, refresh=False):
        self.calls.append({"operations": list(operations), "refresh": refresh})
        if self.delay:
            await asyncio.sleep(self.delay)
        else:
            await asyncio.sleep(0)
        if len(self.calls) in self.fail_on:
            raise ConnectionError(f"call {len(self.calls)} failed")

        items = []
        for line in operations:
            if len(line) != 1:
                continue
            kind, meta = next(iter(line.items()))
            if kind not in ("index", "create", "update", "delete") or "_id" not in meta:
                continue
            outcome = {"_index": meta["_index"], "_id": meta["_id"], "status": 200}
            if meta["_id"] in self.item_errors:
                outcome["error"] = self.item_errors[meta["_id"]]
                outcome["status"] = 404
            items.append({kind: outcome})
        errors = any("error" in next(iter(item.values())) for item in items)
        return {"took": 1, "errors": errors, "items": items}

    @property
    def sent_ids(self) -> list[list[str]]:
        """호출별 전송된 _id 목록."""
        return [
            [next(iter(line.values()))["_id"] for line in call["operations"] if _is_action(line)]
            for call in self.calls
        ]


def _is_action(line) -> bool:
    return (
        isinstance(line, dict)
        and len(line) == 1
        and next(iter(line)) in ("index", "create", "update", "delete")
        and isinstance(next(iter(line.values())), dict)
        and "_id" in next(iter(line.values()))
    )


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def get_id():
    return lambda doc: doc.get("id")


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "integration: tests that require a running Elasticsearch cluster",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if os.getenv("ES_BULK_RUN_INTEGRATION") == "1":
        return

    skip_integration = pytest.mark.skip(
        reason="Set ES_BULK_RUN_INTEGRATION=1 to run integration tests"
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)
