#!/usr/bin/env python3
"""
es_bulk 예시 — 인메모리 executor로 벌크 / 배치 / 큐 코드 경로 확인

ES 없이 실행 가능. 실제 클러스터에 보내려면 InMemoryExecutor 대신
ESBulkClient.from_config(Config(es_url=...))를 넘기면 된다.

확인 항목:
  1. one-shot execute — 요청 1회
  2. batch_mode — batch_size 단위 순차 전송, 누적 BulkResult
  3. ElasticsearchBulkQueue — 여러 번 추가, drain 루프 1개, wait_for_completion
  4. item 에러 — errors / first_error 집계
"""

import asyncio

from es_bulk import BulkResult, DocumentSchema


class InMemoryExecutor:
    """Bulk API 흉내 — 전송된 요청을 출력하고 item마다 성공 응답."""

    def __init__(self, missing_ids=()):
        self.calls = 0
        self.docs: dict[str, dict] = {}
        self.missing_ids = set(missing_ids)

    async def execute_bulk(self, operations, refresh=False):
        self.calls += 1
        await asyncio.sleep(0.01)
        items = []
        lines = iter(operations)
        for action in lines:
            kind, meta = next(iter(action.items()))
            outcome = {"_index": meta["_index"], "_id": meta["_id"], "status": 200}
            if kind == "delete":
                if meta["_id"] in self.missing_ids:
                    outcome.update(status=404, error="not_found")
                self.docs.pop(meta["_id"], None)
            elif kind == "update":
                self.docs.setdefault(meta["_id"], {}).update(next(lines)["doc"])
            else:
                self.docs[meta["_id"]] = next(lines)
            items.append({kind: outcome})
        print(f"  call {self.calls}: {len(items)} items (refresh={refresh})")
        return {"errors": any("error" in next(iter(i.values())) for i in items), "items": items}


USERS = DocumentSchema(alias="users", routing="country")


async def one_shot():
    print("=" * 60)
    print("[1] one-shot execute")
    print("=" * 60)
    executor = InMemoryExecutor()
    bulk = USERS.init_bulk(executor, refresh=True)
    bulk.add_index_operation({"id": "1", "name": "Kim", "age": 30, "country": "kr"})
    bulk.add_index_operation({"id": "2", "name": "Tanaka", "age": 25, "country": "jp"})
    bulk.add_update_operation({"id": "1", "age": 31})
    bulk.add_index_operation({"name": "id 없음 → 건너뜀"})

    result = await bulk.execute()
    assert result == BulkResult(success=True, total=3)
    assert executor.docs["1"]["age"] == 31
    print(f"  {result}")
    print("  PASS\n")


async def batch_mode():
    print("=" * 60)
    print("[2] batch_mode (batch_size=2)")
    print("=" * 60)
    executor = InMemoryExecutor()
    bulk = USERS.init_bulk(executor, batch_mode=True, batch_size=2)
    for i in range(1, 6):
        bulk.add_index_operation({"id": str(i), "name": f"User {i}"})

    result = await bulk.execute()
    assert executor.calls == 3
    assert result.total == 5
    print(f"  {result}")
    print("  PASS\n")


async def queue_mode():
    print("=" * 60)
    print("[3] ElasticsearchBulkQueue")
    print("=" * 60)
    executor = InMemoryExecutor(missing_ids={"404"})
    queue = USERS.init_bulk_queue(executor, batch_size=3)

    queue.add_operations_to_queue("index", [{"id": str(i)} for i in range(1, 5)])
    await asyncio.sleep(0.005)
    queue.add_operations_to_queue("delete", [{"id": "2"}, {"id": "404"}])

    result = await queue.wait_for_completion()
    assert result.total == 6
    assert result.success is False
    assert result.first_error == "not_found"
    print(f"  {result}")
    print("  PASS\n")


async def main():
    await one_shot()
    await batch_mode()
    await queue_mode()
    print("모든 예시 통과")


if __name__ == "__main__":
    asyncio.run(main())
