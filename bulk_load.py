#!/usr/bin/env python3
# bulk_load.py
"""
JSON Lines 문서 → Elasticsearch 벌크 적재 (CLI 엔트리포인트)

실행:
  # 로컬 단일 노드
  python bulk_load.py data/users.jsonl --index users --limit 100
  python bulk_load.py data/users.jsonl --index users --batch_size 1000 --refresh

  # 부분 업데이트 / 삭제 (문서의 id 필드로 대상 지정)
  python bulk_load.py data/changes.jsonl --index users --op update
  python bulk_load.py data/removed.jsonl --index users --op delete

  # 복합 키 + routing
  python bulk_load.py data/orders.jsonl --index orders \\
      --primary_keys shop_id order_id --routing shop_id

  # 클러스터 + fingerprint 인증 + 재시도
  python bulk_load.py data/users.jsonl --index users \\
      --es_nodes https://es01:9200 https://es02:9200 \\
      --es_fingerprint "B1:2A:96:..." \\
      --es_username elastic --es_password changeme \\
      --max_retries 3
"""

import argparse
from pathlib import Path

from es_bulk import Config, OperationKind, run_bulk_load


def main():
    parser = argparse.ArgumentParser(
        description="JSONL 문서 → Elasticsearch Bulk API (단일 drain 루프)"
    )
    parser.add_argument("documents", type=Path, help="JSON Lines 문서 파일")
    parser.add_argument(
        "--op", choices=[k.value for k in OperationKind], default="index",
        help="벌크 작업 종류 (update는 {\"doc\": ...} 부분 업데이트)",
    )
    parser.add_argument("--limit", type=int, default=0, help="0=전체")
    parser.add_argument("--index", default="documents", help="인덱스 또는 alias")
    parser.add_argument("--log_dir", type=Path, default=None, help="로그 디렉토리 (기본: 문서 파일 옆 logs/)")

    # ── 문서 식별 / routing ──
    target = parser.add_argument_group("문서 식별 / routing")
    target.add_argument("--primary_key", default="id", help="_id 필드 (점 표기 가능)")
    target.add_argument(
        "--primary_keys", nargs="+", default=None,
        help="복합 키 필드 목록 (\"_\"로 연결, 설정 시 --primary_key 무시)",
    )
    target.add_argument("--routing", default=None, help="routing 값으로 쓸 필드 (점 표기 가능)")

    # ── 벌크 ──
    bulk = parser.add_argument_group("벌크")
    bulk.add_argument("--batch_size", type=int, default=10000, help="요청 1회당 최대 작업 수")
    bulk.add_argument("--refresh", action="store_true", help="요청마다 refresh (즉시 검색 가능)")

    # ── ES 연결 ──
    cluster = parser.add_argument_group("ES 연결")
    cluster.add_argument("--es_url", default="http://localhost:9200")
    cluster.add_argument(
        "--es_nodes", nargs="+", default=None,
        help="클러스터 노드 URL 목록 (설정 시 --es_url 무시)",
    )
    cluster.add_argument(
        "--es_fingerprint", default=None,
        help="TLS 인증서 SHA-256 fingerprint (--es_nodes 사용 시 필수)",
    )
    cluster.add_argument("--es_username", default=None, help="Basic Auth 사용자명")
    cluster.add_argument("--es_password", default=None, help="Basic Auth 비밀번호")
    cluster.add_argument(
        "--es_api_key", default=None,
        help="API Key (--es_username/--es_password 대신 사용)",
    )

    # ── 재시도 / 실패 처리 ──
    retry = parser.add_argument_group("재시도 / 실패 처리")
    retry.add_argument(
        "--max_retries", type=int, default=0,
        help="청크 전송 실패 시 재시도 횟수 (0=첫 실패에서 중단, default: 0)",
    )
    retry.add_argument(
        "--retry_backoff", type=float, default=1.0,
        help="첫 재시도 대기 시간 (초, 이후 ×2 지수 백오프, default: 1.0)",
    )
    retry.add_argument(
        "--failure_log", type=Path, default=None,
        help="실패 청크 JSONL 경로 (미지정 시 로그 디렉토리에 자동 생성)",
    )

    args = parser.parse_args()

    config = Config(
        documents_path=args.documents,
        operation=args.op,
        limit=args.limit,
        index_name=args.index,
        primary_key_attribute=args.primary_key,
        primary_key_attributes=args.primary_keys,
        routing=args.routing,
        batch_size=args.batch_size,
        refresh=args.refresh,
        es_url=args.es_url,
        es_nodes=args.es_nodes,
        es_fingerprint=args.es_fingerprint,
        es_username=args.es_username,
        es_password=args.es_password,
        es_api_key=args.es_api_key,
        max_retries=args.max_retries,
        retry_backoff=args.retry_backoff,
        failure_log_path=args.failure_log,
    )

    # 전송 실패로 미전송 / Dead Letter 작업이 남으면 item 에러와 같이 종료 코드 1
    report = run_bulk_load(config, log_path=args.log_dir)
    raise SystemExit(0 if report.success else 1)


if __name__ == "__main__":
    main()
