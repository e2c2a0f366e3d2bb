"""벌크 실행 설정"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from .operations import OperationKind
from .retry import RetryConfig


@dataclass
class Config:
    # Elasticsearch 연결
    es_url: str = "http://localhost:9200"
    es_nodes: list[str] | None = None       # 클러스터 노드 목록 (설정 시 es_url 무시)
    es_fingerprint: str | None = None       # TLS 인증서 SHA-256 fingerprint (클러스터 시 필수)
    es_username: str | None = None          # Basic Auth 사용자명
    es_password: str | None = None          # Basic Auth 비밀번호
    es_api_key: str | None = None           # API Key (basic_auth 대신 사용 가능)

    # 대상 인덱스 / 문서 식별
    index_name: str = "documents"           # 인덱스 또는 alias
    primary_key_attribute: str = "id"       # _id로 쓸 필드 (점 표기 가능)
    primary_key_attributes: list[str] | None = None  # 복합 키 (설정 시 "_"로 연결, primary_key_attribute 무시)
    routing: str | None = None              # routing 값으로 쓸 필드 (점 표기 가능)
    routing_rules: dict[str, Callable[[Any], Any]] | None = None  # {필드: 변환 함수}, 첫 매치 사용

    # 벌크
    batch_size: int = 10000     # 요청 1회당 최대 작업 수
    batch_mode: bool = False    # True면 execute()도 batch_size 단위로 나눠 전송
    refresh: bool = False       # True면 요청마다 refresh (즉시 검색 가능)

    # 재시도 (0 = 전송 실패 시 즉시 중단)
    max_retries: int = 0
    retry_backoff: float = 1.0
    retry_exponential: bool = True
    retry_max_backoff: float = 60.0

    # 실패 청크 기록
    failure_log_path: Path | None = None    # 최종 실패 청크 JSONL (None = 기록 안 함)

    # 데이터 소스 (bulk_load CLI)
    documents_path: Path | None = None      # JSON Lines 문서 파일
    limit: int = 0                          # 0 = 전체
    operation: str = "index"                # index / create / update / delete

    def __post_init__(self):
        if self.batch_size < 1:
            raise ValueError(f"batch_size는 1 이상이어야 합니다: {self.batch_size}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries는 0 이상이어야 합니다: {self.max_retries}")
        OperationKind.parse(self.operation)
        if self.es_nodes is not None:
            self._validate_cluster()

    def _validate_cluster(self):
        """클러스터(HTTPS) 연결은 TLS fingerprint + 인증 정보 필수."""
        if not self.es_fingerprint:
            raise ValueError("es_fingerprint 필수: 클러스터 연결에는 TLS 인증서 fingerprint가 필요합니다.")
        if not self.es_api_key and not (self.es_username and self.es_password):
            raise ValueError("인증 정보 필수: es_api_key 또는 es_username + es_password를 지정하세요.")

    def retry_config(self) -> RetryConfig:
        return RetryConfig(
            max_retries=self.max_retries,
            initial_backoff=self.retry_backoff,
            exponential=self.retry_exponential,
            max_backoff=self.retry_max_backoff,
        )
