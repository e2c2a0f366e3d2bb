"""청크 전송 재시도 + 최종 실패 청크 Dead Letter 기록 (async)"""

import asyncio
import json
import time
from functools import wraps
from pathlib import Path
from typing import Any, Callable

from .log import get_logger

logger = get_logger("retry")


class RetryConfig:
    """
    재시도 설정.

    max_retries=0이면 재시도 없이 첫 실패에서 바로 예외 전파.
    """

    def __init__(
        self,
        max_retries: int = 0,
        initial_backoff: float = 1.0,
        exponential: bool = True,
        max_backoff: float = 60.0,
    ):
        self.max_retries = max_retries
        self.initial_backoff = initial_backoff
        self.exponential = exponential
        self.max_backoff = max_backoff

    @property
    def attempts(self) -> int:
        return self.max_retries + 1

    def backoff(self, attempt: int) -> float:
        """attempt번째 실패 후 대기 시간 (초). 지수: 1s → 2s → 4s → ..."""
        if not self.exponential:
            return self.initial_backoff
        return min(self.initial_backoff * (2 ** (attempt - 1)), self.max_backoff)


class AsyncFailureLogger:
    """
    최종 실패한 청크를 JSONL 파일에 기록 (수동 재처리용).

    파일 형식 (1줄 = 1 실패 청크):
        {"batch_id": 3, "count": 2, "error_type": "ConnectionError",
         "error_message": "...", "timestamp": "...", "operations": [...]}

    asyncio.Lock으로 동시 쓰기를 직렬화.
    """

    def __init__(self, log_path: Path, enabled: bool = True):
        self.log_path = log_path
        self.enabled = enabled
        self._lock = asyncio.Lock()
        self._count = 0
        if enabled:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)

    async def log_failure(
        self,
        batch_id: int,
        error: Exception | str,
        operations: list[Any],
    ):
        if not self.enabled:
            return

        error_type = type(error).__name__ if isinstance(error, Exception) else "str"
        record = {
            "batch_id": batch_id,
            "count": len(operations),
            "error_type": error_type,
            "error_message": str(error),
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%S"),
            "operations": operations,
        }
        async with self._lock:
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(record, ensure_ascii=False, default=str) + "\n")
            self._count += 1

        logger.warning(f"[red]Dead Letter 기록[/red] batch_id={batch_id} → {self.log_path}")

    @property
    def count(self) -> int:
        return self._count


def async_with_retry(
    retry_config: RetryConfig,
    failure_logger: AsyncFailureLogger | None = None,
):
    """
    청크 전송 코루틴용 재시도 데코레이터.

    감싸는 함수 시그니처: async def send(batch_id: int, operations: list) -> dict
    같은 operations 객체를 그대로 다시 보낸다 (버퍼에서 다시 꺼내지 않음).
    모든 시도가 실패하면 failure_logger에 기록한 뒤 마지막 예외를 그대로 전파.

    사용 예:
        send = async_with_retry(RetryConfig(max_retries=3))(self._send_once)
        response = await send(batch_id, chunk)
    """

    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(batch_id: int, operations: list[Any]):
            for attempt in range(1, retry_config.attempts + 1):
                try:
                    return await func(batch_id, operations)

                except Exception as e:
                    if attempt >= retry_config.attempts:
                        logger.error(
                            f"[bold red]최종 실패[/bold red] batch_id={batch_id} "
                            f"(시도 {attempt}/{retry_config.attempts}): {e}"
                        )
                        if failure_logger:
                            await failure_logger.log_failure(batch_id, e, operations)
                        raise

                    backoff = retry_config.backoff(attempt)
                    logger.warning(
                        f"[yellow]재시도 대기[/yellow] batch_id={batch_id} "
                        f"({attempt}/{retry_config.attempts}) "
                        f"{backoff:.1f}초 후 재시도... error: {e}"
                    )
                    await asyncio.sleep(backoff)

        return wrapper

    return decorator
