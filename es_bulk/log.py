"""
es_bulk 로깅 — 콘솔은 RichHandler, 파일은 markup을 벗긴 plain text

라이브러리 모듈은 get_logger()로 es_bulk.<name> 로거만 가져온다.
핸들러는 bulk_load / run_bulk_load 같은 진입점에서 setup_logging()으로 붙인다.
같은 프로세스에서 여러 번 호출해도 콘솔 핸들러와 같은 경로의 파일 핸들러는 하나만 유지.

사용법:
    from es_bulk.log import setup_logging, get_logger

    logger = get_logger("bulk")         # es_bulk.bulk
    setup_logging(log_file=Path("logs/bulk.log"))
    logger.info("[bold green]완료![/bold green]")
"""

import logging
import os
from pathlib import Path

from rich.errors import MarkupError
from rich.logging import RichHandler
from rich.text import Text

PKG = "es_bulk"
FILE_FORMAT = "%(asctime)s  %(levelname)s  %(name)s  %(message)s"


class _PlainFormatter(logging.Formatter):
    """로그 파일에는 "[red]...[/red]" 같은 Rich markup 없이 기록."""

    def formatMessage(self, record: logging.LogRecord) -> str:
        try:
            plain = Text.from_markup(record.message).plain
        except MarkupError:
            plain = record.message
        return self._style._fmt % {**record.__dict__, "message": plain}


def _has_file_handler(logger: logging.Logger, log_file: Path) -> bool:
    target = os.path.abspath(log_file)  # FileHandler.baseFilename과 같은 정규화
    return any(
        isinstance(h, logging.FileHandler) and h.baseFilename == target
        for h in logger.handlers
    )


def setup_logging(
    log_file: Path | None = None,
    level: int = logging.INFO,
) -> logging.Logger:
    """
    es_bulk 패키지 로거에 콘솔(+파일) 핸들러 설정 후 반환.

    Args:
        log_file: plain text 로그 파일 (None이면 콘솔만, 상위 디렉토리 자동 생성)
        level:    패키지 로거와 새로 붙이는 핸들러의 레벨
    """
    logger = logging.getLogger(PKG)
    logger.setLevel(level)

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        console = RichHandler(
            rich_tracebacks=True,
            show_path=False,
            markup=True,
            log_time_format="[%H:%M:%S]",
        )
        console.setLevel(level)
        logger.addHandler(console)

    if log_file and not _has_file_handler(logger, log_file):
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(_PlainFormatter(FILE_FORMAT))
        fh.setLevel(level)
        logger.addHandler(fh)

    return logger


def get_logger(name: str) -> logging.Logger:
    """get_logger("queue") → es_bulk.queue"""
    return logging.getLogger(f"{PKG}.{name}")
