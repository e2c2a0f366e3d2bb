"""JSON Lines 문서 → Elasticsearch 벌크 적재 파이프라인 — Rich 로깅 + Progress Bar

콘솔: RichHandler + Rich Progress
파일: FileHandler (plain text + timestamp)

흐름:
    [1/3] 문서 로드 (JSONL, limit 적용)
    [2/3] 벌크 큐에 batch_size 단위로 추가 → 단일 drain 루프가 순차 전송
    [3/3] 완료 대기 + 결과 요약

재시도: max_retries > 0 이면 실패 청크를 지수 백오프로 재전송
Dead Letter: 최종 실패 청크를 JSONL로 기록 (failure_log_path 또는 로그 디렉토리)
"""

import asyncio
import json
import time
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from .client import BulkExecutor, ESBulkClient
from .config import Config
from .log import get_logger, setup_logging
from .results import BulkResult
from .schema import DocumentSchema, bulk_options_from_config

console = Console()
logger = get_logger("pipeline")


def load_documents(path: Path, limit: int = 0) -> list[dict[str, Any]]:
    """
    JSON Lines 파일에서 문서 로드. 빈 줄은 건너뜀.

    Raises:
        FileNotFoundError: 파일이 없을 때
        ValueError: JSON 파싱 실패 (줄 번호 포함)
    """
    documents: list[dict[str, Any]] = []
    with open(path, encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                documents.append(json.loads(line))
            except json.JSONDecodeError as e:
                raise ValueError(f"{path.name}:{lineno} JSON 파싱 실패: {e}") from e
            if limit > 0 and len(documents) >= limit:
                break
    return documents


@dataclass
class BulkLoadReport:
    """
    적재 실행 결과.

    result는 응답을 받은 청크만 집계한다. 전송 실패로 drain이 중단되면
    나머지는 pending / dead_lettered / error로만 드러난다.
    """

    result: BulkResult
    loaded: int = 0
    skipped: int = 0                # _id 없음으로 건너뛴 문서
    pending: int = 0                # 버퍼에 남은 미전송 작업
    dead_lettered: int = 0          # Dead Letter에 기록된 실패 청크 수
    error: Exception | None = None  # drain 루프를 중단시킨 예외

    @property
    def success(self) -> bool:
        """item 에러, 전송 실패, 미전송 작업이 모두 없을 때만 True."""
        return (
            self.result.success
            and self.error is None
            and self.pending == 0
            and self.dead_lettered == 0
        )


class _Stats:
    """on_batch 콜백 → Progress bar 갱신"""

    def __init__(self, progress: Progress, task_id, total: int):
        self.sent = 0
        self.item_errors = 0
        self.total = total
        self._start = time.perf_counter()
        self._progress = progress
        self._task_id = task_id

    def on_batch(self, result: BulkResult):
        self.sent += result.total
        self.item_errors += len(result.errors)
        elapsed = time.perf_counter() - self._start
        rps = self.sent / elapsed if elapsed > 0 else 0
        self._progress.update(
            self._task_id,
            advance=result.total,
            throughput=f"{rps:,.0f} docs/s",
            item_errors=str(self.item_errors),
        )

    def on_skipped(self, count: int):
        """_id 없는 문서는 전송되지 않으므로 bar 전체 개수에서 제외."""
        if count:
            self.total -= count
            self._progress.update(self._task_id, total=self.total)

    @property
    def wall_sec(self) -> float:
        return time.perf_counter() - self._start


def _create_progress() -> Progress:
    return Progress(
        SpinnerColumn(),
        "[progress.description]{task.description}",
        BarColumn(bar_width=30),
        MofNCompleteColumn(),
        TextColumn("•"),
        TextColumn("[green]{task.fields[throughput]}[/]"),
        TextColumn("•"),
        TextColumn("[red]errors={task.fields[item_errors]}[/]"),
        TimeElapsedColumn(),
        console=console,
        transient=False,
    )


def _status_label(report: BulkLoadReport) -> str:
    if report.success:
        return "[green]OK[/]"
    if report.error is not None or report.pending or report.dead_lettered:
        return "[red]전송 실패[/]"
    return "[red]item 에러 있음[/]"


def _summary_rows(
    report: BulkLoadReport, wall: float, dead_letter: Path | None,
) -> list[tuple[str, str]]:
    result = report.result
    rows = [
        ("로드 문서", f"{report.loaded:,}"),
        ("전송 item", f"{result.total:,}"),
        ("성공 여부", _status_label(report)),
        ("Wall time", f"{wall:.1f}초"),
        ("처리량", f"{result.total / wall:,.0f} docs/sec" if wall > 0 else "-"),
    ]
    if report.skipped:
        rows.append(("건너뜀 (_id 없음)", f"{report.skipped:,}건"))
    if result.errors:
        rows.append(("item 에러", f"[red]{len(result.errors):,}건[/]"))
        rows.append(("첫 에러", str(result.first_error)))
    if report.error is not None:
        rows.append(("전송 에러", f"[red]{type(report.error).__name__}: {report.error}[/]"))
    if report.pending:
        rows.append(("미전송", f"[red]{report.pending:,}건 (전송 실패로 중단)[/]"))
    if report.dead_lettered and dead_letter:
        rows.append(("Dead Letter", f"{report.dead_lettered:,}개 청크 → {dead_letter}"))
    return rows


def _summary_table(title: str, rows: list[tuple[str, str]]) -> Table:
    table = Table(title=title, show_header=False, border_style="dim")
    table.add_column("항목", style="bold")
    table.add_column("값", justify="right", style="cyan")
    for label, value in rows:
        table.add_row(label, value)
    return table


async def _run_bulk_load(
    config: Config, log_path: Path | None, executor: BulkExecutor | None,
) -> BulkLoadReport:
    if config.documents_path is None:
        raise ValueError("documents_path를 지정해야 합니다.")

    log_dir = log_path or config.documents_path.parent / "logs"
    log_file = log_dir / f"es_bulk_{time.strftime('%Y%m%d_%H%M%S')}.log"
    setup_logging(log_file=log_file)
    logger.info(f"Log → {log_file}")

    if config.failure_log_path is None:
        config = replace(config, failure_log_path=log_file.with_suffix(".dead_letter.jsonl"))

    # [1/3] 문서 로드
    logger.info("[1/3] 문서 로드")
    documents = load_documents(config.documents_path, config.limit)
    logger.info(f"{config.documents_path.name} → {len(documents):,}건 로드 완료")

    owns_client = executor is None
    if executor is None:
        executor = ESBulkClient.from_config(config)

    # [2/3] 벌크 큐 전송
    logger.info(
        f"[2/3] 벌크 전송 (index={config.index_name}, op={config.operation}, "
        f"batch={config.batch_size}, refresh={config.refresh}, retries={config.max_retries})"
    )
    schema = DocumentSchema.from_config(config)
    options = bulk_options_from_config(config)
    failure_logger = options.get("failure_logger")
    skipped = 0

    try:
        progress = _create_progress()
        with progress:
            task_id = progress.add_task(
                "Bulk", total=len(documents), throughput="--", item_errors="0"
            )
            stats = _Stats(progress, task_id, total=len(documents))
            queue = schema.init_bulk_queue(
                executor,
                batch_size=config.batch_size,
                refresh=config.refresh,
                on_batch=stats.on_batch,
                **options,
            )
            for start in range(0, len(documents), config.batch_size):
                batch = documents[start : start + config.batch_size]
                # 추가는 동기 → 그 사이 drain 루프가 버퍼를 꺼내가지 않음
                before = queue.pending
                queue.add_operations_to_queue(config.operation, batch)
                dropped = len(batch) - (queue.pending - before)
                skipped += dropped
                stats.on_skipped(dropped)
                # drain 루프가 전송하는 동안 다음 배치 추가
                await asyncio.sleep(0)

            # [3/3] 완료 대기
            result = await queue.wait_for_completion()
    finally:
        if owns_client:
            await executor.close()

    report = BulkLoadReport(
        result=result,
        loaded=len(documents),
        skipped=skipped,
        pending=queue.pending,
        dead_lettered=failure_logger.count if failure_logger else 0,
        error=queue.last_error,
    )

    logger.info("[3/3] 결과 요약")
    rows = _summary_rows(report, stats.wall_sec, config.failure_log_path)
    console.print(_summary_table("결과 요약", rows))
    for label, value in rows:
        logger.info(f"{label}: {value}")

    if report.success:
        logger.info("완료")
    else:
        logger.error("[bold red]적재 실패[/bold red] — 결과 요약 참고")
    return report


def run_bulk_load(
    config: Config,
    log_path: Path | None = None,
    executor: BulkExecutor | None = None,
) -> BulkLoadReport:
    """JSONL 문서를 벌크 큐로 적재 (동기 래퍼). 종료 코드는 report.success로 결정."""
    console.print(
        Panel.fit(
            f"[bold]Bulk {config.operation}[/] — {config.documents_path} → {config.index_name}",
            border_style="green",
        )
    )
    return asyncio.run(_run_bulk_load(config, log_path, executor))
