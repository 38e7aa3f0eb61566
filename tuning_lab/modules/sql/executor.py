import re
import time
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from tuning_lab.core.config import settings
from tuning_lab.core.errors import ProcessSpawnError, ProcessTimeout
from tuning_lab.core.logger import logger
from tuning_lab.modules.sql.process import run_process

# 行首出现即视为 Oracle / SQL*Plus 报错 (进程本身可能仍然正常退出)
ERROR_MARKER_RE = re.compile(r"^(ORA-|SP2-|ERROR)", re.MULTILINE)


class ExecutionOutcome(str, Enum):
    COMPLETED = "completed"
    FAILED_BY_CONTENT = "failed_by_content"
    EXITED_NONZERO = "exited_nonzero"
    TIMED_OUT = "timed_out"
    SPAWN_FAILED = "spawn_failed"


@dataclass(frozen=True)
class ExecutionRequest:
    script: str
    timeout_ms: int = settings.SQL_TIMEOUT_MS
    max_output_bytes: int = settings.SQL_MAX_OUTPUT_BYTES


@dataclass(frozen=True)
class ExecutionResult:
    text: str
    succeeded: bool
    elapsed_ms: int
    outcome: ExecutionOutcome = ExecutionOutcome.COMPLETED
    truncated: bool = False


def _human_size(n: int) -> str:
    if n >= 1024 and n % 1024 == 0:
        return f"{n // 1024}KB"
    return f"{n} bytes"


def truncation_notice(max_bytes: int) -> str:
    return f"\n\n... output truncated ({_human_size(max_bytes)} limit) ..."


def timeout_message(timeout_ms: int) -> str:
    return f"Query timed out ({timeout_ms / 1000:g}s limit exceeded)"


def has_error_marker(text: str) -> bool:
    return bool(ERROR_MARKER_RE.search(text or ""))


def wrap_script(script: str, line_size: int = settings.SQL_LINE_SIZE, page_size: int = settings.SQL_PAGE_SIZE) -> str:
    """固定输出格式，保证结果可被 output_parser 解析，最后显式 EXIT。"""
    lines: List[str] = [
        f"SET LINESIZE {line_size}",
        f"SET PAGESIZE {page_size}",
        "SET TRIMOUT ON",
        "SET TRIMSPOOL ON",
        "SET FEEDBACK ON",
        "SET TIMING ON",
        script,
        "EXIT;",
    ]
    return "\n".join(lines) + "\n"


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="ignore")


class ProcessExecutor:
    """
    通过外部 SQL*Plus 客户端执行脚本 (docker exec -i ... sqlplus -S ...)。

    不重试：脚本可能已经在远端产生副作用，失败直接返回给调用方。
    """

    def __init__(
            self,
            command: Optional[Sequence[str]] = None,
            line_size: int = settings.SQL_LINE_SIZE,
            page_size: int = settings.SQL_PAGE_SIZE,
    ):
        self.command = list(command) if command else settings.client_command()
        self.line_size = line_size
        self.page_size = page_size

    async def execute(self, request: ExecutionRequest, trace_id: str = "N/A") -> ExecutionResult:
        start = time.perf_counter()
        wrapped = wrap_script(request.script, self.line_size, self.page_size)

        def elapsed() -> int:
            return int((time.perf_counter() - start) * 1000)

        try:
            run = await run_process(
                self.command,
                wrapped,
                timeout_s=request.timeout_ms / 1000,
                max_bytes=request.max_output_bytes,
            )
        except ProcessTimeout:
            logger.warning(f"⏱️ [Executor] Timed out after {request.timeout_ms}ms",
                           extra={"trace_id": trace_id, "outcome": ExecutionOutcome.TIMED_OUT})
            return ExecutionResult(timeout_message(request.timeout_ms), False, elapsed(), ExecutionOutcome.TIMED_OUT)
        except ProcessSpawnError as e:
            logger.error(f"❌ [Executor] Spawn failed: {e}", extra={"trace_id": trace_id})
            return ExecutionResult(str(e), False, elapsed(), ExecutionOutcome.SPAWN_FAILED)

        if run.returncode != 0:
            text = _decode(run.stderr).strip()
            truncated = False
            if not text:
                text = _decode(run.stdout).strip()
                truncated = bool(text) and run.stdout_overflow
                if truncated:
                    text += truncation_notice(request.max_output_bytes)
            text = text or f"Process exited with status {run.returncode}"
            logger.warning(f"❌ [Executor] Client exited with {run.returncode}", extra={"trace_id": trace_id})
            return ExecutionResult(text, False, elapsed(), ExecutionOutcome.EXITED_NONZERO, truncated)

        text = _decode(run.stdout)
        if run.stdout_overflow:
            text += truncation_notice(request.max_output_bytes)

        outcome = ExecutionOutcome.FAILED_BY_CONTENT if has_error_marker(text) else ExecutionOutcome.COMPLETED
        result = ExecutionResult(
            text=text,
            succeeded=outcome is ExecutionOutcome.COMPLETED,
            elapsed_ms=elapsed(),
            outcome=outcome,
            truncated=run.stdout_overflow,
        )
        logger.info(
            f"✅ [Executor] Finished (truncated={result.truncated})",
            extra={"trace_id": trace_id, "outcome": result.outcome, "elapsed_ms": result.elapsed_ms},
        )
        return result
