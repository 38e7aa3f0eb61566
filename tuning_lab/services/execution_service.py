import uuid
from typing import Optional

from tuning_lab.core.config import settings
from tuning_lab.core.errors import InputError, InternalError, PolicyViolation, RateLimited
from tuning_lab.core.logger import logger
from tuning_lab.modules.sql.executor import ExecutionRequest, ExecutionResult, ProcessExecutor
from tuning_lab.modules.sql.health import HealthProbe, HealthStatus
from tuning_lab.modules.sql.output_parser import parse_result
from tuning_lab.modules.sql.policy import PolicyEngine
from tuning_lab.modules.throttle.rate_limiter import RateLimiter
from tuning_lab.schemas.response import ExecuteResponse

RATE_LIMITED_MESSAGE = "Rate limited. Please wait 1 second."
BLOCKED_PREFIX = "Blocked: "


class ExecutionService:
    """
    限流 -> 输入检查 -> 策略 -> 执行 -> 解析。

    被拒绝的输入在启动任何进程之前就返回。
    """

    def __init__(
            self,
            rate_limiter: Optional[RateLimiter] = None,
            policy: Optional[PolicyEngine] = None,
            executor: Optional[ProcessExecutor] = None,
            probe: Optional[HealthProbe] = None,
            timeout_ms: int = settings.SQL_TIMEOUT_MS,
            max_output_bytes: int = settings.SQL_MAX_OUTPUT_BYTES,
            max_length: int = settings.SQL_MAX_LENGTH,
    ):
        self.rate_limiter = rate_limiter or RateLimiter()
        self.policy = policy or PolicyEngine(max_length=max_length)
        self.executor = executor or ProcessExecutor()
        self.probe = probe or HealthProbe()
        self.timeout_ms = timeout_ms
        self.max_output_bytes = max_output_bytes
        self.max_length = max_length

    def check_input(self, sql: str) -> None:
        if not isinstance(sql, str) or not sql.strip():
            raise InputError("No SQL provided")
        if len(sql) > self.max_length:
            raise InputError(f"SQL too long (max {self.max_length} chars)")

    async def run(self, client_key: str, sql: str, trace_id: Optional[str] = None) -> ExecuteResponse:
        trace_id = trace_id or str(uuid.uuid4())

        if not self.rate_limiter.allow(client_key):
            logger.info("🛑 [RateLimit] Throttled", extra={"trace_id": trace_id, "client_key": client_key})
            raise RateLimited(RATE_LIMITED_MESSAGE)

        self.check_input(sql)

        verdict = self.policy.evaluate(sql)
        if not verdict.safe:
            logger.warning(f"🛑 [Policy] Rejected: {verdict.reason}",
                           extra={"trace_id": trace_id, "client_key": client_key, "sql_length": len(sql)})
            raise PolicyViolation(verdict.reason or "Command not in allowlist")

        logger.info("🚀 [Execute] Running script",
                    extra={"trace_id": trace_id, "client_key": client_key, "sql_length": len(sql)})
        request = ExecutionRequest(script=sql, timeout_ms=self.timeout_ms, max_output_bytes=self.max_output_bytes)
        try:
            result: ExecutionResult = await self.executor.execute(request, trace_id=trace_id)
            blocks = parse_result(result.text, result.succeeded)
        except Exception as e:
            raise InternalError(f"execution pipeline failed: {e}") from e

        return ExecuteResponse(
            output=result.text,
            success=result.succeeded,
            executionTime=result.elapsed_ms,
            blocks=blocks,
        )

    async def health(self) -> HealthStatus:
        status = await self.probe.check()
        logger.info(f"🩺 [Health] container={status.container_running} oracle={status.oracle_ready}")
        return status


_service: Optional[ExecutionService] = None


def get_execution_service() -> ExecutionService:
    # 进程内单例，限流表在所有请求间共享
    global _service
    if _service is None:
        _service = ExecutionService()
    return _service
