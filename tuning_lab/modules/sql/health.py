from dataclasses import dataclass
from typing import Optional, Sequence

from tuning_lab.core.config import settings
from tuning_lab.core.errors import ProcessSpawnError, ProcessTimeout
from tuning_lab.core.logger import logger
from tuning_lab.modules.sql.process import run_process

PROBE_SQL = "SELECT 1 FROM DUAL;\nEXIT;\n"
_PROBE_MAX_BYTES = 16 * 1024


@dataclass(frozen=True)
class HealthStatus:
    container_running: bool
    oracle_ready: bool


class HealthProbe:
    """
    两段式检查：
    1. docker inspect 看容器是否在跑 (不在跑就直接返回，不再探测数据库)
    2. 跑一条 SELECT 1 FROM DUAL，输出里出现标记才算数据库就绪
    """

    def __init__(
            self,
            inspect_command: Optional[Sequence[str]] = None,
            client_command: Optional[Sequence[str]] = None,
            inspect_timeout_ms: int = settings.HEALTH_INSPECT_TIMEOUT_MS,
            probe_timeout_ms: int = settings.HEALTH_PROBE_TIMEOUT_MS,
            probe_sql: str = PROBE_SQL,
            marker: str = "1",
    ):
        self.inspect_command = list(inspect_command) if inspect_command else settings.inspect_command()
        self.client_command = list(client_command) if client_command else settings.client_command()
        self.inspect_timeout_ms = inspect_timeout_ms
        self.probe_timeout_ms = probe_timeout_ms
        self.probe_sql = probe_sql
        self.marker = marker

    async def check(self) -> HealthStatus:
        if not await self.container_running():
            return HealthStatus(container_running=False, oracle_ready=False)
        return HealthStatus(container_running=True, oracle_ready=await self.oracle_ready())

    async def container_running(self) -> bool:
        try:
            run = await run_process(self.inspect_command, "", self.inspect_timeout_ms / 1000, _PROBE_MAX_BYTES)
        except (ProcessTimeout, ProcessSpawnError) as e:
            logger.warning(f"⚠️ [Health] Inspect failed: {e}")
            return False
        return run.returncode == 0 and run.stdout.decode("utf-8", errors="ignore").strip() == "true"

    async def oracle_ready(self) -> bool:
        try:
            run = await run_process(self.client_command, self.probe_sql, self.probe_timeout_ms / 1000,
                                    _PROBE_MAX_BYTES)
        except (ProcessTimeout, ProcessSpawnError) as e:
            logger.warning(f"⚠️ [Health] Probe failed: {e}")
            return False
        return run.returncode == 0 and self.marker in run.stdout.decode("utf-8", errors="ignore")
