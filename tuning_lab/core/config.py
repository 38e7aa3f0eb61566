import os
from typing import List

from dotenv import load_dotenv

# 加载 .env
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
load_dotenv(os.path.join(project_root, ".env"))


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


class Settings:
    def __init__(self):
        # Oracle 容器 / SQL*Plus 客户端
        self.CONTAINER_NAME = os.getenv("LAB_CONTAINER_NAME", "oracle-tuning-lab")
        self.DB_USER = os.getenv("LAB_DB_USER", "tuning_lab")
        self.DB_PASSWORD = os.getenv("LAB_DB_PASSWORD", "tuning123")
        self.DB_SERVICE = os.getenv("LAB_DB_SERVICE", "//localhost:1521/FREEPDB1")
        self.DOCKER_BIN = os.getenv("LAB_DOCKER_BIN", "docker")
        self.SQL_CLIENT = os.getenv("LAB_SQL_CLIENT", "sqlplus")

        # SQL 执行超时时间 (毫秒)，默认 30秒
        self.SQL_TIMEOUT_MS = _env_int("SQL_TIMEOUT_MS", 30000)
        # 输出上限，默认 100KB
        self.SQL_MAX_OUTPUT_BYTES = _env_int("SQL_MAX_OUTPUT_BYTES", 100 * 1024)
        # 脚本最大字符数
        self.SQL_MAX_LENGTH = _env_int("SQL_MAX_LENGTH", 10000)

        # SQL*Plus 输出格式 (保证可解析)
        self.SQL_LINE_SIZE = _env_int("SQL_LINE_SIZE", 200)
        self.SQL_PAGE_SIZE = _env_int("SQL_PAGE_SIZE", 50000)

        # 限流
        self.RATE_LIMIT_COOLDOWN_MS = _env_int("RATE_LIMIT_COOLDOWN_MS", 1000)
        self.RATE_LIMIT_RETENTION_MS = _env_int("RATE_LIMIT_RETENTION_MS", 60000)
        self.RATE_LIMIT_PRUNE_THRESHOLD = _env_int("RATE_LIMIT_PRUNE_THRESHOLD", 100)

        # 健康检查
        self.HEALTH_INSPECT_TIMEOUT_MS = _env_int("HEALTH_INSPECT_TIMEOUT_MS", 5000)
        self.HEALTH_PROBE_TIMEOUT_MS = _env_int("HEALTH_PROBE_TIMEOUT_MS", 10000)

        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def connect_string(self) -> str:
        return f"{self.DB_USER}/{self.DB_PASSWORD}@{self.DB_SERVICE}"

    def client_command(self) -> List[str]:
        """docker exec -i <container> sqlplus -S user/pass@service"""
        return [
            self.DOCKER_BIN, "exec", "-i", self.CONTAINER_NAME,
            self.SQL_CLIENT, "-S", self.connect_string,
        ]

    def inspect_command(self) -> List[str]:
        return [self.DOCKER_BIN, "inspect", "--format", "{{.State.Running}}", self.CONTAINER_NAME]


settings = Settings()
