import re
from dataclasses import dataclass
from typing import Optional, Pattern, Sequence, Tuple

from tuning_lab.core.config import settings
from tuning_lab.modules.sql.splitter import command_units, is_pure_comment, split_statements, strip_comments

DENY = "deny"
ALLOW = "allow"


@dataclass(frozen=True)
class PolicyRule:
    pattern: Pattern[str]
    verdict: str
    category: str


@dataclass(frozen=True)
class PolicyVerdict:
    safe: bool
    reason: Optional[str] = None


def _rule(regex: str, verdict: str, category: str, flags: int = re.IGNORECASE) -> PolicyRule:
    return PolicyRule(re.compile(regex, flags), verdict, category)


# =========================================================
# 黑名单：按顺序匹配，命中即拒绝 (优先于白名单)
# =========================================================
DENY_RULES: Tuple[PolicyRule, ...] = (
    # DDL / 权限
    _rule(r"\b(DROP|TRUNCATE|CREATE|ALTER\s+(TABLE|INDEX|VIEW|USER|SEQUENCE|PROCEDURE|TRIGGER)|GRANT|REVOKE|RENAME)\b",
          DENY, "schema change"),
    # DML 写操作
    _rule(r"\b(INSERT|UPDATE|DELETE|MERGE)\b", DENY, "data modification"),
    # 逃逸到宿主机 (SQL*Plus HOST / ! / $)
    _rule(r"\bHOST\b|^\s*[!$]", DENY, "host command", re.IGNORECASE | re.MULTILINE),
    # 动态 SQL、后台任务、底层 I/O 包
    _rule(r"\b(EXECUTE\s+IMMEDIATE|DBMS_SQL|DBMS_UTILITY|DBMS_DDL|DBMS_SCHEDULER|DBMS_JOB|DBMS_PIPE"
          r"|UTL_FILE|UTL_HTTP|UTL_TCP|UTL_SMTP)\b",
          DENY, "dangerous PL/SQL"),
    # 实例 / 会话级修改，只放行少数无害的 ALTER SESSION 参数
    _rule(r"\b(SHUTDOWN|STARTUP|ALTER\s+SYSTEM|ALTER\s+DATABASE)\b"
          r"|\bALTER\s+SESSION\s+SET\s+(?!\s|NLS_|STATISTICS_LEVEL\b|OPTIMIZER_USE_INVISIBLE_INDEXES\b)",
          DENY, "system modification"),
)

# =========================================================
# 白名单：去掉注释后每个 SQL*Plus 命令单元都要命中一条
# =========================================================
ALLOW_RULES: Tuple[PolicyRule, ...] = (
    _rule(r"^\s*SELECT\b", ALLOW, "query"),
    _rule(r"^\s*WITH\b", ALLOW, "query"),
    _rule(r"^\s*EXPLAIN\s+PLAN\b", ALLOW, "execution plan"),
    _rule(r"^\s*SELECT\s+\*\s+FROM\s+(TABLE\s*\()?DBMS_XPLAN", ALLOW, "execution plan"),
    _rule(r"^\s*SET\s+(AUTOTRACE|TIMING|LINESIZE|PAGESIZE|SERVEROUTPUT)\b", ALLOW, "display setting"),
    _rule(r"^\s*ALTER\s+SESSION\s+SET\s+(STATISTICS_LEVEL|NLS_|OPTIMIZER_USE_INVISIBLE_INDEXES)", ALLOW,
          "session setting"),
    _rule(r"^\s*--", ALLOW, "comment"),
    _rule(r"^\s*$", ALLOW, "blank"),
    _rule(r"^\s*@", ALLOW, "command file"),
)

NOT_ALLOWLISTED = "Command not in allowlist"


class PolicyEngine:
    """
    SQL 白/黑名单策略 (默认拒绝)。

    每条语句先过黑名单 (原文，含注释和字面量，宁可误杀)，
    再把去掉注释后的文本按 SQL*Plus 命令单元切开，每个单元都要命中白名单。
    """

    def __init__(
            self,
            deny_rules: Sequence[PolicyRule] = DENY_RULES,
            allow_rules: Sequence[PolicyRule] = ALLOW_RULES,
            max_length: int = settings.SQL_MAX_LENGTH,
    ):
        self.deny_rules = tuple(deny_rules)
        self.allow_rules = tuple(allow_rules)
        self.max_length = max_length

    def evaluate(self, script: str) -> PolicyVerdict:
        if not script or not script.strip():
            return PolicyVerdict(False, "Empty SQL")

        if len(script) > self.max_length:
            return PolicyVerdict(False, f"SQL too long (max {self.max_length} chars)")

        for stmt in split_statements(script):
            verdict = self.evaluate_statement(stmt)
            if not verdict.safe:
                return verdict
        return PolicyVerdict(True)

    def evaluate_statement(self, statement: str) -> PolicyVerdict:
        if not statement.strip() or is_pure_comment(statement):
            return PolicyVerdict(True)

        for rule in self.deny_rules:
            m = rule.pattern.search(statement)
            if m:
                hit = " ".join(m.group(0).split()) or m.group(0)
                return PolicyVerdict(False, f"Blocked command detected ({rule.category}): {hit}")

        # SQL*Plus 逐行识别命令，一条语句里可能藏着好几个命令
        for unit in command_units(strip_comments(statement)):
            if not any(rule.pattern.search(unit) for rule in self.allow_rules):
                return PolicyVerdict(False, NOT_ALLOWLISTED)
        return PolicyVerdict(True)


default_policy = PolicyEngine()


def evaluate(script: str) -> PolicyVerdict:
    return default_policy.evaluate(script)
