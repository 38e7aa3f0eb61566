import re
from typing import Iterator, List, Tuple

TERMINATOR = ";"

# 扫描状态
_CODE = "code"
_QUOTE = "quote"
_LINE_COMMENT = "line_comment"
_BLOCK_COMMENT = "block_comment"


def _scan(script: str) -> Iterator[Tuple[str, str]]:
    """
    逐字符扫描，产出 (片段, 状态)。

    - 单引号字面量内 '' 是转义，不结束字面量
    - -- 注释到行尾，/* */ 块注释
    - 片段的状态是它所在的区域 (开闭符号归属于该区域)
    """
    state = _CODE
    i = 0
    n = len(script)
    while i < n:
        ch = script[i]
        nxt = script[i + 1] if i + 1 < n else ""

        if state == _QUOTE:
            if ch == "'" and nxt == "'":
                yield "''", _QUOTE
                i += 2
                continue
            if ch == "'":
                state = _CODE
            yield ch, _QUOTE
            i += 1
            continue

        if state == _LINE_COMMENT:
            if ch == "\n":
                state = _CODE
                yield ch, _CODE
            else:
                yield ch, _LINE_COMMENT
            i += 1
            continue

        if state == _BLOCK_COMMENT:
            if ch == "*" and nxt == "/":
                state = _CODE
                yield "*/", _BLOCK_COMMENT
                i += 2
                continue
            yield ch, _BLOCK_COMMENT
            i += 1
            continue

        # state == _CODE
        if ch == "'":
            state = _QUOTE
            yield ch, _QUOTE
        elif ch == "-" and nxt == "-":
            state = _LINE_COMMENT
            yield "--", _LINE_COMMENT
            i += 2
            continue
        elif ch == "/" and nxt == "*":
            state = _BLOCK_COMMENT
            yield "/*", _BLOCK_COMMENT
            i += 2
            continue
        else:
            yield ch, _CODE
        i += 1


def split_statements(script: str) -> List[str]:
    """
    按分号拆分脚本，忽略字符串字面量和注释里的分号。

    返回去掉首尾空白后的非空语句，最后一个分号之后的残余片段也算一条。
    """
    statements: List[str] = []
    current: List[str] = []

    for piece, state in _scan(script or ""):
        if state == _CODE and piece == TERMINATOR:
            stmt = "".join(current).strip()
            if stmt:
                statements.append(stmt)
            current = []
        else:
            current.append(piece)

    tail = "".join(current).strip()
    if tail:
        statements.append(tail)
    return statements


def strip_comments(statement: str) -> str:
    """去掉注释 (字面量原样保留)，注释位置替换为一个空格。"""
    out: List[str] = []
    in_comment = False
    for piece, state in _scan(statement or ""):
        if state in (_LINE_COMMENT, _BLOCK_COMMENT):
            if not in_comment:
                out.append(" ")
            in_comment = True
            continue
        in_comment = False
        out.append(piece)
    return "".join(out)


def is_pure_comment(statement: str) -> bool:
    return not strip_comments(statement).strip()


# =========================================================
# SQL*Plus 命令单元
# =========================================================
# 以这些词开头的是 SQL 语句，会跨行缓冲到 ; / 空行 为止
_SQL_START_RE = re.compile(
    r"^\s*(SELECT|WITH|EXPLAIN|ALTER|INSERT|UPDATE|DELETE|MERGE|CREATE|DROP|TRUNCATE|GRANT|REVOKE|RENAME"
    r"|COMMENT|LOCK|CALL|DECLARE|BEGIN)\b",
    re.IGNORECASE,
)
# SQL 缓冲区中间出现也另起一个单元的 SQL*Plus 命令 (START WITH / CONNECT BY 是层级查询子句)
_COMMAND_LINE_RE = re.compile(
    r"^\s*(@|!|\$|(EXEC(UTE)?|CONN(ECT)?\b(?!\s+BY\b)|DISC(ONNECT)?|SPO(OL)?|DEF(INE)?|UNDEF(INE)?"
    r"|STA(RT)?\b(?!\s+WITH\b)|HO(ST)?|SET|SAVE|STORE|GET|COPY|PASSW(ORD)?|WHENEVER)\b)",
    re.IGNORECASE,
)
# 单独一行的 / 执行缓冲区，. 结束缓冲区
_BUFFER_END_RE = re.compile(r"^\s*[/.]\s*$")


def command_units(code: str) -> List[str]:
    """
    按 SQL*Plus 的执行方式把一条 (已去掉注释的) 语句再切成命令单元。

    - SQL 语句跨行，直到空行或单独的 / . 行
    - 其它 SQL*Plus 命令只占一行 (行尾 - 为续行)
    - SQL 中间以 SQL*Plus 命令开头的行另起一个单元
    """
    units: List[str] = []
    current: List[str] = []
    in_sql = False
    continued = False

    def close() -> None:
        nonlocal in_sql
        text = "\n".join(current).strip()
        if text:
            units.append(text)
        current.clear()
        in_sql = False

    for line in (code or "").splitlines():
        if continued:
            current.append(line)
            continued = line.rstrip().endswith("-")
            if not continued:
                close()
            continue

        if not line.strip() or _BUFFER_END_RE.match(line):
            close()
            continue

        if in_sql and not _COMMAND_LINE_RE.match(line):
            current.append(line)
            continue

        close()
        current.append(line)
        if _SQL_START_RE.match(line):
            in_sql = True
        elif line.rstrip().endswith("-"):
            continued = True
        else:
            close()

    close()
    return units
