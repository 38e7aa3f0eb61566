"""
SQL*Plus 文本输出 -> 结构化块。

SQL*Plus 的表格输出形如::

    NOME  IDADE
    ----  -----
    Joao  25

    1 row selected.

分隔线 (只有 - 和空格) 给出每一列的起止位置，表头和数据行都按这些位置切。
执行计划和报错是按行组织的，不走表格识别，整段作为高亮文本返回。
"""
import re
from typing import List, NamedTuple, Optional

from tuning_lab.modules.sql.executor import ERROR_MARKER_RE
from tuning_lab.schemas.response import ClassifiedLine, LineCategory, ParsedBlock, TableBlock, TextBlock

PLAN_RE = re.compile(
    r"PLAN_TABLE_OUTPUT|Plan hash value|DBMS_XPLAN|TABLE ACCESS|INDEX.*SCAN|NESTED LOOPS"
    r"|HASH JOIN|MERGE JOIN|SORT ORDER BY",
    re.IGNORECASE,
)

_SEPARATOR_CHARS_RE = re.compile(r"^[-\s]+$")
_DASH_RUN_RE = re.compile(r"--+")
_FOOTER_RES = (
    re.compile(r"^\d+\s+rows?\s+selected\.?$", re.IGNORECASE),
    re.compile(r"^no\s+rows\s+selected\.?$", re.IGNORECASE),
    re.compile(r"^Elapsed:", re.IGNORECASE),
)

# 顺序即优先级，先命中先返回
_LINE_RULES = (
    (re.compile(r"TABLE ACCESS FULL", re.IGNORECASE), LineCategory.FULL_SCAN),
    (re.compile(r"INDEX.*SCAN", re.IGNORECASE), LineCategory.INDEX_SCAN),
    (re.compile(r"HASH JOIN", re.IGNORECASE), LineCategory.HASH_JOIN),
    (re.compile(r"^(ORA-|SP2-|ERROR)", re.IGNORECASE), LineCategory.ERROR),
)


class ColumnRange(NamedTuple):
    start: int
    end: int


# -----------------------------
# 行级判断
# -----------------------------


def is_separator_line(line: str) -> bool:
    trimmed = line.rstrip()
    if len(trimmed) < 2:
        return False
    return bool(_SEPARATOR_CHARS_RE.match(trimmed)) and bool(_DASH_RUN_RE.search(trimmed))


def is_footer_line(line: str) -> bool:
    trimmed = line.strip()
    return any(r.match(trimmed) for r in _FOOTER_RES)


def classify(line: str) -> LineCategory:
    stripped = line.strip()
    for pattern, category in _LINE_RULES:
        if pattern.search(stripped):
            return category
    return LineCategory.PLAIN


def looks_like_plan_or_error(text: str) -> bool:
    return bool(PLAN_RE.search(text or "")) or bool(ERROR_MARKER_RE.search(text or ""))


# -----------------------------
# 列切分
# -----------------------------


def column_ranges(separator_line: str) -> List[ColumnRange]:
    """每一段连续的 - 是一列"""
    return [ColumnRange(m.start(), m.end()) for m in re.finditer(r"-+", separator_line)]


def slice_columns(line: str, ranges: List[ColumnRange]) -> List[str]:
    values = []
    last = len(ranges) - 1
    for idx, (start, end) in enumerate(ranges):
        # 最后一列延伸到行尾，吃掉超宽的内容
        if idx == last:
            end = max(end, len(line))
        values.append(line[start:end].strip())
    return values


# -----------------------------
# 主解析
# -----------------------------


def _find_separator(lines: List[str], start: int) -> Optional[int]:
    """从 start 开始找下一个表格分隔线；表头 (上一行) 必须非空、非分隔线、且尚未被消费。"""
    for idx in range(start + 1, len(lines)):
        if not is_separator_line(lines[idx]):
            continue
        header = lines[idx - 1]
        if header.strip() and not is_separator_line(header):
            return idx
    return None


def _flush(buffer: List[str], blocks: List[ParsedBlock]) -> None:
    text = "\n".join(buffer).strip()
    if text:
        blocks.append(TextBlock(content=text))
    buffer.clear()


def parse(text: str) -> List[ParsedBlock]:
    """
    把 SQL*Plus 输出切成有序的 table / text 块。

    一次输出里可能有多张表，中间夹杂提示文本，顺序保持不变。
    """
    if not text or not text.strip():
        return [TextBlock(content="")]

    lines = text.replace("\r\n", "\n").split("\n")
    blocks: List[ParsedBlock] = []
    buffer: List[str] = []
    i = 0

    while i < len(lines):
        sep = _find_separator(lines, i)
        if sep is None:
            buffer.extend(lines[i:])
            break

        header_idx = sep - 1
        buffer.extend(lines[i:header_idx])
        _flush(buffer, blocks)

        ranges = column_ranges(lines[sep])
        headers = slice_columns(lines[header_idx], ranges)

        rows: List[List[str]] = []
        j = sep + 1
        while j < len(lines) and lines[j].strip() and not is_footer_line(lines[j]):
            rows.append(slice_columns(lines[j], ranges))
            j += 1

        # 跳过空行，收下紧跟着的 footer
        footer = ""
        while j < len(lines):
            if is_footer_line(lines[j]):
                footer = lines[j].strip()
                j += 1
                break
            if lines[j].strip():
                break
            j += 1

        blocks.append(TableBlock(headers=headers, rows=rows, footer=footer))
        i = j

    _flush(buffer, blocks)
    return blocks or [TextBlock(content=text)]


def highlight(text: str) -> TextBlock:
    return TextBlock(
        content=text,
        highlighted=True,
        lines=[ClassifiedLine(text=line, category=classify(line)) for line in text.split("\n")],
    )


def parse_result(text: str, succeeded: bool) -> List[ParsedBlock]:
    """失败或看起来是执行计划 / 报错时整段高亮，否则按表格解析。"""
    if not succeeded or looks_like_plan_or_error(text):
        return [highlight(text)]
    return parse(text)
