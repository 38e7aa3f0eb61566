from enum import Enum
from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, Field


class LineCategory(str, Enum):
    FULL_SCAN = "full_scan"
    INDEX_SCAN = "index_scan"
    HASH_JOIN = "hash_join"
    ERROR = "error"
    PLAIN = "plain"


class ClassifiedLine(BaseModel):
    text: str
    category: LineCategory = LineCategory.PLAIN


class TableBlock(BaseModel):
    type: Literal["table"] = "table"
    headers: List[str]
    rows: List[List[str]] = []
    footer: str = ""


class TextBlock(BaseModel):
    type: Literal["text"] = "text"
    content: str
    highlighted: bool = False     # 执行计划 / 报错输出按行高亮
    lines: List[ClassifiedLine] = []


# 按 type 区分的联合类型，前端渲染时 table / text 两种必须都处理
ParsedBlock = Annotated[Union[TableBlock, TextBlock], Field(discriminator="type")]


class ExecuteRequest(BaseModel):
    sql: str


class ExecuteResponse(BaseModel):
    output: str
    success: bool
    executionTime: int = 0      # 毫秒
    blocks: List[ParsedBlock] = []


class HealthResponse(BaseModel):
    containerRunning: bool
    oracleReady: bool
