"""
SQL 语句构建

把表名、列集合和 WHERE 映射组装成带 ``$n`` 占位符的参数化语句。

占位符编号按照在语句中出现的顺序严格递增（SET → WHERE → LIMIT → OFFSET），
参数值按同样的顺序追加，第 N 个占位符永远对应第 N 个参数。

标识符（表名、列名、ORDER BY）直接拼接进语句文本，不做参数绑定，
因此在拼接前统一经过白名单校验。
"""

import re
from typing import Any, Mapping, Optional, Sequence

from .exceptions import ValidationError

IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
ORDER_TERM_RE = re.compile(
    r"^(?P<column>[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)?)"
    r"(?:\s+(?:ASC|DESC))?"
    r"(?:\s+NULLS\s+(?:FIRST|LAST))?$",
    re.IGNORECASE,
)

Statement = tuple[str, list[Any]]


# ============ 标识符校验 ============

def validate_identifier(name: str, kind: str = "identifier", allow_star: bool = False) -> str:
    """
    校验单个标识符

    接受 ``name`` 或 ``qualifier.name`` 两种形式；``allow_star`` 时接受 ``*``
    以及 ``alias.*``。
    """
    if not isinstance(name, str) or not name:
        raise ValidationError(f"Invalid {kind}: {name!r}")
    if allow_star and (name == "*" or (name.endswith(".*") and IDENTIFIER_RE.match(name[:-2]))):
        return name

    parts = name.split(".")
    if len(parts) > 2 or not all(IDENTIFIER_RE.match(part) for part in parts):
        raise ValidationError(f"Invalid {kind}: {name!r}")
    return name


def validate_order_by(order_by: str) -> str:
    """ORDER BY 子句：逗号分隔的 ``列 [ASC|DESC] [NULLS FIRST|LAST]``"""
    if not isinstance(order_by, str) or not order_by.strip():
        raise ValidationError(f"Invalid ORDER BY clause: {order_by!r}")
    for term in order_by.split(","):
        if not ORDER_TERM_RE.match(term.strip()):
            raise ValidationError(f"Invalid ORDER BY clause: {order_by!r}")
    return order_by.strip()


def _column_list(columns: Optional[Sequence[str]], kind: str) -> str:
    if columns is None:
        return "*"
    if isinstance(columns, str):
        columns = [columns]
    if len(columns) == 0:
        raise ValidationError(f"{kind} list must not be empty")
    return ", ".join(validate_identifier(c, kind, allow_star=True) for c in columns)


def _positive_int(value: Any, name: str, allow_zero: bool = False) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer, got {value!r}")
    if value < 0 or (value == 0 and not allow_zero):
        raise ValidationError(f"{name} must be positive, got {value!r}")
    return value


# ============ 子句构建 ============

def _where_clause(where: Optional[Mapping[str, Any]], params: list[Any]) -> str:
    """按映射迭代顺序生成 AND 连接的等值条件，占位符从 len(params)+1 开始"""
    if not where:
        return ""
    conditions = []
    for key, value in where.items():
        validate_identifier(key, "column")
        params.append(value)
        conditions.append(f"{key} = ${len(params)}")
    return " WHERE " + " AND ".join(conditions)


def _returning_clause(returning: Optional[Sequence[str]]) -> str:
    return " RETURNING " + _column_list(returning, "returning")


# ============ 语句构建 ============

def build_select(
    table: str,
    where: Optional[Mapping[str, Any]] = None,
    order_by: Optional[str] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    columns: Optional[Sequence[str]] = None,
) -> Statement:
    """SELECT <columns> FROM <table> [WHERE ...] [ORDER BY ...] [LIMIT $n] [OFFSET $n]"""
    validate_identifier(table, "table")
    params: list[Any] = []

    sql = f"SELECT {_column_list(columns, 'column')} FROM {table}"
    sql += _where_clause(where, params)

    if order_by:
        sql += f" ORDER BY {validate_order_by(order_by)}"

    if limit is not None:
        params.append(_positive_int(limit, "limit"))
        sql += f" LIMIT ${len(params)}"

    # OFFSET 0 等价于不设置
    if offset is not None and _positive_int(offset, "offset", allow_zero=True) > 0:
        params.append(offset)
        sql += f" OFFSET ${len(params)}"

    return sql, params


def build_insert(
    table: str,
    data: Mapping[str, Any],
    returning: Optional[Sequence[str]] = None,
) -> Statement:
    """INSERT INTO <table> (<keys>) VALUES ($1, ..., $n) RETURNING <returning>"""
    validate_identifier(table, "table")
    if not data:
        raise ValidationError("Insert data must be a non-empty mapping")

    keys = [validate_identifier(k, "column") for k in data.keys()]
    params = list(data.values())
    placeholders = ", ".join(f"${i}" for i in range(1, len(keys) + 1))

    sql = f"INSERT INTO {table} ({', '.join(keys)}) VALUES ({placeholders})"
    sql += _returning_clause(returning)
    return sql, params


def build_insert_many(
    table: str,
    rows: Sequence[Mapping[str, Any]],
    returning: Optional[Sequence[str]] = None,
) -> Statement:
    """
    多行 INSERT

    所有行必须和第一行拥有完全相同（且顺序一致）的列集合，
    否则占位符和参数会错位，这里直接拒绝。
    """
    validate_identifier(table, "table")
    if not rows:
        raise ValidationError("Data array must be a non-empty array")

    keys = list(rows[0].keys())
    if not keys:
        raise ValidationError("Insert rows must not be empty mappings")
    for key in keys:
        validate_identifier(key, "column")

    params: list[Any] = []
    groups = []
    for index, row in enumerate(rows):
        if list(row.keys()) != keys:
            raise ValidationError(
                f"Row {index} columns {list(row.keys())} do not match {keys}"
            )
        placeholders = []
        for key in keys:
            params.append(row[key])
            placeholders.append(f"${len(params)}")
        groups.append(f"({', '.join(placeholders)})")

    sql = f"INSERT INTO {table} ({', '.join(keys)}) VALUES {', '.join(groups)}"
    sql += _returning_clause(returning)
    return sql, params


def build_update(
    table: str,
    data: Mapping[str, Any],
    where: Optional[Mapping[str, Any]] = None,
    returning: Optional[Sequence[str]] = None,
) -> Statement:
    """UPDATE <table> SET k1 = $1, ... [WHERE ...] RETURNING ...（空 where 更新全表）"""
    validate_identifier(table, "table")
    if not data:
        raise ValidationError("Update data must be a non-empty mapping")

    params: list[Any] = []
    assignments = []
    for key, value in data.items():
        validate_identifier(key, "column")
        params.append(value)
        assignments.append(f"{key} = ${len(params)}")

    sql = f"UPDATE {table} SET {', '.join(assignments)}"
    sql += _where_clause(where, params)
    sql += _returning_clause(returning)
    return sql, params


def build_delete(
    table: str,
    where: Mapping[str, Any],
    returning: Optional[Sequence[str]] = None,
) -> Statement:
    """DELETE FROM <table> WHERE ... RETURNING ...（where 必填）"""
    validate_identifier(table, "table")
    if not where:
        raise ValidationError("DELETE operation requires WHERE conditions for safety")

    params: list[Any] = []
    sql = f"DELETE FROM {table}"
    sql += _where_clause(where, params)
    sql += _returning_clause(returning)
    return sql, params


def preview(sql: str, length: int = 100) -> str:
    """日志用的语句预览"""
    text = " ".join(sql.split())
    return text[:length] + ("..." if len(text) > length else "")
