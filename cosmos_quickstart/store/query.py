"""
SQL Query Evaluation

Parses and evaluates the subset of the Cosmos DB SQL dialect used by the
in-memory store: SELECT [TOP n] <*|fields> FROM <alias> [WHERE ...]
[ORDER BY <field> [ASC|DESC]], with =, !=, <, >, <=, >=, IN, BETWEEN,
AND, OR, NOT and @parameters.

Author: Cosmos Quickstart Contributors
Date: 2026-10-19
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .errors import StoreErrorKind, StoreServiceError

_MISSING = object()

_QUERY_PATTERN = re.compile(
    r"^\s*SELECT\s+(?:TOP\s+(?P<top>\d+)\s+)?(?P<select>.+?)\s+FROM\s+(?P<alias>\w+)"
    r"(?:\s+WHERE\s+(?P<where>.+?))?"
    r"(?:\s+ORDER\s+BY\s+(?P<order>.+?))?\s*$",
    re.IGNORECASE | re.DOTALL,
)
_PATH_PART = re.compile(r"(\w+)|\[(\d+)\]|\[\"([^\"]+)\"\]")
_COMPARISON_OPS = ["!=", "<>", ">=", "<=", "=", ">", "<"]


@dataclass
class ParsedQuery:
    """
    Structured form of a SQL query.

    Attributes:
        alias: Collection alias from the FROM clause (e.g. "c")
        select: Projected field expressions, or ["*"]
        where: WHERE clause text, None if absent
        order_by: (field, direction) pairs
        top: TOP limit, None if absent
        parameters: Parameter values keyed by name (including the "@")
    """

    alias: str
    select: List[str] = field(default_factory=lambda: ["*"])
    where: Optional[str] = None
    order_by: List[Tuple[str, str]] = field(default_factory=list)
    top: Optional[int] = None
    parameters: Dict[str, Any] = field(default_factory=dict)


def parse_query(query: str, parameters: Optional[List[Dict[str, Any]]] = None) -> ParsedQuery:
    """
    Parse SQL query text.

    Args:
        query: SQL query string
        parameters: Query parameters as [{"name": "@x", "value": ...}]

    Returns:
        Parsed query

    Raises:
        StoreServiceError: BAD_REQUEST if the query cannot be parsed
    """
    match = _QUERY_PATTERN.match(query)
    if not match:
        raise StoreServiceError.of(
            StoreErrorKind.BAD_REQUEST, f"Syntax error in query: {query}", query=query
        )

    select_clause = match.group("select").strip()
    select = ["*"] if select_clause == "*" else [f.strip() for f in select_clause.split(",")]

    order_by: List[Tuple[str, str]] = []
    if match.group("order"):
        order_parts = match.group("order").split()
        direction = "ASC"
        if len(order_parts) > 1 and order_parts[1].upper() in ("ASC", "DESC"):
            direction = order_parts[1].upper()
        order_by.append((order_parts[0], direction))

    params: Dict[str, Any] = {}
    for param in parameters or []:
        name = param["name"]
        if not name.startswith("@"):
            name = f"@{name}"
        params[name] = param.get("value")

    return ParsedQuery(
        alias=match.group("alias"),
        select=select,
        where=match.group("where").strip() if match.group("where") else None,
        order_by=order_by,
        top=int(match.group("top")) if match.group("top") else None,
        parameters=params,
    )


def execute_query(documents: List[Dict[str, Any]], parsed: ParsedQuery) -> List[Dict[str, Any]]:
    """
    Execute a parsed query on documents.

    Args:
        documents: Documents to query
        parsed: Parsed query structure

    Returns:
        Filtered, sorted and projected documents
    """
    results = documents[:]

    if parsed.where:
        results = [doc for doc in results if evaluate_where(doc, parsed.where, parsed)]

    for field_expr, direction in reversed(parsed.order_by):
        path = _strip_alias(field_expr, parsed.alias)
        results.sort(
            key=lambda doc: _sort_key(get_path_value(doc, path)),
            reverse=(direction == "DESC"),
        )

    if parsed.top is not None:
        results = results[:parsed.top]

    if parsed.select != ["*"]:
        results = [_project(doc, parsed) for doc in results]

    return results


def evaluate_where(document: Dict[str, Any], clause: str, parsed: ParsedQuery) -> bool:
    """
    Evaluate a WHERE clause for a document.

    Args:
        document: Document to evaluate
        clause: WHERE clause (or sub-clause) text
        parsed: Query supplying the alias and parameters

    Returns:
        True if the document matches
    """
    clause = _strip_parens(clause.strip())

    for keyword, combine in (("OR", any), ("AND", all)):
        parts = _split_top_level(clause, keyword)
        if len(parts) > 1:
            return combine(evaluate_where(document, part, parsed) for part in parts)

    if clause.upper().startswith("NOT "):
        return not evaluate_where(document, clause[4:], parsed)

    between = re.match(r"^(.+?)\s+BETWEEN\s+(.+?)\s+AND\s+(.+)$", clause, re.IGNORECASE)
    if between:
        value = _operand(document, between.group(1), parsed)
        lower = _operand(document, between.group(2), parsed)
        upper = _operand(document, between.group(3), parsed)
        if _MISSING in (value, lower, upper):
            return False
        try:
            return lower <= value <= upper
        except TypeError:
            return False

    in_match = re.match(r"^(.+?)\s+IN\s*\((.*)\)$", clause, re.IGNORECASE)
    if in_match:
        value = _operand(document, in_match.group(1), parsed)
        if value is _MISSING:
            return False
        candidates = [
            _operand(document, item, parsed) for item in _split_list(in_match.group(2))
        ]
        return value in candidates

    for op in _COMPARISON_OPS:
        parts = _split_top_level(clause, op, symbol=True)
        if len(parts) == 2:
            left = _operand(document, parts[0], parsed)
            right = _operand(document, parts[1], parsed)
            return _compare(left, right, op)

    # Bare boolean expression, e.g. "c.IsRegistered"
    return _operand(document, clause, parsed) is True


def get_path_value(document: Any, path: str) -> Any:
    """
    Resolve a property path such as "Children[0].Grade" in a document.

    Returns:
        The value, or a sentinel when any segment is missing
    """
    value = document
    for name, index, quoted in _PATH_PART.findall(path):
        key = name or quoted
        if key:
            if not isinstance(value, dict) or key not in value:
                return _MISSING
            value = value[key]
        else:
            position = int(index)
            if not isinstance(value, list) or position >= len(value):
                return _MISSING
            value = value[position]
    return value


def _operand(document: Dict[str, Any], token: str, parsed: ParsedQuery) -> Any:
    token = token.strip()
    if len(token) >= 2 and token[0] == token[-1] and token[0] in ("'", '"'):
        return token[1:-1]
    lowered = token.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if lowered == "null":
        return None
    if token.startswith("@"):
        if token not in parsed.parameters:
            raise StoreServiceError.of(
                StoreErrorKind.BAD_REQUEST, f"Parameter '{token}' was not supplied"
            )
        return parsed.parameters[token]
    try:
        return int(token)
    except ValueError:
        pass
    try:
        return float(token)
    except ValueError:
        pass
    return get_path_value(document, _strip_alias(token, parsed.alias))


def _compare(left: Any, right: Any, op: str) -> bool:
    # Undefined properties never match, mirroring Cosmos DB semantics
    if left is _MISSING or right is _MISSING:
        return False
    if op == "=":
        return left == right
    if op in ("!=", "<>"):
        return left != right
    if isinstance(left, bool) or isinstance(right, bool):
        return False
    try:
        if op == ">":
            return left > right
        if op == "<":
            return left < right
        if op == ">=":
            return left >= right
        if op == "<=":
            return left <= right
    except TypeError:
        return False
    return False


def _strip_alias(expr: str, alias: str) -> str:
    expr = expr.strip()
    if expr == alias:
        return ""
    prefix = f"{alias}."
    if expr.startswith(prefix):
        return expr[len(prefix):]
    if expr.startswith(f"{alias}["):
        return expr[len(alias):]
    return expr


def _strip_parens(clause: str) -> str:
    while clause.startswith("(") and clause.endswith(")") and _balanced(clause[1:-1]):
        clause = clause[1:-1].strip()
    return clause


def _balanced(text: str) -> bool:
    depth = 0
    quote = None
    for ch in text:
        if quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def _split_top_level(clause: str, separator: str, symbol: bool = False) -> List[str]:
    """Split on a keyword or operator outside quotes and parentheses."""
    parts: List[str] = []
    depth = 0
    quote = None
    start = 0
    i = 0
    upper = clause.upper()
    token = separator if symbol else f" {separator} "
    # The AND belonging to "x BETWEEN a AND b" is not a conjunction
    between_open = False
    while i < len(clause):
        ch = clause[i]
        if quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif depth == 0 and not symbol and upper.startswith(" BETWEEN ", i):
            between_open = True
        elif depth == 0 and upper.startswith(token, i):
            # "<" must not match the first half of "<=" or "<>"
            if symbol and clause[i + len(token):i + len(token) + 1] in ("=", ">"):
                i += 2
                continue
            if separator == "AND" and between_open:
                between_open = False
                i += len(token)
                continue
            parts.append(clause[start:i])
            i += len(token)
            start = i
            continue
        i += 1
    parts.append(clause[start:])
    return [part.strip() for part in parts]


def _split_list(text: str) -> List[str]:
    return [item for item in _split_top_level(text, ",", symbol=True) if item]


def _sort_key(value: Any) -> Tuple[int, Any]:
    if value is _MISSING or value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (1, value)
    if isinstance(value, (int, float)):
        return (2, value)
    return (3, str(value))


def _project(document: Dict[str, Any], parsed: ParsedQuery) -> Dict[str, Any]:
    projected: Dict[str, Any] = {}
    for field_expr in parsed.select:
        alias_match = re.match(r"^(.+?)\s+AS\s+(\w+)$", field_expr, re.IGNORECASE)
        if alias_match:
            source, name = alias_match.group(1), alias_match.group(2)
        else:
            source = field_expr
            name = _strip_alias(field_expr, parsed.alias).split(".")[-1]
        value = get_path_value(document, _strip_alias(source, parsed.alias))
        if value is not _MISSING:
            projected[name] = value
    return projected


def partition_key_value(document: Dict[str, Any], partition_key_path: str) -> Optional[str]:
    """
    Extract the partition key value addressed by a path such as "/Address/State".

    Segments may be quoted ("/\"first-name\"") to carry characters outside
    [A-Za-z0-9_].

    Returns:
        The value as a string, or None when the document has no value at the path
    """
    value: Any = document
    for segment in partition_key_path.strip("/").split("/"):
        if len(segment) >= 2 and segment[0] == segment[-1] == '"':
            segment = segment[1:-1]
        if not isinstance(value, dict) or segment not in value:
            return None
        value = value[segment]
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)
