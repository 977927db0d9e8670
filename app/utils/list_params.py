"""
List endpoint query-parameter parsing.

    params = parse_list_params(request.args, allowed_order_columns={...})
    params["limit"], params["offset"], params["order_by"], ...

Accepted parameters:
    limit   integer in [1, max_limit]
    offset  integer >= 0
    fields  "all" | "brief"
    order   "column[:asc|desc]" or {"column": ..., "direction": ...}

Every rejection raises :class:`ListParamError` with ``status = 400``.
"""

from __future__ import annotations

from app.core.exceptions import ListParamError

VALID_FIELDS = {"all", "brief"}
VALID_DIRECTIONS = {"asc", "desc"}


def build_allowed_order_map(allowed_order_columns) -> dict[str, str] | None:
    """Map lower-cased public column names to the real column expression."""
    if not allowed_order_columns:
        return None
    mapping: dict[str, str] = {}
    if isinstance(allowed_order_columns, (list, tuple, set)):
        for col in allowed_order_columns:
            name = str(col or "").strip()
            if name:
                mapping[name.lower()] = name
        return mapping
    if isinstance(allowed_order_columns, dict):
        for key, value in allowed_order_columns.items():
            col_key = str(key or "").strip().lower()
            col_value = str(value or "").strip()
            if col_key and col_value:
                mapping[col_key] = col_value
        return mapping
    return None


def parse_order_value(raw_value, allowed_map) -> dict:
    """Validate one order value and return ``{column, direction, order_by}``."""
    if not allowed_map:
        raise ListParamError("Ordering is not supported for this endpoint")

    if isinstance(raw_value, dict):
        column = str(raw_value.get("column") or "").strip().lower()
        if not column or column not in allowed_map:
            raise ListParamError("Invalid order column")
        direction = str(raw_value.get("direction") or "desc").strip().lower()
    else:
        raw = str(raw_value if raw_value is not None else "").strip()
        if not raw:
            raise ListParamError("Invalid order")
        parts = raw.split(":")
        if len(parts) > 2:
            raise ListParamError("Invalid order")
        column = parts[0].strip().lower()
        if not column or column not in allowed_map:
            raise ListParamError("Invalid order column")
        direction = (parts[1].strip().lower() if len(parts) == 2 else "") or "desc"

    if direction not in VALID_DIRECTIONS:
        raise ListParamError("Invalid order direction")
    return {
        "column": column,
        "direction": direction,
        "order_by": f"{allowed_map[column]} {direction.upper()}",
    }


def _parse_int(raw) -> int | None:
    """Integer value of *raw*, accepting ``"10"``, ``"10.0"`` and ``10``."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    try:
        n = float(str(raw).strip())
    except ValueError:
        return None
    if not n.is_integer():
        return None
    return int(n)


def parse_list_params(
    query,
    *,
    default_limit: int = 50,
    max_limit: int = 200,
    default_offset: int = 0,
    allowed_order_columns=None,
    default_order=None,
    apply_default_limit: bool = True,
) -> dict:
    """Normalize list query parameters.

    Args:
        query: Mapping of raw parameters (``request.args`` or a plain dict).
        default_limit: Limit applied when a paged/selective request omits it.
        max_limit: Largest accepted ``limit``.
        default_offset: Offset used when ``offset`` is absent.
        allowed_order_columns: List of column names, or dict of public
            name -> real column.  ``None`` disables ordering.
        default_order: Order used when ``order`` is absent; validated like
            an explicit one.
        apply_default_limit: When False, an absent ``limit`` stays ``None``.

    Returns:
        dict with ``limit, offset, fields, order, order_by,
        is_paged_or_selective`` and the four ``has_*_param`` flags.

    Raises:
        ListParamError: on any invalid value (status 400).
    """
    query = query if query is not None else {}
    has_limit_param = "limit" in query
    has_offset_param = "offset" in query
    has_fields_param = "fields" in query
    has_order_param = "order" in query

    fields = "all"
    if has_fields_param:
        raw = str(query.get("fields") or "").strip().lower()
        if raw not in VALID_FIELDS:
            raise ListParamError("Invalid fields")
        fields = raw

    is_paged_or_selective = (
        has_limit_param or has_offset_param or has_fields_param or has_order_param
        or fields == "brief"
    )

    limit = None
    if has_limit_param:
        raw_limit = query.get("limit")
        if raw_limit is None or raw_limit == "":
            raise ListParamError("Invalid limit")
        parsed = _parse_int(raw_limit)
        if parsed is None or parsed < 1 or parsed > max_limit:
            raise ListParamError("Invalid limit")
        limit = parsed
    elif apply_default_limit and is_paged_or_selective:
        limit = default_limit

    offset = default_offset
    if has_offset_param:
        raw_offset = query.get("offset")
        if raw_offset is None or raw_offset == "":
            raise ListParamError("Invalid offset")
        parsed = _parse_int(raw_offset)
        if parsed is None or parsed < 0:
            raise ListParamError("Invalid offset")
        offset = parsed

    allowed_map = build_allowed_order_map(allowed_order_columns)
    order = None
    order_by = None
    source = query.get("order") if has_order_param else default_order
    if has_order_param or default_order:
        parsed_order = parse_order_value(source, allowed_map)
        order = {"column": parsed_order["column"], "direction": parsed_order["direction"]}
        order_by = parsed_order["order_by"]

    return {
        "limit": limit,
        "offset": offset,
        "fields": fields,
        "order": order,
        "order_by": order_by,
        "is_paged_or_selective": is_paged_or_selective,
        "has_limit_param": has_limit_param,
        "has_offset_param": has_offset_param,
        "has_fields_param": has_fields_param,
        "has_order_param": has_order_param,
    }
