"""Pagination and sorting of computed result lists.

Totals and grades are derived from the rubric at request time, so listings
are sorted and sliced in memory rather than by MongoDB.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Sequence, Tuple, TypeVar

T = TypeVar("T")


class PagingParamError(ValueError):
    """Raised when pagination or sort query parameters are invalid."""


@dataclass
class PagingParams:
    page: int
    page_size: int
    sort_field: str
    descending: bool = False

    @property
    def normalized_sort(self) -> str:
        return f"-{self.sort_field}" if self.descending else self.sort_field


def _parse_int_arg(
    raw_value: str | None,
    *,
    name: str,
    default: int,
    minimum: int,
    maximum: int | None = None,
) -> int:
    if raw_value in (None, ""):
        return default
    try:
        value = int(raw_value)
    except (TypeError, ValueError):
        raise PagingParamError(f"{name} must be an integer.") from None

    if value < minimum:
        raise PagingParamError(f"{name} must be ≥ {minimum}.")
    if maximum is not None and value > maximum:
        raise PagingParamError(f"{name} must be ≤ {maximum}.")
    return value


def parse_paging_params(
    args: Mapping[str, str],
    *,
    allowed_sort_fields: Mapping[str, str],
    default_sort: str,
    default_page_size: int = 25,
    max_page_size: int = 200,
) -> PagingParams:
    """Read ``page``, ``page_size`` and ``sort`` from request args.

    ``sort`` names one of ``allowed_sort_fields``; a leading ``-`` sorts
    descending. The mapping translates public names to item fields.
    """

    page = _parse_int_arg(args.get("page"), name="page", default=1, minimum=1)
    page_size = _parse_int_arg(
        args.get("page_size"),
        name="page_size",
        default=default_page_size,
        minimum=1,
        maximum=max_page_size,
    )

    raw_sort = args.get("sort") or default_sort
    descending = raw_sort.startswith("-")
    name = raw_sort[1:] if descending else raw_sort
    if name not in allowed_sort_fields:
        options = [value for field in sorted(allowed_sort_fields) for value in (field, f"-{field}")]
        raise PagingParamError("sort must be one of: " + ", ".join(options) + ".")

    return PagingParams(
        page=page,
        page_size=page_size,
        sort_field=allowed_sort_fields[name],
        descending=descending,
    )


def paginate(
    items: Sequence[T],
    paging: PagingParams,
    sort_key: Callable[[T], Any],
) -> Tuple[List[T], Dict[str, Any]]:
    """Sort and slice ``items``; return the page and its metadata.

    A page beyond the last one is clamped to the last page.
    """

    ordered = sorted(items, key=sort_key, reverse=paging.descending)
    total = len(ordered)
    max_page = max(1, -(-total // paging.page_size))
    page = min(paging.page, max_page)

    start = (page - 1) * paging.page_size
    meta = {
        "page": page,
        "page_size": paging.page_size,
        "count": total,
        "sort": paging.normalized_sort,
        "has_next": page < max_page,
        "has_prev": page > 1,
    }
    return ordered[start:start + paging.page_size], meta
