"""Page/limit parsing and the shared list envelope."""
import math
from typing import Any, Iterable, Mapping, NamedTuple, Optional

from flask import current_app

from civicwatch.utils.errors import ValidationError


class PageRequest(NamedTuple):
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def _as_int(value: Any, default: int) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def parse_page_request(args: Mapping) -> PageRequest:
    """Read ``page`` and ``limit``; junk falls back to defaults and values clamp to >= 1."""
    default_limit = int(current_app.config.get("DEFAULT_PAGE_LIMIT", 10))
    max_limit = int(current_app.config.get("MAX_PAGE_LIMIT", 100))
    page = max(_as_int(args.get("page"), 1), 1)
    limit = max(_as_int(args.get("limit"), default_limit), 1)
    return PageRequest(page=page, limit=min(limit, max_limit))


def parse_choice_filter(args: Mapping, name: str, choices: Iterable[str]) -> Optional[str]:
    raw = args.get(name)
    if raw is None or str(raw).strip() == "":
        return None
    value = str(raw).strip().upper()
    if value not in choices:
        raise ValidationError(f"Invalid {name} filter", errors={name: [f"Must be one of: {', '.join(choices)}"]})
    return value


def paginate(query, page_request: PageRequest, order_by: Iterable = ()) -> tuple[list, int]:
    """Run ``query`` for one page and count it with the very same filter predicate."""
    total = query.order_by(None).count()
    if page_request.skip >= total:
        return [], total
    items = query.order_by(*order_by).offset(page_request.skip).limit(page_request.limit).all()
    return items, total


def pagination_block(total: int, page_request: PageRequest) -> dict:
    return {
        "total": total,
        "page": page_request.page,
        "limit": page_request.limit,
        "pages": math.ceil(total / page_request.limit),
    }


def list_envelope(key: str, payloads: list, total: int, page_request: PageRequest) -> dict:
    return {
        "status": "success",
        "results": len(payloads),
        "pagination": pagination_block(total, page_request),
        "data": {key: payloads},
    }
