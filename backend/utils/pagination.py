from typing import NamedTuple

MAX_PAGE_SIZE = 100


class Page(NamedTuple):
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def normalize_page(page, limit, default_limit: int = 10) -> Page:
    """Clamp raw query values: page >= 1, 1 <= limit <= MAX_PAGE_SIZE."""
    try:
        page = int(page or 1)
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(limit or default_limit)
    except (TypeError, ValueError):
        limit = default_limit
    return Page(page=max(1, page), limit=min(max(1, limit), MAX_PAGE_SIZE))


def total_pages(total: int, limit: int) -> int:
    return (total + limit - 1) // limit if total > 0 else 0


def page_meta(page: Page, total: int) -> dict:
    pages = total_pages(total, page.limit)
    return {
        "currentPage": page.page,
        "totalPages": pages,
        "hasNextPage": page.page < pages,
        "hasPrevPage": page.page > 1,
    }
