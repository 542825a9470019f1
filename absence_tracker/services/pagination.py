from absence_tracker.core.config import settings


async def fetch_all(gateway, table: str, columns: str = "*", page_size: int | None = None) -> list[dict]:
    """
    Read every row of `table` in fixed-size ranges.

    Stops on the first page shorter than `page_size` (or empty). Server order
    is not stable across pages, so callers sort the result themselves.
    Any page error propagates; there is no partial result and no retry.
    """
    size = page_size or settings.PAGE_SIZE
    rows: list[dict] = []
    start = 0
    while True:
        page = await gateway.fetch_page(table, columns, start, start + size - 1)
        if not page:
            break
        rows.extend(page)
        if len(page) < size:
            break
        start += size
    return rows
