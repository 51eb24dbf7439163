"""Record Store pagination used to hydrate a stream on first access."""

from __future__ import annotations

import logging
from typing import List

from threadstore.store import Record, RecordStore

logger = logging.getLogger(__name__)


async def paginate(
    store: RecordStore, stream_id: int, *, probe_size: int, page_size: int
) -> List[Record]:
    """
    Fetch the complete history of ``stream_id`` newest first.

    A small probe page is requested first so empty streams cost a single call.
    Older pages of ``page_size`` follow until one comes back short.

    :raises StoreUnavailable: if any page fails; partial history is discarded.
    """

    records: List[Record] = list(
        await store.fetch_page(stream_id, limit=probe_size)
    )
    if len(records) < probe_size or not records:
        logger.debug("Stream %s holds %d record(s)", stream_id, len(records))
        return records

    pages = 1
    while True:
        before = records[-1].id
        page = await store.fetch_page(stream_id, limit=page_size, before=before)
        records.extend(page)
        pages += 1
        if len(page) < page_size:
            break

    logger.info(
        "Paginated %d record(s) from stream %s in %d page(s)",
        len(records),
        stream_id,
        pages,
    )
    return records
