"""Keeps configured documents synchronized with their threads."""

from __future__ import annotations

import logging
from typing import Any

from threadstore.config import documents as documents_cfg
from threadstore.errors import ThreadStoreError

from .. import register_feature

logger = logging.getLogger(__name__)


@register_feature
class DocumentSync:
    async def on_ready(self, bot: Any) -> None:
        """Reconcile every configured document, one failure at a time."""

        for name in documents_cfg.NAMES:
            try:
                await bot.documents.initialize(name)
            except ThreadStoreError:
                # Already logged with context by the engine.
                continue
        logger.info(
            "Synchronized %d of %d document(s)",
            len(bot.documents.names()),
            len(documents_cfg.NAMES),
        )

    async def on_record_deleted(self, bot: Any, stream_id: int, record_id: int) -> None:
        """Remove a document's thread when its locator record is deleted."""

        if stream_id != bot.documents.control_stream_id:
            return
        doc = bot.documents.document_for_locator(record_id)
        if doc is None:
            return
        await bot.record_store.detach_substream(stream_id, record_id)
        logger.info('Deleted thread of "%s" with its locator record %s', doc.name, record_id)
