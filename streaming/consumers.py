# streaming/consumers.py
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from common.event_stream import EventStream, StreamRecord
from common.settings import Settings
from kas.models import ChainEvent
from kas.writer import TransferWriter
from kas.decoder import transform_logs_to_transfers
from storage.manager import get_storage
from streaming.producer import CHAIN_EVENTS_TOPIC

logger = logging.getLogger(__name__)


async def consume_topic(
    stream: EventStream,
    topic: str,
    group_id: str,
    on_record: Callable[[StreamRecord], Awaitable[None]],
    *,
    max_records: Optional[int] = None,
) -> int:
    """
    Generic loop for a single topic.
    Consumes from the committed offset plus one, calls the handler, then commits.
    A handler error propagates before the commit, so the record is redelivered
    to the next subscriber of the group.
    Returns the number of records handled once max_records is reached.
    """
    handled = 0
    if max_records is not None and max_records <= 0:
        return handled
    async for rec in stream.subscribe(topic, group_id):
        await on_record(rec)
        await stream.commit(topic, group_id, rec.offset)
        handled += 1
        if max_records is not None and handled >= max_records:
            break
    return handled


async def consume_chain_events(
    stream: EventStream,
    group_id: str,
    store,
    *,
    topic: str = CHAIN_EVENTS_TOPIC,
    max_placeholders: Optional[int] = None,
    max_records: Optional[int] = None,
) -> int:
    """
    Read chain events, decode their token transfers and bulk write them.
    Re-delivered events are harmless because the insert ignores known transfer ids.
    """
    writer = TransferWriter(store, max_placeholders)

    async def _handler(rec: StreamRecord) -> None:
        try:
            event = ChainEvent.from_dict(rec.value)
            transfers = transform_logs_to_transfers(event)
            written = writer.insert_token_transfers(transfers)
        except Exception:
            logger.exception("chain event not processed topic=%s offset=%d key=%s", rec.topic, rec.offset, rec.key)
            raise
        logger.info("block=%s token_transfers=%d", rec.key, written)

    return await consume_topic(stream, topic, group_id, _handler, max_records=max_records)


async def consume_with_settings(
    stream: EventStream,
    settings: Settings,
    *,
    store=None,
    max_records: Optional[int] = None,
) -> int:
    """
    Run consume_chain_events with topic and group from settings.stream,
    the placeholder limit from settings.kas and, unless a store is given,
    the store described by settings.db.
    """
    owned = store is None
    if owned:
        store = get_storage(settings.db.driver, sqlite_path=settings.db.sqlite_path, dsn=settings.db.dsn)
        store.setup()
    try:
        return await consume_chain_events(
            stream,
            settings.stream.group_id,
            store,
            topic=settings.stream.topic,
            max_placeholders=settings.kas.max_placeholders,
            max_records=max_records,
        )
    finally:
        if owned:
            store.close()
