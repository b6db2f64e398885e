# streaming/producer.py
import asyncio
from typing import Any, Dict, Iterable

from common.event_stream import EventStream
from common.utils import hex_to_int

CHAIN_EVENTS_TOPIC = "chain_events"


async def produce_chain_events(
    stream: EventStream,
    events: Iterable[Dict[str, Any]],
    topic: str = CHAIN_EVENTS_TOPIC,
) -> int:
    """Publish chain event dicts keyed by block number. Returns the count published."""
    n = 0
    for ev in events:
        block = ev.get("block") or {}
        key = str(hex_to_int(block.get("number", block.get("block_number", 0))))
        await stream.publish(topic, key=key, value=ev)
        n += 1
        await asyncio.sleep(0)  # yield control
    return n
