# helpers shared by the kct transfer tests
from kas.decoder import TRANSFER_EVENT_HASH

TRANSFER_TOPIC0 = "0x" + TRANSFER_EVENT_HASH.hex()
OTHER_TOPIC0 = "0x8c5be1e5ebec7d5bd14f71427d1e84f3dd0314c0f7b2291e5b200ac8c7c3b925"  # Approval


def addr(fill: str, last: str) -> str:
    """20-byte address as 0x hex: 19 bytes of `fill` then `last`."""
    return "0x" + fill * 19 + last


def word(hex_no0x: str) -> str:
    """Left pad to a 32-byte word (64 hex chars, no 0x)."""
    return hex_no0x.rjust(64, "0")


def log_dict(*, topics, data="0x", address=None, block=1, tx_index=0, log_index=0, tx_hash=None):
    return {
        "address": address or addr("cc", "03"),
        "topics": topics,
        "data": data,
        "blockNumber": hex(block),
        "transactionIndex": hex(tx_index),
        "logIndex": hex(log_index),
        "transactionHash": tx_hash or "0x" + "ee" * 32,
    }


def packed_transfer_log(frm: str, to: str, value: int, **kw) -> dict:
    """case 1: from, to and value all in data."""
    data = "0x" + word(frm[2:]) + word(to[2:]) + word(format(value, "x"))
    return log_dict(topics=[TRANSFER_TOPIC0], data=data, **kw)


def indexed_transfer_log(frm: str, to: str, value: int, **kw) -> dict:
    """case 2: from and to as topics, value in data."""
    topics = [TRANSFER_TOPIC0, "0x" + word(frm[2:]), "0x" + word(to[2:])]
    return log_dict(topics=topics, data="0x" + word(format(value, "x")), **kw)


def chain_event_dict(block: int, timestamp: int, logs) -> dict:
    return {
        "block": {"number": hex(block), "timestamp": hex(timestamp), "hash": "0x" + "ab" * 32},
        "logs": list(logs),
    }
