# kas/decoder.py
from __future__ import annotations

import dataclasses
from typing import List, NamedTuple, Sequence

from kas.models import ChainEvent, KCTTransfer, LogEntry

# keccak256("Transfer(address,address,uint256)")
TRANSFER_EVENT_HASH = bytes.fromhex(
    "ddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
)

HASH_LENGTH = 32
ADDRESS_LENGTH = 20

# transaction_log_id = block * MAX_TX_COUNT_PER_BLOCK * MAX_TX_LOG_COUNT_PER_TX
#                    + tx_index * MAX_TX_LOG_COUNT_PER_TX + log_index
MAX_TX_COUNT_PER_BLOCK = 1_000_000
MAX_TX_LOG_COUNT_PER_TX = 100_000
# ids are stored as signed 64-bit integers
MAX_TRANSACTION_LOG_ID = 2 ** 63 - 1


class TransferDecodeError(ValueError):
    pass


class TransferFields(NamedTuple):
    from_addr: bytes
    to_addr: bytes
    value: int


def split_to_words(data: bytes) -> List[bytes]:
    """Divide log data into 32-byte words."""
    if len(data) % HASH_LENGTH:
        raise TransferDecodeError(
            f"log data length {len(data)} is not a multiple of {HASH_LENGTH}"
        )
    return [data[i:i + HASH_LENGTH] for i in range(0, len(data), HASH_LENGTH)]


def word_to_address(word: bytes) -> bytes:
    """Trim a 32-byte word to its low-order 20 bytes."""
    return bytes(word[-ADDRESS_LENGTH:])


def transaction_log_id(block_number: int, tx_index: int, log_index: int) -> int:
    if not (0 <= tx_index < MAX_TX_COUNT_PER_BLOCK and 0 <= log_index < MAX_TX_LOG_COUNT_PER_TX):
        raise TransferDecodeError(
            f"tx index {tx_index} or log index {log_index} out of range "
            f"for block {block_number}"
        )
    log_id = (
        block_number * MAX_TX_COUNT_PER_BLOCK * MAX_TX_LOG_COUNT_PER_TX
        + tx_index * MAX_TX_LOG_COUNT_PER_TX
        + log_index
    )
    if not 0 <= log_id <= MAX_TRANSACTION_LOG_ID:
        raise TransferDecodeError(
            f"transaction log id for block {block_number} tx {tx_index} log {log_index} "
            f"does not fit in 64 bits"
        )
    return log_id


def decode_transfer_fields(topics: Sequence[bytes], words: Sequence[bytes]) -> TransferFields:
    """
    Resolve from/to/value for both historical Transfer encodings.

    case 1 (non-indexed):  topics = [sig]            data = [from, to, value]
    case 2 (indexed):      topics = [sig, from, to]  data = [value]

    Positions 1, 2 and 3 are counted across the topics first and then the data
    words, so any split between the two resolves the same way.
    """
    def at(pos: int) -> bytes:
        if pos < len(topics):
            return topics[pos]
        i = pos - len(topics)
        if i < len(words):
            return words[i]
        raise TransferDecodeError(
            f"transfer log has {len(topics)} topics and {len(words)} data words, "
            f"position {pos} is missing"
        )

    return TransferFields(
        from_addr=word_to_address(at(1)),
        to_addr=word_to_address(at(2)),
        value=int.from_bytes(at(3), "big"),
    )


def is_token_transfer(log: LogEntry) -> bool:
    return len(log.topics) > 0 and log.topics[0] == TRANSFER_EVENT_HASH


def transform_log_to_transfer(log: LogEntry) -> KCTTransfer:
    """Convert one Transfer log; the block timestamp is stamped by the caller."""
    try:
        fields = decode_transfer_fields(log.topics, split_to_words(log.data))
    except TransferDecodeError as e:
        raise TransferDecodeError(
            f"block {log.block_number} tx {log.tx_index} log {log.index}: {e}"
        ) from e

    return KCTTransfer(
        contract_address=log.address,
        from_addr=fields.from_addr,
        to_addr=fields.to_addr,
        value=hex(fields.value),
        transaction_log_id=transaction_log_id(log.block_number, log.tx_index, log.index),
        transaction_hash=log.tx_hash,
    )


def transform_logs_to_transfers(event: ChainEvent) -> List[KCTTransfer]:
    """Token transfers of one chain event, in log order."""
    timestamp = event.block.timestamp
    out: List[KCTTransfer] = []
    for log in event.logs:
        if not is_token_transfer(log):
            continue
        transfer = transform_log_to_transfer(log)
        out.append(dataclasses.replace(transfer, timestamp=timestamp))
    return out
