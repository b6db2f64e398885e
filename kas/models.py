# kas/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from common.utils import hex_to_bytes, hex_to_int


@dataclass(frozen=True)
class Block:
    number: int
    timestamp: int
    hash: bytes = b""

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Block":
        return cls(
            number=hex_to_int(d.get("number", d.get("block_number", 0))),
            timestamp=hex_to_int(d.get("timestamp", 0)),
            hash=hex_to_bytes(d.get("hash") or d.get("block_hash")),
        )


@dataclass(frozen=True)
class LogEntry:
    address: bytes
    topics: Tuple[bytes, ...]
    data: bytes
    block_number: int
    tx_index: int
    index: int
    tx_hash: bytes

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LogEntry":
        """
        Build from the JSON-RPC log shape:
        address, topics, data, blockNumber, transactionIndex, logIndex, transactionHash.
        Numbers may be ints or 0x hex strings. Topics are left-padded to 32 bytes.
        """
        return cls(
            address=hex_to_bytes(d["address"]),
            topics=tuple(hex_to_bytes(t).rjust(32, b"\x00")[-32:] for t in d.get("topics") or []),
            data=hex_to_bytes(d.get("data")),
            block_number=hex_to_int(d.get("blockNumber", d.get("block_number", 0))),
            tx_index=hex_to_int(d.get("transactionIndex", d.get("tx_index", 0))),
            index=hex_to_int(d.get("logIndex", d.get("log_index", 0))),
            tx_hash=hex_to_bytes(d.get("transactionHash") or d.get("tx_hash")),
        )


@dataclass(frozen=True)
class ChainEvent:
    block: Block
    logs: Tuple[LogEntry, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ChainEvent":
        return cls(
            block=Block.from_dict(d["block"]),
            logs=tuple(LogEntry.from_dict(lg) for lg in d.get("logs") or []),
        )


@dataclass(frozen=True)
class KCTTransfer:
    """One decoded token transfer, keyed by transaction_log_id in the store."""
    contract_address: bytes
    from_addr: bytes
    to_addr: bytes
    value: str             # 0x-prefixed lowercase hex
    transaction_log_id: int
    transaction_hash: bytes
    timestamp: int = 0

    def row(self) -> Tuple[Any, ...]:
        """Column values in kct_transfers insert order."""
        return (
            self.transaction_log_id,
            self.from_addr,
            self.to_addr,
            self.value,
            self.contract_address,
            self.transaction_hash,
            self.timestamp,
        )
