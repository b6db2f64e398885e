# kas/writer.py
from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence, Tuple

from common.utils import chunked
from kas.decoder import transform_logs_to_transfers
from kas.models import ChainEvent, KCTTransfer

logger = logging.getLogger(__name__)

# one row binds: transactionLogId, fromAddr, toAddr, value, contractAddress, transactionHash, timestamp
PLACEHOLDERS_PER_KCT_TRANSFER = 7
MAX_PLACEHOLDERS = 65535

KCT_TRANSFER_COLUMNS = (
    "transactionLogId",
    "fromAddr",
    "toAddr",
    "value",
    "contractAddress",
    "transactionHash",
    "timestamp",
)

_INSERT_KCT_TRANSFERS = """
INSERT INTO kct_transfers({columns})
VALUES {values}
ON CONFLICT (transactionLogId)
DO UPDATE SET transactionLogId = {table}.transactionLogId
"""


class TransferPersistError(RuntimeError):
    """A chunk of transfers was rejected by the store. Earlier chunks stay committed."""

    def __init__(self, error: BaseException, count: int):
        super().__init__(f"failed to insert {count} token transfers: {error}")
        self.error = error
        self.count = count


def unique_by_log_id(transfers: Sequence[KCTTransfer]) -> List[KCTTransfer]:
    """
    First transfer per transactionLogId, order kept.
    Postgres rejects an upsert that touches the same key twice in one statement.
    """
    seen = set()
    out: List[KCTTransfer] = []
    for tr in transfers:
        if tr.transaction_log_id in seen:
            continue
        seen.add(tr.transaction_log_id)
        out.append(tr)
    return out


def build_bulk_insert(
    transfers: Sequence[KCTTransfer], placeholder: str = "?"
) -> Tuple[str, List[Any]]:
    """
    Multi-row upsert for kct_transfers plus its flat row-major argument list.
    A duplicate transactionLogId keeps the stored row untouched.
    """
    row = "(" + ",".join([placeholder] * PLACEHOLDERS_PER_KCT_TRANSFER) + ")"
    args: List[Any] = []
    for tr in transfers:
        args.extend(tr.row())
    sql = _INSERT_KCT_TRANSFERS.format(
        columns=", ".join(KCT_TRANSFER_COLUMNS),
        values=",".join([row] * len(transfers)),
        table="kct_transfers",
    )
    return sql, args


class TransferWriter:
    """
    Persists transfers in chunks that fit the placeholder limit of one statement.

    contract
    chunks are written in input order, one statement each
    the first failing chunk stops the run and raises TransferPersistError
    chunks written before the failure are not rolled back
    """

    def __init__(self, store, max_placeholders: Optional[int] = None):
        self.store = store
        limit = max_placeholders if max_placeholders is not None else MAX_PLACEHOLDERS
        store_limit = getattr(store, "max_placeholders", None)
        if store_limit is not None:
            limit = min(limit, store_limit)
        if limit < PLACEHOLDERS_PER_KCT_TRANSFER:
            raise ValueError(
                f"max_placeholders {limit} cannot hold one row of {PLACEHOLDERS_PER_KCT_TRANSFER}"
            )
        self.max_placeholders = limit
        self.chunk_size = limit // PLACEHOLDERS_PER_KCT_TRANSFER
        self.placeholder = getattr(store, "placeholder", "?")

    def chunks(self, transfers: Sequence[KCTTransfer]) -> List[List[KCTTransfer]]:
        return list(chunked(transfers, self.chunk_size))

    def insert_token_transfers(self, transfers: Sequence[KCTTransfer]) -> int:
        """Write all transfers; returns how many were submitted."""
        written = 0
        for chunk in self.chunks(transfers):
            try:
                self.bulk_insert(chunk)
            except Exception as e:
                logger.error(
                    "failed to insert token transfers err=%s num_token_transfers=%d",
                    e, len(chunk),
                )
                raise TransferPersistError(e, len(chunk)) from e
            written += len(chunk)
        return written

    def bulk_insert(self, transfers: Sequence[KCTTransfer]) -> None:
        """Insert the given transfers in multiple rows at once."""
        if not transfers:
            logger.debug("the token transfer list is empty")
            return
        rows = unique_by_log_id(transfers)
        if len(rows) < len(transfers):
            logger.debug("dropped %d duplicate token transfers in chunk", len(transfers) - len(rows))
        sql, args = build_bulk_insert(rows, self.placeholder)
        self.store.execute(sql, args)


def insert_token_transfers(event: ChainEvent, store, max_placeholders: Optional[int] = None) -> int:
    """Decode the token transfers of one chain event and persist them."""
    transfers = transform_logs_to_transfers(event)
    return TransferWriter(store, max_placeholders).insert_token_transfers(transfers)
