from __future__ import annotations

import logging
import sqlite3
from typing import Any, Dict, List, Optional, Sequence

from .schema import (
    CREATE_INDEXES_KCT_TRANSFERS,
    CREATE_TABLE_KCT_TRANSFERS_SQLITE,
    SELECT_KCT_TRANSFER_COLUMNS,
    row_to_transfer_dict,
)

logger = logging.getLogger(__name__)


class SQLiteStorage:
    placeholder = "?"
    # SQLITE_MAX_VARIABLE_NUMBER default since SQLite 3.32
    max_placeholders = 32766

    def __init__(self, path: str):
        self.path = path
        self.conn: Optional[sqlite3.Connection] = None

    def _ensure(self) -> None:
        if self.conn is not None:
            return
        self.setup()

    def setup(self) -> None:
        con = sqlite3.connect(self.path)
        con.row_factory = sqlite3.Row
        con.execute(CREATE_TABLE_KCT_TRANSFERS_SQLITE)
        for ddl in CREATE_INDEXES_KCT_TRANSFERS:
            con.execute(ddl)
        con.commit()
        self.conn = con
        logger.debug("kct_transfers schema ready path=%s", self.path)

    def execute(self, sql: str, params: Sequence[Any] = ()) -> None:
        """
        Run one statement in its own transaction.
        On failure the statement is rolled back and the error re-raised.
        """
        self._ensure()
        try:
            self.conn.execute(sql, tuple(params))
            self.conn.commit()
        except sqlite3.Error:
            self.conn.rollback()
            raise

    def count_transfers(self) -> int:
        self._ensure()
        return int(self.conn.execute("SELECT COUNT(*) FROM kct_transfers").fetchone()[0])

    def read_transfer(self, transaction_log_id: int) -> Optional[Dict[str, Any]]:
        self._ensure()
        cur = self.conn.execute(
            SELECT_KCT_TRANSFER_COLUMNS + " WHERE transactionLogId = ?", (int(transaction_log_id),)
        )
        row = cur.fetchone()
        return row_to_transfer_dict(row) if row else None

    def query_transfers(self, contract_address: bytes, limit: int = 100) -> List[Dict[str, Any]]:
        self._ensure()
        cur = self.conn.execute(
            SELECT_KCT_TRANSFER_COLUMNS
            + " WHERE contractAddress = ? ORDER BY transactionLogId LIMIT ?",
            (bytes(contract_address), int(limit)),
        )
        return [row_to_transfer_dict(r) for r in cur.fetchall()]

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None
