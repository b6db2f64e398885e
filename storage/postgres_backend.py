import logging
from typing import Any, Dict, List, Optional, Sequence

import psycopg2

from .schema import (
    CREATE_INDEXES_KCT_TRANSFERS,
    CREATE_TABLE_KCT_TRANSFERS_POSTGRES,
    SELECT_KCT_TRANSFER_COLUMNS,
    row_to_transfer_dict,
)

logger = logging.getLogger(__name__)


class PostgresStorage:
    placeholder = "%s"
    # bind parameters are counted in an int16 on the wire
    max_placeholders = 65535

    def __init__(self, dsn: str):
        self.dsn = dsn
        self.conn = None

    def _ensure(self) -> None:
        if self.conn is not None:
            return
        self.setup()

    def setup(self) -> None:
        self.conn = psycopg2.connect(self.dsn)
        cur = self.conn.cursor()
        cur.execute(CREATE_TABLE_KCT_TRANSFERS_POSTGRES)
        for ddl in CREATE_INDEXES_KCT_TRANSFERS:
            cur.execute(ddl)
        self.conn.commit()
        logger.debug("kct_transfers schema ready on postgres")

    def execute(self, sql: str, params: Sequence[Any] = ()) -> None:
        self._ensure()
        cur = self.conn.cursor()
        try:
            cur.execute(sql, list(params))
            self.conn.commit()
        except psycopg2.Error:
            self.conn.rollback()
            raise
        finally:
            cur.close()

    def count_transfers(self) -> int:
        self._ensure()
        cur = self.conn.cursor()
        cur.execute("SELECT COUNT(*) FROM kct_transfers")
        return int(cur.fetchone()[0])

    def read_transfer(self, transaction_log_id: int) -> Optional[Dict[str, Any]]:
        self._ensure()
        cur = self.conn.cursor()
        cur.execute(SELECT_KCT_TRANSFER_COLUMNS + " WHERE transactionLogId = %s", (int(transaction_log_id),))
        r = cur.fetchone()
        return row_to_transfer_dict(r) if r else None

    def query_transfers(self, contract_address: bytes, limit: int = 100) -> List[Dict[str, Any]]:
        self._ensure()
        cur = self.conn.cursor()
        cur.execute(
            SELECT_KCT_TRANSFER_COLUMNS
            + " WHERE contractAddress = %s ORDER BY transactionLogId LIMIT %s",
            (psycopg2.Binary(bytes(contract_address)), int(limit)),
        )
        return [row_to_transfer_dict(r) for r in cur.fetchall()]

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None
