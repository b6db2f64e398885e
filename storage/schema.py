# storage/schema.py
CREATE_TABLE_KCT_TRANSFERS_SQLITE = """
CREATE TABLE IF NOT EXISTS kct_transfers (
    transactionLogId BIGINT PRIMARY KEY,
    fromAddr         BLOB NOT NULL,
    toAddr           BLOB NOT NULL,
    value            TEXT NOT NULL,
    contractAddress  BLOB NOT NULL,
    transactionHash  BLOB NOT NULL,
    timestamp        BIGINT NOT NULL
);
"""

CREATE_TABLE_KCT_TRANSFERS_POSTGRES = """
CREATE TABLE IF NOT EXISTS kct_transfers (
    transactionLogId BIGINT PRIMARY KEY,
    fromAddr         BYTEA NOT NULL,
    toAddr           BYTEA NOT NULL,
    value            TEXT NOT NULL,
    contractAddress  BYTEA NOT NULL,
    transactionHash  BYTEA NOT NULL,
    timestamp        BIGINT NOT NULL
);
"""

# lookups by contract and by account, newest first
CREATE_INDEXES_KCT_TRANSFERS = [
    "CREATE INDEX IF NOT EXISTS idx_kct_transfers_contract ON kct_transfers(contractAddress, transactionLogId);",
    "CREATE INDEX IF NOT EXISTS idx_kct_transfers_from ON kct_transfers(fromAddr, transactionLogId);",
    "CREATE INDEX IF NOT EXISTS idx_kct_transfers_to ON kct_transfers(toAddr, transactionLogId);",
]

SELECT_KCT_TRANSFER_COLUMNS = (
    "SELECT transactionLogId, fromAddr, toAddr, value, contractAddress, transactionHash, timestamp "
    "FROM kct_transfers"
)


def row_to_transfer_dict(r) -> dict:
    return {
        "transaction_log_id": int(r[0]),
        "from_addr": bytes(r[1]),
        "to_addr": bytes(r[2]),
        "value": r[3],
        "contract_address": bytes(r[4]),
        "transaction_hash": bytes(r[5]),
        "timestamp": int(r[6]),
    }
