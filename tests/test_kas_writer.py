import logging

import pytest

from kas.models import KCTTransfer
from kas.writer import (
    MAX_PLACEHOLDERS,
    PLACEHOLDERS_PER_KCT_TRANSFER,
    TransferPersistError,
    TransferWriter,
    build_bulk_insert,
)


class RecordingStore:
    """Captures every statement; fails on the nth call when asked to."""

    placeholder = "?"

    def __init__(self, fail_on_call=None, max_placeholders=None):
        self.calls = []
        self.fail_on_call = fail_on_call
        if max_placeholders is not None:
            self.max_placeholders = max_placeholders

    def execute(self, sql, params):
        self.calls.append((sql, list(params)))
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise ConnectionError("store went away")


def make_transfers(n, start=0):
    return [
        KCTTransfer(
            contract_address=b"\x0c" * 20,
            from_addr=b"\x0a" * 20,
            to_addr=b"\x0b" * 20,
            value=hex(i),
            transaction_log_id=start + i,
            transaction_hash=b"\x0e" * 32,
            timestamp=1000,
        )
        for i in range(n)
    ]


def rows_of(call):
    _, params = call
    return len(params) // PLACEHOLDERS_PER_KCT_TRANSFER


def test_chunk_size_from_placeholder_limit():
    assert TransferWriter(RecordingStore()).chunk_size == MAX_PLACEHOLDERS // PLACEHOLDERS_PER_KCT_TRANSFER
    assert TransferWriter(RecordingStore(), max_placeholders=70000).chunk_size == 10000
    assert TransferWriter(RecordingStore(), max_placeholders=13).chunk_size == 1


def test_store_limit_caps_configured_limit():
    w = TransferWriter(RecordingStore(max_placeholders=700), max_placeholders=70000)
    assert w.chunk_size == 100


def test_limit_below_one_row_is_rejected():
    with pytest.raises(ValueError):
        TransferWriter(RecordingStore(), max_placeholders=6)


def test_chunks_preserve_order_and_sizes():
    w = TransferWriter(RecordingStore(), max_placeholders=7 * 4)
    items = make_transfers(10)
    chunks = w.chunks(items)
    assert [len(c) for c in chunks] == [4, 4, 2]
    assert [t for c in chunks for t in c] == items


def test_empty_input_is_noop():
    store = RecordingStore()
    assert TransferWriter(store).insert_token_transfers([]) == 0
    assert store.calls == []


def test_empty_chunk_is_noop(caplog):
    store = RecordingStore()
    with caplog.at_level(logging.DEBUG, logger="kas.writer"):
        TransferWriter(store).bulk_insert([])
    assert store.calls == []
    assert "empty" in caplog.text


def test_build_bulk_insert_statement_and_args():
    trs = make_transfers(2)
    sql, args = build_bulk_insert(trs, placeholder="%s")
    assert "INSERT INTO kct_transfers(transactionLogId, fromAddr, toAddr, value, contractAddress, transactionHash, timestamp)" in sql
    assert "VALUES (%s,%s,%s,%s,%s,%s,%s),(%s,%s,%s,%s,%s,%s,%s)" in sql
    assert "ON CONFLICT (transactionLogId)" in sql
    assert "DO UPDATE SET transactionLogId = kct_transfers.transactionLogId" in sql
    assert args == [
        0, b"\x0a" * 20, b"\x0b" * 20, "0x0", b"\x0c" * 20, b"\x0e" * 32, 1000,
        1, b"\x0a" * 20, b"\x0b" * 20, "0x1", b"\x0c" * 20, b"\x0e" * 32, 1000,
    ]


def test_uses_store_placeholder():
    store = RecordingStore()
    store.placeholder = "%s"
    TransferWriter(store).insert_token_transfers(make_transfers(1))
    sql, _ = store.calls[0]
    assert "(%s,%s,%s,%s,%s,%s,%s)" in sql
    assert "?" not in sql


def test_25000_records_split_in_order():
    store = RecordingStore()
    items = make_transfers(25000)
    written = TransferWriter(store, max_placeholders=70000).insert_token_transfers(items)
    assert written == 25000
    assert [rows_of(c) for c in store.calls] == [10000, 10000, 5000]
    ids = [p for _, params in store.calls for p in params[0::PLACEHOLDERS_PER_KCT_TRANSFER]]
    assert ids == list(range(25000))


def test_failure_on_second_chunk_stops_the_run(caplog):
    store = RecordingStore(fail_on_call=2)
    items = make_transfers(25000)
    w = TransferWriter(store, max_placeholders=70000)

    with caplog.at_level(logging.ERROR, logger="kas.writer"):
        with pytest.raises(TransferPersistError) as ei:
            w.insert_token_transfers(items)

    err = ei.value
    assert err.count == 10000
    assert isinstance(err.error, ConnectionError)
    assert err.__cause__ is err.error
    # chunk 1 went through, chunk 2 failed, chunk 3 never attempted
    assert len(store.calls) == 2
    first_ids = store.calls[0][1][0::PLACEHOLDERS_PER_KCT_TRANSFER]
    assert first_ids == list(range(10000))
    assert "num_token_transfers=10000" in caplog.text


def test_duplicate_ids_in_one_chunk_are_sent_once():
    store = RecordingStore()
    first, second = make_transfers(2)
    again = KCTTransfer(
        contract_address=b"\x0d" * 20,
        from_addr=b"\x0a" * 20,
        to_addr=b"\x0b" * 20,
        value="0xff",
        transaction_log_id=first.transaction_log_id,
        transaction_hash=b"\x0e" * 32,
        timestamp=1,
    )
    written = TransferWriter(store).insert_token_transfers([first, again, second])
    assert written == 3
    _, params = store.calls[0]
    assert rows_of(store.calls[0]) == 2
    assert params[0::PLACEHOLDERS_PER_KCT_TRANSFER] == [0, 1]
    # the first occurrence wins
    assert params[3] == "0x0"
