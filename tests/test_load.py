# WORKFLOW: Tests for the insert-or-ignore sink, against a throwaway SQLite database.
# Test scenarios:
# 1. First load inserts, second load of the same keys inserts nothing
# 2. Batching does not change the outcome
# 3. Records without a key are rejected
# 4. Unsupported dialects are rejected

from datetime import date

import pytest
from sqlalchemy import Text, func, select

from db.models import get_rvu_table
from etl.decoder import decode_row
from etl.id_hash import assign_id_hash
from etl.load import chunked, insert_ignore_statement, put_batch, put_records
from etl.record import Provenance, RelativeValueUnit
from tests.conftest import EFFECTIVE, build_row

PROVENANCE = Provenance(source="https://example.test/rvu24a.zip", effective_date=EFFECTIVE)


def _keyed(hcpcs_codes, provenance=PROVENANCE):
    return [assign_id_hash(decode_row(build_row(c0=code), provenance)) for code in hcpcs_codes]


def _row_count(session_factory) -> int:
    table = get_rvu_table(None, "rvu")
    with session_factory() as db:
        return db.execute(select(func.count()).select_from(table)).scalar_one()


def test_chunked():
    assert [list(chunk) for chunk in chunked([1, 2, 3, 4, 5], 2)] == [[1, 2], [3, 4], [5]]
    assert list(chunked([], 3)) == []


def test_first_load_inserts_every_record(session_factory):
    records = _keyed(["99211", "99212", "99213"])

    with session_factory() as db:
        assert put_records(db, records, schema="cmsrvu") == 3

    assert _row_count(session_factory) == 3


def test_reloading_same_records_is_a_no_op(session_factory):
    records = _keyed(["99211", "99212", "99213"])

    with session_factory() as db:
        put_records(db, records)
    with session_factory() as db:
        assert put_records(db, records) == 0

    assert _row_count(session_factory) == 3


def test_overlapping_load_only_adds_new_keys(session_factory):
    with session_factory() as db:
        put_records(db, _keyed(["99211", "99212"]))
    with session_factory() as db:
        assert put_records(db, _keyed(["99212", "99213", "99214"])) == 2

    assert _row_count(session_factory) == 4


def test_duplicates_within_one_batch(session_factory):
    records = _keyed(["99213", "99213", "99214"])
    with session_factory() as db:
        assert put_records(db, records) == 2


@pytest.mark.parametrize("batch_size", [1, 2, 1000])
def test_batch_size_does_not_change_result(session_factory, batch_size):
    records = _keyed([f"9921{i}" for i in range(5)])
    with session_factory() as db:
        assert put_records(db, records, batch_size=batch_size) == 5
    assert _row_count(session_factory) == 5


def test_same_code_different_effective_date_is_a_new_row(session_factory):
    april = Provenance(source=PROVENANCE.source, effective_date=date(2024, 4, 1))
    with session_factory() as db:
        put_records(db, _keyed(["99213"]))
        assert put_records(db, _keyed(["99213"], april)) == 1


def test_stored_columns(session_factory):
    record = _keyed(["99213"])[0]
    with session_factory() as db:
        put_records(db, [record])

    table = get_rvu_table(None, "rvu")
    with session_factory() as db:
        row = db.execute(select(table)).mappings().one()

    assert row[table.c.id_hash] == record.id_hash
    assert row[table.c.hcpcs] == "99213"
    assert row[table.c.effective_date] == EFFECTIVE
    assert row[table.c.source] == PROVENANCE.source
    assert row[table.c.status] == "Active"
    assert row[table.c.conversion_factor] == pytest.approx(32.7442)


def test_unkeyed_record_is_rejected(session_factory):
    record = decode_row(build_row(), PROVENANCE)
    with session_factory() as db:
        with pytest.raises(ValueError):
            put_records(db, [record])


def test_empty_load(session_factory):
    with session_factory() as db:
        assert put_records(db, []) == 0


def test_unsupported_dialect():
    with pytest.raises(ValueError):
        insert_ignore_statement(get_rvu_table(None, "rvu"), "mssql")


def test_table_columns_use_record_field_keys():
    table = get_rvu_table(None, "rvu")
    assert set(table.c.keys()) == set(RelativeValueUnit.model_fields)
    assert table.c.id_hash.name == "_id_hash"
    assert table.c.effective_date.name == "_effective_date"
    assert table.c.id_hash.primary_key


def test_coded_columns_are_unbounded_text():
    table = get_rvu_table(None, "rvu")
    for key in ("hcpcs", "modifier_code", "status_code", "global_surgery_code",
                "endoscopic_base_code", "physician_supervision_code"):
        assert isinstance(table.c[key].type, Text)


def test_oversized_cells_still_load(session_factory):
    row = build_row(c0="99213-EXTENDED", c3="ACTIVE", c26="99999999999999999999", c24="9" * 400)
    record = assign_id_hash(decode_row(row, PROVENANCE))

    with session_factory() as db:
        assert put_records(db, [record]) == 1

    table = get_rvu_table(None, "rvu")
    with session_factory() as db:
        stored = db.execute(select(table)).mappings().one()
    assert stored[table.c.status_code] == "ACTIVE"
    assert stored[table.c.calculation_flag] is None
    assert stored[table.c.conversion_factor] is None


def test_batch_rolls_back_on_driver_error(session_factory, monkeypatch):
    records = _keyed(["99213"])
    rollbacks = []

    with session_factory() as db:
        def failing_execute(*args, **kwargs):
            raise OverflowError("Python int too large to convert to SQLite INTEGER")

        monkeypatch.setattr(db, "execute", failing_execute)
        monkeypatch.setattr(db, "rollback", lambda: rollbacks.append(True))

        with pytest.raises(OverflowError):
            put_batch(db, get_rvu_table(None, "rvu"), records)

    assert rollbacks == [True]
