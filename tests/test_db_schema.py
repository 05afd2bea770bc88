"""Tests for database schema and repository persistence."""

import sqlite3
from decimal import Decimal
from pathlib import Path

import pytest

from routingplan.core.errors import PersistenceError
from routingplan.core.models import Machine, OperationOrder, ProcessLine, WorkCenter, WorkCenterType
from routingplan.data.db import Db
from routingplan.data.repository import RoutingRepository


@pytest.fixture
def temp_db(tmp_path):
    db_path = Path(tmp_path) / "test.db"
    db = Db(db_path)
    db.ensure_schema()
    return db


def test_ensure_schema_creates_all_tables(temp_db):
    with temp_db.connect() as con:
        tables = {r[0] for r in con.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()}

    for table in (
        "core_audit_log",
        "core_config",
        "machine",
        "work_center",
        "work_center_group",
        "work_center_group_member",
        "prod_process",
        "process_line",
        "operation_order",
    ):
        assert table in tables


def test_ensure_schema_is_idempotent(temp_db):
    temp_db.ensure_schema()
    temp_db.ensure_schema()


def test_connect_rolls_back_on_error(temp_db):
    with pytest.raises(RuntimeError):
        with temp_db.connect() as con:
            con.execute("INSERT INTO machine(code, name) VALUES('M-1', 'One')")
            raise RuntimeError("boom")

    with temp_db.connect() as con:
        assert con.execute("SELECT COUNT(*) FROM machine").fetchone()[0] == 0


def test_work_center_type_is_constrained(temp_db):
    with pytest.raises(sqlite3.IntegrityError):
        with temp_db.connect() as con:
            con.execute("INSERT INTO work_center(code, name, work_center_type) VALUES('W', 'W', 9)")


def test_work_center_round_trip_keeps_decimals_exact(temp_db):
    repo = RoutingRepository(temp_db)
    saved = repo.upsert_work_center(
        WorkCenter(
            work_center_id=None,
            code="WC-1",
            name="Oven",
            work_center_type=WorkCenterType.BOTH,
            machine=Machine(machine_id=None, code="OV-1", name="Oven 1"),
            min_capacity_per_cycle=Decimal("0.25"),
            max_capacity_per_cycle=Decimal("37.5"),
        )
    )

    assert saved.work_center_id is not None
    assert saved.machine.machine_id is not None
    assert repo.get_work_center_by_code("WC-1") == saved
    assert saved.max_capacity_per_cycle == Decimal("37.5")


def test_upsert_work_center_updates_by_code(temp_db):
    repo = RoutingRepository(temp_db)
    first = repo.upsert_work_center(WorkCenter(work_center_id=None, code="WC-1", name="Old"))
    second = repo.upsert_work_center(WorkCenter(work_center_id=None, code="WC-1", name="New", setup_duration=12))

    assert first.work_center_id == second.work_center_id
    assert [w.name for w in repo.list_work_centers()] == ["New"]


def test_negative_overhead_is_rejected(temp_db):
    repo = RoutingRepository(temp_db)
    with pytest.raises(ValueError):
        repo.upsert_work_center(WorkCenter(work_center_id=None, code="WC-1", name="W", setup_duration=-1))


def test_save_process_line_is_an_idempotent_upsert(temp_db):
    repo = RoutingRepository(temp_db)
    line = repo.save_process_line(ProcessLine(line_id=None, name="Deburring", max_capacity_per_cycle=Decimal(0)))

    again = repo.save_process_line(line)

    assert again == line
    assert len(repo.list_process_lines()) == 1
    assert again.max_capacity_per_cycle == Decimal(0)
    assert again.work_center is None


def test_unknown_foreign_key_raises_persistence_error(temp_db):
    repo = RoutingRepository(temp_db)
    with pytest.raises(PersistenceError):
        repo.save_operation_order(OperationOrder(order_id=None, name="OP", process_line_id=999))


def test_config_round_trip_is_audited(temp_db):
    repo = RoutingRepository(temp_db)
    assert repo.get_config(key="language", default="en") == "en"

    repo.set_config(key="language", value="es")

    assert repo.get_config(key="language") == "es"
    entry = repo.get_recent_audit_entries(limit=1)[0]
    assert entry.category == "CONFIG"
    assert "es" in entry.details
