"""Tests for engine construction, schema creation and the UTC datetime column type."""

from datetime import UTC, datetime, timedelta, timezone

from sqlalchemy import inspect
from sqlalchemy.pool import StaticPool

from labour_config.loader import parse_config
from labour_kernel.db.base import UTCDateTime
from labour_kernel.db.engine import build_engine, create_tables, drop_tables, engine_from_config
from labour_modules.attendance.selectors import AttendanceSelector

LEDGER_TABLES = {"labour_workers", "labour_attendance", "labour_payments", "labour_penalties"}


class TestBuildEngine:
    def test_in_memory_sqlite_shares_one_connection(self):
        engine = build_engine("sqlite://")
        try:
            assert isinstance(engine.pool, StaticPool)
        finally:
            engine.dispose()

    def test_file_sqlite_pooled(self, tmp_path):
        engine = build_engine(f"sqlite:///{tmp_path / 'a.db'}", pool_size=3)
        try:
            assert engine.dialect.name == "sqlite"
            assert not isinstance(engine.pool, StaticPool)
            assert engine.pool.size() == 3
        finally:
            engine.dispose()

    def test_from_config(self, tmp_path):
        config = parse_config(
            {"database": {"url": f"sqlite:///{tmp_path / 'b.db'}", "echo": True, "pool_size": 4}}
        )
        engine = engine_from_config(config.database)
        try:
            assert engine.echo is True
            assert engine.pool.size() == 4
        finally:
            engine.dispose()


class TestSchema:
    def test_create_and_drop(self):
        engine = build_engine("sqlite://")
        try:
            create_tables(engine)
            assert LEDGER_TABLES <= set(inspect(engine).get_table_names())

            drop_tables(engine)
            assert not LEDGER_TABLES & set(inspect(engine).get_table_names())
        finally:
            engine.dispose()


class TestUTCDateTime:
    def test_naive_result_read_as_utc(self):
        value = UTCDateTime().process_result_value(datetime(2025, 1, 15, 9, 30), None)
        assert value == datetime(2025, 1, 15, 9, 30, tzinfo=UTC)

    def test_aware_bind_converted_to_utc(self):
        ist = timezone(timedelta(hours=5, minutes=30))
        value = UTCDateTime().process_bind_param(datetime(2025, 1, 15, 15, 0, tzinfo=ist), None)
        assert value == datetime(2025, 1, 15, 9, 30, tzinfo=UTC)
        assert value.utcoffset() == timedelta(0)

    def test_round_trip_through_sqlite_stays_aware(
        self, session, attendance_ledger, make_worker, test_actor_id, deterministic_clock,
    ):
        worker_id = make_worker()
        attendance_id = attendance_ledger.mark_attendance(
            worker_id=worker_id,
            project_id=1,
            attendance_date=deterministic_clock.today(),
            kind="full",
            marked_by=test_actor_id,
        )
        attendance_ledger.confirm_attendance(attendance_id, test_actor_id)
        session.expire_all()

        record = AttendanceSelector(session).get(attendance_id)
        assert record.confirmed_at == deterministic_clock.now()
        assert record.confirmed_at.tzinfo is not None
