"""Tests for ledger replacement and the order/report stores."""

from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timezone
from decimal import Decimal
import uuid

import pytest

from cash_recon.config import ReconConfig
from cash_recon.matching.engine import ReconciliationEngine
from cash_recon.models.records import ReconciliationRecord, ReconciliationStatus
from cash_recon.storage import (
    CashReportRepository,
    Database,
    OrderRepository,
    ReconciliationLedger,
    ScopeLocks,
)
from cash_recon.utils.exceptions import LedgerWriteError
from tests.factories import DAY, STORE, make_order, make_report

NOW = datetime(2024, 1, 16, 9, 0, tzinfo=timezone.utc)


def make_record(order_id, store_id=STORE, status=ReconciliationStatus.MATCHED, day=DAY):
    return ReconciliationRecord(
        id=str(uuid.uuid4()),
        order_id=order_id,
        report_id="R1",
        store_id=store_id,
        reconciliation_date=day,
        expected_amount=Decimal("100.00"),
        actual_amount=Decimal("100.00"),
        variance_amount=Decimal("0"),
        variance_pct=Decimal("0"),
        status=status,
        is_high_priority=False,
        reconciled_at=NOW,
    )


class TestReplace:
    def test_replace_swaps_scope_rows(self, ledger):
        ledger.replace(DAY, None, [make_record("O1"), make_record("O2")])
        ledger.replace(DAY, None, [make_record("O3")])

        assert [r.order_id for r in ledger.records_for(DAY)] == ["O3"]

    def test_replace_with_empty_list_clears_scope(self, ledger):
        ledger.replace(DAY, None, [make_record("O1")])
        ledger.replace(DAY, None, [])

        assert ledger.records_for(DAY) == []

    def test_replace_leaves_other_dates_alone(self, ledger):
        other = date(2024, 1, 16)
        ledger.replace(DAY, None, [make_record("O1")])
        ledger.replace(other, None, [make_record("O2", day=other)])

        ledger.replace(DAY, None, [])

        assert [r.order_id for r in ledger.records_for()] == ["O2"]

    def test_failed_insert_rolls_back_delete(self, ledger):
        ledger.replace(DAY, None, [make_record("O1")])

        with pytest.raises(LedgerWriteError):
            ledger.replace(DAY, None, [make_record("O2"), make_record("O3", store_id=None)])

        assert [r.order_id for r in ledger.records_for(DAY)] == ["O1"]

    def test_duplicate_order_for_a_date_is_rejected(self, ledger):
        with pytest.raises(LedgerWriteError):
            ledger.replace(DAY, None, [make_record("O1"), make_record("O1")])

        assert ledger.records_for(DAY) == []

    def test_records_round_trip_amounts_and_status(self, ledger):
        record = make_record("O1", status=ReconciliationStatus.UNACCOUNTED)
        record.report_id = None
        record.actual_amount = None
        record.variance_amount = None
        record.variance_pct = None
        ledger.replace(DAY, None, [record])

        stored = ledger.records_for(DAY)[0]

        assert stored.id == record.id
        assert stored.status == ReconciliationStatus.UNACCOUNTED
        assert stored.expected_amount == Decimal("100.00")
        assert stored.actual_amount is None
        assert stored.report_id is None

    def test_timestamps_come_back_in_utc(self, ledger):
        record = make_record("O1")
        ledger.replace(DAY, None, [record])

        stored = ledger.records_for(DAY)[0]

        assert stored.reconciled_at.tzinfo is not None
        assert stored.reconciled_at == NOW
        assert stored.reconciled_at == record.reconciled_at

    def test_records_for_filters(self, ledger):
        ledger.replace(
            DAY,
            None,
            [
                make_record("O1", store_id="A"),
                make_record("O2", store_id="B", status=ReconciliationStatus.UNACCOUNTED),
            ],
        )

        assert [r.order_id for r in ledger.records_for(DAY, store_id="B")] == ["O2"]
        assert [
            r.order_id for r in ledger.records_for(status=ReconciliationStatus.MATCHED)
        ] == ["O1"]


class TestScopeLocks:
    def test_same_date_shares_a_lock(self):
        locks = ScopeLocks()
        assert locks.for_date(DAY) is locks.for_date(date(2024, 1, 15))

    def test_different_dates_get_different_locks(self):
        locks = ScopeLocks()
        assert locks.for_date(DAY) is not locks.for_date(date(2024, 1, 16))


class TestStores:
    def test_orders_are_not_inserted_twice(self, order_repo):
        assert order_repo.add_all([make_order("O1"), make_order("O2")]) == 2
        assert order_repo.add_all([make_order("O2"), make_order("O3")]) == 1
        assert [o.order_id for o in order_repo.for_date(DAY)] == ["O1", "O2", "O3"]

    def test_orders_for_date_and_store(self, order_repo):
        order_repo.add_all(
            [
                make_order("O1", store_id="B"),
                make_order("O2", store_id="A"),
                make_order("O3", pickup_date=date(2024, 1, 16)),
            ]
        )

        assert [o.order_id for o in order_repo.for_date(DAY)] == ["O2", "O1"]
        assert [o.order_id for o in order_repo.for_date(DAY, "B")] == ["O1"]
        assert order_repo.distinct_pickup_dates() == [DAY, date(2024, 1, 16)]

    def test_reports_keep_arrival_order_and_raw_claims(self, report_repo):
        report_repo.add_all(
            [
                make_report("R2", "100", ["O1", "O2"]),
                make_report("R1", "50", "not json"),
            ]
        )

        reports = report_repo.for_date(DAY)

        assert [r.report_id for r in reports] == ["R2", "R1"]
        assert reports[0].order_ids == '["O1", "O2"]'
        assert reports[1].order_ids == "not json"
        assert reports[0].total_collected == Decimal("100.00")


@pytest.fixture
def file_database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'ledger.db'}")
    db.create_tables()
    yield db
    db.dispose()


class TestConcurrentReplace:
    def test_disjoint_dates_in_parallel_on_memory_database(self, ledger):
        days = [date(2024, 1, d) for d in range(10, 15)]

        def run(day):
            for _ in range(10):
                ledger.replace(
                    day, None, [make_record(f"O{n}", day=day) for n in range(30)]
                )

        with ThreadPoolExecutor(max_workers=len(days)) as pool:
            futures = [pool.submit(run, day) for day in days]
            for future in futures:
                future.result()

        for day in days:
            assert len(ledger.records_for(day)) == 30

    def test_same_date_runs_do_not_interleave(self, file_database):
        orders = OrderRepository(file_database)
        reports = CashReportRepository(file_database)
        ledger = ReconciliationLedger(file_database, locks=ScopeLocks())
        orders.add_all([make_order(f"O{n}", "100") for n in range(20)])
        reports.add_all([make_report("R1", "1000", [f"O{n}" for n in range(10)])])

        def run():
            engine = ReconciliationEngine(ReconConfig(), orders, reports, ledger)
            for _ in range(5):
                engine.reconcile_date(DAY)

        with ThreadPoolExecutor(max_workers=4) as pool:
            futures = [pool.submit(run) for _ in range(4)]
            for future in futures:
                future.result()

        stored = ledger.records_for(DAY)
        assert sorted(r.order_id for r in stored) == sorted(f"O{n}" for n in range(20))
        assert len({r.id for r in stored}) == 20
