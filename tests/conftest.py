"""
Pytest fixtures for the reconciliation test suite.

Every test gets a fresh in-memory SQLite database built through the same
Database class the application uses.
"""

import pytest

from cash_recon.config import ReconConfig
from cash_recon.matching.engine import ReconciliationEngine
from cash_recon.storage import (
    CashReportRepository,
    Database,
    OrderRepository,
    ReconciliationLedger,
    ScopeLocks,
)


@pytest.fixture
def config() -> ReconConfig:
    return ReconConfig()


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.create_tables()
    yield db
    db.drop_tables()
    db.dispose()


@pytest.fixture
def order_repo(database) -> OrderRepository:
    return OrderRepository(database)


@pytest.fixture
def report_repo(database) -> CashReportRepository:
    return CashReportRepository(database)


@pytest.fixture
def ledger(database) -> ReconciliationLedger:
    return ReconciliationLedger(database, locks=ScopeLocks())


@pytest.fixture
def make_engine(order_repo, report_repo, ledger):
    """Build an engine, optionally with a non-default configuration."""

    def _make(config: ReconConfig = None) -> ReconciliationEngine:
        return ReconciliationEngine(config or ReconConfig(), order_repo, report_repo, ledger)

    return _make


@pytest.fixture
def engine(make_engine, config) -> ReconciliationEngine:
    return make_engine(config)
