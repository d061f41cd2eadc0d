"""Pytest fixtures for testing"""

import pytest
from datetime import datetime, timedelta, timezone
from typing import Generator, List
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from fondo_ledger.api.dependencies import get_clock
from fondo_ledger.api.main import create_app
from fondo_ledger.config import Settings
from fondo_ledger.domain.models import CoSigner, DisbursementInfo
from fondo_ledger.infrastructure.database.models import Base
from fondo_ledger.infrastructure.database.session import get_db, init_db
from fondo_ledger.services.engine import LedgerEngine


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FixedClock:
    """Clock that only moves when a test moves it"""

    def __init__(self, start: datetime):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, days: int = 0, hours: int = 0) -> None:
        self.current += timedelta(days=days, hours=hours)

    def set(self, moment: datetime) -> None:
        self.current = moment


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    init_db(engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def config() -> Settings:
    """Default business rules, independent of any local .env"""
    return Settings(_env_file=None)


@pytest.fixture
def ledger_engine(db: Session, clock: FixedClock, config: Settings) -> LedgerEngine:
    return LedgerEngine.from_session(db, clock, config)


@pytest.fixture
def co_signers() -> List[CoSigner]:
    return [
        CoSigner(member_id="member-2", name="Ana Ruiz", email="ana@example.com", phone="3001112233"),
        CoSigner(member_id="member-3", name="Luis Gomez", email="luis@example.com", phone="3004445566"),
    ]


@pytest.fixture
def funded_member(ledger_engine: LedgerEngine) -> str:
    """Member with 100,000 COP in savings, eligible for loans up to 1,000,000"""
    ledger_engine.savings.deposit("member-1", 100_000, "Initial contribution")
    return "member-1"


@pytest.fixture
def active_loan(ledger_engine: LedgerEngine, funded_member: str, co_signers: List[CoSigner]):
    """1,000,000 COP over 12 months at 2%, approved on 2024-01-15"""
    loan = ledger_engine.loans.submit(funded_member, 1_000_000, 12, "Home repairs", co_signers)
    disbursement = DisbursementInfo(method="cash", notes="Delivered at the office")
    return ledger_engine.loans.approve(loan.loan_id, "admin-1", disbursement)


@pytest.fixture
def client(db: Session, clock: FixedClock) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    return TestClient(app)
