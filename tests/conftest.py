"""Shared fixtures: in-memory database, policy configuration and payments."""

import uuid
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import Base, build_engine
from app.models import commission, lease_payment, leasing  # noqa: F401
from app.models.lease_payment import LeasePaymentRecord
from app.models.leasing import Agency, Lease, Property
from app.services.commission_diagnostics import RecordingDiagnosticsSink
from app.services.commission_evaluator import CommissionPolicyEvaluator
from app.services.commission_ledger_service import CommissionLedgerService


@pytest.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def diagnostics():
    return RecordingDiagnosticsSink()


@pytest.fixture
def evaluator(diagnostics):
    return CommissionPolicyEvaluator(diagnostics=diagnostics)


@pytest.fixture
def ledger(db_session, evaluator):
    return CommissionLedgerService(db_session, evaluator=evaluator)


@pytest.fixture
def make_agency(db_session):
    async def _make(
        commission_type: str = "PERCENTAGE",
        rate: Decimal = Decimal("10"),
        fixed: Decimal = None,
    ) -> Agency:
        agency = Agency(
            id=uuid.uuid4(),
            name="Harbour Lettings",
            agency_platform_commission_type=commission_type,
            agency_platform_commission_rate=rate,
            agency_platform_commission_fixed=fixed,
        )
        db_session.add(agency)
        await db_session.flush()
        return agency

    return _make


@pytest.fixture
def make_lease(db_session):
    async def _make(
        commission_type: str = "PERCENTAGE",
        commission_percentage: Decimal = Decimal("10"),
        commission_fixed_amount: Decimal = None,
        platform_fee_percentage: Decimal = Decimal("20"),
        agency: Agency = None,
        agency_commission_type: str = None,
        agency_commission_rate: Decimal = None,
        agency_commission_fixed: Decimal = None,
        agent_id: uuid.UUID = None,
        landlord_id: uuid.UUID = None,
    ) -> Lease:
        landlord_id = landlord_id or uuid.uuid4()
        agent_id = agent_id or uuid.uuid4()
        prop = Property(
            id=uuid.uuid4(),
            title="12 Quay Street",
            landlord_id=landlord_id,
            agent_id=agent_id,
            agency_id=agency.id if agency else None,
            commission_type=commission_type,
            commission_percentage=commission_percentage,
            commission_fixed_amount=commission_fixed_amount,
            platform_fee_percentage=platform_fee_percentage,
        )
        db_session.add(prop)
        await db_session.flush()

        lease = Lease(
            id=uuid.uuid4(),
            property_id=prop.id,
            agent_id=agent_id,
            agency_id=agency.id if agency else None,
            landlord_id=landlord_id,
            agency_commission_enabled=agency is not None,
            agency_commission_type=agency_commission_type,
            agency_commission_rate=agency_commission_rate,
            agency_commission_fixed=agency_commission_fixed,
        )
        db_session.add(lease)
        await db_session.flush()
        return lease

    return _make


@pytest.fixture
def make_payment(db_session):
    async def _make(
        lease: Lease,
        amount_due: Decimal = Decimal("1000"),
        charges: list = None,
        status: str = "PAID",
    ) -> LeasePaymentRecord:
        payment = LeasePaymentRecord(
            id=uuid.uuid4(),
            lease_id=lease.id,
            agent_id=lease.agent_id,
            agency_id=lease.agency_id,
            type="RENT",
            label="October rent",
            amount_due=amount_due,
            charges=charges or [],
            status=status,
        )
        db_session.add(payment)
        await db_session.flush()
        return payment

    return _make
