"""
Shared fixtures for integration tests.

Every test gets a fresh in-memory SQLite database with the full schema.
The builder creates accounts, plans and investments with an activation
that is valid for CYCLE.
"""

from datetime import UTC, date, datetime, timedelta
from decimal import Decimal

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from profit_engine.config.business_constants import DEFAULT_LEVEL_RATES
from profit_engine.config.database import create_session_maker
from profit_engine.models import (
    Account,
    AccountStatus,
    Base,
    Investment,
    InvestmentStatus,
    Plan,
)
from profit_engine.repositories.account_repository import AccountRepository


CYCLE = date(2025, 1, 15)
# Inside the UTC window of CYCLE
ACTIVATED_AT = datetime(2025, 1, 15, 0, 30, tzinfo=UTC)


class Builder:
    """Creates test data in the session and flushes it."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def plan(
        self,
        daily_rate: Decimal | None = Decimal("0.266"),
        level_rates: tuple = DEFAULT_LEVEL_RATES,
        fallback_daily_rate: Decimal | None = None,
    ) -> Plan:
        plan = Plan(
            name="Standard",
            daily_rate=daily_rate,
            fallback_daily_rate=fallback_daily_rate,
            **{
                f"level_{level}_rate": rate
                for level, rate in enumerate(level_rates, start=1)
            },
        )
        self.session.add(plan)
        await self.session.flush()
        return plan

    async def account(
        self,
        upline: Account | int | None = None,
        status: AccountStatus = AccountStatus.ACTIVE,
        activated: bool = True,
        activated_at: datetime | None = ACTIVATED_AT,
        expires_at: datetime | None = None,
        total_invested: Decimal = Decimal("0"),
    ) -> Account:
        upline_id = upline.id if isinstance(upline, Account) else upline
        account = Account(
            upline_id=upline_id,
            status=status,
            is_activated=activated,
            activated_at=activated_at if activated else None,
            activation_expires_at=(
                expires_at
                if expires_at is not None
                else (activated_at + timedelta(days=1) if activated_at else None)
            ),
            total_invested=total_invested,
        )
        self.session.add(account)
        await self.session.flush()
        return account

    async def investment(
        self,
        account: Account,
        principal: Decimal = Decimal("1000"),
        plan: Plan | None = None,
        status: InvestmentStatus = InvestmentStatus.ACTIVE,
        last_profit_date: date | None = None,
    ) -> Investment:
        investment = Investment(
            account_id=account.id,
            plan_id=plan.id if plan else None,
            principal=principal,
            status=status,
            last_profit_date=last_profit_date,
        )
        self.session.add(investment)
        await self.session.flush()
        return investment

    async def investor(
        self,
        upline: Account | int | None = None,
        plan: Plan | None = None,
        principal: Decimal = Decimal("1000"),
        **account_kwargs,
    ) -> Account:
        """Account holding one active investment."""
        account = await self.account(upline=upline, **account_kwargs)
        await self.investment(account, principal=principal, plan=plan)
        return account

    async def chain(
        self,
        depth: int,
        top: Account | int | None = None,
        plan: Plan | None = None,
        activated: bool = False,
    ) -> list[Account]:
        """
        Upline chain of investors below top.

        Returns:
            Accounts nearest first: [level 1, level 2, ...]
        """
        accounts = []
        upline = top
        for _ in range(depth):
            upline = await self.investor(
                upline=upline, plan=plan, activated=activated
            )
            accounts.append(upline)
        accounts.reverse()
        return accounts

    async def commit(self) -> None:
        await self.session.commit()


@pytest_asyncio.fixture
async def engine():
    """In-memory database shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine):
    """Session configured like production (expire_on_commit=False)."""
    async with create_session_maker(engine)() as session:
        yield session


@pytest_asyncio.fixture
async def builder(session):
    """Test data builder."""
    return Builder(session)


@pytest_asyncio.fixture
async def root(builder):
    """Root account (first account, holds an investment, not activated)."""
    account = await builder.investor(activated=False)
    await builder.commit()
    return account


@pytest_asyncio.fixture
async def plan(builder):
    """Plan with 0.266% daily rate and default level rates."""
    plan = await builder.plan()
    await builder.commit()
    return plan


async def balance_of(session: AsyncSession, account_id: int) -> Decimal:
    """Current wallet balance read from the database."""
    account = await AccountRepository(session).get_by_id(account_id)
    return Decimal(str(account.balance))


@pytest_asyncio.fixture
async def cycle():
    """Cycle date every builder activation is valid for."""
    return CYCLE


@pytest_asyncio.fixture
async def balance(session):
    """Async callable returning an account's current balance."""

    async def read(account_id: int) -> Decimal:
        return await balance_of(session, account_id)

    return read
