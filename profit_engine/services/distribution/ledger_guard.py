"""
Ledger and idempotency guard.

Every credit of the distribution engine goes through this guard:
- at most one non-cancelled ledger entry per idempotency key
- the wallet increment of an entry is applied exactly once (applied_at)
"""

from datetime import date
from decimal import Decimal

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from profit_engine.models.enums import LedgerKind, LedgerStatus
from profit_engine.models.ledger_entry import LedgerEntry
from profit_engine.repositories.account_repository import AccountRepository
from profit_engine.repositories.ledger_repository import LedgerRepository
from profit_engine.services.distribution.types import CreditResult
from profit_engine.utils.datetime_utils import utc_now
from profit_engine.utils.exceptions import DuplicateEntry, NotFoundError


class LedgerGuard:
    """
    Ledger guard.

    Does not commit: callers own the transaction so that the ledger write,
    the wallet increment and the caller's own state change land together.
    """

    def __init__(self, session: AsyncSession, run_id: int | None = None) -> None:
        """
        Initialize ledger guard.

        Args:
            session: Database session
            run_id: Run stamped on new entries
        """
        self.session = session
        self.run_id = run_id
        self.ledger_repo = LedgerRepository(session)
        self.account_repo = AccountRepository(session)

    async def record(
        self,
        beneficiary_id: int,
        source_account_id: int,
        kind: LedgerKind,
        amount: Decimal,
        level: int,
        cycle_date: date,
        source_ref_id: int = 0,
    ) -> LedgerEntry:
        """
        Persist a new ledger entry.

        Args:
            beneficiary_id: Account receiving the credit
            source_account_id: Account whose profit generated the credit
            kind: Ledger kind
            amount: Credit amount (must be positive)
            level: 0 for direct credits, 1-10 for level commission
            cycle_date: Cycle date
            source_ref_id: Originating investment / team reward ID

        Returns:
            Created entry (not yet applied)

        Raises:
            DuplicateEntry: If a non-cancelled entry exists for the key
            ValueError: If amount is not positive
        """
        if amount <= 0:
            raise ValueError(f"Ledger amount must be positive, got {amount}")

        key = (
            beneficiary_id,
            source_account_id,
            kind.value,
            level,
            cycle_date,
            source_ref_id,
        )

        existing = await self.ledger_repo.find_active_by_key(*key)
        if existing:
            raise DuplicateEntry(key, existing)

        try:
            entry = await self.ledger_repo.create(
                beneficiary_id=beneficiary_id,
                source_account_id=source_account_id,
                source_ref_id=source_ref_id,
                kind=kind,
                amount=amount,
                level=level,
                cycle_date=cycle_date,
                status=LedgerStatus.CREDITED,
                run_id=self.run_id,
            )
        except IntegrityError as e:
            # Concurrent writer took the key between check and insert
            logger.warning(
                f"Ledger key race detected: {key}",
                extra={"key": [str(k) for k in key]},
            )
            raise DuplicateEntry(key) from e

        return entry

    async def credit(
        self,
        beneficiary_id: int,
        source_account_id: int,
        kind: LedgerKind,
        amount: Decimal,
        level: int,
        cycle_date: date,
        source_ref_id: int = 0,
    ) -> CreditResult:
        """
        Record entry and apply wallet increment.

        On duplicate key the existing entry is reconciled: its increment is
        applied if it never was, otherwise nothing happens.

        Returns:
            CreditResult with the (new or existing) entry

        Raises:
            DuplicateEntry: If the key was taken by a concurrent writer
            NotFoundError: If the beneficiary account does not exist
        """
        try:
            entry = await self.record(
                beneficiary_id=beneficiary_id,
                source_account_id=source_account_id,
                kind=kind,
                amount=amount,
                level=level,
                cycle_date=cycle_date,
                source_ref_id=source_ref_id,
            )
            created = True
        except DuplicateEntry as e:
            if e.existing is None:
                raise
            entry = e.existing
            created = False
            logger.debug(
                f"Reusing ledger entry {entry.id}",
                extra={
                    "ledger_entry_id": entry.id,
                    "applied": entry.is_applied,
                },
            )

        applied = await self.apply(entry)
        return CreditResult(entry=entry, created=created, applied=applied)

    async def apply(self, entry: LedgerEntry) -> bool:
        """
        Apply wallet increment of an entry once.

        Args:
            entry: Ledger entry

        Returns:
            True if this call applied the increment

        Raises:
            NotFoundError: If the beneficiary account does not exist
        """
        if entry.applied_at is not None:
            return False
        if entry.status == LedgerStatus.CANCELLED.value:
            raise ValueError(f"Ledger entry {entry.id} is cancelled")

        now = utc_now()
        if not await self.ledger_repo.mark_applied(entry.id, now):
            return False

        if not await self.account_repo.apply_credit(
            entry.beneficiary_id, entry.amount
        ):
            raise NotFoundError("Account", entry.beneficiary_id)

        set_committed_value(entry, "applied_at", now)
        return True

    async def cancel(self, entry_id: int) -> LedgerEntry:
        """
        Cancel an entry, freeing its idempotency key.

        An applied entry has its wallet increment reversed.

        Args:
            entry_id: Ledger entry ID

        Returns:
            Cancelled entry

        Raises:
            NotFoundError: If the entry does not exist
        """
        entry = await self.ledger_repo.get_by_id(entry_id, for_update=True)
        if not entry:
            raise NotFoundError("LedgerEntry", entry_id)

        if entry.status == LedgerStatus.CANCELLED.value:
            return entry

        if entry.applied_at is not None:
            await self.account_repo.apply_credit(
                entry.beneficiary_id, -entry.amount
            )

        entry.status = LedgerStatus.CANCELLED
        entry.cancelled_at = utc_now()
        await self.session.flush()

        logger.info(
            f"Ledger entry {entry.id} cancelled",
            extra={
                "ledger_entry_id": entry.id,
                "beneficiary_id": entry.beneficiary_id,
                "amount": str(entry.amount),
                "reversed": entry.applied_at is not None,
            },
        )
        return entry
