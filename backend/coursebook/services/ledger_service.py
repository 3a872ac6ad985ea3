"""
Credit ledger: append-only record of credit grants per user.

There is deliberately no update or delete path. Historical purchase totals are
always reconstructable from the rows, and a correction (should one ever be
needed) is a new offsetting grant, not an edit.
"""

from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from coursebook.models.credit import CreditPackage, CreditPurchase
from coursebook.core.exceptions import (
    InvalidAmount,
    CreditPackageNotFound,
    DuplicateCreditPackage,
    UserNotFound,
)
from coursebook.core.metrics import record_credit_grant
from coursebook.core.logging import get_logger
from coursebook.db.session import atomic, store_errors
from coursebook.services.course_service import lock_user

logger = get_logger(__name__)


async def grant_credits(
    db: AsyncSession,
    user_id: int,
    credits: int,
    price_paid: int = 0,
    credit_package_id: Optional[int] = None,
) -> CreditPurchase:
    """
    Append a grant to the user's ledger and commit it.

    The user row is locked first, the same as admission does, so a grant and a
    booking by the same user serialize. An unknown user raises UserNotFound.
    """
    if isinstance(credits, bool) or not isinstance(credits, int) or credits <= 0:
        record_credit_grant("InvalidAmount")
        raise InvalidAmount(credits=credits)
    if isinstance(price_paid, bool) or not isinstance(price_paid, int) or price_paid < 0:
        record_credit_grant("InvalidAmount")
        raise InvalidAmount("Price paid must be a non-negative integer", price_paid=price_paid)

    try:
        async with atomic(db):
            if not await lock_user(db, user_id):
                raise UserNotFound(user_id=user_id)
            grant = CreditPurchase(
                user_id=user_id,
                credit_package_id=credit_package_id,
                credits=credits,
                price_paid=price_paid,
            )
            db.add(grant)
            await db.flush()
    except UserNotFound:
        record_credit_grant("UserNotFound")
        raise

    record_credit_grant("success", credits)
    logger.info(
        "credits_granted",
        grant_id=grant.id,
        user_id=user_id,
        credits=credits,
        price_paid=price_paid,
        credit_package_id=credit_package_id,
    )
    return grant


async def purchase_package(db: AsyncSession, user_id: int, credit_package_id: int) -> CreditPurchase:
    """Buy a catalogue package: grants its credits at its current price."""
    async with store_errors():
        package = await db.get(CreditPackage, credit_package_id)
    if package is None:
        raise CreditPackageNotFound(credit_package_id=credit_package_id)

    return await grant_credits(
        db,
        user_id,
        credits=package.credit_amount,
        price_paid=package.price,
        credit_package_id=package.id,
    )


async def total_granted(db: AsyncSession, user_id: int) -> int:
    """Sum of credits over every grant the user owns (0 when none)."""
    result = await db.execute(
        select(func.coalesce(func.sum(CreditPurchase.credits), 0)).where(
            CreditPurchase.user_id == user_id
        )
    )
    return int(result.scalar() or 0)


async def list_grants(db: AsyncSession, user_id: int) -> list[CreditPurchase]:
    result = await db.execute(
        select(CreditPurchase)
        .where(CreditPurchase.user_id == user_id)
        .order_by(CreditPurchase.granted_at.desc(), CreditPurchase.id.desc())
    )
    return list(result.scalars().all())


async def list_packages(db: AsyncSession) -> list[CreditPackage]:
    async with store_errors():
        result = await db.execute(select(CreditPackage).order_by(CreditPackage.id))
    return list(result.scalars().all())


async def create_package(db: AsyncSession, name: str, credit_amount: int, price: int) -> CreditPackage:
    """
    Add a package to the catalogue.
    Raises InvalidAmount for non-positive credits; the name must be unique.
    """
    if credit_amount <= 0:
        raise InvalidAmount(credit_amount=credit_amount)
    if price < 0:
        raise InvalidAmount("Price must be a non-negative integer", price=price)

    try:
        async with atomic(db):
            package = CreditPackage(name=name, credit_amount=credit_amount, price=price)
            db.add(package)
            await db.flush()
    except IntegrityError as exc:
        raise DuplicateCreditPackage(name=name) from exc

    logger.info("credit_package_created", package_id=package.id, name=name, credits=credit_amount)
    return package
