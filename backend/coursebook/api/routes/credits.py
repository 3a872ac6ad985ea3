"""
Credit package catalogue and credit grant endpoints.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from coursebook.db.session import get_db
from coursebook.schemas.credit import (
    CreditPackageCreate,
    CreditPackageResponse,
    CreditGrantCreate,
    CreditGrantResponse,
)
from coursebook.services.ledger_service import (
    create_package,
    grant_credits,
    list_packages,
    purchase_package,
)
from coursebook.core.security import get_current_user_id, require_admin

router = APIRouter(tags=["Credits"])


@router.get("/credit-packages/", response_model=list[CreditPackageResponse])
async def list_credit_packages(db: AsyncSession = Depends(get_db)):
    return await list_packages(db)


@router.post(
    "/credit-packages/",
    response_model=CreditPackageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_credit_package(
    package_data: CreditPackageCreate,
    _admin_id: int = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Add a package to the catalogue. Admin only; names are unique."""
    return await create_package(
        db,
        name=package_data.name,
        credit_amount=package_data.credit_amount,
        price=package_data.price,
    )


@router.post(
    "/credit-packages/{package_id}/purchase",
    response_model=CreditGrantResponse,
    status_code=status.HTTP_201_CREATED,
)
async def purchase_credit_package(
    package_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Buy a package: its credits are appended to the caller's ledger."""
    return await purchase_package(db, user_id, package_id)


@router.post(
    "/credits/grants",
    response_model=CreditGrantResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_credit_grant(
    grant_data: CreditGrantCreate,
    _admin_id: int = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Append an arbitrary grant, e.g. a purchase settled outside the catalogue.
    Non-positive credits are rejected with InvalidAmount.
    """
    return await grant_credits(
        db,
        grant_data.user_id,
        credits=grant_data.credits,
        price_paid=grant_data.price_paid,
    )
