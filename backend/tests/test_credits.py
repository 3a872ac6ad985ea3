"""
Tests for credit package and grant endpoints.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from coursebook.models import User


@pytest.mark.asyncio
async def test_list_credit_packages(client: AsyncClient, credit_package):
    response = await client.get("/api/v1/credit-packages/")
    assert response.status_code == 200
    data = response.json()
    assert data == [
        {"id": credit_package.id, "name": "7 lessons", "credit_amount": 7, "price": 1400}
    ]


@pytest.mark.asyncio
async def test_purchase_package(client: AsyncClient, make_user, headers_for, credit_package):
    user = await make_user()
    headers = headers_for(user)

    response = await client.post(
        f"/api/v1/credit-packages/{credit_package.id}/purchase", headers=headers
    )
    assert response.status_code == 201
    data = response.json()
    assert data["credits"] == 7
    assert data["price_paid"] == 1400
    assert data["credit_package_id"] == credit_package.id

    credits = await client.get("/api/v1/users/me/credits", headers=headers)
    assert credits.json() == {"granted": 7, "used": 0, "remaining": 7}


@pytest.mark.asyncio
async def test_purchase_unknown_package(client: AsyncClient, auth_headers):
    response = await client.post("/api/v1/credit-packages/9999/purchase", headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["code"] == "CreditPackageNotFound"


@pytest.mark.asyncio
async def test_purchase_history(client: AsyncClient, make_user, headers_for, credit_package):
    user = await make_user()
    headers = headers_for(user)
    await client.post(f"/api/v1/credit-packages/{credit_package.id}/purchase", headers=headers)
    await client.post(f"/api/v1/credit-packages/{credit_package.id}/purchase", headers=headers)

    response = await client.get("/api/v1/users/me/credit-purchases", headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert len(data) == 2
    assert all(item["name"] == "7 lessons" for item in data)
    assert all(item["purchased_credits"] == 7 for item in data)


@pytest.mark.asyncio
async def test_admin_creates_package(client: AsyncClient, make_user, headers_for):
    admin = await make_user(role="ADMIN")
    response = await client.post(
        "/api/v1/credit-packages/",
        json={"name": "21 lessons", "credit_amount": 21, "price": 4800},
        headers=headers_for(admin),
    )
    assert response.status_code == 201
    assert response.json()["credit_amount"] == 21

    duplicate = await client.post(
        "/api/v1/credit-packages/",
        json={"name": "21 lessons", "credit_amount": 20, "price": 4000},
        headers=headers_for(admin),
    )
    assert duplicate.status_code == 409


@pytest.mark.asyncio
async def test_create_package_requires_admin(client: AsyncClient, auth_headers):
    response = await client.post(
        "/api/v1/credit-packages/",
        json={"name": "Sneaky", "credit_amount": 100, "price": 0},
        headers=auth_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"name": "Empty", "credit_amount": 0, "price": 0},
        {"name": "Negative", "credit_amount": -3, "price": 100},
        {"name": "Refund", "credit_amount": 3, "price": -100},
    ],
)
async def test_create_package_rejects_bad_amounts(client: AsyncClient, make_user, headers_for, payload):
    admin = await make_user(role="ADMIN")
    response = await client.post("/api/v1/credit-packages/", json=payload, headers=headers_for(admin))
    assert response.status_code == 400
    assert response.json()["code"] == "InvalidAmount"

    listed = await client.get("/api/v1/credit-packages/")
    assert listed.json() == []


@pytest.mark.asyncio
async def test_direct_grant(client: AsyncClient, make_user, headers_for):
    admin = await make_user(role="ADMIN")
    user = await make_user()
    response = await client.post(
        "/api/v1/credits/grants",
        json={"user_id": user.id, "credits": 2, "price_paid": 0},
        headers=headers_for(admin),
    )
    assert response.status_code == 201

    credits = await client.get("/api/v1/users/me/credits", headers=headers_for(user))
    assert credits.json()["granted"] == 2


@pytest.mark.asyncio
async def test_direct_grant_invalid_amount(client: AsyncClient, make_user, headers_for):
    admin = await make_user(role="ADMIN")
    user = await make_user()
    response = await client.post(
        "/api/v1/credits/grants",
        json={"user_id": user.id, "credits": 0},
        headers=headers_for(admin),
    )
    assert response.status_code == 400
    assert response.json()["code"] == "InvalidAmount"


@pytest.mark.asyncio
async def test_direct_grant_to_unknown_user(client: AsyncClient, make_user, headers_for, test_course):
    admin = await make_user(role="ADMIN")
    response = await client.post(
        "/api/v1/credits/grants",
        json={"user_id": 99999, "credits": 3},
        headers=headers_for(admin),
    )
    assert response.status_code == 404
    assert response.json()["code"] == "UserNotFound"

    # No orphan grant was written, so a token for that id has nothing to spend
    ghost_headers = headers_for(User(id=99999, role="USER"))
    credits = await client.get("/api/v1/users/me/credits", headers=ghost_headers)
    assert credits.json() == {"granted": 0, "used": 0, "remaining": 0}

    booking = await client.post(f"/api/v1/courses/{test_course.id}/bookings", headers=ghost_headers)
    assert booking.status_code == 400
    assert booking.json()["code"] == "InsufficientCredit"


@pytest.mark.asyncio
async def test_list_packages_store_outage(client: AsyncClient, db_session, monkeypatch):
    async def broken_execute(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db_session, "execute", broken_execute)

    response = await client.get("/api/v1/credit-packages/")
    assert response.status_code == 503
    assert response.headers["Retry-After"] == "1"
    assert response.json()["code"] == "StoreUnavailable"
