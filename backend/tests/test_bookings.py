"""
Tests for the course booking endpoints.
"""

import pytest
from httpx import AsyncClient

from coursebook.core.exceptions import StoreUnavailable


@pytest.mark.asyncio
async def test_book_course(client: AsyncClient, auth_headers, test_user, test_course):
    """Successful booking returns the active booking."""
    response = await client.post(f"/api/v1/courses/{test_course.id}/bookings", headers=auth_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["course_id"] == test_course.id
    assert data["user_id"] == test_user.id
    assert data["cancelled_at"] is None

    credits = await client.get("/api/v1/users/me/credits", headers=auth_headers)
    assert credits.json() == {"granted": 3, "used": 1, "remaining": 2}


@pytest.mark.asyncio
async def test_book_course_unauthenticated(client: AsyncClient, test_course):
    response = await client.post(f"/api/v1/courses/{test_course.id}/bookings")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_book_course_bad_token(client: AsyncClient, test_course):
    response = await client.post(
        f"/api/v1/courses/{test_course.id}/bookings",
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_book_nonexistent_course(client: AsyncClient, auth_headers):
    response = await client.post("/api/v1/courses/99999/bookings", headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["code"] == "CourseNotFound"


@pytest.mark.asyncio
async def test_duplicate_booking(client: AsyncClient, auth_headers, test_course):
    """Same user booking the same course twice: one success then DuplicateBooking."""
    first = await client.post(f"/api/v1/courses/{test_course.id}/bookings", headers=auth_headers)
    assert first.status_code == 201

    second = await client.post(f"/api/v1/courses/{test_course.id}/bookings", headers=auth_headers)
    assert second.status_code == 400
    body = second.json()
    assert body["status"] == "failed"
    assert body["code"] == "DuplicateBooking"


@pytest.mark.asyncio
async def test_book_without_credit(client: AsyncClient, make_user, headers_for, test_course):
    broke = await make_user(credits=0)
    response = await client.post(
        f"/api/v1/courses/{test_course.id}/bookings", headers=headers_for(broke)
    )
    assert response.status_code == 400
    assert response.json()["code"] == "InsufficientCredit"


@pytest.mark.asyncio
async def test_book_full_course(client: AsyncClient, make_user, make_course, headers_for):
    course = await make_course(max_participants=1)
    alice = await make_user(credits=1)
    bob = await make_user(credits=1)

    assert (
        await client.post(f"/api/v1/courses/{course.id}/bookings", headers=headers_for(alice))
    ).status_code == 201

    response = await client.post(f"/api/v1/courses/{course.id}/bookings", headers=headers_for(bob))
    assert response.status_code == 400
    assert response.json()["code"] == "CourseFull"

    cancel = await client.delete(f"/api/v1/courses/{course.id}/bookings", headers=headers_for(alice))
    assert cancel.status_code == 200

    retry = await client.post(f"/api/v1/courses/{course.id}/bookings", headers=headers_for(bob))
    assert retry.status_code == 201


@pytest.mark.asyncio
async def test_cancel_booking(client: AsyncClient, auth_headers, test_course):
    """Cancellation stamps cancelled_at and frees the credit."""
    await client.post(f"/api/v1/courses/{test_course.id}/bookings", headers=auth_headers)

    response = await client.delete(f"/api/v1/courses/{test_course.id}/bookings", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["course_id"] == test_course.id
    assert data["cancelled_at"] is not None

    credits = await client.get("/api/v1/users/me/credits", headers=auth_headers)
    assert credits.json()["remaining"] == 3


@pytest.mark.asyncio
async def test_cancel_twice(client: AsyncClient, auth_headers, test_course):
    """A second cancel fails instead of silently succeeding."""
    await client.post(f"/api/v1/courses/{test_course.id}/bookings", headers=auth_headers)
    await client.delete(f"/api/v1/courses/{test_course.id}/bookings", headers=auth_headers)

    response = await client.delete(f"/api/v1/courses/{test_course.id}/bookings", headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["code"] == "BookingNotFound"


@pytest.mark.asyncio
async def test_list_courses_shows_active_bookings(client: AsyncClient, auth_headers, test_course):
    await client.post(f"/api/v1/courses/{test_course.id}/bookings", headers=auth_headers)

    response = await client.get("/api/v1/courses/")
    assert response.status_code == 200
    listed = {course["id"]: course for course in response.json()}
    assert listed[test_course.id]["active_bookings"] == 1
    assert listed[test_course.id]["max_participants"] == 10


@pytest.mark.asyncio
async def test_my_bookings_overview(client: AsyncClient, auth_headers, make_course):
    first = await make_course()
    second = await make_course()
    await client.post(f"/api/v1/courses/{first.id}/bookings", headers=auth_headers)
    await client.post(f"/api/v1/courses/{second.id}/bookings", headers=auth_headers)
    await client.delete(f"/api/v1/courses/{first.id}/bookings", headers=auth_headers)

    response = await client.get("/api/v1/users/me/bookings", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["credit_remain"] == 2
    assert data["credit_usage"] == 1
    assert len(data["course_booking"]) == 2
    by_course = {item["course_id"]: item for item in data["course_booking"]}
    assert by_course[first.id]["cancelled_at"] is not None
    assert by_course[second.id]["cancelled_at"] is None
    assert by_course[second.id]["name"] == second.name


@pytest.mark.asyncio
async def test_store_unavailable_maps_to_503(client: AsyncClient, auth_headers, test_course, monkeypatch):
    async def unavailable(*args, **kwargs):
        raise StoreUnavailable()

    monkeypatch.setattr("coursebook.api.routes.courses.book_course", unavailable)

    response = await client.post(f"/api/v1/courses/{test_course.id}/bookings", headers=auth_headers)
    assert response.status_code == 503
    assert response.headers["Retry-After"] == "1"
    assert response.json()["code"] == "StoreUnavailable"


@pytest.mark.asyncio
async def test_get_course(client: AsyncClient, auth_headers, test_course):
    await client.post(f"/api/v1/courses/{test_course.id}/bookings", headers=auth_headers)

    response = await client.get(f"/api/v1/courses/{test_course.id}")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == test_course.name
    assert data["active_bookings"] == 1


@pytest.mark.asyncio
async def test_get_unknown_course(client: AsyncClient):
    response = await client.get("/api/v1/courses/99999")
    assert response.status_code == 404
    assert response.json()["code"] == "CourseNotFound"
