import pytest
from httpx import AsyncClient

TEST_PASSWORD = "password123"


@pytest.mark.asyncio
async def test_login_success(async_client: AsyncClient, admin_user):
    response = await async_client.post(
        "/v1/auth/login",
        json={"email": admin_user.email, "password": TEST_PASSWORD}
    )
    assert response.status_code == 200
    data = response.json()
    assert "access_token" in data
    assert data["token_type"] == "bearer"


@pytest.mark.asyncio
async def test_login_failure(async_client: AsyncClient, admin_user):
    response = await async_client.post(
        "/v1/auth/login",
        json={"email": admin_user.email, "password": "wrongpassword"}
    )
    assert response.status_code == 400
    data = response.json()
    assert data["detail"] == "Incorrect email or password"


@pytest.mark.asyncio
async def test_token_from_login_identifies_actor(async_client: AsyncClient, expert_user):
    login = await async_client.post(
        "/v1/auth/login",
        json={"email": expert_user.email, "password": TEST_PASSWORD}
    )
    token = login.json()["access_token"]

    response = await async_client.get("/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json() == {"id": str(expert_user.id), "name": "Eduardo Expert", "role": "expert"}


@pytest.mark.asyncio
async def test_requests_without_token_are_rejected(async_client: AsyncClient):
    response = await async_client.get("/v1/cases")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_admin_creates_users(async_client: AsyncClient, admin_headers):
    payload = {
        "email": "new.expert@example.com",
        "password": "s3cret-pass",
        "full_name": "New Expert",
        "role": "expert",
    }
    response = await async_client.post("/v1/auth/users", json=payload, headers=admin_headers)
    assert response.status_code == 201
    assert response.json()["role"] == "expert"

    duplicate = await async_client.post("/v1/auth/users", json=payload, headers=admin_headers)
    assert duplicate.status_code == 409

    listing = await async_client.get("/v1/auth/users", headers=admin_headers)
    assert "new.expert@example.com" in [u["email"] for u in listing.json()]


@pytest.mark.asyncio
async def test_only_admin_manages_users(async_client: AsyncClient, expert_headers):
    response = await async_client.get("/v1/auth/users", headers=expert_headers)
    assert response.status_code == 403
