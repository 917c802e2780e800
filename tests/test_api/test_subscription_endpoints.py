from decimal import Decimal
from uuid import uuid4

import pytest
from fastapi import status

from src.core.config import settings


API_PREFIX = f"{settings.API_PREFIX}/v1"


@pytest.mark.asyncio
async def test_create_and_read_subscription(client, test_db, seed, auth_header):
    user = await seed.user(test_db)
    headers = auth_header(user.id)

    response = await client.post(
        f"{API_PREFIX}/subscriptions",
        json={
            "name": "Spotify",
            "amount": "9.99",
            "currency": "eur",
            "billingCycle": "yearly",
            "nextBillingDate": "2024-05-01T00:00:00Z",
        },
        headers=headers,
    )

    assert response.status_code == status.HTTP_201_CREATED, response.text
    created = response.json()
    assert created["name"] == "Spotify"
    assert Decimal(str(created["amount"])) == Decimal("9.99")
    assert created["currency"] == "EUR"
    assert created["billingCycle"] == "yearly"
    assert created["nextBillingDate"].startswith("2024-05-01")
    assert created["userId"] == str(user.id)

    fetched = await client.get(f"{API_PREFIX}/subscriptions/{created['id']}", headers=headers)
    assert fetched.status_code == status.HTTP_200_OK
    assert fetched.json()["id"] == created["id"]

    listed = await client.get(f"{API_PREFIX}/subscriptions", headers=headers)
    assert [item["id"] for item in listed.json()] == [created["id"]]


@pytest.mark.asyncio
async def test_create_rejects_unknown_cycle_and_currency(client, test_db, seed, auth_header):
    user = await seed.user(test_db)
    headers = auth_header(user.id)

    bad_cycle = await client.post(
        f"{API_PREFIX}/subscriptions", json={"name": "X", "billingCycle": "fortnightly"}, headers=headers
    )
    bad_currency = await client.post(
        f"{API_PREFIX}/subscriptions", json={"name": "X", "currency": "dollars"}, headers=headers
    )

    assert bad_cycle.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert bad_currency.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


@pytest.mark.asyncio
async def test_create_for_unknown_user_is_404(client, auth_header):
    response = await client.post(
        f"{API_PREFIX}/subscriptions", json={"name": "Ghost"}, headers=auth_header(uuid4())
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["message"] == "User not found"


@pytest.mark.asyncio
async def test_other_users_subscription_is_not_visible(client, test_db, seed, auth_header):
    owner = await seed.user(test_db, name="Owner")
    stranger = await seed.user(test_db, name="Stranger")
    subscription = await seed.subscription(test_db, owner)

    fetched = await client.get(
        f"{API_PREFIX}/subscriptions/{subscription.id}", headers=auth_header(stranger.id)
    )
    patched = await client.patch(
        f"{API_PREFIX}/subscriptions/{subscription.id}",
        json={"name": "Hijacked"},
        headers=auth_header(stranger.id),
    )

    assert fetched.status_code == status.HTTP_404_NOT_FOUND
    assert patched.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.asyncio
async def test_patch_updates_only_given_fields(client, test_db, seed, auth_header):
    user = await seed.user(test_db)
    subscription = await seed.subscription(
        test_db, user, name="Netflix", next_billing_date=seed.utc(2024, 4, 1)
    )
    headers = auth_header(user.id)

    response = await client.patch(
        f"{API_PREFIX}/subscriptions/{subscription.id}",
        json={"nextBillingDate": "2024-06-15T00:00:00Z", "isAutoRenew": False},
        headers=headers,
    )

    assert response.status_code == status.HTTP_200_OK, response.text
    body = response.json()
    assert body["name"] == "Netflix"
    assert body["nextBillingDate"].startswith("2024-06-15")
    assert body["isAutoRenew"] is False


@pytest.mark.asyncio
async def test_patch_can_clear_billing_date_but_not_name(client, test_db, seed, auth_header):
    user = await seed.user(test_db)
    subscription = await seed.subscription(test_db, user, next_billing_date=seed.utc(2024, 4, 1))
    headers = auth_header(user.id)

    cleared = await client.patch(
        f"{API_PREFIX}/subscriptions/{subscription.id}", json={"nextBillingDate": None}, headers=headers
    )
    assert cleared.status_code == status.HTTP_200_OK
    assert cleared.json()["nextBillingDate"] is None

    nulled = await client.patch(
        f"{API_PREFIX}/subscriptions/{subscription.id}", json={"name": None}, headers=headers
    )
    assert nulled.status_code == status.HTTP_400_BAD_REQUEST
    assert nulled.json()["message"] == "name cannot be null"
