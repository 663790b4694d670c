"""E2E: block, split, expand and price against a real PostgreSQL.

Runs the public app end to end:
1. Block a range and read it back
2. Unblock its middle, leaving two residual periods
3. Disabled dates reflect the residuals
4. A price rule changes the quoted range total
"""

import os
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from immova.api.factory import create_app
from immova.infra.db import txn

# Skip all tests if DATABASE_URL is not set
pytestmark = pytest.mark.skipif(
    not os.environ.get("DATABASE_URL"),
    reason="DATABASE_URL not set - skipping E2E tests",
)

APARTMENT = "touquet-pinede"
RULE_NAME = "E2E haute saison"


@pytest.fixture
def client():
    return TestClient(create_app(role="public"))


@pytest.fixture(autouse=True)
def _clean_rows():
    def _clean():
        with txn() as cur:
            cur.execute(
                "DELETE FROM blocked_periods WHERE apartment_id = %s AND start_date >= '2099-01-01'",
                (APARTMENT,),
            )
            cur.execute("DELETE FROM price_rules WHERE name = %s", (RULE_NAME,))

    _clean()
    yield
    _clean()


def test_block_then_split(client):
    resp = client.post(
        "/calendar/block-dates",
        json={
            "apartment_id": APARTMENT,
            "start_date": "2099-01-01",
            "end_date": "2099-01-10",
            "reason": "Travaux",
        },
    )
    assert resp.status_code == 201
    period_id = resp.json()["blocked_period"]["id"]

    resp = client.post(
        "/calendar/check-availability",
        json={"apartment_id": APARTMENT, "start_date": "2099-01-04", "end_date": "2099-01-06"},
    )
    assert resp.json()["available"] is False
    assert resp.json()["blocked_conflicts"][0]["id"] == period_id

    resp = client.post(
        "/calendar/unblock-dates",
        json={"apartment_id": APARTMENT, "start_date": "2099-01-03", "end_date": "2099-01-05"},
    )
    body = resp.json()
    assert resp.status_code == 200
    assert body["deleted_count"] == 1
    assert body["created_count"] == 2
    ranges = sorted((p["start_date"], p["end_date"]) for p in body["created_periods"])
    assert ranges == [("2099-01-01", "2099-01-02"), ("2099-01-06", "2099-01-10")]

    resp = client.get("/calendar/blocked-dates", params={"apartment_id": APARTMENT})
    reasons = {p["reason"] for p in resp.json()["blocked_dates"] if p["start_date"] >= "2099-01-01"}
    assert reasons == {"Travaux"}

    disabled = client.get("/calendar/disabled-dates", params={"apartment_id": APARTMENT}).json()
    assert "2099-01-01" in disabled["disabled_dates"]
    assert "2099-01-04" not in disabled["disabled_dates"]
    assert "2099-01-07" in disabled["disabled_dates"]

    resp = client.post(
        "/calendar/check-availability",
        json={"apartment_id": APARTMENT, "start_date": "2099-01-03", "end_date": "2099-01-05"},
    )
    assert resp.json()["available"] is True


def test_unblock_free_range_is_noop(client):
    resp = client.post(
        "/calendar/unblock-dates",
        json={"apartment_id": APARTMENT, "start_date": "2099-03-01", "end_date": "2099-03-05"},
    )
    assert resp.status_code == 200
    assert resp.json()["deleted_count"] == 0
    assert resp.json()["created_count"] == 0


def test_rule_changes_range_total(client):
    before = client.get(
        "/calendar/prices",
        params={"apartment_id": APARTMENT, "start_date": "2099-07-10", "end_date": "2099-07-13"},
    ).json()
    assert Decimal(str(before["total"])) == Decimal("450")

    resp = client.post(
        "/prices",
        json={
            "property": APARTMENT,
            "name": RULE_NAME,
            "start_date": "2099-07-01",
            "end_date": "2099-07-31",
            "price_per_night": "210",
            "priority": 5,
        },
    )
    assert resp.status_code == 201

    after = client.get(
        "/calendar/prices",
        params={"apartment_id": APARTMENT, "start_date": "2099-07-10", "end_date": "2099-07-13"},
    ).json()
    assert after["nights"] == 3
    assert Decimal(str(after["total"])) == Decimal("630")
    assert sum(Decimal(str(p)) for p in after["daily_prices"].values()) == Decimal("630")

    nightly = client.get(f"/prices/{APARTMENT}/date/2099-07-31").json()
    assert nightly["rule_name"] == RULE_NAME
