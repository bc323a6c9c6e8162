"""Integration tests for the pool engine API."""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from cpamm import __version__
from cpamm.api.endpoints import get_engine
from cpamm.api.main import app
from tests.helpers import (
    ALICE,
    AUTHORITY,
    BOB,
    POOL_ID,
    SCENARIO_AMOUNT_X,
    SCENARIO_AMOUNT_Y,
    SCENARIO_LP,
    TOKEN_X,
    TOKEN_Y,
    make_engine,
)

INITIALIZE_BODY = {
    "poolId": POOL_ID,
    "tokenX": TOKEN_X,
    "tokenY": TOKEN_Y,
    "feeBps": 30,
    "decimalsX": 9,
    "decimalsY": 6,
    "authority": AUTHORITY,
}


@pytest.fixture
def client() -> Iterator[TestClient]:
    """Test client over a fresh engine with ALICE and BOB funded."""
    engine = make_engine(fund=[ALICE, BOB])
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def seeded_client(client: TestClient) -> TestClient:
    """Client whose engine holds the reference pool after ALICE's first deposit."""
    assert client.post("/pools", json=INITIALIZE_BODY).status_code == 201
    response = client.post(
        f"/pools/{POOL_ID}/deposit",
        json={
            "amountX": SCENARIO_AMOUNT_X,
            "amountY": SCENARIO_AMOUNT_Y,
            "minLp": 1,
            "caller": ALICE,
        },
    )
    assert response.status_code == 200
    return client


class TestHealth:
    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "version": __version__}


class TestPoolEndpoints:
    """Tests for initialize and pool lookup."""

    def test_initialize(self, client):
        response = client.post("/pools", json=INITIALIZE_BODY)

        assert response.status_code == 201
        assert response.json() == {
            "poolId": POOL_ID,
            "tokenX": TOKEN_X,
            "tokenY": TOKEN_Y,
            "feeBps": 30,
            "locked": False,
            "reserveX": 0,
            "reserveY": 0,
            "lpSupply": 0,
        }

    def test_initialize_invalid_fee(self, client):
        response = client.post("/pools", json={**INITIALIZE_BODY, "feeBps": 10_000})

        assert response.status_code == 422
        assert response.json()["error"] == "InvalidFee"

    def test_initialize_identical_tokens(self, client):
        response = client.post("/pools", json={**INITIALIZE_BODY, "tokenY": TOKEN_X})

        assert response.status_code == 422
        assert response.json()["error"] == "InvalidToken"

    def test_initialize_twice(self, client):
        client.post("/pools", json=INITIALIZE_BODY)
        response = client.post("/pools", json=INITIALIZE_BODY)

        assert response.status_code == 409
        assert response.json()["error"] == "PoolAlreadyExists"

    def test_malformed_body(self, client):
        response = client.post("/pools", json={"poolId": POOL_ID})
        assert response.status_code == 422

    def test_get_pool(self, seeded_client):
        response = seeded_client.get(f"/pools/{POOL_ID}")

        assert response.status_code == 200
        data = response.json()
        assert data["reserveX"] == SCENARIO_AMOUNT_X
        assert data["reserveY"] == SCENARIO_AMOUNT_Y
        assert data["lpSupply"] == SCENARIO_LP

    def test_get_unknown_pool(self, client):
        response = client.get("/pools/missing")

        assert response.status_code == 404
        assert response.json() == {"error": "PoolNotFound", "detail": "No pool with id missing"}


class TestOperationEndpoints:
    """Tests for deposit, withdraw and swap."""

    def test_first_deposit(self, client):
        client.post("/pools", json=INITIALIZE_BODY)
        response = client.post(
            f"/pools/{POOL_ID}/deposit",
            json={
                "amountX": str(SCENARIO_AMOUNT_X),
                "amountY": str(SCENARIO_AMOUNT_Y),
                "minLp": "1",
                "caller": ALICE,
            },
        )

        assert response.status_code == 200
        assert response.json() == {"lpMinted": SCENARIO_LP}

    def test_deposit_slippage(self, seeded_client):
        response = seeded_client.post(
            f"/pools/{POOL_ID}/deposit",
            json={"amountX": 1_000_000, "amountY": 2_000_000, "minLp": 10**9, "caller": BOB},
        )

        assert response.status_code == 422
        assert response.json()["error"] == "SlippageExceeded"

    def test_deposit_zero_amount(self, seeded_client):
        response = seeded_client.post(
            f"/pools/{POOL_ID}/deposit",
            json={"amountX": 0, "amountY": 2_000_000, "minLp": 1, "caller": BOB},
        )

        assert response.status_code == 422
        assert response.json()["error"] == "InvalidAmount"

    def test_withdraw(self, seeded_client):
        response = seeded_client.post(
            f"/pools/{POOL_ID}/withdraw",
            json={"lpAmount": 70_710_178, "minX": 0, "minY": 0, "caller": ALICE},
        )

        assert response.status_code == 200
        assert response.json() == {"amountX": 50_000_000, "amountY": 100_000_000}

    def test_withdraw_without_lp(self, seeded_client):
        response = seeded_client.post(
            f"/pools/{POOL_ID}/withdraw",
            json={"lpAmount": 1, "minX": 0, "minY": 0, "caller": BOB},
        )

        assert response.status_code == 422
        assert response.json()["error"] == "InsufficientBalance"

    def test_swap(self, seeded_client):
        response = seeded_client.post(
            f"/pools/{POOL_ID}/swap",
            json={"xToY": True, "amountIn": 1_000_000, "minOut": 1, "caller": BOB},
        )

        assert response.status_code == 200
        assert response.json() == {"amountOut": 1_974_316}

        pool = seeded_client.get(f"/pools/{POOL_ID}").json()
        assert pool["reserveX"] == 101_000_000
        assert pool["reserveY"] == 200_000_000 - 1_974_316

    def test_swap_min_out_zero(self, seeded_client):
        response = seeded_client.post(
            f"/pools/{POOL_ID}/swap",
            json={"xToY": True, "amountIn": 1_000_000, "minOut": 0, "caller": BOB},
        )

        assert response.status_code == 422
        assert response.json()["error"] == "InvalidAmount"


class TestLockEndpoints:
    """Tests for lock and unlock."""

    def test_lock_then_swap(self, seeded_client):
        response = seeded_client.post(f"/pools/{POOL_ID}/lock", json={"caller": AUTHORITY})
        assert response.status_code == 200
        assert response.json()["locked"] is True

        response = seeded_client.post(
            f"/pools/{POOL_ID}/swap",
            json={"xToY": True, "amountIn": 1_000_000, "minOut": 1, "caller": BOB},
        )
        assert response.status_code == 409
        assert response.json()["error"] == "PoolLocked"

    def test_unlock(self, seeded_client):
        seeded_client.post(f"/pools/{POOL_ID}/lock", json={"caller": AUTHORITY})
        response = seeded_client.post(f"/pools/{POOL_ID}/unlock", json={"caller": AUTHORITY})

        assert response.status_code == 200
        assert response.json()["locked"] is False

    def test_lock_unauthorized(self, seeded_client):
        response = seeded_client.post(f"/pools/{POOL_ID}/lock", json={"caller": ALICE})

        assert response.status_code == 403
        assert response.json()["error"] == "Unauthorized"
