"""Stock, P&L and recalculation API tests on a migrated SQLite database."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def seeded_client(api_client: TestClient) -> TestClient:
    """Client over a ledger with one partly loaded purchase and one open sell of wheat.

    Args:
        api_client: Test client on the migrated database.

    Returns:
        TestClient: Same client after seeding.
    """

    purchase = api_client.post(
        "/ledger/contracts",
        json={
            "direction": "purchase",
            "contract_date": "2026-10-01",
            "party_id": "party-a",
            "item_id": "item-wheat",
            "quantity_packs": "100",
            "rate_per_10kg": "500",
        },
    ).json()["contract"]
    api_client.post(
        f"/ledger/contracts/{purchase['contract_id']}/deliveries",
        json={"delivery_date": "2026-10-03", "weight_kg": "40000"},
    )
    api_client.post(
        "/ledger/contracts",
        json={
            "direction": "sell",
            "contract_date": "2026-10-02",
            "party_id": "party-b",
            "item_id": "item-wheat",
            "quantity_packs": "30",
            "rate_per_10kg": "560",
        },
    )
    return api_client


def test_api_stock_list_and_summary(seeded_client: TestClient) -> None:
    """Verify item stock rows and totals after writes refreshed the item.

    Args:
        seeded_client: Client over the seeded ledger.

    Returns:
        None: Assertions validate stock rows and summary totals.

    Raises:
        AssertionError: Raised when stock rows diverge from the ledger.
    """

    response = seeded_client.get("/stock")

    assert response.status_code == 200
    row = response.json()["items"][0]
    assert row["item_id"] == "item-wheat"
    assert row["total_purchase_packs"] == "100"
    assert row["loaded_purchase_packs"] == "40"
    assert row["pending_purchase_packs"] == "60"
    assert row["pending_sell_packs"] == "30"
    assert row["net_stock_packs"] == "30"
    assert row["purchase_value"] == "5000000"

    summary = seeded_client.get("/stock/summary").json()["summary"]
    assert summary["item_count"] == 1
    assert summary["net_stock_packs"] == "30"
    assert seeded_client.get("/stock", params={"status": "open"}).status_code == 400


def test_api_stock_party_breakdown_and_live_item(seeded_client: TestClient) -> None:
    breakdown = seeded_client.get("/stock/party-breakdown").json()["items"]
    live = seeded_client.get("/stock/items/item-wheat").json()
    unknown = seeded_client.get("/stock/items/item-rice").json()

    assert [(row["party_id"], row["pending_purchase_packs"], row["pending_sell_packs"]) for row in breakdown] == [
        ("party-a", "60", "0"),
        ("party-b", "0", "30"),
    ]
    assert live["item"]["total_purchase_packs"] == "100"
    assert [party["party_id"] for party in live["parties"]] == ["party-a", "party-b"]
    assert live["violations"] == []
    assert unknown["item"] is None
    assert unknown["parties"] == []


def test_api_stock_ex_plant_live(api_client: TestClient) -> None:
    """Verify the ex-plant view lists every item loaded from that plant and nothing else.

    Args:
        api_client: Test client on the migrated database.

    Returns:
        None: Assertions validate item rows, totals and blank-id rejection.

    Raises:
        AssertionError: Raised when contracts of other plants leak into the view.
    """

    for item_id, ex_plant_id, quantity_packs in (
        ("item-wheat", "plant-1", "10"),
        ("item-rice", "plant-1", "4"),
        ("item-wheat", "plant-2", "70"),
    ):
        api_client.post(
            "/ledger/contracts",
            json={
                "direction": "purchase",
                "contract_date": "2026-10-01",
                "party_id": "party-a",
                "item_id": item_id,
                "ex_plant_id": ex_plant_id,
                "quantity_packs": quantity_packs,
                "rate_per_10kg": "500",
            },
        )

    response = api_client.get("/stock/ex-plants/plant-1")
    blank = api_client.get("/stock/ex-plants/%20")

    assert response.status_code == 200
    payload = response.json()
    assert payload["ex_plant_id"] == "plant-1"
    assert [(row["item_id"], row["pending_purchase_packs"]) for row in payload["items"]] == [
        ("item-rice", "4"),
        ("item-wheat", "10"),
    ]
    assert payload["summary"]["item_count"] == 2
    assert [row["party_id"] for row in payload["parties"]] == ["party-a", "party-a"]
    assert payload["violations"] == []
    assert blank.status_code == 422
    assert blank.json()["code"] == "VALIDATION_ERROR"


def test_api_stock_recalculate_all(seeded_client: TestClient) -> None:
    response = seeded_client.post("/stock/recalculate-all")

    assert response.status_code == 200
    assert response.json()["job_name"] == "stock_recalculate"
    assert response.json()["status"] == "success"
    assert response.json()["violations"] == []


def test_api_pnl_settled_generates_on_first_read(seeded_client: TestClient) -> None:
    """Verify a settled report is generated on first read and served afterwards.

    Args:
        seeded_client: Client over the seeded ledger.

    Returns:
        None: Assertions validate generation flag, rows and profit.

    Raises:
        AssertionError: Raised when settled rows are wrong or regenerated on every read.
    """

    first = seeded_client.get("/pnl/settled", params={"report_date": "2026-10-02"})
    second = seeded_client.get("/pnl/settled", params={"report_date": "2026-10-02"})
    earlier = seeded_client.get("/pnl/settled", params={"report_date": "2026-10-01"}).json()

    assert first.status_code == 200
    assert first.json()["generated"] is True
    assert second.json()["generated"] is False
    item = second.json()["items"][0]
    assert item["buy_quantity_packs"] == "100"
    assert item["sell_quantity_kg"] == "30000"
    assert item["avg_buy_rate"] == "500"
    assert item["avg_sell_rate"] == "560"
    assert item["profit"] == "1800000"
    assert second.json()["summary"]["profit"] == "1800000"
    assert earlier["items"][0]["sell_quantity_kg"] == "0"
    assert earlier["items"][0]["profit"] == "0"


def test_api_pnl_settled_before_first_contract_is_empty_without_generation(
    seeded_client: TestClient,
    derived_repository,
) -> None:
    first = seeded_client.get("/pnl/settled", params={"report_date": "2026-09-01"})
    second = seeded_client.get("/pnl/settled", params={"report_date": "2026-09-01"})

    assert first.status_code == 200
    assert first.json()["generated"] is False
    assert second.json()["generated"] is False
    assert second.json()["items"] == []
    assert second.json()["summary"]["item_count"] == 0
    assert derived_repository.db_pnl_settled_dates() == []


def test_api_pnl_settled_generate_endpoint(seeded_client: TestClient) -> None:
    response = seeded_client.post("/pnl/settled/generate", json={"report_date": "2026-10-02"})

    assert response.status_code == 200
    assert response.json()["job"]["job_name"] == "settled_pnl_generate"
    assert response.json()["job"]["details"]["report_date"] == "2026-10-02"
    assert len(response.json()["items"]) == 1


def test_api_pnl_future_refreshes_from_pending(seeded_client: TestClient) -> None:
    """Verify future P&L values the pending quantities at contract rates.

    Args:
        seeded_client: Client over the seeded ledger.

    Returns:
        None: Assertions validate future rows and the refresh flag.

    Raises:
        AssertionError: Raised when delivered quantity leaks into future rows.
    """

    seeded_client.put(
        "/ledger/market-rates",
        json={"item_id": "item-wheat", "effective_date": "2026-10-18", "rate_per_10kg": "540"},
    )

    refreshed = seeded_client.get("/pnl/future")
    cached = seeded_client.get("/pnl/future", params={"refresh": "false"})

    assert refreshed.json()["refreshed"] is True
    assert cached.json()["refreshed"] is False
    assert refreshed.json()["items"] == cached.json()["items"]
    item = refreshed.json()["items"][0]
    assert item["buy_quantity_packs"] == "60"
    assert item["sell_quantity_kg"] == "30000"
    assert item["profit"] == "1800000"
    assert item["market_rate_per_10kg"] == "540"
    assert refreshed.json()["violations"] == []


def test_api_pnl_recalculate_all(seeded_client: TestClient) -> None:
    response = seeded_client.post("/pnl/recalculate-all")

    assert response.status_code == 200
    assert response.json()["job_name"] == "pnl_recalculate"
    assert response.json()["details"]["settled_report_date_count"] == 2


def test_api_recalculation_run_and_run_log(seeded_client: TestClient) -> None:
    """Trigger a full rebuild and read it back from the run log.

    Args:
        seeded_client: Client over the seeded ledger.

    Returns:
        None: Assertions validate trigger, list and detail payloads.

    Raises:
        AssertionError: Raised when runs are not logged or not retrievable.
    """

    triggered = seeded_client.post("/recalculation/run")
    run_id = triggered.json()["recalculation_run_id"]
    runs = seeded_client.get("/recalculation/runs").json()
    detail = seeded_client.get(f"/recalculation/runs/{run_id}")
    missing = seeded_client.get("/recalculation/runs/not-a-run")

    assert triggered.status_code == 200
    assert triggered.json()["job_name"] == "ledger_recalculate"
    assert [item["recalculation_run_id"] for item in runs["items"]] == [run_id]
    assert detail.json()["status"] == "success"
    assert detail.json()["violation_count"] == 0
    assert detail.json()["diagnostics"][-1]["stage"] == "run"
    assert missing.status_code == 404
    assert missing.json()["code"] == "NOT_FOUND"
