"""Ledger API tests for contract and delivery endpoints on a migrated SQLite database."""

from __future__ import annotations

import threading

from fastapi.testclient import TestClient

from sauda_ledger.api import create_api_application
from sauda_ledger.db import SQLAlchemyDatabaseHealthService
from sauda_ledger.jobs import LedgerRecalculationOrchestrator


def _contract_body(**overrides: object) -> dict[str, object]:
    body: dict[str, object] = {
        "direction": "purchase",
        "contract_date": "2026-10-18",
        "party_id": "party-a",
        "item_id": "item-wheat",
        "quantity_packs": "100",
        "rate_per_10kg": "500",
    }
    body.update(overrides)
    return body


def _create_contract(api_client: TestClient, **overrides: object) -> dict[str, object]:
    response = api_client.post("/ledger/contracts", json=_contract_body(**overrides))
    assert response.status_code == 201
    return response.json()["contract"]


def test_api_contract_create_numbers_contract_and_refreshes_stock(api_client: TestClient) -> None:
    """Create a contract and verify numbering, quantities and stock refresh.

    Args:
        api_client: Test client on the migrated database.

    Returns:
        None: Assertions validate response payloads.

    Raises:
        AssertionError: Raised when create payload or stock rows drift.
    """

    response = api_client.post("/ledger/contracts", json=_contract_body())

    assert response.status_code == 201
    payload = response.json()
    assert payload["stock_refresh"] == "refreshed"
    assert payload["contract"]["contract_no"] == "202627/0001"
    assert payload["contract"]["quantity_packs"] == "100"
    assert payload["contract"]["pending_packs"] == "100"
    assert payload["contract"]["loaded_packs"] == "0"

    stock_response = api_client.get("/stock", params={"item_id": "item-wheat"})
    assert stock_response.json()["items"][0]["pending_purchase_packs"] == "100"


def test_api_contract_create_rejects_invalid_body(api_client: TestClient) -> None:
    response = api_client.post("/ledger/contracts", json=_contract_body(quantity_packs="0"))

    assert response.status_code == 422


def test_api_write_bodies_reject_values_beyond_column_scale(api_client: TestClient) -> None:
    """Reject decimals with more than 6 places or 14 integer digits before reaching the store.

    Args:
        api_client: Test client on the migrated database.

    Returns:
        None: Assertions validate 422 responses and an untouched ledger.

    Raises:
        AssertionError: Raised when out-of-scale values reach persistence.
    """

    too_precise = api_client.post("/ledger/contracts", json=_contract_body(quantity_packs="1.1234567"))
    too_large = api_client.post("/ledger/contracts", json=_contract_body(rate_per_10kg="100000000000000"))
    contract = _create_contract(api_client)
    fractional_delivery = api_client.post(
        f"/ledger/contracts/{contract['contract_id']}/deliveries",
        json={"delivery_date": "2026-10-18", "weight_kg": "0.0000001"},
    )

    assert too_precise.status_code == 422
    assert too_large.status_code == 422
    assert fractional_delivery.status_code == 422
    assert api_client.get("/ledger/contracts").json()["page"]["total"] == 1


def test_api_contract_create_duplicate_number_is_validation_error(api_client: TestClient) -> None:
    _create_contract(api_client, contract_no="MANUAL-7")

    response = api_client.post("/ledger/contracts", json=_contract_body(contract_no="MANUAL-7"))

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_api_delivery_create_rejects_over_delivery(api_client: TestClient) -> None:
    """Record 40,000 kg, then verify a 65,000 kg loading is rejected with 422.

    Args:
        api_client: Test client on the migrated database.

    Returns:
        None: Assertions validate accepted and rejected deliveries.

    Raises:
        AssertionError: Raised when over-delivery is accepted or mapped wrongly.
    """

    contract = _create_contract(api_client)
    contract_id = contract["contract_id"]

    accepted = api_client.post(
        f"/ledger/contracts/{contract_id}/deliveries",
        json={"delivery_date": "2026-10-18", "weight_kg": "40000", "transport_note": "truck 1"},
    )
    rejected = api_client.post(
        f"/ledger/contracts/{contract_id}/deliveries",
        json={"delivery_date": "2026-10-18", "weight_kg": "65000"},
    )

    assert accepted.status_code == 201
    assert accepted.json()["contract"]["pending_packs"] == "60"
    assert accepted.json()["contract"]["loaded_packs"] == "40"
    assert rejected.status_code == 422
    assert rejected.json()["code"] == "OVER_DELIVERY"
    assert rejected.json()["remaining_packs"] == "60"
    assert rejected.json()["requested_packs"] == "65"

    detail = api_client.get(f"/ledger/contracts/{contract_id}").json()
    assert len(detail["deliveries"]) == 1
    assert detail["deliveries"][0]["weight_kg"] == "40000"


def test_api_delivery_update_and_delete(api_client: TestClient) -> None:
    contract = _create_contract(api_client, quantity_packs="10")
    delivery = api_client.post(
        f"/ledger/contracts/{contract['contract_id']}/deliveries",
        json={"delivery_date": "2026-10-18", "weight_kg": "4000"},
    ).json()["delivery"]

    updated = api_client.put(
        f"/ledger/deliveries/{delivery['delivery_event_id']}",
        json={"contract_id": contract["contract_id"], "delivery_date": "2026-10-19", "weight_kg": "10000"},
    )
    too_heavy = api_client.put(
        f"/ledger/deliveries/{delivery['delivery_event_id']}",
        json={"contract_id": contract["contract_id"], "delivery_date": "2026-10-19", "weight_kg": "10001"},
    )
    deleted = api_client.delete(f"/ledger/deliveries/{delivery['delivery_event_id']}")
    missing = api_client.delete(f"/ledger/deliveries/{delivery['delivery_event_id']}")

    assert updated.status_code == 200
    assert updated.json()["delivery"]["weight_kg"] == "10000"
    assert too_heavy.status_code == 422
    assert deleted.json()["status"] == "deleted"
    assert missing.status_code == 404
    assert api_client.get(f"/ledger/contracts/{contract['contract_id']}/deliveries").json()["items"] == []


def test_api_contract_update_and_delete(api_client: TestClient) -> None:
    """Edit then delete a contract and verify the guard and the stock refresh.

    Args:
        api_client: Test client on the migrated database.

    Returns:
        None: Assertions validate edit guard, delete and stock rows.

    Raises:
        AssertionError: Raised when edits bypass the loaded-quantity guard.
    """

    contract = _create_contract(api_client)
    contract_id = contract["contract_id"]
    api_client.post(
        f"/ledger/contracts/{contract_id}/deliveries",
        json={"delivery_date": "2026-10-18", "weight_kg": "40000"},
    )

    shrunk = api_client.put(f"/ledger/contracts/{contract_id}", json=_contract_body(quantity_packs="30"))
    edited = api_client.put(f"/ledger/contracts/{contract_id}", json=_contract_body(quantity_packs="45"))
    deleted = api_client.delete(f"/ledger/contracts/{contract_id}")

    assert shrunk.status_code == 422
    assert shrunk.json()["code"] == "OVER_DELIVERY"
    assert edited.status_code == 200
    assert edited.json()["contract"]["pending_packs"] == "5"
    assert edited.json()["contract"]["contract_no"] == contract["contract_no"]
    assert deleted.json() == {"contract_id": contract_id, "status": "deleted", "stock_refresh": "refreshed"}
    assert api_client.get(f"/ledger/contracts/{contract_id}").status_code == 404
    assert api_client.get("/stock").json()["items"] == []


def test_api_contract_list_filters_and_pages(api_client: TestClient) -> None:
    first = _create_contract(api_client, quantity_packs="1")
    api_client.post(
        f"/ledger/contracts/{first['contract_id']}/deliveries",
        json={"delivery_date": "2026-10-18", "weight_kg": "1000"},
    )
    _create_contract(api_client, direction="sell", party_id="party-b")
    _create_contract(api_client, item_id="item-rice")

    pending = api_client.get("/ledger/contracts", params={"status": "pending"}).json()
    sells = api_client.get("/ledger/contracts", params={"direction": "sell"}).json()
    paged = api_client.get("/ledger/contracts", params={"limit": 1, "offset": 1}).json()
    invalid = api_client.get("/ledger/contracts", params={"status": "closed"})

    assert pending["page"]["total"] == 2
    assert [item["party_id"] for item in sells["items"]] == ["party-b"]
    assert paged["page"] == {"limit": 1, "applied_limit": 1, "offset": 1, "returned": 1, "total": 3}
    assert invalid.status_code == 400
    assert invalid.json()["code"] == "INVALID_STATUS_FILTER"


def test_api_market_rate_set(api_client: TestClient) -> None:
    response = api_client.put(
        "/ledger/market-rates",
        json={"item_id": "item-wheat", "effective_date": "2026-10-18", "rate_per_10kg": "530.50"},
    )

    assert response.status_code == 200
    assert response.json() == {"item_id": "item-wheat", "effective_date": "2026-10-18", "rate_per_10kg": "530.5"}


def test_api_write_defers_stock_refresh_while_rebuild_runs(
    app_settings,
    ledger_engine,
    reconciliation_service,
    derived_repository,
    run_repository,
) -> None:
    """Verify a write succeeds with a deferred stock refresh while the lock is held.

    Args:
        app_settings: Test settings.
        ledger_engine: Engine on the migrated database.
        reconciliation_service: Ledger service.
        derived_repository: Derived table service.
        run_repository: Run log service.

    Returns:
        None: Assertions validate the write and the deferred refresh.

    Raises:
        AssertionError: Raised when a busy lock fails the ledger write.
    """

    held_lock = threading.Lock()
    orchestrator = LedgerRecalculationOrchestrator(
        reconciliation_service=reconciliation_service,
        derived_repository=derived_repository,
        run_repository=run_repository,
        lock_timeout_seconds=0.05,
        lock=held_lock,
    )
    client = TestClient(
        create_api_application(
            settings=app_settings,
            db_health_service=SQLAlchemyDatabaseHealthService(engine=ledger_engine),
            reconciliation_service=reconciliation_service,
            derived_repository=derived_repository,
            run_repository=run_repository,
            orchestrator=orchestrator,
        )
    )

    held_lock.acquire()
    try:
        created = client.post("/ledger/contracts", json=_contract_body())
        conflict = client.post("/recalculation/run")
    finally:
        held_lock.release()

    assert created.status_code == 201
    assert created.json()["stock_refresh"] == "deferred"
    assert conflict.status_code == 409
    assert conflict.json()["code"] == "RECALCULATION_RUNNING"
    assert derived_repository.db_stock_snapshot_list() == []
