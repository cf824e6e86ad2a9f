"""Tests for runtime settings validation and the recalculation CLI commands."""

from __future__ import annotations

import json
import sys
from datetime import date

import pytest

from sauda_ledger.config import SettingsLoadError, config_load_database_url, config_load_settings
from sauda_ledger.main import main


def test_config_load_settings_rejects_invalid_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.setenv("LOG_LEVEL", "chatty")

    with pytest.raises(SettingsLoadError, match="Startup configuration validation failed"):
        config_load_settings()


def test_config_load_settings_rejects_unknown_timezone(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.setenv("LEDGER_REPORT_TIMEZONE", "Mars/Olympus")

    with pytest.raises(SettingsLoadError, match="unknown timezone"):
        config_load_settings()


def test_config_load_settings_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Load runtime settings from environment variables.

    Args:
        monkeypatch: Pytest environment patcher.

    Returns:
        None: Assertions validate parsed settings.

    Raises:
        AssertionError: Raised when environment values are not applied.
    """

    monkeypatch.setenv("DATABASE_URL", "  sqlite:///ledger.db  ")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("RECALCULATION_LOCK_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("REFRESH_STOCK_ON_WRITE", "false")

    settings = config_load_settings()

    assert settings.database_url == "sqlite:///ledger.db"
    assert settings.log_level == "DEBUG"
    assert settings.recalculation_lock_timeout_seconds == 2.5
    assert settings.refresh_stock_on_write is False
    assert config_load_database_url() == "sqlite:///ledger.db"


def test_cli_recalculate_all_prints_job_result(
    migrated_database_url: str,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    ledger_store,
    make_contract_request,
) -> None:
    """Run the full rebuild command and verify the printed JSON result.

    Args:
        migrated_database_url: Migrated SQLite URL exported as DATABASE_URL.
        monkeypatch: Pytest environment patcher.
        capsys: Pytest output capture.
        ledger_store: Ledger store used to seed one contract.
        make_contract_request: Contract request builder.

    Returns:
        None: Assertions validate the printed payload.

    Raises:
        AssertionError: Raised when the command output drifts.
    """

    _ = migrated_database_url
    ledger_store.db_contract_create(make_contract_request())
    monkeypatch.setattr(sys, "argv", ["sauda-ledger", "recalculate-all"])

    main()

    payload = json.loads(capsys.readouterr().out)
    assert payload["job_name"] == "ledger_recalculate"
    assert payload["status"] == "success"
    assert payload["details"]["contract_count"] == 1
    assert payload["violations"] == []
    assert payload["recalculation_run_id"]


def test_cli_generate_pnl_for_report_date(
    migrated_database_url: str,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    ledger_store,
    make_contract_request,
    derived_repository,
) -> None:
    _ = migrated_database_url
    ledger_store.db_contract_create(make_contract_request())
    monkeypatch.setattr(sys, "argv", ["sauda-ledger", "generate-pnl", "--report-date", "2026-04-10"])

    main()

    payload = json.loads(capsys.readouterr().out)
    assert payload["job_name"] == "settled_pnl_generate"
    assert payload["details"]["report_date"] == "2026-04-10"
    assert payload["recalculation_run_id"] is None
    assert derived_repository.db_pnl_settled_dates() == [date(2026, 4, 10)]
