"""Main module entrypoint for local runtime execution.

This module validates startup configuration and either launches the FastAPI
service or runs one recalculation job and exits.
"""

import argparse
import json
import logging

import uvicorn

from sauda_ledger.bootstrap import bootstrap_create_application, bootstrap_create_orchestrator
from sauda_ledger.config import config_load_settings
from sauda_ledger.domain import LedgerRecalculationError, RecalculationAlreadyRunningError
from sauda_ledger.jobs import (
    JOB_LEDGER_RECALCULATE,
    JOB_PNL_RECALCULATE,
    JOB_STOCK_RECALCULATE,
    JobExecutionResult,
)
from sauda_ledger.ledger import report_business_today, report_parse_date

logger = logging.getLogger("sauda_ledger.main")

_JOB_COMMANDS = {
    "recalculate-stock": JOB_STOCK_RECALCULATE,
    "recalculate-pnl": JOB_PNL_RECALCULATE,
    "recalculate-all": JOB_LEDGER_RECALCULATE,
}


def main() -> None:
    """Run selected runtime command with validated startup configuration.

    Raises:
        SettingsLoadError: Raised when configuration validation fails.
        SystemExit: Raised with status 1 when a recalculation job fails or is rejected.
    """

    argument_parser = argparse.ArgumentParser(description="Sauda ledger runtime entrypoint")
    argument_parser.add_argument(
        "command",
        nargs="?",
        default="api",
        choices=("api", *_JOB_COMMANDS, "generate-pnl"),
        help="Runtime command: `api` starts server, `recalculate-stock`, `recalculate-pnl` and "
        "`recalculate-all` rebuild derived tables, `generate-pnl` regenerates settled P&L for one date",
        type=str,
    )
    argument_parser.add_argument(
        "--report-date",
        dest="report_date",
        type=str,
        help="Report date in YYYY-MM-DD format for `generate-pnl`; business today when omitted",
    )
    parsed_arguments = argument_parser.parse_args()

    settings = config_load_settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")

    if parsed_arguments.command == "api":
        application = bootstrap_create_application(settings)
        uvicorn.run(
            application,
            host=settings.application_host,
            port=settings.application_port,
        )
        return

    orchestrator = bootstrap_create_orchestrator(settings)
    try:
        if parsed_arguments.command == "generate-pnl":
            report_date = (
                report_parse_date(parsed_arguments.report_date)
                if parsed_arguments.report_date
                else report_business_today(settings.ledger_report_timezone)
            )
            execution_result = orchestrator.job_generate_settled_pnl(report_date)
        else:
            execution_result = orchestrator.job_execute(_JOB_COMMANDS[parsed_arguments.command])
    except (RecalculationAlreadyRunningError, LedgerRecalculationError) as error:
        logger.error("command_failed", extra={"command": parsed_arguments.command, "reason": str(error)})
        raise SystemExit(1) from error

    main_print_job_result(execution_result)


def main_print_job_result(execution_result: JobExecutionResult) -> None:
    """Print a job result and its violation report as JSON to stdout."""

    payload = {
        "job_name": execution_result.job_name,
        "status": execution_result.status,
        "recalculation_run_id": execution_result.recalculation_run_id,
        "details": execution_result.details,
        "violations": [violation.to_payload() for violation in execution_result.violations],
    }
    print(json.dumps(payload, indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
