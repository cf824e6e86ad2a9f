"""Database health service for connectivity and ledger schema checks."""

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

from sauda_ledger.domain import HealthStatus

from .interfaces import DatabaseHealthPort

_SCHEMA_CHECK_TABLES = ("ledger_contract", "ledger_delivery_event", "stock_snapshot", "pnl_record", "recalculation_run")


class SQLAlchemyDatabaseHealthService(DatabaseHealthPort):
    """Database health service backed by SQLAlchemy engine connectivity checks."""

    def __init__(self, engine: Engine):
        """Initialize database health service.

        Args:
            engine: SQLAlchemy engine used for connectivity checks.

        Raises:
            ValueError: Raised when engine is None.
        """

        if engine is None:
            raise ValueError("engine must not be None")
        self._engine = engine

    def db_connection_label(self) -> str:
        """Return the target database URL with the password masked."""

        return self._engine.url.render_as_string(hide_password=True)

    def db_check_health(self) -> HealthStatus:
        """Verify connectivity, then check that the ledger tables are migrated.

        Returns:
            HealthStatus: `ok` when every ledger table answers, `schema_missing`
                when the database is reachable but a table is absent.

        Raises:
            ConnectionError: Raised when the database cannot be reached.
        """

        try:
            with self._engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        except SQLAlchemyError as error:
            raise ConnectionError("database connectivity check failed") from error

        missing_tables = []
        for table_name in _SCHEMA_CHECK_TABLES:
            try:
                with self._engine.connect() as connection:
                    connection.execute(text(f"SELECT 1 FROM {table_name} WHERE 1 = 0"))
            except SQLAlchemyError:
                missing_tables.append(table_name)

        if missing_tables:
            return HealthStatus(
                status="schema_missing",
                detail=f"missing tables: {', '.join(missing_tables)}; run `alembic upgrade head`",
            )
        return HealthStatus(status="ok", detail="ledger database reachable")
