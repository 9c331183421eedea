"""DuckDB database setup and connection management."""

import duckdb
import logging
from pathlib import Path
from typing import Optional

from core.errors import PersistenceError

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS suite_runs (
    id              VARCHAR PRIMARY KEY,
    subject         VARCHAR NOT NULL,
    grade           INTEGER NOT NULL,
    total_tests     INTEGER NOT NULL,
    passed_tests    INTEGER NOT NULL,
    failed_tests    INTEGER NOT NULL,
    average_score   DOUBLE NOT NULL,
    letter_grade    VARCHAR NOT NULL,
    summary         JSON,
    created_at      TIMESTAMP DEFAULT current_timestamp,
    expires_at      TIMESTAMP
);

CREATE TABLE IF NOT EXISTS evaluation_results (
    id               VARCHAR PRIMARY KEY,
    evaluation_type  VARCHAR NOT NULL,
    student_id       VARCHAR,
    session_id       VARCHAR,
    interaction_id   VARCHAR,
    status           VARCHAR NOT NULL,
    score            DOUBLE,
    letter_grade     VARCHAR,
    result           JSON,
    error            VARCHAR,
    created_at       TIMESTAMP DEFAULT current_timestamp,
    expires_at       TIMESTAMP
);

CREATE TABLE IF NOT EXISTS metric_records (
    id              VARCHAR PRIMARY KEY,
    metric_type     VARCHAR NOT NULL,
    count           INTEGER NOT NULL,
    average_score   DOUBLE NOT NULL,
    created_at      TIMESTAMP DEFAULT current_timestamp,
    expires_at      TIMESTAMP
);

CREATE TABLE IF NOT EXISTS interactions (
    interaction_id  VARCHAR PRIMARY KEY,
    session_id      VARCHAR NOT NULL,
    student_id      VARCHAR,
    type            VARCHAR NOT NULL,
    subject         VARCHAR,
    user_message    VARCHAR,
    ai_response     VARCHAR,
    created_at      TIMESTAMP DEFAULT current_timestamp
);
"""


class Database:
    """DuckDB database manager for tutor evaluation records."""

    def __init__(self, db_path: str = "tutoreval.duckdb"):
        self.db_path = db_path
        self._conn: Optional[duckdb.DuckDBPyConnection] = None

    @property
    def conn(self) -> duckdb.DuckDBPyConnection:
        if self._conn is None:
            try:
                if self.db_path != ":memory:":
                    Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
                conn = duckdb.connect(self.db_path)
                conn.execute(SCHEMA_SQL)
            except (OSError, duckdb.Error) as e:
                raise PersistenceError(f"Could not open database {self.db_path}: {e}") from e
            self._conn = conn
            logger.info(f"Database schema initialized at {self.db_path}")
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def execute(self, query: str, params=None):
        if params:
            return self.conn.execute(query, params)
        return self.conn.execute(query)

    def fetchall(self, query: str, params=None):
        result = self.execute(query, params)
        columns = [desc[0] for desc in result.description]
        rows = result.fetchall()
        return [dict(zip(columns, row)) for row in rows]

    def fetchone(self, query: str, params=None):
        result = self.execute(query, params)
        columns = [desc[0] for desc in result.description]
        row = result.fetchone()
        if row:
            return dict(zip(columns, row))
        return None
