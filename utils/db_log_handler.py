"""
utils/db_log_handler.py
-----------------------
Logging handler that stores records in a configured log table.

The table is written through TableRepository.insert, so only columns that
actually exist are filled. Expected layout:

    CREATE TABLE system_logs (
        id         BIGSERIAL PRIMARY KEY,
        timestamp  TIMESTAMP NOT NULL,
        type       VARCHAR(100) NOT NULL,
        level      VARCHAR(20) NOT NULL,
        message    TEXT NOT NULL,
        created_at TIMESTAMPTZ DEFAULT NOW()
    );
"""

import logging
import threading
from datetime import datetime

from repositories.table_repo import TableRepository


class DatabaseLogHandler(logging.Handler):
    """Insert each log record as a row of ``table_id``."""

    def __init__(self, repository: TableRepository, table_id: int, level: int = logging.INFO):
        super().__init__(level)
        self.repository = repository
        self.table_id = table_id
        self._local = threading.local()

    def emit(self, record: logging.LogRecord) -> None:
        # Writing the row logs too; skip records produced while emitting.
        if getattr(self._local, "busy", False):
            return
        self._local.busy = True
        try:
            self.repository.insert(self.table_id, {
                "timestamp": datetime.fromtimestamp(record.created),
                "type": record.name,
                "level": record.levelname.lower(),
                "message": self.format(record),
            })
        except Exception:
            self.handleError(record)
        finally:
            self._local.busy = False
