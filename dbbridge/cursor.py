"""
Incremental result cursor

A ResultCursor wraps one DB-API cursor bound to one handle and hands rows
out in bounded batches. Rows pulled from the driver are buffered before they
are returned, so a driver failure in the middle of a fetch leaves the
caller-visible position unchanged and the next fetch picks up where the
failed one stopped.

States:
    open       rows remain
    exhausted  every row has been returned; fetch() keeps returning []
    released   any call other than release() raises UseAfterReleaseError
"""

import logging
from collections import deque
from typing import Any, Dict, Iterator, List, Optional

from dbbridge.core.config import settings
from dbbridge.errors import ConfigurationError, QueryError, UseAfterReleaseError

logger = logging.getLogger(__name__)


class ResultCursor:
    """
    Stateful, incrementally advancing query result.

    Created by ``handle.execute_cursor(sql)``; never construct directly.

    Example:
        with handle.execute_cursor("SELECT * FROM mtcars") as cursor:
            while not cursor.is_complete():
                rows = cursor.fetch(10)
    """

    def __init__(self, handle, dbapi_cursor, sql: str):
        self.handle = handle
        self.sql = sql
        self.engine = handle.ENGINE
        self._cursor = dbapi_cursor
        self._buffer = deque()
        self._driver_done = dbapi_cursor.description is None
        self._rows_fetched = 0
        self._released = False
        self.columns: List[str] = [desc[0] for desc in (dbapi_cursor.description or [])]

    def _ensure_usable(self) -> None:
        if self._released:
            raise UseAfterReleaseError("Cursor has been released", engine=self.engine)
        if self.handle.is_released:
            raise UseAfterReleaseError("Connection handle has been released", engine=self.engine)

    def _fill(self, wanted: Optional[int]) -> None:
        """Pull rows from the driver until ``wanted`` are buffered (None = all)."""
        try:
            if wanted is None:
                if not self._driver_done:
                    self._buffer.extend(self._cursor.fetchall())
                    self._driver_done = True
                return

            while len(self._buffer) < wanted and not self._driver_done:
                chunk = self._cursor.fetchmany(wanted - len(self._buffer))
                if not chunk:
                    self._driver_done = True
                self._buffer.extend(chunk)
        except Exception as e:
            raise QueryError(
                f"Fetch failed: {e}",
                engine=self.engine,
                original_error=e
            ) from e

    def fetch(self, batch_size: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Return the next batch of rows.

        Args:
            batch_size: Maximum rows to return; all remaining rows when None

        Returns:
            Up to ``batch_size`` rows as dicts. An empty list means the cursor
            is exhausted; further calls keep returning an empty list.

        Raises:
            QueryError: If the driver fails; the cursor position is unchanged
        """
        self._ensure_usable()
        if batch_size is not None and batch_size < 1:
            raise ConfigurationError(
                f"batch_size must be a positive integer, got {batch_size}",
                engine=self.engine
            )

        # One extra row tells us whether this batch is the last one.
        self._fill(None if batch_size is None else batch_size + 1)

        count = len(self._buffer) if batch_size is None else min(batch_size, len(self._buffer))
        rows = [dict(zip(self.columns, self._buffer.popleft())) for _ in range(count)]
        self._rows_fetched += len(rows)
        return rows

    def is_complete(self) -> bool:
        """True once no further rows remain."""
        self._ensure_usable()
        self._fill(1)
        return self._driver_done and not self._buffer

    def iter_batches(self, batch_size: Optional[int] = None) -> Iterator[List[Dict[str, Any]]]:
        """Yield non-empty batches until the cursor is exhausted."""
        if batch_size is None:
            batch_size = settings.default_batch_size
        while True:
            batch = self.fetch(batch_size)
            if not batch:
                return
            yield batch

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        for batch in self.iter_batches():
            yield from batch

    @property
    def rows_fetched(self) -> int:
        """Rows returned to the caller so far."""
        return self._rows_fetched

    @property
    def is_released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Close the driver cursor. Releasing twice is a no-op."""
        if self._released:
            return
        try:
            self._cursor.close()
        except Exception as e:
            logger.warning(f"Error closing {self.engine} cursor: {e}")
        finally:
            self._released = True
            self._buffer.clear()
            self.handle._forget_cursor(self)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False

    def __repr__(self):
        state = "released" if self._released else "open"
        return f"<ResultCursor {self.engine} rows_fetched={self._rows_fetched} ({state})>"
