"""
Giveaway Store
Durable keyed records, one per giveaway, keyed by ("giveaway", interaction_id)

Writes that depend on what was read go through update(), an optimistic
compare-and-swap on the row version, so two users clicking at the same time
cannot overwrite each other's entry. The draw takes the record with claim(),
an atomic open -> drawing transition that only one delivery can win.
"""

import logging
import time
from typing import Callable, Optional

from sqlalchemy import text

from .models import GiveawayRecord

logger = logging.getLogger(__name__)

NAMESPACE = "giveaway"

OPEN = "open"
DRAWING = "drawing"


class ConcurrentUpdateError(Exception):
    """Compare-and-swap kept losing to other writers"""


class GiveawayStore:
    """Record access for the giveaway_records table"""

    def __init__(self, engine, namespace=NAMESPACE, clock=time.time):
        self.engine = engine
        self.namespace = namespace
        self.clock = clock

    def _params(self, key, **extra):
        return {"ns": self.namespace, "key": str(key), **extra}

    def get(self, key) -> Optional[GiveawayRecord]:
        with self.engine.connect() as conn:
            row = conn.execute(text("""
                SELECT payload FROM giveaway_records
                WHERE namespace = :ns AND record_key = :key
            """), self._params(key)).fetchone()
        return GiveawayRecord.from_json(row[0]) if row else None

    def create(self, key, record: GiveawayRecord, conn=None):
        """Insert a new open record; pass conn to join an outer transaction"""
        now = self.clock()
        params = self._params(key, payload=record.to_json(), now=now)
        statement = text("""
            INSERT INTO giveaway_records
                (namespace, record_key, payload, version, status, created_at, updated_at)
            VALUES (:ns, :key, :payload, 1, 'open', :now, :now)
        """)
        if conn is not None:
            conn.execute(statement, params)
        else:
            with self.engine.begin() as own_conn:
                own_conn.execute(statement, params)

    def set(self, key, record: GiveawayRecord):
        """Unconditional write (insert or overwrite), status left untouched"""
        now = self.clock()
        params = self._params(key, payload=record.to_json(), now=now)
        with self.engine.begin() as conn:
            result = conn.execute(text("""
                UPDATE giveaway_records
                SET payload = :payload, version = version + 1, updated_at = :now
                WHERE namespace = :ns AND record_key = :key
            """), params)
            if result.rowcount == 0:
                conn.execute(text("""
                    INSERT INTO giveaway_records
                        (namespace, record_key, payload, version, status, created_at, updated_at)
                    VALUES (:ns, :key, :payload, 1, 'open', :now, :now)
                """), params)

    def update(self, key, mutator: Callable[[GiveawayRecord], None], retries: int = 5) -> Optional[GiveawayRecord]:
        """
        Read-mutate-write with optimistic concurrency.

        Args:
            key: Interaction id of the giveaway
            mutator: Called with the current record, mutates it in place
            retries: Attempts before giving up on a hot record

        Returns:
            The record as written, or None if it does not exist or is no
            longer open (a draw has claimed it)
        """
        for attempt in range(retries):
            with self.engine.connect() as conn:
                row = conn.execute(text("""
                    SELECT payload, version FROM giveaway_records
                    WHERE namespace = :ns AND record_key = :key AND status = 'open'
                """), self._params(key)).fetchone()

            if not row:
                return None

            record = GiveawayRecord.from_json(row[0])
            mutator(record)

            with self.engine.begin() as conn:
                result = conn.execute(text("""
                    UPDATE giveaway_records
                    SET payload = :payload, version = version + 1, updated_at = :now
                    WHERE namespace = :ns AND record_key = :key
                      AND version = :version AND status = 'open'
                """), self._params(key, payload=record.to_json(), version=row[1], now=self.clock()))

            if result.rowcount == 1:
                return record

            logger.debug(f"Lost update race on giveaway {key} (attempt {attempt + 1}/{retries})")

        raise ConcurrentUpdateError(f"Giveaway {key} changed {retries} times during update")

    def claim(self, key, stale_after: float = 300) -> Optional[GiveawayRecord]:
        """
        Atomically take an open record for drawing.

        A record stuck in 'drawing' for longer than stale_after seconds
        (consumer died mid-draw) may be claimed again.

        Returns:
            The claimed record, or None if absent or held by another draw
        """
        now = self.clock()
        with self.engine.begin() as conn:
            result = conn.execute(text("""
                UPDATE giveaway_records
                SET status = 'drawing', claimed_at = :now, version = version + 1, updated_at = :now
                WHERE namespace = :ns AND record_key = :key
                  AND (status = 'open' OR (status = 'drawing' AND claimed_at < :stale_before))
            """), self._params(key, now=now, stale_before=now - stale_after))

            if result.rowcount != 1:
                return None

            row = conn.execute(text("""
                SELECT payload FROM giveaway_records
                WHERE namespace = :ns AND record_key = :key
            """), self._params(key)).fetchone()

        return GiveawayRecord.from_json(row[0])

    def release(self, key) -> bool:
        """Return a claimed record to 'open' after a failed draw"""
        with self.engine.begin() as conn:
            result = conn.execute(text("""
                UPDATE giveaway_records
                SET status = 'open', claimed_at = NULL, version = version + 1, updated_at = :now
                WHERE namespace = :ns AND record_key = :key AND status = 'drawing'
            """), self._params(key, now=self.clock()))
        return result.rowcount == 1

    def delete(self, key) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(text("""
                DELETE FROM giveaway_records
                WHERE namespace = :ns AND record_key = :key
            """), self._params(key))
        return result.rowcount > 0

    def status(self, key) -> Optional[str]:
        with self.engine.connect() as conn:
            row = conn.execute(text("""
                SELECT status FROM giveaway_records
                WHERE namespace = :ns AND record_key = :key
            """), self._params(key)).fetchone()
        return row[0] if row else None

    def held_for(self, key, stale_after: float = 300) -> Optional[float]:
        """
        Seconds until a 'drawing' claim on key goes stale.

        Returns:
            None if the record is absent, 0 if it is not claimed
        """
        with self.engine.connect() as conn:
            row = conn.execute(text("""
                SELECT status, claimed_at FROM giveaway_records
                WHERE namespace = :ns AND record_key = :key
            """), self._params(key)).fetchone()
        if row is None:
            return None
        status, claimed_at = row
        if status != DRAWING or claimed_at is None:
            return 0.0
        return max(claimed_at + stale_after - self.clock(), 0.0)
