"""Append-only Provenance Registry backed by SQLite.

The registry is the authoritative store of provenance records.  It is:
- Append-only: ``put()`` is the only mutator; no update, no delete.
- Content-keyed: one record per fingerprint, first writer wins.
- Ordered: an insertion index (``position``) enables enumeration.
- Observable: every successful ``put()`` emits a Recorded event.

Existence is derived from the recorded endorser being non-null, never from
a separate flag.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Callable, Iterator
from pathlib import Path

from provenant.models.records import (
    MAX_ENDORSEMENT_BYTES,
    MIN_ENDORSEMENT_BYTES,
    ProvenanceRecord,
    is_null_identity,
    normalize_fingerprint,
    normalize_identity,
)

logger = logging.getLogger(__name__)

RecordedListener = Callable[[ProvenanceRecord], None]


# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_CREATE_RECORDS = """
CREATE TABLE IF NOT EXISTS provenance_records (
    position            INTEGER PRIMARY KEY AUTOINCREMENT,
    fingerprint         TEXT NOT NULL UNIQUE,
    timestamp           INTEGER NOT NULL,
    endorser_identity   TEXT NOT NULL,
    endorsement         BLOB NOT NULL,
    storage_locator     TEXT NOT NULL DEFAULT ''
);
"""

_CREATE_IDX_ENDORSER = """
CREATE INDEX IF NOT EXISTS idx_endorser ON provenance_records(endorser_identity, position);
"""

_SELECT_COLUMNS = (
    "fingerprint, timestamp, endorser_identity, endorsement, storage_locator"
)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class RegistryError(RuntimeError):
    """Base class for registry invariant violations.

    These indicate a logic or duplicate-submission error, not a transient
    condition, and are never retried automatically.
    """

    code = "registry_error"


class AlreadyExistsError(RegistryError):
    """A record for this fingerprint has already been committed."""

    code = "already_exists"


class InvalidTimestampError(RegistryError):
    """Timestamp is zero, negative, or later than the registry clock."""

    code = "invalid_timestamp"


class InvalidEndorsementError(RegistryError):
    """Endorsement is missing or outside the allowed length."""

    code = "invalid_endorsement"


class InvalidEndorserError(RegistryError):
    """Endorser identity is the null identity."""

    code = "invalid_endorser"


class InvalidFingerprintError(RegistryError):
    """Fingerprint is not a 32-byte hex digest."""

    code = "invalid_fingerprint"


class RecordNotFoundError(RegistryError):
    """No record exists for the requested fingerprint."""

    code = "not_found"


class IndexOutOfRangeError(RegistryError):
    """Enumeration index is outside ``[0, count())``."""

    code = "out_of_range"


def _unix_now() -> int:
    return int(time.time())


class ProvenanceRegistry:
    """Append-only, fingerprint-keyed provenance store.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    clock:
        Returns the registry's current time in unix seconds.  Records
        dated after this instant are rejected.
    """

    def __init__(
        self,
        db_path: Path,
        *,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._clock = clock or _unix_now
        self._listeners: list[RecordedListener] = []
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0, check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(_CREATE_RECORDS)
            conn.execute(_CREATE_IDX_ENDORSER)
            conn.commit()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def current_time(self) -> int:
        """Return the registry's notion of "now" in unix seconds."""
        return self._clock()

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: RecordedListener) -> None:
        """Register a callable that receives every newly Recorded record."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: RecordedListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit_recorded(self, record: ProvenanceRecord) -> None:
        for listener in list(self._listeners):
            try:
                listener(record)
            except Exception:
                logger.error(
                    "Recorded listener %r failed for %s",
                    listener,
                    record.fingerprint,
                    exc_info=True,
                )

    # ------------------------------------------------------------------
    # Core: append-only write
    # ------------------------------------------------------------------

    def put(
        self,
        fingerprint: str,
        timestamp: int,
        endorsement: bytes,
        endorser_identity: str,
        storage_locator: str = "",
    ) -> ProvenanceRecord:
        """Commit a new provenance record.

        This is the ONLY write method. There is no update or delete.

        Raises
        ------
        InvalidFingerprintError, AlreadyExistsError, InvalidEndorserError,
        InvalidEndorsementError, InvalidTimestampError
            Checked in this order; a duplicate key wins over any other defect.
        """
        try:
            key = normalize_fingerprint(fingerprint)
        except ValueError as exc:
            raise InvalidFingerprintError(str(exc)) from exc

        # A duplicate is rejected whatever the other arguments are.  Racing
        # writers that all pass this check are settled by the UNIQUE constraint.
        if self.exists(key):
            raise AlreadyExistsError(f"Record already exists for {key}")
        record = self._validated_record(
            key, timestamp, endorsement, endorser_identity, storage_locator
        )
        self._insert(record)

        logger.info(
            "Recorded %s (endorser=%s, locator=%s)",
            record.fingerprint,
            record.endorser_identity,
            record.storage_locator or "<none>",
        )
        self._emit_recorded(record)
        return record

    def _validated_record(
        self,
        key: str,
        timestamp: int,
        endorsement: bytes,
        endorser_identity: str,
        storage_locator: str,
    ) -> ProvenanceRecord:
        try:
            identity = normalize_identity(endorser_identity)
        except ValueError as exc:
            raise InvalidEndorserError(str(exc)) from exc
        if is_null_identity(identity):
            raise InvalidEndorserError("Endorser identity must not be null")

        if not isinstance(endorsement, (bytes, bytearray)):
            raise InvalidEndorsementError(
                f"Endorsement must be bytes, got {type(endorsement).__name__}"
            )
        if not MIN_ENDORSEMENT_BYTES <= len(endorsement) <= MAX_ENDORSEMENT_BYTES:
            raise InvalidEndorsementError(
                f"Endorsement length {len(endorsement)} outside "
                f"[{MIN_ENDORSEMENT_BYTES}, {MAX_ENDORSEMENT_BYTES}]"
            )

        now = self.current_time()
        if isinstance(timestamp, bool) or not isinstance(timestamp, int) or timestamp <= 0:
            raise InvalidTimestampError(f"Timestamp must be a positive integer, got {timestamp!r}")
        if timestamp > now:
            raise InvalidTimestampError(
                f"Timestamp {timestamp} is later than registry time {now}"
            )

        return ProvenanceRecord(
            fingerprint=key,
            timestamp=timestamp,
            endorser_identity=identity,
            endorsement=bytes(endorsement),
            storage_locator=storage_locator or "",
        )

    def _insert(self, record: ProvenanceRecord) -> None:
        """Insert a record; the UNIQUE constraint is the existence check."""
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO provenance_records
                        (fingerprint, timestamp, endorser_identity,
                         endorsement, storage_locator)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        record.fingerprint,
                        record.timestamp,
                        record.endorser_identity,
                        record.endorsement,
                        record.storage_locator,
                    ),
                )
                conn.commit()
        except sqlite3.IntegrityError as exc:
            raise AlreadyExistsError(
                f"Record already exists for {record.fingerprint}"
            ) from exc

    # ------------------------------------------------------------------
    # Query methods (read-only)
    # ------------------------------------------------------------------

    def get(self, fingerprint: str) -> ProvenanceRecord:
        """Return the record for *fingerprint*, or raise RecordNotFoundError."""
        try:
            key = normalize_fingerprint(fingerprint)
        except ValueError as exc:
            raise RecordNotFoundError(f"No record for {fingerprint!r}") from exc

        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_SELECT_COLUMNS} FROM provenance_records WHERE fingerprint = ?",
                (key,),
            ).fetchone()
        if row is None:
            raise RecordNotFoundError(f"No record for {key}")
        record = self._row_to_record(row)
        if not record.exists:
            raise RecordNotFoundError(f"No record for {key}")
        return record

    def exists(self, fingerprint: str) -> bool:
        """Whether a record with a non-null endorser is stored. Never raises."""
        try:
            key = normalize_fingerprint(fingerprint)
        except ValueError:
            return False
        with self._connect() as conn:
            row = conn.execute(
                "SELECT endorser_identity FROM provenance_records WHERE fingerprint = ?",
                (key,),
            ).fetchone()
        return row is not None and not is_null_identity(row[0])

    def count(self) -> int:
        """Number of committed records."""
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) FROM provenance_records").fetchone()
        return int(row[0])

    def by_index(self, index: int) -> str:
        """Return the fingerprint committed at insertion position *index*."""
        if index < 0:
            raise IndexOutOfRangeError(f"Index {index} is negative")
        total = self.count()
        if index >= total:
            raise IndexOutOfRangeError(f"Index {index} out of range for {total} records")
        with self._connect() as conn:
            row = conn.execute(
                "SELECT fingerprint FROM provenance_records "
                "ORDER BY position ASC LIMIT 1 OFFSET ?",
                (index,),
            ).fetchone()
        if row is None:
            raise IndexOutOfRangeError(
                f"Index {index} out of range for {self.count()} records"
            )
        return row[0]

    def iter_records(
        self, offset: int = 0, limit: int | None = None
    ) -> Iterator[ProvenanceRecord]:
        """Yield records in insertion order, starting at *offset*."""
        sql = (
            f"SELECT {_SELECT_COLUMNS} FROM provenance_records "
            "ORDER BY position ASC LIMIT ? OFFSET ?"
        )
        with self._connect() as conn:
            rows = conn.execute(
                sql, (-1 if limit is None else limit, max(offset, 0))
            ).fetchall()
        for row in rows:
            yield self._row_to_record(row)

    def history(self, offset: int = 0, limit: int = 50) -> list[ProvenanceRecord]:
        """One page of records in insertion order."""
        return list(self.iter_records(offset=offset, limit=limit))

    def records_by_endorser(self, identity: str) -> list[ProvenanceRecord]:
        """All records endorsed by *identity*, in insertion order."""
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_SELECT_COLUMNS} FROM provenance_records "
                "WHERE endorser_identity = ? ORDER BY position ASC",
                (normalize_identity(identity),),
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_record(row: tuple) -> ProvenanceRecord:
        """Convert a SQLite row tuple to a ProvenanceRecord."""
        (
            fingerprint,
            timestamp,
            endorser_identity,
            endorsement,
            storage_locator,
        ) = row
        return ProvenanceRecord(
            fingerprint=fingerprint,
            timestamp=timestamp,
            endorser_identity=endorser_identity,
            endorsement=bytes(endorsement),
            storage_locator=storage_locator,
        )
