"""ADLEDGER — Storage Reconciliation Layer.

Thin SQLModel store used by the coordinator. Every write commits on its own
so a failed batch leaves earlier batches in place; SQLAlchemy failures are
rolled back and surfaced as StorageError.
"""

from typing import Any, Dict, List, Sequence, Type

from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from adledger.core.logging import get_logger
from adledger.models.activity_models import ActivityLogEntry
from adledger.models.canonical_models import CanonicalRecord
from adledger.models.raw_models import RawImport, RawImportRow

logger = get_logger("ingest.storage")

_MISSING_TABLE_SIGNATURES = ("does not exist", "no such table", "undefinedtable")

# Dialects with INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {"postgresql": postgresql_insert, "sqlite": sqlite_insert}


def _error_message(error: SQLAlchemyError) -> str:
    return str(getattr(error, "orig", None) or error)


class StorageError(Exception):
    """Raised when a storage write fails."""

    def __init__(self, message: str, table: str = ""):
        self.table = table
        super().__init__(message)

    @property
    def is_missing_table(self) -> bool:
        """True when the target table (or relation) has not been created."""
        text = str(self).lower()
        return any(sig in text for sig in _MISSING_TABLE_SIGNATURES)


class SQLModelStore:
    """Storage primitives over one request-scoped Session."""

    def __init__(self, session: Session):
        self.session = session

    def _commit(self, table: str) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Write to {table} failed: {_error_message(e)}")
            raise StorageError(_error_message(e), table) from e

    def rollback(self) -> None:
        self.session.rollback()

    # ── Raw audit trail ──

    def create_import(self, raw_import: RawImport) -> RawImport:
        self.session.add(raw_import)
        self._commit(RawImport.__tablename__)
        self.session.refresh(raw_import)
        return raw_import

    def insert_import_rows(
        self,
        import_id: str,
        client_id: str,
        rows: Sequence[Dict[str, Any]],
        start_index: int = 1,
    ) -> int:
        """Insert one batch of raw rows; `start_index` is the 1-based index of rows[0]."""
        for offset, row in enumerate(rows):
            self.session.add(
                RawImportRow(
                    import_id=import_id,
                    client_id=client_id,
                    row_index=start_index + offset,
                    row_json=row,
                )
            )
        self._commit(RawImportRow.__tablename__)
        return len(rows)

    def update_import(self, raw_import: RawImport, **changes: Any) -> RawImport:
        for key, value in changes.items():
            setattr(raw_import, key, value)
        self.session.add(raw_import)
        self._commit(RawImport.__tablename__)
        self.session.refresh(raw_import)
        return raw_import

    # ── Canonical records ──

    def upsert(
        self, model: Type[CanonicalRecord], records: Sequence[CanonicalRecord]
    ) -> int:
        """Insert-or-replace records on the model's natural key.

        One INSERT ... ON CONFLICT DO UPDATE per batch: a row another request
        committed under the same key is overwritten, not a unique violation
        (last write wins). Records sharing a key within one batch collapse
        onto the last of them. Returns the number of records
        written.
        """
        table = model.__tablename__
        key_fields: Sequence[str] = model.NATURAL_KEY
        collapsed: Dict[tuple, Dict[str, Any]] = {}
        for record in records:
            values = record.model_dump(exclude={"id"})
            collapsed[tuple(values[f] for f in key_fields)] = values
        if not collapsed:
            return 0

        dialect = self.session.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise StorageError(f"Upsert is not supported on {dialect}", table)

        stmt = insert(model).values(list(collapsed.values()))
        updated = [
            c.name
            for c in model.__table__.columns
            if c.name != "id" and c.name not in key_fields
        ]
        stmt = stmt.on_conflict_do_update(
            index_elements=list(key_fields),
            set_={name: stmt.excluded[name] for name in updated},
        )
        try:
            self.session.exec(stmt)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Write to {table} failed: {_error_message(e)}")
            raise StorageError(_error_message(e), table) from e

        self._commit(table)
        return len(records)

    # ── Activity log ──

    def append_activity(self, entry: ActivityLogEntry) -> ActivityLogEntry:
        self.session.add(entry)
        self._commit(ActivityLogEntry.__tablename__)
        return entry

    def list_records(
        self,
        model: Type[CanonicalRecord],
        client_id: str,
        start: str | None = None,
        end: str | None = None,
    ) -> List[CanonicalRecord]:
        """Read canonical rows for one client, optionally within a date window."""
        query = select(model).where(model.client_id == client_id)
        if start and hasattr(model, "date_range_start"):
            query = query.where(model.date_range_start >= start)
        if end and hasattr(model, "date_range_end"):
            query = query.where(model.date_range_end <= end)
        query = query.order_by(model.campaign_id, model.id)
        return list(self.session.exec(query).all())
