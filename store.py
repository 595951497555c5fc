"""Dataset and record operations.

``RecordStore`` is the entry point used by the app: every write goes through
the uniqueness and referential-integrity checks, inside the same
transaction and under the database write lock; every read can expand
relation fields.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select

from database import ensure_relation_indexes
from document import flatten_record, load_payload, strip_metadata
from duplicates import DuplicateDetector, DuplicateResult
from errors import DatasetNotFoundError, RecordNotFoundError, ValidationError
from integrity import ReferentialIntegrity
from models import Dataset as DatasetRow, Record
from relations import RelationResolver
from schema import Dataset, DatasetType, is_valid_record_id, new_id, parse_enum, parse_fields, timestamp
from schedules import record_last_occurrence
from uniqueness import UniquenessValidator

logger = logging.getLogger("datatracker.store")


class RecordStore:

    def __init__(self, db, uniqueness=None, integrity=None, resolver=None, duplicates=None):
        self.db = db
        self.uniqueness = uniqueness or UniquenessValidator()
        self.integrity = integrity or ReferentialIntegrity()
        self.resolver = resolver or RelationResolver()
        self.duplicates = duplicates or DuplicateDetector()

    # ---- datasets ----

    def create_dataset(self, name, dataset_type, fields=None, description="", dataset_id=None) -> Dataset:
        if not name:
            raise ValidationError("Dataset name must not be empty")
        dataset_type = parse_enum(DatasetType, dataset_type, "dataset type")
        fields = parse_fields(fields)
        dataset_id = dataset_id or new_id()
        now = timestamp()
        with self.db.write_scope() as session:
            if session.get(DatasetRow, dataset_id) is not None:
                raise ValidationError(f"Dataset '{dataset_id}' already exists")
            row = DatasetRow(
                id=dataset_id,
                name=name,
                description=description or "",
                type=dataset_type.value,
                fields=[f.to_dict() for f in fields],
                created_at=now,
                last_modified=now,
            )
            session.add(row)
            session.flush()
            dataset = Dataset.from_row(row)
            ensure_relation_indexes(session, dataset)
        logger.info(f"Created dataset {dataset_id} ({name})")
        return dataset

    def get_dataset(self, dataset_id) -> Dataset:
        with self.db.session_scope() as session:
            return Dataset.from_row(self._dataset_row(session, dataset_id))

    def list_datasets(self) -> List[Dataset]:
        with self.db.session_scope() as session:
            rows = session.execute(select(DatasetRow).order_by(DatasetRow.name, DatasetRow.id)).scalars()
            return [Dataset.from_row(row) for row in rows]

    def update_dataset(self, dataset_id, name=None, description=None, dataset_type=None, fields=None) -> Dataset:
        """Change the given properties; ``None`` leaves a property as it is."""
        with self.db.write_scope() as session:
            row = self._dataset_row(session, dataset_id)
            if name is not None:
                row.name = name
            if description is not None:
                row.description = description
            if dataset_type is not None:
                row.type = parse_enum(DatasetType, dataset_type, "dataset type").value
            if fields is not None:
                row.fields = [f.to_dict() for f in parse_fields(fields)]
            row.last_modified = timestamp()
            session.flush()
            dataset = Dataset.from_row(row)
            ensure_relation_indexes(session, dataset)
        logger.info(f"Updated dataset {dataset_id}")
        return dataset

    def delete_dataset(self, dataset_id) -> List[Dict[str, Any]]:
        """Delete a dataset and all of its records in one transaction.

        Records go through the same integrity rules as single deletes, so a
        reference from another dataset can block the whole operation. Returns
        the deleted records, including cascaded ones.
        """
        with self.db.write_scope() as session:
            row = self._dataset_row(session, dataset_id)
            deleted = self.integrity.delete_dataset_records(session, dataset_id)
            session.delete(row)
        logger.info(f"Deleted dataset {dataset_id} and {len(deleted)} record(s)")
        return deleted

    # ---- records ----

    def add_record(self, dataset_id, data, record_id=None) -> Dict[str, Any]:
        payload = load_payload(data)
        with self.db.write_scope() as session:
            dataset = Dataset.from_row(self._dataset_row(session, dataset_id))
            row = self._insert(session, dataset, payload, record_id, timestamp())
            record_last_occurrence(session, dataset.id, row.data)
            return flatten_record(row)

    def get_record(self, record_id, resolve_relations=False) -> Dict[str, Any]:
        with self.db.session_scope() as session:
            row = self._record_row(session, record_id)
            if resolve_relations:
                return self.resolver.resolve(session, row)
            return flatten_record(row)

    def update_record(self, record_id, data) -> Dict[str, Any]:
        """Replace the record's payload."""
        payload = strip_metadata(load_payload(data))
        with self.db.write_scope() as session:
            row = self._record_row(session, record_id)
            dataset = Dataset.from_row(self._dataset_row(session, row.dataset_id))
            self.uniqueness.check(session, dataset, payload, record_id=row.id)
            row.data = payload
            row.last_modified = timestamp()
            session.flush()
            record_last_occurrence(session, row.dataset_id, payload)
            return flatten_record(row)

    def delete_record(self, record_id) -> Dict[str, Any]:
        """Delete a record, cascading or refusing per the relation policies.

        Returns the deleted record so callers can clean up what it referenced.
        """
        with self.db.write_scope() as session:
            row = self._record_row(session, record_id)
            deleted = self.integrity.delete_record(session, row)
        if len(deleted) > 1:
            logger.info(f"Deleted record {record_id} with {len(deleted) - 1} cascaded record(s)")
        return deleted[0]

    def list_records(self, dataset_id) -> List[Dict[str, Any]]:
        with self.db.session_scope() as session:
            return [flatten_record(row) for row in self._records(session, dataset_id)]

    def import_records(self, dataset_id, batch) -> int:
        """Insert a batch of payloads atomically; any failure imports nothing."""
        payloads = [load_payload(data) for data in batch]
        now = timestamp()
        with self.db.write_scope() as session:
            dataset = Dataset.from_row(self._dataset_row(session, dataset_id))
            for payload in payloads:
                record_id = payload.pop("id", None)
                self._insert(session, dataset, payload, record_id, now)
        logger.info(f"Imported {len(payloads)} record(s) into {dataset_id}")
        return len(payloads)

    # ---- relations & duplicates ----

    def get_records_with_relations(self, dataset_id, fields=None) -> List[Dict[str, Any]]:
        """Records of a dataset with relation fields expanded.

        ``fields`` limits expansion to those relation keys; ``None`` expands all.
        """
        with self.db.session_scope() as session:
            return [self.resolver.resolve(session, row, fields=fields) for row in self._records(session, dataset_id)]

    def find_duplicates(self, dataset_id, candidates, duplicate_fields=None) -> List[DuplicateResult]:
        candidates = [load_payload(c) for c in candidates]
        existing = self.list_records(dataset_id)
        return self.duplicates.find(existing, candidates, duplicate_fields)

    # ---- helpers ----

    def _dataset_row(self, session, dataset_id) -> DatasetRow:
        row = session.get(DatasetRow, dataset_id)
        if row is None:
            raise DatasetNotFoundError(dataset_id)
        return row

    def _record_row(self, session, record_id) -> Record:
        row = session.get(Record, record_id) if isinstance(record_id, str) else None
        if row is None:
            raise RecordNotFoundError(record_id)
        return row

    def _records(self, session, dataset_id):
        self._dataset_row(session, dataset_id)
        stmt = (
            select(Record)
            .where(Record.dataset_id == dataset_id)
            .order_by(Record.created_at.desc(), Record.id)
        )
        return session.execute(stmt).scalars().all()

    def _insert(self, session, dataset, payload, record_id: Optional[str], now) -> Record:
        payload = strip_metadata(payload)
        if record_id is None:
            record_id = new_id()
        elif not is_valid_record_id(record_id):
            raise ValidationError(f"Invalid record id '{record_id}'")
        elif session.get(Record, record_id) is not None:
            raise ValidationError(f"Record '{record_id}' already exists")
        self.uniqueness.check(session, dataset, payload)
        row = Record(id=record_id, dataset_id=dataset.id, data=payload, created_at=now, last_modified=now)
        session.add(row)
        session.flush()
        return row
