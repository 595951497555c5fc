"""Referential integrity for relation fields.

Relation fields hold plain record ids inside JSON payloads, so the storage
engine knows nothing about them. Two per-field policies are enforced here
when a referenced record goes away:

* ``preventDeleteIfReferenced`` - a referencing record blocks the delete.
* ``cascadeDeleteIfReferenced`` - referencing records are deleted first,
  each through the same checks, so a deeper prevent rule can still stop
  the whole chain.

Everything runs in the caller's session; raising aborts the transaction and
nothing is deleted.
"""
import logging
from enum import Enum

from sqlalchemy import String, func, literal_column, select

from database import is_sqlite, json_path_literal, sql_string_literal, supports_relation_index
from document import flatten_record
from errors import ReferencedRecordError
from models import Dataset as DatasetRow, Record
from schema import Dataset

logger = logging.getLogger("datatracker.integrity")


class DeletePolicy(Enum):
    PREVENT = "preventDeleteIfReferenced"
    CASCADE = "cascadeDeleteIfReferenced"


def _has_policy(field, policy):
    if policy is DeletePolicy.PREVENT:
        return field.prevent_delete_if_referenced
    return field.cascade_delete_if_referenced


class _DeleteRun:
    """State of one delete operation: schema snapshot, records in flight, results."""

    def __init__(self, session, doomed_dataset=None):
        self.session = session
        self.doomed_dataset = doomed_dataset
        self.datasets = [Dataset.from_row(row) for row in session.execute(select(DatasetRow)).scalars()]
        self.in_flight = set()
        self.deleted = []

    def fields_pointing_at(self, dataset_id, policy):
        for owner in self.datasets:
            for field in owner.relation_fields:
                if field.related_dataset == dataset_id and _has_policy(field, policy):
                    yield owner, field


class ReferentialIntegrity:

    def referencing_fields(self, session, dataset_id, policy):
        """(owner dataset, field) pairs whose relation points at ``dataset_id`` under ``policy``."""
        return list(_DeleteRun(session).fields_pointing_at(dataset_id, policy))

    def reference_filter(self, session, owner_id, field, record_id):
        """WHERE clauses selecting ``owner_id`` records whose ``field`` holds ``record_id``.

        On SQLite the clauses repeat the relation index expression literally,
        so the lookup is served by that partial index.
        """
        if is_sqlite(session.get_bind()) and supports_relation_index(field.key):
            value = func.json_extract(Record.data, literal_column(json_path_literal(field.key)), type_=String)
            return (
                Record.dataset_id == literal_column(sql_string_literal(owner_id)),
                value == record_id,
            )
        return (
            Record.dataset_id == owner_id,
            Record.data[field.key].as_string() == record_id,
        )

    def referencing_ids(self, session, owner_id, field, record_id):
        stmt = select(Record.id).where(*self.reference_filter(session, owner_id, field, record_id))
        return list(session.execute(stmt).scalars())

    def count_references(self, session, owner_id, field, record_id, ignore_ids=()):
        stmt = select(func.count()).select_from(Record).where(
            *self.reference_filter(session, owner_id, field, record_id)
        )
        if ignore_ids:
            stmt = stmt.where(Record.id.not_in(list(ignore_ids)))
        return session.execute(stmt).scalar_one()

    def delete_record(self, session, row):
        """Delete ``row`` with cascades and prevent checks; returns every deleted record, ``row`` first."""
        run = _DeleteRun(session)
        self._delete(run, row)
        # the target is deleted last, report it first
        return run.deleted[-1:] + run.deleted[:-1]

    def delete_dataset_records(self, session, dataset_id):
        """Delete all records of ``dataset_id`` under the same rules; returns the deleted records."""
        run = _DeleteRun(session, doomed_dataset=dataset_id)
        ids = list(session.execute(select(Record.id).where(Record.dataset_id == dataset_id)).scalars())
        for record_id in ids:
            if record_id in run.in_flight:
                continue
            row = session.get(Record, record_id)
            if row is None:
                continue
            self._delete(run, row)
        return run.deleted

    def _delete(self, run, row):
        session = run.session
        run.in_flight.add(row.id)

        cascaded = 0
        for owner, field in run.fields_pointing_at(row.dataset_id, DeletePolicy.CASCADE):
            for ref_id in self.referencing_ids(session, owner.id, field, row.id):
                if ref_id in run.in_flight:
                    continue
                ref_row = session.get(Record, ref_id)
                if ref_row is None:
                    continue
                self._delete(run, ref_row)
                cascaded += 1
        if cascaded:
            logger.info(f"Cascaded delete of {cascaded} record(s) referencing {row.dataset_id}/{row.id}")

        for owner, field in run.fields_pointing_at(row.dataset_id, DeletePolicy.PREVENT):
            if owner.id == run.doomed_dataset:
                continue
            count = self.count_references(session, owner.id, field, row.id, ignore_ids=run.in_flight)
            if count:
                logger.warning(f"Blocked delete of {row.dataset_id}/{row.id}: {count} reference(s) from {owner.id}.{field.key}")
                raise ReferencedRecordError(row.id, owner.id, field.key, count)

        run.deleted.append(flatten_record(row))
        session.delete(row)
        session.flush()
