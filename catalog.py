"""Persisted dataset descriptors and their reconciliation with the declared catalog."""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List

from database import ensure_relation_indexes
from models import Dataset as DatasetRow
from schema import Dataset, DatasetType, FieldDefinition, parse_enum, parse_fields, timestamp

logger = logging.getLogger("datatracker.catalog")

_COMPARED_ATTRS = (
    "type", "display_name", "description", "unit", "is_searchable", "is_optional", "is_unique",
    "is_relation", "related_dataset", "related_field",
    "prevent_delete_if_referenced", "cascade_delete_if_referenced",
)


class SyncPolicy(str, Enum):
    # rewrite every declared dataset on every run, discarding drift
    OVERWRITE = "overwrite"
    # write only when the stored descriptor differs from the declared one
    DIFF = "diff"


class UpsertOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass
class SyncReport:
    created: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)

    def record(self, dataset_id, outcome):
        getattr(self, outcome.value).append(dataset_id)

    def __str__(self):
        return f"created={len(self.created)} updated={len(self.updated)} unchanged={len(self.unchanged)}"


def fields_equal(a: List[FieldDefinition], b: List[FieldDefinition]) -> bool:
    """Same keys with the same properties, ignoring order."""
    if len(a) != len(b):
        return False
    by_key = {f.key: f for f in a}
    for fb in b:
        fa = by_key.get(fb.key)
        if fa is None:
            return False
        if any(getattr(fa, attr) != getattr(fb, attr) for attr in _COMPARED_ATTRS):
            return False
    return True


class SchemaCatalog:

    def __init__(self, db, policy=SyncPolicy.OVERWRITE):
        self.db = db
        self.policy = parse_enum(SyncPolicy, policy, "sync policy")

    def upsert_dataset_definition(self, dataset_id, name, description, dataset_type, fields, session=None):
        if session is None:
            with self.db.write_scope() as session:
                return self.upsert_dataset_definition(dataset_id, name, description, dataset_type, fields, session)

        dataset_type = parse_enum(DatasetType, dataset_type, "dataset type")
        fields = parse_fields(fields)
        wire_fields = [f.to_dict() for f in fields]
        now = timestamp()

        row = session.get(DatasetRow, dataset_id)
        if row is None:
            row = DatasetRow(
                id=dataset_id,
                name=name,
                description=description,
                type=dataset_type.value,
                fields=wire_fields,
                created_at=now,
                last_modified=now,
            )
            session.add(row)
            outcome = UpsertOutcome.CREATED
        elif self.policy is SyncPolicy.DIFF and self._matches(row, name, description, dataset_type, fields):
            return UpsertOutcome.UNCHANGED
        else:
            row.name = name
            row.description = description
            row.type = dataset_type.value
            row.fields = wire_fields
            row.last_modified = now
            outcome = UpsertOutcome.UPDATED

        session.flush()
        ensure_relation_indexes(session, Dataset.from_row(row))
        logger.debug(f"Dataset {dataset_id}: {outcome.value}")
        return outcome

    def sync_datasets(self, definitions) -> SyncReport:
        """Upsert every declared dataset in one transaction."""
        report = SyncReport()
        with self.db.write_scope() as session:
            for definition in definitions:
                outcome = self.upsert_dataset_definition(
                    definition.id,
                    definition.name,
                    definition.description,
                    definition.type,
                    definition.fields,
                    session=session,
                )
                report.record(definition.id, outcome)
        logger.info(f"Dataset sync completed ({self.policy.value}): {report}")
        return report

    def _matches(self, row, name, description, dataset_type, fields):
        stored = [FieldDefinition.from_dict(raw) for raw in (row.fields or [])]
        return (
            row.name == name
            and (row.description or "") == (description or "")
            and row.type == dataset_type.value
            and fields_equal(stored, fields)
        )
