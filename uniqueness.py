import logging

from sqlalchemy import select

from document import canonical_string, get_optional
from errors import UniqueConstraintError
from models import Record

logger = logging.getLogger("datatracker.uniqueness")


class UniquenessValidator:
    """Per-field value uniqueness within a dataset.

    The engine has no unique index over JSON payloads, so every check is a
    scan of the dataset's records, run in the caller's session so that it
    shares the transaction of the write it guards.
    """

    def check(self, session, dataset, data, record_id=None):
        for field in dataset.unique_fields:
            value = canonical_string(get_optional(data, field.key))
            if value is None:
                continue
            if self._exists(session, dataset.id, field.key, value, record_id):
                logger.warning(f"Rejected write to {dataset.id}: duplicate {field.key}={value!r}")
                raise UniqueConstraintError(field.label, value)

    def _exists(self, session, dataset_id, key, value, exclude_id):
        stmt = select(Record.id, Record.data).where(Record.dataset_id == dataset_id)
        if exclude_id is not None:
            stmt = stmt.where(Record.id != exclude_id)
        for _, data in session.execute(stmt):
            if canonical_string(get_optional(data or {}, key)) == value:
                return True
        return False
