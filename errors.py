"""Failure taxonomy of the data engine.

Every error carries a ``kind`` so callers (and the HTTP layer) can tell them
apart without looking at message text.
"""


class DataEngineError(Exception):
    kind = "error"

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class NotFoundError(DataEngineError):
    kind = "not-found"


class DatasetNotFoundError(NotFoundError):
    def __init__(self, dataset_id):
        super().__init__(f"Dataset '{dataset_id}' not found")
        self.dataset_id = dataset_id


class RecordNotFoundError(NotFoundError):
    def __init__(self, record_id):
        super().__init__(f"Record '{record_id}' not found")
        self.record_id = record_id


class ValidationError(DataEngineError):
    kind = "validation"


class ConstraintViolationError(DataEngineError):
    kind = "constraint-violation"


class UniqueConstraintError(ConstraintViolationError):
    def __init__(self, field_name, value):
        super().__init__(f"A record with {field_name} '{value}' already exists")
        self.field_name = field_name
        self.value = value


class ReferencedRecordError(ConstraintViolationError):
    def __init__(self, record_id, dataset_id, field_key, count):
        super().__init__(
            f"Record '{record_id}' is referenced by {count} record(s) in "
            f"'{dataset_id}' (field '{field_key}') and cannot be deleted"
        )
        self.record_id = record_id
        self.referencing_dataset = dataset_id
        self.field_key = field_key
        self.count = count


class MalformedPayloadError(DataEngineError):
    kind = "malformed-payload"


class StorageError(DataEngineError):
    kind = "storage-failure"
