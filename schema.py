import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from errors import ValidationError


class DatasetType(str, Enum):
    DEXA = "dexa"
    BLOODWORK = "bloodwork"
    EXPERIMENT = "experiment"
    METRIC = "metric"
    DAILY_LOG = "daily_log"
    JOURNALING = "journaling"
    TIME_TRACKING = "time_tracking"
    TODO = "todo"
    PEOPLE_CRM = "people_crm"
    FINANCIAL = "financial"
    CUSTOM = "custom"


class FieldType(str, Enum):
    DATE = "date"
    BOOLEAN = "boolean"
    NUMBER = "number"
    PERCENTAGE = "percentage"
    TEXT = "text"
    MARKDOWN = "markdown"
    SELECT_SINGLE = "select-single"
    SELECT_MULTIPLE = "select-multiple"
    JSON = "json"
    FILE = "file"
    FILE_LIST = "file-list"
    IMAGE = "image"
    IMAGE_LIST = "image-list"


def parse_enum(enum_cls, value, what):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Unknown {what} '{value}'") from None


_UUID_PATTERN = re.compile(r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$")
_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.:\-]{8,127}$")


def new_id():
    return str(uuid.uuid4())


def is_valid_record_id(value):
    """A record id is a canonical UUID or an opaque token of 9-128 safe characters."""
    if not isinstance(value, str):
        return False
    return bool(_UUID_PATTERN.match(value) or _TOKEN_PATTERN.match(value))


@dataclass(frozen=True)
class Reference:
    dataset_id: str
    record_id: str


# (attribute, wire name, default)
_FIELD_ATTRS = [
    ("description", "description", ""),
    ("unit", "unit", ""),
    ("is_searchable", "isSearchable", False),
    ("is_optional", "isOptional", False),
    ("is_unique", "isUnique", False),
    ("is_relation", "isRelation", False),
    ("related_dataset", "relatedDataset", ""),
    ("related_field", "relatedField", ""),
    ("prevent_delete_if_referenced", "preventDeleteIfReferenced", False),
    ("cascade_delete_if_referenced", "cascadeDeleteIfReferenced", False),
]


@dataclass
class FieldDefinition:
    key: str
    type: FieldType
    display_name: str
    description: str = ""
    unit: str = ""
    is_searchable: bool = False
    is_optional: bool = False
    is_unique: bool = False
    is_relation: bool = False
    related_dataset: str = ""
    related_field: str = ""
    prevent_delete_if_referenced: bool = False
    cascade_delete_if_referenced: bool = False

    @property
    def is_relation_field(self):
        return bool(self.is_relation and self.related_dataset and self.related_field)

    @property
    def label(self):
        return self.display_name or self.key

    def validate(self):
        if not self.key:
            raise ValidationError("Field key must not be empty")
        self.type = parse_enum(FieldType, self.type, "field type")
        if self.prevent_delete_if_referenced and self.cascade_delete_if_referenced:
            raise ValidationError(
                f"Field '{self.key}' cannot both prevent and cascade deletes of referenced records"
            )
        if self.is_relation and not self.related_dataset:
            raise ValidationError(f"Relation field '{self.key}' must name a related dataset")
        return self

    def reference_in(self, data: Dict) -> Optional[Reference]:
        """The reference held by ``data`` for this field, if it is a relation field with a string value."""
        if not self.is_relation_field:
            return None
        value = data.get(self.key)
        if not isinstance(value, str) or not value:
            return None
        return Reference(self.related_dataset, value)

    @classmethod
    def from_dict(cls, raw):
        if isinstance(raw, FieldDefinition):
            return raw
        if not isinstance(raw, dict):
            raise ValidationError("Field definition must be an object")
        if "key" not in raw or "type" not in raw:
            raise ValidationError("Field definition needs 'key' and 'type'")
        kwargs = {
            "key": raw["key"],
            "type": parse_enum(FieldType, raw["type"], "field type"),
            "display_name": raw.get("displayName") or raw["key"],
        }
        for attr, wire, default in _FIELD_ATTRS:
            value = raw.get(wire)
            kwargs[attr] = default if value is None else value
        return cls(**kwargs)

    def to_dict(self):
        out = {"key": self.key, "type": FieldType(self.type).value, "displayName": self.display_name}
        for attr, wire, default in _FIELD_ATTRS:
            value = getattr(self, attr)
            if value != default:
                out[wire] = value
        return out


def parse_fields(raw_fields) -> List[FieldDefinition]:
    """Parse and validate an ordered field list; keys must be unique."""
    if raw_fields is None:
        return []
    if not isinstance(raw_fields, (list, tuple)):
        raise ValidationError("Dataset fields must be a list")
    fields = [FieldDefinition.from_dict(raw).validate() for raw in raw_fields]
    seen = set()
    for f in fields:
        if f.key in seen:
            raise ValidationError(f"Duplicate field key '{f.key}'")
        seen.add(f.key)
    return fields


@dataclass
class DatasetDefinition:
    """A statically declared dataset, as handed to the synchronizer."""
    id: str
    name: str
    description: str
    type: DatasetType
    fields: List[FieldDefinition] = field(default_factory=list)


@dataclass
class Dataset:
    id: str
    name: str
    description: str
    type: DatasetType
    fields: List[FieldDefinition]
    created_at: datetime
    last_modified: datetime

    def get_field(self, key):
        for f in self.fields:
            if f.key == key:
                return f
        return None

    @property
    def relation_fields(self):
        return [f for f in self.fields if f.is_relation_field]

    @property
    def unique_fields(self):
        return [f for f in self.fields if f.is_unique]

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row.id,
            name=row.name,
            description=row.description or "",
            type=parse_enum(DatasetType, row.type, "dataset type"),
            fields=[FieldDefinition.from_dict(raw) for raw in (row.fields or [])],
            created_at=row.created_at,
            last_modified=row.last_modified,
        )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": DatasetType(self.type).value,
            "fields": [f.to_dict() for f in self.fields],
            "createdAt": self.created_at.isoformat(),
            "lastModified": self.last_modified.isoformat(),
        }


def timestamp():
    return datetime.now()
