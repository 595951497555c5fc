from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from document import METADATA_KEYS, canonical_string


@dataclass
class DuplicateResult:
    import_record: Dict[str, Any]
    existing_records: List[Dict[str, Any]]
    duplicate_fields: List[str]
    confidence: float = 1.0

    def to_dict(self):
        return {
            "importRecord": self.import_record,
            "existingRecords": self.existing_records,
            "duplicateFields": self.duplicate_fields,
            "confidence": self.confidence,
        }


def infer_duplicate_fields(candidates) -> List[str]:
    """Every non-metadata key of the first candidate."""
    if not candidates:
        return []
    return [key for key in candidates[0] if key not in METADATA_KEYS]


def _comparable(record, key) -> Optional[str]:
    return canonical_string(record.get(key))


def is_full_match(candidate, existing, fields) -> bool:
    if not fields:
        return False
    for key in fields:
        left = _comparable(candidate, key)
        if left is None or left != _comparable(existing, key):
            return False
    return True


class DuplicateDetector:
    """Exact, all-fields-must-match duplicate detection for bulk import."""

    confidence = 1.0

    def find(self, existing_records, candidates, duplicate_fields=None) -> List[DuplicateResult]:
        fields = list(duplicate_fields or []) or infer_duplicate_fields(candidates)
        results = []
        for candidate in candidates:
            matches = [existing for existing in existing_records if is_full_match(candidate, existing, fields)]
            if matches:
                results.append(DuplicateResult(
                    import_record=candidate,
                    existing_records=matches,
                    duplicate_fields=fields,
                    confidence=self.confidence,
                ))
        return results
