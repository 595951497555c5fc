import logging

from document import flatten_record
from models import Dataset as DatasetRow, Record
from schema import Dataset, is_valid_record_id

logger = logging.getLogger("datatracker.relations")

MAX_HOPS = 2


class RelationResolver:
    """Embeds referenced records next to the relation fields that point at them.

    A relation field ``person_id`` gains a sibling ``person_id_data`` holding the
    referenced record (payload plus metadata); the raw id stays in place.
    Expansion stops after ``max_hops`` dataset hops, so cyclic relation graphs
    terminate.
    """

    def __init__(self, max_hops=MAX_HOPS):
        self.max_hops = max_hops

    def resolve(self, session, row, fields=None, hops=None, _datasets=None):
        """Flattened ``row`` with its relations embedded.

        ``fields`` restricts the top level to those relation keys; nested
        records always resolve all of their relation fields.
        """
        hops = self.max_hops if hops is None else hops
        datasets = {} if _datasets is None else _datasets
        result = flatten_record(row)
        if hops <= 0:
            return result

        dataset = self._dataset(session, row.dataset_id, datasets)
        if dataset is None:
            return result

        wanted = None if fields is None else set(fields)
        for field in dataset.relation_fields:
            if wanted is not None and field.key not in wanted:
                continue
            ref = field.reference_in(row.data or {})
            if ref is None:
                continue
            if not is_valid_record_id(ref.record_id):
                logger.debug(f"Skipping {dataset.id}.{field.key}: '{ref.record_id}' is not a record id")
                continue
            target = session.get(Record, ref.record_id)
            if target is None or target.dataset_id != ref.dataset_id:
                logger.debug(f"Skipping {dataset.id}.{field.key}: no record {ref.dataset_id}/{ref.record_id}")
                continue
            result[f"{field.key}_data"] = self.resolve(session, target, hops=hops - 1, _datasets=datasets)
        return result

    def _dataset(self, session, dataset_id, cache):
        if dataset_id not in cache:
            row = session.get(DatasetRow, dataset_id)
            cache[dataset_id] = Dataset.from_row(row) if row is not None else None
        return cache[dataset_id]
