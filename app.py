import logging
import os

from flask import Flask, request, jsonify

from catalog import SchemaCatalog
from database import DATABASE_URL, init_db
from definitions import DEFAULT_DATASETS
from errors import DataEngineError, MalformedPayloadError
from store import RecordStore

# --- CONFIGURATION ---

config = {
    "database_url": DATABASE_URL,
    "log_level": os.getenv("DATATRACKER_LOG_LEVEL", "INFO"),
    "sync_policy": os.getenv("DATATRACKER_SYNC_POLICY", "overwrite"),
    "sync_on_startup": True,
}

STATUS_BY_KIND = {
    "not-found": 404,
    "validation": 400,
    "malformed-payload": 400,
    "constraint-violation": 409,
    "storage-failure": 500,
}

# Setup Logger
logger = logging.getLogger("datatracker")
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter(
        "[%(asctime)s] [%(levelname)s] - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _json_body(expected=None):
    body = request.get_json(silent=True)
    if body is None:
        raise MalformedPayloadError("Request body must be JSON")
    if expected is not None and not isinstance(body, expected):
        raise MalformedPayloadError(f"Request body must be a JSON {'object' if expected is dict else 'array'}")
    return body


def _requested_fields():
    fields = request.args.get("fields")
    if fields:
        return [f.strip() for f in fields.split(",") if f.strip()]
    return None


def _wants_relations():
    return request.args.get("relations", "").lower() in ("1", "true", "yes")


def create_app(overrides=None):
    settings = dict(config, **(overrides or {}))
    logger.setLevel(getattr(logging, str(settings["log_level"]).upper()))

    db = init_db(settings["database_url"])
    catalog = SchemaCatalog(db, policy=settings["sync_policy"])
    if settings["sync_on_startup"]:
        catalog.sync_datasets(settings.get("datasets", DEFAULT_DATASETS))
    store = RecordStore(db)

    app = Flask(__name__)
    app.config["DATATRACKER"] = settings
    app.extensions["datatracker.store"] = store

    @app.errorhandler(DataEngineError)
    def handle_engine_error(e):
        status = STATUS_BY_KIND.get(e.kind, 500)
        if status >= 500:
            logger.error(f"{request.method} {request.path} failed: {e}")
        return jsonify({'error': e.message, 'kind': e.kind}), status

    # --- DATASET ROUTES ---

    @app.route('/datasets', methods=['GET'])
    def list_datasets():
        return jsonify([d.to_dict() for d in store.list_datasets()])

    @app.route('/datasets', methods=['POST'])
    def create_dataset():
        body = _json_body(dict)
        dataset = store.create_dataset(
            name=body.get('name'),
            dataset_type=body.get('type'),
            fields=body.get('fields', []),
            description=body.get('description', ''),
            dataset_id=body.get('id'),
        )
        return jsonify(dataset.to_dict()), 201

    @app.route('/datasets/<dataset_id>', methods=['GET'])
    def get_dataset(dataset_id):
        return jsonify(store.get_dataset(dataset_id).to_dict())

    @app.route('/datasets/<dataset_id>', methods=['PUT'])
    def update_dataset(dataset_id):
        body = _json_body(dict)
        dataset = store.update_dataset(
            dataset_id,
            name=body.get('name'),
            description=body.get('description'),
            dataset_type=body.get('type'),
            fields=body.get('fields'),
        )
        return jsonify(dataset.to_dict())

    @app.route('/datasets/<dataset_id>', methods=['DELETE'])
    def delete_dataset(dataset_id):
        deleted = store.delete_dataset(dataset_id)
        return jsonify({'deleted': dataset_id, 'records': deleted})

    # --- RECORD ROUTES ---

    @app.route('/datasets/<dataset_id>/records', methods=['GET'])
    def list_records(dataset_id):
        fields = _requested_fields()
        if fields is not None or _wants_relations():
            return jsonify(store.get_records_with_relations(dataset_id, fields))
        return jsonify(store.list_records(dataset_id))

    @app.route('/datasets/<dataset_id>/records', methods=['POST'])
    def add_record(dataset_id):
        return jsonify(store.add_record(dataset_id, _json_body())), 201

    @app.route('/datasets/<dataset_id>/import', methods=['POST'])
    def import_records(dataset_id):
        body = _json_body(list)
        return jsonify({'imported': store.import_records(dataset_id, body)}), 201

    @app.route('/datasets/<dataset_id>/duplicates', methods=['POST'])
    def find_duplicates(dataset_id):
        body = _json_body(dict)
        if not isinstance(body.get('records'), list):
            raise MalformedPayloadError("Body must be an object with a 'records' list")
        results = store.find_duplicates(dataset_id, body['records'], body.get('fields'))
        return jsonify([r.to_dict() for r in results])

    @app.route('/records/<record_id>', methods=['GET'])
    def get_record(record_id):
        return jsonify(store.get_record(record_id, resolve_relations=_wants_relations()))

    @app.route('/records/<record_id>', methods=['PUT'])
    def update_record(record_id):
        return jsonify(store.update_record(record_id, _json_body()))

    @app.route('/records/<record_id>', methods=['DELETE'])
    def delete_record(record_id):
        return jsonify(store.delete_record(record_id))

    return app


if __name__ == '__main__':
    create_app().run(debug=True, host='0.0.0.0')
