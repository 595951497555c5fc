import pytest

from app import create_app
from catalog import SchemaCatalog
from database import Database
from store import RecordStore


@pytest.fixture()
def db():
    database = Database("sqlite://")
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture()
def catalog(db):
    return SchemaCatalog(db)


@pytest.fixture()
def store(db):
    return RecordStore(db)


def relation_field(key, dataset, on_delete=None, display_name=None):
    field = {
        "key": key,
        "type": "text",
        "displayName": display_name or key,
        "isRelation": True,
        "relatedDataset": dataset,
        "relatedField": "id",
    }
    if on_delete == "prevent":
        field["preventDeleteIfReferenced"] = True
    elif on_delete == "cascade":
        field["cascadeDeleteIfReferenced"] = True
    return field


@pytest.fixture()
def make_people_and_meetings(store):
    """Create a people dataset and a meetings dataset whose person_id uses ``on_delete``."""
    def _make(on_delete):
        store.create_dataset(
            "People", "people_crm", dataset_id="people",
            fields=[{"key": "name", "type": "text", "displayName": "Name"}],
        )
        store.create_dataset(
            "Meetings", "people_crm", dataset_id="meetings",
            fields=[
                relation_field("person_id", "people", on_delete, "Person"),
                {"key": "topic", "type": "text", "displayName": "Topic"},
            ],
        )
    return _make


@pytest.fixture()
def app():
    application = create_app({"database_url": "sqlite://", "log_level": "WARNING"})
    application.config["TESTING"] = True
    return application


@pytest.fixture()
def client(app):
    return app.test_client()
