import hashlib
import logging
import os
import re
import threading
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from errors import StorageError

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///datatracker.sqlite3")

Base = declarative_base()

logger = logging.getLogger("datatracker.database")

_INDEX_NAME_UNSAFE = re.compile(r"[^A-Za-z0-9_]")
_JSON_KEY_SAFE = re.compile(r"^[A-Za-z0-9_\-]+$")


def _is_memory_url(url):
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


class Database:
    """Storage handle shared by every component.

    Owns the engine, the session factory and the write lock that serialises
    mutating operations.
    """

    def __init__(self, url=None, echo=False):
        self.url = url or DATABASE_URL
        engine_args = {"echo": echo, "future": True}
        if self.url.startswith("sqlite"):
            # SQLite needs check_same_thread for Flask's threaded server
            engine_args["connect_args"] = {"check_same_thread": False}
            if _is_memory_url(self.url):
                # one connection, otherwise every session gets its own empty database
                engine_args["poolclass"] = StaticPool
        self.engine = create_engine(self.url, **engine_args)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine, future=True)
        self.write_lock = threading.RLock()

    def create_all(self):
        import models  # noqa: F401
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to create tables: {exc}") from exc
        logger.info(f"Database initialized at {self.engine.url.render_as_string(hide_password=True)}")

    @contextmanager
    def session_scope(self):
        """Yield a session inside one transaction; commit on success, roll back on any error."""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise StorageError(str(exc)) from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def write_scope(self):
        """Like session_scope, but holding the write lock for the whole transaction."""
        with self.write_lock:
            with self.session_scope() as session:
                yield session

    def dispose(self):
        self.engine.dispose()


def is_sqlite(bind):
    return bind.dialect.name == "sqlite"


def sql_string_literal(value):
    return "'" + value.replace("'", "''") + "'"


def json_path_literal(field_key):
    """SQL literal for the JSON path of a top-level key, e.g. '$."person_id"'."""
    return sql_string_literal(f'$."{field_key}"')


def supports_relation_index(field_key):
    return bool(_JSON_KEY_SAFE.match(field_key))


def relation_index_name(dataset_id, field_key):
    digest = hashlib.sha1(f"{dataset_id}\0{field_key}".encode("utf-8")).hexdigest()[:8]
    return "idx_" + _INDEX_NAME_UNSAFE.sub("_", f"{dataset_id}_{field_key}") + "_" + digest


def ensure_relation_indexes(session, dataset):
    """Create one partial expression index per relation field of ``dataset``.

    Only SQLite gets these; other engines fall back to a scan scoped by dataset id.
    The indexed expression must stay textually identical to the one built by
    ``integrity.reference_filter`` or the planner will not use it.
    """
    if not is_sqlite(session.get_bind()):
        return 0
    created = 0
    for field in dataset.fields:
        if not field.is_relation_field:
            continue
        if not supports_relation_index(field.key):
            logger.warning(f"Skipping relation index for {dataset.id}.{field.key}: unsupported key")
            continue
        session.execute(text(
            f'CREATE INDEX IF NOT EXISTS "{relation_index_name(dataset.id, field.key)}" '
            f"ON records ((json_extract(data, {json_path_literal(field.key)}))) "
            f"WHERE dataset_id = {sql_string_literal(dataset.id)}"
        ))
        created += 1
    return created


def init_db(url=None):
    db = Database(url)
    db.create_all()
    return db
