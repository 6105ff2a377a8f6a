"""Document store for the Cartera ledger.

Records live in named collections as JSON documents inside a single SQLite
table, so services can read and write them by collection and id the same way
regardless of their shape.
"""
import json
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal

import pandas as pd

from cartera.config import DEFAULT_DB_NAME, TIMESTAMP_FORMAT
from cartera.exceptions import RecordNotFoundError, TransactionError

logger = logging.getLogger(__name__)


def _json_default(value):
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return value.strftime(TIMESTAMP_FORMAT)
    if isinstance(value, date):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class DocumentStore:
    """Handles all SQLite document operations."""

    def __init__(self, db_name=DEFAULT_DB_NAME):
        self.db_name = db_name
        self.conn = sqlite3.connect(db_name)
        self._closed = False
        self._transaction_depth = 0
        self.create_tables()

    def close(self):
        """Close the database connection."""
        if self.conn and not self._closed:
            self.conn.close()
            self._closed = True

    def __del__(self):
        self.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @contextmanager
    def transaction(self):
        """Group several writes so they are committed or rolled back together.

        Usage:
            with store.transaction():
                store.create_record("prestamos", {...})
                store.update_record("cartera", "estado", {...})

        Nested blocks join the outermost one. sqlite3 errors are re-raised
        as TransactionError; any other exception is re-raised unchanged.
        """
        self._transaction_depth += 1
        try:
            yield
        except sqlite3.Error as e:
            self._transaction_depth -= 1
            if self._transaction_depth == 0:
                self.conn.rollback()
            raise TransactionError(f"Transaction failed: {str(e)}")
        except Exception:
            self._transaction_depth -= 1
            if self._transaction_depth == 0:
                self.conn.rollback()
            raise
        else:
            self._transaction_depth -= 1
            if self._transaction_depth == 0:
                self.conn.commit()

    def _commit(self):
        if self._transaction_depth == 0:
            self.conn.commit()

    def create_tables(self):
        cursor = self.conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                collection TEXT NOT NULL,
                id TEXT NOT NULL,
                data TEXT NOT NULL,
                created_at TEXT,
                PRIMARY KEY (collection, id)
            )
        """)
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection)")
        self.conn.commit()

    @staticmethod
    def _to_record(record_id, data):
        record = json.loads(data)
        record['id'] = record_id
        return record

    @staticmethod
    def _dump(fields):
        fields = {k: v for k, v in fields.items() if k != 'id'}
        return json.dumps(fields, default=_json_default)

    # Record operations
    def list_records(self, collection, filters=None, order_by=None, descending=False):
        """List documents of a collection.

        Args:
            collection: Collection name.
            filters: Optional dict of field -> value equality matches.
            order_by: Optional field to sort by. Documents missing it sort first.
            descending: Sort direction for order_by.

        Returns:
            List of dicts, each including its 'id'.
        """
        cursor = self.conn.cursor()
        cursor.execute("SELECT id, data FROM documents WHERE collection=? ORDER BY created_at, rowid",
                       (collection,))
        records = [self._to_record(row[0], row[1]) for row in cursor.fetchall()]

        if filters:
            records = [r for r in records
                       if all(r.get(field) == value for field, value in filters.items())]
        if order_by:
            records.sort(key=lambda r: (r.get(order_by) is not None, r.get(order_by) or ""),
                         reverse=descending)
        return records

    def list_records_df(self, collection, filters=None):
        """List documents of a collection as a DataFrame."""
        return pd.DataFrame(self.list_records(collection, filters))

    def get_record(self, collection, record_id):
        cursor = self.conn.cursor()
        cursor.execute("SELECT data FROM documents WHERE collection=? AND id=?", (collection, str(record_id)))
        row = cursor.fetchone()
        if row:
            return self._to_record(str(record_id), row[0])
        return None

    def create_record(self, collection, fields):
        """Insert a new document with a generated id and return the id."""
        record_id = uuid.uuid4().hex
        cursor = self.conn.cursor()
        cursor.execute("INSERT INTO documents (collection, id, data, created_at) VALUES (?, ?, ?, ?)",
                       (collection, record_id, self._dump(fields), datetime.now().strftime(TIMESTAMP_FORMAT)))
        self._commit()
        logger.debug("Created %s/%s", collection, record_id)
        return record_id

    def set_record(self, collection, record_id, fields):
        """Create or replace a document under a known id."""
        cursor = self.conn.cursor()
        cursor.execute("""
            INSERT INTO documents (collection, id, data, created_at) VALUES (?, ?, ?, ?)
            ON CONFLICT(collection, id) DO UPDATE SET data=excluded.data
        """, (collection, str(record_id), self._dump(fields), datetime.now().strftime(TIMESTAMP_FORMAT)))
        self._commit()

    def update_record(self, collection, record_id, fields):
        """Merge fields into an existing document.

        Raises:
            RecordNotFoundError: If the document does not exist.
        """
        current = self.get_record(collection, record_id)
        if current is None:
            raise RecordNotFoundError(collection, str(record_id))
        current.update(fields)
        cursor = self.conn.cursor()
        cursor.execute("UPDATE documents SET data=? WHERE collection=? AND id=?",
                       (self._dump(current), collection, str(record_id)))
        self._commit()

    def count_records(self, collection):
        cursor = self.conn.cursor()
        cursor.execute("SELECT COUNT(*) FROM documents WHERE collection=?", (collection,))
        return cursor.fetchone()[0]
