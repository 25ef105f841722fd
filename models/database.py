"""SQLite store for users, books, and reviews, read by the monitoring probes."""
import sqlite3
import logging
import threading
import time
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger("wordwise.db")

_TS_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


def to_db_timestamp(dt=None):
    """Fixed-width UTC text so lexical order matches time order."""
    dt = dt or datetime.now(timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime(_TS_FORMAT)


class Database:
    def __init__(self, db_path="data/wordwise.db", profiler=None):
        self.db_path = db_path
        self.profiler = profiler
        self.conn = None
        self._lock = threading.Lock()

    def connect(self):
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA foreign_keys=ON")
        self._create_tables()
        return self

    def close(self):
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, *args):
        self.close()

    @property
    def is_connected(self):
        return self.conn is not None

    def _create_tables(self):
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                email TEXT NOT NULL UNIQUE,
                name TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_users_created ON users(created_at);
            CREATE INDEX IF NOT EXISTS idx_users_updated ON users(updated_at);

            CREATE TABLE IF NOT EXISTS books (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                author TEXT,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS reviews (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                book_id INTEGER NOT NULL,
                rating INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5),
                body TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY (user_id) REFERENCES users(id),
                FOREIGN KEY (book_id) REFERENCES books(id)
            );

            CREATE INDEX IF NOT EXISTS idx_reviews_created ON reviews(created_at);
        """)
        self.conn.commit()

    def _execute(self, name, sql, params=(), commit=False):
        """Run a statement under the connection lock, timing it into the profiler."""
        if self.conn is None:
            raise sqlite3.ProgrammingError("Database is not connected")
        with self._lock:
            start = time.perf_counter()
            cur = self.conn.execute(sql, params)
            rows = cur.fetchall()
            if commit:
                self.conn.commit()
            elapsed_ms = (time.perf_counter() - start) * 1000
        if self.profiler is not None:
            self.profiler.record_query(name, elapsed_ms)
        return cur, rows

    # --- Probes ---

    def ping(self):
        """Trivial liveness query."""
        self._execute("ping", "SELECT 1")
        return True

    def count_active_connections(self):
        """Open connections held by this store (SQLite has no server-side sessions)."""
        return 1 if self.is_connected else 0

    def get_query_statistics(self):
        """Aggregate query stats, or None when no profiler is attached."""
        if self.profiler is None:
            return None
        return self.profiler.summary()

    # --- Counts ---

    def _count(self, name, table, column=None, since=None):
        query = f"SELECT COUNT(*) as cnt FROM {table}"
        params = []
        if column and since is not None:
            query += f" WHERE {column} >= ?"
            params.append(to_db_timestamp(since))
        _, rows = self._execute(name, query, params)
        return rows[0]["cnt"]

    def count_users(self, created_since=None, updated_since=None):
        if updated_since is not None:
            return self._count("count_active_users", "users", "updated_at", updated_since)
        return self._count("count_users", "users", "created_at", created_since)

    def count_books(self):
        return self._count("count_books", "books")

    def count_reviews(self, created_since=None):
        return self._count("count_reviews", "reviews", "created_at", created_since)

    # --- Writes ---

    def add_user(self, email, name=None, created_at=None):
        ts = to_db_timestamp(created_at)
        cur, _ = self._execute("add_user", """
            INSERT INTO users (email, name, created_at, updated_at) VALUES (?, ?, ?, ?)
        """, (email, name, ts, ts), commit=True)
        return cur.lastrowid

    def touch_user(self, user_id, updated_at=None):
        self._execute("touch_user", "UPDATE users SET updated_at = ? WHERE id = ?",
                      (to_db_timestamp(updated_at), user_id), commit=True)

    def add_book(self, title, author=None, created_at=None):
        cur, _ = self._execute("add_book", """
            INSERT INTO books (title, author, created_at) VALUES (?, ?, ?)
        """, (title, author, to_db_timestamp(created_at)), commit=True)
        return cur.lastrowid

    def add_review(self, user_id, book_id, rating, body="", created_at=None):
        cur, _ = self._execute("add_review", """
            INSERT INTO reviews (user_id, book_id, rating, body, created_at)
            VALUES (?, ?, ?, ?, ?)
        """, (user_id, book_id, rating, body, to_db_timestamp(created_at)), commit=True)
        return cur.lastrowid
