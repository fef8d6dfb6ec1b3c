"""Relational store for study sets, questions and the category/subject taxonomy.

StudySetStore is the capability the pipeline depends on; PostgresStore is the
production implementation over a psycopg2 connection pool. Category and
subject writes are upserts, so two requests that first-use the same
category name at once still leave a single row.
"""
import contextlib
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import psycopg2
import psycopg2.extras
import psycopg2.pool

from studysets.utils import get_logger

LOG = get_logger()


class StoreError(Exception):
    pass


class StoreReadError(StoreError):
    pass


class StoreWriteError(StoreError):
    pass


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS subjects (
    subject TEXT PRIMARY KEY,
    created_at TIMESTAMPTZ DEFAULT now()
);

CREATE TABLE IF NOT EXISTS categories (
    name TEXT PRIMARY KEY,
    subject TEXT REFERENCES subjects(subject),
    created_at TIMESTAMPTZ DEFAULT now()
);

CREATE TABLE IF NOT EXISTS study_sets (
    id BIGSERIAL PRIMARY KEY,
    name TEXT NOT NULL,
    ai_generated BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMPTZ DEFAULT now()
);

CREATE TABLE IF NOT EXISTS quiz_questions (
    id BIGSERIAL PRIMARY KEY,
    study_set BIGINT NOT NULL REFERENCES study_sets(id) ON DELETE CASCADE,
    question TEXT NOT NULL,
    options JSONB NOT NULL,
    answer TEXT NOT NULL DEFAULT '',
    category TEXT REFERENCES categories(name),
    explanation TEXT NOT NULL DEFAULT '',
    created_at TIMESTAMPTZ DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_quiz_questions_study_set ON quiz_questions(study_set);
CREATE INDEX IF NOT EXISTS idx_categories_subject ON categories(subject);
"""

DROP_SQL = "DROP TABLE IF EXISTS quiz_questions, study_sets, categories, subjects CASCADE"


class StudySetStore(ABC):
    @abstractmethod
    def insert_study_set(self, name: str, ai_generated: bool = True) -> str:
        """Create a study set row and return its id as text."""

    @abstractmethod
    def insert_question(self, study_set_id: str, question: str, options_json: str, answer: str, category: Optional[str], explanation: str) -> None:
        ...

    @abstractmethod
    def find_category(self, name: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def find_subject(self, subject: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def upsert_subject(self, subject: str) -> None:
        ...

    @abstractmethod
    def upsert_category(self, name: str, subject: Optional[str]) -> Dict[str, Any]:
        """Create the category, or return the existing row unchanged apart from a missing subject."""

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        pass


class PostgresStore(StudySetStore):
    def __init__(self, pool=None, minconn: int = 1, maxconn: int = 5, **dsn):
        self._pool = pool
        self._minconn = minconn
        self._maxconn = maxconn
        self._dsn = dsn
        # SimpleConnectionPool is not thread-safe
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings) -> 'PostgresStore':
        return cls(minconn=settings.DB_POOL_MIN, maxconn=settings.DB_POOL_MAX, **settings.dsn_kwargs())

    def _get_pool(self):
        # created on first use so the service can start while the database is down
        if self._pool is None:
            try:
                self._pool = psycopg2.pool.SimpleConnectionPool(self._minconn, self._maxconn, **self._dsn)
            except psycopg2.Error as e:
                raise StoreError(f'could not connect to database: {e}') from e
            LOG.info('postgres_pool_created', extra={'host': self._dsn.get('host'), 'dbname': self._dsn.get('dbname'), 'maxconn': self._maxconn})
        return self._pool

    @contextlib.contextmanager
    def _cursor(self):
        with self._lock:
            pool = self._get_pool()
            conn = pool.getconn()
        try:
            cur = conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            try:
                yield cur
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                cur.close()
        finally:
            with self._lock:
                pool.putconn(conn)

    def create_schema(self) -> None:
        try:
            with self._cursor() as cur:
                cur.execute(SCHEMA_SQL)
        except psycopg2.Error as e:
            raise StoreWriteError(f'schema creation failed: {e}') from e
        LOG.info('schema_ready')

    def drop_schema(self) -> None:
        try:
            with self._cursor() as cur:
                cur.execute(DROP_SQL)
        except psycopg2.Error as e:
            raise StoreWriteError(f'schema drop failed: {e}') from e
        LOG.warning('schema_dropped')

    def insert_study_set(self, name: str, ai_generated: bool = True) -> str:
        try:
            with self._cursor() as cur:
                cur.execute(
                    'INSERT INTO study_sets (name, ai_generated) VALUES (%s, %s) RETURNING id',
                    (name, ai_generated),
                )
                row = cur.fetchone()
        except psycopg2.Error as e:
            raise StoreWriteError(str(e)) from e
        if not row:
            raise StoreWriteError('study set insert returned no id')
        return str(row['id'])

    def insert_question(self, study_set_id: str, question: str, options_json: str, answer: str, category: Optional[str], explanation: str) -> None:
        try:
            with self._cursor() as cur:
                cur.execute(
                    'INSERT INTO quiz_questions (study_set, question, options, answer, category, explanation) '
                    'VALUES (%s, %s, %s, %s, %s, %s)',
                    (study_set_id, question, options_json, answer, category, explanation),
                )
        except psycopg2.Error as e:
            raise StoreWriteError(str(e)) from e

    def find_category(self, name: str) -> Optional[Dict[str, Any]]:
        try:
            with self._cursor() as cur:
                cur.execute('SELECT name, subject FROM categories WHERE name = %s', (name,))
                row = cur.fetchone()
        except psycopg2.Error as e:
            raise StoreReadError(str(e)) from e
        return dict(row) if row else None

    def find_subject(self, subject: str) -> Optional[Dict[str, Any]]:
        try:
            with self._cursor() as cur:
                cur.execute('SELECT subject FROM subjects WHERE subject = %s', (subject,))
                row = cur.fetchone()
        except psycopg2.Error as e:
            raise StoreReadError(str(e)) from e
        return dict(row) if row else None

    def upsert_subject(self, subject: str) -> None:
        try:
            with self._cursor() as cur:
                cur.execute('INSERT INTO subjects (subject) VALUES (%s) ON CONFLICT (subject) DO NOTHING', (subject,))
        except psycopg2.Error as e:
            raise StoreWriteError(str(e)) from e

    def upsert_category(self, name: str, subject: Optional[str]) -> Dict[str, Any]:
        try:
            with self._cursor() as cur:
                cur.execute(
                    'INSERT INTO categories (name, subject) VALUES (%s, %s) '
                    'ON CONFLICT (name) DO UPDATE SET subject = COALESCE(categories.subject, EXCLUDED.subject) '
                    'RETURNING name, subject',
                    (name, subject),
                )
                row = cur.fetchone()
        except psycopg2.Error as e:
            raise StoreWriteError(str(e)) from e
        return dict(row) if row else {'name': name, 'subject': subject}

    def ping(self) -> bool:
        try:
            with self._cursor() as cur:
                cur.execute('SELECT 1')
            return True
        except (StoreError, psycopg2.Error):
            return False

    def close(self) -> None:
        if self._pool is None:
            return
        self._pool.closeall()
        LOG.info('postgres_pool_closed')
