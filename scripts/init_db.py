#!/usr/bin/env python3
"""
Initialize the PostgreSQL schema for the study set service.
Schema:
  - subjects: inferred academic subjects (unique)
  - categories: question categories, optionally tagged with a subject (unique name)
  - study_sets: one row per saved set
  - quiz_questions: questions belonging to a study set

Usage:
  python scripts/init_db.py          # Create tables (preserve existing data)
  python scripts/init_db.py --reset  # Drop and recreate tables
"""
import sys
import argparse
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).parent.parent / '.env')

from studysets.config import get_settings
from studysets.persistence import PostgresStore, StoreError


def init_database(reset: bool = False) -> int:
    settings = get_settings()
    print(f"Initializing database: {settings.DB_NAME}@{settings.DB_HOST}:{settings.DB_PORT}")
    store = PostgresStore.from_settings(settings)
    try:
        if reset:
            print('Dropping existing tables...')
            store.drop_schema()
        store.create_schema()
    except StoreError as e:
        print(f'Database initialization failed: {e}')
        return 1
    finally:
        store.close()
    print('Tables ready: subjects, categories, study_sets, quiz_questions')
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Initialize study set database')
    parser.add_argument('--reset', action='store_true', help='Drop and recreate all tables')
    args = parser.parse_args()
    sys.exit(init_database(reset=args.reset))
