"""
Persistence of completed question sets: the relational store capability
and the coordinator that walks a set into rows.
"""
from .store import StudySetStore, PostgresStore, StoreError, StoreReadError, StoreWriteError, SCHEMA_SQL
from .coordinator import PersistenceCoordinator, SaveResult, PersistenceError, FatalInputError, StudySetPersistenceError, normalize_options

__all__ = [
	'StudySetStore', 'PostgresStore', 'StoreError', 'StoreReadError', 'StoreWriteError', 'SCHEMA_SQL',
	'PersistenceCoordinator', 'SaveResult', 'PersistenceError', 'FatalInputError', 'StudySetPersistenceError', 'normalize_options',
]
