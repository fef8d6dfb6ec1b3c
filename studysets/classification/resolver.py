from typing import Optional

from studysets.llm import ModelClient
from studysets.persistence.store import StudySetStore, StoreError
from studysets.utils import get_logger, log_classification
from .inference import SubjectInferrer

LOG = get_logger()


class ClassificationResolver:
    """Maps a free-text category name onto the category/subject taxonomy.

    Lookup, then infer a subject with the model, then create. Every failure
    degrades to a None result with a log event; resolve() does not raise.
    """

    def __init__(self, store: StudySetStore, model_client: ModelClient, inferrer: Optional[SubjectInferrer] = None):
        self.store = store
        self.inferrer = inferrer or SubjectInferrer(model_client)

    def _lookup(self, category_name: str) -> Optional[str]:
        try:
            existing = self.store.find_category(category_name)
        except StoreError as e:
            # treated as a miss; the upsert below is safe against an existing row
            LOG.warning('category_lookup_failed', extra={'category': category_name, 'error': str(e)})
            return None
        return existing.get('name') if existing else None

    def _subject_exists(self, subject: str) -> bool:
        try:
            return self.store.find_subject(subject) is not None
        except StoreError as e:
            LOG.warning('subject_lookup_failed', extra={'subject': subject, 'error': str(e)})
            return False

    def resolve(self, category_name: str, question_text: Optional[str] = None) -> Optional[str]:
        found = self._lookup(category_name)
        if found:
            return found

        subject = self.inferrer.infer(question_text or '', category_name)
        if subject and not self._subject_exists(subject):
            try:
                self.store.upsert_subject(subject)
                LOG.info('subject_created', extra={'subject': subject})
            except StoreError as e:
                LOG.error('subject_create_failed', extra={'subject': subject, 'error': str(e)})
                # categories.subject references subjects
                subject = None

        try:
            created = self.store.upsert_category(category_name, subject)
        except StoreError as e:
            LOG.error('category_create_failed', extra={'category': category_name, 'subject': subject, 'error': str(e)})
            return None
        log_classification(category_name, subject, created=True, inferred=subject is not None)
        return created.get('name') or category_name
