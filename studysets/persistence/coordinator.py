import json
import time
from typing import Any, List, Optional, Sequence

from pydantic import BaseModel

from studysets.utils import get_logger, log_study_set_saved
from .store import StudySetStore, StoreError

LOG = get_logger()


class PersistenceError(Exception):
    pass


class FatalInputError(PersistenceError):
    """Nothing to save; raised before any write."""


class StudySetPersistenceError(PersistenceError):
    """The study set row itself could not be created."""


class SaveResult(BaseModel):
    study_set_id: str
    saved_count: int
    submitted_count: int
    duplicate_count: int = 0
    defect_count: int = 0
    failed_count: int = 0


def normalize_options(value: Any) -> List[str]:
    """Lists pass through, JSON strings are parsed, anything else is empty."""
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            LOG.warning('options_unparseable', extra={'options': value[:50]})
            return []
        return list(parsed) if isinstance(parsed, list) else []
    return []


def _as_dict(question: Any) -> Optional[dict]:
    if isinstance(question, BaseModel):
        return question.model_dump()
    if isinstance(question, dict):
        return question
    return None


class PersistenceCoordinator:
    def __init__(self, store: StudySetStore, resolver, ai_generated: bool = True):
        self.store = store
        self.resolver = resolver
        self.ai_generated = ai_generated

    def save(self, name: str, questions: Sequence[Any]) -> SaveResult:
        if not isinstance(questions, (list, tuple)) or len(questions) == 0:
            raise FatalInputError('No valid questions to save')

        start = time.time()
        try:
            study_set_id = str(self.store.insert_study_set(name, self.ai_generated))
        except StoreError as e:
            LOG.exception('study_set_create_failed', exc_info=True)
            raise StudySetPersistenceError(f'Failed to create study set: {e}') from e
        LOG.info('study_set_created', extra={'study_set_id': study_set_id, 'study_set_name': name})

        seen = set()
        saved = duplicates = defects = failed = 0
        for position, raw in enumerate(questions):
            question = _as_dict(raw)
            if question is None:
                defects += 1
                LOG.error('question_not_an_object', extra={'position': position})
                continue

            text = question.get('question')
            if not isinstance(text, str):
                text = None
            if text in seen:
                duplicates += 1
                LOG.warning('duplicate_question_skipped', extra={'position': position, 'question': str(text)[:30]})
                continue
            if text:
                seen.add(text)

            category_name = None
            category = question.get('category')
            if isinstance(category, str) and category:
                try:
                    category_name = self.resolver.resolve(category, text)
                except Exception:
                    # the question is still saved, uncategorized
                    LOG.exception('category_resolve_failed', extra={'position': position, 'category': category})
                    category_name = None

            if not text or not question.get('options'):
                defects += 1
                LOG.error('question_missing_fields', extra={'position': position, 'has_question': bool(text), 'has_options': bool(question.get('options'))})
                continue

            options = normalize_options(question.get('options'))
            if not options:
                defects += 1
                LOG.error('question_empty_options', extra={'position': position, 'question': text[:30]})
                continue

            try:
                options_json = json.dumps(options)
            except (TypeError, ValueError) as e:
                defects += 1
                LOG.error('question_options_unserializable', extra={'position': position, 'question': text[:30], 'error': str(e)})
                continue

            answer = question.get('answer') if isinstance(question.get('answer'), str) else ''
            explanation = question.get('explanation')
            LOG.debug('question_saving', extra={'question': text[:30], 'answer': answer})
            try:
                self.store.insert_question(
                    study_set_id,
                    text,
                    options_json,
                    answer,
                    category_name,
                    explanation if isinstance(explanation, str) else '',
                )
            except StoreError as e:
                failed += 1
                LOG.error('question_insert_failed', extra={'position': position, 'question': text[:30], 'error': str(e)})
                continue
            except Exception:
                failed += 1
                LOG.exception('question_insert_failed', extra={'position': position, 'question': text[:30]})
                continue
            saved += 1

        duration_ms = int((time.time() - start) * 1000)
        log_study_set_saved(study_set_id, name, saved, len(questions), duration_ms)
        return SaveResult(
            study_set_id=study_set_id,
            saved_count=saved,
            submitted_count=len(questions),
            duplicate_count=duplicates,
            defect_count=defects,
            failed_count=failed,
        )
