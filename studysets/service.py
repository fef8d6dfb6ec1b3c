"""Request-level pipeline: generate, optionally name and persist."""
from typing import List, Optional

from pydantic import BaseModel

from studysets.classification import ClassificationResolver
from studysets.generation import (
    GenerationCompleter,
    NamingAssistant,
    QuestionRecord,
    QuestionSet,
    QuestionSynthesizer,
    STUDY_SET_SIZE,
)
from studysets.llm import ModelClient, ModelUnavailableError
from studysets.persistence import PersistenceCoordinator, StudySetStore
from studysets.utils import get_logger

LOG = get_logger()


class GeneratedStudySet(BaseModel):
    subject: str
    difficulty: str
    questions: List[QuestionRecord]
    used_fallback: bool = False

    @property
    def text(self) -> str:
        suffix = ' (using fallback)' if self.used_fallback else ''
        return f'Generated a {self.difficulty} study set with {len(self.questions)} questions about {self.subject}{suffix}'


class SavedStudySet(BaseModel):
    subject: str
    difficulty: str
    study_set_id: str
    study_set_name: str
    question_count: int
    questions: List[QuestionRecord]

    @property
    def text(self) -> str:
        return (
            f'Saved a {self.difficulty} study set with {self.question_count} questions '
            f'about {self.subject} as "{self.study_set_name}"'
        )


class StudySetService:
    def __init__(self, model_client: ModelClient, store: Optional[StudySetStore] = None, ai_generated: bool = True):
        self.synthesizer = QuestionSynthesizer()
        self.completer = GenerationCompleter(model_client, synthesizer=self.synthesizer)
        self.naming = NamingAssistant(model_client)
        self.store = store
        self.coordinator = None
        if store is not None:
            resolver = ClassificationResolver(store, model_client)
            self.coordinator = PersistenceCoordinator(store, resolver, ai_generated=ai_generated)

    def generate(self, subject: str, difficulty: str = 'medium') -> GeneratedStudySet:
        """Always returns a full set; an unreachable model means a fully synthesized one."""
        try:
            questions = self.completer.complete(subject, difficulty)
            return GeneratedStudySet(subject=subject, difficulty=difficulty, questions=questions)
        except ModelUnavailableError as e:
            LOG.warning('generation_fallback', extra={'subject': subject, 'error': str(e)})
            categories = self.synthesizer.categories_for(subject)
            questions = self.completer.fill(subject, difficulty, categories, STUDY_SET_SIZE)
            return GeneratedStudySet(subject=subject, difficulty=difficulty, questions=questions, used_fallback=True)

    def generate_and_save(self, subject: str, difficulty: str = 'medium') -> SavedStudySet:
        """Model unavailability and study set creation failures propagate."""
        if self.coordinator is None:
            raise RuntimeError('StudySetService was built without a store')
        questions = self.completer.complete(subject, difficulty)
        name = self.naming.name_for(subject, questions)
        question_set = QuestionSet(name=name, questions=questions)
        result = self.coordinator.save(question_set.name, question_set.questions)
        return SavedStudySet(
            subject=subject,
            difficulty=difficulty,
            study_set_id=result.study_set_id,
            study_set_name=name,
            question_count=result.saved_count,
            questions=questions,
        )
