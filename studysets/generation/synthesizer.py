from typing import List, Optional, Sequence

from studysets.utils import get_logger
from .models import QuestionRecord
from .sample_bank import generate_categories, related_samples

LOG = get_logger()


def generic_question(subject: str, category: str, variant: Optional[int] = None) -> QuestionRecord:
    """Templated record that names the subject and category; always valid.

    `variant` numbers the question text so repeated categories in one set
    still get distinct questions.
    """
    concept = f'key concept #{variant}' if variant else 'a key concept'
    return QuestionRecord(
        question=f'What is {concept} in {subject} related to {category}?',
        options=[
            f'The theory of {subject} fundamentals',
            f'The {category} principle',
            f'The {subject} methodology in {category}',
            f'{category} applications in {subject}',
        ],
        answer=f'The {category} principle',
        category=category,
        explanation=f'The {category} principle is a fundamental concept in {subject} that explains how {category} phenomena work.',
    )


def create_sample_question(subject: str, category: str, difficulty: str, index: int) -> QuestionRecord:
    related = related_samples(subject)
    if related:
        template = related[index % len(related)]
        return QuestionRecord(
            question=template['question'],
            options=list(template['options']),
            answer=template['answer'],
            category=category,
            explanation=template['explanation'],
        )
    return generic_question(subject, category)


class QuestionSynthesizer:
    """Deterministic fallback question source backed by the sample bank."""

    def categories_for(self, subject: str) -> List[str]:
        return generate_categories(subject)

    def synthesize(self, subject: str, categories: Optional[Sequence[str]], difficulty: str, count: int, start: int = 0) -> List[QuestionRecord]:
        """Return exactly `count` records.

        Position i (offset by `start`) takes category
        categories[(start + i) % len(categories)], so a set topped up after
        two model questions continues the rotation at categories[2].
        """
        categories = list(categories) if categories else generate_categories(subject)
        questions = []
        for i in range(count):
            position = start + i
            category = categories[position % len(categories)]
            questions.append(create_sample_question(subject, category, difficulty, position))
        LOG.debug('questions_synthesized', extra={'subject': subject, 'count': count, 'start': start})
        return questions


def synthesize(subject: str, categories: Optional[Sequence[str]], difficulty: str, count: int, start: int = 0) -> List[QuestionRecord]:
    return QuestionSynthesizer().synthesize(subject, categories, difficulty, count, start=start)
