import os
import re
from datetime import date
from typing import Any, List, Optional, Sequence

from studysets.llm import ModelClient, ModelClientError, OPENAI_LIGHT_MODEL
from studysets.utils import get_logger

LOG = get_logger()

NAME_MAX_LENGTH = 50
NAMING_TEMPERATURE = float(os.getenv('NAMING_TEMPERATURE', '0.7'))
NAMING_MAX_TOKENS = int(os.getenv('NAMING_MAX_TOKENS', '50'))

_WRAPPING_QUOTES = re.compile(r'^["\']|["\']$')


def _category_of(question: Any) -> Optional[str]:
    if isinstance(question, dict):
        return question.get('category')
    return getattr(question, 'category', None)


def distinct_categories(questions: Sequence[Any], limit: int = 3) -> List[str]:
    categories = []
    for q in questions:
        category = _category_of(q)
        if category and category not in categories:
            categories.append(category)
        if len(categories) == limit:
            break
    return categories


def fallback_name(subject: str, categories: Sequence[str]) -> str:
    if categories:
        name = f"{subject} Study Set: {' & '.join(categories[:2])}"
        if len(name) <= NAME_MAX_LENGTH:
            return name
    return f'{subject} Study Set'


class NamingAssistant:
    def __init__(self, model_client: ModelClient, model: Optional[str] = None):
        self.model_client = model_client
        self.model = model or OPENAI_LIGHT_MODEL

    def name_for(self, subject: str, questions: Sequence[Any]) -> str:
        categories = distinct_categories(questions)
        try:
            raw = self.model_client.generate_text(
                'You are a helpful assistant that creates concise, engaging and descriptive names for educational study sets.',
                f'Create a short, captivating name (max {NAME_MAX_LENGTH} characters) for a study set about "{subject}" '
                f"that covers these categories: {', '.join(categories)}.",
                temperature=NAMING_TEMPERATURE,
                max_tokens=NAMING_MAX_TOKENS,
                model=self.model,
                purpose='study_set_naming',
            )
        except ModelClientError as e:
            LOG.warning('study_set_naming_failed', extra={'subject': subject, 'error': str(e)})
            return f'{subject} Study Set ({date.today().isoformat()})'

        name = _WRAPPING_QUOTES.sub('', (raw or '').strip()).strip()
        if not name or len(name) > NAME_MAX_LENGTH:
            LOG.info('study_set_name_fallback', extra={'subject': subject, 'model_name_length': len(name)})
            return fallback_name(subject, categories)
        return name
