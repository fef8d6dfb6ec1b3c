import os
import re
from typing import Optional

from studysets.llm import ModelClient, ModelClientError, OPENAI_LIGHT_MODEL
from studysets.utils import get_logger

LOG = get_logger()

INFERENCE_TEMPERATURE = float(os.getenv('INFERENCE_TEMPERATURE', '0.3'))
INFERENCE_MAX_TOKENS = int(os.getenv('INFERENCE_MAX_TOKENS', '50'))

_STRIP_CHARS = re.compile(r'[\'".]')

SYSTEM_PROMPT = (
    'You are a helpful assistant that categorizes educational topics into university majors.\n'
    'Given a study question and its category, determine which university major it would most likely fall under.\n'
    'Be specific but concise. Return only the name of the major without any explanation or additional text.\n'
    'Examples:\n'
    '- For a question about linear algebra (category: Mathematics), return "Mathematics"\n'
    '- For a question about the American Civil War (category: US History), return "History"\n'
    '- For a question about Shakespeare\'s plays (category: Literature), return "English Literature"\n'
    '- For a question about Python programming (category: Programming), return "Computer Science"\n'
    '- For a question about quantum mechanics (category: Physics), return "Physics"\n'
    '- For a question about DNA replication (category: Biology), return "Biology"\n'
    '- For a question about marketing strategies (category: Business), return "Marketing"\n'
    'Return a single word or short phrase (at most three words) representing the university major.'
)


def clean_subject(raw: Optional[str]) -> Optional[str]:
    """Strip quotes/periods; outputs longer than four words keep their first three."""
    subject = _STRIP_CHARS.sub('', (raw or '').strip()).strip()
    words = subject.split()
    if len(words) > 4:
        subject = ' '.join(words[:3])
    return subject or None


class SubjectInferrer:
    def __init__(self, model_client: ModelClient, model: Optional[str] = None):
        self.model_client = model_client
        self.model = model or OPENAI_LIGHT_MODEL

    def infer(self, question_text: str, category_name: str) -> Optional[str]:
        user_prompt = (
            'What university major would this study question fall under?\n\n'
            f'Question: "{question_text}"\n'
            f'Category: {category_name}\n\n'
            'Respond with just the name of the major.'
        )
        try:
            raw = self.model_client.generate_text(
                SYSTEM_PROMPT,
                user_prompt,
                temperature=INFERENCE_TEMPERATURE,
                max_tokens=INFERENCE_MAX_TOKENS,
                model=self.model,
                purpose='subject_inference',
            )
        except ModelClientError as e:
            LOG.warning('subject_inference_failed', extra={'category': category_name, 'error': str(e)})
            return None
        subject = clean_subject(raw)
        if subject:
            LOG.info('subject_inferred', extra={'subject': subject, 'category': category_name, 'question': question_text[:30]})
        else:
            LOG.warning('subject_inference_empty', extra={'category': category_name})
        return subject
