"""Turns one model response into an exact-length, valid question set.

The model may wrap its array under several historical keys or return a
bare array; ENVELOPE_MATCHERS are tried in priority order. Individual
candidates are repaired where the intent is unambiguous and dropped
otherwise; the shortfall is synthesized from the sample bank.
"""
import os
import re
import json
import time
from typing import Any, Callable, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from studysets.llm import ModelClient, MalformedModelOutputError, JSON_OBJECT, OPENAI_MODEL
from studysets.utils import get_logger, log_generation
from .models import QuestionRecord, OPTION_COUNT
from .synthesizer import QuestionSynthesizer, generic_question

LOG = get_logger()

STUDY_SET_SIZE = int(os.getenv('STUDY_SET_SIZE', '5'))
GENERATION_TEMPERATURE = float(os.getenv('GENERATION_TEMPERATURE', '0.7'))
GENERATION_MAX_TOKENS = int(os.getenv('GENERATION_MAX_TOKENS', '4000'))

_FENCE_RE = re.compile(r'^```(?:json)?\s*|\s*```$', re.IGNORECASE)
_LETTERS = 'ABCD'


def _match_key(key: str) -> Callable[[Any], Optional[list]]:
    def matcher(payload):
        if isinstance(payload, dict) and isinstance(payload.get(key), list):
            return payload[key]
        return None
    return matcher


def _match_bare_array(payload) -> Optional[list]:
    return payload if isinstance(payload, list) else None


ENVELOPE_MATCHERS: List[Tuple[str, Callable[[Any], Optional[list]]]] = [
    ('study_questions', _match_key('study_questions')),
    ('bare_array', _match_bare_array),
    ('questions', _match_key('questions')),
    ('quiz_questions', _match_key('quiz_questions')),
]


def extract_candidates(text: str) -> Tuple[str, list]:
    """Return (envelope_name, raw_items) for the first matching envelope."""
    cleaned = _FENCE_RE.sub('', (text or '').strip())
    try:
        payload = json.loads(cleaned)
    except (TypeError, ValueError) as e:
        raise MalformedModelOutputError('response is not valid JSON') from e
    for name, matcher in ENVELOPE_MATCHERS:
        items = matcher(payload)
        if items is not None:
            return name, items
    raise MalformedModelOutputError('no known question array in response')


def _coerce_options(value: Any) -> List[str]:
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError as e:
            raise MalformedModelOutputError('options string is not JSON') from e
    if isinstance(value, dict):
        # {"A": "...", "B": "..."} style
        value = [value[k] for k in sorted(value)]
    if not isinstance(value, list):
        raise MalformedModelOutputError('options is not a list')
    return [str(o).strip() for o in value if o is not None and str(o).strip()]


def _resolve_answer(answer: Any, options: List[str]) -> str:
    text = str(answer or '').strip()
    if text in options:
        return text
    folded = text.casefold()
    for option in options:
        if option.casefold() == folded:
            return option
    letter = text.rstrip('.)').upper()
    if len(letter) == 1 and letter in _LETTERS and len(options) == OPTION_COUNT:
        return options[_LETTERS.index(letter)]
    raise MalformedModelOutputError('answer does not match any option')


def normalize_candidate(raw: Any, fallback_category: str) -> QuestionRecord:
    if not isinstance(raw, dict):
        raise MalformedModelOutputError('candidate is not an object')
    question = str(raw.get('question') or '').strip()
    if not question:
        raise MalformedModelOutputError('candidate has no question text')
    options = _coerce_options(raw.get('options'))
    answer = _resolve_answer(raw.get('answer', raw.get('correct_answer')), options)
    category = str(raw.get('category') or '').strip() or fallback_category
    try:
        return QuestionRecord(
            question=question,
            options=options,
            answer=answer,
            category=category,
            explanation=str(raw.get('explanation') or ''),
        )
    except ValidationError as e:
        raise MalformedModelOutputError(str(e)) from e


class GenerationCompleter:
    def __init__(self, model_client: ModelClient, synthesizer: Optional[QuestionSynthesizer] = None, model: Optional[str] = None):
        self.model_client = model_client
        self.synthesizer = synthesizer or QuestionSynthesizer()
        self.model = model or OPENAI_MODEL

    def _build_system_prompt(self, subject: str, difficulty: str, target_count: int) -> str:
        return (
            f'You are a helpful assistant that creates educational study questions based on a specific subject.\n\n'
            f'*** CRITICAL INSTRUCTION: Create EXACTLY {target_count} multiple-choice questions about "{subject}" with {difficulty} difficulty. ***\n\n'
            'Each question should:\n'
            '- Be unique and test different aspects of the subject\n'
            '- Have exactly 4 answer options that are CLEARLY DISTINCT from each other\n'
            '- Have ONLY ONE clearly correct answer - the other 3 should be clearly incorrect\n'
            '- Ensure incorrect options are plausible but definitively wrong\n\n'
            'Format each question with these fields:\n'
            '- question: The question text\n'
            '- options: Array of 4 possible answers (substantially different from each other)\n'
            '- answer: The EXACT text of the correct option (must match one of the options exactly)\n'
            '- explanation: Brief explanation of why the answer is correct AND why the other options are incorrect\n'
            f'- category: A subcategory within "{subject}" that this question belongs to\n\n'
            'DO NOT create duplicate questions or slight variations of the same question.\n'
            'DO NOT create options that could all be partially correct or similar to each other.\n\n'
            f"Your response must be a JSON object with a 'study_questions' array containing exactly {target_count} questions."
        )

    def _build_user_prompt(self, subject: str, difficulty: str, target_count: int) -> str:
        return (
            f'Create exactly {target_count} unique multiple-choice questions about {subject} with {difficulty} difficulty level.\n\n'
            'Each question should have 4 answer options that are clearly different from each other, with ONLY ONE correct answer.\n'
            "Make sure the 'answer' field contains the exact text of the correct option.\n\n"
            f"Response should be a JSON object with 'study_questions' array containing {target_count} questions."
        )

    def _request_candidates(self, subject: str, difficulty: str, target_count: int) -> list:
        # ModelUnavailableError is left to the caller
        text = self.model_client.generate_text(
            self._build_system_prompt(subject, difficulty, target_count),
            self._build_user_prompt(subject, difficulty, target_count),
            response_format=JSON_OBJECT,
            temperature=GENERATION_TEMPERATURE,
            max_tokens=GENERATION_MAX_TOKENS,
            model=self.model,
            purpose='question_generation',
        )
        try:
            envelope, items = extract_candidates(text)
        except MalformedModelOutputError as e:
            LOG.warning('model_output_unparseable', extra={'subject': subject, 'error': str(e)})
            return []
        LOG.debug('model_output_parsed', extra={'envelope': envelope, 'count': len(items)})
        return items

    def complete(self, subject: str, difficulty: str = 'medium', target_count: int = STUDY_SET_SIZE) -> List[QuestionRecord]:
        start = time.time()
        raw_candidates = self._request_candidates(subject, difficulty, target_count)
        if len(raw_candidates) > target_count:
            LOG.info('model_candidates_truncated', extra={'received': len(raw_candidates), 'target': target_count})
            raw_candidates = raw_candidates[:target_count]

        categories = self.synthesizer.categories_for(subject)
        questions: List[QuestionRecord] = []
        seen = set()
        dropped = 0
        for idx, raw in enumerate(raw_candidates):
            try:
                record = normalize_candidate(raw, categories[idx % len(categories)])
            except MalformedModelOutputError as e:
                dropped += 1
                LOG.warning('candidate_dropped', extra={'index': idx, 'reason': str(e)})
                continue
            if record.question in seen:
                dropped += 1
                LOG.warning('candidate_dropped', extra={'index': idx, 'reason': 'duplicate question text'})
                continue
            seen.add(record.question)
            questions.append(record)

        model_count = len(questions)
        shortfall = target_count - model_count
        if shortfall > 0:
            for record in self.fill(subject, difficulty, categories, shortfall, start=model_count, seen=seen):
                questions.append(record)

        log_generation(subject, difficulty, model_count, shortfall if shortfall > 0 else 0, dropped, int((time.time() - start) * 1000))
        return questions

    def fill(self, subject: str, difficulty: str, categories: Sequence[str], count: int, start: int = 0, seen: Optional[set] = None) -> List[QuestionRecord]:
        """Synthesize `count` records, swapping repeated texts for the generic template."""
        seen = seen if seen is not None else set()
        filled = []
        for offset, record in enumerate(self.synthesizer.synthesize(subject, categories, difficulty, count, start=start)):
            if record.question in seen:
                record = generic_question(subject, record.category)
            variant = start + offset + 1
            while record.question in seen:
                record = generic_question(subject, record.category, variant=variant)
                variant += count
            seen.add(record.question)
            filled.append(record)
        return filled
