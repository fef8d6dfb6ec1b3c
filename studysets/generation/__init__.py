"""
Question set generation: sample bank, fallback synthesis, model-backed
completion and study set naming.
"""
from .models import QuestionRecord, QuestionSet, Difficulty, OPTION_COUNT
from .sample_bank import SUBJECT_CATEGORIES, GENERIC_CATEGORIES, SAMPLE_QUESTIONS, generate_categories
from .synthesizer import QuestionSynthesizer, synthesize, generic_question
from .completer import GenerationCompleter, ENVELOPE_MATCHERS, extract_candidates, normalize_candidate, STUDY_SET_SIZE
from .naming import NamingAssistant, NAME_MAX_LENGTH

__all__ = [
	'QuestionRecord', 'QuestionSet', 'Difficulty', 'OPTION_COUNT',
	'SUBJECT_CATEGORIES', 'GENERIC_CATEGORIES', 'SAMPLE_QUESTIONS', 'generate_categories',
	'QuestionSynthesizer', 'synthesize', 'generic_question',
	'GenerationCompleter', 'ENVELOPE_MATCHERS', 'extract_candidates', 'normalize_candidate', 'STUDY_SET_SIZE',
	'NamingAssistant', 'NAME_MAX_LENGTH',
]
