from datetime import date

import pytest

from studysets.generation import NamingAssistant, NAME_MAX_LENGTH
from studysets.generation.naming import distinct_categories, fallback_name
from studysets.llm import ModelUnavailableError, OPENAI_LIGHT_MODEL
from tests.fixtures.mock_openai import FakeModelClient

pytestmark = pytest.mark.unit


@pytest.mark.parametrize('raw,expected', [
    ('"Algebra Adventures"', 'Algebra Adventures'),
    ("'Algebra Adventures'", 'Algebra Adventures'),
    ('  "Algebra Adventures"\n', 'Algebra Adventures'),
    ('Algebra Adventures', 'Algebra Adventures'),
    ("  'Ancient Civilizations Quiz'  ", 'Ancient Civilizations Quiz'),
])
def test_model_name_is_unquoted(raw, expected, sample_questions):
    fake = FakeModelClient({'study_set_naming': raw})
    assert NamingAssistant(fake).name_for('Mathematics', sample_questions) == expected


def test_naming_uses_light_model_and_lists_categories(sample_questions):
    fake = FakeModelClient()
    NamingAssistant(fake).name_for('Mathematics', sample_questions)
    call = fake.calls_for('study_set_naming')[0]
    assert call['model'] == OPENAI_LIGHT_MODEL
    assert 'Calculus, Geometry, Statistics' in call['user_prompt']


def test_name_at_limit_is_kept(sample_questions):
    name = 'N' * NAME_MAX_LENGTH
    fake = FakeModelClient({'study_set_naming': name})
    assert NamingAssistant(fake).name_for('Mathematics', sample_questions) == name


@pytest.mark.parametrize('raw', ['', '""', 'N' * (NAME_MAX_LENGTH + 1)])
def test_unusable_name_falls_back_to_categories(raw, sample_questions):
    fake = FakeModelClient({'study_set_naming': raw})
    name = NamingAssistant(fake).name_for('Mathematics', sample_questions)
    assert name == 'Mathematics Study Set: Calculus & Geometry'


def test_model_failure_gives_dated_name(sample_questions):
    fake = FakeModelClient({'study_set_naming': ModelUnavailableError('down')})
    name = NamingAssistant(fake).name_for('Mathematics', sample_questions)
    assert name == f'Mathematics Study Set ({date.today().isoformat()})'


def test_distinct_categories_dedupes_and_limits(sample_questions):
    questions = [sample_questions[0]] + sample_questions
    assert distinct_categories(questions) == ['Calculus', 'Geometry', 'Statistics']
    assert distinct_categories([{'category': None}, {}]) == []


def test_fallback_name_variants():
    assert fallback_name('Art', ['Painting']) == 'Art Study Set: Painting'
    assert fallback_name('Art', []) == 'Art Study Set'
    long_cats = ['A very long category name indeed', 'Another one that is long']
    assert fallback_name('Art', long_cats) == 'Art Study Set'
