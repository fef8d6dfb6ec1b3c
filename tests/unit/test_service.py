import pytest

from studysets.llm import ModelUnavailableError
from studysets.persistence import StudySetPersistenceError
from studysets.service import StudySetService
from tests.fixtures.mock_openai import FakeModelClient

pytestmark = pytest.mark.unit


def test_generate_returns_model_questions(service):
    generated = service.generate('Mathematics', 'hard')
    assert len(generated.questions) == 5
    assert generated.used_fallback is False
    assert generated.text == 'Generated a hard study set with 5 questions about Mathematics'


def test_generate_falls_back_when_model_unavailable(memory_store):
    fake = FakeModelClient({'question_generation': ModelUnavailableError('no key')})
    generated = StudySetService(fake, memory_store).generate('Mathematics')
    assert generated.used_fallback is True
    assert len(generated.questions) == 5
    assert len({q.question for q in generated.questions}) == 5
    assert generated.text.endswith(' (using fallback)')
    assert memory_store.study_sets == []


def test_generate_does_not_need_a_store():
    generated = StudySetService(FakeModelClient()).generate('History')
    assert len(generated.questions) == 5


def test_generate_and_save(service, fake_model, memory_store):
    saved = service.generate_and_save('Mathematics', 'medium')
    assert saved.study_set_id == '1'
    assert saved.study_set_name == 'Algebra Adventures'
    assert saved.question_count == 5
    assert saved.text == 'Saved a medium study set with 5 questions about Mathematics as "Algebra Adventures"'
    assert len(memory_store.questions) == 5
    # every generated question shares one category, so only the first is inferred
    assert len(fake_model.calls_for('subject_inference')) == 1
    assert memory_store.categories['Algebra']['subject'] == 'Mathematics'


def test_generate_and_save_with_short_model_response(memory_store):
    from tests.fixtures.mock_openai import study_questions_response
    fake = FakeModelClient({'question_generation': study_questions_response(1)})
    saved = StudySetService(fake, memory_store).generate_and_save('Science')
    assert saved.question_count == 5
    assert {'Algebra', 'Chemistry', 'Biology', 'Astronomy', 'Earth Science'} == set(memory_store.categories)


def test_generate_and_save_propagates_model_unavailable(memory_store):
    fake = FakeModelClient({'question_generation': ModelUnavailableError('down')})
    with pytest.raises(ModelUnavailableError):
        StudySetService(fake, memory_store).generate_and_save('Mathematics')
    assert memory_store.study_sets == []


def test_naming_failure_still_saves(memory_store):
    fake = FakeModelClient({'study_set_naming': ModelUnavailableError('down')})
    saved = StudySetService(fake, memory_store).generate_and_save('Mathematics')
    assert saved.study_set_name.startswith('Mathematics Study Set (')
    assert memory_store.study_sets[0]['name'] == saved.study_set_name


def test_study_set_failure_propagates(service, memory_store):
    memory_store.fail_study_set = True
    with pytest.raises(StudySetPersistenceError):
        service.generate_and_save('Mathematics')


def test_save_without_store_is_an_error():
    with pytest.raises(RuntimeError):
        StudySetService(FakeModelClient()).generate_and_save('Mathematics')


def test_saved_count_matches_store_at_info_level(service, memory_store, info_logs):
    saved = service.generate_and_save('Mathematics')
    assert saved.question_count == len(memory_store.questions) == 5
    assert any(r.getMessage() == 'category_resolved' for r in info_logs.records)
