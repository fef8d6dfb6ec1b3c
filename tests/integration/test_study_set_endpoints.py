from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

import main as app_main
from studysets.llm import ModelUnavailableError
from studysets.service import StudySetService
from tests.fixtures.mock_openai import FakeModelClient
from tests.fixtures.mock_store import InMemoryStore

pytestmark = pytest.mark.integration


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def install(monkeypatch, store):
    def _install(responses=None):
        fake = FakeModelClient(responses)
        monkeypatch.setattr(app_main.app.state, 'service', StudySetService(fake, store), raising=False)
        return fake
    return _install


@pytest.fixture
def client(install):
    install()
    return TestClient(app_main.app)


def test_health(client):
    r = client.get('/health')
    assert r.status_code == 200
    assert r.json()['status'] == 'ok'


def test_ready_reports_database(client):
    r = client.get('/ready')
    assert r.status_code == 200
    assert r.json()['services']['database'] == 'ok'


def test_ready_fails_when_database_down(client, monkeypatch, store):
    monkeypatch.setattr(store, 'ping', lambda: False)
    r = client.get('/ready')
    assert r.status_code == 503
    assert r.json()['status'] == 'not ready'


def test_generate(client):
    r = client.post('/study-sets/generate', json={'subject': 'Mathematics', 'difficulty': 'easy'}, headers={'X-Request-ID': 'req-123'})
    assert r.status_code == 200
    body = r.json()
    assert body['success'] is True
    assert body['request_id'] == 'req-123'
    assert r.headers['X-Request-ID'] == 'req-123'
    assert body['text'] == 'Generated a easy study set with 5 questions about Mathematics'
    assert len(body['questions']) == 5
    for q in body['questions']:
        assert q['answer'] in q['options']


def test_generate_defaults_to_medium(client):
    r = client.post('/study-sets/generate', json={'subject': 'History'})
    assert r.status_code == 200
    assert 'medium' in r.json()['text']


def test_generate_with_model_down_uses_fallback(install):
    install({'question_generation': ModelUnavailableError('no key')})
    r = TestClient(app_main.app).post('/study-sets/generate', json={'subject': 'Mathematics'})
    assert r.status_code == 200
    assert r.json()['text'].endswith('(using fallback)')
    assert len(r.json()['questions']) == 5


@pytest.mark.parametrize('payload', [{}, {'subject': '   '}, {'subject': 'Math', 'difficulty': 'impossible'}])
def test_invalid_request_is_rejected(client, payload):
    r = client.post('/study-sets/generate', json=payload)
    assert r.status_code == 422


def test_save(client, store):
    r = client.post('/study-sets/save', json={'subject': 'Mathematics'})
    assert r.status_code == 200
    body = r.json()
    assert body['study_set_id'] == '1'
    assert body['study_set_name'] == 'Algebra Adventures'
    assert body['question_count'] == 5
    assert body['text'] == 'Saved a medium study set with 5 questions about Mathematics as "Algebra Adventures"'
    assert len(store.questions) == 5


def test_save_with_model_down_is_bad_gateway(install, store):
    install({'question_generation': ModelUnavailableError('no key')})
    r = TestClient(app_main.app).post('/study-sets/save', json={'subject': 'Mathematics'})
    assert r.status_code == 502
    assert r.json()['error'] == 'LLM API error'
    assert store.study_sets == []


def test_save_with_database_down_is_bad_gateway(client, store):
    store.fail_study_set = True
    r = client.post('/study-sets/save', json={'subject': 'Mathematics'})
    assert r.status_code == 502
    assert r.json()['error'] == 'Database error'
    assert r.json()['success'] is False


def test_save_with_nothing_to_save_is_bad_request(client, monkeypatch):
    service = app_main.app.state.service
    monkeypatch.setattr(service.completer, 'complete', lambda subject, difficulty: [])
    r = client.post('/study-sets/save', json={'subject': 'Mathematics'})
    assert r.status_code == 400
    assert r.json()['error'] == 'No valid questions to save'


def test_ready_checks_openai_when_required(client):
    service = app_main.app.state.service
    with patch.object(app_main.settings, 'OPENAI_REQUIRED_FOR_READY', True), \
            patch.object(service.completer.model_client, 'ping', MagicMock(return_value=False)) as ping:
        r = client.get('/ready')
    assert r.status_code == 503
    assert r.json()['services']['openai'] == 'error: openai unreachable'
    ping.assert_called_once()


def test_pipeline_runs_off_the_event_loop(client, monkeypatch):
    offloaded = []
    real_to_thread = app_main.asyncio.to_thread

    async def recording_to_thread(func, *args, **kwargs):
        offloaded.append(getattr(func, '__name__', repr(func)))
        return await real_to_thread(func, *args, **kwargs)

    monkeypatch.setattr(app_main.asyncio, 'to_thread', recording_to_thread)
    assert client.post('/study-sets/generate', json={'subject': 'Mathematics'}).status_code == 200
    assert client.post('/study-sets/save', json={'subject': 'Mathematics'}).status_code == 200
    assert 'generate' in offloaded
    assert 'generate_and_save' in offloaded


def test_save_at_info_level_stores_every_question(client, store, info_logs):
    r = client.post('/study-sets/save', json={'subject': 'Mathematics'})
    assert r.status_code == 200
    assert r.json()['question_count'] == 5
    assert len(store.questions) == 5
