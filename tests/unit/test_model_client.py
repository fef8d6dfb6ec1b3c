import httpx
import openai
import pytest

from studysets.llm import JSON_OBJECT, ModelClient, ModelTimeoutError, ModelTransientError, ModelUnavailableError
from tests.fixtures.mock_openai import FakeOpenAI, build_completion

pytestmark = pytest.mark.unit

_REQUEST = httpx.Request('POST', 'https://api.openai.com/v1/chat/completions')


def _client(outcomes, attempts=3):
    fake = FakeOpenAI(outcomes)
    return ModelClient(model='gpt-test', client=fake, retry_attempts=attempts, retry_multiplier=0, retry_max_wait=0), fake


def _status_error(cls, status):
    return cls('error', response=httpx.Response(status, request=_REQUEST), body=None)


def test_generate_text_returns_first_choice():
    client, fake = _client([build_completion('{"study_questions": []}')])
    text = client.generate_text('system', 'user', response_format=JSON_OBJECT, temperature=0.2, max_tokens=99)
    assert text == '{"study_questions": []}'
    request = fake.requests[0]
    assert request['model'] == 'gpt-test'
    assert request['response_format'] == JSON_OBJECT
    assert request['temperature'] == 0.2
    assert request['max_tokens'] == 99
    assert request['messages'] == [{'role': 'system', 'content': 'system'}, {'role': 'user', 'content': 'user'}]


def test_model_override_and_no_response_format():
    client, fake = _client([build_completion('ok')])
    client.generate_text('s', 'u', model='gpt-light')
    assert fake.requests[0]['model'] == 'gpt-light'
    assert 'response_format' not in fake.requests[0]


def test_empty_completion_is_empty_string():
    client, _ = _client([build_completion(None)])
    assert client.generate_text('s', 'u') == ''
    empty = build_completion('x')
    empty.choices = []
    client, _ = _client([empty])
    assert client.generate_text('s', 'u') == ''


def test_transient_failure_is_retried():
    client, fake = _client([openai.APIConnectionError(request=_REQUEST), build_completion('second time lucky')])
    assert client.generate_text('s', 'u') == 'second time lucky'
    assert len(fake.requests) == 2


def test_retries_are_bounded():
    outcomes = [_status_error(openai.RateLimitError, 429) for _ in range(5)]
    client, fake = _client(outcomes, attempts=3)
    with pytest.raises(ModelTransientError):
        client.generate_text('s', 'u')
    assert len(fake.requests) == 3


def test_timeout_maps_to_timeout_error():
    client, fake = _client([openai.APITimeoutError(request=_REQUEST)], attempts=1)
    with pytest.raises(ModelTimeoutError):
        client.generate_text('s', 'u')


def test_auth_failure_is_not_retried():
    client, fake = _client([_status_error(openai.AuthenticationError, 401)])
    with pytest.raises(ModelUnavailableError) as excinfo:
        client.generate_text('s', 'u')
    assert not isinstance(excinfo.value, ModelTransientError)
    assert len(fake.requests) == 1


def test_missing_api_key_is_unavailable_at_call_time(monkeypatch):
    monkeypatch.delenv('OPENAI_API_KEY', raising=False)
    client = ModelClient()
    assert client.ping() is False
    with pytest.raises(ModelUnavailableError):
        client.generate_text('s', 'u')


def test_ping_with_client():
    client, _ = _client([])
    assert client.ping() is True
