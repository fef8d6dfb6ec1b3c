import os
import logging
import pytest
from pathlib import Path

from dotenv import load_dotenv

# load test env first
env_path = Path(__file__).resolve().parents[1] / '.env.test'
if env_path.exists():
    load_dotenv(env_path)

os.environ.setdefault('TESTING', '1')
os.environ['LOG_TO_FILE'] = 'false'

from tests.fixtures.mock_openai import FakeModelClient  # noqa: E402
from tests.fixtures.mock_store import InMemoryStore  # noqa: E402
from tests.fixtures import sample_data  # noqa: E402


@pytest.fixture
def fake_model():
    return FakeModelClient()


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def sample_questions():
    return sample_data.sample_questions()


@pytest.fixture
def service(fake_model, memory_store):
    from studysets.service import StudySetService
    return StudySetService(fake_model, memory_store)


@pytest.fixture
def info_logs(caplog):
    caplog.set_level(logging.INFO, logger='studysets')
    return caplog
