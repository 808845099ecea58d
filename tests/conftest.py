import os
import random
import pytest
from datetime import date, datetime
from unittest.mock import MagicMock
from pathlib import Path

from dotenv import load_dotenv

# load test env first, module-level config reads env at import time
env_path = Path(__file__).resolve().parents[1] / '.env.test'
if env_path.exists():
    load_dotenv(env_path)

os.environ.setdefault('TESTING', '1')
os.environ.setdefault('LOG_FILE_ENABLED', 'false')
os.environ.setdefault('STORAGE_BACKEND', 'memory')
os.environ.setdefault('PROVIDER_RETRY_ATTEMPTS', '1')
os.environ.setdefault('DEFAULT_MODE', 'offline')

from tests.fixtures.sample_data import SAMPLE_KOREAN_TEXT, SAMPLE_ENGLISH_TEXT  # noqa: E402


@pytest.fixture(autouse=True)
def silence_logger(monkeypatch):
    # Patch any project logger acquisition to avoid noisy logs
    try:
        import study_engine.utils.logger as logger_mod
        monkeypatch.setattr(logger_mod, 'get_logger', lambda *a, **k: MagicMock())
    except Exception:
        pass
    yield


@pytest.fixture
def korean_text():
    return SAMPLE_KOREAN_TEXT


@pytest.fixture
def english_text():
    return SAMPLE_ENGLISH_TEXT


@pytest.fixture
def fixed_today():
    return date(2024, 3, 15)


@pytest.fixture
def fixed_now():
    return datetime(2024, 3, 15, 9, 0, 0)


@pytest.fixture
def memory_store():
    from study_engine.storage import MemoryStore
    return MemoryStore()


@pytest.fixture
def settings():
    from study_engine.config import Settings
    return Settings(_env_file=None, STORAGE_BACKEND='memory', DEFAULT_MODE='offline', OPENAI_API_KEY='sk-test')


@pytest.fixture
def make_gateway(memory_store, fixed_today):
    """Builds a ProviderGateway over an in-memory store with an injectable LLM client.

    ``client`` may be a FakeOpenAIClient (wrapped in an LLMClient) or an
    exception to raise from the factory.
    """
    from study_engine.providers import LLMClient, OfflineGenerator, ProviderGateway
    from study_engine.quota import AIMode, QuotaManager, ServiceState, ServiceStateStore, provider_for_mode

    def _make(mode=AIMode.FREE, client=None, used_quota=0, daily_quota=10, monthly_quota=100, seed=7):
        state_store = ServiceStateStore(memory_store, 'test:service_state')
        state = ServiceState(
            mode=mode,
            provider=provider_for_mode(mode),
            daily_quota=daily_quota,
            used_quota=used_quota,
            monthly_quota=monthly_quota,
            last_reset=fixed_today,
            last_monthly_reset=fixed_today,
            api_key='sk-test',
        )
        state_store.save(state)
        factory_calls = []

        def factory(s):
            factory_calls.append(s.mode)
            if isinstance(client, Exception):
                raise client
            return LLMClient(api_key='sk-test', client=client)

        gateway = ProviderGateway(
            QuotaManager(state, state_store, today=lambda: fixed_today),
            client_factory=factory,
            offline=OfflineGenerator(rng=random.Random(seed)),
        )
        gateway.factory_calls = factory_calls
        return gateway

    return _make


def pytest_collection_modifyitems(config, items):
    # tests under tests/unit are unit tests unless marked otherwise
    for item in items:
        if 'unit' in item.path.parts and not item.get_closest_marker('integration'):
            item.add_marker(pytest.mark.unit)
