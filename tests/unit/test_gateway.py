import threading
import time

import pytest

from study_engine.errors import GatewayValidationError, ProviderConfigError
from study_engine.models import GenerationKind, ItemKind, QuestionType
from study_engine.quota import AIMode, AIProvider, ServiceStateStore
from tests.fixtures.mock_openai import (
    MOCK_SUMMARY_RESPONSE,
    FakeOpenAIClient,
    auth_error,
    connection_error,
    mock_openai_create,
    rate_limit_error,
)


def _persisted(memory_store):
    return ServiceStateStore(memory_store, 'test:service_state').load()


def test_llm_success_counts_one_call(make_gateway, memory_store, korean_text):
    fake = FakeOpenAIClient()
    gw = make_gateway(client=fake)
    items = gw.generate(GenerationKind.FLASHCARDS, korean_text, {'count': 2})
    assert len(items) == 2
    assert all('ai' in i.tags for i in items)
    assert gw.state.used_quota == 1
    assert _persisted(memory_store).used_quota == 1
    assert len(fake.calls) == 1


def test_exhausted_quota_never_reaches_provider(make_gateway, korean_text):
    fake = FakeOpenAIClient()
    gw = make_gateway(client=fake, used_quota=10, daily_quota=10)
    items = gw.generate('flashcards', korean_text, {'count': 3})
    assert len(items) == 3
    assert all('ai' not in i.tags for i in items)
    assert gw.factory_calls == []
    assert fake.calls == []
    assert gw.state.used_quota == 10


def test_last_quota_slot_then_offline(make_gateway, korean_text):
    fake = FakeOpenAIClient()
    gw = make_gateway(client=fake, used_quota=9, daily_quota=10)
    first = gw.generate('flashcards', korean_text, {'count': 2})
    second = gw.generate('flashcards', korean_text, {'count': 2})
    assert all('ai' in i.tags for i in first)
    assert all('ai' not in i.tags for i in second)
    assert len(fake.calls) == 1
    assert gw.state.used_quota == 10


def test_parallel_requests_share_last_quota_slot(make_gateway, korean_text):
    def slow_create(**kwargs):
        time.sleep(0.1)
        return mock_openai_create(**kwargs)

    fake = FakeOpenAIClient(create=slow_create)
    gw = make_gateway(client=fake, used_quota=9, daily_quota=10)
    results = []

    def worker():
        results.append(gw.generate('flashcards', korean_text, {'count': 2}))

    threads = [threading.Thread(target=worker) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 3
    assert sum(1 for items in results if items and all('ai' in i.tags for i in items)) == 1
    assert len(fake.calls) == 1
    assert gw.state.used_quota == 10


def test_auth_error_switches_to_mock(make_gateway, memory_store, korean_text):
    gw = make_gateway(client=FakeOpenAIClient(error=auth_error()))
    items = gw.generate('flashcards', korean_text, {'count': 2})
    assert items and all('mock' in i.tags for i in items)
    assert gw.state.mode == AIMode.MOCK
    assert _persisted(memory_store).mode == AIMode.MOCK
    assert gw.state.used_quota == 0

    gw.generate('flashcards', korean_text, {'count': 2})
    assert len(gw.factory_calls) == 1


def test_missing_key_switches_to_mock(make_gateway, korean_text):
    gw = make_gateway(client=ProviderConfigError('OPENAI_API_KEY not set'))
    items = gw.generate('quiz', korean_text, {'count': 2})
    assert items and all('mock' in i.tags for i in items)
    assert gw.state.mode == AIMode.MOCK


@pytest.mark.parametrize('fake', [
    FakeOpenAIClient(content='not json at all'),
    FakeOpenAIClient(error=connection_error()),
    FakeOpenAIClient(error=rate_limit_error()),
])
def test_other_failures_fall_back_offline_for_one_call(make_gateway, memory_store, korean_text, fake):
    gw = make_gateway(client=fake)
    items = gw.generate('flashcards', korean_text, {'count': 3})
    assert len(items) == 3
    assert all(not ({'ai', 'mock'} & i.tags) for i in items)
    assert gw.state.mode == AIMode.FREE
    assert gw.state.used_quota == 0
    assert _persisted(memory_store).mode == AIMode.FREE


def test_mock_mode_is_deterministic(make_gateway, korean_text):
    gw = make_gateway(mode=AIMode.MOCK)
    a = gw.generate('quiz', korean_text, {'count': 4})
    b = gw.generate('quiz', korean_text, {'count': 4})
    assert [(i.prompt, i.options, i.answer) for i in a] == [(i.prompt, i.options, i.answer) for i in b]
    assert gw.factory_calls == []


def test_blank_text_yields_nothing(make_gateway):
    gw = make_gateway()
    assert gw.generate('flashcards', '   ') == []
    assert gw.summarize('') == ''
    assert gw.extract_keywords('') == []
    assert gw.factory_calls == []


def test_invalid_requests(make_gateway, korean_text):
    gw = make_gateway()
    with pytest.raises(GatewayValidationError):
        gw.generate('essay', korean_text)
    with pytest.raises(GatewayValidationError):
        gw.generate('flashcards', korean_text, {'count': 0})
    with pytest.raises(GatewayValidationError):
        gw.switch_mode('turbo')
    with pytest.raises(GatewayValidationError):
        gw.update_config(temperature=2)
    with pytest.raises(GatewayValidationError):
        gw.update_config(daily_quota=-1)


def test_use_ai_false_stays_offline(make_gateway, korean_text):
    gw = make_gateway(client=FakeOpenAIClient())
    items = gw.generate('flashcards', korean_text, {'count': 2, 'use_ai': False})
    assert len(items) == 2
    assert gw.factory_calls == []


def test_offline_quiz_mix(make_gateway, korean_text):
    gw = make_gateway(mode=AIMode.OFFLINE)
    items = gw.generate('quiz', korean_text, {'count': 5})
    assert len(items) == 5
    mc = [i for i in items if i.question_type == QuestionType.MULTIPLE_CHOICE]
    tf = [i for i in items if i.question_type == QuestionType.TRUE_FALSE]
    assert len(mc) == 4 and len(tf) == 1
    for item in mc:
        assert len(item.options) == 4
        assert len(set(item.options)) == 4
    assert tf[0].options == ['맞다', '틀리다']
    assert gw.factory_calls == []


def test_summary_and_keyword_items(make_gateway, korean_text):
    gw = make_gateway(mode=AIMode.OFFLINE)
    summary = gw.generate('summary', korean_text)
    assert len(summary) == 1 and summary[0].kind == ItemKind.SUMMARY
    assert summary[0].answer == gw.summarize(korean_text)

    keywords = gw.generate('keywords', korean_text, {'count': 3})
    assert len(keywords) == 3
    first = keywords[0]
    assert first.kind == ItemKind.KEYWORD
    assert first.prompt == "'광합성'에 대해 설명하세요."
    assert first.answer.startswith('광합성은')
    assert first.tags == {'광합성'}


def test_llm_summary(make_gateway, korean_text):
    gw = make_gateway(client=FakeOpenAIClient())
    assert gw.summarize(korean_text) == MOCK_SUMMARY_RESPONSE
    assert gw.state.used_quota == 1


def test_source_document_id_is_applied(make_gateway, korean_text):
    gw = make_gateway(mode=AIMode.OFFLINE)
    items = gw.generate('flashcards', korean_text, {'count': 2, 'source_document_id': 'doc-9'})
    assert {i.source_document_id for i in items} == {'doc-9'}


def test_mode_and_config_are_persisted(make_gateway, memory_store):
    gw = make_gateway()
    state = gw.switch_mode('offline')
    assert state.provider == AIProvider.OFFLINE
    assert _persisted(memory_store).mode == AIMode.OFFLINE
    gw.switch_mode(AIMode.CUSTOM)
    assert gw.state.provider == AIProvider.LLM

    gw.update_config(daily_quota=5, custom_endpoint='http://localhost:8080/v1')
    saved = _persisted(memory_store)
    assert saved.daily_quota == 5
    assert saved.custom_endpoint == 'http://localhost:8080/v1'
    assert gw.usage_info().daily.total == 5


def test_connection_check(make_gateway):
    ok, _ = make_gateway(mode=AIMode.OFFLINE).test_connection()
    assert ok
    ok, _ = make_gateway(client=FakeOpenAIClient()).test_connection()
    assert ok
    gw = make_gateway(client=FakeOpenAIClient(error=auth_error()))
    ok, message = gw.test_connection()
    assert not ok and message
    assert gw.state.used_quota == 0
