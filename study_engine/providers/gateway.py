"""Routes generation requests between the LLM provider, mock content and the offline pipeline.

Mode decides the route:

* mock      deterministic content from the input text, no quota
* offline   pattern extraction pipeline, no quota
* free      LLM provider (default endpoint) behind the quota gate
* custom    LLM provider at ``custom_endpoint`` behind the quota gate

Provider failures never reach the caller. A config error switches the
persisted mode to mock; every other failure falls back to offline for the
current call only.
"""
from __future__ import annotations

import threading
import time
import uuid
from datetime import date
from typing import Any, Callable, List, Optional, Tuple, Union

from pydantic import ValidationError

from study_engine.errors import (
    ClassifiedError,
    Err,
    ErrorKind,
    FallbackMode,
    GatewayValidationError,
    Ok,
    ProviderResult,
    classify_error,
    make_error,
)
from study_engine.models import GenerationKind, GenerationOptions, ItemKind, StudyItem
from study_engine.providers.llm_client import LLMClient
from study_engine.providers.mock import MockGenerator
from study_engine.providers.offline import OfflineGenerator
from study_engine.quota import AIMode, QuotaManager, ServiceState, ServiceStateStore, UsageInfo, provider_for_mode
from study_engine.ranking import ContentRanker
from study_engine.storage import build_store
from study_engine.utils import get_logger, get_request_context, log_fallback, log_generation

LOG = get_logger()

ClientFactory = Callable[[ServiceState], LLMClient]

CONFIG_FIELDS = ('api_key', 'custom_endpoint', 'model', 'daily_quota', 'monthly_quota')


class ProviderGateway:
    def __init__(self, quota: QuotaManager, client_factory: ClientFactory, offline: OfflineGenerator = None,
                 mock: MockGenerator = None, ranker: ContentRanker = None):
        self.quota = quota
        self.client_factory = client_factory
        self.offline = offline or OfflineGenerator()
        self.mock = mock or MockGenerator()
        self.ranker = ranker or ContentRanker()
        self._lock = threading.RLock()

    @classmethod
    def from_settings(cls, settings, store=None, today: Callable[[], date] = date.today) -> 'ProviderGateway':
        store = store or build_store(settings)
        state_store = ServiceStateStore(store, settings.STATE_STORAGE_KEY)
        state = state_store.load_or_default(ServiceState.from_settings(settings, today()))
        quota = QuotaManager(state, state_store, today=today)
        LOG.info('provider_gateway_initialized', extra={'mode': state.mode.value, 'backend': settings.STORAGE_BACKEND})
        return cls(quota, client_factory=lambda s: LLMClient.from_state(s, settings))

    @property
    def state(self) -> ServiceState:
        return self.quota.state

    # validation

    @staticmethod
    def _kind(kind: Union[str, GenerationKind]) -> GenerationKind:
        try:
            return GenerationKind(kind)
        except ValueError as e:
            raise GatewayValidationError(f'Unknown generation kind: {kind!r}') from e

    @staticmethod
    def _options(options: Union[None, dict, GenerationOptions]) -> GenerationOptions:
        if options is None:
            return GenerationOptions()
        if isinstance(options, GenerationOptions):
            return options
        try:
            return GenerationOptions.model_validate(options)
        except ValidationError as e:
            raise GatewayValidationError(str(e)) from e

    # routing

    def _offline(self, kind: GenerationKind, text: str, options: GenerationOptions) -> Any:
        if kind == GenerationKind.FLASHCARDS:
            return self.offline.flashcards(text, options)
        if kind == GenerationKind.QUIZ:
            return self.offline.quiz(text, options)
        if kind == GenerationKind.SUMMARY:
            return self.offline.summary(text, options.summary_length, options.summary_style)
        return self.offline.keywords(text, options.count)

    def _mock(self, kind: GenerationKind, text: str, options: GenerationOptions) -> Any:
        if kind == GenerationKind.FLASHCARDS:
            return self.mock.flashcards(text, options)
        if kind == GenerationKind.QUIZ:
            return self.mock.quiz(text, options)
        if kind == GenerationKind.SUMMARY:
            return self.mock.summary(text, options.summary_length, options.summary_style)
        return self.mock.keywords(text, options.count)

    def _call_provider(self, kind: GenerationKind, text: str, options: GenerationOptions, request_id: str) -> ProviderResult:
        try:
            client = self.client_factory(self.state)
        except Exception as e:
            return Err(classify_error(e, provider='openai'))
        if kind == GenerationKind.FLASHCARDS:
            return client.generate_flashcards(text, options.count, options.difficulty, request_id=request_id)
        if kind == GenerationKind.QUIZ:
            return client.generate_quiz(text, options.count, options.quiz_type, request_id=request_id)
        if kind == GenerationKind.SUMMARY:
            return client.summarize(text, options.summary_length, options.summary_style, request_id=request_id)
        return client.extract_keywords(text, options.count, request_id=request_id)

    def _degrade(self, error: ClassifiedError, kind: GenerationKind, text: str, options: GenerationOptions, request_id: str) -> Tuple[Any, str]:
        log_fallback(request_id, kind.value, error.kind.value, error.fallback_mode.value, error.message)
        if error.fallback_mode == FallbackMode.MOCK:
            self.switch_mode(AIMode.MOCK)
            return self._mock(kind, text, options), 'mock'
        return self._offline(kind, text, options), 'offline'

    def _produce(self, kind: GenerationKind, text: str, options: GenerationOptions, request_id: str) -> Tuple[Any, str]:
        mode = self.state.mode
        if mode == AIMode.MOCK:
            return self._mock(kind, text, options), 'mock'
        if mode == AIMode.OFFLINE or not options.use_ai:
            return self._offline(kind, text, options), 'offline'

        # check, call and increment as one step so parallel requests cannot overrun the quota
        with self._lock:
            check = self.quota.check_quota()
            if not check.can_use:
                error = make_error(ErrorKind.QUOTA_EXCEEDED, check.reason)
                log_fallback(request_id, kind.value, error.kind.value, error.fallback_mode.value, check.reason)
                return self._offline(kind, text, options), 'offline'

            result = self._call_provider(kind, text, options, request_id)
            if isinstance(result, Ok):
                self.quota.increment_usage()
                value = result.value
                if kind in (GenerationKind.FLASHCARDS, GenerationKind.QUIZ):
                    value = self.ranker.rank(value, options.count)
                return value, 'llm'
            return self._degrade(result.error, kind, text, options, request_id)

    def _to_items(self, kind: GenerationKind, payload: Any, text: str) -> List[StudyItem]:
        if kind in (GenerationKind.FLASHCARDS, GenerationKind.QUIZ):
            return list(payload)
        if kind == GenerationKind.SUMMARY:
            if not payload:
                return []
            return [StudyItem(kind=ItemKind.SUMMARY, prompt='다음 텍스트의 요약', answer=payload)]
        items = []
        for keyword in payload:
            sentence = self.offline.keyword_sentence(keyword, text)
            items.append(StudyItem(
                kind=ItemKind.KEYWORD,
                prompt=f"'{keyword}'에 대해 설명하세요.",
                answer=sentence or keyword,
                tags={keyword},
                source_sentence=sentence,
            ))
        return items

    def _run(self, kind, text, options, request_id) -> Tuple[GenerationKind, GenerationOptions, Any, str, str]:
        kind = self._kind(kind)
        options = self._options(options)
        request_id = request_id or get_request_context().get('request_id') or uuid.uuid4().hex
        if not text or not text.strip():
            return kind, options, None, 'none', request_id
        payload, source = self._produce(kind, text, options, request_id)
        return kind, options, payload, source, request_id

    # public API

    def generate(self, kind: Union[str, GenerationKind], text: str, options: Union[None, dict, GenerationOptions] = None,
                 request_id: Optional[str] = None) -> List[StudyItem]:
        start = time.time()
        kind, options, payload, source, request_id = self._run(kind, text, options, request_id)
        items = self._to_items(kind, payload, text) if payload else []
        if options.source_document_id:
            items = [i.model_copy(update={'source_document_id': options.source_document_id}) for i in items]
        log_generation(request_id, kind.value, self.state.mode.value, source, len(items), int((time.time() - start) * 1000))
        return items

    def summarize(self, text: str, options: Union[None, dict, GenerationOptions] = None, request_id: Optional[str] = None) -> str:
        _, _, payload, _, _ = self._run(GenerationKind.SUMMARY, text, options, request_id)
        return payload or ''

    def extract_keywords(self, text: str, count: int = 10, request_id: Optional[str] = None) -> List[str]:
        _, _, payload, _, _ = self._run(GenerationKind.KEYWORDS, text, {'count': count}, request_id)
        return list(payload or [])

    def switch_mode(self, mode: Union[str, AIMode]) -> ServiceState:
        try:
            mode = AIMode(mode)
        except ValueError as e:
            raise GatewayValidationError(f'Unknown mode: {mode!r}') from e
        with self._lock:
            self.state.mode = mode
            self.state.provider = provider_for_mode(mode)
            self.quota.persist()
        LOG.info('mode_switched', extra={'mode': mode.value})
        return self.state

    def update_config(self, **fields) -> ServiceState:
        unknown = set(fields) - set(CONFIG_FIELDS)
        if unknown:
            raise GatewayValidationError(f'Unknown config fields: {sorted(unknown)}')
        with self._lock:
            try:
                updated = self.state.model_validate({**self.state.model_dump(), **fields})
            except ValidationError as e:
                raise GatewayValidationError(str(e)) from e
            for name in fields:
                setattr(self.state, name, getattr(updated, name))
            self.quota.persist()
        LOG.info('config_updated', extra={'fields': sorted(fields)})
        return self.state

    def usage_info(self) -> UsageInfo:
        return self.quota.usage_info()

    def test_connection(self) -> Tuple[bool, str]:
        if self.state.mode in (AIMode.MOCK, AIMode.OFFLINE):
            return True, f'{self.state.mode.value} 모드는 외부 연결이 필요하지 않습니다.'
        try:
            client = self.client_factory(self.state)
        except Exception as e:
            return False, classify_error(e, provider='openai').message
        result = client.test_connection()
        if isinstance(result, Ok):
            return True, 'AI 제공자 연결에 성공했습니다.'
        return False, result.error.message
