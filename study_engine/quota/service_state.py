from __future__ import annotations

import json
from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from study_engine.storage.stores import KeyValueStore
from study_engine.utils import get_logger

LOG = get_logger()


class AIMode(str, Enum):
    MOCK = 'mock'
    FREE = 'free'
    OFFLINE = 'offline'
    CUSTOM = 'custom'


class AIProvider(str, Enum):
    LLM = 'llm'
    OFFLINE = 'offline'


def provider_for_mode(mode: AIMode) -> AIProvider:
    if AIMode(mode) in (AIMode.FREE, AIMode.CUSTOM):
        return AIProvider.LLM
    return AIProvider.OFFLINE


class ServiceState(BaseModel):
    mode: AIMode = AIMode.OFFLINE
    provider: AIProvider = AIProvider.OFFLINE
    daily_quota: int = Field(50, ge=0)
    used_quota: int = Field(0, ge=0)
    monthly_quota: int = Field(1000, ge=0)
    used_monthly_quota: int = Field(0, ge=0)
    last_reset: date = Field(default_factory=date.today)
    last_monthly_reset: date = Field(default_factory=date.today)
    api_key: Optional[str] = None
    custom_endpoint: Optional[str] = None
    model: Optional[str] = None

    @classmethod
    def from_settings(cls, settings, today: date = None) -> 'ServiceState':
        today = today or date.today()
        mode = AIMode(settings.DEFAULT_MODE)
        return cls(
            mode=mode,
            provider=provider_for_mode(mode),
            daily_quota=settings.DAILY_QUOTA,
            monthly_quota=settings.MONTHLY_QUOTA,
            last_reset=today,
            last_monthly_reset=today,
            api_key=settings.OPENAI_API_KEY,
            custom_endpoint=settings.OPENAI_BASE_URL,
            model=settings.OPENAI_MODEL,
        )


class ServiceStateStore:
    """Persists ServiceState as one JSON object under a fixed key."""

    def __init__(self, store: KeyValueStore, key: str = 'study_engine:service_state'):
        self.store = store
        self.key = key

    def load(self) -> Optional[ServiceState]:
        raw = self.store.get(self.key)
        if not raw:
            return None
        try:
            return ServiceState.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as e:
            LOG.warning('service_state_load_failed', extra={'key': self.key, 'error': str(e)})
            return None

    def load_or_default(self, default: ServiceState) -> ServiceState:
        state = self.load()
        if state is None:
            state = default
            self.save(state)
        return state

    def save(self, state: ServiceState) -> None:
        self.store.set(self.key, state.model_dump_json())
