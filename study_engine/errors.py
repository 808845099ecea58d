"""Error taxonomy and provider result types.

Provider calls never raise into the gateway: they return ``Ok(value)`` or
``Err(ClassifiedError)`` and every call site branches on the result.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar, Union

import openai
from pydantic import BaseModel

T = TypeVar('T')


class StudyEngineError(Exception):
    pass


class ProviderError(StudyEngineError):
    pass


class ProviderAPIError(ProviderError):
    pass


class ProviderTimeoutError(ProviderError):
    pass


class ProviderNetworkError(ProviderError):
    pass


class ProviderConfigError(ProviderError):
    pass


class ProviderParsingError(ProviderError):
    pass


class ProviderQuotaError(ProviderError):
    pass


class GatewayValidationError(StudyEngineError):
    pass


class SchedulerValidationError(StudyEngineError, ValueError):
    pass


class StorageError(StudyEngineError):
    pass


class TextSourceError(StudyEngineError):
    pass


class ErrorKind(str, Enum):
    QUOTA_EXCEEDED = 'quota_exceeded'
    NETWORK_ERROR = 'network_error'
    CONFIG_ERROR = 'config_error'
    PARSING_ERROR = 'parsing_error'
    API_ERROR = 'api_error'


class FallbackMode(str, Enum):
    OFFLINE = 'offline'
    MOCK = 'mock'


class ClassifiedError(BaseModel):
    kind: ErrorKind
    message: str
    can_retry: bool
    fallback_mode: FallbackMode
    provider: Optional[str] = None


_POLICY = {
    ErrorKind.QUOTA_EXCEEDED: (False, FallbackMode.OFFLINE, '일일/월간 할당량을 초과했습니다.'),
    ErrorKind.NETWORK_ERROR: (True, FallbackMode.OFFLINE, '네트워크 연결에 문제가 있습니다.'),
    ErrorKind.CONFIG_ERROR: (False, FallbackMode.MOCK, 'API 키가 잘못되었거나 만료되었습니다.'),
    ErrorKind.PARSING_ERROR: (True, FallbackMode.OFFLINE, 'AI 응답을 파싱하는데 실패했습니다.'),
    ErrorKind.API_ERROR: (True, FallbackMode.OFFLINE, 'API 호출 중 오류가 발생했습니다.'),
}


def make_error(kind: ErrorKind, detail: str = None, provider: str = None) -> ClassifiedError:
    can_retry, fallback, message = _POLICY[kind]
    if detail:
        message = f'{message} ({detail})'
    return ClassifiedError(kind=kind, message=message, can_retry=can_retry, fallback_mode=fallback, provider=provider)


def _kind_for(exc: BaseException) -> ErrorKind:
    # own hierarchy first
    if isinstance(exc, ProviderQuotaError):
        return ErrorKind.QUOTA_EXCEEDED
    if isinstance(exc, (ProviderNetworkError, ProviderTimeoutError)):
        return ErrorKind.NETWORK_ERROR
    if isinstance(exc, ProviderConfigError):
        return ErrorKind.CONFIG_ERROR
    if isinstance(exc, ProviderParsingError):
        return ErrorKind.PARSING_ERROR

    # OpenAI SDK exceptions; timeout is a subclass of connection error
    if isinstance(exc, openai.RateLimitError):
        return ErrorKind.QUOTA_EXCEEDED
    if isinstance(exc, openai.APIConnectionError):
        return ErrorKind.NETWORK_ERROR
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return ErrorKind.CONFIG_ERROR
    status = getattr(exc, 'status_code', None) or getattr(exc, 'status', None)
    if status in (401, 403):
        return ErrorKind.CONFIG_ERROR
    if status == 429:
        return ErrorKind.QUOTA_EXCEEDED

    msg = str(exc).lower()
    if 'quota' in msg or 'limit' in msg:
        return ErrorKind.QUOTA_EXCEEDED
    if 'network' in msg or 'connection' in msg:
        return ErrorKind.NETWORK_ERROR
    if 'api key' in msg or 'unauthorized' in msg:
        return ErrorKind.CONFIG_ERROR
    if 'parse' in msg or 'json' in msg:
        return ErrorKind.PARSING_ERROR
    return ErrorKind.API_ERROR


def classify_error(exc: BaseException, provider: str = None) -> ClassifiedError:
    return make_error(_kind_for(exc), detail=str(exc) or type(exc).__name__, provider=provider)


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: ClassifiedError


ProviderResult = Union[Ok[Any], Err]
