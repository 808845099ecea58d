import json
from types import SimpleNamespace

import httpx
import openai

MOCK_FLASHCARD_RESPONSE = json.dumps({'cards': [
    {'front': '광합성은 무엇인가요?', 'back': '빛 에너지를 화학 에너지로 바꾸는 과정이다', 'difficulty': 2},
    {'front': '엽록체의 역할은 무엇인가요?', 'back': '광합성이 일어나는 세포 소기관이다', 'difficulty': 3},
]}, ensure_ascii=False)

MOCK_QUIZ_RESPONSE = json.dumps({'questions': [
    {'type': 'multiple-choice', 'question': '광합성이 일어나는 곳은?', 'options': ['엽록체', '미토콘드리아', '핵', '리보솜'],
     'correctAnswer': '엽록체', 'explanation': '엽록체에서 일어난다', 'difficulty': 2},
    {'type': 'true-false', 'question': '광합성은 산소를 만든다.', 'correctAnswer': 'true', 'difficulty': 1},
]}, ensure_ascii=False)

MOCK_SUMMARY_RESPONSE = '광합성은 빛 에너지를 이용해 포도당을 만드는 과정입니다.'
MOCK_KEYWORDS_RESPONSE = json.dumps(['광합성', '엽록체', '포도당'], ensure_ascii=False)

_REQUEST = httpx.Request('POST', 'https://api.openai.com/v1/chat/completions')


def build_resp(content, prompt_tokens=10, completion_tokens=10):
    return SimpleNamespace(
        id='mock-1',
        model='mock-model',
        choices=[SimpleNamespace(message=SimpleNamespace(role='assistant', content=content))],
        usage=SimpleNamespace(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens, total_tokens=prompt_tokens + completion_tokens),
    )


def mock_openai_create(*args, **kwargs):
    # determine response by prompt contents
    prompt = ' '.join(m.get('content', '') for m in kwargs.get('messages', []) if isinstance(m, dict))
    if '플래시카드' in prompt:
        return build_resp(MOCK_FLASHCARD_RESPONSE)
    if '퀴즈' in prompt:
        return build_resp(MOCK_QUIZ_RESPONSE)
    if '요약' in prompt:
        return build_resp(MOCK_SUMMARY_RESPONSE)
    if '키워드' in prompt:
        return build_resp(MOCK_KEYWORDS_RESPONSE)
    return build_resp('OK')


def auth_error():
    response = httpx.Response(401, request=_REQUEST)
    return openai.AuthenticationError('Incorrect API key provided', response=response, body=None)


def rate_limit_error():
    response = httpx.Response(429, request=_REQUEST)
    return openai.RateLimitError('Rate limit reached', response=response, body=None)


def timeout_error():
    return openai.APITimeoutError(request=_REQUEST)


def connection_error():
    return openai.APIConnectionError(message='Connection error.', request=_REQUEST)


class FakeCompletions:
    def __init__(self, create=None, error=None, content=None):
        self._create = create or mock_openai_create
        self.error = error
        self.content = content
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        if self.content is not None:
            return build_resp(self.content)
        return self._create(**kwargs)


class FakeOpenAIClient:
    """Stands in for ``openai.OpenAI``: only ``chat.completions.create`` is used."""

    def __init__(self, create=None, error=None, content=None):
        self.completions = FakeCompletions(create=create, error=error, content=content)
        self.chat = SimpleNamespace(completions=self.completions)

    @property
    def calls(self):
        return self.completions.calls
