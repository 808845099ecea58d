from __future__ import annotations

import json
import os
import re
import time
from typing import Any, Dict, List, Optional

import openai
from openai import OpenAI
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from study_engine.errors import (
    Err,
    Ok,
    ProviderAPIError,
    ProviderConfigError,
    ProviderNetworkError,
    ProviderParsingError,
    ProviderQuotaError,
    ProviderResult,
    ProviderTimeoutError,
    classify_error,
)
from study_engine.models import (
    Difficulty,
    ItemKind,
    QuestionType,
    QuizType,
    StudyItem,
    SummaryLength,
    SummaryStyle,
)
from study_engine.quota import AIMode
from study_engine.utils import get_logger, log_llm_call

LOG = get_logger()

PROVIDER_NAME = 'openai'

# Config
PROVIDER_RETRY_ATTEMPTS = int(os.getenv('PROVIDER_RETRY_ATTEMPTS', '2'))
PROVIDER_RETRY_MULTIPLIER = int(os.getenv('PROVIDER_RETRY_MULTIPLIER', '1'))
PROVIDER_RETRY_MAX_WAIT = int(os.getenv('PROVIDER_RETRY_MAX_WAIT', '10'))

TRUE_FALSE_OPTIONS = ['맞다', '틀리다']

DIFFICULTY_LABELS = {
    Difficulty.EASY: '쉬움',
    Difficulty.MEDIUM: '보통',
    Difficulty.HARD: '어려움',
    Difficulty.MIXED: '혼합',
}

QUIZ_TYPE_LABELS = {
    QuizType.MULTIPLE_CHOICE: '객관식',
    QuizType.TRUE_FALSE: 'O/X',
    QuizType.MIXED: '혼합',
}

SUMMARY_LENGTH_LABELS = {
    SummaryLength.SHORT: '2-3문장으로 간단히',
    SummaryLength.MEDIUM: '4-6문장으로 적당히',
    SummaryLength.LONG: '7-10문장으로 자세히',
}

SUMMARY_STYLE_LABELS = {
    SummaryStyle.BULLET: '불렛 포인트(• ) 형식으로',
    SummaryStyle.PARAGRAPH: '자연스러운 문단 형태로',
    SummaryStyle.KEY_POINTS: '핵심 포인트를 번호와 함께',
}

_FENCE_RE = re.compile(r'```(?:json)?\s*|```')


def parse_json_payload(content: Optional[str]) -> Any:
    """Parse a model reply as JSON, tolerating Markdown code fences and surrounding prose."""
    if not content or not content.strip():
        raise ProviderParsingError('empty response')
    text = _FENCE_RE.sub('', content).strip()
    try:
        return json.loads(text)
    except ValueError:
        pass
    for open_ch, close_ch in (('{', '}'), ('[', ']')):
        start, end = text.find(open_ch), text.rfind(close_ch)
        if 0 <= start < end:
            try:
                return json.loads(text[start:end + 1])
            except ValueError:
                continue
    raise ProviderParsingError('could not parse JSON from response')


def coerce_difficulty(value: Any, default: float = 3.0) -> float:
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, (int, float)):
        return float(max(0, min(5, value)))
    s = str(value).strip().lower()
    try:
        return float(max(0.0, min(5.0, float(s))))
    except ValueError:
        return {'easy': 2.0, 'medium': 3.0, 'hard': 4.0}.get(s, default)


def _resolve_answer_index(answer: Any, options: List[str]) -> Optional[int]:
    if isinstance(answer, bool):
        return None
    if isinstance(answer, int):
        return answer if 0 <= answer < len(options) else None
    if isinstance(answer, str):
        a = answer.strip()
        if a in options:
            return options.index(a)
        if a.isdigit() and 0 <= int(a) < len(options):
            return int(a)
    return None


def _is_true(answer: Any) -> bool:
    if isinstance(answer, bool):
        return answer
    if isinstance(answer, int):
        return answer == 0
    return str(answer).strip().lower() in ('true', 'o', '맞다', '참', 'yes')


class LLMClient:
    """OpenAI-compatible chat client that returns ``Ok``/``Err`` instead of raising."""

    def __init__(self, api_key: Optional[str], model: str = 'gpt-4o-mini', base_url: Optional[str] = None,
                 timeout: float = 30.0, max_tokens: int = 2000, temperature: float = 0.5, client: Any = None,
                 retry_attempts: int = PROVIDER_RETRY_ATTEMPTS, retry_max_wait: int = PROVIDER_RETRY_MAX_WAIT):
        if client is None:
            if not api_key:
                raise ProviderConfigError('OPENAI_API_KEY not set')
            # retries are handled by tenacity below
            client = OpenAI(api_key=api_key, base_url=base_url or None, timeout=timeout, max_retries=0)
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.retry_attempts = max(1, retry_attempts)
        self.retry_max_wait = retry_max_wait
        LOG.info('llm_client_initialized', extra={'model': self.model, 'base_url': base_url})

    @classmethod
    def from_state(cls, state, settings) -> 'LLMClient':
        base_url = state.custom_endpoint if state.mode == AIMode.CUSTOM else None
        return cls(
            api_key=state.api_key,
            model=state.model or settings.OPENAI_MODEL,
            base_url=base_url,
            timeout=settings.OPENAI_TIMEOUT,
            max_tokens=settings.PROVIDER_MAX_TOKENS,
            temperature=settings.PROVIDER_TEMPERATURE,
            retry_attempts=settings.PROVIDER_RETRY_ATTEMPTS,
            retry_max_wait=settings.PROVIDER_RETRY_MAX_WAIT,
        )

    def _call_openai(self, messages: List[Dict[str, str]], request_id: Optional[str] = None) -> str:
        retrying = Retrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=PROVIDER_RETRY_MULTIPLIER, max=self.retry_max_wait),
            retry=retry_if_exception_type(ProviderTimeoutError),
            reraise=True,
        )
        return retrying(self._call_once, messages, request_id)

    def _call_once(self, messages: List[Dict[str, str]], request_id: Optional[str] = None) -> str:
        start = time.time()
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except openai.APITimeoutError as e:
            LOG.warning('llm_timeout', extra={'model': self.model})
            raise ProviderTimeoutError(str(e)) from e
        except openai.APIConnectionError as e:
            raise ProviderNetworkError(str(e)) from e
        except openai.RateLimitError as e:
            raise ProviderQuotaError(str(e)) from e
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise ProviderConfigError(str(e)) from e
        except openai.OpenAIError as e:
            raise ProviderAPIError(str(e)) from e

        duration_ms = int((time.time() - start) * 1000)
        usage = getattr(resp, 'usage', None)
        log_llm_call(
            request_id or '',
            self.model,
            getattr(usage, 'prompt_tokens', 0) or 0,
            getattr(usage, 'completion_tokens', 0) or 0,
            duration_ms,
        )
        choices = getattr(resp, 'choices', None) or []
        if not choices:
            return ''
        return choices[0].message.content or ''

    def _complete(self, prompt: str, request_id: Optional[str] = None) -> str:
        messages = [
            {'role': 'system', 'content': '당신은 학습 자료를 만드는 도우미입니다.'},
            {'role': 'user', 'content': prompt},
        ]
        return self._call_openai(messages, request_id=request_id)

    def _run(self, fn, *args, **kwargs) -> ProviderResult:
        try:
            return Ok(fn(*args, **kwargs))
        except Exception as e:
            error = classify_error(e, provider=PROVIDER_NAME)
            LOG.warning('llm_call_failed', extra={'error_kind': error.kind.value, 'error_message': str(e)})
            return Err(error)

    # flashcards

    def _flashcards(self, text: str, count: int, difficulty: Difficulty, request_id: Optional[str]) -> List[StudyItem]:
        prompt = (
            f'다음 텍스트를 바탕으로 {count}개의 학습용 플래시카드를 생성해주세요.\n\n'
            f'요구사항:\n- 난이도: {DIFFICULTY_LABELS[Difficulty(difficulty)]}\n- 한국어로 작성\n'
            '- 질문은 명확하고 구체적으로\n- 답변은 정확하고 이해하기 쉽게\n\n'
            f'텍스트:\n{text}\n\n'
            'JSON 형식으로만 응답해주세요:\n'
            '{"cards": [{"front": "질문", "back": "답변", "difficulty": 1}]}'
        )
        parsed = parse_json_payload(self._complete(prompt, request_id))
        cards = parsed.get('cards') if isinstance(parsed, dict) else parsed
        if not isinstance(cards, list):
            raise ProviderParsingError('cards missing from response')
        items = []
        for c in cards:
            if not isinstance(c, dict):
                continue
            front, back = str(c.get('front') or '').strip(), str(c.get('back') or '').strip()
            if not front or not back:
                continue
            items.append(StudyItem(
                kind=ItemKind.FLASHCARD,
                prompt=front,
                answer=back,
                difficulty=coerce_difficulty(c.get('difficulty')),
                tags={'ai'},
            ))
        if not items:
            raise ProviderParsingError('no usable cards in response')
        return items

    def generate_flashcards(self, text: str, count: int, difficulty: Difficulty = Difficulty.MEDIUM, request_id: Optional[str] = None) -> ProviderResult:
        return self._run(self._flashcards, text, count, difficulty, request_id)

    # quiz

    def _quiz_item(self, q: Dict[str, Any]) -> Optional[StudyItem]:
        question = str(q.get('question') or '').strip()
        if not question:
            return None
        qtype = str(q.get('type') or 'multiple-choice').replace('-', '_').lower()
        explanation = q.get('explanation') or None
        difficulty = coerce_difficulty(q.get('difficulty'))
        if qtype == QuestionType.TRUE_FALSE.value:
            return StudyItem(
                kind=ItemKind.QUIZ, question_type=QuestionType.TRUE_FALSE, prompt=question,
                options=list(TRUE_FALSE_OPTIONS), answer=0 if _is_true(q.get('correctAnswer')) else 1,
                explanation=explanation, difficulty=difficulty, tags={'ai'},
            )
        options = []
        for o in q.get('options') or []:
            o = str(o).strip()
            if o and o not in options:
                options.append(o)
        index = _resolve_answer_index(q.get('correctAnswer'), options)
        if len(options) < 2 or index is None:
            return None
        return StudyItem(
            kind=ItemKind.QUIZ, question_type=QuestionType.MULTIPLE_CHOICE, prompt=question,
            options=options, answer=index, explanation=explanation, difficulty=difficulty, tags={'ai'},
        )

    def _quiz(self, text: str, count: int, quiz_type: QuizType, request_id: Optional[str]) -> List[StudyItem]:
        prompt = (
            f'다음 텍스트를 바탕으로 {count}개의 퀴즈 문제를 생성해주세요.\n\n'
            f'문제 유형: {QUIZ_TYPE_LABELS[QuizType(quiz_type)]}\n\n'
            f'텍스트:\n{text}\n\n'
            'JSON 형식으로만 응답해주세요:\n'
            '{"questions": [{"type": "multiple-choice", "question": "질문", '
            '"options": ["선택지1", "선택지2", "선택지3", "선택지4"], "correctAnswer": "정답", '
            '"explanation": "해설", "difficulty": 3}]}'
        )
        parsed = parse_json_payload(self._complete(prompt, request_id))
        questions = parsed.get('questions') if isinstance(parsed, dict) else parsed
        if not isinstance(questions, list):
            raise ProviderParsingError('questions missing from response')
        items = [i for i in (self._quiz_item(q) for q in questions if isinstance(q, dict)) if i is not None]
        if not items:
            raise ProviderParsingError('no usable questions in response')
        return items

    def generate_quiz(self, text: str, count: int, quiz_type: QuizType = QuizType.MIXED, request_id: Optional[str] = None) -> ProviderResult:
        return self._run(self._quiz, text, count, quiz_type, request_id)

    # summary / keywords

    def _summary(self, text: str, length: SummaryLength, style: SummaryStyle, request_id: Optional[str]) -> str:
        prompt = (
            f'다음 텍스트를 {SUMMARY_LENGTH_LABELS[SummaryLength(length)]} '
            f'{SUMMARY_STYLE_LABELS[SummaryStyle(style)]} 요약해주세요.\n\n'
            f'텍스트:\n{text}\n\n'
            '요약 지침:\n- 핵심 내용만 포함\n- 한국어로 작성\n- 이해하기 쉽게 작성\n- 중요한 정보는 빠뜨리지 않기'
        )
        summary = self._complete(prompt, request_id).strip()
        if not summary:
            raise ProviderParsingError('empty summary')
        return summary

    def summarize(self, text: str, length: SummaryLength = SummaryLength.MEDIUM, style: SummaryStyle = SummaryStyle.PARAGRAPH, request_id: Optional[str] = None) -> ProviderResult:
        return self._run(self._summary, text, length, style, request_id)

    def _keywords(self, text: str, count: int, request_id: Optional[str]) -> List[str]:
        prompt = (
            f'다음 텍스트에서 가장 중요한 키워드 {count}개를 추출해주세요.\n\n'
            f'텍스트:\n{text}\n\n'
            '요구사항:\n- 단순한 배열 형태로 응답\n- 각 키워드는 1-3단어로 구성\n'
            '- 중요도 순으로 정렬\n- 중복 제거\n- 한국어 키워드 우선\n\n'
            '예시 형식:\n["키워드1", "키워드2", "키워드3"]'
        )
        parsed = parse_json_payload(self._complete(prompt, request_id))
        if not isinstance(parsed, list):
            raise ProviderParsingError('keywords response is not an array')
        keywords = []
        for k in parsed:
            k = str(k).strip()
            if k and k not in keywords:
                keywords.append(k)
        if not keywords:
            raise ProviderParsingError('no keywords in response')
        return keywords[:count]

    def extract_keywords(self, text: str, count: int = 10, request_id: Optional[str] = None) -> ProviderResult:
        return self._run(self._keywords, text, count, request_id)

    def test_connection(self) -> ProviderResult:
        return self._run(self._complete, '연결 테스트입니다. "OK"라고만 답해주세요.')
