"""
Deterministic stand-in content built from slices of the input text.

Used in mock mode (demos, tests, and after a provider configuration error).
The same text and options always produce the same prompts and answers.
"""
from __future__ import annotations

from typing import List

from study_engine.extraction.text import split_sentences
from study_engine.models import (
    GenerationOptions,
    ItemKind,
    QuestionType,
    QuizType,
    StudyItem,
    SummaryLength,
    SummaryStyle,
)

MOCK_SUMMARY_SENTENCES = (
    '이것은 테스트용 요약 문장입니다.',
    '주요 내용을 간략하게 정리했습니다.',
    '핵심 포인트들이 포함되어 있습니다.',
)


def _samples(text: str) -> List[str]:
    sentences = [s for s in split_sentences(text) if len(s) > 10]
    return sentences or [text.strip()]


class MockGenerator:
    def flashcards(self, text: str, options: GenerationOptions) -> List[StudyItem]:
        if not text.strip():
            return []
        samples = _samples(text)
        items = []
        for i in range(options.count):
            sample = samples[i % len(samples)]
            front = sample[:100]
            back = sample[100:200] or f'이것은 테스트용 답변입니다. {sample[:50]}...'
            items.append(StudyItem(
                kind=ItemKind.FLASHCARD,
                prompt=f'{front}{"..." if len(front) >= 100 else ""}에 대해 설명하세요.',
                answer=back,
                difficulty=float((i % 5) + 1),
                tags={'mock'},
                source_sentence=sample,
            ))
        return items

    def quiz(self, text: str, options: GenerationOptions) -> List[StudyItem]:
        if not text.strip():
            return []
        samples = _samples(text)
        items = []
        for i in range(options.count):
            sample = samples[i % len(samples)]
            true_false = options.quiz_type == QuizType.TRUE_FALSE or (options.quiz_type == QuizType.MIXED and i % 2 == 1)
            if true_false:
                items.append(StudyItem(
                    kind=ItemKind.QUIZ, question_type=QuestionType.TRUE_FALSE,
                    prompt=f'{sample[:100]}. 이 문장이 옳습니까?', options=['맞다', '틀리다'], answer=0,
                    explanation='제공된 텍스트의 내용입니다.', difficulty=float((i % 5) + 1), tags={'mock'},
                ))
            else:
                correct = sample[:40]
                items.append(StudyItem(
                    kind=ItemKind.QUIZ, question_type=QuestionType.MULTIPLE_CHOICE,
                    prompt=f'다음 중 {i + 1}번째 문장의 내용으로 옳은 것은?',
                    options=[correct, '잘못된 답변 1', '잘못된 답변 2', '잘못된 답변 3'], answer=0,
                    explanation='텍스트에서 직접 인용된 내용입니다.', difficulty=float((i % 5) + 1), tags={'mock'},
                ))
        return items

    def summary(self, text: str, length: SummaryLength, style: SummaryStyle) -> str:
        if not text.strip():
            return ''
        n = {SummaryLength.SHORT: 1, SummaryLength.LONG: 3}.get(SummaryLength(length), 2)
        picked = list(MOCK_SUMMARY_SENTENCES[:n])
        if style == SummaryStyle.BULLET:
            return '\n'.join(f'• {s}' for s in picked)
        if style == SummaryStyle.KEY_POINTS:
            return '\n'.join(f'{i}. {s}' for i, s in enumerate(picked, 1))
        return ' '.join(picked)

    def keywords(self, text: str, count: int) -> List[str]:
        out: List[str] = []
        for word in text.split():
            word = word.strip('.,!?;:()"\'')
            if len(word) > 1 and word not in out:
                out.append(word)
            if len(out) >= count:
                break
        return out
