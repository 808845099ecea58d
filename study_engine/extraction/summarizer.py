"""
Extractive summary used when no LLM is available.
"""
from __future__ import annotations

from typing import List, Tuple

from study_engine.extraction.text import split_sentences
from study_engine.models import SummaryLength, SummaryStyle

SENTENCE_COUNT = {
    SummaryLength.SHORT: 2,
    SummaryLength.MEDIUM: 3,
    SummaryLength.LONG: 5,
}

CUE_WORDS = ('중요', '핵심', '주요', '결론', '따라서', '그러므로', '요약', 'important', 'key', 'therefore', 'conclusion')


def score_sentence(sentence: str, index: int, total: int) -> int:
    score = 0
    n = len(sentence)
    if 20 < n < 150:
        score += 2
    elif 150 <= n < 250:
        score += 1
    if index == 0:
        score += 2
    elif index == total - 1:
        score += 1
    lowered = sentence.lower()
    score += sum(1 for w in CUE_WORDS if w in lowered)
    return score


def _format(sentences: List[str], style: SummaryStyle) -> str:
    if style == SummaryStyle.BULLET:
        return '\n'.join(f'• {s}' for s in sentences)
    if style == SummaryStyle.KEY_POINTS:
        return '\n'.join(f'{i}. {s}' for i, s in enumerate(sentences, 1))
    return ' '.join(s if s[-1] in '.!?' else f'{s}.' for s in sentences)


def summarize_offline(text: str, length: SummaryLength = SummaryLength.MEDIUM, style: SummaryStyle = SummaryStyle.PARAGRAPH) -> str:
    sentences = [s for s in split_sentences(text) if len(s) > 10]
    if not sentences:
        return ''
    wanted = SENTENCE_COUNT[SummaryLength(length)]
    scored: List[Tuple[int, int, str]] = [
        (score_sentence(s, i, len(sentences)), i, s) for i, s in enumerate(sentences)
    ]
    top = sorted(scored, key=lambda x: -x[0])[:wanted]
    # restore reading order
    picked = [s for _, _, s in sorted(top, key=lambda x: x[1])]
    return _format(picked, SummaryStyle(style))
