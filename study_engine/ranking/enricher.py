from __future__ import annotations

import math
import re
from typing import List

from study_engine.extraction.text import split_sentences
from study_engine.models import Difficulty, StudyItem

BASE_DIFFICULTY = {
    Difficulty.EASY: 1.5,
    Difficulty.MEDIUM: 2.5,
    Difficulty.HARD: 4.0,
    Difficulty.MIXED: 2.5,
}

_SPECIAL_CHARS = re.compile(r'[^가-힣a-zA-Z0-9\s]')


def text_complexity(text: str) -> float:
    words = text.split(' ')
    avg_word_length = len(text) / len(words)
    complexity = 0.3
    if len(words) > 10:
        complexity += 0.3
    elif len(words) > 5:
        complexity += 0.1
    if avg_word_length > 8:
        complexity += 0.3
    elif avg_word_length > 5:
        complexity += 0.1
    if _SPECIAL_CHARS.search(text):
        complexity += 0.2
    if re.search(r'\d', text):
        complexity += 0.1
    return min(1.0, complexity)


def _shares_concept(sentence: str, concept: str) -> bool:
    concept_words = [w for w in concept.split(' ') if len(w) > 2]
    if not concept_words:
        return False
    sentence_words = [w for w in sentence.split(' ') if len(w) > 2]
    common = [w for w in concept_words if any(w in s or s in w for s in sentence_words)]
    return len(common) >= min(2, len(concept_words) * 0.5)


class ItemEnricher:
    """Adds hints, an explanation, examples and a difficulty estimate to generated items."""

    def hints(self, answer: str) -> List[str]:
        if len(answer) < 10:
            return []
        out = [f"'{answer[0]}'로 시작합니다", f'{len(answer)}글자입니다']
        words = [w for w in answer.split(' ') if len(w) > 2]
        if words:
            keyword = next((w for w in words if len(w) > 3), words[0])
            out.append(f'키워드: {keyword[:math.ceil(len(keyword) / 2)]}...')
        return out[:2]

    def explanation(self, item: StudyItem) -> str:
        if item.source_sentence:
            return f'원문: "{item.source_sentence}"'
        return f'{item.answer_text()}에 대한 기본 개념입니다.'

    def examples(self, answer: str, source_text: str) -> List[str]:
        out = []
        for sentence in split_sentences(source_text):
            if len(sentence) <= 20:
                continue
            if answer in sentence or _shares_concept(sentence, answer):
                out.append(sentence)
                if len(out) >= 2:
                    break
        return out

    def difficulty(self, item: StudyItem, level: Difficulty = Difficulty.MEDIUM) -> float:
        base = BASE_DIFFICULTY[Difficulty(level)]
        avg = (text_complexity(item.prompt) + text_complexity(item.answer_text())) / 2
        return min(5.0, max(0.0, round(base + (avg - 0.5) * 2, 1)))

    def enrich(self, item: StudyItem, source_text: str = '', level: Difficulty = Difficulty.MEDIUM) -> StudyItem:
        answer = item.answer_text()
        return item.model_copy(update={
            'hints': item.hints or self.hints(answer),
            'explanation': item.explanation or self.explanation(item),
            'examples': item.examples or self.examples(answer, source_text),
            'difficulty': self.difficulty(item, level),
        })
