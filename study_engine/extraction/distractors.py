"""Wrong-answer options for multiple-choice items and false statements for true/false items."""
from __future__ import annotations

import random
import re
from typing import List, Optional

from study_engine.extraction.text import split_sentences

GENERIC_DISTRACTORS = (
    '위의 설명이 모두 맞다',
    '위의 설명이 모두 틀리다',
    '해당 내용이 문서에 명시되지 않았다',
    '정확한 정보를 확인할 수 없다',
    '문서에서 찾을 수 없는 내용이다',
    '위 보기 중 정답이 없다',
)

_CLAUSE_SPLIT = re.compile(
    r',|\s(?:그리고|또한|하지만|그러나|따라서|그래서|즉|예를 들어)\s|\s(?:and|but|however|therefore)\s',
    re.IGNORECASE,
)

ANTONYMS = {
    '불가능': '가능', '가능': '불가능',
    '증가': '감소', '감소': '증가',
    '높': '낮', '낮': '높',
    '강화': '약화', '약화': '강화',
    '긍정': '부정', '부정': '긍정',
    '포함': '제외', '제외': '포함',
    '있다': '없다', '없다': '있다',
    'increase': 'decrease', 'decrease': 'increase',
    'more': 'less', 'less': 'more',
    'always': 'never', 'never': 'always',
    'true': 'false', 'false': 'true',
}
# longest first so "불가능" is seen before "가능"
_ANTONYM_RE = re.compile('|'.join(re.escape(k) for k in sorted(ANTONYMS, key=len, reverse=True)))
_NUMBER_RE = re.compile(r'\d+')


class DistractorGenerator:
    def __init__(self, rng: Optional[random.Random] = None, count: int = 3):
        self.rng = rng or random.Random()
        self.count = count

    def candidate_phrases(self, correct_answer: str, full_text: str) -> List[str]:
        correct = correct_answer.strip()
        lo, hi = 0.4 * len(correct), 2.5 * len(correct)
        phrases: List[str] = []
        for sentence in split_sentences(full_text):
            if 10 <= len(sentence) <= 50:
                phrases.append(sentence)
            elif len(sentence) > 50:
                phrases.extend(p.strip() for p in _CLAUSE_SPLIT.split(sentence) if 8 <= len(p.strip()) <= 60)

        seen = set()
        out = []
        for p in phrases:
            if p in seen or p == correct or correct in p:
                continue
            if lo <= len(p) <= hi:
                seen.add(p)
                out.append(p)
        return out

    def generate(self, correct_answer: str, full_text: str) -> List[str]:
        """Exactly ``count`` distinct options, none equal to the correct answer."""
        correct = correct_answer.strip()
        pool = self.candidate_phrases(correct, full_text)
        self.rng.shuffle(pool)
        distractors = pool[:self.count]
        for generic in GENERIC_DISTRACTORS:
            if len(distractors) >= self.count:
                break
            if generic != correct and generic not in distractors:
                distractors.append(generic)
        return distractors


def make_false_statement(statement: str) -> str:
    """Flip a statement with the antonym table, else perturb its first number, else negate it."""
    flipped, n = _ANTONYM_RE.subn(lambda m: ANTONYMS[m.group(0)], statement, count=1)
    if n and flipped != statement:
        return flipped

    flipped, n = _NUMBER_RE.subn(lambda m: str(int(m.group(0)) + 1), statement, count=1)
    if n:
        return flipped

    s = statement.rstrip(' .')
    if s.endswith('이다'):
        return s[:-2] + '이 아니다'
    if s.endswith('한다'):
        return s[:-2] + '하지 않는다'
    if s.endswith('다'):
        return s[:-1] + '지 않다'
    return f'It is not true that {s}'
