"""Post-processing for extracted answer strings.

The verb-ending repairs are a closed lookup table. Only the first matching
entry is applied; entries are ordered most specific first.
"""
import os
import re
from typing import Tuple

ANSWER_MAX_LENGTH = int(os.getenv('ANSWER_MAX_LENGTH', '70'))

_DISALLOWED = re.compile(r'[^\w가-힣\s.,!?()\[\]{}\'":-]')
_PARTICLE_TAIL = re.compile(r'\s+(?:을|를|이|가|는|은|의|에|에서|으로|로|와|과)\s*$')

REPAIR_RULES: Tuple[Tuple[re.Pattern, str], ...] = (
    # "역할을 수행 한" -> "역할을 수행한다"
    (re.compile(r'(^|\s)(역할|기능|업무|작업)\s*(을|를)\s+(수행|진행|실행)\s+(?:하|한)\s*$'), r'\1\2\3 \4한다'),
    # "수행 한" -> "수행한다"
    (re.compile(r'(^|\s)(수행|진행|실행|처리|관리)\s+(?:하|한)\s*$'), r'\1\2한다'),
    # "저장 한" -> "저장한다"
    (re.compile(r'\s+(?:하|한|할)\s*$'), '한다'),
    # dangling case particle
    (_PARTICLE_TAIL, ''),
)

_BREAK_POINTS = (
    re.compile(r'^(.{30,65}(?:이다|입니다|한다|된다|있다|없다|다))(?:[\s,.]|$)'),
    re.compile(r'^(.{30,65}(?:것|점|면|때|경우|상황|조건))(?:[\s,.]|$)'),
    re.compile(r'^(.{30,65}(?:하고|하며|하거나|그리고|또한|따라서))\s'),
    re.compile(r'^(.{30,65}?)\s*[,.;]'),
)

_KOREAN_ENDINGS = ('다', '요', '음', '기', '것', '데', '면', '때', '게', '지', '니', '고')


def repair_ending(text: str) -> str:
    for pattern, replacement in REPAIR_RULES:
        if pattern.search(text):
            return pattern.sub(replacement, text, count=1)
    return text


def truncate_answer(text: str, max_length: int = ANSWER_MAX_LENGTH) -> str:
    if len(text) <= max_length:
        return text
    for pattern in _BREAK_POINTS:
        m = pattern.match(text)
        if m and m.group(1):
            text = m.group(1).strip()
            break
    if len(text) <= max_length:
        return text

    cut = text[:max_length]
    for ending in _KOREAN_ENDINGS:
        idx = cut.rfind(ending)
        if 50 < idx < len(cut) - 2:
            return cut[:idx + len(ending)].strip()
    last_space = cut.rfind(' ')
    if last_space > 50:
        cut = cut[:last_space]
    return cut.strip()


def clean_answer(text: str, max_length: int = ANSWER_MAX_LENGTH) -> str:
    cleaned = _DISALLOWED.sub('', (text or '').strip())
    cleaned = re.sub(r'\s+', ' ', cleaned).strip()
    cleaned = repair_ending(cleaned)
    cleaned = truncate_answer(cleaned, max_length)
    cleaned = re.sub(r'[,\s.]+$', '', cleaned)
    cleaned = _PARTICLE_TAIL.sub('', cleaned)
    return cleaned.strip()
