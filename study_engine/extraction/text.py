import re
from typing import List

SENTENCE_DELIMITERS = re.compile(r'[.!?。\n]+')
NON_WORD = re.compile(r'[^\w가-힣\s]')
HANGUL = re.compile(r'[가-힣]')

PARTICLES = ('에서', '으로', '은', '는', '이', '가', '을', '를', '의', '에', '로', '와', '과', '도')

STOP_WORDS = frozenset([
    '이', '그', '저', '것', '들', '수', '있', '없', '하', '되', '된', '할',
    '의', '에', '를', '가', '은', '는', '과', '와', '도', '만', '까지',
    '부터', '으로', '로', '에서', '에게', '께', '한테', '더', '가장', '매우',
    '정말', '아주', '너무', '조금', '많이', '잘', '못', '안', '때문', '위해',
    '이다', '있다', '되다', '하다', '한다', '된다', '없다', '그리고', '그러나', '또한',
    '그래서', '때문에', '위해서', '통해', '대해', '관련', '경우', '같은', '다른',
    '여러', '많은', '모든', '각각', '서로', '이것', '그것', '저것',
    'the', 'a', 'an', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for',
    'of', 'with', 'by', 'from', 'up', 'about', 'into', 'through', 'during',
    'before', 'after', 'above', 'below', 'between', 'among', 'is', 'are',
    'was', 'were', 'be', 'been', 'being', 'have', 'has', 'had', 'do', 'does',
    'did', 'will', 'would', 'could', 'should', 'may', 'might', 'must', 'can',
    'this', 'that', 'these', 'those', 'it', 'its', 'as', 'not', 'than', 'then',
])


def split_sentences(text: str) -> List[str]:
    if not text:
        return []
    return [s.strip() for s in SENTENCE_DELIMITERS.split(text) if s.strip()]


def is_korean(text: str) -> bool:
    return bool(HANGUL.search(text or ''))


def strip_particle(token: str) -> str:
    """Drop one trailing case particle from a Hangul token, keeping a 2+ char stem."""
    for p in PARTICLES:
        if token.endswith(p) and len(token) - len(p) >= 2 and is_korean(token):
            return token[:-len(p)]
    return token


def tokenize(text: str) -> List[str]:
    words = NON_WORD.sub(' ', (text or '').lower()).split()
    out = []
    for w in words:
        w = strip_particle(w)
        if 2 <= len(w) <= 10 and w not in STOP_WORDS and not w.isdigit():
            out.append(w)
    return out


def has_batchim(word: str) -> bool:
    if not word:
        return False
    last = word[-1]
    if '가' <= last <= '힣':
        return (ord(last) - 0xAC00) % 28 != 0
    return False


def josa(word: str, with_batchim: str, without_batchim: str) -> str:
    """Attach the particle form that fits the word's last syllable (은/는, 을/를, ...)."""
    return word + (with_batchim if has_batchim(word) else without_batchim)
