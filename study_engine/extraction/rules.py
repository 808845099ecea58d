"""Ordered sentence rules for offline question/answer extraction.

Each rule pairs a regex with a builder that turns the match into a
(prompt, raw answer) pair. The engine tries rules in list order and the
first rule whose match yields a usable answer wins, so more specific rules
sit ahead of the generic definition rule.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Set, Tuple

from study_engine.extraction.answer_cleaner import clean_answer
from study_engine.extraction.text import josa, strip_particle
from study_engine.models import CandidatePair, PatternCategory

ENDINGS = r'(?:이다|입니다|합니다|됩니다|습니다|한다|된다|있다|없다|다)'

Builder = Callable[[re.Match], Tuple[str, str]]


@dataclass(frozen=True)
class PatternRule:
    name: str
    category: PatternCategory
    pattern: re.Pattern
    build: Builder
    min_length: int = 8

    def apply(self, sentence: str) -> Optional[CandidatePair]:
        if len(sentence) < self.min_length:
            return None
        m = self.pattern.search(sentence)
        if not m:
            return None
        prompt, raw_answer = self.build(m)
        answer = clean_answer(raw_answer)
        prompt = prompt.strip()
        if len(answer) < 2 or not prompt:
            return None
        return CandidatePair(prompt=prompt, answer=answer, category=self.category, source_sentence=sentence)


def _g(m: re.Match, name: str) -> str:
    return (m.group(name) or '').strip()


def _role(m):
    subject, desc, kind, verb = _g(m, 'subject'), _g(m, 'desc'), _g(m, 'kind'), _g(m, 'verb')
    return f'{subject}의 {josa(kind, "은", "는")} 무엇인가요?', f'{desc} {josa(kind, "을", "를")} {verb}한다'


def _terminology(m):
    term = _g(m, 'term')
    return f"'{term}'의 의미로 가장 적절한 것은?", _g(m, 'definition')


def _characteristic(m):
    subject, trait = _g(m, 'subject'), _g(m, 'trait')
    return f'{subject}의 {josa(trait, "은", "는")} 무엇인가요?', _g(m, 'feature')


def _cause_effect(m):
    effect = _g(m, 'effect')
    return f"'{effect}'의 원인은 무엇인가요?", f'{_g(m, "cause")} 때문이다'


def _method(m):
    purpose = strip_particle(_g(m, 'purpose'))
    return f'{josa(purpose, "을", "를")} 위한 방법은 무엇인가요?', _g(m, 'method')


def _definition(m):
    subject = _g(m, 'subject')
    return f'{josa(subject, "은", "는")} 무엇인가요?', _g(m, 'predicate')


def _en_terminology(m):
    return f'What does "{_g(m, "term")}" mean?', _g(m, 'definition')


def _en_cause_effect(m):
    effect = _g(m, 'effect')
    return f'What is the reason that {effect[:1].lower()}{effect[1:]}?', f'Because {_g(m, "cause")}'


def _en_method(m):
    return f'How do you {_g(m, "purpose")}?', _g(m, 'method')


def _en_characteristic(m):
    return f'What are the characteristics of {_g(m, "subject")}?', _g(m, 'feature')


def _en_definition(m):
    subject = re.sub(r'^(?:a|an|the)\s+', '', _g(m, 'subject'), flags=re.IGNORECASE)
    return f'What is {subject}?', _g(m, 'predicate')


def _rule(name, category, regex, build, min_length=8, flags=0) -> PatternRule:
    return PatternRule(name=name, category=category, pattern=re.compile(regex, flags), build=build, min_length=min_length)


DEFAULT_RULES: List[PatternRule] = [
    _rule('ko_role', PatternCategory.ROLE,
          r'^(?P<subject>.{2,20}?)(?:는|은|이|가)\s+(?P<desc>.{2,40}?)\s*(?P<kind>역할|기능|업무|임무|책임)\s*(?:을|를)\s*(?P<verb>수행|담당|처리|관리)\s*(?:한다|합니다|하고 있다|하고 있습니다)$',
          _role, min_length=10),
    _rule('ko_terminology', PatternCategory.TERMINOLOGY,
          r'^(?P<term>.{1,20}?)(?:이란|란|이라는 것은|라는 것은|이라 함은|라 함은)\s+(?P<definition>.{4,150}?' + ENDINGS + r')$',
          _terminology),
    _rule('ko_characteristic', PatternCategory.CHARACTERISTIC,
          r'^(?P<subject>.{1,20}?)의\s*(?P<trait>특징|성질|속성|장점|단점)(?:은|는|이|가|으로는)?\s+(?P<feature>.{4,120}?' + ENDINGS + r')$',
          _characteristic, min_length=10),
    _rule('ko_cause_effect', PatternCategory.CAUSE_EFFECT,
          r'^(?P<cause>.{3,40}?)\s*(?:때문에|으로 인해|로 인해|으로 인하여|로 인하여)\s+(?P<effect>.{4,120}?' + ENDINGS + r')$',
          _cause_effect, min_length=10),
    _rule('ko_method', PatternCategory.METHOD,
          r'^(?P<purpose>.{2,40}?)\s*위해(?:서는|서)?\s+(?P<method>.{4,120}?(?:해야 한다|해야만 한다|하면 된다|해야 합니다|한다|합니다|된다|이다|다))$',
          _method, min_length=10),
    _rule('ko_definition', PatternCategory.DEFINITION,
          r'^(?P<subject>.{1,20}?)(?:은|는|이|가)\s+(?P<predicate>.{2,150}?' + ENDINGS + r')$',
          _definition),
    _rule('en_terminology', PatternCategory.TERMINOLOGY,
          r'^(?P<term>[A-Za-z][\w\s\-]{0,40}?)\s+(?:is defined as|refers to|means)\s+(?P<definition>.{4,150})$',
          _en_terminology, min_length=12, flags=re.IGNORECASE),
    _rule('en_cause_effect', PatternCategory.CAUSE_EFFECT,
          r'^(?P<effect>[A-Za-z].{3,120}?)\s+because\s+(?:of\s+)?(?P<cause>.{3,120})$',
          _en_cause_effect, min_length=12, flags=re.IGNORECASE),
    _rule('en_method', PatternCategory.METHOD,
          r'^(?:to|in order to)\s+(?P<purpose>.{3,60}?),?\s+(?:you\s+)?(?:must|should|need to|have to)\s+(?P<method>.{3,120})$',
          _en_method, min_length=12, flags=re.IGNORECASE),
    _rule('en_characteristic', PatternCategory.CHARACTERISTIC,
          r'^(?:the\s+)?(?:characteristics?|features?|properties) of\s+(?P<subject>.{2,40}?)\s+(?:is|are|include|includes)\s+(?P<feature>.{4,150})$',
          _en_characteristic, min_length=12, flags=re.IGNORECASE),
    _rule('en_definition', PatternCategory.DEFINITION,
          r'^(?P<subject>[A-Za-z][\w\s\-]{0,40}?)\s+(?:is|are)\s+(?P<predicate>(?:a|an|the)\s+.{3,150})$',
          _en_definition, min_length=12, flags=re.IGNORECASE),
]


class RuleEngine:
    def __init__(self, rules: Iterable[PatternRule] = None):
        self.rules = list(rules if rules is not None else DEFAULT_RULES)

    def match(self, sentence: str, categories: Optional[Set[PatternCategory]] = None) -> Optional[CandidatePair]:
        """First rule (in order) that yields a candidate; categories filters which rules may fire."""
        for rule in self.rules:
            if categories and rule.category not in categories:
                continue
            candidate = rule.apply(sentence)
            if candidate is not None:
                return candidate
        return None
