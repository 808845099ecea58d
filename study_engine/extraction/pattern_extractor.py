from __future__ import annotations

import os
from typing import List, Optional, Set

from study_engine.extraction.answer_cleaner import ANSWER_MAX_LENGTH, clean_answer
from study_engine.extraction.keywords import KeywordExtractor
from study_engine.extraction.rules import RuleEngine
from study_engine.extraction.text import is_korean, split_sentences
from study_engine.models import CandidatePair, PatternCategory
from study_engine.utils import get_logger

LOG = get_logger()

MIN_SENTENCE_LENGTH = int(os.getenv('MIN_SENTENCE_LENGTH', '8'))


class PatternExtractor:
    """Turns plain text into prompt/answer candidates without any model.

    Sentences are matched against the rule engine first; when that yields
    fewer than ``count`` candidates the remaining sentences are paired with
    their most frequent keyword.
    """

    def __init__(self, engine: RuleEngine = None, keywords: KeywordExtractor = None):
        self.engine = engine or RuleEngine()
        self.keywords = keywords or KeywordExtractor()

    def eligible_sentences(self, text: str) -> List[str]:
        return [s for s in split_sentences(text) if len(s) >= MIN_SENTENCE_LENGTH]

    def extract(self, text: str, count: int, categories: Optional[Set[PatternCategory]] = None) -> List[CandidatePair]:
        if count <= 0:
            return []
        sentences = self.eligible_sentences(text)
        rule_categories = set(categories or ()) - {PatternCategory.KEYWORD}
        rules_enabled = not categories or bool(rule_categories)

        matched: List[CandidatePair] = []
        unmatched: List[str] = []
        for sentence in sentences:
            candidate = self.engine.match(sentence, rule_categories or None) if rules_enabled else None
            if candidate is not None:
                matched.append(candidate)
            else:
                unmatched.append(sentence)

        if len(matched) < count and unmatched:
            fallback = self.keyword_candidates(text, unmatched)
            matched.extend(fallback[:count - len(matched)])

        LOG.debug('pattern_extraction', extra={'sentences': len(sentences), 'candidates': len(matched), 'requested': count})
        return matched[:count]

    def keyword_candidates(self, text: str, sentences: List[str]) -> List[CandidatePair]:
        freq = self.keywords.frequencies(text)
        ranked = []
        for sentence in sentences:
            keyword = self.keywords.best_keyword(sentence, freq) or sentence.split()[0]
            ranked.append((freq.get(keyword, 0), keyword, sentence))
        ranked.sort(key=lambda r: -r[0])

        out: List[CandidatePair] = []
        for _, keyword, sentence in ranked:
            if is_korean(sentence):
                prompt = f"'{keyword}'에 대해 설명하세요."
            else:
                prompt = f"Explain '{keyword}'."
            answer = clean_answer(sentence) or sentence[:ANSWER_MAX_LENGTH]
            out.append(CandidatePair(prompt=prompt, answer=answer, category=PatternCategory.KEYWORD, source_sentence=sentence))
        return out
