from __future__ import annotations

from collections import Counter
from typing import List, Optional

from study_engine.extraction.text import tokenize


class KeywordExtractor:
    """Frequency-ranked keywords with a Korean/English stop-word list."""

    def frequencies(self, text: str) -> Counter:
        return Counter(tokenize(text))

    def extract(self, text: str, count: int = 10) -> List[str]:
        # most_common keeps first-seen order for ties
        return [word for word, _ in self.frequencies(text).most_common(count)]

    def best_keyword(self, sentence: str, freq: Counter) -> Optional[str]:
        tokens = tokenize(sentence)
        if not tokens:
            return None
        return max(tokens, key=lambda t: (freq.get(t, 0), len(t)))
