from __future__ import annotations

from typing import Iterable, List, Union

from study_engine.models import CandidatePair, ItemKind, StudyItem
from study_engine.utils import get_logger

LOG = get_logger()

SIMILARITY_THRESHOLD = 0.7


def is_similar_prompt(a: str, b: str) -> bool:
    wa = set(a.lower().split())
    wb = set(b.lower().split())
    if not wa or not wb:
        return a.strip().lower() == b.strip().lower()
    return len(wa & wb) / max(len(wa), len(wb)) > SIMILARITY_THRESHOLD


def score_item(item: StudyItem) -> int:
    score = 50
    prompt_len = len(item.prompt)
    if 20 <= prompt_len <= 100:
        score += 20
    elif prompt_len < 10:
        score -= 20
    if 5 <= len(item.answer_text()) <= 50:
        score += 15
    if item.hints:
        score += 10
    if item.explanation and len(item.explanation) > 10:
        score += 10
    if item.examples:
        score += 5
    return score


def to_study_item(candidate: Union[StudyItem, CandidatePair], kind: ItemKind = ItemKind.FLASHCARD) -> StudyItem:
    if isinstance(candidate, StudyItem):
        return candidate
    return StudyItem(
        kind=kind,
        prompt=candidate.prompt,
        answer=candidate.answer,
        category=candidate.category,
        source_sentence=candidate.source_sentence,
    )


class ContentRanker:
    """Drops near-duplicate prompts, then orders by a fixed quality score.

    Output is deterministic for a given input order, and ranking an already
    ranked list returns it unchanged.
    """

    def dedupe(self, items: Iterable[StudyItem]) -> List[StudyItem]:
        kept: List[StudyItem] = []
        for item in items:
            if any(is_similar_prompt(item.prompt, k.prompt) for k in kept):
                continue
            kept.append(item)
        return kept

    def rank(self, candidates: Iterable[Union[StudyItem, CandidatePair]], target_count: int) -> List[StudyItem]:
        items = [to_study_item(c) for c in candidates]
        unique = self.dedupe(items)
        # sorted() is stable, ties keep input order
        ranked = sorted(unique, key=score_item, reverse=True)
        if len(unique) != len(items):
            LOG.debug('ranker_dropped_duplicates', extra={'dropped': len(items) - len(unique)})
        return ranked[:max(0, target_count)]
