"""
Ranking and enrichment of generated study items.
"""
from .ranker import ContentRanker, is_similar_prompt, score_item, to_study_item
from .enricher import ItemEnricher, text_complexity

__all__ = [
	'ContentRanker', 'is_similar_prompt', 'score_item', 'to_study_item',
	'ItemEnricher', 'text_complexity',
]
