"""
Model-free content extraction: sentence rules, answer cleanup, keyword
ranking, extractive summaries and distractor generation.
"""
from .text import split_sentences, tokenize, STOP_WORDS
from .answer_cleaner import clean_answer, REPAIR_RULES
from .rules import PatternRule, RuleEngine, DEFAULT_RULES
from .keywords import KeywordExtractor
from .summarizer import summarize_offline
from .pattern_extractor import PatternExtractor, MIN_SENTENCE_LENGTH
from .distractors import DistractorGenerator, make_false_statement, GENERIC_DISTRACTORS

__all__ = [
	'split_sentences', 'tokenize', 'STOP_WORDS',
	'clean_answer', 'REPAIR_RULES',
	'PatternRule', 'RuleEngine', 'DEFAULT_RULES',
	'KeywordExtractor',
	'summarize_offline',
	'PatternExtractor', 'MIN_SENTENCE_LENGTH',
	'DistractorGenerator', 'make_false_statement', 'GENERIC_DISTRACTORS',
]
