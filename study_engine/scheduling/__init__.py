"""
Spaced repetition (SM-2) scheduling.
"""
from .sm2 import SpacedRepetitionScheduler, ReviewResult, Progress, Recommendation, round_half_up

__all__ = [
	'SpacedRepetitionScheduler',
	'ReviewResult',
	'Progress',
	'Recommendation',
	'round_half_up',
]
