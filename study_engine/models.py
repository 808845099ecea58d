"""Shared data model for generated study content.

StudyItem is the unit that gets generated, ranked, persisted and scheduled.
CandidatePair is the transient output of the pattern extractor and never
leaves a single generation call.
"""
from __future__ import annotations

import os
import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional, Set, Union

from pydantic import BaseModel, Field, field_validator, model_validator

MAX_GENERATION_COUNT = int(os.getenv('MAX_GENERATION_COUNT', '50'))
DEFAULT_EASINESS_FACTOR = 2.5
MIN_EASINESS_FACTOR = 1.3


class ItemKind(str, Enum):
    FLASHCARD = 'flashcard'
    QUIZ = 'quiz'
    SUMMARY = 'summary'
    KEYWORD = 'keyword'


class GenerationKind(str, Enum):
    FLASHCARDS = 'flashcards'
    QUIZ = 'quiz'
    SUMMARY = 'summary'
    KEYWORDS = 'keywords'


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = 'multiple_choice'
    TRUE_FALSE = 'true_false'


class QuizType(str, Enum):
    MULTIPLE_CHOICE = 'multiple_choice'
    TRUE_FALSE = 'true_false'
    MIXED = 'mixed'


class Difficulty(str, Enum):
    EASY = 'easy'
    MEDIUM = 'medium'
    HARD = 'hard'
    MIXED = 'mixed'


class PatternCategory(str, Enum):
    DEFINITION = 'definition'
    CHARACTERISTIC = 'characteristic'
    CAUSE_EFFECT = 'cause_effect'
    METHOD = 'method'
    TERMINOLOGY = 'terminology'
    ROLE = 'role'
    KEYWORD = 'keyword'


class SummaryLength(str, Enum):
    SHORT = 'short'
    MEDIUM = 'medium'
    LONG = 'long'


class SummaryStyle(str, Enum):
    PARAGRAPH = 'paragraph'
    BULLET = 'bullet'
    KEY_POINTS = 'key_points'


def new_item_id(prefix: str = 'item') -> str:
    return f'{prefix}_{uuid.uuid4().hex[:12]}'


class CandidatePair(BaseModel):
    prompt: str
    answer: str
    category: PatternCategory
    source_sentence: str


class StudyItem(BaseModel):
    id: str = Field(default_factory=new_item_id)
    kind: ItemKind = ItemKind.FLASHCARD
    prompt: str
    answer: Union[int, str]
    options: Optional[List[str]] = None
    question_type: Optional[QuestionType] = None
    difficulty: float = Field(3.0, ge=0, le=5)
    interval: int = Field(1, ge=1)
    repetitions: int = Field(0, ge=0)
    easiness_factor: float = Field(DEFAULT_EASINESS_FACTOR, ge=MIN_EASINESS_FACTOR)
    next_review: datetime = Field(default_factory=datetime.now)
    created: datetime = Field(default_factory=datetime.now)
    last_reviewed: Optional[datetime] = None
    tags: Set[str] = Field(default_factory=set)
    source_document_id: Optional[str] = None
    category: Optional[PatternCategory] = None
    hints: List[str] = Field(default_factory=list)
    explanation: Optional[str] = None
    examples: List[str] = Field(default_factory=list)
    source_sentence: Optional[str] = None

    @model_validator(mode='before')
    @classmethod
    def due_on_creation(cls, data):
        # a fresh item is due the moment it is created
        if isinstance(data, dict) and data.get('next_review') is None:
            data = dict(data)
            data['created'] = data.get('created') or datetime.now()
            data['next_review'] = data['created']
        return data

    @field_validator('options')
    @classmethod
    def options_unique(cls, v):
        if v is not None and len(set(v)) != len(v):
            raise ValueError('options must be unique')
        return v

    @model_validator(mode='after')
    def answer_index_in_range(self):
        if isinstance(self.answer, int):
            if not self.options or not 0 <= self.answer < len(self.options):
                raise ValueError('answer index out of range for options')
        return self

    def answer_text(self) -> str:
        """Answer as display text; resolves option indices."""
        if isinstance(self.answer, int) and self.options:
            return self.options[self.answer]
        return str(self.answer)


class GenerationOptions(BaseModel):
    count: int = Field(5, gt=0, le=MAX_GENERATION_COUNT)
    difficulty: Difficulty = Difficulty.MEDIUM
    types: Set[PatternCategory] = Field(default_factory=set)
    use_ai: bool = True
    quiz_type: QuizType = QuizType.MIXED
    summary_length: SummaryLength = SummaryLength.MEDIUM
    summary_style: SummaryStyle = SummaryStyle.PARAGRAPH
    source_document_id: Optional[str] = None
