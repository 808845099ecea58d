from __future__ import annotations

import math
import random
from typing import List, Optional

from study_engine.extraction import (
    DistractorGenerator,
    KeywordExtractor,
    PatternExtractor,
    make_false_statement,
    split_sentences,
    summarize_offline,
)
from study_engine.models import (
    CandidatePair,
    GenerationOptions,
    ItemKind,
    QuestionType,
    QuizType,
    StudyItem,
    SummaryLength,
    SummaryStyle,
)
from study_engine.ranking import ContentRanker, ItemEnricher, to_study_item
from study_engine.utils import get_logger

LOG = get_logger()

TRUE_FALSE_OPTIONS = ['맞다', '틀리다']
MULTIPLE_CHOICE_SHARE = 0.8


class OfflineGenerator:
    """Model-free generation: pattern extraction, distractors, ranking and enrichment."""

    def __init__(self, extractor: PatternExtractor = None, distractors: DistractorGenerator = None,
                 ranker: ContentRanker = None, enricher: ItemEnricher = None,
                 keywords: KeywordExtractor = None, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.extractor = extractor or PatternExtractor()
        self.distractors = distractors or DistractorGenerator(rng=self.rng)
        self.ranker = ranker or ContentRanker()
        self.enricher = enricher or ItemEnricher()
        self.keyword_extractor = keywords or KeywordExtractor()

    def _candidates(self, text: str, options: GenerationOptions) -> List[CandidatePair]:
        # over-fetch so ranking has something to choose from
        return self.extractor.extract(text, options.count * 2, options.types or None)

    def flashcards(self, text: str, options: GenerationOptions) -> List[StudyItem]:
        items = [
            self.enricher.enrich(to_study_item(c, ItemKind.FLASHCARD), text, options.difficulty)
            for c in self._candidates(text, options)
        ]
        return self.ranker.rank(items, options.count)

    def _multiple_choice(self, candidate: CandidatePair, text: str) -> StudyItem:
        options = [candidate.answer] + self.distractors.generate(candidate.answer, text)
        self.rng.shuffle(options)
        return StudyItem(
            kind=ItemKind.QUIZ,
            question_type=QuestionType.MULTIPLE_CHOICE,
            prompt=candidate.prompt,
            options=options,
            answer=options.index(candidate.answer),
            category=candidate.category,
            source_sentence=candidate.source_sentence,
        )

    def _true_false(self, candidate: CandidatePair, make_false: bool) -> StudyItem:
        statement = candidate.source_sentence
        if make_false:
            statement = make_false_statement(statement)
        return StudyItem(
            kind=ItemKind.QUIZ,
            question_type=QuestionType.TRUE_FALSE,
            prompt=f'{statement}. 이 문장이 옳습니까?',
            options=list(TRUE_FALSE_OPTIONS),
            answer=1 if make_false else 0,
            category=candidate.category,
            source_sentence=candidate.source_sentence,
            difficulty=2.0,
        )

    def quiz(self, text: str, options: GenerationOptions) -> List[StudyItem]:
        candidates = self._candidates(text, options)
        if options.quiz_type == QuizType.MULTIPLE_CHOICE:
            mc_count = len(candidates)
        elif options.quiz_type == QuizType.TRUE_FALSE:
            mc_count = 0
        else:
            mc_count = math.floor(options.count * MULTIPLE_CHOICE_SHARE) or 1

        # the multiple-choice share is filled first, the rest become true/false
        items = []
        tf_index = 0
        for i, c in enumerate(candidates):
            if i < mc_count:
                item = self._multiple_choice(c, text)
                item = item.model_copy(update={
                    'explanation': self.enricher.explanation(item),
                    'difficulty': self.enricher.difficulty(item, options.difficulty),
                })
            else:
                item = self._true_false(c, make_false=tf_index % 2 == 1)
                item = item.model_copy(update={'explanation': f'원문: "{c.source_sentence}"'})
                tf_index += 1
            items.append(item)
        if options.quiz_type == QuizType.MIXED:
            mc = [i for i in items if i.question_type == QuestionType.MULTIPLE_CHOICE]
            tf = [i for i in items if i.question_type == QuestionType.TRUE_FALSE]
            n_mc = min(len(mc), mc_count)
            return self.ranker.rank(mc, n_mc) + self.ranker.rank(tf, options.count - n_mc)
        return self.ranker.rank(items, options.count)

    def summary(self, text: str, length: SummaryLength = SummaryLength.MEDIUM, style: SummaryStyle = SummaryStyle.PARAGRAPH) -> str:
        return summarize_offline(text, length, style)

    def keywords(self, text: str, count: int) -> List[str]:
        return self.keyword_extractor.extract(text, count)

    def keyword_sentence(self, keyword: str, text: str) -> Optional[str]:
        for sentence in split_sentences(text):
            if keyword.lower() in sentence.lower():
                return sentence
        return None
