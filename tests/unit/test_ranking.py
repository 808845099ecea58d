from study_engine.models import CandidatePair, Difficulty, PatternCategory, StudyItem
from study_engine.ranking import ContentRanker, ItemEnricher, is_similar_prompt, score_item


def _item(prompt, answer='적당한 길이의 답변', **kw):
    return StudyItem(prompt=prompt, answer=answer, **kw)


def test_similar_prompts():
    assert is_similar_prompt('광합성은 무엇인가요?', '광합성은 무엇인가요?')
    assert is_similar_prompt('What is the capital of France today', 'What is the capital of France now')
    assert not is_similar_prompt('광합성은 무엇인가요?', '엽록체는 무엇인가요?')


def test_score_item():
    assert score_item(_item('짧은', answer='x')) == 30
    rich = _item('광합성이 일어나는 장소는 어디인가요?', answer='엽록체라는 세포 소기관', hints=['엽으로 시작'],
                 explanation='원문: "엽록체는 광합성이 일어나는 곳이다"', examples=['예시 문장'])
    assert score_item(rich) == 110


def test_rank_dedupes_truncates_and_is_idempotent():
    ranker = ContentRanker()
    items = [
        _item('짧음'),
        _item('광합성이 일어나는 장소는 어디인가요?', hints=['h']),
        _item('광합성이 일어나는 장소는 어디인가요?'),
        _item('엽록체는 어떤 역할을 하는 세포 소기관인가요?'),
    ]
    ranked = ranker.rank(items, 5)
    assert len(ranked) == 3
    assert ranked[0].hints == ['h']
    assert ranked[-1].prompt == '짧음'
    again = ranker.rank(ranked, 5)
    assert [i.id for i in again] == [i.id for i in ranked]
    assert len(ranker.rank(items, 1)) == 1


def test_rank_accepts_candidates():
    c = CandidatePair(prompt='회사는 무엇인가요?', answer='성장하는 기업이다', category=PatternCategory.DEFINITION, source_sentence='회사는 성장하는 기업이다')
    ranked = ContentRanker().rank([c], 3)
    assert ranked[0].category == PatternCategory.DEFINITION
    assert ranked[0].answer == '성장하는 기업이다'


def test_enricher(korean_text):
    enricher = ItemEnricher()
    assert enricher.hints('짧다') == []
    hints = enricher.hints('빛 에너지를 화학 에너지로 바꾸는 과정')
    assert len(hints) == 2
    assert hints[0] == "'빛'로 시작합니다"

    item = _item('광합성은 무엇인가요?', answer='식물이 빛 에너지를 이용해 포도당을 만드는 과정이다',
                 source_sentence='광합성은 식물이 빛 에너지를 이용해 포도당을 만드는 과정이다')
    enriched = enricher.enrich(item, korean_text, Difficulty.MEDIUM)
    assert enriched.explanation.startswith('원문:')
    assert enriched.hints
    assert enriched.examples and len(enriched.examples) <= 2
    assert 0 <= enriched.difficulty <= 5
    assert enricher.difficulty(item, Difficulty.HARD) >= enricher.difficulty(item, Difficulty.EASY)
    assert enricher.explanation(_item('질문입니다?', answer='답')) == '답에 대한 기본 개념입니다.'
