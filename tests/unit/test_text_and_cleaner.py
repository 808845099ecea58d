from study_engine.extraction.text import split_sentences, strip_particle, tokenize, josa, has_batchim, is_korean
from study_engine.extraction.answer_cleaner import repair_ending, truncate_answer, clean_answer


def test_split_sentences_on_terminators_and_newlines():
    assert split_sentences('첫 문장이다. 둘째 문장! 셋째?\n넷째') == ['첫 문장이다', '둘째 문장', '셋째', '넷째']
    assert split_sentences('') == []


def test_particles_and_batchim():
    assert strip_particle('광합성은') == '광합성'
    assert strip_particle('식물의') == '식물'
    # stem must keep two characters
    assert strip_particle('사이') == '사이'
    assert strip_particle('data') == 'data'
    assert has_batchim('역할') is True
    assert has_batchim('회사') is False
    assert josa('회사', '은', '는') == '회사는'
    assert josa('역할', '을', '를') == '역할을'
    assert is_korean('abc 가') and not is_korean('abc')


def test_tokenize_drops_stop_words_and_digits():
    tokens = tokenize('광합성은 식물의 그리고 2024 과정')
    assert '광합성' in tokens
    assert '식물' in tokens
    assert '그리고' not in tokens
    assert '2024' not in tokens


def test_repair_table_first_match_only():
    assert repair_ending('역할을 수행 한') == '역할을 수행한다'
    assert repair_ending('데이터를 수행 한') == '데이터를 수행한다'
    assert repair_ending('분석을 하') == '분석을한다'
    assert repair_ending('데이터를 저장 한') == '데이터를 저장한다'
    assert repair_ending('내일 발표 할') == '내일 발표한다'
    assert repair_ending('데이터 를') == '데이터'
    assert repair_ending('정상적인 문장이다') == '정상적인 문장이다'


def test_truncate_answer_respects_max_length():
    short = '짧은 답변이다'
    assert truncate_answer(short) == short
    long_text = ' '.join(['word'] * 40)
    out = truncate_answer(long_text, 70)
    assert 0 < len(out) <= 70
    assert not out.endswith(' ')


def test_clean_answer_strips_trailing_punctuation():
    assert clean_answer('  빛 에너지를   이용한다.  ') == '빛 에너지를 이용한다'
    assert clean_answer('') == ''
