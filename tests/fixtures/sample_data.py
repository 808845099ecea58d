SAMPLE_KOREAN_TEXT = (
    '광합성은 식물이 빛 에너지를 이용해 포도당을 만드는 과정이다. '
    '엽록체는 광합성이 일어나는 세포 소기관이다. '
    '빛이 부족하기 때문에 식물의 성장이 느려진다. '
    '광합성의 특징은 산소를 방출한다는 것이다. '
    '식물은 뿌리를 통해 물을 흡수하고 잎으로 이산화탄소를 받아들인다. '
    '광합성 속도는 온도와 빛의 세기에 따라 달라진다.'
)

SAMPLE_ENGLISH_TEXT = (
    'Photosynthesis is a process that converts light energy into chemical energy. '
    'Chlorophyll refers to the green pigment found in plant cells. '
    'Plants grow slowly because they do not receive enough light.'
)
