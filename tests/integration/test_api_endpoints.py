import pytest
from fastapi.testclient import TestClient

import main as app_main
from study_engine.quota import AIMode


@pytest.fixture
def client(settings, memory_store):
    services = app_main.Services(settings, store=memory_store)
    app_main.set_services(services)
    yield TestClient(app_main.app)
    app_main.set_services(None)


def _generate(client, text, **body):
    return client.post('/generate', json={'kind': 'flashcards', 'text': text, **body})


@pytest.mark.integration
def test_health_endpoint(client):
    r = client.get('/health', headers={'X-Request-ID': 'req-123'})
    assert r.status_code == 200
    data = r.json()
    assert data.get('status') == 'ok'
    assert data.get('mode') == 'offline'
    assert r.headers.get('X-Request-ID') == 'req-123'


@pytest.mark.integration
def test_generate_saves_items(client, korean_text):
    r = _generate(client, korean_text, options={'count': 3})
    assert r.status_code == 200
    data = r.json()
    assert data['success'] is True
    assert len(data['items']) == 3
    assert data['metadata']['mode'] == 'offline'
    repo = app_main.get_services().repository
    assert all(repo.get(i['id']) is not None for i in data['items'])


@pytest.mark.integration
def test_generate_without_content(client):
    r = _generate(client, '   ')
    assert r.status_code == 422
    data = r.json()
    assert data['success'] is False
    assert data['error'] == app_main.NO_CONTENT_MESSAGE


@pytest.mark.integration
def test_generate_rejects_bad_input(client, korean_text):
    assert client.post('/generate', json={'kind': 'essay', 'text': korean_text}).status_code == 422
    assert _generate(client, korean_text, options={'count': 0}).status_code == 422


@pytest.mark.integration
def test_quiz_generation(client, korean_text):
    r = client.post('/generate', json={'kind': 'quiz', 'text': korean_text, 'options': {'count': 5, 'quiz_type': 'multiple_choice'}})
    assert r.status_code == 200
    items = r.json()['items']
    assert items and all(i['question_type'] == 'multiple_choice' for i in items)
    assert all(isinstance(i['answer'], int) for i in items)


@pytest.mark.integration
def test_summarize_and_keywords(client, korean_text):
    r = client.post('/summarize', json={'text': korean_text, 'length': 'short', 'style': 'bullet'})
    assert r.status_code == 200
    assert r.json()['summary'].startswith('• ')

    r = client.post('/keywords', json={'text': korean_text, 'count': 3})
    assert r.status_code == 200
    assert r.json()['keywords'][0] == '광합성'

    assert client.post('/summarize', json={'text': ''}).status_code == 422


@pytest.mark.integration
def test_review_flow(client, korean_text):
    item = _generate(client, korean_text, options={'count': 1}).json()['items'][0]
    r = client.post('/review', json={'item_id': item['id'], 'quality': 4})
    assert r.status_code == 200
    data = r.json()
    assert data['item']['repetitions'] == 1
    assert data['review']['interval'] == 1
    assert data['review']['next_review'] == data['item']['next_review']
    assert data['review']['easiness_factor'] == data['item']['easiness_factor']
    assert app_main.get_services().repository.get(item['id']).repetitions == 1

    assert client.post('/review', json={'item_id': item['id'], 'quality': 7}).status_code == 400
    assert client.post('/review', json={'item_id': 'nope', 'quality': 3}).status_code == 404


@pytest.mark.integration
def test_usage_and_mode(client, korean_text):
    r = client.get('/usage')
    assert r.status_code == 200
    assert r.json()['usage']['current_mode'] == 'offline'

    r = client.post('/mode', json={'mode': 'mock'})
    assert r.status_code == 200
    assert r.json()['mode'] == 'mock'
    assert app_main.get_services().gateway.state.mode == AIMode.MOCK
    items = _generate(client, korean_text, options={'count': 2}).json()['items']
    assert all('mock' in i['tags'] for i in items)

    assert client.post('/mode', json={'mode': 'turbo'}).status_code == 400


@pytest.mark.integration
def test_due_items_and_document_delete(client, korean_text):
    _generate(client, korean_text, options={'count': 2, 'source_document_id': 'doc-1'})
    _generate(client, korean_text, options={'count': 1, 'source_document_id': 'doc-2'})

    r = client.get('/items/due', params={'include_new': 'true'})
    assert r.status_code == 200
    assert r.json()['count'] == 3

    r = client.delete('/documents/doc-1/items')
    assert r.status_code == 200
    assert r.json()['deleted'] == 2
    assert client.get('/items/due', params={'include_new': 'true'}).json()['count'] == 1
