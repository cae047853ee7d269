import json
import pytest

import httpx
from fastapi.testclient import TestClient

import main as recall_main
from recall.providers import ProviderGateway
from tests.fixtures.mock_providers import reply_with, reply_raw, fail_with, MOCK_BLOCKS_RESPONSE, MOCK_QA_RESPONSE, MOCK_PROBE_RESPONSE


@pytest.fixture
def client(monkeypatch):
    for name in ('RECALL_PROVIDER', 'RECALL_API_KEY', 'RECALL_MODEL'):
        monkeypatch.delenv(name, raising=False)
    recall_main.usage_tracker.reset()
    return TestClient(recall_main.app)


@pytest.fixture
def use_transport(make_gateway):
    def _use(transport, **kwargs):
        ProviderGateway._instance = make_gateway(transport, **kwargs)
        return transport
    return _use


@pytest.mark.integration
def test_health_endpoint(client):
    r = client.get('/health', headers={'X-Request-ID': 'trace-123'})
    assert r.status_code == 200
    assert r.json()['status'] == 'ok'
    assert r.headers['X-Request-ID'] == 'trace-123'


@pytest.mark.integration
def test_ready_reflects_configuration(client):
    r = client.get('/ready')
    assert r.status_code == 503
    assert r.json()['status'] == 'not ready'

    r = client.post('/provider/configure', json={'api_key': 'sk-ant-api03-xyz'})
    assert r.status_code == 200
    assert r.json()['provider'] == 'anthropic'
    assert r.json()['model'] == 'claude-3-5-haiku-20241022'

    r = client.get('/ready')
    assert r.status_code == 200
    assert r.json()['provider'] == 'anthropic'


@pytest.mark.integration
def test_provider_detect(client):
    r = client.post('/provider/detect', json={'api_key': 'AIzaSyExample'})
    assert r.status_code == 200
    assert r.json()['provider'] == 'google'
    assert r.json()['default_model'] == 'gemini-1.5-flash'

    r = client.post('/provider/detect', json={'api_key': 'who-knows'})
    assert r.status_code == 422
    assert r.json()['success'] is False


@pytest.mark.integration
def test_provider_configure_validation(client):
    r = client.post('/provider/configure', json={'api_key': 'who-knows'})
    assert r.status_code == 422
    r = client.post('/provider/configure', json={'api_key': 'who-knows', 'provider': 'openai'})
    assert r.status_code == 400
    r = client.post('/provider/configure', json={'api_key': '   '})
    assert r.status_code == 400
    r = client.post('/provider/configure', json={'api_key': 'who-knows', 'provider': 'openai', 'model': 'gpt-4o'})
    assert r.status_code == 200
    assert ProviderGateway.get_instance().config.model == 'gpt-4o'


@pytest.mark.integration
def test_provider_test(client, use_transport):
    use_transport(reply_with('openai', MOCK_PROBE_RESPONSE))
    r = client.post('/provider/test')
    assert r.status_code == 200
    assert r.json()['connected'] is True

    use_transport(reply_raw('nope', status_code=401))
    assert client.post('/provider/test').json()['connected'] is False


@pytest.mark.integration
def test_information_process(client, use_transport):
    use_transport(reply_with('openai', MOCK_BLOCKS_RESPONSE))
    body = {'information': 'Photosynthesis notes...', 'input_prompt': 'Split by idea', 'context_prompt': 'Biology'}
    r = client.post('/information/process', json=body)
    assert r.status_code == 200
    j = r.json()
    assert j['success'] is True
    assert [b['content'] for b in j['blocks']] == json.loads(MOCK_BLOCKS_RESPONSE)
    assert j['blocks'][1]['metadata']['index'] == 1
    assert 'createdAt' in j['blocks'][0]['metadata']
    assert j['usage']['in_tokens'] > 0

    usage = client.get('/usage').json()
    assert usage == j['usage']


@pytest.mark.integration
def test_information_process_empty_text(client, use_transport):
    transport = use_transport(reply_with('openai', MOCK_BLOCKS_RESPONSE))
    r = client.post('/information/process', json={'information': '  ', 'input_prompt': 'i', 'context_prompt': 'c'})
    assert r.status_code == 400
    assert transport.requests == []


@pytest.mark.integration
def test_information_process_not_configured(client):
    r = client.post('/information/process', json={'information': 'text', 'input_prompt': 'i', 'context_prompt': 'c'})
    assert r.status_code == 409
    assert r.json()['success'] is False
    assert 'request_id' in r.json()


@pytest.mark.integration
def test_information_process_vendor_error(client, use_transport):
    use_transport(reply_raw('{"error": "overloaded"}', status_code=529), provider='anthropic', credential='sk-ant-x', model='claude-3-5-haiku-20241022')
    r = client.post('/information/process', json={'information': 'text', 'input_prompt': 'i', 'context_prompt': 'c'})
    assert r.status_code == 502
    assert 'overloaded' in r.json()['details']


@pytest.mark.integration
def test_information_process_unreachable(client, use_transport):
    use_transport(fail_with(lambda request: httpx.ConnectError('refused', request=request)))
    r = client.post('/information/process', json={'information': 'text', 'input_prompt': 'i', 'context_prompt': 'c'})
    assert r.status_code == 503


@pytest.mark.integration
def test_questions_generate_trims_context(client, use_transport):
    transport = use_transport(reply_with('google', MOCK_QA_RESPONSE), provider='google', credential='AIzaKey', model='gemini-1.5-flash')
    body = {
        'main_block': {'id': 'm', 'content': 'Main block'},
        'context_before': [{'id': f'p{i}', 'content': f'Before {i}'} for i in range(3)],
        'context_after': [{'id': f'n{i}', 'content': f'After {i}'} for i in range(3)],
        'output_prompt': 'Ask why',
        'context_prompt': 'Biology',
    }
    r = client.post('/questions/generate', json=body)
    assert r.status_code == 200
    assert r.json()['question'] == json.loads(MOCK_QA_RESPONSE)['question']

    prompt = json.loads(transport.requests[0].content)['contents'][0]['parts'][0]['text']
    assert 'Before 0' not in prompt
    assert 'Before 1\nBefore 2' in prompt
    assert 'After 0\nAfter 1' in prompt
    assert 'After 2' not in prompt


@pytest.mark.integration
def test_questions_generate_fallback(client, use_transport):
    use_transport(reply_with('openai', 'I cannot do that.'))
    body = {'main_block': {'content': 'Enzymes lower activation energy.'}, 'output_prompt': 'o', 'context_prompt': 'c'}
    r = client.post('/questions/generate', json=body)
    assert r.status_code == 200
    assert r.json()['answer'] == 'Enzymes lower activation energy.'
    assert r.json()['question'].endswith('...?')


@pytest.mark.integration
def test_sheet_endpoints(client):
    r = client.post('/sheets/new', json={'title': 'Chem'})
    assert r.status_code == 200
    sheet = r.json()
    assert sheet['title'] == 'Chem'
    assert sheet['contextPrompt']

    sheet['information'] = [{'id': 'b1', 'content': 'Acids donate protons.'}]
    r = client.post('/sheets/format', json=sheet)
    assert r.status_code == 200
    content = r.json()['content']
    assert content.startswith('Chem\n')

    r = client.post('/sheets/parse', json={'content': content})
    assert r.status_code == 200
    parsed = r.json()
    assert parsed['title'] == 'Chem'
    assert parsed['information'][0]['content'] == 'Acids donate protons.'


@pytest.mark.integration
def test_sheet_parse_invalid_block(client):
    content = '\n'.join(['T', 'D', '=======', 'c', '=======', 'i', '=======', 'o', '=======', '[{"id": 1}]'])
    r = client.post('/sheets/parse', json={'content': content})
    assert r.status_code == 422
    assert r.json()['success'] is False
