import os
import pytest
from pathlib import Path
from datetime import datetime, timezone

import httpx
from dotenv import load_dotenv

# load test env first
env_path = Path(__file__).resolve().parents[1] / '.env.test'
if env_path.exists():
    load_dotenv(env_path)

os.environ.setdefault('TESTING', '1')
# keep test runs from writing logs/ into the checkout
os.environ.setdefault('LOG_TO_FILE', 'false')

from recall.providers import ProviderGateway, ProviderConfig
from recall.sheets import InformationBlock, BlockMetadata, RecallSheet, create_recall_sheet


@pytest.fixture(autouse=True)
def reset_gateway_singleton():
    # each test starts without a process-wide provider selection
    ProviderGateway._instance = None
    yield
    ProviderGateway._instance = None


@pytest.fixture
def make_gateway():
    """Build a gateway whose HTTP traffic goes to the given mock transport."""

    def _make(transport, provider='openai', credential='sk-test-key', model='gpt-4o-mini'):
        config = ProviderConfig(provider=provider, credential=credential, model=model)
        return ProviderGateway(config, http_client=httpx.AsyncClient(transport=transport))

    return _make


class FakeGateway:
    """Stands in for ProviderGateway in pipeline tests; replays canned text."""

    def __init__(self, reply='', error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def dispatch(self, system_prompt, user_prompt, extract_text=False):
        self.calls.append({'system': system_prompt, 'user': user_prompt, 'extract_text': extract_text})
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def fake_gateway():
    return FakeGateway


@pytest.fixture
def sample_blocks():
    return [
        InformationBlock(id=f'b{i}', content=f'Block {i} content', metadata=BlockMetadata(created_at=datetime(2024, 3, 1, 10, i, tzinfo=timezone.utc), index=i))
        for i in range(5)
    ]


@pytest.fixture
def sample_sheet(sample_blocks):
    sheet = create_recall_sheet('Biology', {'context': 'Cell biology', 'input': 'One idea per block', 'output': 'Ask why'})
    sheet.information = list(sample_blocks)
    return sheet


@pytest.fixture
def sample_recall_text():
    return '\n'.join([
        'Biology',
        '2024-03-01T10:00:00.000Z',
        '=======',
        'Cell biology',
        '=======',
        'One idea per block',
        '=======',
        'Ask why',
        '=======',
        '[',
        '  {',
        '    "id": 1709287200000,',
        '    "content": "Mitochondria produce ATP.",',
        '    "metadata": {',
        '      "createdAt": "2024-03-01T10:00:00.000Z",',
        '      "index": 0',
        '    }',
        '  },',
        '  {',
        '    "id": "1709287200001-abcd1234",',
        '    "content": "Ribosomes build proteins."',
        '  }',
        ']',
    ])
