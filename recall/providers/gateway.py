"""Provider-agnostic gateway for single-shot chat completions.

The gateway holds the active `ProviderConfig` and turns a system/user prompt
pair into the selected vendor's wire call. Calls are not queued, retried or
timed out here; each `dispatch` works from the configuration it saw when it
started.
"""
import time
from typing import Any, Dict, Optional, Union

import httpx

from recall.utils import get_logger, get_request_context, log_llm_call
from recall.utils.usage import estimate_tokens
from recall.semantic.extractor import extract_json_object
from .config import ProviderConfig
from .adapters import get_adapter
from .errors import NotConfiguredError, ProviderError, ProviderConnectionError

LOG = get_logger()

PROBE_SYSTEM_PROMPT = 'You are a helpful assistant.'
PROBE_USER_PROMPT = 'Respond with JSON: {"status": "connected"}'


class ProviderGateway:
    _instance = None

    def __init__(self, config: Optional[ProviderConfig] = None, http_client: Optional[httpx.AsyncClient] = None):
        self._config = config or ProviderConfig()
        self._http_client = http_client

    @classmethod
    def get_instance(cls) -> 'ProviderGateway':
        if cls._instance is None:
            cls._instance = ProviderGateway(ProviderConfig.from_env())
            LOG.info('ProviderGateway initialized', extra={'provider': cls._instance.config.provider, 'model': cls._instance.config.model})
        return cls._instance

    @property
    def config(self) -> ProviderConfig:
        return self._config

    def configure(self, provider: str, credential: str, model: str):
        self._config = ProviderConfig(provider=provider, credential=credential, model=model)
        LOG.info('provider_configured', extra={'provider': provider, 'model': model})

    def is_configured(self) -> bool:
        return self._config.is_complete()

    async def _post(self, url: str, **kwargs) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.post(url, **kwargs)
        async with httpx.AsyncClient(timeout=None) as client:
            return await client.post(url, **kwargs)

    async def dispatch(self, system_prompt: str, user_prompt: str, extract_text: bool = False) -> Union[str, Dict[str, Any]]:
        config = self._config
        if not config.is_complete():
            raise NotConfiguredError('Provider gateway not configured')
        adapter = get_adapter(config.provider)

        start = time.time()
        try:
            resp = await self._post(
                adapter.endpoint(config),
                headers=adapter.headers(config),
                params=adapter.params(config),
                json=adapter.build_body(config, system_prompt, user_prompt),
            )
        except httpx.HTTPError as e:
            LOG.warning('provider_connection_failed', extra={'provider': adapter.provider.value, 'error': str(e)})
            raise ProviderConnectionError(f'{adapter.label} API unreachable: {e}', provider=adapter.provider.value) from e
        duration_ms = int((time.time() - start) * 1000)

        if not resp.is_success:
            LOG.warning('provider_http_error', extra={'provider': adapter.provider.value, 'status_code': resp.status_code, 'duration_ms': duration_ms})
            raise ProviderError(f'{adapter.label} API error: {resp.text}', provider=adapter.provider.value, status_code=resp.status_code, body=resp.text)
        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderError(f'{adapter.label} API returned invalid JSON', provider=adapter.provider.value, status_code=resp.status_code, body=resp.text) from e

        text = adapter.extract_text(data) if extract_text else None
        log_llm_call(
            get_request_context().get('request_id'),
            adapter.provider.value,
            config.model,
            estimate_tokens(system_prompt + user_prompt),
            estimate_tokens(text) if text is not None else None,
            duration_ms,
            status_code=resp.status_code,
        )
        return text if extract_text else data

    async def test_connection(self) -> bool:
        try:
            text = await self.dispatch(PROBE_SYSTEM_PROMPT, PROBE_USER_PROMPT, extract_text=True)
            result = extract_json_object(text)
        except Exception:
            LOG.warning('connection_test_failed', exc_info=True)
            return False
        return result.get('status') == 'connected'
