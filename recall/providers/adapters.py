"""Wire adapters for the supported chat-completion vendors.

Each adapter owns its endpoint, auth shape, request body and the path to the
assistant text in the response. The gateway only deals with the
`ProviderAdapter` interface.
"""
import json
from typing import Any, Dict, Optional

from .config import (
    ProviderId,
    ProviderConfig,
    OPENAI_API_URL,
    ANTHROPIC_API_URL,
    ANTHROPIC_VERSION,
    DEEPSEEK_API_URL,
    GOOGLE_API_URL,
    LLM_TEMPERATURE,
    LLM_MAX_TOKENS,
)
from .errors import ProviderError, UnsupportedProviderError

JSON_ONLY_SUFFIX = 'Please respond with valid JSON only.'
GEMINI_JSON_ONLY_SUFFIX = 'Respond with valid JSON only.'


class ProviderAdapter:
    provider: ProviderId
    label: str

    def endpoint(self, config: ProviderConfig) -> str:
        raise NotImplementedError

    def headers(self, config: ProviderConfig) -> Dict[str, str]:
        return {'Content-Type': 'application/json'}

    def params(self, config: ProviderConfig) -> Optional[Dict[str, str]]:
        return None

    def build_body(self, config: ProviderConfig, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        raise NotImplementedError

    def _text_from(self, data: Dict[str, Any]) -> str:
        raise NotImplementedError

    def extract_text(self, data: Dict[str, Any]) -> str:
        try:
            text = self._text_from(data)
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(
                f'{self.label} API returned an unexpected response shape',
                provider=self.provider.value,
                body=json.dumps(data)[:2000],
            ) from e
        if not isinstance(text, str):
            raise ProviderError(f'{self.label} API returned non-text content', provider=self.provider.value, body=json.dumps(data)[:2000])
        return text


class OpenAIAdapter(ProviderAdapter):
    provider = ProviderId.OPENAI
    label = 'OpenAI'
    url = OPENAI_API_URL

    def endpoint(self, config):
        return self.url

    def headers(self, config):
        h = super().headers(config)
        h['Authorization'] = f'Bearer {config.secret()}'
        return h

    def build_body(self, config, system_prompt, user_prompt):
        return {
            'model': config.model,
            'messages': [
                {'role': 'system', 'content': system_prompt},
                {'role': 'user', 'content': user_prompt},
            ],
            'temperature': LLM_TEMPERATURE,
        }

    def _text_from(self, data):
        return data['choices'][0]['message']['content']


class DeepSeekAdapter(OpenAIAdapter):
    # OpenAI-compatible wire format on its own endpoint
    provider = ProviderId.DEEPSEEK
    label = 'DeepSeek'
    url = DEEPSEEK_API_URL


class AnthropicAdapter(ProviderAdapter):
    provider = ProviderId.ANTHROPIC
    label = 'Anthropic'

    def endpoint(self, config):
        return ANTHROPIC_API_URL

    def headers(self, config):
        h = super().headers(config)
        h['x-api-key'] = config.secret()
        h['anthropic-version'] = ANTHROPIC_VERSION
        return h

    def build_body(self, config, system_prompt, user_prompt):
        return {
            'model': config.model,
            'system': system_prompt,
            'messages': [
                {'role': 'user', 'content': f'{user_prompt}\n\n{JSON_ONLY_SUFFIX}'},
            ],
            'max_tokens': LLM_MAX_TOKENS,
            'temperature': LLM_TEMPERATURE,
        }

    def _text_from(self, data):
        return data['content'][0]['text']


class GoogleAdapter(ProviderAdapter):
    provider = ProviderId.GOOGLE
    label = 'Google'

    def endpoint(self, config):
        return f'{GOOGLE_API_URL}/{config.model}:generateContent'

    def params(self, config):
        return {'key': config.secret()}

    def build_body(self, config, system_prompt, user_prompt):
        return {
            'contents': [{
                'parts': [{'text': f'{system_prompt}\n\n{user_prompt}\n\n{GEMINI_JSON_ONLY_SUFFIX}'}],
            }],
            'generationConfig': {
                'temperature': LLM_TEMPERATURE,
                'maxOutputTokens': LLM_MAX_TOKENS,
            },
        }

    def _text_from(self, data):
        return data['candidates'][0]['content']['parts'][0]['text']


ADAPTERS: Dict[ProviderId, ProviderAdapter] = {
    adapter.provider: adapter
    for adapter in (OpenAIAdapter(), AnthropicAdapter(), DeepSeekAdapter(), GoogleAdapter())
}


def get_adapter(provider: str) -> ProviderAdapter:
    try:
        provider_id = ProviderId(provider)
    except ValueError:
        raise UnsupportedProviderError(f'Unsupported provider: {provider}')
    return ADAPTERS[provider_id]
