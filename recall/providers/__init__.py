"""
LLM provider access: configuration, per-vendor wire adapters and the gateway
that dispatches normalized prompt pairs to them.
"""
from .config import ProviderId, ProviderConfig
from .errors import ProviderGatewayError, NotConfiguredError, UnsupportedProviderError, ProviderError, ProviderConnectionError
from .adapters import ProviderAdapter, OpenAIAdapter, AnthropicAdapter, DeepSeekAdapter, GoogleAdapter, get_adapter
from .gateway import ProviderGateway
from .detection import ProviderPreset, detect_provider

__all__ = [
	'ProviderId', 'ProviderConfig',
	'ProviderGatewayError', 'NotConfiguredError', 'UnsupportedProviderError', 'ProviderError', 'ProviderConnectionError',
	'ProviderAdapter', 'OpenAIAdapter', 'AnthropicAdapter', 'DeepSeekAdapter', 'GoogleAdapter', 'get_adapter',
	'ProviderGateway',
	'ProviderPreset', 'detect_provider',
]
