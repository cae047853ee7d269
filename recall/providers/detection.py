"""Guess a provider from the shape of an API key.

This is a convenience for key entry only. Key formats change and overlap,
so a miss (or a wrong guess) is expected now and then; the gateway never
relies on it and always takes the provider explicitly.
"""
from typing import Optional

from pydantic import BaseModel

from .config import ProviderId

DEEPSEEK_KEY_LENGTH = 32


class ProviderPreset(BaseModel):
    provider: ProviderId
    default_model: str


PRESETS = {
    ProviderId.OPENAI: ProviderPreset(provider=ProviderId.OPENAI, default_model='gpt-4o-mini'),
    ProviderId.ANTHROPIC: ProviderPreset(provider=ProviderId.ANTHROPIC, default_model='claude-3-5-haiku-20241022'),
    ProviderId.DEEPSEEK: ProviderPreset(provider=ProviderId.DEEPSEEK, default_model='deepseek-chat'),
    ProviderId.GOOGLE: ProviderPreset(provider=ProviderId.GOOGLE, default_model='gemini-1.5-flash'),
}


def detect_provider(api_key: str) -> Optional[ProviderPreset]:
    key = (api_key or '').strip()
    if not key:
        return None
    if key.startswith('sk-') and not key.startswith('sk-ant-'):
        return PRESETS[ProviderId.OPENAI]
    if key.startswith('sk-ant-'):
        return PRESETS[ProviderId.ANTHROPIC]
    if len(key) == DEEPSEEK_KEY_LENGTH:
        return PRESETS[ProviderId.DEEPSEEK]
    if key.startswith('AI'):
        return PRESETS[ProviderId.GOOGLE]
    return None
