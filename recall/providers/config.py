import os
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, SecretStr


class ProviderId(str, Enum):
    OPENAI = 'openai'
    ANTHROPIC = 'anthropic'
    DEEPSEEK = 'deepseek'
    GOOGLE = 'google'


# Endpoints
OPENAI_API_URL = os.getenv('OPENAI_API_URL', 'https://api.openai.com/v1/chat/completions')
ANTHROPIC_API_URL = os.getenv('ANTHROPIC_API_URL', 'https://api.anthropic.com/v1/messages')
ANTHROPIC_VERSION = os.getenv('ANTHROPIC_VERSION', '2023-06-01')
DEEPSEEK_API_URL = os.getenv('DEEPSEEK_API_URL', 'https://api.deepseek.com/v1/chat/completions')
GOOGLE_API_URL = os.getenv('GOOGLE_API_URL', 'https://generativelanguage.googleapis.com/v1beta/models')

# Generation
LLM_TEMPERATURE = float(os.getenv('LLM_TEMPERATURE', '0.7'))
LLM_MAX_TOKENS = int(os.getenv('LLM_MAX_TOKENS', '4096'))


class ProviderConfig(BaseModel):
    """Active provider selection. Replaced as a whole, never patched."""

    model_config = ConfigDict(frozen=True)

    provider: Optional[str] = None
    credential: Optional[SecretStr] = None
    model: Optional[str] = None

    @classmethod
    def from_env(cls) -> 'ProviderConfig':
        return cls(
            provider=os.getenv('RECALL_PROVIDER') or None,
            credential=os.getenv('RECALL_API_KEY') or None,
            model=os.getenv('RECALL_MODEL') or None,
        )

    def secret(self) -> str:
        return self.credential.get_secret_value() if self.credential else ''

    def is_complete(self) -> bool:
        return bool(self.provider and self.secret() and self.model)
