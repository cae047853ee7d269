from typing import Optional


class ProviderGatewayError(Exception):
    pass


class NotConfiguredError(ProviderGatewayError):
    pass


class UnsupportedProviderError(ProviderGatewayError):
    pass


class ProviderError(ProviderGatewayError):
    """A provider call failed; `body` carries the vendor's response text."""

    def __init__(self, message: str, provider: Optional[str] = None, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
        self.body = body


class ProviderConnectionError(ProviderError):
    pass
