"""Request-terminal failures.

Only failures with no model downstream to react to are exceptions. Tool and
provider failures are turned into data where they happen and never show up
here.
"""


class BriefingError(Exception):
    """Base exception for briefing orchestration errors"""


class MissingCredentialError(BriefingError):
    """Raised when neither Z_AI_API_KEY nor ZAI_API_KEY is configured"""

    def __init__(self, message: str = "Z_AI_API_KEY or ZAI_API_KEY is not set"):
        super().__init__(message)


class NoToolsAvailableError(BriefingError):
    """Raised when tool assembly produced an empty tool set"""

    def __init__(self, message: str = "No tools available"):
        super().__init__(message)


class ProviderInitializationError(BriefingError):
    """Raised when the provider registry itself could not be opened"""


class BriefingRequestError(BriefingError):
    """Raised by the stream consumer when the server rejects a briefing request"""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"HTTP {status_code}: {body}")


__all__ = [
    "BriefingError",
    "BriefingRequestError",
    "MissingCredentialError",
    "NoToolsAvailableError",
    "ProviderInitializationError",
]
