from .cancellation import CancellationToken
from .router import ProviderRouter
from .types import (
    BadResponse,
    GenerationCancelled,
    GenerationRequest,
    GenerationResult,
    InvalidEndpoint,
    MissingModel,
    ProviderError,
    ProviderKind,
    ProviderSettings,
    RequestFailed,
    RequestPreview,
    TokenUsage,
)

__all__ = [
    "BadResponse",
    "CancellationToken",
    "GenerationCancelled",
    "GenerationRequest",
    "GenerationResult",
    "InvalidEndpoint",
    "MissingModel",
    "ProviderError",
    "ProviderKind",
    "ProviderRouter",
    "ProviderSettings",
    "RequestFailed",
    "RequestPreview",
    "TokenUsage",
]
