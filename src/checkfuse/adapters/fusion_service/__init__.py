"""Public interface for the fusion service adapter."""

from __future__ import annotations

from .client import FusionServiceClient, FusionServiceError
from .schema import AutoFusionPayload, AutoFusionResponse, MergedItemPayload
from .translator import (
    UnexpectedPayloadError,
    adapt_legacy_response,
    document_payload,
    parse_analysis_response,
    parse_fusion,
)

__all__ = [
    "AutoFusionPayload",
    "AutoFusionResponse",
    "FusionServiceClient",
    "FusionServiceError",
    "MergedItemPayload",
    "UnexpectedPayloadError",
    "adapt_legacy_response",
    "document_payload",
    "parse_analysis_response",
    "parse_fusion",
]
