"""HTTP client for the fusion analysis webhook."""

from __future__ import annotations

import asyncio
import json
from logging import getLogger
from typing import TYPE_CHECKING

import httpx

from checkfuse.adapters.http_resilience import ResilientClient

from .translator import UnexpectedPayloadError, document_payload, parse_analysis_response

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from checkfuse.config.fusion_service import FusionServiceConfig
    from checkfuse.config.http_resilience import ResilienceConfig
    from checkfuse.domain.model import Document
    from checkfuse.domain.ports import AnalysisResult

log = getLogger(__name__)


class FusionServiceError(RuntimeError):
    """Raised when the fusion service cannot be reached or answers unusably."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class FusionServiceClient:
    """Posts both documents to the analysis workflow and returns its candidates."""

    def __init__(
        self,
        *,
        config: FusionServiceConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient

    def __call__(
        self,
        doc1: Document,
        doc2: Document,
        *,
        session_id: UUID | None = None,
    ) -> AnalysisResult:
        return asyncio.run(self._analyze_async(doc1, doc2, session_id=session_id))

    async def _analyze_async(
        self,
        doc1: Document,
        doc2: Document,
        *,
        session_id: UUID | None,
    ) -> AnalysisResult:
        body = {
            "doc1_all_items": document_payload(doc1),
            "doc2_all_items": document_payload(doc2),
            "session_id": str(session_id) if session_id is not None else None,
        }
        log.info(
            "Requesting fusion analysis for %s + %s item(s)",
            len(body["doc1_all_items"]),
            len(body["doc2_all_items"]),
        )

        async with self._client_factory(self._resilience) as client:
            try:
                response = await client.post(
                    self._config.url,
                    json=body,
                    headers=self._config.headers,
                )
            except httpx.HTTPError as exc:
                raise FusionServiceError(f"Fusion service request failed: {exc}") from exc

        return self._decode(response)

    def _decode(self, response: httpx.Response) -> AnalysisResult:
        if response.is_error:
            log.error(
                "Fusion service returned %s: %s", response.status_code, response.text[:500]
            )
            raise FusionServiceError(
                f"Fusion service returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except json.JSONDecodeError as exc:
            raise FusionServiceError(
                "Fusion service returned invalid JSON", status_code=response.status_code
            ) from exc

        try:
            envelope, result = parse_analysis_response(payload)
        except UnexpectedPayloadError as exc:
            raise FusionServiceError(
                f"Unexpected fusion service payload: {exc}", status_code=response.status_code
            ) from exc

        if not envelope.success and not result.candidates:
            raise FusionServiceError(
                envelope.error or "Fusion service reported failure",
                status_code=response.status_code,
            )
        log.info(
            "Fusion service proposed %s candidate(s) (%s malformed)",
            len(result.candidates),
            len(result.rejections),
        )
        return result
