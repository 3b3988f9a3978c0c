"""Fusion analysis service configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, optional_env_var, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

# batch analysis of two full checklists routinely takes minutes
FUSION_SERVICE_TIMEOUT_SECONDS = 300.0


@dataclass(frozen=True)
class FusionServiceConfig:
    """Holds the webhook endpoint of the fusion analysis workflow."""

    url: str
    resilience: ResilienceConfig
    token: str | None = None

    @property
    def headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers


def get_fusion_service_config(
    *,
    resilience: ResilienceConfig | None = None,
) -> FusionServiceConfig:
    values = require_env_vars(("FUSION_SERVICE_URL",))
    timeout = env_float("FUSION_SERVICE_TIMEOUT", FUSION_SERVICE_TIMEOUT_SECONDS)
    return FusionServiceConfig(
        url=values["FUSION_SERVICE_URL"],
        token=optional_env_var("FUSION_SERVICE_TOKEN"),
        resilience=resilience
        or ResilienceConfig(
            name="fusion-service",
            timeout_seconds=timeout,
            ratelimit=RateLimit(max_calls=1, per_seconds=1.0),
        ),
    )
