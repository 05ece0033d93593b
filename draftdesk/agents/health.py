"""Provider health probe."""

import time
from typing import Any, Dict, List

from draftdesk.agents.provider import OllamaCloudClient
from draftdesk.errors import ProviderError
from draftdesk.jobs.models import HealthSnapshot


def model_listed(model: str, models: List[Dict[str, Any]]) -> bool:
    """True if the model, or a tag of the same model family, is listed."""
    prefix = model.split(":")[0]
    for entry in models:
        name = entry.get("name") or entry.get("model") or ""
        if name == model or (prefix and name.startswith(prefix)):
            return True
    return False


class HealthProbe:
    """
    Checks reachability, model availability and latency of the provider.

    check() never raises; failures end up in the snapshot's error field.
    """

    def __init__(self, client: OllamaCloudClient, timeout: float = 5.0):
        self.client = client
        self.timeout = timeout

    async def check(self) -> HealthSnapshot:
        model = self.client.model

        if not self.client.is_configured:
            return HealthSnapshot(
                configured=False,
                connected=False,
                model_available=False,
                model=model,
                latency_ms=None,
                error="OLLAMA_CLOUD_API_KEY not configured"
            )

        start = time.perf_counter()
        try:
            models = await self.client.list_models(timeout=self.timeout)
        except ProviderError as e:
            return HealthSnapshot(
                configured=True,
                connected=False,
                model_available=False,
                model=model,
                latency_ms=round((time.perf_counter() - start) * 1000, 1),
                error=e.message
            )
        except Exception as e:
            return HealthSnapshot(
                configured=True,
                connected=False,
                model_available=False,
                model=model,
                latency_ms=round((time.perf_counter() - start) * 1000, 1),
                error=str(e) or type(e).__name__
            )

        return HealthSnapshot(
            configured=True,
            connected=True,
            model_available=model_listed(model, models),
            model=model,
            latency_ms=round((time.perf_counter() - start) * 1000, 1),
            error=None
        )
