"""
PolishEditor: final pipeline stage.

Runs a language-quality pass (grammar, spelling, phrasing) over the
draft without changing structure or facts. This stage never raises:
it returns a PolishResult, and on failure the result carries the
unchanged draft plus the error so the pipeline can keep the draft.
"""

import time
from dataclasses import dataclass
from typing import Optional

from draftdesk.agents.prompts import POLISH_SYSTEM_PROMPT, build_polish_prompt
from draftdesk.agents.provider import OllamaCloudClient
from draftdesk.agents.writer import Article
from draftdesk.errors import ProviderError
from draftdesk.utils.text import extract_json


@dataclass
class PolishResult:
    """Result from PolishEditor."""
    success: bool
    article: Article
    generation_time: float
    error: Optional[str] = None


class PolishEditor:
    """Polish stage."""

    def __init__(
        self,
        client: OllamaCloudClient,
        temperature: float = 0.15,
        max_tokens: int = 2048
    ):
        self.client = client
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def polish(self, article: Article) -> PolishResult:
        start_time = time.time()

        try:
            response = await self.client.generate(
                build_polish_prompt(article.to_dict()),
                system=POLISH_SYSTEM_PROMPT,
                temperature=self.temperature,
                max_tokens=self.max_tokens
            )
        except ProviderError as e:
            return PolishResult(
                success=False,
                article=article,  # Return original on failure
                generation_time=time.time() - start_time,
                error=f"{e.code}: {e.message}"
            )
        except Exception as e:
            return PolishResult(
                success=False,
                article=article,
                generation_time=time.time() - start_time,
                error=f"{type(e).__name__}: {e}"
            )

        polished = Article.from_model_output(extract_json(response.response))
        if polished is None:
            return PolishResult(
                success=False,
                article=article,
                generation_time=time.time() - start_time,
                error=f"Polish response missing required fields. Raw: {response.response[:200]}"
            )

        if not polished.excerpt:
            polished.excerpt = article.excerpt

        return PolishResult(
            success=True,
            article=polished,
            generation_time=time.time() - start_time
        )
