"""
DraftWriter: second pipeline stage.

Sends the parsed document plus category and instructions to the
provider and turns the answer into a first-draft article.
"""

import re
import time
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from draftdesk.agents.provider import OllamaCloudClient
from draftdesk.errors import EmptyOutputError
from draftdesk.utils.text import extract_json, wrap_document_for_prompt
from draftdesk.agents.prompts import build_draft_prompt


EXCERPT_FALLBACK_CHARS = 200


@dataclass
class Article:
    """A generated article."""
    title: str
    content: str
    excerpt: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_model_output(cls, data: Any) -> Optional["Article"]:
        """Build an Article from parsed JSON, or None if required fields are missing."""
        if not isinstance(data, dict):
            return None

        title = data.get("title")
        content = data.get("content")
        excerpt = data.get("excerpt") or ""
        if not isinstance(title, str) or not isinstance(content, str):
            return None
        if not title.strip() or not content.strip():
            return None
        if not isinstance(excerpt, str):
            excerpt = ""

        return cls(title=title.strip(), content=content.strip(), excerpt=excerpt.strip())


@dataclass
class DraftResult:
    """Result from DraftWriter."""
    article: Article
    model_used: str
    generation_time: float
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None


class DraftWriter:
    """
    Draft stage.

    Raises ProviderError when the call fails and EmptyOutputError when
    the answer holds no usable title and content.
    """

    def __init__(self, client: OllamaCloudClient, max_tokens: int = 2048):
        self.client = client
        self.max_tokens = max_tokens

    async def write(
        self,
        document_text: str,
        category: str,
        instructions: Optional[str],
        system_prompt: str,
        temperature: float = 0.3
    ) -> DraftResult:
        start_time = time.time()

        prompt = build_draft_prompt(
            instructions=instructions,
            category=category,
            wrapped_document=wrap_document_for_prompt(document_text) if document_text else None
        )

        response = await self.client.generate(
            prompt,
            system=system_prompt,
            temperature=temperature,
            max_tokens=self.max_tokens
        )

        if not response.response.strip():
            raise EmptyOutputError("Provider returned an empty response")

        article = Article.from_model_output(extract_json(response.response))
        if article is None:
            raw_sample = response.response[:200]
            raise EmptyOutputError(f"Draft response has no usable title/content. Raw: {raw_sample}")

        if not article.excerpt:
            article.excerpt = _plain_excerpt(article.content)

        return DraftResult(
            article=article,
            model_used=response.model or self.client.model,
            generation_time=time.time() - start_time,
            prompt_tokens=response.prompt_tokens,
            completion_tokens=response.completion_tokens
        )


def _plain_excerpt(content: str) -> str:
    text = " ".join(re.sub(r"<[^>]+>", " ", content).split())
    if len(text) <= EXCERPT_FALLBACK_CHARS:
        return text
    return text[:EXCERPT_FALLBACK_CHARS].rsplit(" ", 1)[0] + "..."
