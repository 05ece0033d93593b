"""
GenerationPipeline: parse -> draft -> polish.

Each stage is an object passed in at construction, so the parser,
the draft model and the polish model can be swapped independently.
Parse and draft failures abort the run with a PipelineError; a polish
failure is logged as a warning and the draft is returned instead.
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from draftdesk.agents.editor import PolishEditor
from draftdesk.agents.parser import DocumentParser
from draftdesk.agents.prompts import (
    CONTENT_SUMMARY_SYSTEM_PROMPT,
    GENERATE_POST_SYSTEM_PROMPT,
    NEWSLETTER_INTRO_SYSTEM_PROMPT,
)
from draftdesk.agents.provider import OllamaCloudClient
from draftdesk.agents.writer import DraftWriter
from draftdesk.config import AppConfig, config as default_config
from draftdesk.jobs.models import RequestType
from draftdesk.utils.logging import pipeline_logger as logger


@dataclass(frozen=True)
class PipelineProfile:
    """Per-request-type pipeline settings."""
    system_prompt: str
    temperature: float
    polish: bool = True


GENERATE_POST_PROFILE = PipelineProfile(GENERATE_POST_SYSTEM_PROMPT, temperature=0.3)
NEWSLETTER_INTRO_PROFILE = PipelineProfile(NEWSLETTER_INTRO_SYSTEM_PROMPT, temperature=0.4)
CONTENT_SUMMARY_PROFILE = PipelineProfile(CONTENT_SUMMARY_SYSTEM_PROMPT, temperature=0.2, polish=False)


def profile_for(request_type: RequestType) -> PipelineProfile:
    """Resolve the pipeline profile. Every RequestType member must be handled here."""
    if request_type is RequestType.GENERATE_POST:
        return GENERATE_POST_PROFILE
    if request_type is RequestType.NEWSLETTER_INTRO:
        return NEWSLETTER_INTRO_PROFILE
    if request_type is RequestType.CONTENT_SUMMARY:
        return CONTENT_SUMMARY_PROFILE
    raise ValueError(f"No pipeline profile for request type {request_type!r}")


class GenerationPipeline:
    """
    Stateless orchestration of the three stages.

    Usage:
        pipeline = GenerationPipeline.from_config(client)
        output = await pipeline.run(item.input_payload, item.request_type)
    """

    def __init__(
        self,
        parser: DocumentParser,
        writer: DraftWriter,
        editor: Optional[PolishEditor] = None
    ):
        self.parser = parser
        self.writer = writer
        self.editor = editor

    @classmethod
    def from_config(
        cls,
        client: OllamaCloudClient,
        app_config: Optional[AppConfig] = None
    ) -> "GenerationPipeline":
        cfg = app_config or default_config
        return cls(
            parser=DocumentParser(
                max_chars=cfg.MAX_DOCUMENT_CHARS,
                ocr_languages=cfg.OCR_LANGUAGES
            ),
            writer=DraftWriter(client),
            editor=PolishEditor(client)
        )

    async def run(self, input_payload: Dict[str, Any], request_type: RequestType) -> Dict[str, Any]:
        """
        Run all stages for one queue item.

        Returns:
            Output payload: title, content, excerpt and generation metadata.

        Raises:
            UnsupportedInputError, ProviderError, EmptyOutputError
        """
        start_time = time.time()
        profile = profile_for(request_type)

        logger.info("Pipeline stage: PARSE", request_type=request_type.value)
        parsed = await self.parser.parse(input_payload)

        logger.info("Pipeline stage: DRAFT", words=parsed.word_count)
        draft = await self.writer.write(
            document_text=parsed.text,
            category=input_payload.get("category", ""),
            instructions=input_payload.get("instructions"),
            system_prompt=profile.system_prompt,
            temperature=profile.temperature
        )
        article = draft.article

        polished = False
        polish_error = None
        if profile.polish and self.editor is not None:
            logger.info("Pipeline stage: POLISH")
            result = await self.editor.polish(article)
            if result.success:
                article = result.article
                polished = True
            else:
                polish_error = result.error
                logger.warning(
                    "Polish stage failed, keeping unpolished draft",
                    error=result.error
                )

        elapsed = round(time.time() - start_time, 2)
        logger.info("Pipeline complete", polished=polished, elapsed=elapsed)

        output = article.to_dict()
        output["metadata"] = {
            "model": draft.model_used,
            "polished": polished,
            "polish_error": polish_error,
            "source_word_count": parsed.word_count,
            "redactions": parsed.redactions,
            "prompt_tokens": draft.prompt_tokens,
            "completion_tokens": draft.completion_tokens,
            "elapsed_seconds": elapsed,
        }
        return output
