"""Test doubles shared across test modules."""

import asyncio
import json

import httpx

from draftdesk.agents.provider import OllamaCloudClient


class StubPipeline:
    """Pipeline double: returns a fixed output or raises a given error."""

    def __init__(self, output=None, error=None, delay=0.0):
        self.output = output if output is not None else {"title": "T", "content": "C"}
        self.error = error
        self.delay = delay
        self.calls = []

    async def run(self, input_payload, request_type):
        self.calls.append((input_payload, request_type))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return dict(self.output)


def generate_reply(payload, model="deepseek-v3.2"):
    """Body of a successful /api/generate response carrying a JSON article."""
    return {
        "model": model,
        "response": json.dumps(payload) if not isinstance(payload, str) else payload,
        "done": True,
        "prompt_eval_count": 120,
        "eval_count": 80,
        "total_duration": 1_500_000_000,
    }


def make_client(handler, api_key="test-key", **kwargs) -> OllamaCloudClient:
    kwargs.setdefault("retry_delay", 0)
    return OllamaCloudClient(
        api_key=api_key,
        base_url="https://ollama.test",
        model="deepseek-v3.2",
        transport=httpx.MockTransport(handler),
        **kwargs
    )
