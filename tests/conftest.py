"""Shared test fixtures."""

from __future__ import annotations

import random
from typing import Any, Dict, List, Optional

import pytest
import requests

from models import GenerationInput, RenderRequest, RenderResult


CONCEPTS = [
    {
        "name": "Self-Attention",
        "explanation": "Every word looks at every other word to decide what matters for its meaning.",
        "visual_metaphor": "a room where everyone can hear every conversation at once",
    },
    {
        "name": "Multi-Head Attention",
        "explanation": "Several attention operations run in parallel, each learning a different relationship.",
        "visual_metaphor": "a panel of experts each reading the same page",
    },
    {
        "name": "Positional Encoding",
        "explanation": "Sine and cosine signals tell the model where each token sits in the sequence.",
        "visual_metaphor": "numbered seats in a theatre",
    },
    {
        "name": "Feed-Forward Layers",
        "explanation": "A small network applied to each position refines the attended representation.",
        "visual_metaphor": "a polishing station on an assembly line",
    },
    {
        "name": "Residual Connections",
        "explanation": "Skip paths add each block's input to its output so gradients flow through deep stacks.",
        "visual_metaphor": "an express lane beside a busy road",
    },
    {
        "name": "Layer Normalization",
        "explanation": "Activations are rescaled per token to keep training stable across many layers.",
        "visual_metaphor": "a thermostat keeping the room temperature steady",
    },
]


def make_input_dict(
    level: str = "beginner",
    n_concepts: int = 3,
    mode: Optional[str] = None,
    tags: Optional[List[str]] = None,
    background: Optional[str] = None,
) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "summary": {
            "title": "Attention Is All You Need",
            "one_liner": "A network built only from attention beats recurrent models at translation.",
            "key_concepts": [dict(c) for c in CONCEPTS[:n_concepts]],
            "key_finding": "The Transformer reached 28.4 BLEU on WMT 2014 English-German while training far faster.",
            "real_world_impact": "Foundation of modern large language models.",
        },
        "knowledge_level": level,
        "tags": list(tags or ["nlp", "deep-learning"]),
        "arxiv_id": "1706.03762",
    }
    if mode:
        data["options"] = {"generation_mode": mode}
    if background:
        data["user_preferences"] = {"background": background}
    return data


def make_input(**kwargs: Any) -> GenerationInput:
    return GenerationInput.model_validate(make_input_dict(**kwargs))


class StubRenderer:
    """Records every request and answers with a fixed URL (or per-call URLs)."""

    def __init__(self, image_url: str = "https://x/a.png", urls: Optional[List[str]] = None) -> None:
        self.image_url = image_url
        self.urls = list(urls or [])
        self.requests: List[RenderRequest] = []

    def generate_poster(self, request: RenderRequest) -> RenderResult:
        self.requests.append(request)
        url = self.urls[len(self.requests) - 1] if self.urls else self.image_url
        return RenderResult(request_id=f"job-{len(self.requests)}", image_url=url, generation_time_ms=1)


class RecordingStore:
    def __init__(self) -> None:
        self.uploads: List[tuple] = []

    def upload(self, image_bytes: bytes, bucket_id: str, filename: str) -> str:
        self.uploads.append((image_bytes, bucket_id, filename))
        return f"{bucket_id}/{filename}"


class FakeResponse:
    """Minimal stand-in for ``requests.Response``."""

    def __init__(self, status_code: int = 200, payload: Any = None, text: str = "", content: bytes = b"") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text
        self.content = content

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON payload")
        return self._payload

    def raise_for_status(self) -> None:
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code} error")


@pytest.fixture
def beginner_input() -> GenerationInput:
    return make_input(level="beginner", n_concepts=3)


@pytest.fixture
def renderer() -> StubRenderer:
    return StubRenderer()


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)
