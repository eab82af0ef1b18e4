"""Tests for the renderer HTTP client."""

import json
import math
from unittest.mock import patch

import pytest
import requests

from config import FiboConfig
from errors import InvalidInputError, RendererError, RendererTimeoutError
from fibo_client import NEGATIVE_PROMPT, FiboClient
from layout_engine import LayoutEngine
from models import ImageSize, RenderRequest
from prompt_builder import PromptBuilder
from tests.conftest import FakeResponse, make_input


def _request(seed=42):
    inp = make_input(level="beginner", n_concepts=2)
    engine = LayoutEngine()
    prompt = PromptBuilder(engine).build(inp, engine.calculate_layout(2, inp.knowledge_level))
    return RenderRequest(structured_prompt=prompt, seed=seed, image_size=ImageSize(width=1024, height=1024))


class RecordingSleep:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def sleeper():
    return RecordingSleep()


@pytest.fixture
def client(sleeper):
    cfg = FiboConfig(api_key="k-123", base_url="https://fibo.test/v2", max_poll_attempts=5)
    return FiboClient(cfg, sleep=sleeper)


def test_missing_key_rejected():
    with pytest.raises(RendererError):
        FiboClient(FiboConfig(api_key=""))


def test_sync_response_returns_image(client, sleeper):
    resp = FakeResponse(200, {"request_id": "r1", "result": {"image_url": "https://img/1.png"}})
    with patch("fibo_client.requests.post", return_value=resp) as post:
        result = client.generate_poster(_request())
    assert result.image_url == "https://img/1.png"
    assert result.request_id == "r1"
    assert sleeper.calls == []

    args, kwargs = post.call_args
    assert args[0] == "https://fibo.test/v2/image/generate"
    assert kwargs["headers"]["api_token"] == "k-123"
    body = kwargs["json"]
    assert body["seed"] == 42
    assert body["output_format"] == "png"
    assert body["steps_num"] == 50
    assert body["guidance_scale"] == 5
    assert body["image_size"] == {"width": 1024, "height": 1024}
    assert body["negative_prompt"] == NEGATIVE_PROMPT
    assert json.loads(body["structured_prompt"])["short_description"].startswith("A high-resolution")


def test_polls_until_completed(client, sleeper):
    submit = FakeResponse(200, {"request_id": "r2", "status": "PENDING"})
    polls = [
        FakeResponse(200, {"status": "processing"}),
        FakeResponse(200, {"status": "IN_PROGRESS"}),
        FakeResponse(200, {"status": "completed", "result": {"image_url": "https://img/2.png"}}),
    ]
    with patch("fibo_client.requests.post", return_value=submit), patch(
        "fibo_client.requests.get", side_effect=polls
    ) as get:
        result = client.generate_poster(_request())
    assert result.image_url == "https://img/2.png"
    assert len(sleeper.calls) == 3
    assert get.call_args[0][0] == "https://fibo.test/v2/status/r2"


def test_polls_status_url_when_given(client):
    submit = FakeResponse(200, {"request_id": "r3", "status_url": "https://fibo.test/custom/r3"})
    done = FakeResponse(200, {"status": "COMPLETE", "image_url": "https://img/3.png"})
    with patch("fibo_client.requests.post", return_value=submit), patch(
        "fibo_client.requests.get", return_value=done
    ) as get:
        result = client.generate_poster(_request())
    assert result.image_url == "https://img/3.png"
    assert get.call_args[0][0] == "https://fibo.test/custom/r3"


def test_http_error_raises(client):
    with patch("fibo_client.requests.post", return_value=FakeResponse(500, text="boom")):
        with pytest.raises(RendererError) as exc:
            client.generate_poster(_request())
    assert exc.value.status_code == 500
    assert "500" in str(exc.value)


def test_network_error_raises(client):
    with patch("fibo_client.requests.post", side_effect=requests.ConnectionError("down")):
        with pytest.raises(RendererError):
            client.generate_poster(_request())


def test_failed_status_on_submit(client):
    resp = FakeResponse(200, {"status": "FAILED", "error": "bad prompt"})
    with patch("fibo_client.requests.post", return_value=resp):
        with pytest.raises(RendererError, match="bad prompt"):
            client.generate_poster(_request())


def test_unexpected_shape(client):
    with patch("fibo_client.requests.post", return_value=FakeResponse(200, {"hello": "world"})):
        with pytest.raises(RendererError, match="Unexpected"):
            client.generate_poster(_request())


def test_failed_status_while_polling_stops_immediately(client, sleeper):
    submit = FakeResponse(200, {"request_id": "r4", "status": "PENDING"})
    polls = [FakeResponse(200, {"status": "pending"}), FakeResponse(200, {"status": "error", "error": "gpu"})]
    with patch("fibo_client.requests.post", return_value=submit), patch(
        "fibo_client.requests.get", side_effect=polls
    ):
        with pytest.raises(RendererError, match="gpu"):
            client.generate_poster(_request())
    assert len(sleeper.calls) == 2


def test_poll_errors_are_retried(client):
    submit = FakeResponse(200, {"request_id": "r5", "status": "PENDING"})
    polls = [
        requests.Timeout("slow"),
        FakeResponse(503, text="busy"),
        FakeResponse(200, {"status": "COMPLETED", "result": {"image_url": "https://img/5.png"}}),
    ]
    with patch("fibo_client.requests.post", return_value=submit), patch(
        "fibo_client.requests.get", side_effect=polls
    ):
        assert client.generate_poster(_request()).image_url == "https://img/5.png"


def test_poll_error_on_last_attempt_propagates(sleeper):
    client = FiboClient(FiboConfig(api_key="k", max_poll_attempts=2), sleep=sleeper)
    submit = FakeResponse(200, {"request_id": "r6", "status": "PENDING"})
    polls = [FakeResponse(200, {"status": "PENDING"}), requests.ConnectionError("gone")]
    with patch("fibo_client.requests.post", return_value=submit), patch(
        "fibo_client.requests.get", side_effect=polls
    ):
        with pytest.raises(RendererError, match="polling failed"):
            client.generate_poster(_request())


def test_poll_timeout(client, sleeper):
    submit = FakeResponse(200, {"request_id": "r7", "status": "PENDING"})
    with patch("fibo_client.requests.post", return_value=submit), patch(
        "fibo_client.requests.get", return_value=FakeResponse(200, {"status": "PENDING"})
    ):
        with pytest.raises(RendererTimeoutError, match="timeout after 10 seconds"):
            client.generate_poster(_request())
    assert len(sleeper.calls) == 5


def test_completed_without_url(client):
    submit = FakeResponse(200, {"request_id": "r8", "status": "PENDING"})
    with patch("fibo_client.requests.post", return_value=submit), patch(
        "fibo_client.requests.get", return_value=FakeResponse(200, {"status": "COMPLETED"})
    ):
        with pytest.raises(RendererError, match="without an image URL"):
            client.generate_poster(_request())


def test_estimate_generation_time():
    prompt = _request().structured_prompt
    expected = 15 + len(prompt.objects) + 0.5 * len(prompt.text_render) + 5
    assert FiboClient.estimate_generation_time(prompt) == math.ceil(expected)


class TestConnection:
    def test_ok(self, client):
        with patch("fibo_client.requests.post", return_value=FakeResponse(200, {})):
            assert client.test_connection() is True

    def test_rejected(self, client):
        with patch("fibo_client.requests.post", return_value=FakeResponse(401, text="no")):
            assert client.test_connection() is False

    def test_network_error(self, client):
        with patch("fibo_client.requests.post", side_effect=requests.ConnectionError("x")):
            assert client.test_connection() is False


class TestConfigFromEnv:
    def test_reads_bria_fallbacks(self, monkeypatch):
        for name in ("FIBO_API_KEY", "FIBO_API_URL", "FIBO_POLL_INTERVAL", "FIBO_MAX_POLL_ATTEMPTS"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv("BRIA_API_KEY", "bria")
        monkeypatch.setenv("BRIA_API_URL", "https://bria.test/v2/")
        cfg = FiboConfig.from_env()
        assert cfg.api_key == "bria"
        assert cfg.base_url == "https://bria.test/v2"
        assert cfg.max_poll_attempts == 150
        assert cfg.poll_interval_s == 2.0

    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("FIBO_API_KEY", raising=False)
        monkeypatch.delenv("BRIA_API_KEY", raising=False)
        with pytest.raises(InvalidInputError):
            FiboConfig.from_env()

    def test_bad_poll_values(self, monkeypatch):
        monkeypatch.setenv("FIBO_API_KEY", "k")
        monkeypatch.setenv("FIBO_MAX_POLL_ATTEMPTS", "many")
        with pytest.raises(InvalidInputError):
            FiboConfig.from_env()
