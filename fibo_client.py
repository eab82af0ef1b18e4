"""HTTP client for the structured-prompt image renderer (submit, then poll)."""
from __future__ import annotations

import json
import logging
import math
import time
from typing import Any, Callable, Dict, Optional

import requests

from config import FiboConfig
from errors import RendererError, RendererTimeoutError
from models import RenderRequest, RenderResult, StructuredPrompt

logger = logging.getLogger("paper2poster")

NEGATIVE_PROMPT = (
    "blurry text, illegible labels, distorted fonts, low contrast text, pixelated letters, unreadable text, "
    "fuzzy text edges, text artifacts, poor typography, unclear letters, smudged text, compressed text, "
    "watermark, low quality, amateur design, cluttered, messy"
)

PENDING_STATES = ("PENDING", "PROCESSING", "IN_PROGRESS")
DONE_STATES = ("COMPLETED", "COMPLETE")
FAILED_STATES = ("FAILED", "ERROR")


def _now_ms() -> int:
    return int(time.time() * 1000)


def _image_url(data: Dict[str, Any]) -> Optional[str]:
    result = data.get("result")
    if isinstance(result, dict) and result.get("image_url"):
        return result["image_url"]
    return data.get("image_url")


def _status(data: Dict[str, Any]) -> str:
    return str(data.get("status") or "").upper()


class FiboClient:
    """Renderer client.

    ``sleep`` is injectable so polling can be exercised without waiting.
    """

    def __init__(self, config: FiboConfig, sleep: Callable[[float], None] = time.sleep) -> None:
        if not config.api_key:
            raise RendererError("FIBO API key is required")
        self.config = config
        self._sleep = sleep

    @property
    def base_url(self) -> str:
        return self.config.base_url.rstrip("/")

    def _headers(self, json_body: bool = True) -> Dict[str, str]:
        headers = {"api_token": self.config.api_key}
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    def _payload(self, request: RenderRequest) -> Dict[str, Any]:
        return {
            "structured_prompt": json.dumps(request.structured_prompt.model_dump()),
            "seed": request.seed,
            "image_size": request.image_size.model_dump(),
            "output_format": "png",
            "sync": True,
            "steps_num": self.config.steps_num,
            "enhance_image": True,
            "guidance_scale": self.config.guidance_scale,
            "aspect_ratio": "1:1",
            "fast": False,
            "negative_prompt": NEGATIVE_PROMPT,
        }

    def generate_poster(self, request: RenderRequest) -> RenderResult:
        """Submit one render and return its image URL, polling if the job is asynchronous.

        Args:
            request (RenderRequest): Structured prompt, seed and image size.

        Returns:
            RenderResult: Completed result carrying ``image_url``.

        Raises:
            RendererError: Non-2xx response, explicit failure, or malformed response.
            RendererTimeoutError: Polling budget exhausted.
        """
        start = _now_ms()
        url = f"{self.base_url}/image/generate"
        try:
            r = requests.post(
                url,
                headers=self._headers(),
                json=self._payload(request),
                timeout=self.config.request_timeout_s,
            )
        except requests.RequestException as exc:
            raise RendererError(f"FIBO request failed: {exc}") from exc

        if not r.ok:
            raise RendererError(f"FIBO API error ({r.status_code}): {r.text[:300]}", status_code=r.status_code)
        try:
            data = r.json()
        except ValueError as exc:
            raise RendererError("FIBO API returned a non-JSON response") from exc
        if not isinstance(data, dict):
            raise RendererError(f"Unexpected FIBO response structure: {data!r}")
        logger.debug("FIBO submit response: %s", data)

        request_id = data.get("request_id")
        image_url = _image_url(data) if isinstance(data.get("result"), dict) else None
        if image_url:
            return RenderResult(
                request_id=request_id, image_url=image_url, generation_time_ms=_now_ms() - start
            )

        status = _status(data)
        if status in PENDING_STATES or (not status and request_id):
            return self._poll(request_id, start, data.get("status_url"))
        if status in DONE_STATES:
            image_url = _image_url(data)
            if not image_url:
                raise RendererError("FIBO reported completion without an image URL")
            return RenderResult(request_id=request_id, image_url=image_url, generation_time_ms=_now_ms() - start)
        if status in FAILED_STATES:
            raise RendererError(f"FIBO generation failed: {data.get('error') or 'Unknown error'}")
        raise RendererError(f"Unexpected FIBO response structure: {json.dumps(data)[:300]}")

    def _poll(self, request_id: Optional[str], start: int, status_url: Optional[str] = None) -> RenderResult:
        if not status_url and not request_id:
            raise RendererError("FIBO response has neither a status URL nor a request id")
        url = status_url or f"{self.base_url}/status/{request_id}"
        attempts = self.config.max_poll_attempts

        for attempt in range(attempts):
            self._sleep(self.config.poll_interval_s)
            last = attempt == attempts - 1
            try:
                r = requests.get(url, headers=self._headers(json_body=False), timeout=self.config.request_timeout_s)
                if not r.ok:
                    logger.warning("Poll attempt %d failed: HTTP %d", attempt + 1, r.status_code)
                    continue
                data = r.json()
            except (requests.RequestException, ValueError) as exc:
                if last:
                    raise RendererError(f"FIBO polling failed: {exc}") from exc
                logger.warning("Poll attempt %d error: %s", attempt + 1, exc)
                continue

            status = _status(data) if isinstance(data, dict) else ""
            if status in DONE_STATES:
                image_url = _image_url(data)
                if not image_url:
                    raise RendererError("FIBO reported completion without an image URL")
                return RenderResult(
                    request_id=request_id, image_url=image_url, generation_time_ms=_now_ms() - start
                )
            if status in FAILED_STATES:
                raise RendererError(f"FIBO generation failed: {data.get('error') or 'Unknown error'}")
            logger.debug("FIBO generation in progress (attempt %d/%d)", attempt + 1, attempts)

        raise RendererTimeoutError(
            f"FIBO generation timeout after {attempts * self.config.poll_interval_s:g} seconds"
        )

    @staticmethod
    def estimate_generation_time(prompt: StructuredPrompt) -> int:
        """Rough render time in seconds from prompt complexity."""
        seconds = 15.0
        seconds += len(prompt.objects) * 1
        seconds += len(prompt.text_render) * 0.5
        if prompt.aesthetics.aesthetic_score == "very high" or prompt.aesthetics.preference_score == "very high":
            seconds += 5
        return math.ceil(seconds)

    def test_connection(self) -> bool:
        """Send a minimal synchronous request to verify the API key."""
        try:
            r = requests.post(
                f"{self.base_url}/image/generate",
                headers=self._headers(),
                json={"prompt": "test connection", "sync": True},
                timeout=self.config.request_timeout_s,
            )
        except requests.RequestException as exc:
            logger.error("FIBO connection test failed: %s", exc)
            return False
        if not r.ok:
            logger.error("FIBO connection test failed (%d): %s", r.status_code, r.text[:300])
        return r.ok
