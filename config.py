"""Run and renderer configuration."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from errors import InvalidInputError

DEFAULT_FIBO_URL = "https://engine.prod.bria-api.com/v2"


@dataclass
class FiboConfig:
    api_key: str
    base_url: str = DEFAULT_FIBO_URL
    poll_interval_s: float = 2.0
    # 150 attempts * 2s = 5 minutes max
    max_poll_attempts: int = 150
    request_timeout_s: float = 120.0
    steps_num: int = 50
    guidance_scale: float = 5

    @classmethod
    def from_env(cls) -> "FiboConfig":
        """Build a config from FIBO_* / BRIA_* environment variables."""
        api_key = os.environ.get("FIBO_API_KEY") or os.environ.get("BRIA_API_KEY") or ""
        if not api_key:
            raise InvalidInputError("FIBO_API_KEY or BRIA_API_KEY environment variable is required")
        base_url = os.environ.get("FIBO_API_URL") or os.environ.get("BRIA_API_URL") or DEFAULT_FIBO_URL
        cfg = cls(api_key=api_key, base_url=base_url.rstrip("/"))
        interval = os.environ.get("FIBO_POLL_INTERVAL")
        attempts = os.environ.get("FIBO_MAX_POLL_ATTEMPTS")
        try:
            if interval:
                cfg.poll_interval_s = float(interval)
            if attempts:
                cfg.max_poll_attempts = int(attempts)
        except ValueError as exc:
            raise InvalidInputError(f"Invalid polling configuration: {exc}") from exc
        if cfg.max_poll_attempts < 1:
            raise InvalidInputError("FIBO_MAX_POLL_ATTEMPTS must be >= 1")
        return cfg


@dataclass
class RunConfig:
    input_path: Path
    out_dir: Path
    generation_mode: Optional[str]
    knowledge_level: Optional[str]
    seed: Optional[int]
    bucket_id: str
    store_dir: Optional[Path]
    verbose: bool
    dry_run: bool
