"""Run outputs: one JSON file per generation plus a runs.jsonl journal."""
from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from models import GenerationOutput, StructuredPrompt

logger = logging.getLogger("paper2poster")

RUNS_FILE = "runs.jsonl"


def now_iso() -> str:
    return datetime.now().isoformat(timespec="seconds")


def generation_path(out_dir: Path, request_id: str) -> Path:
    return Path(out_dir) / f"generation-{request_id}.json"


def save_generation(
    output: GenerationOutput, out_dir: Path, prompt: Optional[StructuredPrompt] = None
) -> Path:
    """Write the full output as JSON and append a summary line to the run journal."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    record = output.model_dump(mode="json")
    if prompt is not None and record["metadata"].get("fibo_prompt") is None:
        record["metadata"]["fibo_prompt"] = prompt.model_dump(mode="json")

    path = generation_path(out_dir, output.request_id)
    path.write_text(json.dumps(record, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    append_run(
        out_dir,
        {
            "request_id": output.request_id,
            "status": record["status"],
            "final_image_url": output.final_image_url,
            "generation_mode": output.metadata.generation_mode,
            "knowledge_level": record["metadata"].get("knowledge_level"),
            "error": output.error,
            "saved_at": now_iso(),
            "path": path.name,
        },
    )
    logger.info("Saved generation output: %s", path)
    return path


def save_prompt(prompt: StructuredPrompt, out_dir: Path, name: str) -> Path:
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / f"{name}.json"
    path.write_text(prompt.model_dump_json(indent=2) + "\n", encoding="utf-8")
    return path


def append_run(out_dir: Path, entry: Dict[str, Any]) -> None:
    path = Path(out_dir) / RUNS_FILE
    with path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(entry, ensure_ascii=False) + "\n")


def load_runs(out_dir: Path) -> List[Dict[str, Any]]:
    path = Path(out_dir) / RUNS_FILE
    if not path.exists():
        return []
    entries = []
    for line in path.read_text(encoding="utf-8").splitlines():
        if not line.strip():
            continue
        try:
            entries.append(json.loads(line))
        except json.JSONDecodeError:
            logger.debug("Skipping corrupt run journal line: %s", line[:80])
            continue
    return entries
