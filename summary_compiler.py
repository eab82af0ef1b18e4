"""Turn a free-text paper summary into a validated GenerationInput via an LLM."""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from errors import InvalidInputError
from models import MAX_SUMMARY_CONCEPTS, MIN_SUMMARY_CONCEPTS, GenerationInput, validate_generation_input

logger = logging.getLogger("paper2poster")

SCHEMA = f"""{{
  "summary": {{
    "title": "string (1-200 chars)",
    "one_liner": "string (10-300 chars)",
    "key_concepts": [
      {{"name": "string", "explanation": "string (>= 10 chars)", "visual_metaphor": "string (>= 5 chars)"}}
    ],  // {MIN_SUMMARY_CONCEPTS}-{MAX_SUMMARY_CONCEPTS} concepts
    "key_finding": "string (>= 10 chars)",
    "real_world_impact": "string (optional)"
  }},
  "knowledge_level": "beginner | intermediate | advanced",
  "tags": ["string", "..."],  // at least one
  "arxiv_id": "string",
  "user_preferences": {{"background": "string", "style_preference": "minimalist | detailed | academic"}},  // optional
  "options": {{"generation_mode": "single | modular"}}  // optional
}}"""


class CompilationResult(BaseModel):
    success: bool
    data: Optional[GenerationInput] = None
    errors: List[str] = Field(default_factory=list)
    attempts: int = 0
    raw_output: Optional[str] = None


def try_extract_json(text: str) -> Optional[str]:
    """First balanced ``{...}`` block in ``text``; code fences are stripped."""
    t = (text or "").strip()
    if t.startswith("```"):
        t = re.sub(r"^```[a-zA-Z]*\n", "", t)
        t = re.sub(r"\n```$", "", t).strip()

    start = t.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for j in range(start, len(t)):
        ch = t[j]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return t[start : j + 1]
    return None


class SummaryCompiler:
    """Compile free text into ``GenerationInput``.

    ``llm`` is any callable taking a prompt string and returning the model's text
    reply. Failed attempts are re-prompted with the itemised validation errors.
    """

    def __init__(self, llm: Callable[[str], str], max_retries: int = 3) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        self.llm = llm
        self.max_retries = max_retries

    def build_prompt(
        self,
        summary_text: str,
        arxiv_id: Optional[str] = None,
        knowledge_level: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> str:
        meta_lines = []
        if arxiv_id:
            meta_lines.append(f"arxiv_id: {arxiv_id}")
        if knowledge_level:
            meta_lines.append(f"knowledge_level: {knowledge_level}")
        if tags:
            meta_lines.append(f"tags: {', '.join(tags)}")
        meta_block = "\nMetadata (use these values verbatim):\n" + "\n".join(meta_lines) + "\n" if meta_lines else ""
        return f"""
Return ONLY JSON.

Schema:
{SCHEMA}

Rules:
- Exactly one JSON object, no markdown, no comments
- No extra keys
- Enum values must come from the allowed set
- If information is missing, infer conservatively and generically
- Visual metaphors must be concrete, drawable images
{meta_block}
Summary:
{summary_text.strip()}
""".strip()

    @staticmethod
    def build_retry_prompt(original_prompt: str, errors: List[str]) -> str:
        bullet_list = "\n".join(f"- {e}" for e in errors)
        return (
            f"{original_prompt}\n\n"
            "Your previous output failed validation with these errors:\n"
            f"{bullet_list}\n\n"
            "Fix every error and return ONLY the corrected JSON object."
        )

    def compile(
        self,
        summary_text: str,
        arxiv_id: Optional[str] = None,
        knowledge_level: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> CompilationResult:
        """Run up to ``max_retries`` LLM attempts until the reply validates.

        Args:
            summary_text (str): Free-text summary of the paper.
            arxiv_id (str, optional): Forced arXiv id.
            knowledge_level (str, optional): Forced audience level.
            tags (List[str], optional): Forced tags.

        Returns:
            CompilationResult: ``success`` with ``data``, or the last attempt's errors.
        """
        base_prompt = self.build_prompt(summary_text, arxiv_id, knowledge_level, tags)
        prompt = base_prompt
        errors: List[str] = []
        raw: Optional[str] = None

        for attempt in range(1, self.max_retries + 1):
            logger.info("Compiling summary (attempt %d/%d)...", attempt, self.max_retries)
            raw = self.llm(prompt)
            js = try_extract_json(raw)
            if js is None:
                logger.error("RAW HEAD: %s", (raw or "")[:400])
                errors = ["Could not extract a JSON object from the model output"]
                prompt = self.build_retry_prompt(base_prompt, errors)
                continue
            try:
                obj: Dict[str, Any] = json.loads(js)
            except json.JSONDecodeError as exc:
                errors = [f"Invalid JSON: {exc.msg} at line {exc.lineno} column {exc.colno}"]
                prompt = self.build_retry_prompt(base_prompt, errors)
                continue

            obj = self._apply_overrides(obj, arxiv_id, knowledge_level, tags)
            try:
                data = validate_generation_input(obj)
            except InvalidInputError as exc:
                errors = exc.errors or [str(exc)]
                for e in errors:
                    logger.warning("  - %s", e)
                prompt = self.build_retry_prompt(base_prompt, errors)
                continue

            logger.info("Summary compiled after %d attempt(s)", attempt)
            return CompilationResult(success=True, data=data, attempts=attempt, raw_output=raw)

        logger.error("Summary compilation failed after %d attempts", self.max_retries)
        return CompilationResult(success=False, errors=errors, attempts=self.max_retries, raw_output=raw)

    @staticmethod
    def _apply_overrides(
        obj: Any, arxiv_id: Optional[str], knowledge_level: Optional[str], tags: Optional[List[str]]
    ) -> Any:
        if not isinstance(obj, dict):
            return obj
        out = dict(obj)
        if arxiv_id:
            out["arxiv_id"] = arxiv_id
        if knowledge_level:
            out["knowledge_level"] = knowledge_level
        if tags:
            out["tags"] = list(tags)
        return out
