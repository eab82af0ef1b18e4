"""CLI entrypoint for generating an explainer poster from a paper summary JSON."""
from __future__ import annotations

import argparse
import json
import logging
import os
import re
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from config import FiboConfig, RunConfig
from errors import InvalidInputError
from fibo_client import FiboClient
from layout_engine import LayoutEngine, body_sections
from logging_utils import setup_logging
from models import GenerationInput, GenerationOutput, GenerationStatus, KnowledgeLevel, validate_generation_input
from orchestrator import PosterOrchestrator
from output_utils import save_generation, save_prompt
from prompt_builder import PromptBuilder
from prompt_validator import validate_structured_prompt
from storage_utils import LocalImageStore

logger = logging.getLogger("paper2poster")
VERSION = "0.1.0"


def print_helper() -> None:
    print("Paper2poster help")
    print("")
    print("Quick start:")
    print("  paper2poster --input summary.json")
    print("  paper2poster --input summary.json --mode modular --level advanced")
    print("  paper2poster --input summary.json --seed 1234 --store-dir ./images")
    print("  paper2poster --input summary.json --dry-run")
    print("")
    print("Defaults:")
    print("  Root runs dir: ~/paper2poster_runs or $PAPER2POSTER_ROOT_DIR")
    print("  Per-run output: <root>/<paper_title_slug>/")
    print("  Renderer key: FIBO_API_KEY or BRIA_API_KEY (a .env next to main.py is loaded)")
    print("")
    print("Common options:")
    print("  --mode single|modular  One poster image, or header/concept/footer section images")
    print("  --level LEVEL          Override the summary's knowledge level")
    print("  --seed N               Base seed for reproducible renders")
    print("  --out-dir PATH         Override output directory")
    print("  --store-dir PATH       Download rendered images into a local bucketed store")
    print("  --bucket ID            Bucket name inside the store (default: posters)")
    print("  --dry-run              Build and validate prompts without calling the renderer")
    print("")
    print("Full options:")
    print("  paper2poster --help")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Generate an explainer poster from a research paper summary.")
    p.add_argument("--version", action="version", version=f"paper2poster {VERSION}")
    p.add_argument("--input", required=True, help="Path to a GenerationInput JSON file")
    p.add_argument("--mode", choices=["single", "modular"], default=None, help="Generation mode override")
    p.add_argument(
        "--level",
        choices=[lvl.value for lvl in KnowledgeLevel],
        default=None,
        help="Knowledge level override",
    )
    p.add_argument("--seed", type=int, default=None, help="Base renderer seed")
    p.add_argument(
        "--out-dir",
        default=None,
        help="Output directory (default: $PAPER2POSTER_ROOT_DIR/<title> or ~/paper2poster_runs/<title>)",
    )
    p.add_argument("--bucket", default="posters", help="Storage bucket id")
    p.add_argument("--store-dir", default=None, help="Local image store root (enables uploads)")
    p.add_argument("--dry-run", action="store_true", help="Build prompts only; no renderer calls")
    p.add_argument("--verbose", action="store_true", help="Verbose logging")
    return p.parse_args(argv)


def _slugify(s: str, max_len: int = 80) -> str:
    s = (s or "").strip()
    s = re.sub(r"[^a-zA-Z0-9]+", "_", s)
    s = s.strip("_")
    return (s or "poster").strip()[:max_len]


def load_input(cfg: RunConfig) -> GenerationInput:
    """Read the input JSON and apply CLI overrides before validation."""
    try:
        raw = json.loads(cfg.input_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise InvalidInputError(f"Cannot read input file {cfg.input_path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise InvalidInputError(f"Input file {cfg.input_path} is not valid JSON: {exc.msg}") from exc
    if not isinstance(raw, dict):
        raise InvalidInputError("Input JSON must be an object")
    if cfg.knowledge_level:
        raw["knowledge_level"] = cfg.knowledge_level
    if cfg.generation_mode:
        raw["options"] = {**(raw.get("options") or {}), "generation_mode": cfg.generation_mode}
    return validate_generation_input(raw)


def dry_run(inp: GenerationInput, out_dir: Path) -> int:
    """Compute layout and prompts, validate and save them; no network."""
    engine = LayoutEngine()
    builder = PromptBuilder(engine)
    layout = engine.calculate_layout(len(inp.summary.key_concepts), inp.knowledge_level, inp.tags)
    logger.info("Layout: %s (%d sections)", layout.type.value, len(layout.sections))
    (out_dir / "layout.json").write_text(layout.model_dump_json(indent=2) + "\n", encoding="utf-8")

    if inp.generation_mode == "modular":
        prompts = [("prompt-header", builder.build_header_section(inp, layout))]
        for i, concept in enumerate(inp.summary.key_concepts):
            prompts.append((f"prompt-concept-{i + 1}", builder.build_concept_section(concept, i, inp.knowledge_level, layout)))
        prompts.append(("prompt-footer", builder.build_footer_section(inp, layout)))
    else:
        prompts = [("prompt", builder.build(inp, layout))]

    table = Table(title="DRY RUN PROMPTS", show_lines=True)
    table.add_column("Prompt", style="cyan", no_wrap=True)
    table.add_column("Objects")
    table.add_column("Texts")
    table.add_column("Est. seconds")
    table.add_column("Valid", style="bold")
    ok = True
    for name, prompt in prompts:
        result = validate_structured_prompt(prompt)
        ok = ok and result.valid
        for err in result.errors:
            logger.error("%s: %s", name, err)
        path = save_prompt(prompt, out_dir, name)
        logger.debug("Saved %s", path)
        table.add_row(
            name,
            str(len(prompt.objects)),
            str(len(prompt.text_render)),
            str(FiboClient.estimate_generation_time(prompt)),
            "yes" if result.valid else "no",
        )
    Console().print(table)
    logger.info("Body sections: %d", len(body_sections(layout)))
    return 0 if ok else 1


def print_result(output: GenerationOutput) -> None:
    table = Table(title="POSTER GENERATION", show_lines=True)
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value")
    meta = output.metadata
    table.add_row("Request", output.request_id)
    table.add_row("Status", output.status.value)
    table.add_row("Mode", meta.generation_mode or "-")
    table.add_row("Layout", meta.layout_type.value if meta.layout_type else "-")
    table.add_row("Seed", str(meta.fibo_seed) if meta.fibo_seed is not None else "-")
    table.add_row("Image", output.final_image_url or "-")
    for i, url in enumerate(meta.section_urls or [], 1):
        table.add_row(f"Section {i}", url)
    if meta.storage_file_id:
        table.add_row("Stored", meta.storage_file_id)
    table.add_row("Time", f"{meta.generation_time_ms} ms")
    if output.error:
        table.add_row("Error", output.error)
    Console().print(table)


def main(argv: Optional[List[str]] = None) -> int:
    args_list = sys.argv[1:] if argv is None else list(argv)
    if args_list and args_list[0] == "help":
        print_helper()
        return 0

    env_path = Path(__file__).parent / ".env"
    load_dotenv(env_path, override=False)
    args = parse_args(args_list)

    cfg = RunConfig(
        input_path=Path(args.input).expanduser(),
        out_dir=Path(args.out_dir).expanduser().resolve() if args.out_dir else Path(),
        generation_mode=args.mode,
        knowledge_level=args.level,
        seed=args.seed,
        bucket_id=args.bucket,
        store_dir=Path(args.store_dir).expanduser().resolve() if args.store_dir else None,
        verbose=args.verbose,
        dry_run=args.dry_run,
    )

    try:
        inp = load_input(cfg)
    except InvalidInputError as exc:
        setup_logging(args.verbose)
        logger.error("%s", exc)
        return 2

    if not args.out_dir:
        root_dir = os.environ.get("PAPER2POSTER_ROOT_DIR", "~/paper2poster_runs")
        cfg.out_dir = Path(root_dir).expanduser().resolve() / _slugify(inp.summary.title)
    cfg.out_dir.mkdir(parents=True, exist_ok=True)
    setup_logging(cfg.verbose, log_path=cfg.out_dir / "run.log")

    try:
        if cfg.dry_run:
            return dry_run(inp, cfg.out_dir)

        try:
            fibo_cfg = FiboConfig.from_env()
        except InvalidInputError as exc:
            logger.error("%s", exc)
            return 2

        store = LocalImageStore(cfg.store_dir) if cfg.store_dir else None
        orchestrator = PosterOrchestrator(
            FiboClient(fibo_cfg),
            store=store,
            bucket_id=cfg.bucket_id,
            show_progress=True,
        )
        output = orchestrator.generate(inp, seed=cfg.seed)
        path = save_generation(output, cfg.out_dir)
        print_result(output)
        print("\nOutput directory:", cfg.out_dir)
        print("Generation record:", path.name)
        return 0 if output.status == GenerationStatus.COMPLETE else 1
    except InvalidInputError as exc:
        logger.error("%s", exc)
        return 2
    except Exception:
        logger.exception("Unhandled error in poster run")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
