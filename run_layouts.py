import argparse
import logging
import os
import sys
from pathlib import Path
from langchain_openai import ChatOpenAI

from dotenv import load_dotenv

from creative_layouts.core import LayoutPipeline
from creative_layouts.errors import LayoutError
from creative_layouts.judgment import HeuristicJudge, LLMJudge
from creative_layouts.presets import EXPORT_PRESETS

DEFAULT_JUDGE_MODEL = "gpt-5-mini-2025-08-07"
DEFAULT_JUDGE_TIMEOUT = 30.0


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate channel layouts for a creative territory and export them."
    )
    parser.add_argument(
        "--request",
        type=Path,
        required=True,
        help="Path to the layout request JSON file.",
    )
    parser.add_argument(
        "--output-root",
        type=Path,
        default=Path("outputs"),
        help="Root folder where exported layouts will be stored.",
    )
    parser.add_argument(
        "--assets-dir",
        type=Path,
        default=None,
        help="Folder with the asset image files referenced by the request.",
    )
    parser.add_argument(
        "--preset",
        choices=sorted(EXPORT_PRESETS),
        default=None,
        help="Export every layout with a preset pack instead of its own channel.",
    )
    parser.add_argument(
        "--top",
        type=int,
        default=None,
        help="Only export the N best-scoring layouts.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def build_judge():
    # With OPENAI_API_KEY set the layouts are rated by a chat model; otherwise
    # the local heuristic judge is used (no network calls).
    api_key = os.environ.get("OPENAI_API_KEY")
    if not api_key:
        return HeuristicJudge()

    llm = ChatOpenAI(
        model=os.environ.get("LAYOUT_JUDGE_MODEL", DEFAULT_JUDGE_MODEL),
        timeout=float(os.environ.get("LAYOUT_JUDGE_TIMEOUT", DEFAULT_JUDGE_TIMEOUT)),
        api_key=api_key,
    )
    return LLMJudge(llm=llm)


def main(argv=None) -> int:
    # Load environment variables from a local .env file if present
    # (e.g. OPENAI_API_KEY=sk-...).
    load_dotenv()

    args = parse_args(argv)
    level = "DEBUG" if args.verbose else os.environ.get("LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    pipeline = LayoutPipeline(
        output_root=args.output_root,
        assets_dir=args.assets_dir,
        judge=build_judge(),
        preset=args.preset,
        top=args.top,
    )
    try:
        run = pipeline.run(args.request)
    except (LayoutError, OSError) as exc:
        print(f"❌ {exc}", file=sys.stderr)
        return 1

    for layout in run.layouts:
        print(
            f"🧩 {layout.name} [{layout.style}] "
            f"compliance={layout.compliance.overall} performance={layout.performance.score}"
        )
    succeeded = sum(batch.success_count for batch in run.exports)
    failed = sum(batch.failure_count for batch in run.exports)
    print(f"📁 Exported {succeeded} file(s), {failed} failed. Summary: {run.summary_path}")
    return 0 if failed == 0 else 2


if __name__ == "__main__":
    sys.exit(main())
