#!/usr/bin/env python3
"""Strategic Maturity Assessment: spreadsheet in, team report out.

    python assess.py --input responses.xlsx --team "Platform Ops"
    python assess.py --input responses.xlsx --team Ops --no-ai --dump-json out/ops.json
"""
import argparse
import json
import logging
import sys
from pathlib import Path

from ai.engine.aoai_client import NarrativeServiceError
from ai.engine.insight_engine import InsightEngine, InsightGenerationError, placeholder_insights
from ai.engine.reasoning_provider import AOAIReasoningProvider
from engine.aggregate import analyze_responses
from engine.taxonomy_validator import TaxonomyViolation
from ingest.excel_reader import SpreadsheetError, read_survey_rows
from question_packs.loader import QuestionPackVersionError, load_pack
from reporting.render import generate_report, report_filename

EXIT_OK = 0
EXIT_DATA = 1
EXIT_CONFIG = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate a Strategic Maturity Assessment team report from survey responses."
    )
    parser.add_argument("--input", required=True, help="Path to the survey export (.xlsx)")
    parser.add_argument("--team", required=True, help="Team name shown on the report")
    parser.add_argument("--instructions", default="", help="Special analysis instructions for the narrative")
    parser.add_argument("--output", default=".", help="Directory for the HTML report")
    parser.add_argument("--no-ai", action="store_true", help="Skip narrative generation and use placeholder text")
    parser.add_argument("--dump-json", metavar="PATH", help="Also write the calculated dataset as JSON")
    parser.add_argument("--pack", default="sma", help="Question pack family")
    parser.add_argument("--version", default="v1.0", help="Question pack version")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # ── 1. Question pack ──────────────────────────────────────────
    try:
        config = load_pack(args.pack, args.version)
    except (TaxonomyViolation, QuestionPackVersionError, FileNotFoundError) as exc:
        print(f"  ✗ Configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG
    print(f"  ✓ Question pack {args.pack}/{args.version}: {config.question_count} questions")

    # ── 2. Responses ──────────────────────────────────────────────
    try:
        rows = read_survey_rows(args.input, config.layout, config.question_count)
    except SpreadsheetError as exc:
        print(f"  ✗ {exc}", file=sys.stderr)
        return EXIT_DATA

    dataset = analyze_responses(config, rows)
    if dataset.respondent_count == 0:
        print("  ✗ No valid responses found. Please check that the Excel file contains "
              "Likert scale responses.", file=sys.stderr)
        return EXIT_DATA
    print(f"  ✓ Analyzed {dataset.respondent_count} respondent(s)")
    for name in dataset.excluded_respondents:
        print(f"    • Excluded {name}: no valid responses")

    if args.dump_json:
        dump_path = Path(args.dump_json)
        dump_path.parent.mkdir(parents=True, exist_ok=True)
        dump_path.write_text(json.dumps(dataset.to_dict(), indent=2), encoding="utf-8")
        print(f"  ✓ Dataset written: {dump_path}")

    # ── 3. Narrative ──────────────────────────────────────────────
    if args.no_ai:
        insights = placeholder_insights(dataset, args.instructions)
    else:
        try:
            insights = InsightEngine(AOAIReasoningProvider()).generate(
                args.team, dataset, args.instructions,
            )
        except EnvironmentError as exc:
            print(f"  ✗ {exc}  (use --no-ai to skip narrative generation)", file=sys.stderr)
            return EXIT_CONFIG
        except (NarrativeServiceError, InsightGenerationError) as exc:
            print(f"  ✗ {exc}", file=sys.stderr)
            return EXIT_DATA
    print("  ✓ Narrative ready")

    # ── 4. Report ─────────────────────────────────────────────────
    out_path = Path(args.output) / report_filename(args.team)
    generate_report(args.team, dataset, insights, str(out_path))
    print(f"  ✓ Report written: {out_path}")
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
