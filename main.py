"""
StudyForge - AI-Powered Study Material Generator
Command-line entry point
"""

import argparse
import json
import os
import sys

from version import get_version_display


def _read_input(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="studyforge",
        description="Generate topics, notes, quizzes, flashcards or coding exercises from lecture text.",
    )
    parser.add_argument("kind", help="topics | notes | quiz | flashcards | coding_exercises")
    parser.add_argument("input", help="Lecture text file, or - for stdin")
    parser.add_argument("--provider", help="Provider name from config.yaml (default: first available)")
    parser.add_argument("--config", help="Path to config.yaml")
    parser.add_argument("--raw", action="store_true",
                        help="Treat input as a saved model reply and only run extraction (no API call)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log API calls to the terminal")
    parser.add_argument("--log-file", type=str, help="Specify a custom log file path")
    parser.add_argument("--version", action="version", version=get_version_display())
    return parser


def run_raw(kind_value: str, text: str) -> dict:
    """Run only the extraction core on a saved model reply"""
    from src.core.json_utils import resolve_structured_result, sanitize_text
    from src.core.types import OutputKind

    kind = OutputKind.parse(kind_value)
    if not kind.is_structured:
        return {"result": sanitize_text(text)}
    extraction = resolve_structured_result(text)
    return {"result": extraction.records, "extraction_status": extraction.status.value}


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    from src.verbose_logger import check_log_file, init_logger

    log_file = args.log_file
    if log_file:
        is_writable, error_msg = check_log_file(log_file)
        if not is_writable:
            print(f"Warning: Could not use specified log file: {error_msg}", file=sys.stderr)
            log_file = None
    logger = init_logger(verbose=args.verbose, log_file=log_file)
    if args.verbose:
        print(f"Logging to {logger.get_log_file_path()}", file=sys.stderr)

    try:
        text = _read_input(args.input)
    except OSError as e:
        print(json.dumps({"error": f"Could not read input: {e}"}), file=sys.stderr)
        return 2

    if args.raw:
        try:
            payload = run_raw(args.kind, text)
        except ValueError as e:
            print(json.dumps({"error": str(e)}), file=sys.stderr)
            return 2
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return 0

    if args.config:
        os.environ["STUDYFORGE_CONFIG"] = args.config

    from src.shared_init import get_study_service

    service = get_study_service(args.provider)
    if service is None:
        print(json.dumps({"error": "No AI provider is configured. Set OPENAI_API_KEY or AI_GATEWAY_API_KEY."}),
              file=sys.stderr)
        return 2

    response = service.handle(text, args.kind)
    output = json.dumps(response.to_dict(), indent=2, ensure_ascii=False)
    if response.ok:
        print(output)
        return 0
    print(output, file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
