"""CLI entry point for the intelligent modification engine."""
import argparse
from dotenv import load_dotenv
import json
import logging
import sys
import traceback
import uuid
from pathlib import Path

from intelligent_modifier.agents.exceptions import ModifierError
from intelligent_modifier.config import DEFAULT_MODEL, DEFAULT_STORE_DIR, ModifierSettings
from intelligent_modifier.models import ModificationRequest, ModificationResult
from intelligent_modifier.orchestrator.exceptions import OrchestratorError

load_dotenv()

# Exit codes
EXIT_SUCCESS = 0
EXIT_INVALID_INPUT = 1
EXIT_AGENT_ERROR = 2
EXIT_ORCHESTRATOR_ERROR = 3
EXIT_MODIFICATION_FAILED = 4
EXIT_UNEXPECTED = 5
EXIT_KEYBOARD_INTERRUPT = 130

# Safe keys allowed in config output (no secrets)
_SAFE_CONFIG_KEYS = frozenset({
    "request", "build_directory", "session_id", "project_description", "project_id",
    "model", "llm_provider", "llm_fallback_provider", "allow_llm_fallback",
    "store_dir", "records_dir", "session_ttl_seconds", "mapper_workers",
    "max_regen_files", "summary_size", "verbose", "dry_run", "output_json",
})


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="intelligent-modifier",
        description="Apply a natural-language change request to a generated web project",
    )
    parser.add_argument("request", type=str, help="Change request, e.g. \"add a FAQ page\"")
    parser.add_argument("build_directory", type=str, help="Path to the project's build directory")
    parser.add_argument(
        "--session-id",
        type=str,
        default="",
        help="Session key; reuse it to keep the file cache and history (default: new session)",
    )
    parser.add_argument("--project-description", type=str, default=None, help="Short project description")
    parser.add_argument("--project-id", type=str, default=None, help="Project id for design-history lookups")
    parser.add_argument(
        "--store-dir",
        type=str,
        default=None,
        help=f"Session store directory (default: {DEFAULT_STORE_DIR})",
    )
    parser.add_argument(
        "--memory-store",
        action="store_true",
        help="Keep session state in memory only",
    )
    parser.add_argument(
        "--records-dir",
        type=str,
        default=None,
        help="Directory of project-history records (design.json, generations/)",
    )
    parser.add_argument(
        "--model",
        type=str,
        default=None,
        help=f"Model ID to use (default: {DEFAULT_MODEL})",
    )
    parser.add_argument(
        "--llm-provider",
        type=str,
        default=None,
        choices=("auto", "anthropic", "openai"),
        help="LLM provider for synthesis: auto (default), anthropic, or openai",
    )
    parser.add_argument(
        "--llm-fallback-provider",
        type=str,
        default="",
        choices=("", "anthropic", "openai"),
        help="Optional explicit fallback provider when the primary provider fails",
    )
    parser.add_argument(
        "--allow-llm-fallback",
        action="store_true",
        help="Allow fallback to the alternate provider when the primary provider fails",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--dry-run", action="store_true", help="Print config and exit without running"
    )
    parser.add_argument(
        "--output-json", action="store_true", help="Output the response payload as JSON"
    )
    return parser


def validate_build_directory(raw_path: str) -> str:
    """Validate and resolve the build directory.

    Raises:
        SystemExit: If path is not a valid directory.
    """
    resolved = Path(raw_path).resolve()
    if not resolved.is_dir():
        print(f"Error: '{raw_path}' is not a valid directory.", file=sys.stderr)
        raise SystemExit(EXIT_INVALID_INPUT)
    return str(resolved)


def resolve_settings(args: argparse.Namespace) -> ModifierSettings:
    """Merge MODIFIER_* environment settings with CLI flags."""
    settings = ModifierSettings.from_env(
        model=args.model,
        llm_provider=args.llm_provider,
        llm_fallback_provider=args.llm_fallback_provider or None,
        allow_llm_fallback=True if args.allow_llm_fallback else None,
        store_dir=args.store_dir,
        records_dir=args.records_dir,
    )
    if args.memory_store:
        settings.store_dir = None
    return settings


def create_orchestrator(settings: ModifierSettings):
    """Create the orchestrator and its services.

    Imports are deferred to avoid loading anthropic/openai/tree-sitter/langgraph
    for --help and --dry-run paths.
    """
    from intelligent_modifier.orchestrator.service import ModificationOrchestrator, create_services

    return ModificationOrchestrator(create_services(settings))


def format_result_json(result: ModificationResult) -> str:
    """Serialize the camelCase response payload to a JSON string."""
    return json.dumps(result.to_response(), indent=2, default=str)


def print_result_human(result: ModificationResult) -> None:
    """Print results in human-readable format."""
    print(f"\n{'='*60}")
    print("Modification Results")
    print(f"{'='*60}")
    print(f"\nStatus: {'success' if result.success else 'failed'}")
    print(f"Approach: {result.approach}")
    if result.classified_scope and result.classified_scope != result.approach:
        print(f"Classified as: {result.classified_scope}")
    if result.reasoning:
        print(f"Reasoning: {result.reasoning}")

    for label, files in (("Files modified", result.files_modified), ("Files added", result.files_added)):
        if files:
            print(f"\n{label} ({len(files)}):")
            for path in files:
                print(f"  - {path}")

    if len(result.attempts) > 1:
        print("\nAttempts:")
        for attempt in result.attempts:
            status = "ok" if attempt.success else f"failed ({attempt.error})"
            print(f"  - {attempt.strategy}: {status}")

    if result.usage.api_calls:
        print(
            f"\nLLM usage: {result.usage.api_calls} calls, "
            f"{result.usage.total_tokens} tokens"
        )
    if result.error:
        print(f"\nError: {result.error}")
    print(f"\n{'='*60}")


def print_config_human(config: dict) -> None:
    """Print configuration in human-readable format.

    Only prints keys in the safe allowlist to prevent secret leakage.
    """
    print("\nConfiguration:")
    print(f"{'='*40}")
    for key, value in config.items():
        if key in _SAFE_CONFIG_KEYS:
            print(f"  {key}: {value}")
    print(f"{'='*40}")


def _handle_error(label: str, exc: BaseException, verbose: bool, exit_code: int) -> int:
    """Print error message to stderr and return the exit code."""
    print(f"{label}: {exc}", file=sys.stderr)
    if verbose:
        traceback.print_exc(file=sys.stderr)
    return exit_code


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code integer.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        build_directory = validate_build_directory(args.build_directory)
    except SystemExit as exc:
        return exc.code

    if not args.request.strip():
        print("Error: request must not be empty.", file=sys.stderr)
        return EXIT_INVALID_INPUT

    try:
        settings = resolve_settings(args)
    except ValueError as exc:
        return _handle_error("Invalid configuration", exc, args.verbose, EXIT_INVALID_INPUT)

    session_id = args.session_id or uuid.uuid4().hex
    config = {
        "request": args.request,
        "build_directory": build_directory,
        "session_id": session_id,
        "project_description": args.project_description,
        "project_id": args.project_id,
        **settings.safe_dump(),
        "verbose": args.verbose,
        "dry_run": args.dry_run,
        "output_json": args.output_json,
    }

    if args.dry_run:
        if args.output_json:
            print(json.dumps({k: v for k, v in config.items() if k in _SAFE_CONFIG_KEYS}, indent=2))
        else:
            print_config_human(config)
        return EXIT_SUCCESS

    try:
        orchestrator = create_orchestrator(settings)
        result = orchestrator.process(ModificationRequest(
            request=args.request,
            session_id=session_id,
            build_directory=build_directory,
            project_description=args.project_description,
            project_id=args.project_id,
        ))

        if args.output_json:
            print(format_result_json(result))
        else:
            print_result_human(result)

        return EXIT_SUCCESS if result.success else EXIT_MODIFICATION_FAILED

    except ModifierError as exc:
        return _handle_error("Agent error", exc, args.verbose, EXIT_AGENT_ERROR)

    except OrchestratorError as exc:
        return _handle_error("Orchestrator error", exc, args.verbose, EXIT_ORCHESTRATOR_ERROR)

    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_KEYBOARD_INTERRUPT

    except Exception as exc:
        return _handle_error("Unexpected error", exc, args.verbose, EXIT_UNEXPECTED)
