"""CLI entry point for adaptly.

Usage:
    python -m adaptly validate-schema adaptly.json
    python -m adaptly generate "sales dashboard with revenue and users"
    python -m adaptly show
    python -m adaptly reset
    python -m adaptly env
    python -m adaptly models
"""

import argparse
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

from adaptly.config import (
    AdaptlyConfig,
    EnvVar,
    get_available_llm_providers,
    get_environment,
    get_environment_info,
    get_storage_path,
    list_environment_variables,
)
from adaptly.core import get_logger, setup_logging
from adaptly.schema import ConfigurationError, load_schema
from adaptly.storage import SQLiteStorage, StateStore

logger = get_logger("cli")

_SECRET_VARS = {EnvVar.GOOGLE_API_KEY, EnvVar.OPENAI_API_KEY, EnvVar.ANTHROPIC_API_KEY}


def _open_store(args: argparse.Namespace) -> StateStore:
    return StateStore(SQLiteStorage(get_storage_path(args.storage)))


def _storage_key(args: argparse.Namespace) -> str:
    return args.key or get_environment(EnvVar.ADAPTLY_STORAGE_KEY)


def _storage_version(args: argparse.Namespace) -> str:
    return args.version or get_environment(EnvVar.ADAPTLY_STORAGE_VERSION)


# =============================================================================
# Commands
# =============================================================================


def cmd_validate_schema(args: argparse.Namespace) -> int:
    """Validate a schema file and list its element types."""
    try:
        schema = load_schema(args.path)
    except ConfigurationError as e:
        logger.error(f"Invalid schema: {e}")
        return 1

    print(f"Schema {args.path} is valid ({len(schema)} element types):")
    for name in schema.names:
        definition = schema.get(name)
        required = ", ".join(definition.required_arguments) or "none"
        print(f"  {name}: {definition.description} (required: {required})")
    return 0


def cmd_generate(args: argparse.Namespace) -> int:
    """Run one goal through the reconciler and print the resulting state."""
    from adaptly.reconciler import build_reconciler

    overrides = {}
    if args.provider:
        overrides["provider"] = args.provider
    if args.model:
        overrides["model"] = args.model
    if args.timeout is not None:
        overrides["request_timeout"] = args.timeout
    if args.storage:
        overrides["storage_path"] = Path(args.storage)
    if args.key:
        overrides["storage_key"] = args.key
    if args.version:
        overrides["storage_version"] = args.version
    if args.no_save:
        overrides["storage_enabled"] = False

    try:
        schema = load_schema(args.schema or get_environment(EnvVar.ADAPTLY_SCHEMA_PATH))
        config = AdaptlyConfig.from_environment(schema, **overrides)
        reconciler = build_reconciler(config)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    with reconciler:
        logger.info(f"Submitting goal: {args.goal}")
        status = reconciler.submit_goal(args.goal)
        state = reconciler.state

    print(json.dumps(state.to_record(), indent=2))
    if status.last_rationale:
        print(f"\nRationale: {status.last_rationale}")
    if status.last_error:
        logger.error(status.last_error)
        return 1
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    """Print the persisted state."""
    store = _open_store(args)
    key, version = _storage_key(args), _storage_version(args)
    try:
        state = store.load(key, version)
        if state is None:
            logger.error(f"No stored state for '{key}' at version {version}")
            return 1
        info = store.info(key, version)
    finally:
        store.close()

    if info is not None:
        logger.info(f"Saved {info.saved_at.isoformat()} ({info.size_bytes} bytes)")
    print(json.dumps(state.to_record(), indent=2))
    return 0


def cmd_reset(args: argparse.Namespace) -> int:
    """Clear the persisted state."""
    store = _open_store(args)
    key = _storage_key(args)
    try:
        if not store.clear(key):
            logger.error(f"Could not clear stored state for '{key}'")
            return 1
    finally:
        store.close()
    print(f"Cleared stored state for '{key}'")
    return 0


def cmd_env(args: argparse.Namespace) -> int:
    """List environment variables and their current values."""
    for var in list_environment_variables(args.category):
        info = get_environment_info(var)
        value = get_environment(var)
        if var in _SECRET_VARS:
            shown = "(set)" if value else "(not set)"
        else:
            shown = value
        print(f"{info.name:28} {shown!s:32} {info.description}")

    providers = get_available_llm_providers()
    print(f"\nProviders with credentials: {', '.join(providers) or 'none'}")
    return 0


def cmd_list_models(_args: argparse.Namespace) -> int:
    """List known models per provider."""
    from adaptly.llm.backend import LLMModel, LLMProviderType

    for provider in LLMProviderType:
        models = LLMModel.list_by_provider(provider)
        if models:
            print(f"{provider.value}:")
            for model in models:
                print(f"  {model.spec.name}")
    return 0


# =============================================================================
# Parser
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m adaptly",
        description="Adaptive UI state from natural language goals",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Logging level (default: ADAPTLY_LOG_LEVEL or info)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    validate_parser = subparsers.add_parser(
        "validate-schema", help="Validate a component schema file"
    )
    validate_parser.add_argument("path", type=Path, help="Schema JSON file")
    validate_parser.set_defaults(func=cmd_validate_schema)

    storage_options = argparse.ArgumentParser(add_help=False)
    storage_options.add_argument(
        "--storage", type=str, default=None, help="SQLite state file"
    )
    storage_options.add_argument("--key", type=str, default=None, help="Storage key")
    storage_options.add_argument(
        "--version", type=str, default=None, help="Storage version"
    )

    generate_parser = subparsers.add_parser(
        "generate",
        parents=[storage_options],
        help="Turn a goal into a new UI state",
    )
    generate_parser.add_argument("goal", type=str, help="Natural language goal")
    generate_parser.add_argument(
        "--schema", "-s", type=Path, default=None, help="Schema JSON file"
    )
    generate_parser.add_argument(
        "--provider", "-p", type=str, default=None, help="google, openai, anthropic"
    )
    generate_parser.add_argument("--model", "-m", type=str, default=None, help="Model name")
    generate_parser.add_argument(
        "--timeout", type=float, default=None, help="Request timeout in seconds"
    )
    generate_parser.add_argument(
        "--no-save", action="store_true", help="Do not persist the resulting state"
    )
    generate_parser.set_defaults(func=cmd_generate)

    show_parser = subparsers.add_parser(
        "show", parents=[storage_options], help="Print the persisted state"
    )
    show_parser.set_defaults(func=cmd_show)

    reset_parser = subparsers.add_parser(
        "reset", parents=[storage_options], help="Clear the persisted state"
    )
    reset_parser.set_defaults(func=cmd_reset)

    env_parser = subparsers.add_parser("env", help="List environment variables")
    env_parser.add_argument(
        "--category",
        "-c",
        type=str,
        default=None,
        choices=["llm", "storage", "general"],
        help="Only show one category",
    )
    env_parser.set_defaults(func=cmd_env)

    models_parser = subparsers.add_parser("models", help="List available LLM models")
    models_parser.set_defaults(func=cmd_list_models)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    # Load environment variables from .env file
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level or get_environment(EnvVar.ADAPTLY_LOG_LEVEL))

    if not args.command:
        parser.print_help()
        return 1
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
