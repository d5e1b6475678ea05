"""lc 命令行入口。"""

import argparse
import sys
from typing import List, Optional, TextIO

from lc_core.api.service import build_user_content, run_chat
from lc_core.config.settings import PERSISTED_KEYS, load_settings, reset_config
from lc_core.domain.exceptions import BusinessError
from lc_core.infrastructure.logging.logger import logger, setup_logger
from lc_core.infrastructure.storage.json_store import JsonHistoryStore


class ConsoleSink:
    """把流式增量直接写到终端。"""

    def __init__(self, stream: TextIO):
        self._stream = stream
        self.need_newline = False

    def on_delta(self, delta: str, done: bool) -> None:
        if done or not delta:
            return
        self._stream.write(delta)
        self._stream.flush()
        self.need_newline = not delta.endswith("\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lc", description="Linux command-line AI assistant")
    parser.add_argument("-q", "--query", help="Specify the query for the AI")
    parser.add_argument("-m", "--memory", action="store_true", help="Enable conversation memory")
    parser.add_argument("--clear-memory", action="store_true", help="Clear the conversation memory")
    parser.add_argument("--show-memory", action="store_true", help="Show the conversation memory")
    parser.add_argument(
        "--set",
        metavar="KEY=VALUE",
        help=f"Set a configuration value (valid keys: {', '.join(PERSISTED_KEYS)})",
    )
    parser.add_argument("--show-config", action="store_true", help="Show the current configuration")
    parser.add_argument("--reset-config", action="store_true", help="Reset the configuration to default values")
    parser.add_argument("--model", help="Override the default model for this request")
    parser.add_argument("--no-system-prompt", action="store_true", help="Disable the system prompt for this request")
    parser.add_argument("--no-stream", action="store_true", help="Wait for the full response instead of streaming")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")
    parser.add_argument("words", nargs="*", metavar="query", help="Query text (alternative to -q)")
    return parser


def get_query(args: argparse.Namespace) -> str:
    if args.query:
        return f"Query: {args.query.strip()}"
    if args.words:
        return f"Query: {' '.join(args.words).strip()}"
    return ""


def get_input(stdin: TextIO) -> str:
    if stdin is None or stdin.isatty():
        return ""
    text = stdin.read().strip()
    return f"Input: {text}" if text else ""


def main(
    argv: Optional[List[str]] = None,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None,
) -> int:
    stdin = stdin if stdin is not None else sys.stdin
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr
    argv = list(sys.argv[1:] if argv is None else argv)

    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        if e.code in (0, None):
            return 0
        parser.print_help(stderr)
        return 1
    if not argv and (stdin is None or stdin.isatty()):
        parser.print_help(stdout)
        return 0

    settings = load_settings()
    setup_logger(settings, debug=args.debug)
    logger.debug("Debug mode enabled")

    try:
        if args.show_config:
            print(settings.show(), file=stdout)
            return 0

        if args.reset_config:
            reset_config()
            print("Configuration has been reset to default values.", file=stdout)
            return 0

        if args.set is not None:
            key, sep, value = args.set.partition("=")
            if not sep:
                print("Invalid set format. Use: --set key=value", file=stderr)
                return 1
            settings.set_value(key.strip(), value)
            print(f"{key.strip()} set successfully.", file=stdout)
            return 0

        if args.clear_memory:
            if JsonHistoryStore().clear():
                print("Conversation memory has been cleared.", file=stdout)
            else:
                print("No conversation memory found.", file=stdout)
            return 0

        if args.show_memory:
            print(JsonHistoryStore().show(), file=stdout)
            return 0

        query = get_query(args)
        stdin_input = get_input(stdin)
        logger.debug(f"Query: {query}")
        logger.debug(f"Input: {stdin_input}")
        if not query and not stdin_input and not args.memory:
            parser.print_help(stdout)
            return 0

        sink = ConsoleSink(stdout)
        outcome = run_chat(
            build_user_content(query, stdin_input),
            settings=settings,
            store=JsonHistoryStore() if args.memory else None,
            memory=args.memory,
            model=args.model,
            use_system_prompt=not args.no_system_prompt,
            stream=not args.no_stream,
            sink=sink,
        )
    except BusinessError as e:
        print(f"Error: {e.message}", file=stderr)
        return 1

    result = outcome.result
    if not result.success:
        print(f"Error: {result.error}", file=stderr)
        return 1
    if args.no_stream:
        print(result.full_response, file=stdout)
    elif sink.need_newline:
        print(file=stdout)
    for warning in outcome.warnings:
        print(warning, file=stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
