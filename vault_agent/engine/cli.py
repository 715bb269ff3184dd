"""CLI entry point for the agent service.

Usage:
    vault-agent "Summarise the notes in daily/"
    vault-agent --vault ~/Notes --json "List open TODOs"
    vault-agent --config vault-agent.yaml --interactive
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import signal
import sys
from logging.handlers import RotatingFileHandler

import yaml
from rich.console import Console
from rich.text import Text

from vault_agent.shared.models.message import ChatMessage

from .chunks import (
    BlockedChunk,
    DoneChunk,
    ErrorChunk,
    StreamChunk,
    TextChunk,
    ToolResultChunk,
    ToolUseChunk,
    chunk_to_dict,
)
from .config import ServiceConfig
from .service import AgentService

logger = logging.getLogger(__name__)

_RESULT_PREVIEW_CHARS = 400


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vault-agent",
        description="Run Claude Code against a vault with a shell command blocklist",
    )
    parser.add_argument(
        "prompt",
        nargs="?",
        default=None,
        help="Prompt to send (omit with --interactive)",
    )
    parser.add_argument(
        "--vault",
        default=None,
        help="Vault root used as the agent working directory (default: config, then current dir)",
    )
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="YAML config file (default: VAULT_AGENT_* env vars)",
    )
    parser.add_argument("--cli-path", default=None, help="Path to the claude executable")
    parser.add_argument("--model", default=None, help="Model passed to the backend")
    parser.add_argument(
        "--no-blocklist",
        action="store_true",
        help="Disable the shell command blocklist",
    )
    parser.add_argument(
        "--hide-tool-use",
        action="store_true",
        help="Do not print tool invocations and results",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print one JSON object per chunk instead of formatted output",
    )
    parser.add_argument(
        "--interactive", "-i",
        action="store_true",
        help="Read prompts from stdin; the session carries over between prompts",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    return parser


def configure_logging(level: str, log_file: str | None = None) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    if log_file:
        handler = RotatingFileHandler(
            log_file, maxBytes=2_000_000, backupCount=5, encoding="utf-8"
        )
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s"
        ))
        logging.getLogger().addHandler(handler)


def load_config(args: argparse.Namespace) -> ServiceConfig:
    if args.config:
        from .yaml_config import load_yaml_config
        config = load_yaml_config(args.config)
    else:
        config = ServiceConfig.from_env()
    if args.vault:
        config.vault_path = os.path.expanduser(args.vault)
    elif not config.vault_path:
        config.vault_path = os.getcwd()
    if args.cli_path:
        config.cli_path = args.cli_path
    if args.model:
        config.model = args.model
    if args.no_blocklist:
        config.settings.enable_blocklist = False
    if args.hide_tool_use:
        config.settings.show_tool_use = False
    return config


class ChunkRenderer:
    """Prints chunks to the terminal, honouring show_tool_use."""

    def __init__(self, console: Console, *, as_json: bool, show_tool_use: bool) -> None:
        self._console = console
        self._as_json = as_json
        self._show_tool_use = show_tool_use

    def render(self, chunk: StreamChunk) -> None:
        if self._as_json:
            self._console.out(json.dumps(chunk_to_dict(chunk), default=str), highlight=False)
            return
        if isinstance(chunk, TextChunk):
            self._console.print(Text(chunk.content))
        elif isinstance(chunk, ToolUseChunk):
            if self._show_tool_use:
                args = json.dumps(chunk.input, default=str)
                self._console.print(Text.assemble(("⚙ ", "cyan"), (chunk.name, "bold cyan"), " ", (args, "dim")))
        elif isinstance(chunk, ToolResultChunk):
            if self._show_tool_use:
                content = str(chunk.content)
                if len(content) > _RESULT_PREVIEW_CHARS:
                    content = content[:_RESULT_PREVIEW_CHARS] + "…"
                self._console.print(Text(content, style="dim"))
        elif isinstance(chunk, BlockedChunk):
            self._console.print(Text(f"⛔ {chunk.content}", style="bold yellow"))
        elif isinstance(chunk, ErrorChunk):
            self._console.print(Text(f"✖ {chunk.content}", style="bold red"))
        elif isinstance(chunk, DoneChunk):
            self._console.print()


async def run_prompt(
    service: AgentService,
    prompt: str,
    renderer: ChunkRenderer,
) -> ChatMessage:
    """Drive one query to completion. SIGINT cancels it cooperatively."""
    stream = service.query(prompt)
    loop = asyncio.get_running_loop()
    handler_installed = False
    try:
        loop.add_signal_handler(signal.SIGINT, stream.cancel)
        handler_installed = True
    except (NotImplementedError, RuntimeError):
        pass

    chunks: list[StreamChunk] = []
    try:
        async for chunk in stream:
            chunks.append(chunk)
            renderer.render(chunk)
    finally:
        if handler_installed:
            loop.remove_signal_handler(signal.SIGINT)
    return ChatMessage.from_chunks(chunks)


def _interactive(service: AgentService, renderer: ChunkRenderer, console: Console) -> int:
    exit_code = 0
    while True:
        try:
            prompt = console.input("[bold green]> [/bold green]").strip()
        except (EOFError, KeyboardInterrupt):
            console.print()
            break
        if not prompt:
            continue
        if prompt in ("/exit", "/quit"):
            break
        if prompt == "/reset":
            service.reset_session()
            console.print(Text("Session reset.", style="dim"))
            continue
        message = asyncio.run(run_prompt(service, prompt, renderer))
        if message.is_error:
            exit_code = 1
    return exit_code


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.prompt and not args.interactive:
        parser.error("a prompt is required unless --interactive is given")

    try:
        config = load_config(args)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)

    configure_logging("DEBUG" if args.verbose else config.log_level, args.log_file)

    console = Console()
    renderer = ChunkRenderer(
        console,
        as_json=args.json,
        show_tool_use=config.settings.show_tool_use,
    )
    service = AgentService(config)
    try:
        if args.interactive:
            exit_code = _interactive(service, renderer, console)
        else:
            message = asyncio.run(run_prompt(service, args.prompt, renderer))
            exit_code = 1 if message.is_error else 0
    finally:
        service.close()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
