from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from dynamic_memory import config
from dynamic_memory.config import SettingsError, SettingsStore
from dynamic_memory.runtime.interceptor import DynamicMemory
from dynamic_memory.runtime.models import ChatMessage, Digest
from dynamic_memory.runtime.notify import NoticeCollector
from dynamic_memory.runtime.summarizer import PageSummarizer

console = Console()


def load_chat(path: Path) -> List[ChatMessage]:
    """
    Read a chat file: a JSON array of host messages, or JSONL with one message per line.
    """
    raw = path.read_text(encoding="utf-8")
    stripped = raw.lstrip()
    if stripped.startswith("["):
        items = json.loads(raw)
    else:
        items = [json.loads(line) for line in raw.splitlines() if line.strip()]
    return [ChatMessage.from_dict(item) for item in items if isinstance(item, dict)]


def write_chat(path: Path, chat: Sequence[ChatMessage]) -> None:
    path.write_text(json.dumps([m.to_dict() for m in chat], indent=2, ensure_ascii=False), encoding="utf-8")


def print_memory(digests: Sequence[str]) -> None:
    if not digests:
        console.print(Panel(Text("(empty)", style="dim"), title="Dynamic Memory", border_style="cyan"))
        return
    body = Text()
    for i, d in enumerate(digests):
        if i:
            body.append("\n")
        body.append(d)
    console.print(Panel(body, title="Dynamic Memory", border_style="cyan"))


def print_settings(block: dict) -> None:
    table = Table(title=f"{config.MODULE_NAME} settings", show_header=True)
    table.add_column("key", style="cyan")
    table.add_column("value")
    for key, value in block.items():
        table.add_row(key, str(value))
    console.print(table)


async def run_chat(args: argparse.Namespace) -> int:
    store = SettingsStore(args.config)
    notices = NoticeCollector()
    memory = DynamicMemory(
        settings_provider=store.settings,
        summarizer=PageSummarizer.from_config(str(store.path)),
        notifier=notices,
    )
    chat_path = Path(args.chat)
    try:
        chat = load_chat(chat_path)
        new_chat = await memory.intercept(chat)
    finally:
        await memory.close()

    for notice in notices.drain():
        console.print(f"[bold red]✗[/bold red] {notice}")

    skipped = [r for r in memory.last_results if not isinstance(r, Digest)]
    if memory.last_results:
        console.print(
            f"[dim]{len(memory.last_results)} page(s) summarized, {len(skipped)} skipped[/dim]"
        )

    if new_chat is None:
        console.print(f"[yellow]●[/yellow] chat unchanged ({len(chat)} messages)")
    else:
        console.print(f"[green]●[/green] chat rebuilt: {len(chat)} → {len(new_chat)} messages")
        if args.write:
            write_chat(Path(args.output) if args.output else chat_path, new_chat)
    print_memory(memory.snapshot.read())
    return 0


def settings_cmd(args: argparse.Namespace) -> int:
    store = SettingsStore(args.config)
    if args.settings_action == "set":
        try:
            store.update({args.key: args.value})
        except SettingsError as e:
            console.print(f"[bold red]error:[/bold red] {e}")
            return 2
        console.print("[green]Dynamic Memory settings saved![/green]")
    print_settings(store.public())
    return 0


def serve_cmd(args: argparse.Namespace) -> int:
    import uvicorn

    from dynamic_memory.gateway.app import Gateway, create_app

    store = SettingsStore(args.config)
    app = create_app(Gateway(store=store))
    host = args.host or config.gateway_host(str(store.path))
    port = args.port or config.gateway_port(str(store.path))
    console.print(f"[bold cyan]Dynamic Memory Gateway[/bold cyan] on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dynamic-memory", description="Summarize older chat history into context memory.")
    parser.add_argument("--config", default=None, help="settings file (default: $DYNAMIC_MEMORY_CONFIG or ./dynamic_memory.json)")
    parser.add_argument("--debug", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="run the pipeline once over a chat file")
    run.add_argument("chat", help="JSON array or JSONL of chat messages")
    run.add_argument("--write", action="store_true", help="write the rebuilt chat back")
    run.add_argument("-o", "--output", default=None, help="write to this file instead of the input")

    settings = sub.add_parser("settings", help="show or change settings")
    settings_sub = settings.add_subparsers(dest="settings_action", required=True)
    settings_sub.add_parser("show")
    set_p = settings_sub.add_parser("set")
    set_p.add_argument("key", choices=sorted(config.DEFAULT_SETTINGS))
    set_p.add_argument("value")

    serve = sub.add_parser("serve", help="start the HTTP/WebSocket gateway")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO)

    if args.command == "run":
        return asyncio.run(run_chat(args))
    if args.command == "settings":
        return settings_cmd(args)
    if args.command == "serve":
        return serve_cmd(args)
    return 1


if __name__ == "__main__":
    sys.exit(main())
