"""
Command-line interface for GhostCode.
"""

import asyncio
import re
import sys
from pathlib import Path
from typing import Dict, Optional

import typer
from loguru import logger
from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.history import FileHistory
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from ghostcode import __version__
from ghostcode.core.commands import (
    COMMAND_ALIASES,
    HELP_SECTIONS,
    Command,
    CommandParser,
    CommandType,
    MentionType,
)
from ghostcode.core.config import Config, ConfigError, LLMConfig, LLMProvider, get_config
from ghostcode.core.context import ContextManager
from ghostcode.core.conversation_engine import ConversationEngine, ConversationError
from ghostcode.core.error_recovery import ErrorRecovery, RecoveryConfig
from ghostcode.core.file_commands import FileCommandHandler, FileCommandResult, FileDiff
from ghostcode.core.hooks import HookManager, LoggingHook
from ghostcode.core.message_history import MessageHistory
from ghostcode.core.response_processor import ProcessedResponse
from ghostcode.core.retry_handler import RetryConfig
from ghostcode.core.routing import CompositeRouter
from ghostcode.core.streaming import StreamEvent, StreamEventType, StreamHandler
from ghostcode.core.streaming_optimizer import StreamingOptimizer
from ghostcode.core.token_calculator import TokenCalculator
from ghostcode.core.tool_executor import Approver, ToolExecutor
from ghostcode.core.utils import get_context_window, truncate_text
from ghostcode.llm.llm_factory import create_llm_client
from ghostcode.prompts import PromptBuilder, load_system_prompt
from ghostcode.tools.base import ToolCall
from ghostcode.tools.registry import ToolRegistry, create_default_registry

app = typer.Typer(
    name="ghostcode",
    help="GhostCode - an AI coding assistant in your terminal",
    add_completion=False,
)

console = Console(soft_wrap=True)

HISTORY_FILE = Path.home() / ".ghostcode_history"


def safe_console_print(text="", **kwargs):
    console.print(text, **kwargs)
    sys.stdout.flush()


def print_error(message: str) -> None:
    safe_console_print(f"[red]Error:[/red] {message}", highlight=False)


class CommandCompleter(Completer):
    """Completes slash commands from the alias table."""

    def get_completions(self, document, complete_event):
        text = document.text_before_cursor
        if not text.startswith("/") or " " in text:
            return
        word = text[1:]
        for alias, command_type in COMMAND_ALIASES.items():
            if alias.startswith(word):
                yield Completion(
                    "/" + alias,
                    start_position=-len(text),
                    display_meta=command_type.value.replace("_", " "),
                )


class ShellSession:
    """Everything one interactive session mutates: provider config, engine and flags."""

    def __init__(self, config: Config, llm_config: LLMConfig, mock: bool = False):
        self.config = config
        self.llm_config = llm_config
        self.mock = mock
        # One loop for every turn; clients bind their connections to it
        self.loop = asyncio.new_event_loop()
        registry = create_default_registry(config.project_root.resolve())
        self.file_commands = FileCommandHandler(registry, yolo_mode=config.yolo_mode)
        self.engine = build_engine(config, llm_config, mock, registry=registry, approver=self.approve_change)
        self.token_calculator = TokenCalculator.from_model_name(llm_config.model, use_tiktoken=True)

    @property
    def model(self) -> str:
        return self.engine.default_model

    @property
    def yolo_mode(self) -> bool:
        return self.file_commands.yolo_mode

    def run(self, coro):
        """Run a coroutine on the session's event loop."""
        return self.loop.run_until_complete(coro)

    def close(self) -> None:
        if self.loop.is_closed():
            return
        self.loop.run_until_complete(self.loop.shutdown_asyncgens())
        self.loop.close()

    async def approve_change(self, call: ToolCall) -> bool:
        """Show the diff of a model-requested change and ask before applying it."""
        if self.yolo_mode:
            return True
        diff = await self.file_commands.preview(call)
        safe_console_print()
        safe_console_print(f"[bold]{call.get_string('operation')}[/bold] {diff.file_path}")
        _render_diff(diff)
        try:
            answer = input("Apply this change? [y/N] ").strip().lower()
        except (KeyboardInterrupt, EOFError):
            answer = ""
        return answer in ("y", "yes")

    def set_model(self, model: str) -> None:
        self.llm_config.model = model
        self.engine.set_model(model)
        self.token_calculator = TokenCalculator.from_model_name(model, use_tiktoken=True)

    def reload_client(self) -> None:
        """Swap in a client for the current provider config, keeping the history."""
        self.engine.llm_client = create_llm_client(self.llm_config, mock=self.mock)
        self.set_model(self.llm_config.model)


def build_engine(
    config: Config,
    llm_config: LLMConfig,
    mock: bool = False,
    registry: Optional[ToolRegistry] = None,
    approver: Optional[Approver] = None,
) -> ConversationEngine:
    """Wire a ConversationEngine from the application settings."""
    client = create_llm_client(llm_config, mock=mock)
    project_root = config.project_root.resolve()
    if registry is None:
        registry = create_default_registry(project_root)

    hooks = HookManager()
    hooks.register_logging_hook(LoggingHook())

    rules = ContextManager.load_rules(config.rules_path)
    history = MessageHistory(
        max_messages=config.history_max_messages,
        max_tokens=config.history_max_tokens,
        token_counter=TokenCalculator.from_model_name(llm_config.model).count_tokens,
    )

    return ConversationEngine(
        client,
        default_model=config.routing_default_model or llm_config.model,
        retry_config=RetryConfig(
            max_attempts=config.retry_max_attempts,
            initial_delay_ms=config.retry_initial_delay_ms,
            backoff_multiplier=config.retry_backoff_multiplier,
        ),
        history=history,
        router=CompositeRouter(config.routing_default_model or llm_config.model),
        hooks=hooks,
        tool_executor=ToolExecutor(registry, hooks=hooks, approver=approver),
        error_recovery=ErrorRecovery(RecoveryConfig(fallback_models=list(config.fallback_models))),
        context_manager=ContextManager(project_root, rules=rules),
        prompt_builder=PromptBuilder(
            system_prompt=load_system_prompt(project_root=str(project_root)),
            rules=rules,
        ),
    )


def load_llm_config(mock: bool, model: Optional[str]) -> LLMConfig:
    """Provider settings from the environment; without an API key only mock mode can run."""
    try:
        llm_config = LLMConfig.from_env()
    except ConfigError as e:
        if not mock:
            raise
        logger.debug(f"No provider configured for mock mode: {e}")
        llm_config = LLMConfig.for_provider(LLMProvider.OPENAI)
    if model:
        llm_config.model = model
    return llm_config


# Rendering -----------------------------------------------------------------------
def _render_banner(session: ShellSession) -> None:
    logo = "[bold magenta] ▄▄▄ \n█ ◉ ◉█\n█▀█▀█[/bold magenta]"
    model_display = session.model + (" [yellow](mock)[/yellow]" if session.mock else "")
    cwd_display = str(session.config.project_root.resolve()).replace(str(Path.home()), "~")

    info_lines = [
        f"[bold magenta]GhostCode[/bold magenta] [dim]v{__version__}[/dim]",
        f"[dim]{session.llm_config.provider.value} · {model_display}[/dim]",
        f"[dim]{cwd_display}[/dim]",
    ]

    banner = Table.grid(padding=(0, 2), expand=False)
    banner.add_column(justify="left", no_wrap=True)
    banner.add_column(justify="left", vertical="top")
    banner.add_row(logo, "\n".join(info_lines))

    console.print()
    console.print(banner)
    console.print("[dim]Type /help for commands, @path to attach a file.[/dim]")
    console.print()
    sys.stdout.flush()


def _render_status_line(session: ShellSession) -> None:
    history = session.engine.history
    limit = get_context_window(session.model)
    stats = session.token_calculator.count_conversation_tokens(history.get_messages())
    summary = session.token_calculator.summary(stats, limit=limit)
    percent = summary["usage_percent"]

    if percent < 50:
        color = "green"
    elif percent < 80:
        color = "yellow"
    else:
        color = "red"

    safe_console_print(
        f"[dim]Context: [bold {color}]{percent:.0f}%[/bold {color}] "
        f"({stats.total_tokens:,}/{limit:,} tokens) • {history.get_message_count()} messages • "
        f"~${summary['estimated_cost']:.4f}[/dim]"
    )


def _render_help() -> Panel:
    table = Table.grid(padding=(0, 2))
    table.add_column(style="cyan", no_wrap=True)
    table.add_column(style="white")
    for section, rows in HELP_SECTIONS:
        table.add_row(f"[bold]{section}[/bold]", "")
        for usage, description in rows:
            table.add_row(f"  {usage}", description)
    return Panel(table, title="Commands", border_style="magenta", expand=False)


def _render_response_extras(response: ProcessedResponse) -> None:
    if response.thinking:
        safe_console_print(f"[dim]thinking: {truncate_text(response.thinking, 120)}[/dim]")
    for suggestion in response.suggestions:
        safe_console_print(f"[dim]• {suggestion}[/dim]")


MAX_DIFF_LINES = 50


def _render_diff(diff: FileDiff) -> None:
    lines = diff.unified()
    if not lines:
        safe_console_print("[dim](no changes)[/dim]")
        return
    for line in lines[:MAX_DIFF_LINES]:
        if line.startswith("+") and not line.startswith("+++"):
            style = "green"
        elif line.startswith("-") and not line.startswith("---"):
            style = "red"
        elif line.startswith("@@"):
            style = "cyan"
        else:
            style = "dim"
        console.print(line.rstrip("\n"), style=style, markup=False, highlight=False)
    if len(lines) > MAX_DIFF_LINES:
        safe_console_print(f"[dim]... ({len(lines) - MAX_DIFF_LINES} more lines)[/dim]")
    sys.stdout.flush()


def _render_file_result(result: FileCommandResult) -> None:
    if not result.success:
        print_error(result.message)
        return
    if result.diff is not None:
        _render_diff(result.diff)
    if result.content:
        safe_console_print(result.content, markup=False, highlight=False)
    color = "yellow" if result.requires_confirmation else "green"
    safe_console_print(f"[{color}]{result.message}[/{color}]", highlight=False)


async def _render_stream(queue: "asyncio.Queue[StreamEvent]") -> None:
    """Print stream events until the turn completes or fails."""
    optimizer = StreamingOptimizer()

    def write(event) -> None:
        if event is not None and event.content:
            console.print(event.content, end="", markup=False, highlight=False)

    console.print("[white]⏺[/white] ", end="")
    while True:
        event = await queue.get()
        if event.event_type is StreamEventType.CHUNK:
            write(optimizer.add_event(event.content))
            await optimizer.apply_backpressure()
        elif event.event_type is StreamEventType.RETRY:
            optimizer.flush()
            console.print("\n[yellow]↻ retrying…[/yellow]")
        else:
            write(optimizer.flush())
            console.print()
            break
    logger.debug(f"Stream metrics: {optimizer.get_metrics()}")


async def run_turn(session: ShellSession, text: str) -> Optional[ProcessedResponse]:
    """Run one turn with streamed output. Failures are printed, not raised."""
    handler, queue = StreamHandler.create()
    renderer = asyncio.create_task(_render_stream(queue))
    try:
        response = await session.engine.process_input_complete(text, on_chunk=handler.send_event)
    except ConversationError as e:
        await renderer
        print_error(e.message)
        return None
    await renderer
    return response


# Mentions --------------------------------------------------------------------------
def expand_mentions(text: str, session: ShellSession) -> str:
    """Replace @model, @provider and @history with their current values."""
    if not CommandParser.has_mention(text):
        return text

    values: Dict[MentionType, str] = {}
    for mention in CommandParser.extract_mentions(text):
        if mention.mention_type is MentionType.MODEL:
            values[MentionType.MODEL] = session.model
        elif mention.mention_type is MentionType.PROVIDER:
            values[MentionType.PROVIDER] = session.llm_config.provider.value
        elif mention.mention_type is MentionType.HISTORY:
            values[MentionType.HISTORY] = _history_text(session, limit=10)

    for mention_type, value in values.items():
        text = re.sub(rf"@{mention_type.value}\b", lambda _: value, text)
    return text


def _history_text(session: ShellSession, limit: Optional[int] = None) -> str:
    messages = session.engine.history.get_messages()
    if limit is not None:
        messages = messages[-limit:]
    return "\n".join(f"{message.role}: {message.content}" for message in messages)


# Commands --------------------------------------------------------------------------
def handle_command(command: Command, session: ShellSession) -> None:
    """
    Apply a slash command to the session.

    Raises:
        typer.Exit: On /exit
    """
    args = command.args
    llm_config = session.llm_config
    kind = command.command_type

    if kind is CommandType.EXIT:
        safe_console_print("[dim]Exiting GhostCode. Goodbye![/dim]\n")
        raise typer.Exit(0)

    if kind is CommandType.HELP:
        safe_console_print(_render_help())
        return

    if kind is CommandType.CLEAR:
        session.engine.clear_history()
        safe_console_print("[dim]Chat history cleared.[/dim]")
        return

    if kind is CommandType.HISTORY:
        if session.engine.history.get_message_count() == 0:
            safe_console_print("[dim]No messages yet.[/dim]")
        else:
            safe_console_print(session.engine.history.to_debug_string(), markup=False, highlight=False)
        return

    if kind is CommandType.MODEL or kind is CommandType.SET_MODEL:
        if not args:
            safe_console_print(f"Current model: [cyan]{session.model}[/cyan]")
            return
        session.set_model(args[0])
        safe_console_print(f"[green]Model set to[/green] {args[0]}")
        return

    if kind is CommandType.TEMPERATURE:
        if not args:
            safe_console_print(f"Temperature: {llm_config.temperature}")
            return
        try:
            llm_config.set_temperature(float(args[0]))
        except ValueError:
            print_error(f"'{args[0]}' is not a number")
            return
        except ConfigError as e:
            print_error(str(e))
            return
        session.reload_client()
        safe_console_print(f"[green]Temperature set to[/green] {llm_config.temperature}")
        return

    if kind is CommandType.MAX_TOKENS:
        if not args:
            safe_console_print(f"Max tokens: {llm_config.max_tokens}")
            return
        try:
            llm_config.set_max_tokens(int(args[0]))
        except ValueError:
            print_error(f"'{args[0]}' is not an integer")
            return
        except ConfigError as e:
            print_error(str(e))
            return
        session.reload_client()
        safe_console_print(f"[green]Max tokens set to[/green] {llm_config.max_tokens}")
        return

    if kind is CommandType.PROVIDER:
        safe_console_print(f"Current provider: [cyan]{llm_config.provider.value}[/cyan]")
        return

    if kind is CommandType.STATUS:
        safe_console_print(llm_config.get_status_info(), highlight=False)
        safe_console_print(f"Mock mode: {'on' if session.mock else 'off'}")
        _render_status_line(session)
        return

    if kind is CommandType.SET_PROVIDER:
        if not args:
            print_error("usage: /set-provider <openai|claude|gemini|ollama|local>")
            return
        llm_config.set_provider(LLMProvider.from_string(args[0]))
        session.reload_client()
        safe_console_print(f"[green]Provider set to[/green] {llm_config.provider.value}")
        return

    if kind is CommandType.SET_API_KEY:
        if not args:
            print_error("usage: /set-api-key <key>")
            return
        llm_config.api_key = args[0]
        session.reload_client()
        safe_console_print(f"[green]API key set[/green] ({llm_config.masked_api_key()})")
        return

    if kind is CommandType.SET_BASE_URL:
        if not args:
            print_error("usage: /set-base-url <url>")
            return
        llm_config.base_url = args[0]
        session.reload_client()
        safe_console_print(f"[green]Base URL set to[/green] {args[0]}")
        return

    if kind in (CommandType.CONFIG_OPENAI, CommandType.CONFIG_CLAUDE, CommandType.CONFIG_GEMINI):
        if not args:
            print_error(f"usage: /{kind.value.split('_')[1]} <api_key> [model]")
            return
        model = args[1] if len(args) > 1 else None
        if kind is CommandType.CONFIG_OPENAI:
            llm_config.quick_config_openai(args[0], model)
        elif kind is CommandType.CONFIG_CLAUDE:
            llm_config.quick_config_claude(args[0], model)
        else:
            llm_config.quick_config_gemini(args[0], model)
        session.reload_client()
        safe_console_print(f"[green]Configured {llm_config.provider.value}[/green] with model {llm_config.model}")
        return

    if kind is CommandType.CONFIG_OLLAMA:
        llm_config.quick_config_ollama(
            args[0] if args else None,
            args[1] if len(args) > 1 else None,
        )
        session.reload_client()
        safe_console_print(f"[green]Configured Ollama[/green] with model {llm_config.model} at {llm_config.base_url}")
        return

    if kind is CommandType.CONFIG_LOCAL:
        if not args:
            print_error("usage: /local <url> [model]")
            return
        llm_config.quick_config_local(args[0], args[1] if len(args) > 1 else None)
        session.reload_client()
        safe_console_print(f"[green]Configured local server[/green] at {llm_config.base_url}")
        return

    if kind is CommandType.LIST_PROVIDERS:
        safe_console_print(_render_providers_table(llm_config.provider))
        return

    if kind is CommandType.SAVE_CONFIG:
        path = llm_config.save_to_env(session.config.project_root / ".env")
        safe_console_print(f"[green]Configuration saved to[/green] {path}")
        return

    if kind is CommandType.LOAD_CONFIG:
        try:
            session.llm_config = LLMConfig.from_env_file(session.config.project_root / ".env")
        except ConfigError as e:
            print_error(str(e))
            return
        session.reload_client()
        safe_console_print(f"[green]Configuration loaded[/green] ({session.llm_config.provider.value})")
        return

    if FileCommandHandler.is_file_command(command):
        _render_file_result(session.run(session.file_commands.execute(command)))
        return

    if kind is CommandType.YOLO:
        if args and args[0].lower() not in ("on", "off"):
            print_error("usage: /yolo [on|off]")
            return
        session.file_commands.yolo_mode = args[0].lower() == "on" if args else not session.yolo_mode
        if session.yolo_mode:
            safe_console_print("[yellow]Yolo mode on:[/yellow] changes are applied without asking")
        else:
            safe_console_print("[green]Yolo mode off:[/green] changes need confirmation")
        return

    print_error("Unknown command. Type /help for the list of commands.")


def _render_providers_table(current: Optional[LLMProvider] = None) -> Table:
    table = Table(title="Providers", show_header=True, header_style="bold magenta")
    table.add_column("Provider", style="cyan")
    table.add_column("Description")
    for provider, description in LLMConfig.list_providers():
        marker = " [green]●[/green]" if provider is current else ""
        table.add_row(provider.value + marker, description)
    return table


def process_line(line: str, session: ShellSession) -> None:
    """Dispatch one line of input: a command, or a conversation turn."""
    command = CommandParser.parse_command(line)
    if command is not None:
        handle_command(command, session)
        return

    text = expand_mentions(line, session)
    response = session.run(run_turn(session, text))
    if response is not None:
        _render_response_extras(response)
        _render_status_line(session)


# Loops -----------------------------------------------------------------------------
def _interactive_loop_prompt_toolkit(session: ShellSession) -> None:
    prompt_session = PromptSession(
        history=FileHistory(str(HISTORY_FILE)),
        completer=CommandCompleter(),
        complete_while_typing=True,
    )
    while True:
        try:
            line = prompt_session.prompt("❯ ").strip()
        except (EOFError, KeyboardInterrupt):
            safe_console_print("[dim]Exiting GhostCode. Goodbye![/dim]\n")
            raise typer.Exit(0)
        if line:
            process_line(line, session)


def _interactive_loop_basic(session: ShellSession) -> None:
    while True:
        try:
            line = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            safe_console_print("\n[dim]Exiting GhostCode. Goodbye![/dim]")
            raise typer.Exit(0)
        if line:
            process_line(line, session)


def _start_session(mock: bool, model: Optional[str], project_root: Optional[Path], verbose: bool) -> ShellSession:
    config = get_config()
    if project_root is not None:
        config.project_root = project_root
    config.setup_logging(verbose=verbose)

    mock = mock or config.mock_mode
    try:
        llm_config = load_llm_config(mock, model)
    except ConfigError as e:
        print_error(f"{e}. Configure a provider in .env, or run with --mock.")
        raise typer.Exit(code=1)
    return ShellSession(config, llm_config, mock=mock)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    mock: bool = typer.Option(False, "--mock", help="Use built-in mock LLM responses (offline demo mode)"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model to use"),
    project_root: Optional[Path] = typer.Option(None, "--project-root", "-p", help="Project directory the tools work in"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
):
    """Interactive shell when no subcommand is provided."""
    ctx.obj = {"mock": mock, "model": model, "project_root": project_root, "verbose": verbose}
    if ctx.invoked_subcommand is not None:
        return

    session = _start_session(mock, model, project_root, verbose)
    _render_banner(session)

    try:
        if sys.stdin.isatty() and sys.stdout.isatty():
            _interactive_loop_prompt_toolkit(session)
        else:
            _interactive_loop_basic(session)
    finally:
        session.close()


@app.command()
def chat(
    ctx: typer.Context,
    prompt: str = typer.Argument(..., help="What to ask"),
):
    """Run a single turn and print the answer."""
    options = ctx.obj or {}
    session = _start_session(
        options.get("mock", False),
        options.get("model"),
        options.get("project_root"),
        options.get("verbose", False),
    )
    try:
        response = session.run(run_turn(session, expand_mentions(prompt, session)))
    finally:
        session.close()
    if response is None:
        raise typer.Exit(code=1)
    if response.key_points:
        safe_console_print(Markdown("\n".join(f"- {point}" for point in response.key_points)))


@app.command()
def providers():
    """List supported model providers."""
    safe_console_print(_render_providers_table())


@app.command()
def version():
    """Show GhostCode version."""
    safe_console_print(f"GhostCode version [bold magenta]{__version__}[/bold magenta]")


def main():
    """Console script entry point."""
    app()


if __name__ == "__main__":
    main()
