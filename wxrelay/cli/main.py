"""CLI commands for wxrelay."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from wxrelay import __logo__, __version__
from wxrelay.config.loader import get_config_path, get_data_dir, load_config, save_config
from wxrelay.config.schema import Config
from wxrelay.history.store import HistoryStore

console = Console()

app = typer.Typer(name="wxrelay", help="wxrelay - WeChat conversational relay")


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} wxrelay v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-V", callback=version_callback, is_eager=True
    ),
):
    """wxrelay - WeChat conversational relay."""
    pass


def _make_provider(config: Config):
    """Create LiteLLMProvider from config. Exits if no API key found."""
    from wxrelay.providers.litellm_provider import LiteLLMProvider

    p = config.provider
    if not p.api_key and not p.api_base:
        console.print("[red]Error: No API key configured.[/red]")
        console.print("Run [cyan]wxrelay onboard[/cyan], then set provider.apiKey in ~/.wxrelay/config.json")
        raise typer.Exit(1)
    return LiteLLMProvider(
        api_key=p.api_key or None,
        api_base=p.api_base,
        default_model=p.model,
        extra_headers=p.extra_headers,
    )


def _make_history(config: Config, provider=None) -> HistoryStore:
    return HistoryStore(
        max_length=config.history.max_length,
        path=config.history.history_path,
        provider=provider,
        model=config.provider.model,
    )


# ============================================================================
# Onboard
# ============================================================================


@app.command()
def onboard(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config.json"),
):
    """Create config.json, or rewrite an existing one in the current layout."""
    path = config_path or get_config_path()

    if path.exists():
        config = load_config(path)
        save_config(config, path)
        console.print(f"[green]✓[/green] Config updated at {path}")
    else:
        save_config(Config(), path)
        console.print(f"[green]✓[/green] Created config at {path}")

    console.print(f"\n{__logo__} wxrelay is ready!")
    console.print("\nNext steps:")
    console.print(f"  1. Add your API key under [cyan]provider.apiKey[/cyan] in {path}")
    console.print("  2. Start the WeChat bridge, then run: [cyan]wxrelay gateway[/cyan]")


# ============================================================================
# Gateway
# ============================================================================


@app.command()
def gateway(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config.json"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Start the WeChat relay."""
    from wxrelay.agent.loop import AgentLoop
    from wxrelay.agent.orchestrator import ConversationOrchestrator
    from wxrelay.agent.tools.factory import create_default_registry
    from wxrelay.broker.conversation_broker import BrokerManager
    from wxrelay.channels.wechat import WechatBridgeTransport
    from wxrelay.prompts.selector import PromptSelector
    from wxrelay.services.file_reader import FileReaderService
    from wxrelay.services.search import SearchService
    from wxrelay.services.url_reader import URLReaderService
    from wxrelay.session.lifecycle import SessionLifecycleManager, SessionStartError
    from wxrelay.utils.logging import configure_logging

    configure_logging(log_file=get_data_dir() / "wxrelay.log", verbose=verbose)
    console.print(f"{__logo__} Starting wxrelay gateway...")

    config = load_config(config_path)
    provider = _make_provider(config)
    history = _make_history(config, provider)

    prompts = PromptSelector(
        history,
        templates=config.prompts.templates,
        default=config.prompts.default,
        command=config.prompts.command,
    )
    search = SearchService(
        config.search.url,
        max_results=config.search.max_results,
        timeout=config.search.timeout,
    )
    reader = URLReaderService(max_chars=config.reader.max_chars, timeout=config.reader.timeout)
    tools = create_default_registry(search, reader, history, news_url=config.reader.news_url)

    orchestrator = ConversationOrchestrator(
        provider=provider,
        history=history,
        prompts=prompts,
        tools=tools,
        model=config.provider.model,
        max_tokens=config.provider.max_tokens,
        temperature=config.provider.temperature,
    )
    file_reader = FileReaderService(
        provider,
        model=config.provider.model,
        max_chars=config.files.max_chars,
        timeout=config.files.timeout,
    )

    transport = WechatBridgeTransport(config.wechat)
    agent = AgentLoop(orchestrator, file_reader, transport)

    async def run():
        brokers = BrokerManager(
            agent.process_inbound,
            max_queue_size=config.broker.max_queue_size,
            max_concurrent_turns=config.broker.max_concurrent_turns,
            drain_timeout=config.broker.drain_timeout,
        )
        session = SessionLifecycleManager(
            transport,
            brokers,
            history,
            max_retries=config.session.max_retries,
            retry_delay=config.session.retry_delay,
        )
        await session.run()

    console.print(f"[green]✓[/green] Tools: {', '.join(tools.tool_names)}")
    console.print(f"[green]✓[/green] Bridge: {config.wechat.bridge_url}")

    try:
        asyncio.run(run())
    except SessionStartError as e:
        logger.error(f"Fatal error: {e}")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("\nGoodbye!")


# ============================================================================
# History Commands
# ============================================================================


history_app = typer.Typer(help="Inspect and clear stored chat history")
app.add_typer(history_app, name="history")


@history_app.command("list")
def history_list(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config.json"),
):
    """List stored conversations."""
    config = load_config(config_path)
    history = _make_history(config)
    history.restore()

    conversations = history.conversations()
    if not conversations:
        console.print("No stored conversations.")
        return

    table = Table(title="Conversations")
    table.add_column("Conversation", style="cyan")
    table.add_column("Prompt", style="green")
    table.add_column("Messages", style="yellow")

    for cid, count in conversations.items():
        table.add_row(cid, history.get_prompt(cid) or config.prompts.default, str(count))

    console.print(table)


@history_app.command("clear")
def history_clear(
    conversation: Optional[str] = typer.Argument(None, help="Conversation to clear (all if omitted)"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config.json"),
):
    """Clear stored history for one or all conversations."""
    config = load_config(config_path)
    history = _make_history(config)
    history.restore()

    if conversation and not history.has_conversation(conversation):
        console.print(f"[red]Conversation {conversation} not found[/red]")
        raise typer.Exit(1)

    history.clear(conversation)
    if not history.persist():
        console.print("[red]Failed to save history[/red]")
        raise typer.Exit(1)

    if conversation:
        console.print(f"[green]✓[/green] Cleared history for {conversation}")
    else:
        console.print("[green]✓[/green] Cleared all history")


if __name__ == "__main__":
    app()
