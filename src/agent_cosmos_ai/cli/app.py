"""CLI for Agent Cosmos AI - manage an agent's Cosmos wallet from the terminal."""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

app = typer.Typer(
    name="agent-cosmos-ai",
    help="Give an AI agent a Cosmos wallet: portfolio context and token transfers.",
    no_args_is_help=True,
)
console = Console()

_selected_profile: str = "default"

STATUS_COLORS = {
    "pending": "yellow",
    "approved": "blue",
    "rejected": "red",
    "sent": "green",
    "failed": "red",
}


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        console.print(f"agent-cosmos-ai {version('agent-cosmos-ai')}")
        raise typer.Exit()


@app.callback()
def main(
    profile: str = typer.Option(
        "default",
        "--profile",
        "-P",
        help="Agent profile to operate on",
        envvar="AGENT_COSMOS_PROFILE",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """Give an AI agent a Cosmos wallet: portfolio context and token transfers."""
    global _selected_profile
    _selected_profile = profile
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _run(coro):
    """Run an async function synchronously."""
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    with concurrent.futures.ThreadPoolExecutor() as pool:
        return pool.submit(asyncio.run, coro).result()


async def _load_plugin():
    from agent_cosmos_ai.config import CosmosConfigError
    from agent_cosmos_ai.core.plugin import CosmosPlugin

    try:
        return await CosmosPlugin.load(profile=_selected_profile)
    except (FileNotFoundError, CosmosConfigError) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


# ------------------------------------------------------------------
# init
# ------------------------------------------------------------------


@app.command()
def init(
    name: str = typer.Option("Cosmos Agent", "--name", "-n", help="Agent name"),
    chain: str = typer.Option("osmosis", "--chain", "-c", help="Chain to use (see 'chains')"),
):
    """Initialize a new agent profile in the current directory."""
    from agent_cosmos_ai.config import get_profile_dir
    from agent_cosmos_ai.core.plugin import CosmosPlugin
    from agent_cosmos_ai.wallet.chains import list_chain_names

    if chain not in list_chain_names():
        console.print(f"[red]Unknown chain '{chain}'.[/red] Available: {', '.join(list_chain_names())}")
        raise typer.Exit(1)

    profile_dir = get_profile_dir(_selected_profile, create=False)
    if (profile_dir / "config.yaml").exists():
        console.print(f"[yellow]Profile already initialized at {profile_dir}.[/yellow]")
        raise typer.Exit(1)

    async def _init():
        plugin = await CosmosPlugin.init(
            profile=_selected_profile, agent_name=name, chain_name=chain
        )
        has_wallet = plugin.wallet_manager.has_wallet()
        await plugin.shutdown()
        return plugin.profile_dir, has_wallet

    profile_dir, has_wallet = _run(_init())

    wallet_line = (
        "Wallet: [green]COSMOS_MNEMONIC detected[/green]\n"
        if has_wallet
        else "Wallet: [yellow]not configured[/yellow] - set COSMOS_MNEMONIC or create a keystore\n"
    )
    console.print(Panel(
        f"[bold green]Agent '{name}' initialized![/bold green]\n\n"
        f"Directory: {profile_dir}\n"
        f"Config: {profile_dir / 'config.yaml'}\n"
        f"Chain: [cyan]{chain}[/cyan]\n"
        f"{wallet_line}\n"
        f"Next steps:\n"
        f"  agent-cosmos-ai wallet create\n"
        f"  agent-cosmos-ai wallet balance\n"
        f"  agent-cosmos-ai portfolio",
        title="Agent Cosmos AI",
    ))


# ------------------------------------------------------------------
# chains / tools
# ------------------------------------------------------------------


@app.command()
def chains():
    """List the supported Cosmos chains."""
    from agent_cosmos_ai.wallet.chains import CHAINS

    table = Table(title="Supported Chains")
    table.add_column("Name", style="cyan")
    table.add_column("Chain ID")
    table.add_column("Prefix")
    table.add_column("Denom")
    table.add_column("Symbol")
    table.add_column("Endpoint", style="dim")

    for c in CHAINS.values():
        table.add_row(c.name, c.chain_id, c.prefix, c.denom, c.symbol, c.rpc_url)
    console.print(table)


@app.command()
def tools():
    """List the wallet actions exposed to agents."""
    from agent_cosmos_ai.core.plugin import ACTION_NAMES
    from agent_cosmos_ai.tools.registry import ToolRegistry

    table = Table(title="Agent Actions")
    table.add_column("Name", style="bold")
    table.add_column("Similes", style="dim")
    table.add_column("Description")

    for t in ToolRegistry.get().get_tools(ACTION_NAMES):
        table.add_row(t.name, ", ".join(t.similes) or "-", t.description)
    console.print(table)


# ------------------------------------------------------------------
# portfolio
# ------------------------------------------------------------------


@app.command()
def portfolio():
    """Show the wallet portfolio exactly as the agent sees it."""

    async def _portfolio():
        plugin = await _load_plugin()
        text = await plugin.wallet_provider()
        await plugin.shutdown()
        return text

    text = _run(_portfolio())
    if text is None:
        console.print("[yellow]No wallet found.[/yellow] Run 'agent-cosmos-ai wallet create' first.")
        raise typer.Exit(1)
    console.print(Panel(text.rstrip(), title="Wallet Portfolio"))


# ------------------------------------------------------------------
# wallet sub-commands
# ------------------------------------------------------------------

wallet_app = typer.Typer(
    name="wallet",
    help="Manage the agent's Cosmos wallet.",
    no_args_is_help=True,
)
app.add_typer(wallet_app, name="wallet")


@wallet_app.command("create")
def wallet_create(
    import_mnemonic: bool = typer.Option(
        False, "--import", help="Import an existing mnemonic instead of generating a key"
    ),
):
    """Generate (or import) a key into an encrypted keystore."""
    mnemonic = None
    if import_mnemonic:
        mnemonic = console.input("[bold]Mnemonic: [/bold]", password=True).strip()

    password = console.input("[bold]Set wallet password: [/bold]", password=True)
    confirm = console.input("[bold]Confirm password: [/bold]", password=True)
    if password != confirm:
        console.print("[red]Passwords do not match.[/red]")
        raise typer.Exit(1)

    async def _create():
        plugin = await _load_plugin()
        mgr = plugin.wallet_manager
        try:
            if mgr.has_wallet():
                console.print("[yellow]Wallet already exists.[/yellow]")
                return mgr.address, mgr.chain, False
            addr = mgr.create(password, mnemonic=mnemonic)
            await mgr.register_wallet_in_db()
            return addr, mgr.chain, True
        finally:
            await plugin.shutdown()

    try:
        addr, chain, created = _run(_create())
    except ValueError as e:
        console.print(f"[red]Invalid mnemonic: {e}[/red]")
        raise typer.Exit(1)

    if created:
        console.print(Panel(
            f"[bold green]Wallet created![/bold green]\n\n"
            f"Address: [cyan]{addr}[/cyan]\n\n"
            f"[dim]Your keystore is encrypted with your password.\n"
            f"Fund it with {chain.symbol} on {chain.name} to start transacting.[/dim]",
            title="Cosmos Wallet",
        ))
    else:
        console.print(f"Wallet address: [cyan]{addr}[/cyan]")


@wallet_app.command("address")
def wallet_address():
    """Show the wallet address on the configured chain."""

    async def _address():
        plugin = await _load_plugin()
        addr = plugin.wallet_manager.address
        chain = plugin.wallet_manager.chain
        await plugin.shutdown()
        return addr, chain

    addr, chain = _run(_address())
    if addr is None:
        console.print("[yellow]No wallet found.[/yellow] Run 'agent-cosmos-ai wallet create' first.")
        raise typer.Exit(1)

    console.print(Panel(
        f"[cyan]{addr}[/cyan]\n\n"
        f"[dim]{chain.name} ({chain.chain_id})[/dim]",
        title="Wallet Address",
    ))


@wallet_app.command("balance")
def wallet_balance(
    denom: str = typer.Option(None, "--denom", "-d", help="Denom or symbol (defaults to the native token)"),
):
    """Show the wallet balance of one denom."""

    async def _balance():
        plugin = await _load_plugin()
        result = plugin.wallet_manager.get_balance(denom)
        await plugin.shutdown()
        return result

    result = _run(_balance())

    if "address" not in result:
        console.print(f"[red]{result['error']}[/red]")
        raise typer.Exit(1)
    if result["error"]:
        console.print(f"[yellow]{result['chain']}:[/yellow] error - {result['error']}")
        raise typer.Exit(1)
    console.print(f"[bold]{result['chain']}:[/bold] {result['balance']} {result['symbol']}")


@wallet_app.command("send")
def wallet_send(
    amount: str = typer.Argument(help="Amount to send in display units (e.g. 1.5)"),
    to: str = typer.Option(..., "--to", "-t", help="Recipient bech32 address"),
    denom: str = typer.Option(None, "--denom", "-d", help="Denom or symbol (defaults to the native token)"),
    memo: str = typer.Option("", "--memo", "-m", help="Transaction memo"),
):
    """Send tokens (human-initiated). Asks for confirmation."""
    from agent_cosmos_ai.storage.models import WalletSource
    from agent_cosmos_ai.wallet.chains import explorer_tx_url

    async def _prepare():
        plugin = await _load_plugin()
        mgr = plugin.wallet_manager
        try:
            return mgr.prepare_transfer(to, amount, denom), mgr.chain, mgr.source
        finally:
            await plugin.shutdown()

    try:
        prepared, chain, source = _run(_prepare())
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if source is None:
        console.print("[yellow]No wallet found.[/yellow] Run 'agent-cosmos-ai wallet create' first.")
        raise typer.Exit(1)

    console.print(f"\n[bold]Send {prepared.amount} {prepared.symbol} on {chain.name}[/bold]")
    console.print(f"  To: {prepared.recipient}")
    if memo:
        console.print(f"  Memo: {memo}")
    console.print(f"  Explorer: {chain.explorer_url}\n")

    typer.confirm("Confirm this transaction?", abort=True)
    password = None
    if source is WalletSource.KEYSTORE:
        password = console.input("[bold]Wallet password: [/bold]", password=True)

    async def _send():
        plugin = await _load_plugin()
        try:
            return await plugin.wallet_manager.transfer(
                prepared.recipient,
                prepared.amount,
                denom=prepared.denom,
                memo=memo,
                requested_by="cli",
                password=password,
                require_approval=False,
            )
        finally:
            await plugin.shutdown()

    try:
        record = _run(_send())
    except typer.Exit:
        raise
    except (ValueError, RuntimeError) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(Panel(
        f"[bold green]Transaction sent![/bold green]\n\n"
        f"Tx: [cyan]{record.tx_hash}[/cyan]\n"
        f"Explorer: {explorer_tx_url(chain, record.tx_hash)}",
        title="Transaction Sent",
    ))


@wallet_app.command("transfers")
def wallet_transfers(
    status: str = typer.Option(None, "--status", "-s", help="Filter by status (pending, approved, rejected, sent, failed)"),
):
    """Show transfer history and the approval queue."""

    async def _transfers():
        plugin = await _load_plugin()
        rows = await plugin.wallet_manager.list_transfers(status=status)
        await plugin.shutdown()
        return rows

    rows = _run(_transfers())

    if not rows:
        console.print("[dim]No transfers found.[/dim]")
        return

    table = Table(title="Transfers")
    table.add_column("ID", style="dim")
    table.add_column("Amount", justify="right")
    table.add_column("Denom")
    table.add_column("Chain", style="cyan")
    table.add_column("To", style="dim")
    table.add_column("Status")
    table.add_column("Requested By")
    table.add_column("Tx", style="dim")

    for t in rows:
        color = STATUS_COLORS.get(t["status"], "white")
        table.add_row(
            t["id"],
            t["amount"],
            t["denom"],
            t["chain"],
            t["to_address"][:14] + "...",
            f"[{color}]{t['status']}[/{color}]",
            t.get("requested_by") or "-",
            (t.get("tx_hash") or t.get("error") or "")[:40],
        )

    console.print(table)


@wallet_app.command("approve")
def wallet_approve(
    transfer_id: str = typer.Argument(help="Transfer ID to approve"),
):
    """Approve and send a pending transfer."""
    from agent_cosmos_ai.storage.models import WalletSource
    from agent_cosmos_ai.wallet.chains import explorer_tx_url

    async def _get_transfer():
        plugin = await _load_plugin()
        transfer = await plugin.wallet_manager.get_transfer(transfer_id)
        source = plugin.wallet_manager.source
        await plugin.shutdown()
        return transfer, source

    transfer, source = _run(_get_transfer())

    if transfer is None:
        console.print(f"[red]Transfer {transfer_id} not found.[/red]")
        raise typer.Exit(1)

    if transfer["status"] != "pending":
        console.print(f"[yellow]Transfer is '{transfer['status']}', not pending.[/yellow]")
        raise typer.Exit(1)

    console.print(Panel(
        f"Amount:  [bold]{transfer['amount']} {transfer['denom']}[/bold]\n"
        f"Chain:   {transfer['chain']}\n"
        f"To:      {transfer['to_address']}\n"
        f"Memo:    {transfer.get('memo') or 'N/A'}\n"
        f"By:      {transfer.get('requested_by') or 'N/A'}",
        title=f"Transfer {transfer_id}",
    ))

    typer.confirm("Approve and send this transfer?", abort=True)
    password = None
    if source is WalletSource.KEYSTORE:
        password = console.input("[bold]Wallet password: [/bold]", password=True)

    async def _approve():
        plugin = await _load_plugin()
        try:
            tx_hash = await plugin.wallet_manager.approve_and_send(transfer_id, password)
            return tx_hash, plugin.wallet_manager.chain
        finally:
            await plugin.shutdown()

    try:
        tx_hash, chain = _run(_approve())
    except typer.Exit:
        raise
    except (ValueError, RuntimeError) as e:
        console.print(f"[red]Failed: {e}[/red]")
        raise typer.Exit(1)

    console.print(Panel(
        f"[bold green]Transfer approved and sent![/bold green]\n\n"
        f"Tx: [cyan]{tx_hash}[/cyan]\n"
        f"Explorer: {explorer_tx_url(chain, tx_hash)}",
        title="Transfer Sent",
    ))


@wallet_app.command("reject")
def wallet_reject(
    transfer_id: str = typer.Argument(help="Transfer ID to reject"),
):
    """Reject a pending transfer."""

    async def _reject():
        plugin = await _load_plugin()
        try:
            await plugin.wallet_manager.reject_transfer(transfer_id)
        finally:
            await plugin.shutdown()

    try:
        _run(_reject())
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    console.print(f"[bold]Transfer {transfer_id} rejected.[/bold]")


if __name__ == "__main__":
    app()
