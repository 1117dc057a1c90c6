"""CosmosPlugin - wires config, storage, wallet and tools for a host agent."""

from __future__ import annotations

import inspect
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Mapping

from agent_cosmos_ai import tools as _tools  # noqa: F401  (registers the tools)
from agent_cosmos_ai.config import (
    CosmosSettings,
    PluginConfig,
    get_profile_dir,
    load_config,
    save_config,
)
from agent_cosmos_ai.storage.database import Database, get_database
from agent_cosmos_ai.tools.cosmos_tools import set_current_agent, set_wallet_manager
from agent_cosmos_ai.tools.rate_limiter import RateLimiter
from agent_cosmos_ai.tools.registry import ActionResult, Tool, ToolDefinition, ToolRegistry
from agent_cosmos_ai.wallet.manager import WalletManager

logger = logging.getLogger("agent_cosmos_ai.plugin")

ACTION_NAMES = [
    "check_balance",
    "get_wallet_address",
    "get_wallet_portfolio",
    "SEND_TOKEN",
    "list_transfers",
]

Callback = Callable[[dict[str, Any]], Any]
Provider = Callable[..., Awaitable[str | None]]


class CosmosPlugin:
    """Cosmos wallet plugin for an agent.

    Exposes a wallet *provider* (portfolio text for the agent's context)
    and wallet *actions* (tools an LLM can call, ``SEND_TOKEN`` among
    them).
    """

    name = "COSMOS"
    description = "Cosmos (e.g. Osmosis) wallet plugin: portfolio context and token transfers"

    def __init__(
        self,
        config: PluginConfig,
        profile_dir: Path,
        db: Database,
        settings: Mapping[str, object] | None = None,
        **wallet_kwargs: Any,
    ):
        self.config = config
        self.profile_dir = profile_dir
        self.db = db
        self.wallet_dir = profile_dir / "wallet"
        self.wallet_manager = WalletManager(
            self.wallet_dir, db, config, settings=settings, **wallet_kwargs
        )
        self.providers: list[Provider] = [self.wallet_provider]
        self.evaluators: list[Callable[..., Any]] = []

        RateLimiter.get().configure_from(config.rate_limits)
        set_wallet_manager(self.wallet_manager if self.wallet_manager.has_wallet() else None)

    @classmethod
    async def load(
        cls,
        base_path: Path | None = None,
        profile: str = "default",
        settings: Mapping[str, object] | None = None,
        **wallet_kwargs: Any,
    ) -> CosmosPlugin:
        """Load an existing profile from a .agent-cosmos-ai directory."""
        profile_dir = get_profile_dir(profile, base_path, create=False)
        config_path = profile_dir / "config.yaml"
        if not config_path.exists():
            raise FileNotFoundError(
                f"No profile found at {profile_dir}. Run 'agent-cosmos-ai init' first."
            )

        config = load_config(config_path)
        db = get_database(profile_dir)
        await db.connect()

        try:
            plugin = cls(config, profile_dir, db, settings=settings, **wallet_kwargs)
        except Exception:
            await db.close()
            raise

        if plugin.wallet_manager.has_wallet():
            await plugin.wallet_manager.register_wallet_in_db()
        return plugin

    @classmethod
    async def init(
        cls,
        base_path: Path | None = None,
        profile: str = "default",
        agent_name: str = "Cosmos Agent",
        chain_name: str = "osmosis",
        settings: Mapping[str, object] | None = None,
        **wallet_kwargs: Any,
    ) -> CosmosPlugin:
        """Create a new profile with a default config and an empty database."""
        profile_dir = get_profile_dir(profile, base_path)
        config = PluginConfig(
            agent_name=agent_name,
            cosmos=CosmosSettings(mnemonic="${COSMOS_MNEMONIC}", chain_name=chain_name),
        )
        save_config(config, profile_dir / "config.yaml")
        # Reload so the mnemonic placeholder goes through env expansion.
        config = load_config(profile_dir / "config.yaml")

        db = get_database(profile_dir)
        await db.connect()
        try:
            return cls(config, profile_dir, db, settings=settings, **wallet_kwargs)
        except Exception:
            await db.close()
            raise

    # ------------------------------------------------------------------
    # Provider / actions
    # ------------------------------------------------------------------

    async def wallet_provider(self, agent_name: str | None = None) -> str | None:
        """Portfolio text for the agent's context, or ``None`` if unavailable."""
        name = agent_name or self.config.agent_name
        try:
            if not self.wallet_manager.has_wallet():
                logger.warning("Wallet provider called without a configured wallet")
                return None
            return await self.wallet_manager.get_formatted_portfolio(name)
        except Exception as e:
            logger.error(f"Error in wallet provider: {e}")
            return None

    @property
    def actions(self) -> list[Tool]:
        return ToolRegistry.get().get_tools(ACTION_NAMES)

    def tool_definitions(self) -> list[ToolDefinition]:
        return [t.to_definition() for t in self.actions]

    async def handle_action(
        self,
        name: str,
        arguments: Mapping[str, Any] | None = None,
        agent_name: str | None = None,
        callback: Callback | None = None,
    ) -> bool:
        """Run an action by name or simile and report through *callback*.

        Returns whether the action succeeded.
        """
        tool = ToolRegistry.get().get_tool(name)
        if tool is None or tool.name not in ACTION_NAMES:
            result = ActionResult(
                success=False,
                text=f"Error: Unknown action '{name}'",
                content={"error": f"Unknown action '{name}'"},
            )
        else:
            set_current_agent(agent_name or self.config.agent_name)
            logger.info(f"Starting {tool.name} handler...")
            kwargs = dict(arguments or {})
            try:
                inspect.signature(tool.func).bind(**kwargs)
            except TypeError as e:
                result = ActionResult(
                    success=False,
                    text=f"Error: invalid arguments for {tool.name}: {e}",
                    content={"error": str(e)},
                )
            else:
                try:
                    result = await tool.run(**kwargs)
                except Exception as e:
                    logger.exception(f"{tool.name} handler failed")
                    result = ActionResult(
                        success=False,
                        text=f"Error: {tool.name} failed: {e}",
                        content={"error": str(e)},
                    )

        if callback is not None:
            ret = callback({"text": result.text, "content": result.content})
            if inspect.isawaitable(ret):
                await ret
        return result.success

    async def shutdown(self) -> None:
        set_wallet_manager(None)
        await self.db.close()
