"""Configuration system for Agent Cosmos AI.

Loads plugin config from `.agent-cosmos-ai/<profile>/config.yaml`, supports
environment variable expansion, and merges the ``COSMOS_*`` settings from
explicit runtime settings, the YAML file and the process environment.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Mapping, Optional
from urllib.parse import urlparse

import yaml
from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Environment-variable expansion helper
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}")


def _expand_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with their environment values.

    If the variable is not set the placeholder is left as-is so that
    validation can catch it later.
    """

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))

    return _ENV_VAR_RE.sub(_replace, value)


def _expand_env_recursive(obj: object) -> object:
    """Walk an arbitrary nested structure and expand env vars in strings."""
    if isinstance(obj, str):
        return _expand_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _expand_env_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_recursive(item) for item in obj]
    return obj


# ---------------------------------------------------------------------------
# Pydantic v2 models
# ---------------------------------------------------------------------------


class CosmosSettings(BaseModel):
    """Wallet and chain selection. ``None`` means "use the chain default"."""

    mnemonic: str = ""
    chain_name: str = "osmosis"
    rpc_url: Optional[str] = None
    denom: Optional[str] = None
    decimals: Optional[int] = None


class TransferConfig(BaseModel):
    """How agent-initiated transfers are executed."""

    require_approval: bool = False
    gas_limit: Optional[int] = None  # None = simulate
    default_memo: str = ""
    max_amount: float = 0.0          # display units, 0 = unlimited
    wait_for_inclusion: bool = True
    timeout_seconds: float = 60.0


class PriceConfig(BaseModel):
    """CoinGecko price feed settings."""

    api_url: str = "https://api.coingecko.com/api/v3"
    api_key: str = ""                # ${COINGECKO_API_KEY}
    max_retries: int = 3
    retry_delay: float = 2.0
    timeout: float = 10.0


class CacheConfig(BaseModel):
    """Wallet data cache settings."""

    ttl_seconds: int = 300
    persistent: bool = True


class RateLimitConfig(BaseModel):
    """Rate limits for agent-initiated transfers."""

    transfers_per_day: int = 20


class PluginConfig(BaseModel):
    """Root configuration object for one agent profile."""

    agent_name: str = "Cosmos Agent"
    cosmos: CosmosSettings = Field(default_factory=CosmosSettings)
    transfer: TransferConfig = Field(default_factory=TransferConfig)
    price: PriceConfig = Field(default_factory=PriceConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    rate_limits: RateLimitConfig = Field(default_factory=RateLimitConfig)


# ---------------------------------------------------------------------------
# COSMOS_* settings validation
# ---------------------------------------------------------------------------


class CosmosConfigError(ValueError):
    """Raised when the merged Cosmos settings fail validation."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(
            "Cosmos configuration validation failed:\n" + "\n".join(errors)
        )


# setting key -> CosmosSettings field
SETTING_KEYS: dict[str, str] = {
    "COSMOS_MNEMONIC": "mnemonic",
    "COSMOS_CHAIN_NAME": "chain_name",
    "COSMOS_RPC_URL": "rpc_url",
    "COSMOS_DENOM": "denom",
    "COSMOS_DECIMALS": "decimals",
}

_MNEMONIC_WORD_COUNTS = (12, 15, 18, 21, 24)
_URL_SCHEMES = ("http", "https", "rest+http", "rest+https", "grpc+http", "grpc+https")


def _is_set(value: object) -> bool:
    if value is None:
        return False
    text = str(value).strip()
    return bool(text) and not _ENV_VAR_RE.search(text)


def get_setting(key: str, settings: Mapping[str, object] | None = None) -> str | None:
    """Look up a runtime setting, falling back to the environment."""
    if settings is not None and _is_set(settings.get(key)):
        return str(settings[key]).strip()
    value = os.environ.get(key)
    return value.strip() if _is_set(value) else None


def validate_cosmos_config(
    settings: Mapping[str, object] | None = None,
    base: CosmosSettings | None = None,
    *,
    require_mnemonic: bool = False,
) -> CosmosSettings:
    """Merge and validate the ``COSMOS_*`` settings.

    Each key is taken from *settings* first, then from *base* (usually the
    YAML ``cosmos`` section), then from the process environment, and
    finally from the model default.

    Raises
    ------
    CosmosConfigError
        With one ``"<KEY>: <message>"`` line per problem.
    """
    from agent_cosmos_ai.wallet.chains import list_chain_names

    base = base or CosmosSettings()
    merged: dict[str, object] = {}
    for key, field_name in SETTING_KEYS.items():
        if settings is not None and _is_set(settings.get(key)):
            merged[field_name] = str(settings[key]).strip()
            continue
        base_value = getattr(base, field_name)
        if field_name in base.model_fields_set and _is_set(base_value):
            merged[field_name] = base_value
            continue
        env_value = os.environ.get(key)
        if _is_set(env_value):
            merged[field_name] = env_value.strip()
        elif _is_set(base_value):
            merged[field_name] = base_value

    errors: list[str] = []

    mnemonic = str(merged.get("mnemonic", "") or "")
    words = mnemonic.split()
    if not words:
        if require_mnemonic:
            errors.append("COSMOS_MNEMONIC: Cosmos wallet mnemonic is required")
    elif len(words) not in _MNEMONIC_WORD_COUNTS:
        errors.append(
            f"COSMOS_MNEMONIC: expected 12, 15, 18, 21 or 24 words, got {len(words)}"
        )
    merged["mnemonic"] = " ".join(words)

    chain_name = str(merged.get("chain_name", "osmosis")).strip().lower()
    if chain_name not in list_chain_names():
        errors.append(
            f"COSMOS_CHAIN_NAME: unknown chain '{chain_name}'. "
            f"Available: {list_chain_names()}"
        )
    merged["chain_name"] = chain_name

    rpc_url = merged.get("rpc_url")
    if rpc_url is not None:
        parsed = urlparse(str(rpc_url))
        if parsed.scheme not in _URL_SCHEMES or not parsed.netloc:
            errors.append(f"COSMOS_RPC_URL: A valid Cosmos RPC URL is required, got '{rpc_url}'")

    decimals = merged.get("decimals")
    if decimals is not None:
        try:
            decimals_int = int(str(decimals))
        except ValueError:
            errors.append(f"COSMOS_DECIMALS: must be an integer, got '{decimals}'")
        else:
            if not 0 <= decimals_int <= 18:
                errors.append(f"COSMOS_DECIMALS: must be between 0 and 18, got {decimals_int}")
            merged["decimals"] = decimals_int

    if errors:
        raise CosmosConfigError(errors)
    return CosmosSettings.model_validate(merged)


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def slugify(name: str) -> str:
    """Convert a profile name to a filesystem-safe slug.

    ``"My Agent"`` → ``"my-agent"``, ``""`` → ``"default"``.
    """
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "default"


def get_root_dir(base: Path | None = None) -> Path:
    """Return the ``.agent-cosmos-ai/`` root directory (no auto-create)."""
    if base is None:
        base = Path.cwd()
    return base / ".agent-cosmos-ai"


def get_profile_dir(
    profile: str = "default",
    base: Path | None = None,
    *,
    create: bool = True,
) -> Path:
    """Return the directory for a profile, e.g. ``.agent-cosmos-ai/<slug>/``.

    Parameters
    ----------
    profile:
        Profile slug (e.g. ``"default"``, ``"osmosis-bot"``).
    base:
        Parent directory that contains (or will contain) the
        ``.agent-cosmos-ai/`` folder.  Defaults to the current working
        directory.
    create:
        If *True* (default), create the directory tree if it doesn't exist.
    """
    profile_dir = get_root_dir(base) / slugify(profile)
    if create:
        profile_dir.mkdir(parents=True, exist_ok=True)
    return profile_dir


def list_profiles(base: Path | None = None) -> list[str]:
    """Return slugs of all profiles (subdirs containing ``config.yaml``)."""
    root = get_root_dir(base)
    if not root.is_dir():
        return []
    return sorted(
        d.name
        for d in root.iterdir()
        if d.is_dir() and (d / "config.yaml").exists()
    )


def load_config(path: Path) -> PluginConfig:
    """Load and validate a plugin configuration from a YAML file.

    Environment variable placeholders (``${VAR}``) are expanded before
    validation.
    """
    raw_text = path.read_text(encoding="utf-8")
    raw_data = yaml.safe_load(raw_text) or {}
    expanded = _expand_env_recursive(raw_data)
    return PluginConfig.model_validate(expanded)


def save_config(config: PluginConfig, path: Path) -> None:
    """Serialize a :class:`PluginConfig` to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="python", exclude_none=True)
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(data, fh, default_flow_style=False, sort_keys=False)
