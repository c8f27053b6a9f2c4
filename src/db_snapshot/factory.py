"""Database client factory.

Resolves the active profile from db.toml and builds a fresh adapter for it.
Adapters are not cached at module level -- the caller owns the adapter it
gets back and is responsible for closing it.

Profile resolution priority:
1. Explicit ``profile_name`` argument
2. ``{env_prefix}DB_PROFILE`` environment variable
3. Raise ``ProfileNotFoundError``
"""

import os
from urllib.parse import quote

from db_snapshot.adapters.base import DatabaseClient
from db_snapshot.adapters.postgres import AsyncPostgresAdapter
from db_snapshot.config.loader import load_db_config
from db_snapshot.config.models import DatabaseConfig, DatabaseProfile


class ProfileNotFoundError(Exception):
    """Raised when no database profile is configured."""

    pass


def get_active_profile_name(
    profile_name: str | None = None,
    env_prefix: str = "",
) -> str:
    """Get active profile name from the argument or the environment.

    Args:
        profile_name: Explicit profile name; returned unchanged when set.
        env_prefix: Prefix for environment variable lookup
            (e.g., ``"APP_"`` reads ``APP_DB_PROFILE``).

    Returns:
        Profile name

    Raises:
        ProfileNotFoundError: If no profile is configured
    """
    if profile_name:
        return profile_name

    env_var = f"{env_prefix}DB_PROFILE"
    env_profile = os.environ.get(env_var)
    if env_profile:
        return env_profile

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        f"Set {env_var}=<name> or pass --profile <name>."
    )


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Args:
        profile: Database profile from config

    Returns:
        Connection URL with password substituted (URL-quoted)
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


def create_adapter(profile: DatabaseProfile, env_prefix: str = "") -> DatabaseClient:
    """Build the adapter matching ``profile.provider``.

    Args:
        profile: Database profile from config.
        env_prefix: Prefix for the ``SUPABASE_KEY`` environment fallback.

    Returns:
        A new, unconnected adapter.

    Raises:
        ValueError: If the provider is unknown or a Supabase key is missing.
        ImportError: If the supabase extra is not installed.
    """
    if profile.provider == "postgres":
        return AsyncPostgresAdapter(database_url=resolve_url(profile))

    if profile.provider == "supabase":
        from db_snapshot.adapters.supabase import AsyncSupabaseAdapter

        key = profile.key or os.environ.get(f"{env_prefix}SUPABASE_KEY")
        if not key:
            raise ValueError(
                f"Supabase profile needs a key (set 'key' or {env_prefix}SUPABASE_KEY)"
            )
        return AsyncSupabaseAdapter(url=profile.url, key=key)

    raise ValueError(f"Unknown provider '{profile.provider}'")


def get_adapter(
    profile_name: str | None = None,
    env_prefix: str = "",
    config: DatabaseConfig | None = None,
) -> DatabaseClient:
    """Resolve the active profile and return a new adapter for it.

    Args:
        profile_name: Profile name from db.toml.  If None, uses the
            ``{env_prefix}DB_PROFILE`` env var.
        env_prefix: Prefix for environment variable lookup.
        config: Already-loaded config; loaded from ``./db.toml`` when None.

    Returns:
        DatabaseClient for the resolved profile.

    Raises:
        ProfileNotFoundError: If no profile is configured.
        KeyError: If the profile is not in db.toml.
        FileNotFoundError: If db.toml is missing.

    Example:
        >>> adapter = get_adapter("local")
        >>> rows = await adapter.select("prayers", "*")
    """
    name = get_active_profile_name(profile_name, env_prefix=env_prefix)
    if config is None:
        config = load_db_config()

    if name not in config.profiles:
        raise KeyError(
            f"Profile '{name}' not found in db.toml.\n"
            f"Available profiles: {', '.join(config.profiles.keys())}"
        )

    return create_adapter(config.profiles[name], env_prefix=env_prefix)
