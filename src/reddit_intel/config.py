"""Configuration: environment settings and the channel configuration file.

Environment variables (a .env file in the working directory is loaded first,
without overriding variables already set):

    REDDIT_CLIENT_ID, REDDIT_CLIENT_SECRET   shared Reddit app credentials
    REDDIT_USER_AGENT                        User-Agent for Reddit requests
    VECTORDB_API_URL, VECTORDB_API_TOKEN     vector store endpoint and token
    CHANNELS_CONFIG                          path to channels.json
    MAX_CONCURRENCY                          channels processed at once (3)
    REQUEST_INTERVAL_MS                      min gap between Reddit calls (1000)
    INGEST_DELAY_MS                          pause between store writes (100)
    LOG_LEVEL, PORT

channels.json maps channel name -> {"enabled": bool, "platform": str?}:

    {
      "r/python": {"enabled": true, "platform": "python"},
      "r/rust": {"enabled": false}
    }
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from reddit_intel.backend.integrations.auth import DEFAULT_USER_AGENT
from reddit_intel.backend.integrations.vector_store import DEFAULT_VECTORDB_API_URL
from reddit_intel.backend.utils.errors import ConfigError
from reddit_intel.backend.utils.logging_config import get_logger
from reddit_intel.models.job_models import ChannelSpec

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = os.path.join("config", "channels.json")


def load_dotenv(env_path: str = ".env") -> None:
    """Load a .env file into os.environ if it exists (existing vars win)."""
    if not os.path.exists(env_path):
        return
    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                key, _, value = line.partition("=")
                os.environ.setdefault(key.strip(), value.strip().strip('"').strip("'"))


@dataclass
class Settings:
    reddit_client_id: str = ""
    reddit_client_secret: str = ""
    reddit_user_agent: str = DEFAULT_USER_AGENT
    vectordb_api_url: str = DEFAULT_VECTORDB_API_URL
    vectordb_api_token: str = ""
    channels_config: str = DEFAULT_CONFIG_PATH
    max_concurrency: int = 3
    request_interval: float = 1.0
    ingest_delay: float = 0.1
    log_level: str = "INFO"
    port: int = 3000


def _int_env(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}")


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from the environment.

    Raises:
        ConfigError: If a numeric variable cannot be parsed
    """
    if env is None:
        env = os.environ

    return Settings(
        reddit_client_id=env.get("REDDIT_CLIENT_ID", "").strip(),
        reddit_client_secret=env.get("REDDIT_CLIENT_SECRET", "").strip(),
        reddit_user_agent=env.get("REDDIT_USER_AGENT", "").strip() or DEFAULT_USER_AGENT,
        vectordb_api_url=env.get("VECTORDB_API_URL", "").strip() or DEFAULT_VECTORDB_API_URL,
        vectordb_api_token=env.get("VECTORDB_API_TOKEN", "").strip(),
        channels_config=env.get("CHANNELS_CONFIG", "").strip() or DEFAULT_CONFIG_PATH,
        max_concurrency=max(1, _int_env(env, "MAX_CONCURRENCY", 3)),
        request_interval=_int_env(env, "REQUEST_INTERVAL_MS", 1000) / 1000.0,
        ingest_delay=_int_env(env, "INGEST_DELAY_MS", 100) / 1000.0,
        log_level=env.get("LOG_LEVEL", "INFO").strip() or "INFO",
        port=_int_env(env, "PORT", 3000),
    )


def load_channels_config(config_path: Optional[str] = None) -> Dict[str, Dict[str, Any]]:
    """Load and parse the channels configuration file.

    Raises:
        ConfigError: If the file is missing, not valid JSON, or not an object
    """
    file_path = Path(config_path or DEFAULT_CONFIG_PATH)

    try:
        config = json.loads(file_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigError(f"Configuration file not found at: {file_path}")
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to load configuration: {e}")

    if not isinstance(config, dict):
        raise ConfigError("Configuration must be a valid object")

    return config


def save_channels_config(config: Dict[str, Dict[str, Any]], config_path: Optional[str] = None) -> None:
    """Write the channels configuration file, creating its directory if needed."""
    file_path = Path(config_path or DEFAULT_CONFIG_PATH)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(json.dumps(config, indent=2) + "\n", encoding="utf-8")
    logger.info("channels_config_saved", path=str(file_path), channels=len(config))


def normalize_channel_name(name: str) -> str:
    """Ensure a channel name carries the "r/" prefix: "python" -> "r/python"."""
    name = name.strip()
    return name if name.startswith("r/") else f"r/{name}"


def validate_channel_config(channel: ChannelSpec) -> bool:
    """Raise ConfigError unless the channel has both credentials."""
    for field_name in ("client_id", "client_secret"):
        if not getattr(channel, field_name):
            raise ConfigError(f"Missing required field: {field_name}")
    return True


def get_enabled_channels(
    config: Dict[str, Dict[str, Any]],
    client_id: str,
    client_secret: str,
) -> List[ChannelSpec]:
    """Resolve enabled channels with the shared Reddit credentials.

    Returns an empty list (with a warning) when credentials are missing.
    """
    if not client_id or not client_secret:
        logger.warning("reddit_credentials_missing", missing=[
            name for name, value in (
                ("REDDIT_CLIENT_ID", client_id),
                ("REDDIT_CLIENT_SECRET", client_secret),
            ) if not value
        ])
        return []

    channels = []
    for name, channel_config in config.items():
        if not isinstance(channel_config, dict) or channel_config.get("enabled") is not True:
            continue
        channel = ChannelSpec(
            name=name,
            platform=channel_config.get("platform") or name,
            client_id=client_id,
            client_secret=client_secret,
        )
        channels.append(channel)

    return channels
