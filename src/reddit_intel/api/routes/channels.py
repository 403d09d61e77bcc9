"""Channel configuration endpoints.

Reads and rewrites the channels.json file named by the CHANNELS_CONFIG setting.
Channel names contain a slash ("r/python"), so the path parameter accepts one.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Request

from reddit_intel.api.models import ChannelCreate, ChannelUpdate
from reddit_intel.api.responses import (
    CHANNEL_EXISTS,
    CONFIG_ERROR,
    NOT_FOUND,
    raise_api_error,
    wrap_response,
)
from reddit_intel.backend.utils.errors import ConfigError
from reddit_intel.backend.utils.logging_config import get_logger
from reddit_intel.config import (
    load_channels_config,
    normalize_channel_name,
    save_channels_config,
)

router = APIRouter(prefix="/api", tags=["channels"])
logger = get_logger(__name__)


def _load(request: Request) -> Dict[str, Dict[str, Any]]:
    try:
        return load_channels_config(request.app.state.settings.channels_config)
    except ConfigError as e:
        logger.error("channels_config_load_failed", error=str(e))
        raise_api_error(CONFIG_ERROR, str(e))


def _channel_view(name: str, channel_config: Any) -> Dict[str, Any]:
    if not isinstance(channel_config, dict):
        channel_config = {}
    return {
        "subreddit": name,
        "enabled": channel_config.get("enabled") is True,
        "platform": channel_config.get("platform") or name,
    }


@router.get("/config")
async def get_config(request: Request):
    config = _load(request)
    channels: List[Dict[str, Any]] = [
        _channel_view(name, channel_config) for name, channel_config in config.items()
    ]
    return wrap_response({"channels": channels}, total=len(channels))


@router.post("/channels")
async def add_channel(request: Request, body: ChannelCreate):
    name = normalize_channel_name(body.subreddit)
    config = _load(request)

    if name in config:
        raise_api_error(CHANNEL_EXISTS, f"Channel {name} already exists")

    config[name] = {"enabled": body.enabled}
    if body.platform:
        config[name]["platform"] = body.platform
    save_channels_config(config, request.app.state.settings.channels_config)

    logger.info("channel_added", channel=name, enabled=body.enabled)
    return wrap_response(_channel_view(name, config[name]))


@router.put("/channels/{subreddit:path}")
async def update_channel(request: Request, subreddit: str, body: ChannelUpdate):
    config = _load(request)
    if subreddit not in config:
        raise_api_error(NOT_FOUND, f"Channel {subreddit} not found")

    if body.enabled is not None:
        config[subreddit]["enabled"] = body.enabled
    if body.platform is not None:
        config[subreddit]["platform"] = body.platform
    save_channels_config(config, request.app.state.settings.channels_config)

    logger.info("channel_updated", channel=subreddit, enabled=config[subreddit].get("enabled"))
    return wrap_response(_channel_view(subreddit, config[subreddit]))


@router.delete("/channels/{subreddit:path}")
async def delete_channel(request: Request, subreddit: str):
    config = _load(request)
    if subreddit not in config:
        raise_api_error(NOT_FOUND, f"Channel {subreddit} not found")

    del config[subreddit]
    save_channels_config(config, request.app.state.settings.channels_config)

    logger.info("channel_deleted", channel=subreddit)
    return wrap_response({"subreddit": subreddit, "message": f"Channel {subreddit} deleted"})
