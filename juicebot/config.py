"""
Configuration constants and environment variables for juicebot.

Secrets and deployment switches come from the environment (optionally via a
``.env`` file). Feature settings live in a YAML file pointed at by
``JUICEBOT_CONFIG``.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from juicebot.errors import ConfigError

# Load environment variables
load_dotenv()


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


# Bot configuration
DISCORD_TOKEN = os.getenv('DISCORD_BOT_TOKEN') or os.getenv('TOKEN')
GUILD_ID = os.getenv('DISCORD_GUILD_ID')
CONFIG_PATH = os.getenv('JUICEBOT_CONFIG') or os.getenv('CONFIG') or './config.yaml'
POSTGRES_URI = os.getenv('POSTGRES_URI')
REMOVE_COMMANDS = _env_flag('REMOVE_COMMANDS')
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

# Kubernetes metadata keys
LABEL_GAME_SERVER = 'juicecloud.org/juicebot-game-server'
ANNOTATION_GUILDS = 'juicecloud.org/juicebot-guilds'
LABEL_DISPLAY_NAME = 'app.kubernetes.io/name'

GAME_SERVER_NAMESPACE = 'games'
REQUEST_TIMEOUT_SECONDS = 10


@dataclass
class CalloutConfig:
    guilds: List[str] = field(default_factory=list)
    messages: List[str] = field(default_factory=list)
    chance: int = 100  # one in `chance` messages gets a callout


@dataclass
class DogConfig:
    emote: str = '🐕'


@dataclass
class NameHistoryConfig:
    guilds: List[str] = field(default_factory=list)
    announce_channel_id: Optional[str] = None


@dataclass
class ServersConfig:
    enabled: bool = True
    namespace: str = GAME_SERVER_NAMESPACE
    marker_label: str = LABEL_GAME_SERVER
    guilds_annotation: str = ANNOTATION_GUILDS
    display_name_label: str = LABEL_DISPLAY_NAME
    request_timeout: Optional[float] = REQUEST_TIMEOUT_SECONDS


@dataclass
class BotConfig:
    """Feature settings loaded from the YAML config file."""

    debug: bool = False
    callout: CalloutConfig = field(default_factory=CalloutConfig)
    dog: DogConfig = field(default_factory=DogConfig)
    namehistory: NameHistoryConfig = field(default_factory=NameHistoryConfig)
    servers: ServersConfig = field(default_factory=ServersConfig)


def _ids(values: Any) -> List[str]:
    # Guild IDs are often written unquoted in YAML and arrive as ints
    if not values:
        return []
    if isinstance(values, (str, int)):
        values = [values]
    return [str(v).strip() for v in values if str(v).strip()]


def parse_snowflake(value: Any, name: str) -> Optional[str]:
    """Validate a Discord ID. Returns None when unset."""
    if value is None or str(value).strip() == '':
        return None
    value = str(value).strip()
    if not (value.isascii() and value.isdigit()):
        raise ConfigError(f'{name} must be a numeric Discord ID, got {value!r}')
    return value


def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    section = data.get(key) or {}
    if not isinstance(section, dict):
        raise ConfigError(f'"{key}" must be a mapping, got {type(section).__name__}')
    return section


def parse_bot_config(data: Optional[Dict[str, Any]]) -> BotConfig:
    """Build a BotConfig from an already-parsed YAML document."""
    if data is None:
        return BotConfig()
    if not isinstance(data, dict):
        raise ConfigError('config root must be a mapping')

    callout = _section(data, 'callout')
    dog = _section(data, 'dog')
    namehistory = _section(data, 'namehistory')
    servers = _section(data, 'servers')

    try:
        chance = int(callout.get('chance', CalloutConfig.chance))
        timeout = servers.get('request_timeout', REQUEST_TIMEOUT_SECONDS)
        timeout = float(timeout) if timeout is not None else None
    except (TypeError, ValueError) as e:
        raise ConfigError(f'invalid number in config: {e}') from e
    if chance < 1:
        raise ConfigError('callout.chance must be at least 1')

    announce = parse_snowflake(
        namehistory.get('announce_channel_id'), 'namehistory.announce_channel_id'
    )

    return BotConfig(
        debug=bool(data.get('debug', False)),
        callout=CalloutConfig(
            guilds=_ids(callout.get('guilds')),
            messages=[str(m) for m in callout.get('messages') or []],
            chance=chance,
        ),
        dog=DogConfig(emote=str(dog.get('emote', DogConfig.emote))),
        namehistory=NameHistoryConfig(
            guilds=_ids(namehistory.get('guilds')),
            announce_channel_id=announce,
        ),
        servers=ServersConfig(
            enabled=bool(servers.get('enabled', True)),
            namespace=str(servers.get('namespace', GAME_SERVER_NAMESPACE)),
            marker_label=str(servers.get('marker_label', LABEL_GAME_SERVER)),
            guilds_annotation=str(servers.get('guilds_annotation', ANNOTATION_GUILDS)),
            display_name_label=str(servers.get('display_name_label', LABEL_DISPLAY_NAME)),
            request_timeout=timeout,
        ),
    )


def load_bot_config(path: str = CONFIG_PATH) -> BotConfig:
    """Load the YAML config file. A missing file yields the defaults."""
    if not os.path.exists(path):
        return BotConfig()
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f'failed to read config {path}: {e}') from e
    return parse_bot_config(data)
