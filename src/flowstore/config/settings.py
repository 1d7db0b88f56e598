"""
Settings loader for flow storage.

Settings come from an optional YAML file, then environment variable
overrides (a .env file is loaded first when present). Paths are resolved
once while loading; the returned StorageSettings is immutable.
"""

import dataclasses
import logging
import os
import socket
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

from ..core.exceptions import ConfigError
from ..storage.file_util import backup_filename

logger = logging.getLogger(__name__)


# Suffix added to the flows file base name to form the node directory name
STORAGE_DIRECTORY_SUFFIX = "_js"

CONFIG_FILES = (".config.json", ".config.nodes.json")

ENV_OVERRIDES = {
    "FLOWSTORE_USER_DIR": "user_dir",
    "FLOWSTORE_FLOW_FILE": "flow_file",
    "FLOWSTORE_FLOW_DIR": "flow_dir",
    "FLOWSTORE_READ_ONLY": "read_only",
}

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class StorageSettings:
    """
    Flow storage settings.

    Attributes:
        user_dir: Editor user directory
        flow_file: Flows file name or path (None for flows_<hostname>.json)
        flow_dir: Node file directory name or path (None for <flows>_js)
        flow_file_enabled: Whether the whole-flows file is written on save
        flow_file_pretty: Whether the flows file is pretty-printed
        read_only: Whether saves are disabled
        projects_enabled: Whether projects mode is requested (unsupported)
        flows_path: Resolved flows file path
        flows_backup_path: Resolved flows backup path
        credentials_path: Resolved credentials file path
        credentials_backup_path: Resolved credentials backup path
        flows_dir_path: Resolved node file directory
    """
    user_dir: Optional[str] = None
    flow_file: Optional[str] = None
    flow_dir: Optional[str] = None
    flow_file_enabled: bool = True
    flow_file_pretty: bool = False
    read_only: bool = False
    projects_enabled: bool = False

    flows_path: Optional[Path] = None
    flows_backup_path: Optional[Path] = None
    credentials_path: Optional[Path] = None
    credentials_backup_path: Optional[Path] = None
    flows_dir_path: Optional[Path] = None

    @property
    def is_resolved(self) -> bool:
        return self.flows_path is not None and self.flows_dir_path is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            k: (str(v) if isinstance(v, Path) else v)
            for k, v in dataclasses.asdict(self).items()
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StorageSettings":
        """Create from dictionary (unresolved; see resolve_paths)."""
        flow_file = data.get("flow_file")
        flow_file_enabled = data.get("flow_file_enabled", True)
        if flow_file is False:
            flow_file = None
            flow_file_enabled = False

        return cls(
            user_dir=_optional_str(data.get("user_dir")),
            flow_file=_optional_str(flow_file),
            flow_dir=_optional_str(data.get("flow_dir")),
            flow_file_enabled=_as_bool(flow_file_enabled),
            flow_file_pretty=_as_bool(data.get("flow_file_pretty", False)),
            read_only=_as_bool(data.get("read_only", False)),
            projects_enabled=_as_bool(data.get("projects_enabled", False)),
        )


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_VALUES
    return bool(value)


def _has_config_file(directory: Optional[str]) -> bool:
    if not directory:
        return False
    return any((Path(directory) / name).exists() for name in CONFIG_FILES)


def resolve_user_dir(env: Mapping[str, str]) -> str:
    """
    Discover the editor user directory.

    Order: NODE_RED_HOME if it holds a config file, then HOMEPATH/.node-red
    if it holds one, then .node-red under the first of HOME, USERPROFILE,
    HOMEPATH, NODE_RED_HOME that is set.

    Raises:
        ConfigError: If none of the variables are set
    """
    node_red_home = env.get("NODE_RED_HOME")
    if _has_config_file(node_red_home):
        return node_red_home

    home_path = env.get("HOMEPATH")
    if home_path and _has_config_file(str(Path(home_path) / ".node-red")):
        return str(Path(home_path) / ".node-red")

    for name in ("HOME", "USERPROFILE", "HOMEPATH", "NODE_RED_HOME"):
        base = env.get(name)
        if base:
            return str(Path(base) / ".node-red")

    raise ConfigError("Cannot determine user directory: no home directory variable is set")


def resolve_flows_path(flow_file: str, user_dir: str, cwd: Path) -> Path:
    """
    Resolve the flows file path.

    Absolute paths are used as-is, './' paths are relative to the working
    directory, and bare names use the working directory if the file exists
    there and the user directory otherwise.
    """
    path = Path(flow_file)
    if path.is_absolute():
        return path
    if flow_file.startswith("./"):
        return cwd / flow_file[2:]
    if (cwd / flow_file).exists():
        return cwd / flow_file
    return Path(user_dir) / flow_file


def resolve_paths(
    settings: StorageSettings,
    env: Optional[Mapping[str, str]] = None,
    cwd: Optional[Path] = None,
    hostname: Optional[str] = None,
) -> StorageSettings:
    """
    Fill in the user directory and derived paths of a settings value.

    Args:
        settings: Unresolved settings
        env: Environment mapping (default: os.environ)
        cwd: Working directory (default: current directory)
        hostname: Host name for the default flows file name

    Returns:
        A new, resolved StorageSettings
    """
    env = os.environ if env is None else env
    cwd = Path.cwd() if cwd is None else Path(cwd)

    user_dir = settings.user_dir or resolve_user_dir(env)

    flow_file = settings.flow_file
    if flow_file:
        flows_path = resolve_flows_path(flow_file, user_dir, cwd)
    else:
        flow_file = f"flows_{hostname or socket.gethostname()}.json"
        flows_path = Path(user_dir) / flow_file

    ext = flows_path.suffix
    base = flows_path.name[: len(flows_path.name) - len(ext)] if ext else flows_path.name
    credentials_path = Path(user_dir) / f"{base}_cred{ext}"

    flow_dir = settings.flow_dir or base + STORAGE_DIRECTORY_SUFFIX

    return dataclasses.replace(
        settings,
        user_dir=user_dir,
        flow_file=flow_file,
        flow_dir=flow_dir,
        flows_path=flows_path,
        flows_backup_path=backup_filename(flows_path),
        credentials_path=credentials_path,
        credentials_backup_path=backup_filename(credentials_path),
        flows_dir_path=Path(user_dir) / flow_dir,
    )


def _load_config_file(config_path: Path) -> Dict[str, Any]:
    """Load settings from a YAML file."""
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    logger.info(f"Loading config from: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid config file {config_path}: {e}") from e

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")

    # Settings may be nested under a 'storage' key
    return dict(config.get("storage", config))


def _apply_env_overrides(config: Dict[str, Any], env: Mapping[str, str]) -> None:
    """Apply environment variable overrides to loaded config."""
    for var, key in ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            config[key] = value


def load_settings(
    config_path: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    env: Optional[Mapping[str, str]] = None,
    cwd: Optional[Path] = None,
    hostname: Optional[str] = None,
    load_env_file: bool = True,
) -> StorageSettings:
    """
    Load and resolve storage settings.

    Precedence, lowest first: defaults, YAML config file, environment
    variables, explicit overrides.

    Args:
        config_path: Optional YAML settings file
        overrides: Optional explicit setting values
        env: Environment mapping (default: os.environ)
        cwd: Working directory for relative flows files
        hostname: Host name for the default flows file name
        load_env_file: Whether to load a .env file into os.environ first

    Returns:
        Resolved, immutable StorageSettings

    Raises:
        ConfigError: If the config file is missing or invalid, or no user
            directory can be determined
    """
    if load_env_file and env is None:
        load_dotenv()

    env = os.environ if env is None else env

    config: Dict[str, Any] = {}
    if config_path is not None:
        config.update(_load_config_file(Path(config_path)))

    _apply_env_overrides(config, env)

    if overrides:
        config.update(overrides)

    settings = resolve_paths(
        StorageSettings.from_dict(config),
        env=env,
        cwd=cwd,
        hostname=hostname,
    )
    logger.debug(f"Resolved settings: {settings.to_dict()}")
    return settings
