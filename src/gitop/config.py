import logging
import re
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from rich.color import Color, ColorParseError

from . import constants
from .constants import (
    APP_NAME,
    DEFAULT_AHEAD_COLOR,
    DEFAULT_BEHIND_COLOR,
    DEFAULT_MAX_COMMITS,
    DEFAULT_REFRESH_INTERVAL,
    DEFAULT_REMOTE,
)
from .exceptions import ConfigError

logger = logging.getLogger(APP_NAME)

# Color names accepted in the config that rich spells differently.
_COLOR_ALIASES = {
    "gray": "grey70",
    "grey": "grey70",
    "darkgray": "bright_black",
    "darkgrey": "bright_black",
    "lightred": "bright_red",
    "lightgreen": "bright_green",
    "lightyellow": "bright_yellow",
    "lightblue": "bright_blue",
    "lightmagenta": "bright_magenta",
    "lightcyan": "bright_cyan",
    "white": "bright_white",
    "reset": "default",
    "normal": "default",
}


def parse_time(value: int | str) -> int:
    """Converts human-readable time strings (e.g., '1hr', '30s') to seconds."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid time format '{value}'")
    if isinstance(value, int):
        return value
    match = re.match(
        r"^(\d+(?:\.\d+)?)\s*(s|sec|m|min|h|hr)s?$", str(value).strip().lower()
    )
    if not match:
        raise ValueError(f"Invalid time format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {"s": 1, "sec": 1, "m": 60, "min": 60, "h": 3600, "hr": 3600}
    return int(num * multiplier[unit])


def expand_path(value: str) -> Path:
    """Expands a leading '~' to the user's home directory."""
    if value == "~" or value.startswith("~/"):
        return Path.home() / value[2:]
    if value.startswith("~"):
        # '~name' is not a user lookup here; it is relative to the home directory.
        return Path.home() / value[1:]
    return Path(value)


def resolve_color(value: str | None, fallback: str = "default") -> str:
    """Translates a configured color name into a rich color string.

    Accepts rich color names, the classic terminal names (e.g. 'lightred',
    'darkgray') and 6-digit hex with or without a leading '#'.

    Args:
        value (str | None): The configured color.
        fallback (str): Returned when `value` is missing or unparseable.

    Returns:
        str: A color string accepted by `rich.style.Style`.
    """
    if not value:
        return fallback
    name = value.strip().lower()
    name = _COLOR_ALIASES.get(name, name)
    if re.fullmatch(r"[0-9a-f]{6}", name):
        name = f"#{name}"
    try:
        Color.parse(name)
    except ColorParseError:
        logger.warning(f"Unknown color '{value}'. Using '{fallback}'.")
        return fallback
    return name


@dataclass(frozen=True)
class RepositoryConfig:
    """A repository to monitor.

    Attributes:
        name (str): Display label (need not be unique).
        path (Path): Location of the working copy, already tilde-expanded.
        remote (str): The remote whose tracking branch is compared against.
    """

    name: str
    path: Path
    remote: str = DEFAULT_REMOTE


@dataclass
class ColorConfig:
    """Dashboard colors.

    Attributes:
        ahead_color (str): Color of the ahead count when non-zero.
        behind_color (str): Color of the behind count when non-zero.
    """

    ahead_color: str = DEFAULT_AHEAD_COLOR
    behind_color: str = DEFAULT_BEHIND_COLOR


def _default_repositories() -> list[RepositoryConfig]:
    return [RepositoryConfig(name="Current Directory", path=Path("."))]


@dataclass
class Config:
    """Global configuration aggregator.

    Attributes:
        repositories (list[RepositoryConfig]): Repositories in display order.
        refresh_interval (int): Seconds between the starts of polling rounds.
        max_commits (int): Recent commits fetched per repository.
        colors (ColorConfig): Dashboard colors.
    """

    repositories: list[RepositoryConfig] = field(default_factory=_default_repositories)
    refresh_interval: int = DEFAULT_REFRESH_INTERVAL
    max_commits: int = DEFAULT_MAX_COMMITS
    colors: ColorConfig = field(default_factory=ColorConfig)

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Loads configuration from disk, applying defaults where necessary.

        Args:
            path (Path | None): An explicit config file. When omitted the path is
                resolved with `get_config_path`.

        Returns:
            Config: The populated configuration object. Defaults are returned
            (without creating a file) when the file does not exist.

        Raises:
            ConfigError: If the file exists but is not valid TOML.
        """
        config_path = get_config_path(path)
        instance = cls()
        if not config_path.exists():
            logger.info(f"No config at {config_path}. Using defaults.")
            return instance

        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Config syntax error in {config_path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Could not read {config_path}: {e}") from e

        instance._merge(data, config_path)
        return instance

    def _merge(self, data: dict[str, Any], source: Path) -> None:
        """Merges parsed TOML data into the current instance.

        Args:
            data (dict[str, Any]): The parsed document.
            source (Path): The file the data came from (for messages).
        """
        known = {"repositories", "refresh_interval", "max_commits", "colors"}
        if unknown := set(data) - known:
            logger.warning(
                f"Unknown config keys in {source}: {', '.join(sorted(unknown))}. "
                "Ignoring."
            )

        if "refresh_interval" in data:
            try:
                interval = parse_time(data["refresh_interval"])
                if interval <= 0:
                    raise ValueError("must be positive")
                self.refresh_interval = interval
            except ValueError as e:
                logger.warning(
                    f"Config error in refresh_interval: {e}. Falling back to default."
                )

        if "max_commits" in data:
            value = data["max_commits"]
            if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
                self.max_commits = value
            else:
                logger.warning(
                    f"Config error in max_commits: '{value}' is not a "
                    "non-negative integer. Falling back to default."
                )

        if "repositories" in data:
            self.repositories = self._parse_repositories(data["repositories"])

        if "colors" in data and isinstance(data["colors"], dict):
            self.colors = self._update_dataclass("colors", self.colors, data["colors"])

    @staticmethod
    def _parse_repositories(entries: Any) -> list[RepositoryConfig]:
        """Builds repository entries, skipping malformed ones with a warning."""
        if not isinstance(entries, list):
            logger.warning("Config error: 'repositories' must be an array of tables.")
            return []

        repositories = []
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict) or "name" not in entry or "path" not in entry:
                logger.warning(
                    f"Config error in repositories[{index}]: "
                    "'name' and 'path' are required. Skipping."
                )
                continue
            repositories.append(
                RepositoryConfig(
                    name=str(entry["name"]),
                    path=expand_path(str(entry["path"])),
                    remote=str(entry.get("remote") or DEFAULT_REMOTE),
                )
            )
        return repositories

    @staticmethod
    def _update_dataclass(section_name: str, instance: Any, updates: dict) -> Any:
        """Updates a dataclass, warning on invalid keys."""
        valid_keys = instance.__dataclass_fields__.keys()

        invalid_keys = set(updates.keys()) - set(valid_keys)
        if invalid_keys:
            logger.warning(
                f"Unknown config keys in [{section_name}]: "
                f"{', '.join(sorted(invalid_keys))}. Ignoring."
            )

        filtered_updates = {
            k: str(v) for k, v in updates.items() if k in valid_keys and v is not None
        }
        return replace(instance, **filtered_updates)

    def to_toml(self) -> str:
        """Serialises the configuration in the on-disk format."""
        lines = [
            f"refresh_interval = {self.refresh_interval}",
            f"max_commits = {self.max_commits}",
            "",
        ]
        for repo in self.repositories:
            lines += [
                "[[repositories]]",
                f"name = {_toml_string(repo.name)}",
                f"path = {_toml_string(str(repo.path))}",
                f"remote = {_toml_string(repo.remote)}",
                "",
            ]
        lines += [
            "[colors]",
            f"ahead_color = {_toml_string(self.colors.ahead_color)}",
            f"behind_color = {_toml_string(self.colors.behind_color)}",
        ]
        return "\n".join(lines) + "\n"


def _toml_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def get_config_path(custom_path: Path | None = None) -> Path:
    """Resolves which configuration file to use.

    Resolution order:
    1. The explicitly supplied path.
    2. The global file (~/.config/gitop/gitop.toml), if it exists.
    3. ./gitop.toml, if it exists.
    4. The global file (which may not exist yet).

    Args:
        custom_path (Path | None): A path given on the command line.

    Returns:
        Path: The config file path.
    """
    if custom_path is not None:
        return custom_path
    if constants.CONFIG_FILE.exists() or not constants.LOCAL_CONFIG_FILE.exists():
        return constants.CONFIG_FILE
    return constants.LOCAL_CONFIG_FILE


def write_default_config(path: Path, force: bool = False) -> Path:
    """Writes the default configuration file.

    Args:
        path (Path): Destination file.
        force (bool): Overwrite an existing file.

    Returns:
        Path: The written path.

    Raises:
        FileExistsError: If the file exists and `force` is False.
    """
    if path.exists() and not force:
        raise FileExistsError(f"Config file already exists at: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    default = Config(
        repositories=[
            RepositoryConfig(name="Current Directory", path=Path("."), remote="origin")
        ]
    )
    path.write_text(default.to_toml())
    logger.info(f"Created default config at {path}")
    return path
