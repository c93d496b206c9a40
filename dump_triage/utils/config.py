"""
Configuration for Dump Triage

Two layers:
- `Configuration`: the immutable run configuration (dump source, ownership
  table, tracker target). Built once from a JSON file or command inputs.
- `ConfigManager`: per-user application settings persisted under the OS
  config directory (log directory, last tracker user name).
"""

import os
import json
import logging
from pathlib import Path
from typing import Optional, Dict, Any, List, Sequence, Tuple
from dataclasses import dataclass, field

from ..core.errors import ConfigurationInvalid
from ..core.filters import Filter
from ..core.ownership import Owner, OwnershipData, OwnershipTable

logger = logging.getLogger(__name__)

DEFAULT_DUMP_PATTERN = "*.dmp"
OWNER_SEPARATOR = "=>"


@dataclass(frozen=True)
class StackwalkSettings:
    """Settings for the minidump_stackwalk reader."""
    executable: str = "minidump_stackwalk"
    symbol_paths: Tuple[str, ...] = ()
    timeout: int = 120

    def to_dict(self) -> Dict[str, Any]:
        return {
            "executable": self.executable,
            "symbol_paths": list(self.symbol_paths),
            "timeout": self.timeout,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StackwalkSettings":
        try:
            return cls(
                executable=str(data.get("executable", "minidump_stackwalk")),
                symbol_paths=tuple(str(p) for p in data.get("symbol_paths", ())),
                timeout=int(data.get("timeout", 120)),
            )
        except (TypeError, ValueError, AttributeError) as e:
            raise ConfigurationInvalid(f"Invalid stackwalk settings: {e}")


@dataclass(frozen=True)
class Configuration:
    """Run configuration. Read once at startup, never mutated."""
    ownership: OwnershipTable
    dump_file: Optional[str] = None
    dumps_folder: Optional[str] = None
    recursive_search: bool = False
    dump_pattern: str = DEFAULT_DUMP_PATTERN
    tracker_url: Optional[str] = None
    project: Optional[str] = None
    open_tickets: bool = False
    stackwalk: StackwalkSettings = field(default_factory=StackwalkSettings)

    def __post_init__(self):
        if bool(self.dump_file) == bool(self.dumps_folder):
            raise ConfigurationInvalid("Exactly one of dump_file and dumps_folder must be set")
        if not self.dump_pattern:
            raise ConfigurationInvalid("dump_pattern must not be empty")
        if self.open_tickets and not (self.tracker_url and self.project):
            raise ConfigurationInvalid("tracker_url and project are required to open tickets")

        # Normalize paths
        if self.dump_file:
            object.__setattr__(self, "dump_file", os.path.abspath(self.dump_file))
        if self.dumps_folder:
            object.__setattr__(self, "dumps_folder", os.path.abspath(self.dumps_folder))
        if self.tracker_url:
            object.__setattr__(self, "tracker_url", self.tracker_url.rstrip("/"))

    @property
    def filters(self) -> List[Filter]:
        return self.ownership.filters

    @property
    def owners(self) -> List[OwnershipData]:
        return self.ownership.entries

    @property
    def default_owner(self) -> Owner:
        return self.ownership.default_owner

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dump_file": self.dump_file,
            "dumps_folder": self.dumps_folder,
            "recursive_search": self.recursive_search,
            "dump_pattern": self.dump_pattern,
            "owners": [entry.to_dict() for entry in self.owners],
            "default_owner": self.default_owner.name,
            "tracker_url": self.tracker_url,
            "project": self.project,
            "open_tickets": self.open_tickets,
            "stackwalk": self.stackwalk.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Configuration":
        if not isinstance(data, dict):
            raise ConfigurationInvalid("Configuration must be a JSON object")
        if not data.get("default_owner"):
            raise ConfigurationInvalid("default_owner is required")

        owners = data.get("owners", [])
        if not isinstance(owners, list):
            raise ConfigurationInvalid("owners must be a list")

        table = OwnershipTable(
            [OwnershipData.from_dict(entry) for entry in owners],
            Owner(str(data["default_owner"]))
        )
        return cls(
            ownership=table,
            dump_file=data.get("dump_file"),
            dumps_folder=data.get("dumps_folder"),
            recursive_search=bool(data.get("recursive_search", False)),
            dump_pattern=data.get("dump_pattern") or DEFAULT_DUMP_PATTERN,
            tracker_url=data.get("tracker_url"),
            project=data.get("project"),
            open_tickets=bool(data.get("open_tickets", False)),
            stackwalk=StackwalkSettings.from_dict(data.get("stackwalk") or {}),
        )


def parse_ownership(text: str, default_owner: Owner, ignore_case: bool = False) -> OwnershipData:
    """
    Parse `FIELD:KIND:VALUE[=>OWNER]` from the command line.

    Without an owner the filter is bound to the default owner.
    """
    filter_text, sep, owner_name = text.rpartition(OWNER_SEPARATOR)
    if not sep:
        filter_text, owner_name = text, ""
    owner = Owner(owner_name.strip()) if owner_name.strip() else default_owner
    return OwnershipData(filter=Filter.parse(filter_text, ignore_case=ignore_case), owner=owner)


def configuration_from_arguments(dump_file: Optional[str] = None,
                                 dumps_folder: Optional[str] = None,
                                 recursive_search: bool = False,
                                 dump_pattern: str = DEFAULT_DUMP_PATTERN,
                                 filters: Sequence[str] = (),
                                 default_owner: Optional[str] = None,
                                 ignore_case: bool = False,
                                 tracker_url: Optional[str] = None,
                                 project: Optional[str] = None,
                                 open_tickets: bool = False,
                                 stackwalk: Optional[StackwalkSettings] = None) -> Configuration:
    """Build a Configuration from command inputs."""
    if not default_owner:
        raise ConfigurationInvalid("--default-owner is required without --config")
    default = Owner(default_owner)
    table = OwnershipTable([parse_ownership(f, default, ignore_case) for f in filters], default)
    return Configuration(
        ownership=table,
        dump_file=dump_file,
        dumps_folder=dumps_folder,
        recursive_search=recursive_search,
        dump_pattern=dump_pattern or DEFAULT_DUMP_PATTERN,
        tracker_url=tracker_url,
        project=project,
        open_tickets=open_tickets,
        stackwalk=stackwalk or StackwalkSettings(),
    )


def load_configuration(path: str) -> Configuration:
    """Load a run configuration from a JSON file."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        raise ConfigurationInvalid(f"Failed to load configuration {path}: {e}")
    return Configuration.from_dict(data)


def save_configuration(configuration: Configuration, path: str):
    """Serialize a run configuration to JSON."""
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(configuration.to_dict(), f, indent=2, ensure_ascii=False)
    logger.info(f"Configuration saved to {path}")


class ConfigManager:
    """
    Manages per-user application settings.

    Settings are persisted as JSON in the user's config directory:
    %APPDATA%/DumpTriage on Windows, ~/.config/dump_triage elsewhere.
    """

    def __init__(self, config_dir: Optional[str] = None):
        self.config_dir = Path(config_dir) if config_dir else self._get_config_dir()
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_file = self.config_dir / "config.json"
        self._config = self._load_config()

    def _get_config_dir(self) -> Path:
        """Get the appropriate config directory for the current OS."""
        if os.name == 'nt':  # Windows
            base_dir = os.environ.get('APPDATA', Path.home() / 'AppData' / 'Roaming')
            return Path(base_dir) / 'DumpTriage'
        return Path.home() / '.config' / 'dump_triage'

    def _load_config(self) -> Dict[str, Any]:
        """Load settings from file."""
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    return json.load(f)
            except (json.JSONDecodeError, IOError) as e:
                logger.warning(f"Failed to load config file: {e}")
                return {}
        return {}

    def _save_config(self):
        """Save current settings to file."""
        try:
            with open(self.config_file, 'w', encoding='utf-8') as f:
                json.dump(self._config, f, indent=2, ensure_ascii=False)
        except IOError as e:
            logger.error(f"Failed to save config file: {e}")

    def get_log_dir(self) -> Path:
        """Get the logs directory path."""
        log_dir = self.config_dir / "logs"
        log_dir.mkdir(exist_ok=True)
        return log_dir

    def get_last_tracker_user(self, tracker_url: str) -> Optional[str]:
        """User name last used successfully against this tracker."""
        return self._config.get('tracker_users', {}).get(tracker_url)

    def set_last_tracker_user(self, tracker_url: str, user: str):
        if 'tracker_users' not in self._config:
            self._config['tracker_users'] = {}
        self._config['tracker_users'][tracker_url] = user
        self._save_config()
