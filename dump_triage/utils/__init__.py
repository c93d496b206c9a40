"""
Utility modules for configuration and logging.
"""

from .config import (
    ConfigManager, Configuration, StackwalkSettings,
    configuration_from_arguments, load_configuration, save_configuration
)
from .logging_utils import setup_logging, log_exception

__all__ = [
    "ConfigManager",
    "Configuration",
    "StackwalkSettings",
    "configuration_from_arguments",
    "load_configuration",
    "save_configuration",
    "setup_logging",
    "log_exception"
]
