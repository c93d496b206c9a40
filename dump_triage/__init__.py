"""
Dump Triage

Classifies crash dumps by matching the faulting call stack against
owner-defined filters and files tracker issues for the responsible owner.

Author: Crash Tools
Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "Crash Tools"
__description__ = "Crash dump triage and owner routing"

from .core import Filter, Owner, OwnershipTable, classify, BatchProcessor
from .utils.config import Configuration, ConfigManager

__all__ = [
    "Filter",
    "Owner",
    "OwnershipTable",
    "classify",
    "BatchProcessor",
    "Configuration",
    "ConfigManager",
    "__version__",
    "__author__",
    "__description__"
]
