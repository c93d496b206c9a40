"""
Reporting of triage results.
"""
from .console import ConsoleReporter

__all__ = ["ConsoleReporter"]
