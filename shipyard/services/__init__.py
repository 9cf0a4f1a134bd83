"""Service clients for Shipyard: external command rendering and execution."""

from shipyard.services.commands import CommandResult, CommandRunner, CommandTemplates

__all__ = [
    "CommandResult",
    "CommandRunner",
    "CommandTemplates",
]
