"""Launchpad runner module.

Everything that touches provider CLI processes.

Key classes:
    ProcessRunner - Spawns one CLI command, streams output, answers a prompt
    PromptPolicy  - Prompt detection triggers and the answer to send
    CLILocator    - Resolves the bundled Railway / Netlify CLIs
    CLICommand    - Executable plus leading arguments for one CLI
"""

from .locator import CLICommand, CLILocator, build_environment, platform_key, probe_version
from .process import PromptPolicy, ProcessRunner, format_command

__all__ = [
    # Processes
    "ProcessRunner",
    "PromptPolicy",
    "format_command",
    # Discovery
    "CLILocator",
    "CLICommand",
    "build_environment",
    "platform_key",
    "probe_version",
]
