"""
Run context shared by phase runners, the orchestrator and commands.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from wreckit.lib.config import WreckitConfig


@dataclass
class RunContext:
    """Everything a phase needs besides the item id.

    The logger is explicit: every component logs through `ctx.logger`.
    """
    root: Path
    config: WreckitConfig
    logger: logging.Logger
    force: bool = False
    dry_run: bool = False
    on_agent_output: Optional[Callable[[str], None]] = None
