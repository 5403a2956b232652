"""Notification collaborators.

The engine's responsibility ends at handing an AlertTrigger to a Notifier;
local or push delivery is up to the implementation.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from rich.console import Console

from indicharts.models import AlertTrigger

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Abstract base class for trigger delivery."""

    @abstractmethod
    def notify(self, trigger: AlertTrigger) -> None:
        """Deliver a trigger.

        Args:
            trigger: Payload describing the firing.
        """
        pass


class LogNotifier(Notifier):
    """Writes triggers to the application log."""

    def notify(self, trigger: AlertTrigger) -> None:
        logger.info("ALERT %s #%s: %s", trigger.symbol, trigger.alert_id, trigger.message)


class ConsoleNotifier(Notifier):
    """Prints triggers to the terminal."""

    STYLES = {
        "cross_up": "green",
        "cross_down": "red",
        "enter_zone": "cyan",
        "exit_zone": "yellow",
    }

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def notify(self, trigger: AlertTrigger) -> None:
        style = self.STYLES.get(trigger.type, "white")
        self.console.print(
            f"[bold {style}]🔔 {trigger.symbol}[/bold {style}] "
            f"[dim]#{trigger.alert_id}[/dim] {trigger.message}"
        )


class CollectingNotifier(Notifier):
    """Keeps triggers in memory, for embedding and tests."""

    def __init__(self):
        self.triggers: list[AlertTrigger] = []

    def notify(self, trigger: AlertTrigger) -> None:
        self.triggers.append(trigger)
