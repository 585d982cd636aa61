"""Base command and event types for the dashboard message bus."""

from dataclasses import dataclass
from typing import Union


@dataclass
class Command:
    """Base class for all commands (a user intent, e.g. a filter change)."""
    pass

@dataclass
class Event:
    """Base class for all domain events (something that already happened)."""
    pass


Message = Union[Command, Event]
