"""laundrymon package for laundry-monitor."""

from .state import PinStatus, StatusPublisher, StatusSnapshot
from .monitor import PinMonitor
from .poller import PollLoop

__all__ = ["PinStatus", "StatusPublisher", "StatusSnapshot", "PinMonitor", "PollLoop"]
