from sinks.base import NotificationSink
from sinks.console import ConsoleSink
from sinks.ntfy import NtfySink

__all__ = ["ConsoleSink", "NotificationSink", "NtfySink"]
