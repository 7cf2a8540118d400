"""
Watchloop Watcher Package.

Debounced file watching that re-runs an operation on change.
Requires Python 3.11+.
"""

from watcher.channel import ChannelClosedError, ChannelSender, UnboundedChannel
from watcher.debouncer import DebouncedReceiver
from watcher.event_source import WatcherError, WatcherHandle, new_watcher
from watcher.orchestrator import Flags, PrintConfig, WatchOrchestrator, watch_func
from watcher.paths import canonicalize_path
from watcher.registry import PathRegistry
from watcher.reporter import ScriptError, StackFrame, format_error, report_errors

__all__ = [
    "ChannelClosedError",
    "ChannelSender",
    "UnboundedChannel",
    "DebouncedReceiver",
    "WatcherError",
    "WatcherHandle",
    "new_watcher",
    "Flags",
    "PrintConfig",
    "WatchOrchestrator",
    "watch_func",
    "canonicalize_path",
    "PathRegistry",
    "ScriptError",
    "StackFrame",
    "format_error",
    "report_errors",
]
