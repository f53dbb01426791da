"""Core functionality module for knocker-monitor."""

from .events import Event, EventKind, StateSnapshot
from .event_bus import EventBus
from .monitor import KnockerMonitor
from .tail_follower import TailFollower, FollowerState
from .backlog import BacklogLoader

__all__ = ['Event', 'EventKind', 'StateSnapshot', 'EventBus', 'KnockerMonitor',
           'TailFollower', 'FollowerState', 'BacklogLoader']
