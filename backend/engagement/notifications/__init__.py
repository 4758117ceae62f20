"""
Notification engagement and multi-channel dispatch.

This package decides whether a notification may be sent to a user right now
(category opt-in, daily cap, quiet hours, once-per-day dedup) and fans it
out over:
- Real-time stream (Server-Sent Events)
- Push (Web Push)
"""

from engagement.notifications.dispatcher import Dispatcher
from engagement.notifications.stream_hub import StreamHub

__all__ = ["Dispatcher", "StreamHub"]
