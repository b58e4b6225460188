"""
Progress event system for replay runs.

This module provides the **per-run progress channel** through which the replay
engine reports what it is doing, with:
- A deterministic channel name per run id
- Swappable transports (in-memory, Redis pub/sub, null)
- Typed decoding of messages back into event models for subscribers

## Key Components

1. **ProgressChannel** - Publish/subscribe of progress events for one namespace
2. **ProgressTransport** - Base class for message transports
3. **TransportFactory** - Builds a transport from configuration
4. **RichTerminalReporter** - Subscriber rendering events in the terminal

## Usage Examples

```python
from actionreplay.events import ProgressChannel, TransportFactory
from actionreplay.events.types import TransportType

channel = ProgressChannel(TransportFactory.create(TransportType.MEMORY))
unsubscribe = await channel.subscribe(run_id, on_event=print)
```
"""

from .base import ProgressTransport
from .channel import ProgressChannel, channel_name
from .exceptions import EventPublishingError, ProgressDecodeError, TransportUnavailableError
from .factory import TransportFactory
from .publishers import RichTerminalReporter
from .redis_transport import RedisTransport
from .transports import InMemoryTransport, NullTransport
from .types import TransportType

__all__ = [
    "ProgressTransport",
    "ProgressChannel",
    "channel_name",
    "EventPublishingError",
    "ProgressDecodeError",
    "TransportUnavailableError",
    "TransportFactory",
    "RichTerminalReporter",
    "RedisTransport",
    "InMemoryTransport",
    "NullTransport",
    "TransportType",
]
