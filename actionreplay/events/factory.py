"""
Factory for creating progress transports.
"""

from typing import Optional

from actionreplay.events.base import ProgressTransport
from actionreplay.events.redis_transport import DEFAULT_REDIS_URL, RedisTransport
from actionreplay.events.transports import InMemoryTransport, NullTransport
from actionreplay.events.types import TransportType


class TransportFactory:
    """Factory for creating progress transports with explicit configuration."""

    @staticmethod
    def create(transport_type: TransportType, redis_url: Optional[str] = None) -> ProgressTransport:
        """Create one progress transport.

        Args:
            transport_type: Which transport to build
            redis_url: Connection URL for the Redis transport

        Returns:
            ProgressTransport instance
        """
        transport_type = TransportType(transport_type)
        if transport_type == TransportType.REDIS:
            return RedisTransport(redis_url=redis_url or DEFAULT_REDIS_URL)
        if transport_type == TransportType.NONE:
            return NullTransport()
        return InMemoryTransport()
