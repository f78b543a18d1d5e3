"""Chat transport adapters."""

from fleetlog.channels.base import Button, ChannelAdapter, EventKind, InboundEvent

__all__ = ["Button", "ChannelAdapter", "EventKind", "InboundEvent"]
