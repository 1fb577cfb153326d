"""Service locator for shared server components."""

from typing import Optional

from server.realtime.broker import ChannelBroker

_channel_broker: Optional[ChannelBroker] = None


def set_channel_broker(broker: ChannelBroker):
    """Set global channel broker instance"""
    global _channel_broker
    _channel_broker = broker


def get_channel_broker() -> ChannelBroker:
    """Get global channel broker instance, creating it on first use"""
    global _channel_broker
    if _channel_broker is None:
        _channel_broker = ChannelBroker()
    return _channel_broker
