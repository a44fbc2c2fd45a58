"""Realtime group channels and the client-side chat state model."""

from peerstudy.realtime.broadcaster import Broadcaster, ChannelConnection, broadcaster, get_broadcaster
from peerstudy.realtime.reconciler import ChatStateReconciler

__all__ = ["Broadcaster", "ChannelConnection", "ChatStateReconciler", "broadcaster", "get_broadcaster"]
