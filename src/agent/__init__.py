"""
Agent Module - transport boundary and wiring for the hotel booking chat.
"""

from .inbound import InboundMessageProcessor, InboundResult, extract_text_messages
from .factory import build_notifier, build_engine, create_booking_agent

__all__ = [
    "InboundMessageProcessor",
    "InboundResult",
    "extract_text_messages",
    "build_notifier",
    "build_engine",
    "create_booking_agent",
]
