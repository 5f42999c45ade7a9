"""
Mindful Companion - Services Package

Contains the assistant transport interface and implementations.

Design Pattern:
    The service defines a Protocol (interface) and concrete implementations.
    Sessions are configured with a transport at startup, enabling dependency
    injection and easy testing/swapping of backends.
"""

from .assistant import (
    AssistantTransport,
    DummyAssistantTransport,
    HttpAssistantTransport,
    create_transport,
)

__all__ = [
    "AssistantTransport",
    "DummyAssistantTransport",
    "HttpAssistantTransport",
    "create_transport",
]
