"""
Abstract base class for messaging platform adapters.

Every platform must implement this interface. The order wizard core
never imports platform-specific libraries, so wizard rules and the
commit flow stay the same whatever renders them.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class OutgoingMessage:
    """Platform-agnostic representation of an outgoing message."""

    chat_id: str
    text: str
    format_type: str = "plain"          # "plain", "html" or "markdown"; adapter maps to platform format


class PlatformAdapter(ABC):
    """
    Interface that every messaging platform adapter must implement.

    Used for messages that originate outside a user's own update, e.g.
    telling a supplier that an order was created from the web wizard.
    """

    @abstractmethod
    async def send_message(self, message: OutgoingMessage) -> None:
        """Send a text message to a chat."""
        ...

    @abstractmethod
    async def start(self) -> None:
        """Start listening for incoming messages (polling, webhook, etc.)."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Gracefully shut down the adapter."""
        ...
