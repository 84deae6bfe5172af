"""
Transport contract for the Solver SDK.

The pub/sub network is an external collaborator. This module defines the
interface the router consumes, so any client (a Waku node binding, a test
double, the in-process ``LocalTransport``) can be plugged in.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

# Configure logger
logger = logging.getLogger(__name__)

# Inbound events are decoded JSON objects: {"timestamp", "replyTo", "body"}
OnMessage = Callable[[Dict[str, Any]], Awaitable[Any]]


@dataclass(frozen=True)
class SubscribeOptions:
    """
    Per-subscription transport options.

    Attributes:
        encrypted: Messages on this topic are encrypted to our public key
        expiration_seconds: Retention window; None means no expiration
    """
    encrypted: bool = False
    expiration_seconds: Optional[int] = None


class MessageTransport(ABC):
    """
    Abstract base class for pub/sub transports.

    Implementations own connection handling, topic propagation, encryption
    and message expiration; the router only subscribes and sends.
    """

    logger: logging.Logger = logger

    @abstractmethod
    async def start(self) -> "MessageTransport":
        """
        Connect the client.

        Returns:
            The started client

        Raises:
            TransportError: If the client cannot be started
        """
        pass

    @abstractmethod
    def subscribe(self, topic: str, on_message: OnMessage, options: Optional[SubscribeOptions] = None) -> None:
        """
        Register a callback for a topic.

        Args:
            topic: Topic name ("" is the default public topic)
            on_message: Coroutine called once per inbound event
            options: Encryption and expiration settings
        """
        pass

    @abstractmethod
    def unsubscribe(self, topic: str, on_message: OnMessage) -> None:
        """
        Remove a callback registered with ``subscribe``.

        Unknown topic and callback pairs are ignored.
        """
        pass

    @abstractmethod
    async def send_message(
        self,
        payload: Any,
        reply_topic: str,
        sender_key: str,
        recipient_key: Optional[str] = None
    ) -> None:
        """
        Publish a payload.

        Args:
            payload: JSON serializable body
            reply_topic: Topic to publish on
            sender_key: Address the recipient should answer to
            recipient_key: Peer public key; when given the payload is encrypted to it
        """
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Disconnect and drop all subscriptions."""
        pass

    @property
    @abstractmethod
    def public_key(self) -> Optional[str]:
        """Own encryption public key, available once the client is started."""
        pass

    def set_logger(self, logger_instance: logging.Logger) -> None:
        """Route transport logging to the given logger."""
        self.logger = logger_instance
