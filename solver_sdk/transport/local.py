"""
In-process transport.

``LocalTransport`` keeps topics in memory and loops sent messages back to
local subscribers. It is used for development and tests, where no pub/sub
node is available. It does not encrypt anything; the ``encrypted`` flag is
only recorded.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from eth_keys import keys

from ..exceptions import TransportError
from ..models import WireModel
from ..signer import EvmKey, SecretKey
from .base import MessageTransport, OnMessage, SubscribeOptions

# Configure logger
logger = logging.getLogger(__name__)


@dataclass
class Subscription:
    topic: str
    on_message: OnMessage
    options: SubscribeOptions = field(default_factory=SubscribeOptions)


@dataclass(frozen=True)
class SentMessage:
    """A message published through the local transport."""
    payload: Dict[str, Any]
    reply_topic: str
    sender_key: str
    recipient_key: Optional[str] = None

    @property
    def encrypted(self) -> bool:
        return self.recipient_key is not None


def derive_public_key(key: SecretKey) -> str:
    """
    Derive the transport public key for an encryption key.

    EVM keys give the uncompressed secp256k1 public key as hex, Solana keys
    their base58 Ed25519 public key.
    """
    if isinstance(key, EvmKey):
        return keys.PrivateKey(key.secret).public_key.to_hex()
    return key.address


class LocalTransport(MessageTransport):
    """
    Transport that never leaves the process.

    Events are pushed with ``deliver``; everything passed to
    ``send_message`` is recorded in ``sent`` and delivered to local
    subscribers of the reply topic, wrapped in an envelope whose ``replyTo``
    is the sender key.
    """

    def __init__(self, encryption_key: Optional[SecretKey] = None):
        """
        Initialize the local transport.

        Args:
            encryption_key: Key the public key is derived from; None disables it
        """
        self.encryption_key = encryption_key
        self.logger = logger
        self.started = False
        self.stopped = False
        self.subscriptions: Dict[str, List[Subscription]] = {}
        self.sent: List[SentMessage] = []
        self._public_key: Optional[str] = None

    async def start(self) -> "LocalTransport":
        if self.stopped:
            raise TransportError("Local transport cannot be restarted after stop")
        if not self.started:
            if self.encryption_key is not None:
                self._public_key = derive_public_key(self.encryption_key)
            self.started = True
            self.logger.debug("Local transport started")
        return self

    @property
    def public_key(self) -> Optional[str]:
        return self._public_key

    def _require_started(self) -> None:
        if not self.started:
            raise TransportError("Local transport not started")

    def subscribe(self, topic: str, on_message: OnMessage, options: Optional[SubscribeOptions] = None) -> None:
        self._require_started()
        self.subscriptions.setdefault(topic, []).append(
            Subscription(topic, on_message, options or SubscribeOptions())
        )
        self.logger.debug(f"Local transport subscribed to topic {topic!r}")

    def unsubscribe(self, topic: str, on_message: OnMessage) -> None:
        remaining = [s for s in self.subscriptions.get(topic, []) if s.on_message != on_message]
        if remaining:
            self.subscriptions[topic] = remaining
        else:
            self.subscriptions.pop(topic, None)
        self.logger.debug(f"Local transport unsubscribed from topic {topic!r}")

    async def send_message(
        self,
        payload: Any,
        reply_topic: str,
        sender_key: str,
        recipient_key: Optional[str] = None
    ) -> None:
        self._require_started()
        if isinstance(payload, WireModel):
            payload = payload.to_payload()

        message = SentMessage(payload, reply_topic, sender_key, recipient_key)
        self.sent.append(message)
        self.logger.debug(f"Local transport sent message to {reply_topic!r} (encrypted={message.encrypted})")

        if reply_topic in self.subscriptions:
            await self.deliver(reply_topic, {
                "timestamp": int(time.time() * 1000),
                "replyTo": sender_key,
                "body": payload,
            })

    async def deliver(self, topic: str, event: Dict[str, Any]) -> int:
        """
        Run every subscriber of a topic on an inbound event.

        Subscriber failures are logged and do not affect other subscribers.

        Returns:
            Number of subscribers the event was handed to
        """
        self._require_started()
        subscribers = list(self.subscriptions.get(topic, []))
        if not subscribers:
            return 0

        results = await asyncio.gather(
            *(subscription.on_message(event) for subscription in subscribers),
            return_exceptions=True
        )
        for result in results:
            if isinstance(result, Exception):
                self.logger.error(f"Subscriber for topic {topic!r} failed: {result}")
        return len(subscribers)

    def options_for(self, topic: str) -> List[SubscribeOptions]:
        """Options of every subscription on a topic."""
        return [subscription.options for subscription in self.subscriptions.get(topic, [])]

    async def stop(self) -> None:
        self._require_started()
        self.subscriptions.clear()
        self.started = False
        self.stopped = True
        self.logger.debug("Local transport stopped")
