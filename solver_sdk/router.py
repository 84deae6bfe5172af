"""
Message router: the pipeline between the transport and the user handler.

Three channels are served:

* public: the default topic, answered in clear to ``replyTo``
* handshake: tells peers which public key to encrypt to
* confidential: our own public key topic, answered encrypted to the peer

Handshake and confidential channels only exist when an encryption key is
configured. A failure while handling one message is logged and drops that
message; it never stops the router.
"""
import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar, Union

from pydantic import ValidationError

from .config import SolverConfig
from .exceptions import DropReason, SigningError, TransportError
from .models import (
    HandshakeAck, HandshakeMessage, MessageResponse, ProposalResponse, WakuMessage, WireModel
)
from .signer import sign_payload, sign_proposal
from .transport import MessageTransport, OnMessage, SubscribeOptions, get_transport
from .transport._rate_limited_log import rate_limited_log

PUBLIC_TOPIC = ""
HANDSHAKE_TOPIC = "handshake"
CONFIDENTIAL_EXPIRATION_SECONDS = 60 * 60 * 24

EventT = TypeVar("EventT", WakuMessage, HandshakeMessage)


class RouterState(str, Enum):
    UNINITIALIZED = "UNINITIALIZED"
    INITIALIZING = "INITIALIZING"
    RUNNING = "RUNNING"
    STOPPED = "STOPPED"


@dataclass(frozen=True)
class PipelineResult:
    """
    Outcome of handling one inbound message.

    Either ``reason`` is set (the message was dropped) or the message was
    answered; ``response`` holds the signed proposal when there was one.
    """
    response: Optional[MessageResponse] = None
    reason: Optional[DropReason] = None
    error: str = ""

    @property
    def dropped(self) -> bool:
        return self.reason is not None


class MessageRouter:
    """
    Routes transport events through the handler, validation and signing.

    The router owns the transport for its lifetime. Once stopped it cannot be
    restarted; build a new instance instead.
    """

    def __init__(
        self,
        config: SolverConfig,
        transport: Optional[MessageTransport] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the router.

        Args:
            config: Validated solver configuration
            transport: Pub/sub client (defaults to ``get_transport(config)``)
            logger: Optional logger for router and transport output; the default
                module logger is set to ``config.log_level``
        """
        self.config = config
        if logger is None:
            logger = logging.getLogger(__name__)
            logger.setLevel(config.level)
        self.logger = logger
        self.transport = transport or get_transport(config)
        self.encryption_enabled = config.encryption_enabled
        self.state = RouterState.UNINITIALIZED
        self._subscriptions: List[Tuple[str, OnMessage]] = []

    @property
    def initialized(self) -> bool:
        return self.state is RouterState.RUNNING

    @classmethod
    async def start(
        cls,
        config: SolverConfig,
        transport: Optional[MessageTransport] = None,
        logger: Optional[logging.Logger] = None
    ) -> "MessageRouter":
        router = cls(config, transport=transport, logger=logger)
        await router.initialize()
        return router

    async def initialize(self) -> None:
        """
        Start the transport and install the channel subscriptions.

        Repeated calls on a running router do nothing. Errors propagate
        unchanged and leave the router uninitialized, with every subscription
        installed by this call removed again.

        Raises:
            TransportError: If the router was stopped or no public key is available
                for the confidential channel
        """
        if self.state is RouterState.RUNNING:
            return
        if self.state is RouterState.STOPPED:
            raise TransportError("Router was stopped and cannot be restarted; create a new instance")

        self.state = RouterState.INITIALIZING
        try:
            self.transport = await self.transport.start()
            self.transport.set_logger(self.logger)
            self.logger.info("[Router] Transport started.")

            if self.encryption_enabled and not self.transport.public_key:
                raise TransportError("Cannot subscribe to confidential messages: transport public key is not available")

            self._subscribe_to_public_messages()
            self._subscribe_to_handshake_messages()
            self._subscribe_to_confidential_messages()
        except Exception:
            self._unsubscribe_all()
            self.state = RouterState.UNINITIALIZED
            self.logger.exception("[Router] Initialization failed.")
            raise

        self.state = RouterState.RUNNING
        self.logger.debug("[Router] Initialization complete.")

    def _subscribe(self, topic: str, on_message: OnMessage, options: Optional[SubscribeOptions] = None) -> None:
        self.transport.subscribe(topic, on_message, options)
        self._subscriptions.append((topic, on_message))

    def _unsubscribe_all(self) -> None:
        while self._subscriptions:
            topic, on_message = self._subscriptions.pop()
            try:
                self.transport.unsubscribe(topic, on_message)
            except Exception as e:
                self.logger.error("[Router] Failed to remove subscription for topic %r: %s", topic, e)

    async def stop(self) -> None:
        """
        Stop the transport.

        In-flight messages are neither awaited nor cancelled.

        Raises:
            TransportError: If the router is not running
        """
        if self.state is not RouterState.RUNNING:
            raise TransportError(f"Cannot stop router in state {self.state.value}")

        await self.transport.stop()
        self._subscriptions.clear()
        self.state = RouterState.STOPPED
        self.logger.info("[Router] Transport stopped.")

    def validate_message_type(self, event: Union[WakuMessage, HandshakeMessage]) -> bool:
        """Accept every type when no types are configured, else only the configured ones."""
        if not self.config.available_types:
            return True
        return event.body.type.upper() in self.config.available_types

    async def build_response(self, event: WakuMessage) -> Optional[MessageResponse]:
        """
        Run the handler for a message and sign its proposal.

        Returns:
            Signed response, or None when there is nothing to send
        """
        result = await self.process(event)
        return result.response

    async def process(self, event: WakuMessage) -> PipelineResult:
        """
        Handler, proposal validation and signing for one message.

        Never raises; every failure becomes a dropped ``PipelineResult``.
        """
        try:
            return await self._run_pipeline(event)
        except Exception as e:
            self.logger.error(
                "[Router] Error building response for %s: %s", event.body.to_payload(), e, exc_info=True
            )
            return PipelineResult(reason=DropReason.HANDLER_ERROR, error=str(e))

    async def _run_pipeline(self, event: WakuMessage) -> PipelineResult:
        body = event.body.to_payload()
        try:
            result = self.config.handler(event)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            self.logger.error("[Router] Handler failed for %s: %s", body, e, exc_info=True)
            return PipelineResult(reason=DropReason.HANDLER_ERROR, error=str(e))

        if result is None:
            return PipelineResult(reason=DropReason.NO_PROPOSAL)

        try:
            payload = result.to_payload() if isinstance(result, WireModel) else result
            proposal = ProposalResponse.model_validate(payload)
        except ValidationError as e:
            self.logger.warning("[Router] Invalid proposal for %s: %s", body, e.errors())
            return PipelineResult(reason=DropReason.INVALID_PROPOSAL, error=str(e))

        response = sign_proposal(proposal, self.config, self.logger)
        if response is None:
            return PipelineResult(reason=DropReason.SIGNING_FAILED)
        return PipelineResult(response=response)

    def _parse_event(self, raw: Any, model: Type[EventT], channel: str) -> Optional[EventT]:
        if isinstance(raw, model):
            return raw
        try:
            return model.model_validate(raw)
        except ValidationError as e:
            self.logger.warning("[Router] Dropping malformed %s message: %s", channel, e.errors())
            return None

    def _reject_type(self, event: Union[WakuMessage, HandshakeMessage]) -> PipelineResult:
        rate_limited_log(
            f"[Router] Received unknown/missing type ({event.body.type}) for {event.reply_to}",
            level="warning",
            logger_instance=self.logger
        )
        return PipelineResult(reason=DropReason.TYPE_REJECTED)

    async def _send(
        self,
        payload: Dict[str, Any],
        reply_topic: str,
        sender_key: str,
        recipient_key: Optional[str] = None
    ) -> Optional[PipelineResult]:
        try:
            await self.transport.send_message(payload, reply_topic, sender_key, recipient_key)
        except Exception as e:
            self.logger.error("[Router] Failed to send message to %s: %s", reply_topic, e)
            return PipelineResult(reason=DropReason.SEND_FAILED, error=str(e))
        return None

    # Public channel

    def _subscribe_to_public_messages(self) -> None:
        self._subscribe(PUBLIC_TOPIC, self.handle_public_message)

    async def handle_public_message(self, raw: Dict[str, Any]) -> PipelineResult:
        event = self._parse_event(raw, WakuMessage, "public")
        if event is None:
            return PipelineResult(reason=DropReason.INVALID_MESSAGE)
        self.logger.debug("[Router] Received public message from %s", event.reply_to)

        if not self.validate_message_type(event):
            return self._reject_type(event)

        result = await self.process(event)
        if result.response is None:
            self.logger.debug("[Router] No response generated for public request %s", event.reply_to or "unknown")
            return result
        if not event.reply_to:
            self.logger.debug("[Router] Public request has no reply topic, response discarded")
            return result

        self.logger.debug("[Router] Sending public response to %s", event.reply_to)
        failure = await self._send(result.response.to_payload(), event.reply_to, event.reply_to)
        return failure or result

    # Handshake channel

    def _subscribe_to_handshake_messages(self) -> None:
        if not self.encryption_enabled:
            self.logger.warning("[Router] Encryption is disabled, skipping handshake messages")
            return

        self._subscribe(HANDSHAKE_TOPIC, self.handle_handshake_message, SubscribeOptions())

    async def handle_handshake_message(self, raw: Dict[str, Any]) -> PipelineResult:
        event = self._parse_event(raw, HandshakeMessage, "handshake")
        if event is None:
            return PipelineResult(reason=DropReason.INVALID_MESSAGE)
        self.logger.debug("[Router] Received handshake message from %s", event.reply_to)

        if not self.validate_message_type(event):
            return self._reject_type(event)

        try:
            signed = sign_payload({}, self.config.private_key)
        except SigningError as e:
            self.logger.error("[Router] Error signing handshake ACK for %s: %s", event.reply_to, e)
            return PipelineResult(reason=DropReason.SIGNING_FAILED, error=str(e))

        public_key = self.transport.public_key
        if not public_key:
            self.logger.error("[Router] Cannot send handshake ACK: transport public key is not available.")
            return PipelineResult(reason=DropReason.PUBLIC_KEY_UNAVAILABLE)

        ack = HandshakeAck(signer=signed.signer, signature=signed.signature, signer_pub_key=public_key)
        self.logger.debug("[Router] Sending handshake ACK to %s", event.reply_to)
        failure = await self._send(ack.to_payload(), event.reply_to, public_key)
        return failure or PipelineResult()

    # Confidential channel

    def _subscribe_to_confidential_messages(self) -> None:
        if not self.encryption_enabled:
            self.logger.warning("[Router] Encryption is disabled, skipping confidential messages")
            return

        public_key = self.transport.public_key
        self._subscribe(
            public_key,
            self.handle_confidential_message,
            SubscribeOptions(encrypted=True, expiration_seconds=CONFIDENTIAL_EXPIRATION_SECONDS)
        )
        self.logger.debug("[Router] Subscribed to confidential topic: %s", public_key)

    async def handle_confidential_message(self, raw: Dict[str, Any]) -> PipelineResult:
        event = self._parse_event(raw, WakuMessage, "confidential")
        if event is None:
            return PipelineResult(reason=DropReason.INVALID_MESSAGE)
        self.logger.debug("[Router] Received confidential message from %s", event.reply_to)

        # Checked before the type: without the peer key no reply can be addressed
        signer_pub_key = event.body.signer_pub_key
        if not signer_pub_key:
            self.logger.error(
                "[Router] Cannot send encrypted response: missing signerPubKey in confidential request from %s",
                event.reply_to
            )
            return PipelineResult(reason=DropReason.MISSING_SIGNER_PUBKEY)

        if not self.validate_message_type(event):
            return self._reject_type(event)

        result = await self.process(event)
        if result.response is None:
            self.logger.debug("[Router] No response generated for confidential request %s", event.reply_to)
            return result

        public_key = self.transport.public_key
        if not public_key:
            self.logger.error("[Router] Cannot send confidential response: transport public key is not available.")
            return PipelineResult(reason=DropReason.PUBLIC_KEY_UNAVAILABLE)

        self.logger.debug("[Router] Sending confidential response to %s", event.reply_to)
        failure = await self._send(result.response.to_payload(), event.reply_to, public_key, signer_pub_key)
        return failure or result
