"""
Solver SDK - answer pub/sub transaction requests with signed proposals.
"""
from .version import __version__
from .config import SolverConfig, HandleMessage
from .exceptions import SolverError, ConfigurationError, SigningError, TransportError, DropReason
from .models import (
    BodyMessage, WakuMessage, Message, HandshakeMessage, Transaction, PartialTransaction,
    ProposalResponse, MessageResponse, HandshakeAck, SignedPayload
)
from .signer import (
    EvmKey, SolanaKey, parse_secret_key, serialize_payload, sign_payload, sign_proposal,
    verify_payload, verify_response
)
from .router import MessageRouter, RouterState, PipelineResult
from .service import SolverSDK, start
from .transport import MessageTransport, LocalTransport, SubscribeOptions

__all__ = [
    "SolverSDK",
    "start",
    "SolverConfig",
    "HandleMessage",
    "MessageRouter",
    "RouterState",
    "PipelineResult",
    "MessageTransport",
    "LocalTransport",
    "SubscribeOptions",
    "BodyMessage",
    "WakuMessage",
    "Message",
    "HandshakeMessage",
    "Transaction",
    "PartialTransaction",
    "ProposalResponse",
    "MessageResponse",
    "HandshakeAck",
    "SignedPayload",
    "EvmKey",
    "SolanaKey",
    "parse_secret_key",
    "serialize_payload",
    "sign_payload",
    "sign_proposal",
    "verify_payload",
    "verify_response",
    "SolverError",
    "ConfigurationError",
    "SigningError",
    "TransportError",
    "DropReason",
    "__version__",
]
