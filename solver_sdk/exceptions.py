"""
Exceptions for the Solver SDK.
"""
from enum import Enum
from typing import Optional


class DropReason(str, Enum):
    """
    Reasons an inbound message ends without a reply.

    None of these reach the caller; they are logged and the message is dropped.
    """
    TYPE_REJECTED = "TYPE_REJECTED"
    INVALID_MESSAGE = "INVALID_MESSAGE"
    NO_PROPOSAL = "NO_PROPOSAL"
    INVALID_PROPOSAL = "INVALID_PROPOSAL"
    SIGNING_FAILED = "SIGNING_FAILED"
    HANDLER_ERROR = "HANDLER_ERROR"
    MISSING_SIGNER_PUBKEY = "MISSING_SIGNER_PUBKEY"
    PUBLIC_KEY_UNAVAILABLE = "PUBLIC_KEY_UNAVAILABLE"
    SEND_FAILED = "SEND_FAILED"


class SolverError(Exception):
    """Base exception for Solver SDK errors."""
    pass


class ConfigurationError(SolverError):
    """Raised when the solver configuration is missing or inconsistent."""

    def __init__(self, message: str, setting: Optional[str] = None):
        self.setting = setting
        super().__init__(message)


class SigningError(SolverError):
    """Raised when a payload cannot be serialized or signed."""
    pass


class TransportError(SolverError):
    """Raised when the transport is used outside of its lifecycle."""
    pass
