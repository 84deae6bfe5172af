"""
Transport module for the Solver SDK.

The router talks to the pub/sub network through ``MessageTransport``.
``LocalTransport`` is the in-process implementation used when no other
client is supplied.
"""
import logging
from typing import TYPE_CHECKING

from .base import MessageTransport, OnMessage, SubscribeOptions
from .local import LocalTransport, SentMessage, derive_public_key

if TYPE_CHECKING:
    from ..config import SolverConfig

__all__ = ['MessageTransport', 'OnMessage', 'SubscribeOptions', 'LocalTransport',
           'SentMessage', 'derive_public_key', 'get_transport']

logger = logging.getLogger(__name__)


def get_transport(config: "SolverConfig") -> MessageTransport:
    """
    Get the default transport for a configuration.

    Args:
        config: Solver configuration; its encryption key (if any) becomes the
            transport key pair

    Returns:
        Transport implementation
    """
    logger.info("Using local in-process transport")
    return LocalTransport(encryption_key=config.encryption_private_key)
