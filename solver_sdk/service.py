"""
Service lifecycle for the Solver SDK.
"""
import logging
from typing import Optional

from .config import HandleMessage, SolverConfig
from .router import MessageRouter
from .transport import MessageTransport


class SolverSDK:
    """
    Handle on a running solver.

    Usage:
        sdk = await SolverSDK.start(handle_message)
        ...
        await sdk.stop()
    """

    def __init__(self, router: MessageRouter):
        self.router = router

    @classmethod
    async def start(
        cls,
        handler: HandleMessage,
        logger: Optional[logging.Logger] = None,
        *,
        config: Optional[SolverConfig] = None,
        transport: Optional[MessageTransport] = None
    ) -> "SolverSDK":
        """
        Build the configuration, start the router and return a handle.

        Args:
            handler: Function turning a request into a proposal (or None)
            logger: Optional logger for router and transport output
            config: Prebuilt configuration (read from the environment when omitted)
            transport: Pub/sub client (defaults to the local transport)

        Raises:
            ConfigurationError: If the configuration is invalid
            TransportError: If the transport cannot be started
        """
        if config is None:
            config = SolverConfig.from_env(handler)
        router = await MessageRouter.start(config, transport=transport, logger=logger)
        return cls(router)

    async def stop(self) -> None:
        """Stop the router and its transport."""
        await self.router.stop()


async def start(
    handler: HandleMessage,
    logger: Optional[logging.Logger] = None,
    **kwargs
) -> SolverSDK:
    """Shortcut for ``SolverSDK.start``."""
    return await SolverSDK.start(handler, logger, **kwargs)
