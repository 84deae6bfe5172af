"""
Solver configuration.

This module is the only place that reads the process environment.
``SolverConfig.from_env`` builds the service configuration; the command line
tool uses ``signing_key_from_env`` and ``log_level_from_env``. Everything
downstream receives the resulting values.
"""
import os
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, FrozenSet, Iterable, Mapping, Optional, Union

from dotenv import load_dotenv

from .exceptions import ConfigurationError, SigningError
from .models import ProposalResponse, WakuMessage
from .signer import EvmKey, SecretKey, SolanaKey, parse_secret_key

logger = logging.getLogger(__name__)

# Handlers may be plain functions or coroutines
HandlerResult = Optional[Union[ProposalResponse, Mapping[str, Any]]]
HandleMessage = Callable[[WakuMessage], Union[HandlerResult, Awaitable[HandlerResult]]]

PRIVATE_KEY_ENV = "SOLVER_PRIVATE_KEY"
ENCRYPTION_KEY_ENV = "WAKU_ENCRYPTION_PRIVATE_KEY"
AVAILABLE_TYPES_ENV = "AVAILABLE_TYPES"
LOG_LEVEL_ENV = "LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"

# Level names accepted on top of the logging module's own
_LEVEL_ALIASES = {"TRACE": "DEBUG", "SILENT": "CRITICAL"}


def parse_available_types(types: Optional[Union[str, Iterable[str]]]) -> FrozenSet[str]:
    """
    Normalize the accepted message types.

    Args:
        types: Comma separated string or iterable of type names

    Returns:
        Trimmed, uppercased type names; blanks are dropped
    """
    if not types:
        return frozenset()
    if isinstance(types, str):
        types = types.split(",")
    return frozenset(t.strip().upper() for t in types if t and t.strip())


def resolve_log_level(name: Optional[str]) -> int:
    """
    Turn a level name such as ``info`` or ``warn`` into a logging level.

    Raises:
        ConfigurationError: If the name is not a known level
    """
    key = (name or "").strip().upper() or DEFAULT_LOG_LEVEL
    level = logging.getLevelName(_LEVEL_ALIASES.get(key, key))
    if not isinstance(level, int):
        raise ConfigurationError(f"Unknown log level: {name!r}", LOG_LEVEL_ENV)
    return level


@dataclass(frozen=True)
class SolverConfig:
    """
    Process wide solver settings.

    Attributes:
        private_key: Key used to sign proposals
        handler: User function turning a request into a proposal
        encryption_private_key: Enables confidential messaging; must be the signing key
        available_types: Accepted request types (empty accepts everything)
        log_level: Level name for the default router logger
    """
    private_key: SecretKey = field(repr=False)
    handler: HandleMessage = field(repr=False)
    encryption_private_key: Optional[SecretKey] = field(default=None, repr=False)
    available_types: FrozenSet[str] = frozenset()
    log_level: str = DEFAULT_LOG_LEVEL

    def __post_init__(self):
        if not isinstance(self.private_key, (EvmKey, SolanaKey)):
            raise ConfigurationError("PRIVATE_KEY must be provided in the configuration.", PRIVATE_KEY_ENV)
        if self.encryption_private_key is not None and self.encryption_private_key != self.private_key:
            raise ConfigurationError(
                "PRIVATE_KEY and WAKU_ENCRYPTION_PRIVATE_KEY MUST be the same if both are provided.",
                ENCRYPTION_KEY_ENV
            )
        if not callable(self.handler):
            raise ConfigurationError("handler must be callable")
        resolve_log_level(self.log_level)
        object.__setattr__(self, "available_types", parse_available_types(self.available_types))

    @property
    def encryption_enabled(self) -> bool:
        return self.encryption_private_key is not None

    @property
    def level(self) -> int:
        """Numeric logging level of ``log_level``."""
        return resolve_log_level(self.log_level)

    @classmethod
    def build(
        cls,
        private_key: Optional[str],
        handler: HandleMessage,
        encryption_private_key: Optional[str] = None,
        available_types: Optional[Union[str, Iterable[str]]] = None,
        log_level: Optional[str] = None
    ) -> "SolverConfig":
        """
        Build a configuration from raw key strings.

        Raises:
            ConfigurationError: If a key is missing, malformed or the keys differ, or
                the log level is unknown
        """
        if not private_key:
            raise ConfigurationError("PRIVATE_KEY must be provided in the configuration.", PRIVATE_KEY_ENV)

        try:
            signing_key = parse_secret_key(private_key)
        except SigningError as e:
            raise ConfigurationError(f"Invalid {PRIVATE_KEY_ENV}: {e}", PRIVATE_KEY_ENV) from e

        encryption_key = None
        if encryption_private_key:
            if encryption_private_key != private_key:
                raise ConfigurationError(
                    "PRIVATE_KEY and WAKU_ENCRYPTION_PRIVATE_KEY MUST be the same if both are provided.",
                    ENCRYPTION_KEY_ENV
                )
            encryption_key = signing_key

        return cls(
            private_key=signing_key,
            handler=handler,
            encryption_private_key=encryption_key,
            available_types=parse_available_types(available_types),
            log_level=(log_level or "").strip().upper() or DEFAULT_LOG_LEVEL,
        )

    @classmethod
    def from_env(
        cls,
        handler: HandleMessage,
        environ: Optional[Mapping[str, str]] = None,
        load_env_file: bool = True
    ) -> "SolverConfig":
        """
        Build a configuration from environment variables.

        Args:
            handler: User message handler
            environ: Mapping to read instead of ``os.environ``
            load_env_file: Load a ``.env`` file first (existing variables win)

        Returns:
            Validated SolverConfig

        Raises:
            ConfigurationError: If the environment does not hold a usable configuration
        """
        if environ is None:
            if load_env_file:
                load_dotenv()
            environ = os.environ

        config = cls.build(
            private_key=environ.get(PRIVATE_KEY_ENV),
            handler=handler,
            encryption_private_key=environ.get(ENCRYPTION_KEY_ENV),
            available_types=environ.get(AVAILABLE_TYPES_ENV),
            log_level=environ.get(LOG_LEVEL_ENV),
        )
        logger.debug(
            "Loaded solver config (encryption=%s, types=%s)",
            config.encryption_enabled, sorted(config.available_types) or "all"
        )
        return config


def signing_key_from_env(environ: Optional[Mapping[str, str]] = None) -> Optional[SecretKey]:
    """
    Read and parse ``SOLVER_PRIVATE_KEY`` without building a full configuration.

    Returns:
        The parsed key, or None when the variable is unset

    Raises:
        ConfigurationError: If the key is malformed
    """
    raw = (os.environ if environ is None else environ).get(PRIVATE_KEY_ENV)
    if not raw:
        return None
    try:
        return parse_secret_key(raw)
    except SigningError as e:
        raise ConfigurationError(f"Invalid {PRIVATE_KEY_ENV}: {e}", PRIVATE_KEY_ENV) from e


def log_level_from_env(environ: Optional[Mapping[str, str]] = None) -> int:
    """
    Read ``LOG_LEVEL`` as a logging level, defaulting to INFO.

    Raises:
        ConfigurationError: If the level name is unknown
    """
    return resolve_log_level((os.environ if environ is None else environ).get(LOG_LEVEL_ENV))
