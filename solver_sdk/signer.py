"""
Payload signing for solver proposals.

A payload is signed over its compact JSON serialization. The key format
selects the algorithm:

* ``0x`` prefixed hex: EVM personal message signature (EIP-191), hex encoded,
  signer is the checksummed address.
* anything else: a JSON array holding a 64 byte Solana keypair, detached
  Ed25519 signature, base64 encoded, signer is the base58 public key.
"""
import base64
import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping, Optional, Union

import base58
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey, Ed25519PublicKey
)
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from eth_account import Account
from eth_account.messages import encode_defunct
from pydantic import BaseModel

from .exceptions import SigningError
from .models import MessageResponse, ProposalResponse, SignedPayload, WireModel

if TYPE_CHECKING:
    from .config import SolverConfig

logger = logging.getLogger(__name__)

SOLANA_KEYPAIR_LENGTH = 64


@dataclass(frozen=True)
class EvmKey:
    """secp256k1 private key used for EVM signatures"""
    secret: bytes = field(repr=False)

    @property
    def address(self) -> str:
        return Account.from_key(self.secret).address


@dataclass(frozen=True)
class SolanaKey:
    """Solana keypair: 32 byte Ed25519 seed followed by the 32 byte public key"""
    secret: bytes = field(repr=False)

    @property
    def seed(self) -> bytes:
        return self.secret[:32]

    @property
    def public_key(self) -> bytes:
        return self.secret[32:]

    @property
    def address(self) -> str:
        return base58.b58encode(self.public_key).decode("ascii")


SecretKey = Union[EvmKey, SolanaKey]


def parse_secret_key(raw: str) -> SecretKey:
    """
    Turn a configured secret key string into a tagged key.

    Args:
        raw: ``0x`` prefixed hex (EVM) or a JSON array of integers (Solana)

    Returns:
        EvmKey or SolanaKey

    Raises:
        SigningError: If the string is not a well formed key of either kind
    """
    if not isinstance(raw, str) or not raw:
        raise SigningError("Secret key must be a non-empty string")

    if raw.startswith("0x"):
        try:
            secret = bytes.fromhex(raw[2:])
        except ValueError as e:
            raise SigningError("EVM private key is not valid hex") from e
        if len(secret) != 32:
            raise SigningError(f"EVM private key must be 32 bytes, got {len(secret)}")
        try:
            Account.from_key(secret)
        except Exception as e:
            raise SigningError("EVM private key is outside the secp256k1 range") from e
        return EvmKey(secret)

    try:
        values = json.loads(raw)
    except ValueError as e:
        raise SigningError("Solana secret key must be a JSON array of integers") from e

    if not isinstance(values, list) or not all(
        isinstance(v, int) and not isinstance(v, bool) and 0 <= v <= 255 for v in values
    ):
        raise SigningError("Solana secret key must be a JSON array of integers between 0 and 255")
    if len(values) != SOLANA_KEYPAIR_LENGTH:
        raise SigningError(f"Solana secret key must be {SOLANA_KEYPAIR_LENGTH} bytes, got {len(values)}")

    secret = bytes(values)
    derived = Ed25519PrivateKey.from_private_bytes(secret[:32]).public_key().public_bytes(
        Encoding.Raw, PublicFormat.Raw
    )
    if derived != secret[32:]:
        raise SigningError("Solana secret key does not match its embedded public key")
    return SolanaKey(secret)


def serialize_payload(payload: Any) -> str:
    """
    Serialize a payload the way JSON.stringify does.

    Compact separators, insertion order, non-ASCII characters left as is.
    Models are dumped with ``to_payload()`` first.

    Raises:
        SigningError: If the payload is not JSON serializable
    """
    if isinstance(payload, WireModel):
        payload = payload.to_payload()
    elif isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json", by_alias=True, exclude_unset=True)

    try:
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise SigningError(f"Payload is not JSON serializable: {e}") from e


def sign_payload(payload: Any, secret_key: Union[SecretKey, str]) -> SignedPayload:
    """
    Sign an arbitrary JSON payload.

    Args:
        payload: JSON serializable value or wire model
        secret_key: Tagged key, or a raw key string parsed with ``parse_secret_key``

    Returns:
        SignedPayload with signature and signer

    Raises:
        SigningError: If the key is malformed or signing fails
    """
    key = secret_key if isinstance(secret_key, (EvmKey, SolanaKey)) else parse_secret_key(secret_key)
    message = serialize_payload(payload)

    if isinstance(key, EvmKey):
        return _sign_with_evm(message, key)
    return _sign_with_solana(message, key)


def _sign_with_evm(message: str, key: EvmKey) -> SignedPayload:
    try:
        account = Account.from_key(key.secret)
        signed = account.sign_message(encode_defunct(text=message))
    except Exception as e:
        raise SigningError(f"EVM signing failed: {e}") from e

    return SignedPayload(signature="0x" + bytes(signed.signature).hex(), signer=account.address)


def _sign_with_solana(message: str, key: SolanaKey) -> SignedPayload:
    try:
        private_key = Ed25519PrivateKey.from_private_bytes(key.seed)
        signature = private_key.sign(message.encode("utf-8"))
    except ValueError as e:
        raise SigningError(f"Solana signing failed: {e}") from e

    return SignedPayload(signature=base64.b64encode(signature).decode("ascii"), signer=key.address)


def sign_proposal(
    proposal: Optional[Union[ProposalResponse, Mapping[str, Any]]],
    config: "SolverConfig",
    logger_instance: Optional[logging.Logger] = None
) -> Optional[MessageResponse]:
    """
    Sign a proposal and wrap it into a ready to send response.

    Never raises: a missing proposal or any signing failure yields None.

    Args:
        proposal: Validated proposal (or a mapping that validates as one)
        config: Solver configuration holding the private key
        logger_instance: Logger to report failures on

    Returns:
        MessageResponse with proposal, signature and signer, or None
    """
    if not proposal:
        return None

    log = logger_instance or logger
    try:
        if not isinstance(proposal, ProposalResponse):
            proposal = ProposalResponse.model_validate(proposal)
        signed = sign_payload(proposal, config.private_key)
        return MessageResponse(proposal=proposal, signature=signed.signature, signer=signed.signer)
    except Exception as e:
        log.error("Signing proposal failed: %s", e)
        return None


def verify_payload(payload: Any, signature: str, signer: str) -> bool:
    """
    Check a signature produced by ``sign_payload``.

    The payload is serialized with the same rules used for signing, so it
    must be the exact value that was signed (same keys, same order).

    Args:
        payload: The signed payload
        signature: Hex (EVM) or base64 (Solana) signature
        signer: Checksummed EVM address or base58 Solana public key

    Returns:
        True if the signature matches the signer, False otherwise
    """
    try:
        message = serialize_payload(payload)
    except SigningError:
        return False

    if signer.startswith("0x"):
        try:
            recovered = Account.recover_message(encode_defunct(text=message), signature=signature)
        except Exception as e:
            logger.debug("EVM signature recovery failed: %s", e)
            return False
        return recovered.lower() == signer.lower()

    try:
        public_key = Ed25519PublicKey.from_public_bytes(base58.b58decode(signer))
        public_key.verify(base64.b64decode(signature, validate=True), message.encode("utf-8"))
    except InvalidSignature:
        return False
    except ValueError as e:
        logger.debug("Malformed Solana signature or signer: %s", e)
        return False
    return True


def verify_response(response: Union[MessageResponse, Mapping[str, Any]]) -> bool:
    """
    Verify a signed response as received from a solver.

    Raw mappings are checked against their ``proposal`` exactly as received.
    """
    if isinstance(response, MessageResponse):
        return verify_payload(response.proposal, response.signature, response.signer)

    try:
        proposal = response["proposal"]
        signature = response["signature"]
        signer = response["signer"]
    except (KeyError, TypeError):
        return False
    if not isinstance(signature, str) or not isinstance(signer, str):
        return False
    return verify_payload(proposal, signature, signer)
