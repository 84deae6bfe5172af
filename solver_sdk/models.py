"""
Data models for the Solver SDK.

Models accept snake_case names in Python and use camelCase aliases on the
wire. ``to_payload()`` produces the JSON-ready dict that is signed and sent.
"""
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, StrictFloat, StrictInt, StrictStr, model_validator
from pydantic.alias_generators import to_camel

# Amounts and gas values arrive either as JSON numbers or as decimal strings;
# booleans are not numbers
Numeric = Union[StrictInt, StrictFloat, StrictStr]


class WireModel(BaseModel):
    """Base model for everything that crosses the transport boundary."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_payload(self) -> Dict[str, Any]:
        """
        Dump the model the way it goes on the wire.

        Fields that were never set are omitted, extra fields are kept and the
        key order follows the field declaration order.
        """
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class BodyMessage(WireModel):
    """Semantic payload of a solver request"""
    model_config = ConfigDict(frozen=True)

    type: str
    from_chain: str
    amount: Optional[str] = None
    from_token: Optional[str] = None
    from_address: Optional[str] = None
    to_token: Optional[str] = None
    recipient_address: Optional[str] = None
    recipient_chain: Optional[str] = None
    description: Optional[str] = None
    protocol: Optional[str] = None  # claim and withdraw operations
    protocols: Optional[List[str]] = None
    transaction_hash: Optional[str] = None  # claim operations
    signer_pub_key: Optional[str] = None


class WakuMessage(WireModel):
    """Transport envelope for a solver request"""
    model_config = ConfigDict(frozen=True)

    timestamp: int
    reply_to: str
    body: BodyMessage


# Alias kept for handlers written against the generic name
Message = WakuMessage


class HandshakeBody(WireModel):
    model_config = ConfigDict(frozen=True)

    type: str


class HandshakeMessage(WireModel):
    """Handshake request; only the reply topic and the type are required."""
    model_config = ConfigDict(frozen=True)

    reply_to: str
    body: HandshakeBody
    timestamp: Optional[int] = None


class Transaction(WireModel):
    """A ready to broadcast chain call"""
    chain_id: StrictInt
    to: str
    value: Numeric
    data: str
    gas_limit: Optional[Numeric] = None
    gas_price: Optional[Numeric] = None


class PartialTransaction(WireModel):
    """
    A transaction template.

    ``call_data`` and ``call_value`` are opaque, protocol specific instructions
    telling a downstream system how to derive ``data`` and ``value``.
    """
    chain_id: StrictInt
    to: str
    value: Optional[Numeric] = None
    data: Optional[str] = None
    gas_limit: Optional[Numeric] = None
    gas_price: Optional[Numeric] = None
    call_data: Any = None
    call_value: Any = None


class ProposalResponse(WireModel):
    """Handler output: a described set of transactions"""
    description: str
    titles: List[str]
    calls: List[str]
    transactions: Optional[List[Transaction]] = None
    partial_transactions: Optional[List[PartialTransaction]] = None

    @model_validator(mode="after")
    def _require_transactions(self) -> "ProposalResponse":
        if not self.transactions and not self.partial_transactions:
            raise ValueError("Either transactions or partialTransactions must be provided")
        return self


class MessageResponse(WireModel):
    """Signed proposal sent back to the requester"""
    model_config = ConfigDict(frozen=True)

    proposal: ProposalResponse
    signature: str
    signer: str


class SignedPayload(BaseModel):
    """Result of signing an arbitrary payload"""
    signature: str
    signer: str


class HandshakeAck(WireModel):
    """Handshake reply exposing this node's encryption public key"""
    model_config = ConfigDict(frozen=True)

    signer: str
    signature: str
    signer_pub_key: str
