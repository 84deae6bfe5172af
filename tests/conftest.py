"""
Pytest fixtures for the Solver SDK tests.
"""
import json

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from eth_account import Account

from solver_sdk.config import SolverConfig
from solver_sdk.transport import LocalTransport
from solver_sdk.transport._rate_limited_log import reset_rate_limits

# Constants for testing
TEST_PRIV_KEY = "0x0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"
TEST_ADDRESS = Account.from_key(TEST_PRIV_KEY).address
TEST_REPLY_TO = "/solver/1/reply-abc/json"
TEST_PEER_PUB_KEY = "0x04peerpublickey"


def make_solana_secret(seed: bytes = bytes(range(32))) -> str:
    """Deterministic Solana keypair as the JSON array a wallet exports."""
    public = Ed25519PrivateKey.from_private_bytes(seed).public_key().public_bytes(
        Encoding.Raw, PublicFormat.Raw
    )
    return json.dumps(list(seed + public))


TEST_SOLANA_KEY = make_solana_secret()


@pytest.fixture(autouse=True)
def _reset_rate_limited_log():
    """Type rejection warnings are rate limited across tests otherwise."""
    reset_rate_limits()
    yield
    reset_rate_limits()


@pytest.fixture
def valid_proposal():
    return {
        "description": "Deposit 100 USDC into the lending pool",
        "titles": ["Approve", "Deposit"],
        "calls": ["Approve 100 USDC", "Deposit 100 USDC"],
        "transactions": [
            {
                "chainId": 1,
                "to": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
                "value": "0",
                "data": "0x095ea7b3",
            },
            {
                "chainId": 1,
                "to": "0x87870Bca3F3fD6335C3F4ce8392D69350B4fA4E2",
                "value": 0,
                "data": "0x617ba037",
                "gasLimit": 250000,
            },
        ],
    }


@pytest.fixture
def yield_message():
    return {
        "timestamp": 1714000000000,
        "replyTo": TEST_REPLY_TO,
        "body": {
            "type": "YIELD",
            "fromChain": "ethereum",
            "amount": "100",
            "fromToken": "USDC",
        },
    }


@pytest.fixture
def handler(valid_proposal):
    """Async handler that always proposes ``valid_proposal``."""
    calls = []

    async def _handle(message):
        calls.append(message)
        return valid_proposal

    _handle.calls = calls
    return _handle


@pytest.fixture
def config(handler):
    return SolverConfig.build(private_key=TEST_PRIV_KEY, handler=handler)


@pytest.fixture
def encrypted_config(handler):
    return SolverConfig.build(
        private_key=TEST_PRIV_KEY,
        handler=handler,
        encryption_private_key=TEST_PRIV_KEY,
    )


@pytest.fixture
def transport():
    return LocalTransport()
