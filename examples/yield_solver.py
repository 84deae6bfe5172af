#!/usr/bin/env python3
"""
Example solver answering YIELD requests.

Runs entirely in-process: a LocalTransport stands in for the pub/sub
network, a fake requester sends one request and prints the signed reply.

    SOLVER_PRIVATE_KEY=0x... python examples/yield_solver.py
"""
import asyncio
import json
import logging
import sys
import time

from solver_sdk import (
    ConfigurationError, LocalTransport, ProposalResponse, SolverConfig, SolverSDK,
    Transaction, WakuMessage, verify_response
)

USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
POOL = "0x87870Bca3F3fD6335C3F4ce8392D69350B4fA4E2"


async def handle_message(message: WakuMessage):
    """Propose an approve + deposit for USDC yield requests, ignore the rest."""
    body = message.body
    if body.type.upper() != "YIELD" or (body.from_token or "").upper() != "USDC" or not body.amount:
        return None

    amount = int(float(body.amount) * 10**6)
    return ProposalResponse(
        description=f"Deposit {body.amount} USDC on {body.from_chain}",
        titles=["Approve", "Deposit"],
        calls=[f"Approve {body.amount} USDC", f"Deposit {body.amount} USDC"],
        transactions=[
            Transaction(chain_id=1, to=USDC, value="0", data="0x095ea7b3" + POOL[2:].lower().rjust(64, "0")
                        + format(amount, "064x")),
            Transaction(chain_id=1, to=POOL, value="0", data="0x617ba037"),
        ],
    )


async def main() -> int:
    logging.basicConfig(level=logging.INFO)

    try:
        config = SolverConfig.from_env(handle_message)
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        return 1

    transport = LocalTransport(config.encryption_private_key)
    sdk = await SolverSDK.start(handle_message, config=config, transport=transport)

    replies = []

    async def on_reply(event):
        replies.append(event["body"])

    reply_topic = "/example/1/reply/json"
    transport.subscribe(reply_topic, on_reply)

    await transport.deliver("", {
        "timestamp": int(time.time() * 1000),
        "replyTo": reply_topic,
        "body": {"type": "yield", "fromChain": "ethereum", "amount": "100", "fromToken": "USDC"},
    })

    for reply in replies:
        print(json.dumps(reply, indent=2))
        print(f"Signature valid: {verify_response(reply)}")

    await sdk.stop()
    return 0 if replies else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
