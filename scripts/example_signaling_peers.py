#!/usr/bin/env python3
"""
Example - Two Peers Signaling Through the Relay

This script runs two agents against a running relay and walks through a
WebRTC-style handshake:
1. Both agents connect and register their agent ids
2. The caller sends an offer to the callee
3. The callee answers, then both trade an ICE candidate
4. The caller pings the relay
5. The caller signals an agent that is not online and gets an error

Usage:
    rendezvous-relay            # in another terminal
    python scripts/example_signaling_peers.py

The SDP and candidate strings are placeholders; the relay forwards signal
payloads without looking at them.
"""

import asyncio
import json
import os
from uuid import uuid4

import websockets

RELAY_URL = os.getenv("RELAY_URL", "ws://localhost:3000/ws")
CALLER_ID = f"caller-{uuid4().hex[:8]}"
CALLEE_ID = f"callee-{uuid4().hex[:8]}"


def create_message(message_type: str, **fields) -> str:
    """Create a relay message frame."""
    return json.dumps({"type": message_type, **fields})


async def recv_json(ws) -> dict:
    return json.loads(await ws.recv())


async def register(ws, agent_id: str) -> None:
    greeting = await recv_json(ws)
    print(f"🔌 Connected as {greeting.get('connectionId')}")

    await ws.send(create_message("register", agentId=agent_id))
    reply = await recv_json(ws)
    print(f"✅ {agent_id}: {reply}")


async def callee(ready: asyncio.Event) -> None:
    async with websockets.connect(RELAY_URL) as ws:
        await register(ws, CALLEE_ID)
        ready.set()

        offer = await recv_json(ws)
        print(f"📨 {CALLEE_ID} received offer from {offer['from']}")

        await ws.send(create_message(
            "signal",
            targetAgentId=offer["from"],
            signal={"type": "answer", "sdp": "v=0 (answer placeholder)"},
        ))

        candidate = await recv_json(ws)
        print(f"🧊 {CALLEE_ID} received candidate: {candidate['signal']}")
        await ws.send(create_message(
            "signal",
            targetAgentId=candidate["from"],
            signal={"type": "candidate", "candidate": "candidate:2 1 udp 0 10.0.0.3 5001 typ host"},
        ))

        # Stay registered until the caller is done
        await asyncio.sleep(1)


async def caller(ready: asyncio.Event) -> None:
    await ready.wait()
    async with websockets.connect(RELAY_URL) as ws:
        await register(ws, CALLER_ID)

        print("\n" + "─" * 70)
        print(f"📤 {CALLER_ID} -> {CALLEE_ID}: offer")
        print("─" * 70)
        await ws.send(create_message(
            "signal",
            targetAgentId=CALLEE_ID,
            signal={"type": "offer", "sdp": "v=0 (offer placeholder)"},
        ))
        answer = await recv_json(ws)
        print(f"📨 {CALLER_ID} received {answer['signal']['type']} from {answer['from']}")

        await ws.send(create_message(
            "signal",
            targetAgentId=CALLEE_ID,
            signal={"type": "candidate", "candidate": "candidate:1 1 udp 0 10.0.0.2 5000 typ host"},
        ))
        candidate = await recv_json(ws)
        print(f"🧊 {CALLER_ID} received candidate: {candidate['signal']}")

        print("\n" + "─" * 70)
        print("🏓 Ping")
        print("─" * 70)
        await ws.send(create_message("ping"))
        print(f"   {await recv_json(ws)}")

        print("\n" + "─" * 70)
        print("👻 Signal to an agent that is not online")
        print("─" * 70)
        await ws.send(create_message("signal", targetAgentId="nobody-here", signal={}))
        print(f"   {await recv_json(ws)}")


async def main():
    print("=" * 70)
    print("🤝 SIGNALING PEERS EXAMPLE")
    print("=" * 70)
    print(f"Relay URL: {RELAY_URL}")
    print(f"Caller:    {CALLER_ID}")
    print(f"Callee:    {CALLEE_ID}")
    print("=" * 70 + "\n")

    ready = asyncio.Event()
    try:
        await asyncio.gather(callee(ready), caller(ready))
    except (OSError, websockets.exceptions.WebSocketException) as e:
        print(f"\n❌ Relay connection failed: {e}")
        print("   Is the relay running? Start it with: rendezvous-relay")
        return

    print("\n" + "=" * 70)
    print("✅ Handshake complete")
    print("=" * 70)


if __name__ == "__main__":
    asyncio.run(main())
