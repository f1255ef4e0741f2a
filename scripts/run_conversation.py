#!/usr/bin/env python3
"""
Terminal runner — Play a sequence in the console.

Usage:
    python scripts/run_conversation.py
    python scripts/run_conversation.py --sequence onboarding
    python scripts/run_conversation.py --seed 7 --set user.name=Ana

Choices are picked by number; text inputs are typed. Ctrl-D quits.
"""
import asyncio
import os
import sys
import argparse

# Ensure app root is on path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def _print_response(response):
    for message in response.messages:
        print(f"[{message.sender}] {message.text}")
        for choice in message.choices:
            print(f"    {choice.index + 1}) {choice.text}")
    if response.error:
        print(f"!! {response.error}")


def _parse_assignment(raw: str):
    key, _, value = raw.partition("=")
    return key.strip(), value


async def run(sequence_id: str = None, seed: int = None, assignments: list[str] = None):
    import random
    from dotenv import load_dotenv
    load_dotenv()

    from config.settings import load_settings
    from core.engine import ScriptFlowEngine
    from flow.orchestrator import FlowStatus, InvalidInteractionError
    from models.schemas import ChoiceMessage

    settings = load_settings()
    engine = ScriptFlowEngine(settings, rng=random.Random(seed) if seed is not None else None)
    session = engine.new_session(namespace="cli")
    for raw in assignments or []:
        key, value = _parse_assignment(raw)
        await session.store.store_value(key, value)

    response = await session.start(sequence_id or settings.flow.initial_sequence)
    _print_response(response)

    while response.status == FlowStatus.AWAITING_INPUT:
        try:
            answer = input("> ")
        except EOFError:
            print()
            return
        try:
            if isinstance(session.current_message, ChoiceMessage):
                response = await session.handle_choice(int(answer) - 1)
            else:
                response = await session.handle_text_input(answer)
        except (InvalidInteractionError, ValueError) as e:
            print(f"?? {e}")
            continue
        _print_response(response)

    print(f"-- {response.status.value} --")


def main():
    parser = argparse.ArgumentParser(description="Play a conversation sequence")
    parser.add_argument("--sequence", default=None, help="Sequence id (default: flow.initial_sequence)")
    parser.add_argument("--seed", type=int, default=None, help="Seed for content variant selection")
    parser.add_argument("--set", dest="assignments", action="append", default=[],
                        metavar="KEY=VALUE", help="Pre-populate a user data value")
    args = parser.parse_args()
    asyncio.run(run(args.sequence, args.seed, args.assignments))


if __name__ == "__main__":
    main()
