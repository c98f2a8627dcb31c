# src/airdrop_ledger/inbound/messages.py

"""
Structured `msg` payloads of an inbound transfer notification.

A message is a JSON object with exactly one key naming the variant:
    {"FundTask": {"index": 3}}
    {"Execute": {"actions": [...], "referral_id": null, "force": 0}}
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Union

from ..core.amounts import U32_MAX
from ..core.errors import MalformedMessage


@dataclass(frozen=True, slots=True)
class FundTask:
    """Deposit the attached tokens and fund the sender's task `index` with them."""

    index: int


@dataclass(frozen=True, slots=True)
class Execute:
    """Instant swap actions. Reserved: never executed by this ledger."""

    actions: list[Any] = field(default_factory=list)
    referral_id: str | None = None
    force: int = 0


ReceiverMessage = Union[FundTask, Execute]


def _parse_fund_task(body: Any) -> FundTask:
    if not isinstance(body, dict):
        raise MalformedMessage("FundTask body must be an object")
    index = body.get("index")
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index <= U32_MAX:
        raise MalformedMessage(f"FundTask.index must be a u32, got {index!r}")
    return FundTask(index=index)


def _parse_execute(body: Any) -> Execute:
    if not isinstance(body, dict):
        raise MalformedMessage("Execute body must be an object")
    actions = body.get("actions", [])
    if not isinstance(actions, list):
        raise MalformedMessage("Execute.actions must be a list")
    referral = body.get("referral_id")
    force = body.get("force", 0)
    if isinstance(force, bool) or not isinstance(force, int):
        raise MalformedMessage("Execute.force must be an integer")
    return Execute(actions=actions, referral_id=referral if isinstance(referral, str) else None, force=force)


_PARSERS = {
    "FundTask": _parse_fund_task,
    "Execute": _parse_execute,
}


def parse_receiver_message(msg: str) -> ReceiverMessage:
    try:
        data = json.loads(msg)
    except json.JSONDecodeError as exc:
        raise MalformedMessage("msg is not valid JSON") from exc

    if not isinstance(data, dict) or len(data) != 1:
        raise MalformedMessage("msg must be an object with exactly one variant key")

    ((tag, body),) = data.items()
    parser = _PARSERS.get(tag)
    if parser is None:
        raise MalformedMessage(f"unknown message variant {tag!r}")
    return parser(body)
