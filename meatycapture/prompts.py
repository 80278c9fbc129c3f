"""
prompts.py

interactive confirmation for destructive cli commands.
"""

from __future__ import annotations

import enum

import click


class ConfirmResult(enum.Enum):
    CONFIRMED = "confirmed"
    DECLINED = "declined"
    INTERRUPTED = "interrupted"


def confirm(message: str, default: bool = False) -> ConfirmResult:
    """
    ask a yes/no question. ctrl+c or eof while waiting maps to INTERRUPTED
    instead of unwinding through the caller, so nothing runs after it.
    """
    try:
        answer = click.confirm(message, default=default)
    except click.Abort:
        return ConfirmResult.INTERRUPTED
    return ConfirmResult.CONFIRMED if answer else ConfirmResult.DECLINED
