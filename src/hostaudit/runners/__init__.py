"""Check execution: process launching and protocol reading."""

from hostaudit.runners.check import CheckRunner
from hostaudit.runners.process import AsyncioProcessLauncher, get_pid_registry
from hostaudit.runners.protocol import (
    LogRecord,
    PromptRecord,
    StatusRecord,
    UnrecognizedRecord,
    decode_record,
)

__all__ = [
    "AsyncioProcessLauncher",
    "CheckRunner",
    "LogRecord",
    "PromptRecord",
    "StatusRecord",
    "UnrecognizedRecord",
    "decode_record",
    "get_pid_registry",
]
