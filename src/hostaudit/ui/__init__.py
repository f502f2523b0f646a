"""Consumers that render the scan event stream."""

from hostaudit.ui.reporters import ConsoleReporter, JsonLinesReporter, Reporter, consume

__all__ = ["ConsoleReporter", "JsonLinesReporter", "Reporter", "consume"]
