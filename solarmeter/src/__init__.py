"""
Solar meter package.

Polls one of several solar inverter / monitoring vendor APIs, normalizes the
responses into a common energy-metering model and derives the weekly,
monthly and yearly totals that most vendors do not provide themselves.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""
