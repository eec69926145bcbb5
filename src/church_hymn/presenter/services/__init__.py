"""Presentation engine services.

Display watching, the presentation state machine, verse navigation,
the worship session coordinator, snapshot persistence and timers.
"""
