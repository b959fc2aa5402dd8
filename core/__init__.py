"""
Core business logic package for FocusLedger.

Contains the headless TimerEngine and the cue collaborator.
Zero UI dependencies.
"""

from core.engine import TimerEngine

__all__ = ["TimerEngine"]
