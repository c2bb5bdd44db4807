"""Folding@home monitor: PyON update session, dispatcher and document sink."""

__version__ = "0.1.0"
