"""Switchboard - hook dispatch and realtime service routing."""

__version__ = "0.1.0"
