"""Asynchronous CSV e-mail flagging service."""

__version__ = "1.0.0"
