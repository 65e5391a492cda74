"""Locksmith: admission control for peers of VPN overlay networks."""

__version__ = "0.3.0"
