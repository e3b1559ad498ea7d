"""Tunnel IP packets between Linux TUN devices over HTTP /send and /poll requests."""

__version__ = "0.1.0"