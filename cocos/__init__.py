"""Attestation check configuration and policy editing, RPC error decoding, agent log handling and server shutdown helpers."""

__version__ = "0.1.0"