"""Asyncio stages for a DNS query pipeline, with server probes and config tools."""

__version__ = "0.1.0"