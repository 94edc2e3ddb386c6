"""RESP codec, sorted-set key layout, metrics with a status server, and a server-checking client."""

__version__ = "0.4.0"