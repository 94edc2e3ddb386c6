"""TLS configuration for the server."""

from __future__ import annotations

import ssl


def tls_config(cert_file: str, key_file: str) -> ssl.SSLContext:
    """Load a certificate and key pair into a server-side TLS context."""
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(certfile=cert_file, keyfile=key_file)
    return context