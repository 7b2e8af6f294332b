"""
Transport security for database connections.

A transport is picked once when the pool is built and applied to every
connection it opens, by adding the driver's ``ssl`` argument to the connect
arguments.
"""
from __future__ import annotations

import ssl
import typing
from typing import Any, Dict, Optional

if typing.TYPE_CHECKING:
    from tuspg.settings import PostgresInfoStorageSettings


class TransportSecurity(typing.Protocol):
    def wrap(self, connect_args: Dict[str, Any]) -> Dict[str, Any]:
        ...


class NoTransportSecurity:
    """Plain TCP, no TLS negotiation."""

    def wrap(self, connect_args: Dict[str, Any]) -> Dict[str, Any]:
        return {**connect_args, "ssl": False}

    def __repr__(self) -> str:
        return "NoTransportSecurity()"


class TlsTransportSecurity:
    """TLS for every connection, with or without certificate verification."""

    def __init__(
        self,
        context: Optional[ssl.SSLContext] = None,
        verify: bool = True,
        ca_file: Optional[str] = None,
    ):
        if context is None:
            context = ssl.create_default_context(cafile=ca_file)
            if not verify:
                context.check_hostname = False
                context.verify_mode = ssl.CERT_NONE
        self.context = context
        self.verify = verify

    def wrap(self, connect_args: Dict[str, Any]) -> Dict[str, Any]:
        return {**connect_args, "ssl": self.context}

    def __repr__(self) -> str:
        return f"TlsTransportSecurity(verify={self.verify})"


def transport_from_settings(settings: PostgresInfoStorageSettings) -> TransportSecurity:
    if settings.tls_mode == "disable":
        return NoTransportSecurity()
    return TlsTransportSecurity(
        verify=settings.tls_mode == "verify-full",
        ca_file=settings.tls_ca_file,
    )
