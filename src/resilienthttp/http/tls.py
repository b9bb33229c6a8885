# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
TLS certificate fingerprint pinning.

`bind_fingerprint` returns an effective ConnectionConfig carrying an identity
check; `create_ssl_context` turns that config into an ``ssl.SSLContext`` whose
sockets (sync) and SSL objects (async, memory BIO) run the check as soon as the
handshake completes, before any request byte is written.
"""

from __future__ import annotations

import hashlib
import logging
import ssl
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Optional, Union

import certifi

from ..log import LoggerLike, get_logger, log_event

IdentityCheck = Callable[[str, "PeerCertificate"], Optional[str]]


def format_fingerprint(digest: bytes) -> str:
    """Render a digest as colon-separated upper-case hex (``AB:CD:...``)."""
    return ":".join(f"{byte:02X}" for byte in digest)


def normalize_fingerprint(value: str) -> str:
    return value.strip().upper()


@dataclass(frozen=True)
class PeerCertificate:
    """Peer certificate as seen during the handshake."""

    der: bytes | None = None
    fingerprint256: str | None = None
    fingerprint: str | None = None

    @classmethod
    def from_der(cls, der: bytes) -> PeerCertificate:
        return cls(
            der=der,
            fingerprint256=format_fingerprint(hashlib.sha256(der).digest()),
            fingerprint=format_fingerprint(hashlib.sha1(der).digest()),  # noqa: S324
        )

    @property
    def preferred_fingerprint(self) -> str | None:
        return self.fingerprint256 or self.fingerprint


class FingerprintVerifier:
    """Identity check accepting only peers whose certificate digest matches `expected`."""

    def __init__(self, expected: str, logger: LoggerLike | None = None):
        self.expected = normalize_fingerprint(expected)
        self.logger = get_logger(logger)

    def __call__(self, hostname: str, cert: PeerCertificate) -> str | None:
        cert_fingerprint = cert.preferred_fingerprint or ""
        log_event(
            self.logger,
            logging.INFO,
            f"Checking fingerprint for host: {hostname}, fingerprint is {cert_fingerprint}",
            host=hostname,
            fingerprint=cert_fingerprint,
        )
        if normalize_fingerprint(cert_fingerprint) == self.expected:
            log_event(self.logger, logging.INFO, "Fingerprint validated successfully", host=hostname)
            return None

        reason = f"Fingerprint for host {hostname} does not match"
        log_event(self.logger, logging.INFO, "Failed to validate fingerprint", host=hostname, reason=reason)
        return reason


@dataclass(frozen=True)
class ConnectionConfig:
    """
    Effective connection configuration for one call.

    `verify` follows httpx: True (certifi bundle), False (no verification) or a CA
    bundle path.
    """

    verify: Union[bool, str] = True
    identity_check: IdentityCheck | None = None


def bind_fingerprint(
    config: ConnectionConfig,
    fingerprint: str | None,
    *,
    logger: LoggerLike | None = None,
) -> ConnectionConfig:
    """Return `config` with a fingerprint identity check installed; no-op without a fingerprint."""
    if not fingerprint:
        return config
    return replace(config, identity_check=FingerprintVerifier(fingerprint, logger))


class PinnedSSLContext(ssl.SSLContext):
    """SSLContext running an identity check on every completed handshake."""

    identity_check: IdentityCheck | None = None

    def verify_peer(self, conn: ssl.SSLSocket | ssl.SSLObject) -> None:
        if self.identity_check is None:
            return
        der = conn.getpeercert(binary_form=True) or b""
        reason = self.identity_check(conn.server_hostname or "", PeerCertificate.from_der(der))
        if reason:
            raise ssl.SSLCertVerificationError(1, reason)


class _PinnedSSLSocket(ssl.SSLSocket):
    def do_handshake(self, block: bool = False) -> None:
        super().do_handshake(block)
        self.context.verify_peer(self)


class _PinnedSSLObject(ssl.SSLObject):
    def do_handshake(self) -> None:
        # raises SSLWantReadError until the handshake is complete
        super().do_handshake()
        self.context.verify_peer(self)


PinnedSSLContext.sslsocket_class = _PinnedSSLSocket
PinnedSSLContext.sslobject_class = _PinnedSSLObject


def create_ssl_context(config: ConnectionConfig) -> ssl.SSLContext | bool:
    """
    Build the httpx `verify` value for a connection config.

    Without an identity check, booleans pass through and a CA bundle path becomes
    a default context loading that bundle. With one, the CA chain is still
    verified but hostname matching is replaced by the check.
    """
    if config.identity_check is None:
        if isinstance(config.verify, str):
            return ssl.create_default_context(cafile=config.verify)
        return config.verify

    context = PinnedSSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.check_hostname = False
    if config.verify is False:
        context.verify_mode = ssl.CERT_NONE
    else:
        cafile = config.verify if isinstance(config.verify, str) else certifi.where()
        context.load_verify_locations(cafile=cafile)
        context.verify_mode = ssl.CERT_REQUIRED
    context.identity_check = config.identity_check
    return context


__all__ = [
    "ConnectionConfig",
    "FingerprintVerifier",
    "IdentityCheck",
    "PeerCertificate",
    "PinnedSSLContext",
    "bind_fingerprint",
    "create_ssl_context",
    "format_fingerprint",
    "normalize_fingerprint",
]
