"""TLS parameters for the provider connection and the single-attempt opener."""
from __future__ import annotations

import socket
import ssl
from dataclasses import dataclass

from loguru import logger

from pushlink.engine.endpoints import Endpoint
from pushlink.engine.errors import CertificateError
from pushlink.engine.primitives import Seconds
from pushlink.engine.session import ConnectionSettings, readable


@dataclass(frozen=True, slots=True)
class TLSContext:
    """A ready-to-use ssl.SSLContext plus the parameters it was built from."""

    context: ssl.SSLContext
    certificateFile: str
    certificateAuthorityFile: str | None

    @property
    def verifyPeer(self) -> bool:
        return self.context.verify_mode == ssl.CERT_REQUIRED


class TLSContextBuilder:
    """Turn ConnectionSettings into a TLSContext.

    The provider certificate file is a bundled PEM holding both the client
    certificate and its private key; the key may be encrypted with the
    configured passphrase.

    With a root CA file configured the server chain and hostname are
    verified. Without one the peer is NOT verified at all, which is kept only
    for compatibility with deployments that never configured a CA.
    """

    def build(self, settings: ConnectionSettings) -> TLSContext:
        certfile = settings.providerCertificateFile
        cafile = settings.rootCertificationAuthorityFile

        if not readable(certfile):
            raise CertificateError(f"Unable to read certificate file '{certfile}'")

        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)

        try:
            # an empty passphrase means "no passphrase"; passing None lets an
            # encrypted key fail instead of prompting on the terminal
            context.load_cert_chain(
                certfile,
                password=settings.providerCertificatePassphrase or self._nopassword,
            )
        except (ssl.SSLError, OSError, ValueError) as e:
            raise CertificateError(f"Unable to load certificate file '{certfile}': {e}") from e

        if cafile is not None:
            try:
                context.load_verify_locations(cafile=cafile)
            except (ssl.SSLError, OSError) as e:
                raise CertificateError(
                    f"Unable to load Certificate Authority file '{cafile}': {e}"
                ) from e

            context.check_hostname = True
            context.verify_mode = ssl.CERT_REQUIRED
        else:
            # check_hostname must be cleared before verify_mode can drop to CERT_NONE
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE

        logger.debug(
            "[tls] Built context for {} (verify peer: {})", certfile, cafile is not None
        )

        return TLSContext(context, certfile, cafile)

    @staticmethod
    def _nopassword() -> str:
        raise CertificateError("Certificate key is encrypted but no passphrase was set")


def openTLSStream(endpoint: Endpoint, tls: TLSContext, timeout: Seconds) -> ssl.SSLSocket:
    """Make exactly one TCP connect + TLS handshake attempt.

    Both steps share the same timeout. Any failure (refused, reset, timed
    out, handshake rejected) is raised as an OSError for the caller's retry
    loop to judge.
    """
    raw = socket.create_connection(endpoint.address, timeout=timeout)
    try:
        return tls.context.wrap_socket(raw, server_hostname=endpoint.host)
    except BaseException:
        raw.close()
        raise
