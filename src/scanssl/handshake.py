from typing import List, Optional
import dataclasses
import ipaddress
import logging
import select
import socket

from cryptography import x509
from OpenSSL import SSL

from .names_and_numbers import CipherSuite

logger = logging.getLogger(__name__)

# Default socket connection timeout, in seconds.
DEFAULT_TIMEOUT: float = 10
# Default remote port.
DEFAULT_PORT: str = '443'

# Only ciphers the report can name are offered. Security level 0 keeps the ones
# disabled by modern defaults, so that legacy protocols can still complete a handshake.
OFFERED_CIPHERS = (':'.join(c.openssl_name for c in CipherSuite if c.openssl_name) + ':@SECLEVEL=0').encode('ascii')

class ScanError(Exception):
    """ Base error class for errors that occur during scanning. """
    pass

class ConnectionError(ScanError):
    """ Class for error in resolving or connecting to a server, or in the handshake itself. """
    pass

class BadServerResponse(ScanError):
    """ Error for servers that complete a handshake without the expected data. """
    pass

def is_ip_address(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        return False

@dataclasses.dataclass(frozen=True)
class ProbeTarget:
    """
    Remote endpoint to probe. The port is kept as given by the user.
    """
    host: str
    port: str = DEFAULT_PORT

    @property
    def address(self) -> str:
        if ':' in self.host:
            return f'[{self.host}]:{self.port}'
        return f'{self.host}:{self.port}'

@dataclasses.dataclass
class HandshakeResult:
    """
    Everything a finished pyOpenSSL handshake reported, collected before the connection was closed.
    """
    version: int
    cipher_name: Optional[str]
    handshake_complete: bool
    peer_address: str
    # Certificates in the order the server presented them, leaf first.
    certificate_chain: List[x509.Certificate]

def make_socket(target: ProbeTarget, timeout_in_seconds: Optional[float] = DEFAULT_TIMEOUT) -> socket.socket:
    """
    Creates and connects a socket to the target server.
    """
    try:
        return socket.create_connection((target.host, target.port), timeout=timeout_in_seconds)
    except TimeoutError as e:
        raise ConnectionError(f"Connection to {target.address} timed out after {timeout_in_seconds} seconds") from e
    except socket.gaierror as e:
        raise ConnectionError(f"Could not resolve host {target.host}: {e}") from e
    except OSError as e:
        raise ConnectionError(f"Could not connect to {target.address}: {e}") from e
    except ValueError as e:
        # Host names the IDNA codec rejects (e.g. "a..b") or containing NUL bytes.
        raise ConnectionError(f"Could not resolve host {target.host}: {e}") from e

def _format_peer_address(sock: socket.socket) -> str:
    host, port = sock.getpeername()[:2]
    return ProbeTarget(host, str(port)).address

def tls_handshake(
    target: ProbeTarget,
    min_version: Optional[int] = None,
    max_version: Optional[int] = None,
    timeout_in_seconds: Optional[float] = DEFAULT_TIMEOUT,
    ) -> HandshakeResult:
    """
    Performs a single TLS handshake with pyOpenSSL, without validating the server's certificates.

    `min_version` and `max_version` are protocol codes (e.g. 0x0303 for TLS 1.2) bounding the negotiation;
    pass the same value to both to pin the handshake to one protocol.
    The connection is always closed before returning.
    """
    with make_socket(target, timeout_in_seconds) as sock:
        try:
            peer_address = _format_peer_address(sock)
        except OSError as e:
            # The peer can reset the connection right after accepting it.
            raise ConnectionError(f"Could not connect to {target.address}: {e}") from e
        try:
            context = SSL.Context(SSL.TLS_CLIENT_METHOD)
            # Trust is not checked here, callers inspect the chain themselves.
            context.set_verify(SSL.VERIFY_NONE, lambda *args: True)
            context.set_cipher_list(OFFERED_CIPHERS)
            if min_version is not None:
                context.set_min_proto_version(min_version)
            if max_version is not None:
                context.set_max_proto_version(max_version)
            connection = SSL.Connection(context, sock)
            connection.set_connect_state()
        except SSL.Error as e:
            raise ConnectionError(f'OpenSSL exception while preparing handshake: {e}') from e

        # Necessary for servers that expect SNI. Otherwise expect "tlsv1 alert internal error".
        if not is_ip_address(target.host):
            connection.set_tlsext_host_name(target.host.encode('idna'))

        while True:
            try:
                connection.do_handshake()
                break
            except SSL.WantReadError as e:
                rd, _, _ = select.select([sock], [], [], sock.gettimeout())
                if not rd:
                    raise ConnectionError(f'Timed out during handshake with {target.address}') from e
                continue
            except SSL.WantWriteError as e:
                _, wr, _ = select.select([], [sock], [], sock.gettimeout())
                if not wr:
                    raise ConnectionError(f'Timed out during handshake with {target.address}') from e
                continue
            except (SSL.Error, SSL.SysCallError) as e:
                # live.com sends a RST packet when no matching protocols are found.
                raise ConnectionError(f'OpenSSL exception during handshake with {target.address}: {e}') from e

        raw_certs = connection.get_peer_cert_chain() or []
        result = HandshakeResult(
            version=connection.get_protocol_version(),
            cipher_name=connection.get_cipher_name(),
            # Both Finished messages are only available once the handshake is over.
            handshake_complete=connection.get_finished() is not None and connection.get_peer_finished() is not None,
            peer_address=peer_address,
            certificate_chain=[raw_cert.to_cryptography() for raw_cert in raw_certs],
        )

        try:
            connection.shutdown()
        except SSL.Error as e:
            logger.debug(f'Ignoring error while closing connection to {target.address}: {e!r}')

    logger.debug(f"Handshake with {target.address} negotiated {result.version:#06x} {result.cipher_name} with {len(result.certificate_chain)} certificates")
    return result
