from typing import Iterator, List, Optional
from datetime import datetime, timezone
import dataclasses
import ipaddress
import logging

from cryptography import x509
from cryptography.x509.oid import NameOID
import service_identity
from service_identity.cryptography import verify_certificate_hostname, verify_certificate_ip_address

from .handshake import ProbeTarget, HandshakeResult, BadServerResponse, DEFAULT_TIMEOUT, is_ip_address, tls_handshake

logger = logging.getLogger(__name__)

@dataclasses.dataclass(frozen=True)
class CertificateNode:
    """
    The fields of an X509 certificate shown when inspecting a chain.
    """
    serial_number: int
    basic_constraints_valid: bool
    is_ca: bool
    subject_common_name: str
    dns_names: List[str]
    not_before: datetime
    not_after: datetime

    @property
    def is_root_ca(self) -> bool:
        # Only reflects the extension flags, the chain is never checked against a trust store.
        return self.basic_constraints_valid and self.is_ca

@dataclasses.dataclass(frozen=True)
class HostnameVerification:
    host: str
    error: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.error is None

@dataclasses.dataclass
class CertificateInspection:
    peer_address: str
    hostname_verification: HostnameVerification
    # Leaf first, as presented by the server.
    chain: List[CertificateNode]

def certificate_to_node(certificate: x509.Certificate) -> CertificateNode:
    """
    Converts a `cryptography` certificate into our CertificateNode dataclass.
    """
    try:
        basic_constraints = certificate.extensions.get_extension_for_class(x509.BasicConstraints).value
        basic_constraints_valid, is_ca = True, basic_constraints.ca
    except x509.ExtensionNotFound:
        basic_constraints_valid, is_ca = False, False

    try:
        san = certificate.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
        dns_names = san.get_values_for_type(x509.DNSName)
    except x509.ExtensionNotFound:
        dns_names = []

    common_names = certificate.subject.get_attributes_for_oid(NameOID.COMMON_NAME)

    return CertificateNode(
        serial_number=certificate.serial_number,
        basic_constraints_valid=basic_constraints_valid,
        is_ca=is_ca,
        subject_common_name=str(common_names[0].value) if common_names else '',
        dns_names=dns_names,
        not_before=certificate.not_valid_before_utc,
        not_after=certificate.not_valid_after_utc,
    )

def verify_hostname(certificate: x509.Certificate, host: str) -> HostnameVerification:
    """
    Checks `host` against the subject alternative names of the leaf certificate, following RFC 6125.
    IP literals are matched against IP address entries instead of DNS names.
    """
    try:
        if is_ip_address(host):
            verify_certificate_ip_address(certificate, ipaddress.ip_address(host))
        else:
            verify_certificate_hostname(certificate, host)
    except (service_identity.VerificationError, service_identity.CertificateError) as e:
        logger.info(f'Certificate is not valid for {host}: {e!r}')
        return HostnameVerification(host, error=str(e))
    return HostnameVerification(host)

def _fetch_certificate_chain(target: ProbeTarget, timeout_in_seconds: float) -> HandshakeResult:
    result = tls_handshake(target, timeout_in_seconds=timeout_in_seconds)
    if not result.certificate_chain:
        raise BadServerResponse('Server did not give any certificate chain')
    logger.info(f"Received {len(result.certificate_chain)} certificates from {result.peer_address}")
    return result

def inspect_certificate_chain(target: ProbeTarget, timeout_in_seconds: float = DEFAULT_TIMEOUT) -> CertificateInspection:
    """
    Fetches the certificate chain with a single unverified handshake, and checks the target host against the leaf.
    A hostname mismatch is recorded in the result; connection errors are raised as ScanError.
    """
    result = _fetch_certificate_chain(target, timeout_in_seconds)
    return CertificateInspection(
        peer_address=result.peer_address,
        hostname_verification=verify_hostname(result.certificate_chain[0], target.host),
        chain=[certificate_to_node(certificate) for certificate in result.certificate_chain],
    )

def format_timestamp(timestamp: datetime) -> str:
    """ Formats a timestamp as "2025-01-01 00:00:00 +0000 UTC". """
    return timestamp.astimezone(timezone.utc).strftime('%Y-%m-%d %H:%M:%S %z %Z')

def render_certificate_inspection(inspection: CertificateInspection, verbose: bool = False) -> Iterator[str]:
    """
    Yields the report lines for an inspection, with the chain reversed so the furthest ancestor comes first.
    """
    yield ''
    yield ''
    yield f'Certificate Details from {inspection.peer_address}'
    yield '==================='

    if inspection.hostname_verification.is_valid:
        yield 'Certificate is valid for this domain'
    else:
        yield f'Certificate Error: {inspection.hostname_verification.error}'

    for i, node in enumerate(reversed(inspection.chain)):
        yield ''
        yield '++++ Certificate Chain' if i == 0 else '++++ Next Certificate'
        if node.is_root_ca:
            yield f'RootCA Serial Number: {node.serial_number}'
        else:
            yield f'Serial Number: {node.serial_number}'
        yield f'Subject Common Name: {node.subject_common_name}'
        if node.dns_names:
            yield f'DNSNames: {", ".join(node.dns_names)}'
        if verbose:
            yield f'Not Before:\t{format_timestamp(node.not_before)}'
            yield f'Not After:\t{format_timestamp(node.not_after)}'

def format_expiry_summary(node: CertificateNode, now: datetime) -> str:
    """
    Formats the CSV-like expiry line: "<not after>,<hours left>,<dns name>,...,".
    Hours are truncated toward zero, and negative for expired certificates.
    """
    hours_left = int((node.not_after - now).total_seconds() / 3600)
    dns_names = ''.join(f'{dns_name},' for dns_name in node.dns_names)
    return f'{format_timestamp(node.not_after)},{hours_left},{dns_names}'

def expiry_summary(target: ProbeTarget, now: Optional[datetime] = None, timeout_in_seconds: float = DEFAULT_TIMEOUT) -> str:
    """
    Fetches the leaf certificate and returns its expiry line, for batch expiry monitoring.
    """
    result = _fetch_certificate_chain(target, timeout_in_seconds)
    if now is None:
        now = datetime.now(tz=timezone.utc)
    return format_expiry_summary(certificate_to_node(result.certificate_chain[0]), now)
