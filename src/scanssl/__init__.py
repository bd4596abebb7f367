from .names_and_numbers import Protocol, CipherSuite, DEFAULT_PROTOCOLS, version_name, cipher_name, cipher_code_from_openssl_name
from .handshake import ProbeTarget, HandshakeResult, ScanError, ConnectionError, BadServerResponse, DEFAULT_TIMEOUT, DEFAULT_PORT, tls_handshake
from .scan import Connected, Failed, HandshakeIncomplete, ProbeOutcome, ProbeReport, probe_protocol, iter_probe_report, scan_protocols, render_outcome
from .certs import CertificateNode, HostnameVerification, CertificateInspection, certificate_to_node, verify_hostname, inspect_certificate_chain, render_certificate_inspection, expiry_summary, format_expiry_summary, format_timestamp
from . import scan, certs, handshake
