from functools import total_ordering
from typing import Dict, Optional
from enum import Enum

UNKNOWN_PROTOCOL = 'Unknown Protocol'
UNKNOWN_CIPHER = 'Unknown Cipher'

@total_ordering
class Protocol(Enum):
    def __new__(cls, value, *rest, **kwds):
        obj = object.__new__(cls)
        obj._value_ = value
        return obj
    # Annotate each protocol with the name used in reports.
    def __init__(self, _: int, display_name: str):
        self.display_name = display_name
    def __repr__(self):
        return self.name
    def __lt__(self, other):
        if self.__class__ != other.__class__:
            return NotImplemented
        return self.value < other.value

    # Oldest first. Values are the wire codes, which OpenSSL also uses.
    SSLv3 = 0x0300, 'SSLv3.0'
    TLS1_0 = 0x0301, 'TLSv1.0'
    TLS1_1 = 0x0302, 'TLSv1.1'
    TLS1_2 = 0x0303, 'TLSv1.2'

# Protocols tested by a scan, in report order.
DEFAULT_PROTOCOLS = tuple(sorted(Protocol))

class CipherSuite(Enum):
    def __new__(cls, value, *rest, **kwds):
        obj = object.__new__(cls)
        obj._value_ = value
        return obj
    # Annotate each cipher suite with the name OpenSSL reports for it, if any.
    def __init__(self, _: int, openssl_name: Optional[str]):
        self.openssl_name = openssl_name
    def __repr__(self):
        return self.name

    TLS_RSA_WITH_RC4_128_SHA = 0x0005, 'RC4-SHA'
    TLS_RSA_WITH_3DES_EDE_CBC_SHA = 0x000A, 'DES-CBC3-SHA'
    TLS_RSA_WITH_AES_128_CBC_SHA = 0x002F, 'AES128-SHA'
    TLS_DHE_RSA_WITH_AES_128_CBC_SHA = 0x0033, 'DHE-RSA-AES128-SHA'
    TLS_RSA_WITH_AES_256_CBC_SHA = 0x0035, 'AES256-SHA'
    TLS_DHE_RSA_WITH_AES_256_CBC_SHA = 0x0039, 'DHE-RSA-AES256-SHA'
    TLS_RSA_WITH_AES_128_CBC_SHA256 = 0x003C, 'AES128-SHA256'
    TLS_RSA_WITH_AES_256_CBC_SHA256 = 0x003D, 'AES256-SHA256'
    TLS_DHE_RSA_WITH_AES_128_CBC_SHA256 = 0x0067, 'DHE-RSA-AES128-SHA256'
    TLS_DHE_RSA_WITH_AES_256_CBC_SHA256 = 0x006B, 'DHE-RSA-AES256-SHA256'
    TLS_RSA_WITH_AES_128_GCM_SHA256 = 0x009C, 'AES128-GCM-SHA256'
    TLS_RSA_WITH_AES_256_GCM_SHA384 = 0x009D, 'AES256-GCM-SHA384'
    TLS_DHE_RSA_WITH_AES_128_GCM_SHA256 = 0x009E, 'DHE-RSA-AES128-GCM-SHA256'
    TLS_DHE_RSA_WITH_AES_256_GCM_SHA384 = 0x009F, 'DHE-RSA-AES256-GCM-SHA384'
    TLS_FALLBACK_SCSV = 0x5600, None # Signalling value, never negotiated.
    TLS_ECDHE_ECDSA_WITH_RC4_128_SHA = 0xC007, 'ECDHE-ECDSA-RC4-SHA'
    TLS_ECDHE_ECDSA_WITH_AES_128_CBC_SHA = 0xC009, 'ECDHE-ECDSA-AES128-SHA'
    TLS_ECDHE_ECDSA_WITH_AES_256_CBC_SHA = 0xC00A, 'ECDHE-ECDSA-AES256-SHA'
    TLS_ECDHE_RSA_WITH_RC4_128_SHA = 0xC011, 'ECDHE-RSA-RC4-SHA'
    TLS_ECDHE_RSA_WITH_3DES_EDE_CBC_SHA = 0xC012, 'ECDHE-RSA-DES-CBC3-SHA'
    TLS_ECDHE_RSA_WITH_AES_128_CBC_SHA = 0xC013, 'ECDHE-RSA-AES128-SHA'
    TLS_ECDHE_RSA_WITH_AES_256_CBC_SHA = 0xC014, 'ECDHE-RSA-AES256-SHA'
    TLS_ECDHE_ECDSA_WITH_AES_128_CBC_SHA256 = 0xC023, 'ECDHE-ECDSA-AES128-SHA256'
    TLS_ECDHE_ECDSA_WITH_AES_256_CBC_SHA384 = 0xC024, 'ECDHE-ECDSA-AES256-SHA384'
    TLS_ECDHE_RSA_WITH_AES_128_CBC_SHA256 = 0xC027, 'ECDHE-RSA-AES128-SHA256'
    TLS_ECDHE_RSA_WITH_AES_256_CBC_SHA384 = 0xC028, 'ECDHE-RSA-AES256-SHA384'
    TLS_ECDHE_ECDSA_WITH_AES_128_GCM_SHA256 = 0xC02B, 'ECDHE-ECDSA-AES128-GCM-SHA256'
    TLS_ECDHE_ECDSA_WITH_AES_256_GCM_SHA384 = 0xC02C, 'ECDHE-ECDSA-AES256-GCM-SHA384'
    TLS_ECDHE_RSA_WITH_AES_128_GCM_SHA256 = 0xC02F, 'ECDHE-RSA-AES128-GCM-SHA256'
    TLS_ECDHE_RSA_WITH_AES_256_GCM_SHA384 = 0xC030, 'ECDHE-RSA-AES256-GCM-SHA384'
    TLS_ECDHE_RSA_WITH_CHACHA20_POLY1305_SHA256 = 0xCCA8, 'ECDHE-RSA-CHACHA20-POLY1305'
    TLS_ECDHE_ECDSA_WITH_CHACHA20_POLY1305_SHA256 = 0xCCA9, 'ECDHE-ECDSA-CHACHA20-POLY1305'
    TLS_DHE_RSA_WITH_CHACHA20_POLY1305_SHA256 = 0xCCAA, 'DHE-RSA-CHACHA20-POLY1305'

_cipher_suite_by_openssl_name: Dict[str, CipherSuite] = {
    cipher_suite.openssl_name: cipher_suite
    for cipher_suite in CipherSuite
    if cipher_suite.openssl_name is not None
}

def version_name(code: Optional[int]) -> str:
    """
    Returns the report name of a protocol version code, or "Unknown Protocol".
    """
    try:
        return Protocol(code).display_name
    except ValueError:
        return UNKNOWN_PROTOCOL

def cipher_name(code: Optional[int]) -> str:
    """
    Returns the IANA name of a cipher suite code, or "Unknown Cipher".
    """
    try:
        return CipherSuite(code).name
    except ValueError:
        return UNKNOWN_CIPHER

def cipher_code_from_openssl_name(openssl_name: Optional[str]) -> Optional[int]:
    """
    Converts the cipher name reported by OpenSSL (e.g. "ECDHE-RSA-AES128-GCM-SHA256")
    into its IANA code, or None if the cipher is not in the table.
    """
    if openssl_name is None:
        return None
    cipher_suite = _cipher_suite_by_openssl_name.get(openssl_name)
    return cipher_suite.value if cipher_suite else None
