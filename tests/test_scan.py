import socket
import threading
import time

import pytest
from scanssl import *

TARGET = ProbeTarget('example.com', '443')

def make_result(version: int, cipher_name: str = 'ECDHE-RSA-AES128-GCM-SHA256', handshake_complete: bool = True) -> HandshakeResult:
    return HandshakeResult(version=version, cipher_name=cipher_name, handshake_complete=handshake_complete, peer_address='93.184.216.34:443', certificate_chain=[])

def only_accepts(accepted: Protocol):
    def tls_handshake(target, min_version=None, max_version=None, timeout_in_seconds=None):
        assert min_version == max_version
        if min_version != accepted.value:
            raise ConnectionError(f'OpenSSL exception during handshake with {target.address}: unsupported protocol')
        return make_result(min_version)
    return tls_handshake

def test_pinned_handshake_settings(monkeypatch):
    def tls_handshake(target, min_version=None, max_version=None, timeout_in_seconds=None):
        assert target == TARGET
        assert min_version == max_version == Protocol.TLS1_1.value
        assert timeout_in_seconds == 10
        return make_result(min_version)
    monkeypatch.setattr(scan, 'tls_handshake', tls_handshake)
    assert probe_protocol(Protocol.TLS1_1, TARGET) == Connected(Protocol.TLS1_1.value, CipherSuite.TLS_ECDHE_RSA_WITH_AES_128_GCM_SHA256.value)

def test_connected_uses_reported_values(monkeypatch):
    monkeypatch.setattr(scan, 'tls_handshake', lambda target, **kwargs: make_result(0x0303, 'AES256-SHA'))
    outcome = probe_protocol(Protocol.TLS1_2, TARGET)
    assert outcome == Connected(0x0303, 0x0035)
    assert render_outcome(Protocol.TLS1_2, outcome) == 'Connected - Protocol: TLSv1.2\tCipher: TLS_RSA_WITH_AES_256_CBC_SHA'

def test_unknown_cipher(monkeypatch):
    monkeypatch.setattr(scan, 'tls_handshake', lambda target, **kwargs: make_result(0x0303, 'SOME-NEW-CIPHER'))
    outcome = probe_protocol(Protocol.TLS1_2, TARGET)
    assert outcome == Connected(0x0303, None)
    assert render_outcome(Protocol.TLS1_2, outcome) == 'Connected - Protocol: TLSv1.2\tCipher: Unknown Cipher'

def test_handshake_error(monkeypatch):
    def tls_handshake(target, **kwargs):
        raise ConnectionError('OpenSSL exception during handshake with example.com:443: no protocols available')
    monkeypatch.setattr(scan, 'tls_handshake', tls_handshake)
    outcome = probe_protocol(Protocol.SSLv3, TARGET)
    assert outcome == Failed('OpenSSL exception during handshake with example.com:443: no protocols available')
    assert not isinstance(outcome, HandshakeIncomplete)
    assert render_outcome(Protocol.SSLv3, outcome) == 'Failed - Protocol SSLv3.0: Error: OpenSSL exception during handshake with example.com:443: no protocols available'

def test_handshake_not_completed(monkeypatch):
    monkeypatch.setattr(scan, 'tls_handshake', lambda target, **kwargs: make_result(0x0303, handshake_complete=False))
    outcome = probe_protocol(Protocol.TLS1_2, TARGET)
    assert isinstance(outcome, HandshakeIncomplete)
    assert isinstance(outcome, Failed)
    assert outcome.reason == 'handshake not completed'
    assert render_outcome(Protocol.TLS1_2, outcome) == 'Failed - Protocol TLSv1.2: Error: handshake not completed'

@pytest.mark.parametrize('accepted', list(Protocol))
def test_single_protocol_server(monkeypatch, accepted):
    monkeypatch.setattr(scan, 'tls_handshake', only_accepts(accepted))
    report = scan_protocols(TARGET)
    assert [protocol for protocol, _ in report] == [Protocol.SSLv3, Protocol.TLS1_0, Protocol.TLS1_1, Protocol.TLS1_2]
    for protocol, outcome in report:
        if protocol == accepted:
            assert isinstance(outcome, Connected)
            assert outcome.version == accepted.value
        else:
            assert isinstance(outcome, Failed)

def test_report_order_ignores_completion_order(monkeypatch):
    # Older protocols answer last.
    delays = {Protocol.SSLv3: 0.3, Protocol.TLS1_0: 0.2, Protocol.TLS1_1: 0.1, Protocol.TLS1_2: 0}
    finished = []
    lock = threading.Lock()
    def tls_handshake(target, min_version=None, max_version=None, timeout_in_seconds=None):
        protocol = Protocol(min_version)
        time.sleep(delays[protocol])
        with lock:
            finished.append(protocol)
        return make_result(min_version)
    monkeypatch.setattr(scan, 'tls_handshake', tls_handshake)
    lines = [render_outcome(protocol, outcome) for protocol, outcome in iter_probe_report(TARGET)]
    assert finished == [Protocol.TLS1_2, Protocol.TLS1_1, Protocol.TLS1_0, Protocol.SSLv3]
    assert [line.split('\t')[0] for line in lines] == [
        'Connected - Protocol: SSLv3.0',
        'Connected - Protocol: TLSv1.0',
        'Connected - Protocol: TLSv1.1',
        'Connected - Protocol: TLSv1.2',
    ]

def test_probes_run_concurrently(monkeypatch):
    barrier = threading.Barrier(len(DEFAULT_PROTOCOLS), timeout=5)
    def tls_handshake(target, min_version=None, max_version=None, timeout_in_seconds=None):
        # Deadlocks (and then times out) unless all probes are in flight at once.
        barrier.wait()
        return make_result(min_version)
    monkeypatch.setattr(scan, 'tls_handshake', tls_handshake)
    report = scan_protocols(TARGET)
    assert all(isinstance(outcome, Connected) for _, outcome in report)

def test_custom_protocol_list(monkeypatch):
    monkeypatch.setattr(scan, 'tls_handshake', only_accepts(Protocol.TLS1_2))
    report = scan_protocols(TARGET, protocols=[Protocol.TLS1_2, Protocol.TLS1_0])
    assert [protocol for protocol, _ in report] == [Protocol.TLS1_2, Protocol.TLS1_0]
    assert isinstance(report[0][1], Connected)
    assert isinstance(report[1][1], Failed)

def test_no_protocols(monkeypatch):
    monkeypatch.setattr(scan, 'tls_handshake', only_accepts(Protocol.TLS1_2))
    assert scan_protocols(TARGET, protocols=[]) == []

def test_refused_connection():
    # Grab a free port, then close it so nothing is listening there.
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(('127.0.0.1', 0))
        port = sock.getsockname()[1]
    target = ProbeTarget('127.0.0.1', str(port))
    report = scan_protocols(target, timeout_in_seconds=2)
    assert len(report) == len(DEFAULT_PROTOCOLS)
    for protocol, outcome in report:
        assert isinstance(outcome, Failed)
        assert outcome.reason.startswith(f'Could not connect to 127.0.0.1:{port}: ')
