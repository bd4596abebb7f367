from multiprocessing.pool import ThreadPool
from typing import Iterator, List, Optional, Sequence, Tuple, Union
import dataclasses
import logging

from .handshake import ProbeTarget, ScanError, DEFAULT_TIMEOUT, tls_handshake
from .names_and_numbers import Protocol, DEFAULT_PROTOCOLS, version_name, cipher_name, cipher_code_from_openssl_name

logger = logging.getLogger(__name__)

@dataclasses.dataclass(frozen=True)
class Connected:
    # Values reported by the handshake, not the ones requested.
    version: int
    cipher: Optional[int]

@dataclasses.dataclass(frozen=True)
class Failed:
    reason: str

@dataclasses.dataclass(frozen=True)
class HandshakeIncomplete(Failed):
    """ The connection was established without error, but the handshake never finished. """
    reason: str = 'handshake not completed'

ProbeOutcome = Union[Connected, Failed]
ProbeReport = List[Tuple[Protocol, ProbeOutcome]]

def probe_protocol(protocol: Protocol, target: ProbeTarget, timeout_in_seconds: float = DEFAULT_TIMEOUT) -> ProbeOutcome:
    """
    Attempts a single handshake pinned to `protocol`, and classifies the result.
    Never raises for network or TLS errors, which are reported as `Failed` instead.
    """
    try:
        result = tls_handshake(target, min_version=protocol.value, max_version=protocol.value, timeout_in_seconds=timeout_in_seconds)
    except ScanError as e:
        logger.debug(f'{protocol!r} handshake with {target.address} failed: {e}')
        return Failed(str(e))

    if not result.handshake_complete:
        logger.debug(f'{protocol!r} handshake with {target.address} did not complete')
        return HandshakeIncomplete()

    logger.debug(f'{protocol!r} handshake with {target.address} negotiated {result.cipher_name}')
    return Connected(version=result.version, cipher=cipher_code_from_openssl_name(result.cipher_name))

def iter_probe_report(
    target: ProbeTarget,
    protocols: Sequence[Protocol] = DEFAULT_PROTOCOLS,
    timeout_in_seconds: float = DEFAULT_TIMEOUT,
    ) -> Iterator[Tuple[Protocol, ProbeOutcome]]:
    """
    Probes every protocol concurrently, one thread and connection each, and yields the outcomes
    in the order of `protocols`, regardless of which handshake finishes first.
    """
    logger.info(f"Probing {target.address} for protocols {list(protocols)}")
    if not protocols:
        return

    # One worker per protocol, so every probe starts immediately.
    with ThreadPool(len(protocols)) as pool:
        pending = [(protocol, pool.apply_async(probe_protocol, (protocol, target, timeout_in_seconds))) for protocol in protocols]
        for protocol, async_result in pending:
            yield protocol, async_result.get()

def scan_protocols(
    target: ProbeTarget,
    protocols: Sequence[Protocol] = DEFAULT_PROTOCOLS,
    timeout_in_seconds: float = DEFAULT_TIMEOUT,
    ) -> ProbeReport:
    """
    Same as `iter_probe_report`, but waits for every outcome and returns them as a list.
    """
    return list(iter_probe_report(target, protocols, timeout_in_seconds))

def render_outcome(protocol: Protocol, outcome: ProbeOutcome) -> str:
    if isinstance(outcome, Connected):
        return f'Connected - Protocol: {version_name(outcome.version)}\tCipher: {cipher_name(outcome.cipher)}'
    return f'Failed - Protocol {version_name(protocol.value)}: Error: {outcome.reason}'
