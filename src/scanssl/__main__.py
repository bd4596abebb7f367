from .handshake import ProbeTarget, ScanError, DEFAULT_PORT
from .scan import iter_probe_report, render_outcome
from .certs import inspect_certificate_chain, render_certificate_inspection, expiry_summary

import sys
import logging
import argparse
import dataclasses
from typing import Optional, Sequence

@dataclasses.dataclass(frozen=True)
class ScanConfig:
    """
    Everything one run needs, built once from the command line.
    """
    target: ProbeTarget
    show_connections: bool
    show_certificate: bool
    show_expiry: bool
    verbose: bool

def make_parser() -> argparse.ArgumentParser:
    # -h is the host, so help moves to --help only.
    parser = argparse.ArgumentParser(prog="python -m scanssl", add_help=False, formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    parser.add_argument("--help", action="help", help="show this help message and exit")
    parser.add_argument("-h", dest="host", default="", help="remote host to test")
    parser.add_argument("-p", dest="port", default=DEFAULT_PORT, help="remote port to connect to")
    parser.add_argument("-cert", "-c", dest="cert", action="store_true", help="display certificate info")
    parser.add_argument("-conn", dest="conn", action="store_true", help="display connection info")
    parser.add_argument("-a", dest="all", action="store_true", help="display all info")
    parser.add_argument("-e", dest="expire", action="store_true", help="display certificate expire info in CSV format")
    parser.add_argument("-v", dest="verbose", action="store_true", help="display verbose output")
    parser.add_argument("--debug", "-d", action="count", default=0, help="increase logging verbosity on stderr")
    return parser

def config_from_args(args: argparse.Namespace) -> ScanConfig:
    show_all = args.all or not (args.conn or args.cert)
    return ScanConfig(
        target=ProbeTarget(args.host, args.port),
        show_connections=args.conn or show_all,
        show_certificate=args.cert or show_all,
        show_expiry=args.expire,
        verbose=args.verbose,
    )

def run(config: ScanConfig) -> None:
    if config.show_expiry:
        try:
            print(expiry_summary(config.target))
        except ScanError as e:
            print(f'Unable to get Certificate details: {e}')
        return

    if config.show_connections:
        # Printed as they become available, always in protocol order.
        for protocol, outcome in iter_probe_report(config.target):
            print(render_outcome(protocol, outcome), flush=True)

    if config.show_certificate:
        try:
            inspection = inspect_certificate_chain(config.target)
        except ScanError as e:
            print(f'Unable to get Certificate details: {e}')
            return
        for line in render_certificate_inspection(inspection, verbose=config.verbose):
            print(line)

def main(argv: Optional[Sequence[str]] = None) -> None:
    args = make_parser().parse_args(argv)

    logging.basicConfig(
        datefmt='%Y-%m-%d %H:%M:%S',
        format='{asctime}.{msecs:0<3.0f} {module} {threadName} {levelname}: {message}',
        style='{',
        level=[logging.WARNING, logging.INFO, logging.DEBUG][min(2, args.debug)]
    )

    if not args.host:
        print('Error: No host provided')
        sys.exit(1)

    run(config_from_args(args))
    sys.exit(0)

if __name__ == '__main__':
    main()
