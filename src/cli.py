"""Command-line interface for oneping."""

import argparse
import json
import logging
import sys

from .config import Settings
from .probe import probe


def main():
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="oneping",
        description="Send one ICMP echo request and print the result as JSON.",
    )
    parser.add_argument(
        "host",
        help="The hostname or IP address to probe",
    )
    version = parser.add_mutually_exclusive_group()
    version.add_argument(
        "-4",
        dest="ip_version",
        action="store_const",
        const=4,
        default=4,
        help="Use IPv4 (default)",
    )
    version.add_argument(
        "-6",
        dest="ip_version",
        action="store_const",
        const=6,
        help="Use IPv6",
    )
    parser.add_argument(
        "-t",
        "--ttl",
        type=int,
        default=Settings.hop_limit,
        help=f"Outgoing TTL / hop limit (default: {Settings.hop_limit})",
    )
    parser.add_argument(
        "-W",
        "--timeout",
        type=int,
        default=Settings.timeout,
        help=f"Milliseconds to wait for a reply (default: {Settings.timeout})",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log each step of the probe to stderr",
    )

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
        )

    try:
        result = probe(
            args.host,
            hop_limit=args.ttl,
            timeout=args.timeout,
            ip_version=args.ip_version,
        )
        print(json.dumps(result.to_dict()), flush=True)
        sys.exit(0 if result.ok else 1)

    except KeyboardInterrupt:
        print("\n--- probe interrupted ---", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
