#!/usr/bin/env python3
"""
ldapHound - Active Directory LDAP Collector
===========================================

Command-line interface for collecting a domain into a resolved graph.

Usage:
    # Password authentication
    python -m ldaphound.main -u admin -p Password123 -d corp.local -s 192.168.1.100

    # With NTLM hash (Pass-the-Hash)
    python -m ldaphound.main -u admin --ntlm-hash 31d6cfe0d16ae931b73c59d7e0c089c0 -d corp.local -s 192.168.1.100

    # Kerberos from the current ticket cache
    python -m ldaphound.main -k --ldap-fqdn DC01.CORP.LOCAL -d corp.local

    # Cache records on disk, then replay them without the network
    python -m ldaphound.main -u admin -p Password123 -d corp.local --cache
    python -m ldaphound.main -d corp.local --resume

Exit codes:
    0 success, 1 unexpected ldapHound error, 2 connection failure,
    3 authentication failure, 4 no naming context, 5 no records,
    6 cache failure
"""

import argparse
import logging
import socket
import sys

from .config import CacheConfig, LDAPConfig, LdapHoundConfig, set_config
from .errors import LdapHoundError
from .pipeline import CollectionOptions, run_collection


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="ldapHound - Active Directory LDAP collector",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s -u admin -p Password123 -d corp.local -s 192.168.1.100
  %(prog)s -u admin --ntlm-hash 31d6cfe0d16ae931b73c59d7e0c089c0 -d corp.local -s 192.168.1.100
  %(prog)s -k --ldap-fqdn DC01.CORP.LOCAL -d corp.local
        """
    )

    ldap_group = parser.add_argument_group("LDAP Collection")
    ldap_group.add_argument(
        "-d", "--domain",
        required=True,
        help="Domain name (e.g., corp.local)"
    )
    ldap_group.add_argument(
        "-s", "--server",
        help="Domain controller IP address or hostname (default: the domain name)"
    )
    ldap_group.add_argument(
        "-u", "--username",
        help="Domain username; prompted when omitted, empty for an anonymous bind"
    )
    ldap_group.add_argument(
        "-p", "--password",
        help="Domain password; prompted when a username is given without one"
    )
    ldap_group.add_argument(
        "--ntlm-hash",
        dest="ntlm_hash",
        help="NTLM hash for Pass-the-Hash authentication (LM:NT or NT)"
    )
    ldap_group.add_argument(
        "-k", "--kerberos",
        action="store_true",
        help="Authenticate with Kerberos from the current ticket cache"
    )
    ldap_group.add_argument(
        "--ldap-fqdn",
        dest="ldap_fqdn",
        help="Domain controller FQDN (required with --kerberos)"
    )
    ldap_group.add_argument(
        "--ldaps",
        action="store_true",
        help="Use LDAPS (port 636)"
    )
    ldap_group.add_argument(
        "--port",
        type=int,
        help="Explicit LDAP port"
    )

    cache_group = parser.add_argument_group("Cache")
    cache_group.add_argument(
        "--cache",
        action="store_true",
        help="Stream records to a disk cache instead of memory"
    )
    cache_group.add_argument(
        "--resume",
        action="store_true",
        help="Replay the disk cache of a previous run without querying LDAP"
    )
    cache_group.add_argument(
        "--cache-dir",
        default=".ldaphound-cache",
        help="Cache root directory (default: ./.ldaphound-cache)"
    )

    parser.add_argument(
        "--resolve-hosts",
        action="store_true",
        help="Resolve computer host names to addresses through DNS"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Show decoder diagnostics"
    )
    parser.add_argument(
        "--version",
        action="version",
        version="ldapHound 1.0.0"
    )
    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.password and args.ntlm_hash:
        parser.error("--password and --ntlm-hash are mutually exclusive")
    if args.kerberos and not args.ldap_fqdn:
        parser.error("--kerberos requires --ldap-fqdn (e.g. DC01.CORP.LOCAL)")

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = LdapHoundConfig(
        ldap=LDAPConfig(use_ssl=args.ldaps, port=args.port),
        cache=CacheConfig(enabled=args.cache or args.resume, resume=args.resume, cache_dir=args.cache_dir),
        verbose=True,
        debug=args.debug,
    )
    set_config(config)

    options = CollectionOptions(
        domain=args.domain,
        server_ip=args.server,
        username=args.username,
        password=args.password,
        ntlm_hash=args.ntlm_hash,
        kerberos=args.kerberos,
        ldap_fqdn=args.ldap_fqdn,
    )

    print_banner()

    try:
        result = run_collection(
            options,
            config=config,
            address_lookup=socket.gethostbyname if args.resolve_hosts else None,
        )
    except LdapHoundError as e:
        print(f"\n[!] Error: {e}")
        if args.debug:
            import traceback
            traceback.print_exc()
        return e.exit_code
    except KeyboardInterrupt:
        print("\n[!] Interrupted")
        return 130

    print(f"\n{'='*60}")
    print("Collection Complete")
    print(f"{'='*60}\n")

    for type_name, count in result.results.counts().items():
        if count:
            print(f"  {type_name:<26} {count}")

    graph = result.graph
    print(f"\nGraph: {graph.node_count} nodes, {graph.edge_count} edges")
    return 0


def print_banner():
    """Print the ldapHound banner."""
    banner = r"""
  _     _             _   _                       _
 | | __| | __ _ _ __ | | | | ___  _   _ _ __   __| |
 | |/ _` |/ _` | '_ \| |_| |/ _ \| | | | '_ \ / _` |
 | | (_| | (_| | |_) |  _  | (_) | |_| | | | | (_| |
 |_|\__,_|\__,_| .__/|_| |_|\___/ \__,_|_| |_|\__,_|
               |_|
  Active Directory LDAP Collector
    """
    print(banner)


if __name__ == "__main__":
    sys.exit(main())
