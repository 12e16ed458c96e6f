"""
Collection Pipeline
===================

High-level entry point that runs a whole collection:
1. LDAP collection into a sink (memory or disk), or replay of a cached run
2. Two-pass decode into typed collections and the cross-reference index
3. Optional host name -> address resolution through a caller-supplied lookup
4. Index freeze and relationship resolution

Design Decisions:
-----------------
1. Single entry point (run_collection) that returns the resolved collections
   and the index; export and analysis consume CollectionResult
2. Fatal errors propagate as LdapHoundError subclasses; nothing here exits
   the process
3. Progress updates via callback, as in every other stage
4. A resumed run never opens a network connection, and a cache that replays
   zero records fails the same way an empty live collection does
5. A cached run that fails keeps the previous cache file
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from .config import LdapHoundConfig, get_config
from .errors import EmptyCollectionError
from .ingestion.ldap_collector import LDAPCollector
from .ingestion.parser import RecordParser
from .ingestion.storage import DiskStorage, DiskStorageReader, MemoryStorage
from .analysis.resolver import RelationshipResolver
from .model.graph_builder import ADGraph
from .model.index import CrossReferenceIndex
from .model.results import ADResults

logger = logging.getLogger(__name__)


@dataclass
class CollectionOptions:
    """Target and credentials of one run.

    Attributes:
        domain: DNS name of the domain (e.g., "corp.local")
        server_ip: Domain controller address, defaults to the domain name
        username: Account name; None prompts, empty binds anonymously
        password: Account password
        ntlm_hash: NTLM hash for Pass-the-Hash (LM:NT or NT)
        kerberos: Bind with SASL/GSSAPI from the ticket cache
        ldap_fqdn: Domain controller FQDN, required with kerberos
    """
    domain: str
    server_ip: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    ntlm_hash: Optional[str] = None
    kerberos: bool = False
    ldap_fqdn: Optional[str] = None


@dataclass
class CollectionResult:
    """Resolved collections of one run plus the frozen index."""
    results: ADResults
    index: CrossReferenceIndex
    record_count: Optional[int] = None
    _graph: Optional[ADGraph] = field(default=None, repr=False)

    @property
    def graph(self) -> ADGraph:
        """NetworkX projection of the resolved collections, built on first use."""
        if self._graph is None:
            self._graph = ADGraph.from_results(self.results)
        return self._graph


def apply_address_resolver(
    results: ADResults,
    index: CrossReferenceIndex,
    lookup: Callable[[str], Optional[str]],
) -> int:
    """Fill the host name -> address map for enabled, named computers.

    Must run before the index is frozen. A lookup that raises OSError or
    returns nothing leaves the address empty.

    Args:
        results: Decoded collections
        index: Writable cross-reference index
        lookup: Host name -> address callable (e.g. socket.gethostbyname)

    Returns:
        Number of addresses stored
    """
    resolved = 0
    for computer in results.computers:
        if not computer.name or not computer.properties.get("enabled"):
            continue
        try:
            address = lookup(computer.name)
        except OSError as e:
            logger.debug("Cannot resolve %s: %s", computer.name, e)
            continue
        if address:
            index.set_address(computer.name, address)
            resolved += 1
    return resolved


def run_collection(
    options: CollectionOptions,
    config: Optional[LdapHoundConfig] = None,
    progress_callback: Optional[Callable[[str], None]] = None,
    address_lookup: Optional[Callable[[str], Optional[str]]] = None,
    collector: Optional[LDAPCollector] = None,
) -> CollectionResult:
    """Collect, decode and resolve one domain.

    Args:
        options: Target and credentials
        config: Run configuration (global configuration when None)
        progress_callback: Optional callback for progress updates
        address_lookup: Optional host name resolver applied before the index freezes
        collector: Pre-built collector (a new LDAPCollector from ``options`` when None)

    Returns:
        CollectionResult with resolved collections and frozen index

    Raises:
        CollectionError: Connectivity, authentication or empty-result failures
        StorageError: Cache file cannot be written or is corrupted
    """
    config = config or get_config()
    verbose = config.verbose

    def log(message: str):
        """Log message to callback if provided."""
        if progress_callback:
            progress_callback(message)
        if verbose:
            print(message)

    cache = config.cache
    cache_path = cache.path_for(options.domain)

    if cache.resume:
        log(f"[*] Resuming from cache {cache_path}")
        source = DiskStorageReader.open(cache_path)
        total = None
    else:
        collector = collector or LDAPCollector(
            server_ip=options.server_ip,
            domain=options.domain,
            username=options.username,
            password=options.password,
            ntlm_hash=options.ntlm_hash,
            kerberos=options.kerberos,
            ldap_fqdn=options.ldap_fqdn,
            config=config.ldap,
            verbose=verbose,
            progress_callback=progress_callback,
        )
        if cache.enabled:
            log(f"[*] Caching records to {cache_path}")
            storage = DiskStorage(cache_path, capacity=cache.buffer_capacity)
            try:
                total = collector.collect(storage)
                source = storage.into_reader()
            except BaseException:
                storage.close()
                raise
        else:
            source = MemoryStorage()
            total = collector.collect(source)

    try:
        parser = RecordParser(
            domain=options.domain,
            verbose=verbose,
            progress_callback=progress_callback,
        )
        results, index = parser.parse(source, total=total)
        if cache.resume:
            if not parser.record_count:
                raise EmptyCollectionError(f"No LDAP objects found in cache {cache_path}")
            total = parser.record_count
    finally:
        if isinstance(source, DiskStorageReader):
            source.close()

    if address_lookup is not None:
        resolved = apply_address_resolver(results, index, address_lookup)
        log(f"[+] Resolved {resolved} computer addresses")

    resolver = RelationshipResolver(
        domain=options.domain,
        view=index.freeze(),
        verbose=verbose,
        progress_callback=progress_callback,
    )
    resolver.resolve(results)

    return CollectionResult(results=results, index=index, record_count=total)
