"""
Record Parser
=============

Turns the stream of raw records into typed node collections and fills the
cross-reference index as a side effect.

Design Decisions:
-----------------
1. Two passes over a re-iterable source. The first pass decodes only domain
   and trust records, so the domain SID is known before any other record is
   decoded; the second pass decodes everything else
2. Records that classify as Unknown are counted and logged at debug level,
   never added to the collections or the index
3. Bookkeeping containers (GUID-named, DomainUpdates) are skipped
4. Progress is reported every `report_every` records; when the total is
   unknown (resumed cache) only the running count is shown

Usage:
    parser = RecordParser(domain="corp.local")
    results, index = parser.parse(storage, total=len(storage))
"""

import logging
from typing import Callable, Iterable, Optional

from .classifier import classify_record, is_ignored_container
from .records import LdapRecord
from ..decoders import NODE_DECODERS, decode_domain, decode_trust
from ..decoders.common import UNKNOWN_DOMAIN_SID
from ..model.index import CrossReferenceIndex
from ..model.results import ADResults
from ..model.schemas import NodeType

logger = logging.getLogger(__name__)


class RecordParser:
    """Two-pass decoder from raw records to ADResults.

    Args:
        domain: DNS name of the collected domain
        verbose: Whether to print progress messages
        progress_callback: Optional callback for progress updates
        report_every: Records between progress messages
    """

    def __init__(
        self,
        domain: str,
        verbose: bool = True,
        progress_callback: Optional[Callable[[str], None]] = None,
        report_every: int = 10000,
    ):
        self.domain = domain.upper()
        self.verbose = verbose
        self.progress_callback = progress_callback
        self.report_every = max(1, report_every)

        self.domain_sid = UNKNOWN_DOMAIN_SID
        self.record_count = 0
        self.unknown_count = 0
        self.skipped_count = 0

    def _log(self, message: str) -> None:
        """Log a message to console and/or callback."""
        if self.verbose:
            print(message)
        if self.progress_callback:
            self.progress_callback(message)

    def _progress(self, count: int, total: Optional[int]) -> None:
        if count % self.report_every:
            return
        if total:
            self._log(f"[*] Parsed {count}/{total} records ({count * 100 // total}%)")
        else:
            self._log(f"[*] Parsed {count} records")

    def parse(
        self,
        source: Iterable[LdapRecord],
        total: Optional[int] = None,
    ) -> tuple[ADResults, CrossReferenceIndex]:
        """Decode every record of ``source``.

        Args:
            source: Re-iterable record source (MemoryStorage or DiskStorageReader)
            total: Number of records when known, for progress reporting

        Returns:
            (results, index); the index is still writable
        """
        results = ADResults()
        index = CrossReferenceIndex()
        self.domain_sid = UNKNOWN_DOMAIN_SID
        self.record_count = 0
        self.unknown_count = 0
        self.skipped_count = 0

        self._log("[*] Decoding domain and trust records...")
        for record in source:
            kind = classify_record(record)
            if kind == NodeType.DOMAIN:
                domain, self.domain_sid = decode_domain(record, self.domain, index, self.domain_sid)
                results.domains.append(domain)
            elif kind == NodeType.TRUST:
                results.trusts.append(decode_trust(record, self.domain, index, self.domain_sid))

        if self.domain_sid == UNKNOWN_DOMAIN_SID:
            self._log("[!] No domain record found, domain SID unknown")
        else:
            self._log(f"[+] Domain SID: {self.domain_sid}")

        self._log("[*] Decoding objects...")
        for record in source:
            self.record_count += 1
            self._progress(self.record_count, total)
            self._decode(record, results, index)

        if self.unknown_count:
            self._log(f"[!] {self.unknown_count} records of unknown type ignored")
        self._log(
            f"[+] Decoded {len(results)} objects and {len(results.trusts)} trusts "
            f"from {self.record_count} records"
        )
        return results, index

    def _decode(self, record: LdapRecord, results: ADResults, index: CrossReferenceIndex) -> None:
        kind = classify_record(record)
        if kind in (NodeType.DOMAIN, NodeType.TRUST):
            return
        if kind == NodeType.UNKNOWN:
            self.unknown_count += 1
            logger.debug("Unknown object type for %s (objectClass=%s)", record.dn, record.object_classes)
            return
        if kind == NodeType.CONTAINER and is_ignored_container(record.dn):
            self.skipped_count += 1
            return

        decoder = NODE_DECODERS[kind]
        results.add(decoder(record, self.domain, index, self.domain_sid))
