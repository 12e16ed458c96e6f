"""
ldapHound Ingestion Module
==========================

Everything between the LDAP server and the type decoders.

Components:
- ldap_collector.py: Authenticated, paged LDAP collection into a Storage sink
- records.py: Raw record type shared by every stage
- storage.py: In-memory and disk-backed record sinks (resumable)
- classifier.py: objectClass + DN location -> object type
- parser.py: Two-pass decode of a record source into typed collections
  (import it from ``ldaphound.ingestion.parser``; it depends on the decoders,
  which depend on this package)

Design Philosophy:
- The collector never interprets records; decoding always replays the sink
- Memory and disk sinks are interchangeable for the rest of the pipeline
"""

from .records import LdapRecord
from .storage import DiskStorage, DiskStorageReader, MemoryStorage, Storage
from .classifier import classify, classify_record, is_ignored_container
from .ldap_collector import LDAPCollector
