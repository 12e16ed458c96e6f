"""
ldapHound Errors
================

Exception taxonomy for a collection run.

Design Decisions:
-----------------
1. Connectivity and protocol failures are fatal: they derive from
   CollectionError and carry the exit code the command line reports
2. Storage failures (disk full, truncated cache) propagate as StorageError
3. Decode anomalies are never raised past the field that failed, and resolver
   lookup misses are never raised at all, so neither has a class here
4. The library never terminates the process itself; main.py maps
   ``exit_code`` to the process status
"""


class LdapHoundError(Exception):
    """Base class for all ldapHound errors."""

    exit_code = 1


class CollectionError(LdapHoundError):
    """The directory could not be reached or queried."""

    exit_code = 2


class AuthenticationError(CollectionError):
    """Bind failed or the requested authentication mode cannot be used."""

    exit_code = 3


class NamingContextError(CollectionError):
    """The root DSE did not advertise any naming context."""

    exit_code = 4


class EmptyCollectionError(CollectionError):
    """Zero records came back across every naming context.

    Treated as a connectivity or permissions failure, never as an empty domain.
    """

    exit_code = 5


class StorageError(LdapHoundError):
    """The disk-backed record store failed."""

    exit_code = 6


class StoreCorruptionError(StorageError):
    """A cached record is truncated or cannot be decoded."""
