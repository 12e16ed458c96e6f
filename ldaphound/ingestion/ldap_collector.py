"""
LDAP Collector Module
=====================

Live collection of raw Active Directory records via LDAP.

Features:
- Password, Pass-the-Hash (NTLM), Kerberos (SASL/GSSAPI) and anonymous binds
- Discovers every naming context from the root DSE
- Paged subtree search of each naming context with the security descriptor
  control, so nTSecurityDescriptor comes back with every record
- Streams records one at a time into a Storage sink (memory or disk)

Design Decisions:
-----------------
1. Uses ldap3 library for cross-platform LDAP support
2. Naming contexts are searched one after another; each completes its own
   paging loop before the next starts
3. Authentication failure, missing naming contexts and an empty result set
   are fatal and raised as CollectionError subclasses; the caller decides
   how the process exits
4. Only connection establishment is time-bounded (LDAPConfig.timeout)
5. The collector knows nothing about object types; decoding happens later
   from the sink

Security Consideration:
This module performs read-only operations. No modifications are made to the AD.
"""

import getpass
from typing import Callable, Optional

from ldap3 import ALL, BASE, KERBEROS, NTLM, SASL, SIMPLE, SUBTREE, Connection, Server
from ldap3.core.exceptions import LDAPException
from ldap3.protocol.microsoft import security_descriptor_control

from .records import LdapRecord
from .storage import Storage
from ..config import LDAPConfig
from ..errors import AuthenticationError, CollectionError, EmptyCollectionError, NamingContextError

# Empty LM hash used when only the NT half of a hash is supplied
EMPTY_LM_HASH = "aad3b435b51404eeaad3b435b51404ee"

SEARCH_ATTRIBUTES = ["*", "nTSecurityDescriptor"]


def normalize_ntlm_hash(ntlm_hash: str) -> str:
    """Return an NTLM hash in LM:NT form."""
    ntlm_hash = ntlm_hash.strip()
    if ":" in ntlm_hash:
        return ntlm_hash.lower()
    return f"{EMPTY_LM_HASH}:{ntlm_hash.lower()}"


class LDAPCollector:
    """Collector for raw Active Directory records via LDAP.

    Usage:
        collector = LDAPCollector(
            server_ip="192.168.1.100",
            domain="corp.local",
            username="user",
            password="password"
        )
        storage = MemoryStorage()
        total = collector.collect(storage)

    When no username is given (and Kerberos is not used) the collector prompts
    for one; an empty answer binds anonymously. A username without password
    or hash prompts for the password.
    """

    def __init__(
        self,
        server_ip: Optional[str],
        domain: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        ntlm_hash: Optional[str] = None,
        kerberos: bool = False,
        ldap_fqdn: Optional[str] = None,
        config: Optional[LDAPConfig] = None,
        verbose: bool = True,
        progress_callback: Optional[Callable[[str], None]] = None,
        prompt: Callable[[str], str] = input,
        secret_prompt: Callable[[str], str] = getpass.getpass,
    ):
        """Initialize the LDAP collector.

        Args:
            server_ip: IP address or hostname of the domain controller
                (defaults to the domain name)
            domain: Domain name (e.g., "corp.local")
            username: Username for authentication (user, DOMAIN\\user or user@domain)
            password: Password for authentication
            ntlm_hash: NTLM hash for Pass-the-Hash (format: LM:NT or just NT)
            kerberos: Bind with SASL/GSSAPI using the current ticket cache
            ldap_fqdn: Domain controller FQDN, required for Kerberos
            config: LDAPConfig object for connection settings
            verbose: Whether to print progress messages
            progress_callback: Optional callback for progress updates
            prompt: Callable used to ask for a missing username
            secret_prompt: Callable used to ask for a missing password
        """
        self.server_ip = server_ip or domain
        self.domain = domain
        self.username = username
        self.password = password
        self.ntlm_hash = ntlm_hash
        self.kerberos = kerberos
        self.ldap_fqdn = ldap_fqdn
        self.config = config or LDAPConfig()
        self.verbose = verbose
        self.progress_callback = progress_callback
        self.prompt = prompt
        self.secret_prompt = secret_prompt

        # Connection state
        self.connection: Optional[Connection] = None
        self.naming_contexts: list[str] = []

    def _log(self, message: str) -> None:
        """Log a message to console and/or callback."""
        if self.verbose:
            print(message)
        if self.progress_callback:
            self.progress_callback(message)

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def _resolve_credentials(self) -> None:
        """Prompt for whatever the anonymous-prompt mode leaves missing."""
        if self.kerberos:
            return
        if self.username is None:
            self.username = self.prompt("Username: ").strip()
        if self.username and not (self.password or self.ntlm_hash):
            self.password = self.secret_prompt("Password: ")

    def _ntlm_user(self) -> str:
        if "\\" in self.username:
            return self.username
        if "@" in self.username:
            user, _, domain = self.username.partition("@")
            return f"{domain.split('.')[0].upper()}\\{user}"
        return f"{self.domain.split('.')[0].upper()}\\{self.username}"

    def _simple_user(self) -> str:
        if "@" in self.username:
            return self.username.lower()
        return f"{self.username}@{self.domain}".lower()

    def _bind(self, connection: Connection) -> Connection:
        """Open and bind a connection, translating ldap3 failures."""
        try:
            connection.open()
        except LDAPException as e:
            raise CollectionError(f"Cannot reach {self.server_ip}:{self.config.port}: {e}") from e
        try:
            bound = connection.bind()
        except LDAPException as e:
            raise AuthenticationError(f"Failed to authenticate to {self.domain.upper()}: {e}") from e
        if not bound:
            reason = (connection.result or {}).get("description", "unknown reason")
            raise AuthenticationError(f"Failed to authenticate to {self.domain.upper()}: {reason}")
        return connection

    def connect(self) -> Connection:
        """Establish and bind the connection to the LDAP server.

        Returns:
            The bound ldap3 Connection

        Raises:
            AuthenticationError: If the bind is rejected or Kerberos lacks a DC FQDN
            CollectionError: If the server cannot be reached
        """
        self._resolve_credentials()
        port = self.config.port
        host = self.server_ip

        if self.kerberos:
            if not self.ldap_fqdn:
                raise AuthenticationError(
                    "Need the Domain Controller FQDN to bind a GSSAPI connection (e.g. DC01.DOMAIN.LAB)"
                )
            host = self.ldap_fqdn

        server = Server(
            host,
            port=port,
            use_ssl=self.config.use_ssl,
            get_info=ALL,
            connect_timeout=self.config.timeout,
        )

        if self.kerberos:
            self._log(f"[*] Connecting to {host}:{port} with Kerberos")
            self.connection = self._bind(Connection(
                server, authentication=SASL, sasl_mechanism=KERBEROS, auto_bind=False,
            ))
        elif not self.username:
            self._log(f"[*] Connecting anonymously to {host}:{port}")
            self.connection = self._bind(Connection(server, auto_bind=False))
        elif self.ntlm_hash:
            ntlm_user = self._ntlm_user()
            self._log(f"[*] Connecting to {host}:{port} as {ntlm_user} (Pass-the-Hash)")
            self.connection = self._bind(Connection(
                server, user=ntlm_user, password=normalize_ntlm_hash(self.ntlm_hash),
                authentication=NTLM, auto_bind=False,
            ))
        else:
            ntlm_user = self._ntlm_user()
            self._log(f"[*] Connecting to {host}:{port} as {ntlm_user} (Password)")
            try:
                self.connection = self._bind(Connection(
                    server, user=ntlm_user, password=self.password,
                    authentication=NTLM, auto_bind=False,
                ))
            except AuthenticationError:
                self._log("[*] NTLM auth failed, trying simple bind...")
                self.connection = self._bind(Connection(
                    server, user=self._simple_user(), password=self.password,
                    authentication=SIMPLE, auto_bind=False,
                ))

        self._log(f"[+] Connected to {self.domain.upper()} Active Directory")
        return self.connection

    # ------------------------------------------------------------------
    # Collection
    # ------------------------------------------------------------------

    def discover_naming_contexts(self) -> list[str]:
        """Read namingContexts from the root DSE.

        Raises:
            NamingContextError: If the server returns none
        """
        try:
            self.connection.search(
                search_base="",
                search_filter="(objectClass=*)",
                search_scope=BASE,
                attributes=["namingContexts"],
            )
        except LDAPException as e:
            raise NamingContextError(f"No namingContexts found: {e}") from e

        contexts = []
        for entry in self.connection.response or []:
            if entry.get("type", "searchResEntry") != "searchResEntry":
                continue
            values = entry.get("attributes", {}).get("namingContexts", [])
            contexts.extend([values] if isinstance(values, str) else values)

        if not contexts:
            raise NamingContextError("No namingContexts found")
        self.naming_contexts = contexts
        return contexts

    def stream_naming_context(self, naming_context: str, storage: Storage) -> int:
        """Page through one naming context and hand every record to ``storage``.

        A protocol error inside one naming context is logged and ends that
        context; records already stored are kept.

        Returns:
            Number of records stored
        """
        self._log(f"[*] Collecting {naming_context} ({self.config.search_filter})")
        count = 0
        try:
            entries = self.connection.extend.standard.paged_search(
                search_base=naming_context,
                search_filter=self.config.search_filter,
                search_scope=SUBTREE,
                attributes=SEARCH_ATTRIBUTES,
                controls=security_descriptor_control(criticality=True, sdflags=self.config.sd_flags),
                paged_size=self.config.page_size,
                generator=True,
            )
            for entry in entries:
                if entry.get("type") != "searchResEntry":
                    continue
                storage.add(LdapRecord.from_ldap3(entry))
                count += 1
        except LDAPException as e:
            self._log(f"[!] No more data collected on {naming_context}: {e}")
            return count

        self._log(f"[+] All data collected for {naming_context} ({count} objects)")
        return count

    def collect(self, storage: Storage) -> int:
        """Collect every naming context into ``storage``.

        Args:
            storage: Sink receiving raw records

        Returns:
            Total number of records collected

        Raises:
            EmptyCollectionError: If no record was returned at all
        """
        if not self.connection:
            self.connect()

        self._log("[*] Starting AD enumeration...")
        total = 0
        try:
            for naming_context in self.discover_naming_contexts():
                total += self.stream_naming_context(naming_context, storage)
        finally:
            self.disconnect()

        if total == 0:
            raise EmptyCollectionError("No LDAP objects found")

        storage.flush()
        self._log(f"[+] Collection complete: {total} records")
        return total

    def disconnect(self) -> None:
        """Close the LDAP connection."""
        if self.connection:
            try:
                self.connection.unbind()
            except LDAPException as e:
                self._log(f"[!] Error while unbinding: {e}")
            self.connection = None
