"""
Relationship Resolver
=====================

Completes the decoded collections into a closed graph once every record has
been decoded and the cross-reference index is frozen.

Passes (order matters, each assumes the previous ones are done):
     1. Delegation targets and SQL SPN targets: host name -> identifier
     2. Enterprise CA published templates: template name -> identifier;
        issuance policy group links: DN -> identifier
     3. Group members: DN -> (identifier, type), cross-domain SID synthesis
        against the trust list, raw value as last resort
     4. Built-in principals (Enterprise Domain Controllers, Everyone, ...)
        and the NT AUTHORITY user
     5. ACE principal types (default Group)
     6. Allowed-to-act principal types (default Computer)
     7. childObjects of domains, containers and OUs
     8. containedBy of every node except domains
     9. GPO-applicable computers of the domain and of each OU
    10. GPO link GUIDs -> GPO identifiers
    11. Trusted domains materialized as Domain nodes

Design Decisions:
-----------------
1. The resolver only reads the index through IndexView. Nodes it creates
   (built-ins, trusted domains) get their types from a local overlay map
2. Lookups never raise on a miss: each pass documents its fallback value
3. Passes annotate nodes in place; identifiers are never reassigned
4. Each pass is a public method so it can be run and tested on its own

Usage:
    view = index.freeze()
    resolver = RelationshipResolver(domain="corp.local", view=view)
    resolver.resolve(results)
"""

import logging
from typing import Callable, Optional

from .wellknown import (
    AUTHENTICATED_USERS, BUILTIN_GROUPS, DOMAIN_COMPUTERS_RID, DOMAIN_USERS_RID,
    ENTERPRISE_DOMAIN_CONTROLLERS, EVERYONE, NT_AUTHORITY,
    builtin_identifier, builtin_name, rid_for_group_name,
)
from ..decoding.dn import domain_to_dc, parent_dn, rdn_value, split_dn
from ..decoding.sid import domain_sid_of, find_embedded_sid
from ..model.index import IndexView
from ..model.results import ADResults
from ..model.schemas import (
    Domain, GPOChange, Group, Member, NodeType, Trust, User, UNRESOLVED_IDENTIFIER,
)

logger = logging.getLogger(__name__)

GROUP = NodeType.GROUP.value
COMPUTER = NodeType.COMPUTER.value
USER = NodeType.USER.value


def synthesize_foreign_sid(member_dn: str, trusts: list[Trust]) -> str:
    """Best-effort identifier of a member DN that is not in the index.

    Args:
        member_dn: Upper-cased member DN
        trusts: Trust records of the collected domain

    Returns:
        ``{TRUSTED DOMAIN}-{RID}`` when the DN lives in a trusted domain and
        names a fixed domain group, the SID embedded in a foreign security
        principal DN, or the DN itself
    """
    for trust in trusts:
        naming_context = domain_to_dc(trust.target_domain_name)
        if naming_context and naming_context in member_dn:
            rid = rid_for_group_name(member_dn)
            if rid:
                return f"{trust.target_domain_name}{rid}"
            break

    if "CN=S-" in member_dn:
        sid = find_embedded_sid(member_dn)
        if sid:
            return sid
    return member_dn


class RelationshipResolver:
    """Runs the ordered resolution passes over one run's results.

    Args:
        domain: DNS name of the collected domain
        view: Frozen cross-reference index
        verbose: Whether to print progress messages
        progress_callback: Optional callback for progress updates
    """

    def __init__(
        self,
        domain: str,
        view: IndexView,
        verbose: bool = True,
        progress_callback: Optional[Callable[[str], None]] = None,
    ):
        self.domain = domain.upper()
        self.view = view
        self.verbose = verbose
        self.progress_callback = progress_callback

        # Types of nodes created during resolution
        self._synthetic_types: dict[str, str] = {}

    def _log(self, message: str) -> None:
        """Log a message to console and/or callback."""
        if self.verbose:
            print(message)
        if self.progress_callback:
            self.progress_callback(message)

    def type_of(self, identifier: str, default: str) -> str:
        """Type name of an identifier, from the index or the synthetic overlay."""
        if identifier in self._synthetic_types:
            return self._synthetic_types[identifier]
        return self.view.type_of(identifier, default)

    def resolve(self, results: ADResults) -> ADResults:
        """Run every pass in order.

        Returns:
            The same results object, completed in place
        """
        self._log("[*] Resolving relationships...")
        self.resolve_delegation_targets(results)
        self.resolve_enrollment_templates(results)
        self.resolve_group_members(results)
        self.add_builtin_principals(results)
        self.resolve_ace_types(results)
        self.resolve_allowed_to_act_types(results)
        self.resolve_child_objects(results)
        self.resolve_contained_by(results)
        self.resolve_affected_computers(results)
        self.resolve_gpo_links(results)
        self.add_trusted_domains(results)
        self._log(f"[+] Relationships resolved for {len(results)} objects")
        return results

    # ------------------------------------------------------------------
    # Pass 1
    # ------------------------------------------------------------------

    def resolve_delegation_targets(self, results: ADResults) -> None:
        """Rewrite delegation host names to computer identifiers.

        Hosts that are not collected computers keep their name.
        """
        for node in [*results.users, *results.computers]:
            for target in node.allowed_to_delegate:
                target.object_identifier = self.view.identifier_for_host(
                    target.object_identifier) or target.object_identifier
        for user in results.users:
            for target in user.spn_targets:
                target.computer_sid = self.view.identifier_for_host(target.computer_sid) or target.computer_sid

    # ------------------------------------------------------------------
    # Pass 2
    # ------------------------------------------------------------------

    def resolve_enrollment_templates(self, results: ADResults) -> None:
        """Link enterprise CAs to the templates they publish.

        Templates are matched on their cn or display name (case-insensitive);
        a matched template is marked enabled. Unmatched names stay as names.
        Issuance policy group links are resolved from DN to identifier.
        """
        templates_by_name: dict[str, object] = {}
        for template in results.cert_templates:
            cn = template.name.split("@", 1)[0]
            templates_by_name.setdefault(cn.upper(), template)
            display_name = template.properties.get("displayname")
            if display_name:
                templates_by_name.setdefault(display_name.upper(), template)

        for ca in results.enterprise_cas:
            for published in ca.enabled_cert_templates:
                template = templates_by_name.get(published.object_identifier.upper())
                if template is None:
                    logger.debug("%s publishes unknown template %s", ca.name, published.object_identifier)
                    continue
                published.object_identifier = template.object_id
                published.object_type = NodeType.CERT_TEMPLATE.value
                template.properties["enabled"] = True

        for policy in results.issuance_policies:
            if policy.group_link is None:
                continue
            identifier = self.view.identifier_for_dn(policy.group_link.object_identifier)
            if identifier:
                policy.group_link = Member(identifier, self.type_of(identifier, GROUP))

    # ------------------------------------------------------------------
    # Pass 3
    # ------------------------------------------------------------------

    def resolve_group_members(self, results: ADResults) -> None:
        """Resolve member DNs to (identifier, type).

        Members outside the index go through cross-domain synthesis and are
        typed Group.
        """
        unresolved = 0
        for group in results.groups:
            for member in group.members:
                identifier = self.view.identifier_for_dn(member.object_identifier)
                if identifier:
                    member.object_identifier = identifier
                    member.object_type = self.type_of(identifier, GROUP)
                    continue
                member.object_identifier = synthesize_foreign_sid(member.object_identifier, results.trusts)
                member.object_type = GROUP
                unresolved += 1
        if unresolved:
            logger.debug("%d group members resolved outside the index", unresolved)

    # ------------------------------------------------------------------
    # Pass 4
    # ------------------------------------------------------------------

    def _domain_sid(self, results: ADResults) -> Optional[str]:
        for domain in results.domains:
            sid = domain_sid_of(domain.object_id)
            if sid:
                return sid
        for computer in results.computers:
            if computer.is_dc:
                sid = domain_sid_of(computer.object_id)
                if sid:
                    return sid
        return None

    def add_builtin_principals(self, results: ADResults) -> None:
        """Add the built-in groups and the NT AUTHORITY user.

        A built-in group whose identifier was already decoded (CN=Builtin
        groups) is completed instead of duplicated.
        """
        domain_sid = self._domain_sid(results)
        groups_by_id = {group.object_id: group for group in results.groups}

        controllers = [
            Member(computer.object_id, COMPUTER)
            for computer in results.computers
            if computer.is_dc and computer.is_resolved
        ]
        authenticated_members = []
        if domain_sid:
            authenticated_members = [
                Member(f"{domain_sid}{DOMAIN_COMPUTERS_RID}", GROUP),
                Member(f"{domain_sid}{DOMAIN_USERS_RID}", GROUP),
            ]
        else:
            self._log("[!] Domain SID unknown, built-in groups get no implicit members")

        members_for = {
            ENTERPRISE_DOMAIN_CONTROLLERS: controllers,
            EVERYONE: authenticated_members,
            AUTHENTICATED_USERS: authenticated_members,
        }

        added = 0
        for principal in BUILTIN_GROUPS:
            identifier = builtin_identifier(self.domain, principal)
            members = [Member(m.object_identifier, m.object_type) for m in members_for.get(principal, [])]
            existing = groups_by_id.get(identifier)
            if existing is not None:
                known = {m.object_identifier for m in existing.members}
                existing.members.extend(m for m in members if m.object_identifier not in known)
                if principal.highvalue:
                    existing.properties["highvalue"] = True
                continue

            group = Group(
                object_id=identifier,
                name=builtin_name(self.domain, principal),
                domain=self.domain,
                properties={"domainsid": domain_sid or "", "highvalue": principal.highvalue},
                members=members,
            )
            results.groups.append(group)
            groups_by_id[identifier] = group
            self._synthetic_types[identifier] = GROUP
            added += 1

        self._add_nt_authority(results, domain_sid)
        self._log(f"[+] Added {added} built-in groups")

    def _add_nt_authority(self, results: ADResults, domain_sid: Optional[str]) -> None:
        identifier = builtin_identifier(self.domain, NT_AUTHORITY)
        if any(user.object_id == identifier for user in results.users):
            return
        if not domain_sid and results.users:
            domain_sid = results.users[0].properties.get("domainsid")
        if not domain_sid:
            self._log("[!] No domain SID and no users, NT AUTHORITY not added")
            return

        results.users.append(User(
            object_id=identifier,
            name=builtin_name(self.domain, NT_AUTHORITY),
            domain=self.domain,
            properties={"domainsid": domain_sid},
        ))
        self._synthetic_types[identifier] = USER

    # ------------------------------------------------------------------
    # Passes 5 and 6
    # ------------------------------------------------------------------

    def resolve_ace_types(self, results: ADResults) -> None:
        """Fill the principal type of every ACE (default Group)."""
        for node in results.all_nodes():
            for ace in node.aces:
                ace.principal_type = self.type_of(ace.principal_sid, GROUP)

    def resolve_allowed_to_act_types(self, results: ADResults) -> None:
        """Fill the type of every resource-based delegation principal (default Computer)."""
        for computer in results.computers:
            for principal in computer.allowed_to_act:
                principal.object_type = self.type_of(principal.object_identifier, COMPUTER)

    # ------------------------------------------------------------------
    # Pass 7
    # ------------------------------------------------------------------

    def _children_by_parent(self) -> dict[str, list[str]]:
        children: dict[str, list[str]] = {}
        for dn in self.view.dn_to_identifier:
            children.setdefault(parent_dn(dn), []).append(dn)
        return children

    def resolve_child_objects(self, results: ADResults) -> None:
        """Fill childObjects of domains, containers and OUs.

        Domains and containers take every indexed DN whose parent is their
        own DN. OUs compare their bare name with the value of the parent
        component of DNs under them and also record the computer children.
        """
        children = self._children_by_parent()

        for node in [*results.domains, *results.containers]:
            node.child_objects = [
                self._member_for_dn(dn) for dn in children.get(node.distinguished_name, [])
            ]

        for ou in results.ous:
            self._resolve_ou_children(ou)

    def _member_for_dn(self, dn: str) -> Member:
        identifier = self.view.identifier_for_dn(dn)
        return Member(identifier, self.type_of(identifier, GROUP))

    def _resolve_ou_children(self, ou) -> None:
        name = ou.name.split("@", 1)[0]
        suffix = f",{ou.distinguished_name}"
        children = []
        computers = []
        for dn, identifier in self.view.dn_to_identifier.items():
            if not dn.endswith(suffix):
                continue
            parts = split_dn(dn)
            if len(parts) < 2 or rdn_value(parts[1]) != name:
                continue
            member = Member(identifier, self.type_of(identifier, GROUP))
            children.append(member)
            if member.object_type == COMPUTER:
                computers.append(Member(identifier, COMPUTER))
        ou.child_objects = children
        ou.gpo_changes = GPOChange(affected_computers=computers)

    # ------------------------------------------------------------------
    # Pass 8
    # ------------------------------------------------------------------

    def resolve_contained_by(self, results: ADResults) -> None:
        """Point every non-domain node at its parent container (default type Group)."""
        for node in results.all_nodes():
            if node.node_type == NodeType.DOMAIN or not node.distinguished_name:
                continue
            parent = self.view.identifier_for_dn(parent_dn(node.distinguished_name))
            if parent:
                node.contained_by = Member(parent, self.type_of(parent, GROUP))

    # ------------------------------------------------------------------
    # Pass 9
    # ------------------------------------------------------------------

    def resolve_affected_computers(self, results: ADResults) -> None:
        """Attach GPO-applicable computers to domains and OUs.

        Every computer is in scope of the domain; an OU gets the computers
        whose containedBy chain reaches it.
        """
        computer_ids = self.view.identifiers_of_type(COMPUTER)
        for domain in results.domains:
            domain.gpo_changes.affected_computers = [Member(cid, COMPUTER) for cid in computer_ids]

        parents = {
            node.object_id: node.contained_by.object_identifier
            for node in results.all_nodes()
            if node.contained_by is not None
        }
        by_ou: dict[str, list[Member]] = {ou.object_id: [] for ou in results.ous}
        for computer in results.computers:
            if not computer.is_resolved:
                continue
            seen = {computer.object_id}
            current = parents.get(computer.object_id)
            while current and current not in seen:
                seen.add(current)
                if current in by_ou:
                    by_ou[current].append(Member(computer.object_id, COMPUTER))
                current = parents.get(current)

        for ou in results.ous:
            ou.gpo_changes.affected_computers = by_ou.get(ou.object_id, [])

    # ------------------------------------------------------------------
    # Pass 10
    # ------------------------------------------------------------------

    def resolve_gpo_links(self, results: ADResults) -> None:
        """Replace gPLink GUIDs with the identifier of the GPO they name."""
        for node in [*results.domains, *results.ous]:
            for link in node.links:
                link.guid = self.view.identifier_for_dn_fragment(link.guid) or link.guid

    # ------------------------------------------------------------------
    # Pass 11
    # ------------------------------------------------------------------

    def add_trusted_domains(self, results: ADResults) -> None:
        """Add one Domain node per trust and attach the trusts to the first domain.

        Skipped when the first trust carries no target SID.
        """
        if not results.trusts or UNRESOLVED_IDENTIFIER in results.trusts[0].target_domain_sid:
            return

        for trust in results.trusts:
            results.domains.append(Domain(
                object_id=trust.target_domain_sid,
                name=trust.target_domain_name,
                domain=trust.target_domain_name,
                distinguished_name=domain_to_dc(trust.target_domain_name),
                properties={"highvalue": True},
            ))
            self._synthetic_types[trust.target_domain_sid] = NodeType.DOMAIN.value
        results.domains[0].trusts = list(results.trusts)
        self._log(f"[+] Added {len(results.trusts)} trusted domains")
