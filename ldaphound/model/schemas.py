"""
ldapHound Data Schemas
======================

Typed dataclasses representing Active Directory objects and the references
between them.

Design Decisions:
-----------------
1. All directory objects inherit from ADNode for the shared surface
   (identifier, DN, properties, ACEs, containment back-reference)
2. Type-specific edges live as fields on the variant that owns them
   (Group.members, Computer.allowed_to_act, OU.links...), so there is no
   accessor that is meaningless for some types
3. ``object_id`` is assigned once by a type decoder; later passes only
   annotate nodes, they never re-key them
4. The identifier "SID" is the sentinel for "not resolvable yet" and is
   never entered in the cross-reference index
5. ``to_dict`` renders the ingest layout consumed by graph-analysis tools

Schema Hierarchy:
- ADNode (base)
  - User, Group, Computer, ForeignSecurityPrincipal
  - Domain, OU, Container, GPO
  - RootCA, EnterpriseCA, AIACA, NTAuthStore
  - CertTemplate, IssuancePolicy
- Trust: domain-level record, not addressed by identifier
- Ace, Member, Link, SPNTarget, GPOChange: edge payloads
- ADEdge: flattened relationship used by the graph view
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


UNRESOLVED_IDENTIFIER = "SID"


class NodeType(Enum):
    """Closed set of object types a directory record can decode to.

    Values are the type names stored in the cross-reference index.
    """
    USER = "User"
    GROUP = "Group"
    COMPUTER = "Computer"
    OU = "OU"
    DOMAIN = "Domain"
    GPO = "GPO"
    CONTAINER = "Container"
    FOREIGN_SECURITY_PRINCIPAL = "ForeignSecurityPrincipal"
    TRUST = "Trust"
    ROOT_CA = "RootCA"
    ENTERPRISE_CA = "EnterpriseCA"
    AIA_CA = "AIACA"
    NT_AUTH_STORE = "NTAuthStore"
    CERT_TEMPLATE = "CertTemplate"
    ISSUANCE_POLICY = "IssuancePolicy"
    UNKNOWN = "Unknown"


class EdgeType(Enum):
    """Types of relationships in the resolved graph.

    ACE right names map one-to-one onto members of this enum; structural
    relationships (membership, containment, links, delegation) come from
    the type-specific edge fields.
    """
    # Structure
    MEMBER_OF = "MemberOf"
    CONTAINS = "Contains"
    GP_LINK = "GPLink"
    TRUSTED_BY = "TrustedBy"

    # Delegation
    ALLOWED_TO_DELEGATE = "AllowedToDelegate"
    ALLOWED_TO_ACT = "AllowedToAct"
    HAS_SID_HISTORY = "HasSIDHistory"
    SQL_ADMIN = "SQLAdmin"

    # ACL-based permissions
    OWNS = "Owns"
    GENERIC_ALL = "GenericAll"
    GENERIC_WRITE = "GenericWrite"
    WRITE_OWNER = "WriteOwner"
    WRITE_DACL = "WriteDacl"
    ALL_EXTENDED_RIGHTS = "AllExtendedRights"
    FORCE_CHANGE_PASSWORD = "ForceChangePassword"
    ADD_MEMBER = "AddMember"
    ADD_SELF = "AddSelf"
    ADD_KEY_CREDENTIAL_LINK = "AddKeyCredentialLink"
    ADD_ALLOWED_TO_ACT = "AddAllowedToAct"
    WRITE_SPN = "WriteSPN"
    WRITE_ACCOUNT_RESTRICTIONS = "WriteAccountRestrictions"
    WRITE_GP_LINK = "WriteGPLink"
    READ_GMSA_PASSWORD = "ReadGMSAPassword"

    # Replication (DCSync)
    GET_CHANGES = "GetChanges"
    GET_CHANGES_ALL = "GetChangesAll"
    GET_CHANGES_IN_FILTERED_SET = "GetChangesInFilteredSet"

    # Certificate services
    ENROLL = "Enroll"
    AUTO_ENROLL = "AutoEnroll"
    WRITE_PKI_ENROLLMENT_FLAG = "WritePKIEnrollmentFlag"
    WRITE_PKI_NAME_FLAG = "WritePKINameFlag"
    PUBLISHED_TO = "PublishedTo"
    OID_GROUP_LINK = "OIDGroupLink"

    UNKNOWN = "Unknown"

    @classmethod
    def from_string(cls, s: str) -> "EdgeType":
        """Convert a right or relationship name to EdgeType."""
        normalized = s.strip().lower()
        for edge_type in cls:
            if edge_type.value.lower() == normalized:
                return edge_type
        return cls.UNKNOWN


@dataclass
class Ace:
    """One access-control edge: ``principal_sid`` holds ``right_name`` on the owning node.

    ``principal_type`` is empty until the resolver backfills it.
    """
    principal_sid: str
    right_name: str
    is_inherited: bool = False
    principal_type: str = ""

    def to_dict(self) -> dict:
        return {
            "PrincipalSID": self.principal_sid,
            "PrincipalType": self.principal_type,
            "RightName": self.right_name,
            "IsInherited": self.is_inherited,
        }


@dataclass
class Member:
    """Reference to another object by identifier and type name.

    Before resolution ``object_identifier`` may still hold a DN, a host name
    or a template name, depending on which edge list it sits in.
    """
    object_identifier: str
    object_type: str = ""

    def to_dict(self) -> dict:
        return {"ObjectIdentifier": self.object_identifier, "ObjectType": self.object_type}


@dataclass
class Link:
    """GPO link from a domain or OU; ``guid`` is resolved to the GPO identifier late."""
    guid: str
    is_enforced: bool = False

    def to_dict(self) -> dict:
        return {"GUID": self.guid, "IsEnforced": self.is_enforced}


@dataclass
class SPNTarget:
    """Service reachable through an SPN (e.g. MSSQLSvc)."""
    computer_sid: str
    port: int
    service: str

    def to_dict(self) -> dict:
        return {"ComputerSID": self.computer_sid, "Port": self.port, "Service": self.service}


@dataclass
class GPOChange:
    """Computers in scope of the GPOs linked to a domain or OU."""
    affected_computers: list[Member] = field(default_factory=list)
    local_admins: list[Member] = field(default_factory=list)
    remote_desktop_users: list[Member] = field(default_factory=list)
    dcom_users: list[Member] = field(default_factory=list)
    ps_remote_users: list[Member] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "AffectedComputers": [m.to_dict() for m in self.affected_computers],
            "LocalAdmins": [m.to_dict() for m in self.local_admins],
            "RemoteDesktopUsers": [m.to_dict() for m in self.remote_desktop_users],
            "DcomUsers": [m.to_dict() for m in self.dcom_users],
            "PSRemoteUsers": [m.to_dict() for m in self.ps_remote_users],
        }


@dataclass
class Trust:
    """Trust relationship read from a trustedDomain record."""
    target_domain_sid: str = UNRESOLVED_IDENTIFIER
    target_domain_name: str = ""
    is_transitive: bool = False
    sid_filtering_enabled: bool = False
    trust_attributes: int = 0
    trust_direction: str = "Disabled"
    trust_type: str = "Unknown"

    def to_dict(self) -> dict:
        return {
            "TargetDomainSid": self.target_domain_sid,
            "TargetDomainName": self.target_domain_name,
            "IsTransitive": self.is_transitive,
            "SidFilteringEnabled": self.sid_filtering_enabled,
            "TrustAttributes": self.trust_attributes,
            "TrustDirection": self.trust_direction,
            "TrustType": self.trust_type,
        }


@dataclass
class ADNode:
    """Base class for all decoded directory objects.

    Attributes:
        object_id: SID for security principals, GUID for other objects
        name: Display name (NAME@DOMAIN for most types)
        distinguished_name: Upper-cased DN
        domain: Upper-cased domain name
        node_type: Type of directory object
        properties: Type-specific attribute bag
        aces: Access-control edges in descriptor order
        is_acl_protected: Whether the DACL blocks inheritance
        is_deleted: Whether the record is a tombstone
        contained_by: Parent container, filled in by the resolver
    """
    object_id: str = UNRESOLVED_IDENTIFIER
    name: str = ""
    distinguished_name: str = ""
    domain: str = ""
    node_type: NodeType = NodeType.UNKNOWN
    properties: dict = field(default_factory=dict)
    aces: list[Ace] = field(default_factory=list)
    is_acl_protected: bool = False
    is_deleted: bool = False
    contained_by: Optional[Member] = None

    @property
    def is_resolved(self) -> bool:
        """Whether the node carries a real identifier."""
        return bool(self.object_id) and self.object_id != UNRESOLVED_IDENTIFIER

    @property
    def display_name(self) -> str:
        """Return a display-friendly name."""
        return self.name or self.distinguished_name or self.object_id

    def to_dict(self) -> dict:
        """Render the node in the ingest layout."""
        properties = {
            "name": self.name,
            "domain": self.domain,
            "distinguishedname": self.distinguished_name,
        }
        properties.update(self.properties)
        data = {
            "ObjectIdentifier": self.object_id,
            "Properties": properties,
            "Aces": [ace.to_dict() for ace in self.aces],
            "IsACLProtected": self.is_acl_protected,
            "IsDeleted": self.is_deleted,
            "ContainedBy": self.contained_by.to_dict() if self.contained_by else None,
        }
        data.update(self._edges_to_dict())
        return data

    def _edges_to_dict(self) -> dict:
        return {}


@dataclass
class User(ADNode):
    """User account (including group managed service accounts)."""
    allowed_to_delegate: list[Member] = field(default_factory=list)
    spn_targets: list[SPNTarget] = field(default_factory=list)
    has_sid_history: list[Member] = field(default_factory=list)
    primary_group_sid: str = ""

    def __post_init__(self):
        self.node_type = NodeType.USER

    def _edges_to_dict(self) -> dict:
        return {
            "AllowedToDelegate": [m.to_dict() for m in self.allowed_to_delegate],
            "SPNTargets": [t.to_dict() for t in self.spn_targets],
            "HasSIDHistory": [m.to_dict() for m in self.has_sid_history],
            "PrimaryGroupSID": self.primary_group_sid,
        }


@dataclass
class Group(ADNode):
    """Security or distribution group; ``members`` hold DNs until resolved."""
    members: list[Member] = field(default_factory=list)

    def __post_init__(self):
        self.node_type = NodeType.GROUP

    def _edges_to_dict(self) -> dict:
        return {"Members": [m.to_dict() for m in self.members]}


@dataclass
class Computer(ADNode):
    """Computer account.

    Additional Attributes:
        is_dc: Whether this is a Domain Controller
        allowed_to_delegate: Constrained delegation targets (host names until resolved)
        allowed_to_act: Principals allowed to act on behalf of other identities (RBCD)
    """
    is_dc: bool = False
    allowed_to_delegate: list[Member] = field(default_factory=list)
    allowed_to_act: list[Member] = field(default_factory=list)
    has_sid_history: list[Member] = field(default_factory=list)
    primary_group_sid: str = ""

    def __post_init__(self):
        self.node_type = NodeType.COMPUTER

    def _edges_to_dict(self) -> dict:
        return {
            "AllowedToDelegate": [m.to_dict() for m in self.allowed_to_delegate],
            "AllowedToAct": [m.to_dict() for m in self.allowed_to_act],
            "HasSIDHistory": [m.to_dict() for m in self.has_sid_history],
            "PrimaryGroupSID": self.primary_group_sid,
            "IsDC": self.is_dc,
        }


@dataclass
class Domain(ADNode):
    """Domain naming-context head."""
    links: list[Link] = field(default_factory=list)
    child_objects: list[Member] = field(default_factory=list)
    gpo_changes: GPOChange = field(default_factory=GPOChange)
    trusts: list[Trust] = field(default_factory=list)

    def __post_init__(self):
        self.node_type = NodeType.DOMAIN

    def _edges_to_dict(self) -> dict:
        return {
            "Links": [link.to_dict() for link in self.links],
            "ChildObjects": [m.to_dict() for m in self.child_objects],
            "GPOChanges": self.gpo_changes.to_dict(),
            "Trusts": [trust.to_dict() for trust in self.trusts],
        }


@dataclass
class OU(ADNode):
    """Organizational unit."""
    links: list[Link] = field(default_factory=list)
    child_objects: list[Member] = field(default_factory=list)
    gpo_changes: GPOChange = field(default_factory=GPOChange)

    def __post_init__(self):
        self.node_type = NodeType.OU

    def _edges_to_dict(self) -> dict:
        return {
            "Links": [link.to_dict() for link in self.links],
            "ChildObjects": [m.to_dict() for m in self.child_objects],
            "GPOChanges": self.gpo_changes.to_dict(),
        }


@dataclass
class Container(ADNode):
    """Plain container (CN=Users, CN=Computers...)."""
    child_objects: list[Member] = field(default_factory=list)

    def __post_init__(self):
        self.node_type = NodeType.CONTAINER

    def _edges_to_dict(self) -> dict:
        return {"ChildObjects": [m.to_dict() for m in self.child_objects]}


@dataclass
class GPO(ADNode):
    """Group policy container."""

    def __post_init__(self):
        self.node_type = NodeType.GPO


@dataclass
class ForeignSecurityPrincipal(ADNode):
    """Principal from another domain seen through CN=ForeignSecurityPrincipals."""

    def __post_init__(self):
        self.node_type = NodeType.FOREIGN_SECURITY_PRINCIPAL


@dataclass
class RootCA(ADNode):
    """Root certification authority (CN=Certification Authorities)."""

    def __post_init__(self):
        self.node_type = NodeType.ROOT_CA


@dataclass
class AIACA(ADNode):
    """Authority information access CA (CN=AIA)."""

    def __post_init__(self):
        self.node_type = NodeType.AIA_CA


@dataclass
class NTAuthStore(ADNode):
    """NTAuth certificate store (CN=NTAuthCertificates)."""

    def __post_init__(self):
        self.node_type = NodeType.NT_AUTH_STORE


@dataclass
class EnterpriseCA(ADNode):
    """Enrollment service; ``enabled_cert_templates`` hold template names until resolved."""
    enabled_cert_templates: list[Member] = field(default_factory=list)
    hosting_computer: str = ""

    def __post_init__(self):
        self.node_type = NodeType.ENTERPRISE_CA

    def _edges_to_dict(self) -> dict:
        return {
            "EnabledCertTemplates": [m.to_dict() for m in self.enabled_cert_templates],
            "HostingComputer": self.hosting_computer,
        }


@dataclass
class CertTemplate(ADNode):
    """Certificate template."""

    def __post_init__(self):
        self.node_type = NodeType.CERT_TEMPLATE


@dataclass
class IssuancePolicy(ADNode):
    """Issuance policy OID object; ``group_link`` holds a DN until resolved."""
    group_link: Optional[Member] = None

    def __post_init__(self):
        self.node_type = NodeType.ISSUANCE_POLICY

    def _edges_to_dict(self) -> dict:
        return {"GroupLink": self.group_link.to_dict() if self.group_link else None}


@dataclass
class ADEdge:
    """Directed relationship between two resolved objects.

    Attributes:
        source_id: Identifier of the principal or object the edge starts from
        target_id: Identifier of the object the edge points at
        edge_type: Type of relationship
        properties: Additional edge properties (e.g., inheritance info)

    Edges follow the flow of control: MemberOf goes member -> group, an ACE
    goes principal -> object, Contains goes parent -> child.
    """
    source_id: str
    target_id: str
    edge_type: EdgeType
    properties: dict = field(default_factory=dict)

    def __hash__(self):
        return hash((self.source_id, self.target_id, self.edge_type))

    def __eq__(self, other):
        if isinstance(other, ADEdge):
            return (self.source_id == other.source_id and
                    self.target_id == other.target_id and
                    self.edge_type == other.edge_type)
        return False
