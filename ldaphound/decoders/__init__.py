"""
Type Decoders
=============

One decoder per object type. Each takes ``(record, domain, index,
domain_sid)``, returns a typed node and enters it in the cross-reference
index.

Design Decisions:
-----------------
1. Domain and trust records are decoded by the parser in a first pass
   (``decode_domain`` returns the domain SID as well); everything else goes
   through NODE_DECODERS in a second pass with the SID already known
2. Decoders never raise for bad field data; the field keeps its default
"""

from .containers import decode_container, decode_domain, decode_gpo, decode_ou, decode_trust
from .pki import (
    decode_aia_ca, decode_cert_template, decode_enterprise_ca, decode_issuance_policy,
    decode_ntauth_store, decode_root_ca,
)
from .principals import decode_computer, decode_foreign_principal, decode_group, decode_user
from ..model.schemas import NodeType

NODE_DECODERS = {
    NodeType.USER: decode_user,
    NodeType.GROUP: decode_group,
    NodeType.COMPUTER: decode_computer,
    NodeType.OU: decode_ou,
    NodeType.GPO: decode_gpo,
    NodeType.CONTAINER: decode_container,
    NodeType.FOREIGN_SECURITY_PRINCIPAL: decode_foreign_principal,
    NodeType.ROOT_CA: decode_root_ca,
    NodeType.ENTERPRISE_CA: decode_enterprise_ca,
    NodeType.AIA_CA: decode_aia_ca,
    NodeType.NT_AUTH_STORE: decode_ntauth_store,
    NodeType.CERT_TEMPLATE: decode_cert_template,
    NodeType.ISSUANCE_POLICY: decode_issuance_policy,
}

__all__ = [
    "NODE_DECODERS",
    "decode_domain",
    "decode_trust",
]
