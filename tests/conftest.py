"""Shared fixtures built on the CORP.LOCAL corpus in builders.py."""

import pytest

from ldaphound.analysis.resolver import RelationshipResolver
from ldaphound.ingestion.parser import RecordParser
from ldaphound.ingestion.storage import MemoryStorage

from builders import DOMAIN, corp_records


@pytest.fixture
def storage():
    sink = MemoryStorage()
    for record in corp_records():
        sink.add(record)
    return sink


@pytest.fixture
def parsed(storage):
    """(results, index) straight out of the parser; index still writable."""
    parser = RecordParser(domain=DOMAIN, verbose=False)
    return parser.parse(storage, total=len(storage))


@pytest.fixture
def resolved(parsed):
    """Results after every resolver pass, plus the resolver that ran them."""
    results, index = parsed
    resolver = RelationshipResolver(domain=DOMAIN, view=index.freeze(), verbose=False)
    resolver.resolve(results)
    return results, resolver
