import pytest

from proto_parser import parse_proto
from well_known_protos import WELL_KNOWN_PROTOS, is_well_known


@pytest.mark.parametrize('name', sorted(WELL_KNOWN_PROTOS))
def test_bundled_sources_parse(name):
    proto_file = parse_proto(WELL_KNOWN_PROTOS[name], name)
    assert proto_file.package == 'google.protobuf'
    assert proto_file.messages


def test_is_well_known():
    assert is_well_known('google/protobuf/timestamp.proto')
    assert not is_well_known('google/api/annotations.proto')
