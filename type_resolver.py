"""
type_resolver.py
Resolves the type token of a field or method argument to a canonical reference.

Resolution order for a token T referenced from the symbol F:
  1. scalar keywords (the fixed 15-entry table below);
  2. dotted tokens are taken as already qualified (a leading '.' is dropped);
  3. scope chain: F itself, its package, each ancestor package, then the root;
     at every scope the message table is tested before the enum table;
  4. the schema root's global lookup by name;
  5. TypeResolutionError.
"""
from typing import Dict, Iterator, NamedTuple, Optional, Tuple

from codegen_errors import TypeResolutionError
from schema_model import ProtoField, ProtoMessage, SchemaRoot, join_name
from symbol_tables import SymbolTables


class ScalarType(NamedTuple):
    proto: str
    python: str
    typescript: str
    semantic: str


SCALAR_TYPES: Dict[str, ScalarType] = {
    'double': ScalarType('double', 'float', 'number', 'NumberSchema'),
    'float': ScalarType('float', 'float', 'number', 'NumberSchema'),
    'int32': ScalarType('int32', 'int', 'number', 'NumberSchema'),
    'int64': ScalarType('int64', 'int', 'number', 'NumberSchema'),
    'uint32': ScalarType('uint32', 'int', 'number', 'NumberSchema'),
    'uint64': ScalarType('uint64', 'int', 'number', 'NumberSchema'),
    'sint32': ScalarType('sint32', 'int', 'number', 'NumberSchema'),
    'sint64': ScalarType('sint64', 'int', 'number', 'NumberSchema'),
    'fixed32': ScalarType('fixed32', 'int', 'number', 'NumberSchema'),
    'fixed64': ScalarType('fixed64', 'int', 'number', 'NumberSchema'),
    'sfixed32': ScalarType('sfixed32', 'int', 'number', 'NumberSchema'),
    'sfixed64': ScalarType('sfixed64', 'int', 'number', 'NumberSchema'),
    'bool': ScalarType('bool', 'bool', 'boolean', 'BooleanSchema'),
    'string': ScalarType('string', 'str', 'string', 'StringSchema'),
    # bytes travel as base64 text in the JSON mapping
    'bytes': ScalarType('bytes', 'str', 'string', 'StringSchema'),
}

ARRAY_SEMANTIC = 'ArraySchemaWithGenerics'


def is_scalar(proto_type: str) -> bool:
    return proto_type in SCALAR_TYPES


class TypeReference(NamedTuple):
    proto_type: str
    # Scalar keyword for scalars, canonical dotted name (no leading dot) otherwise.
    name: str
    scalar: Optional[ScalarType] = None
    is_array: bool = False

    @property
    def is_scalar(self) -> bool:
        return self.scalar is not None

    @property
    def semantic(self) -> Optional[str]:
        """Semantic-schema counterpart; message/enum references only get one as array elements."""
        if self.scalar is not None:
            return self.scalar.semantic
        if self.is_array:
            return ARRAY_SEMANTIC
        return None


def scope_chain(scope: str, proto_type: str) -> Iterator[str]:
    """Candidate names for proto_type from the innermost scope out to the root."""
    segments = scope.split('.') if scope else []
    for i in range(len(segments), -1, -1):
        yield join_name('.'.join(segments[:i]), proto_type)


class TypeResolver:
    def __init__(self, tables: SymbolTables, root: Optional[SchemaRoot] = None):
        self.tables = tables
        self.root = root

    def resolve(self, proto_type: str, scope: str, is_array: bool = False) -> TypeReference:
        scalar = SCALAR_TYPES.get(proto_type)
        if scalar is not None:
            return TypeReference(proto_type, proto_type, scalar, is_array)
        if '.' in proto_type:
            return TypeReference(proto_type, proto_type.lstrip('.'), None, is_array)
        name = self._scope_chain(proto_type, scope)
        if name is None and self.root is not None:
            found = self.root.lookup_full_name(proto_type)
            if found is not None:
                name = found.lstrip('.')
        if name is None:
            raise TypeResolutionError(proto_type, scope)
        return TypeReference(proto_type, name, None, is_array)

    def resolve_field(self, field: ProtoField, message: ProtoMessage) -> TypeReference:
        # map values are not arrays
        return self.resolve(field.type, message.full_name, field.repeated and not field.is_map)

    def _scope_chain(self, proto_type: str, scope: str) -> Optional[str]:
        for candidate in scope_chain(scope, proto_type):
            if candidate in self.tables.messages or candidate in self.tables.enums:
                return candidate
        return None

    def qualify(self, proto_type: str, scope: str) -> Tuple[str, str]:
        """
        Strict resolution used when compiling descriptors: the result must be a
        known symbol. Returns ('message' | 'enum', full name without leading dot).
        Relative dotted names follow protobuf scoping (innermost scope first).
        """
        if proto_type.startswith('.'):
            candidates = [proto_type[1:]]
        else:
            candidates = list(scope_chain(scope, proto_type))
            if '.' not in proto_type and self.root is not None:
                found = self.root.lookup_full_name(proto_type)
                if found is not None:
                    candidates.append(found[1:])
        for candidate in candidates:
            if candidate in self.tables.messages:
                return 'message', candidate
            if candidate in self.tables.enums:
                return 'enum', candidate
        raise TypeResolutionError(proto_type, scope)
