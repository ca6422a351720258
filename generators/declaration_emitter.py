"""
Shared walk of the namespace tree for the type declaration generators.

Every generator emits a scope the same way: messages sorted by local name, then
enums sorted by local name, then child scopes sorted by segment name. Fields keep
their declared order and enum values their declared order.
"""
from typing import List, NamedTuple, Optional, Tuple

from namespace_tree import NamespaceNode
from schema_model import ProtoEnum, ProtoMessage
from type_resolver import TypeReference, TypeResolver
from generators.generator_utils import sorted_items


class FieldDeclaration(NamedTuple):
    name: str
    required: bool
    ref: TypeReference
    # scalar keyword of the key for map fields
    map_key: Optional[str] = None

    @property
    def is_map(self) -> bool:
        return self.map_key is not None


def resolve_fields(message: ProtoMessage, resolver: TypeResolver) -> List[FieldDeclaration]:
    """Resolve every field of message from the message's own scope."""
    return [
        FieldDeclaration(field.name, field.required, resolver.resolve_field(field, message), field.map_key_type)
        for field in message.fields
    ]


class ScopeContents(NamedTuple):
    messages: List[Tuple[str, ProtoMessage]]
    enums: List[Tuple[str, ProtoEnum]]
    nested: List[Tuple[str, NamespaceNode]]


def scope_contents(node: NamespaceNode) -> ScopeContents:
    return ScopeContents(sorted_items(node.messages), sorted_items(node.enums), sorted_items(node.nested))
