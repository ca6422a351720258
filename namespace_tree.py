"""
namespace_tree.py
Builds the nested namespace tree the declaration emitters walk. Each node is one
package segment; a symbol sits in the node of its package (full_name minus the
last segment), so a nested message's package includes its parent messages.
"""
from typing import Dict, Iterable, List, Optional

from schema_model import ProtoEnum, ProtoMessage, get_package_name


class NamespaceNode:
    def __init__(self, name: str = ''):
        self.name = name
        self.messages: Dict[str, ProtoMessage] = {}
        self.enums: Dict[str, ProtoEnum] = {}
        self.nested: Dict[str, 'NamespaceNode'] = {}

    def child(self, segment: str) -> 'NamespaceNode':
        """Return the child node for segment, creating it when missing."""
        node = self.nested.get(segment)
        if node is None:
            node = NamespaceNode(segment)
            self.nested[segment] = node
        return node

    def find(self, path: str) -> Optional['NamespaceNode']:
        node = self
        for segment in split_package(path):
            node = node.nested.get(segment)
            if node is None:
                return None
        return node

    def is_empty(self) -> bool:
        return not (self.messages or self.enums or self.nested)

    def __eq__(self, other):
        if not isinstance(other, NamespaceNode):
            return NotImplemented
        return (
            self.name == other.name
            and {k: v.full_name for k, v in self.messages.items()} == {k: v.full_name for k, v in other.messages.items()}
            and {k: v.full_name for k, v in self.enums.items()} == {k: v.full_name for k, v in other.enums.items()}
            and self.nested == other.nested
        )

    def __repr__(self):
        return (f"NamespaceNode(name={self.name!r}, messages={sorted(self.messages)!r}, "
                f"enums={sorted(self.enums)!r}, nested={sorted(self.nested)!r})")


def split_package(package: str) -> List[str]:
    return package.split('.') if package else []


def build_namespace_tree(messages: Iterable[ProtoMessage], enums: Iterable[ProtoEnum]) -> NamespaceNode:
    """
    Place every symbol under the node of its package, creating intermediate
    nodes as needed. Symbols without a package attach to the root. On a
    duplicate local name within one node the last symbol inserted wins.
    """
    root = NamespaceNode()

    def node_for(full_name: str) -> NamespaceNode:
        node = root
        for segment in split_package(get_package_name(full_name)):
            node = node.child(segment)
        return node

    for msg in messages:
        node_for(msg.full_name).messages[msg.name] = msg
    for enum in enums:
        node_for(enum.full_name).enums[enum.name] = enum
    return root
