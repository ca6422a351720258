"""
Python declarations: types.py and, in semantic mode, json_semantic_types.py.

Package segments become plain namespace classes, messages become TypedDict
classes and enums become IntEnum classes. A child scope named like a message of
the same level (the scope of its nested types) is emitted inside that message's
class body, so 'pkg.Outer.Inner' is reachable as types.pkg.Outer.Inner.
Annotations are postponed, so declaration order never matters.
"""
from typing import List, Optional

from namespace_tree import NamespaceNode
from schema_model import ProtoEnum, ProtoMessage
from type_resolver import TypeResolver
from generators.declaration_emitter import FieldDeclaration, resolve_fields, scope_contents
from generators.generator_utils import FILE_TIP_PY, indent, is_identifier, py_dotted_name, py_name

HEADER = [
    FILE_TIP_PY,
    'from __future__ import annotations',
    '',
    'import enum as _enum',
    'import typing as _t',
    '',
    'import typing_extensions as _te',
]

SEMANTIC_IMPORTS = [
    '',
    'from grpc_runtime import json_semantic as _js',
    'from grpc_runtime.json_semantic import ICase',
]


def py_field_type(decl: FieldDeclaration, json_semantic: bool = False) -> str:
    ref = decl.ref
    py_type = ref.scalar.python if ref.is_scalar else py_dotted_name(ref.name)
    if decl.is_map:
        annotation = f"_t.Dict[str, {py_type}]"
    else:
        semantic = None
        if json_semantic and ref.semantic:
            semantic = f"_js.{ref.semantic}" if ref.is_scalar else f"_js.{ref.semantic}[{py_type}]"
        element = f"_t.Union[{py_type}, {semantic}]" if semantic else py_type
        annotation = f"_t.List[{element}]" if ref.is_array else element
    if not decl.required:
        annotation = f"_te.NotRequired[{annotation}]"
    return annotation


class PythonDeclarationEmitter:
    def __init__(self, resolver: TypeResolver, json_semantic: bool = False):
        self.resolver = resolver
        self.json_semantic = json_semantic

    def emit_scope(self, node: NamespaceNode) -> List[List[str]]:
        """Declaration blocks of one scope, each a list of unindented lines."""
        contents = scope_contents(node)
        blocks = []
        for name, message in contents.messages:
            blocks.append(self.emit_message(message, node.nested.get(name)))
        for _, enum in contents.enums:
            blocks.append(self.emit_enum(enum))
        for name, child in contents.nested:
            if name in node.messages:
                continue
            blocks.append(self.emit_namespace(name, child))
        return blocks

    def emit_body(self, node: Optional[NamespaceNode], lines: List[str]) -> List[str]:
        body = list(lines)
        if node is not None:
            for block in self.emit_scope(node):
                if body:
                    body.append('')
                body.extend(block)
        return indent(body or ['pass'], 1)

    def emit_message(self, message: ProtoMessage, nested: Optional[NamespaceNode]) -> List[str]:
        name = py_name(message.name)
        fields = resolve_fields(message, self.resolver)
        if all(is_identifier(decl.name) and not decl.name.startswith('__') for decl in fields):
            header = f"class {name}(_te.TypedDict):"
            lines = [f"{decl.name}: {py_field_type(decl, self.json_semantic)}" for decl in fields]
        else:
            # Field names that are not identifiers need the functional form.
            entries = ', '.join(f"{decl.name!r}: {py_field_type(decl, self.json_semantic)!r}" for decl in fields)
            header = f"class {name}(_te.TypedDict({name!r}, {{{entries}}})):"
            lines = []
        return [header] + self.emit_body(nested, lines)

    def emit_enum(self, enum: ProtoEnum) -> List[str]:
        name = py_name(enum.name)
        if all(is_identifier(key) and not key.startswith('_') for key in enum.values):
            lines = [f"{key} = {value}" for key, value in enum.values.items()]
            return [f"class {name}(_enum.IntEnum):"] + indent(lines or ['pass'], 1)
        members = ', '.join(f"({key!r}, {value})" for key, value in enum.values.items())
        return [f"{name} = _enum.IntEnum({name!r}, [{members}])"]

    def emit_namespace(self, name: str, node: NamespaceNode) -> List[str]:
        return [f"class {py_name(name)}:"] + self.emit_body(node, [])

    def emit_module(self, node: NamespaceNode, header: List[str]) -> str:
        lines = list(header)
        for block in self.emit_scope(node):
            lines += ['', ''] + block
        return '\n'.join(lines) + '\n'


def generate_python_types(node: NamespaceNode, resolver: TypeResolver) -> str:
    """Contents of types.py."""
    return PythonDeclarationEmitter(resolver).emit_module(node, HEADER)


def generate_python_semantic_types(node: NamespaceNode, resolver: TypeResolver) -> str:
    """Contents of json_semantic_types.py: every field also accepts its semantic schema."""
    return PythonDeclarationEmitter(resolver, json_semantic=True).emit_module(node, HEADER + SEMANTIC_IMPORTS)
