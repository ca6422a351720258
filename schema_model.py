"""
schema_model.py
Parsed representation of a set of .proto files. Symbols keep the type tokens exactly
as written in the source; resolving them is the job of type_resolver.py.

SchemaRoot is the reflection object handed to the generators: it lists every
service, method, message and enum in load order and answers global by-name lookups.
"""
from collections import OrderedDict
from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Tuple, Union


def get_package_name(full_name: str) -> str:
    """'a.b.Foo' -> 'a.b'; names without a dot live in the root package."""
    split = full_name.split('.')
    return '.'.join(split[:-1])


def join_name(scope: str, name: str) -> str:
    return f"{scope}.{name}" if scope else name


class ProtoField:
    def __init__(self, name: str, type: str, number: int, label: Optional[str] = None,
                 map_key_type: Optional[str] = None, oneof: Optional[str] = None,
                 options: Optional[Dict[str, Any]] = None, line: Optional[int] = None):
        self.name = name
        self.type = type
        self.number = number
        self.label = label
        self.map_key_type = map_key_type
        self.oneof = oneof
        self.options = options or {}
        self.line = line

    @property
    def repeated(self) -> bool:
        return self.label == 'repeated'

    @property
    def required(self) -> bool:
        return self.label == 'required'

    @property
    def is_map(self) -> bool:
        return self.map_key_type is not None

    def __repr__(self):
        return f"ProtoField(name={self.name!r}, type={self.type!r}, number={self.number!r}, label={self.label!r})"


class ProtoEnum:
    def __init__(self, name: str, values: Optional[Dict[str, int]] = None,
                 options: Optional[Dict[str, Any]] = None, line: Optional[int] = None):
        self.name = name
        # Insertion order is the declared order and is kept on output.
        self.values: Dict[str, int] = OrderedDict(values or {})
        self.options = options or {}
        self.line = line
        self.full_name = name
        self.file: Optional[str] = None

    def __repr__(self):
        return f"ProtoEnum(full_name={self.full_name!r}, values={dict(self.values)!r})"


class ProtoMessage:
    def __init__(self, name: str, fields: Optional[List[ProtoField]] = None,
                 messages: Optional[List['ProtoMessage']] = None, enums: Optional[List[ProtoEnum]] = None,
                 oneofs: Optional[List[str]] = None, options: Optional[Dict[str, Any]] = None,
                 line: Optional[int] = None):
        self.name = name
        self.fields = fields or []
        self.messages = messages or []
        self.enums = enums or []
        self.oneofs = oneofs or []
        self.options = options or {}
        self.line = line
        self.full_name = name
        self.file: Optional[str] = None

    def __repr__(self):
        return f"ProtoMessage(full_name={self.full_name!r}, fields={[f.name for f in self.fields]!r})"


class ProtoMethod:
    def __init__(self, name: str, request_type: str, response_type: str,
                 request_stream: bool = False, response_stream: bool = False,
                 options: Optional[Dict[str, Any]] = None, line: Optional[int] = None):
        self.name = name
        self.request_type = request_type
        self.response_type = response_type
        self.request_stream = request_stream
        self.response_stream = response_stream
        self.options = options or {}
        self.line = line
        self.full_name = name

    @property
    def is_unary(self) -> bool:
        return not (self.request_stream or self.response_stream)

    def __repr__(self):
        return f"ProtoMethod(full_name={self.full_name!r}, request_type={self.request_type!r}, response_type={self.response_type!r})"


class ProtoService:
    def __init__(self, name: str, methods: Optional[List[ProtoMethod]] = None,
                 options: Optional[Dict[str, Any]] = None, line: Optional[int] = None):
        self.name = name
        self.methods = methods or []
        self.options = options or {}
        self.line = line
        self.full_name = name
        self.file: Optional[str] = None
        # Path of the declaring file including its source directory name,
        # e.g. 'user-proto/user/v1/user.proto'.
        self.filename: Optional[str] = None

    def __repr__(self):
        return f"ProtoService(full_name={self.full_name!r}, methods={[m.name for m in self.methods]!r})"


class ProtoFile:
    def __init__(self, name: str, package: str = '', syntax: str = 'proto2',
                 imports: Optional[List[Tuple[str, Optional[str]]]] = None,
                 messages: Optional[List[ProtoMessage]] = None, enums: Optional[List[ProtoEnum]] = None,
                 services: Optional[List[ProtoService]] = None, options: Optional[Dict[str, Any]] = None,
                 source_path: Optional[str] = None):
        self.name = name
        self.package = package
        self.syntax = syntax
        self.imports = imports or []  # (import name, 'public' | 'weak' | None)
        self.messages = messages or []
        self.enums = enums or []
        self.services = services or []
        self.options = options or {}
        self.source_path = source_path or name

    def assign_full_names(self):
        """Set full_name/file on every declaration of this file (package.Outer.Inner)."""
        def walk_message(msg: ProtoMessage, scope: str):
            msg.full_name = join_name(scope, msg.name)
            msg.file = self.name
            for nested in msg.messages:
                walk_message(nested, msg.full_name)
            for enum in msg.enums:
                enum.full_name = join_name(msg.full_name, enum.name)
                enum.file = self.name

        for msg in self.messages:
            walk_message(msg, self.package)
        for enum in self.enums:
            enum.full_name = join_name(self.package, enum.name)
            enum.file = self.name
        for service in self.services:
            service.full_name = join_name(self.package, service.name)
            service.file = self.name
            service.filename = self.source_path
            for method in service.methods:
                method.full_name = join_name(service.full_name, method.name)

    def iter_messages(self) -> Iterator[ProtoMessage]:
        def walk(msg):
            yield msg
            for nested in msg.messages:
                yield from walk(nested)
        for msg in self.messages:
            yield from walk(msg)

    def iter_enums(self) -> Iterator[ProtoEnum]:
        yield from self.enums
        for msg in self.iter_messages():
            yield from msg.enums

    def __repr__(self):
        return f"ProtoFile(name={self.name!r}, package={self.package!r})"


class SchemaInspection(NamedTuple):
    services: List[ProtoService]
    methods: List[ProtoMethod]
    messages: List[ProtoMessage]
    enums: List[ProtoEnum]


Symbol = Union[ProtoMessage, ProtoEnum]


class _LookupNode:
    """One segment of the global name tree: a package, message or enum."""

    def __init__(self):
        self.children: Dict[str, '_LookupNode'] = OrderedDict()
        self.symbol: Optional[Symbol] = None

    def child(self, name: str) -> '_LookupNode':
        node = self.children.get(name)
        if node is None:
            node = _LookupNode()
            self.children[name] = node
        return node


class SchemaRoot:
    """
    The loaded schema. Files are kept dependencies-first, which is also the order
    services, methods, messages and enums are reported in.
    """

    def __init__(self, files: Optional[List[ProtoFile]] = None):
        self.files: List[ProtoFile] = list(files or [])
        self._lookup_root: Optional[_LookupNode] = None

    def get_file(self, name: str) -> Optional[ProtoFile]:
        for f in self.files:
            if f.name == name:
                return f
        return None

    def inspect_namespace(self) -> SchemaInspection:
        services, methods, messages, enums = [], [], [], []
        for f in self.files:
            for service in f.services:
                services.append(service)
                methods.extend(service.methods)
            messages.extend(f.iter_messages())
            enums.extend(f.iter_enums())
        return SchemaInspection(services, methods, messages, enums)

    def _build_lookup(self) -> _LookupNode:
        root = _LookupNode()
        for f in self.files:
            package_node = root
            for segment in (f.package.split('.') if f.package else []):
                package_node = package_node.child(segment)

            def add_message(parent: _LookupNode, msg: ProtoMessage):
                node = parent.child(msg.name)
                node.symbol = msg
                for enum in msg.enums:
                    node.child(enum.name).symbol = enum
                for nested in msg.messages:
                    add_message(node, nested)

            for msg in f.messages:
                add_message(package_node, msg)
            for enum in f.enums:
                package_node.child(enum.name).symbol = enum
        return root

    def lookup_type_or_enum(self, name: str) -> Optional[Symbol]:
        """
        Global lookup of a message or enum by (possibly dotted) name.
        A leading dot means an absolute path from the root. Otherwise the first
        segment is looked up at the root and, when absent there, depth-first in
        every nested namespace in declaration order.
        """
        if self._lookup_root is None:
            self._lookup_root = self._build_lookup()
        if name.startswith('.'):
            return _descend(self._lookup_root, name[1:].split('.'))
        return _search(self._lookup_root, name.split('.'))

    def lookup_full_name(self, name: str) -> Optional[str]:
        """Like lookup_type_or_enum but returns the fully-qualified name with a leading dot."""
        symbol = self.lookup_type_or_enum(name)
        if symbol is None:
            return None
        return '.' + symbol.full_name


def _descend(node: _LookupNode, path: List[str]) -> Optional[Symbol]:
    for segment in path:
        node = node.children.get(segment)
        if node is None:
            return None
    return node.symbol


def _search(node: _LookupNode, path: List[str]) -> Optional[Symbol]:
    if path[0] in node.children:
        return _descend(node, path)
    for child in node.children.values():
        found = _search(child, path)
        if found is not None:
            return found
    return None
