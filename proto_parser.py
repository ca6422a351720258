"""
proto_parser.py
Lark grammar for .proto sources (proto2, proto3 and editions) and the transformer
that turns a parse tree into schema_model objects.
"""
from lark import Lark, Token, Transformer, v_args
from lark.exceptions import UnexpectedInput, VisitError

from codegen_errors import ProtoSyntaxError
from schema_model import ProtoEnum, ProtoField, ProtoFile, ProtoMessage, ProtoMethod, ProtoService

grammar = r"""
    start: _statement*

    _statement: syntax
              | edition
              | package
              | import_stmt
              | option_stmt
              | message
              | enum_def
              | service
              | extend
              | ";"

    syntax: "syntax" "=" string ";"
    edition: "edition" "=" string ";"
    package: "package" TYPE_NAME ";"
    import_stmt: "import" IMPORT_KIND? string ";"
    IMPORT_KIND: "weak" | "public"

    option_stmt: "option" option_name "=" constant ";"
    option_name: (NAME | "(" TYPE_NAME ")") ("." NAME)*

    constant: TYPE_NAME         -> const_ident
            | "-" TYPE_NAME     -> const_neg_ident
            | INT               -> const_int
            | FLOAT             -> const_float
            | string            -> const_string
            | aggregate         -> const_aggregate
    aggregate: "{" agg_field* "}"
             | "<" agg_field* ">"
    agg_field: agg_key ":" _agg_value _agg_sep?
             | agg_key ":"? aggregate _agg_sep?
    agg_key: NAME | "[" TYPE_NAME "]"
    _agg_value: _agg_scalar | agg_list
    _agg_scalar: TYPE_NAME | agg_neg | INT | FLOAT | agg_strings
    agg_neg: "-" TYPE_NAME
    agg_strings: STRING+
    agg_list: "[" (_agg_item ("," _agg_item)*)? "]"
    _agg_item: _agg_scalar | aggregate
    _agg_sep: "," | ";"
    string: STRING+

    message: "message" NAME message_body
    message_body: "{" _message_element* "}"
    _message_element: field
                    | map_field
                    | oneof
                    | message
                    | enum_def
                    | extend
                    | extensions
                    | reserved
                    | option_stmt
                    | ";"

    field: label? TYPE_NAME NAME "=" INT field_options? ";"
    label: REPEATED | OPTIONAL | REQUIRED
    REPEATED: "repeated"
    OPTIONAL: "optional"
    REQUIRED: "required"
    map_field: "map" "<" TYPE_NAME "," TYPE_NAME ">" NAME "=" INT field_options? ";"
    oneof: "oneof" NAME "{" _oneof_element* "}"
    _oneof_element: oneof_field | option_stmt | ";"
    oneof_field: TYPE_NAME NAME "=" INT field_options? ";"
    field_options: "[" field_option ("," field_option)* "]"
    field_option: option_name "=" constant

    extensions: "extensions" ranges field_options? ";"
    reserved: "reserved" (ranges | reserved_names) ";"
    ranges: range ("," range)*
    range: INT ("to" (INT | MAX))?
    MAX: "max"
    reserved_names: (string | NAME) ("," (string | NAME))*

    enum_def: "enum" NAME "{" _enum_element* "}"
    _enum_element: enum_value | option_stmt | reserved | ";"
    enum_value: NAME "=" INT field_options? ";"

    service: "service" NAME "{" _service_element* "}"
    _service_element: rpc | option_stmt | ";"
    rpc: "rpc" NAME "(" STREAM? TYPE_NAME ")" "returns" "(" STREAM? TYPE_NAME ")" rpc_tail
    rpc_tail: ";"
            | "{" (option_stmt | ";")* "}"
    STREAM: "stream"

    extend: "extend" TYPE_NAME "{" (field | ";")* "}"

    NAME: /[A-Za-z_][A-Za-z0-9_]*/
    TYPE_NAME: /\.?[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*/
    INT: /[-+]?(0[xX][0-9a-fA-F]+|[0-9]+)/
    FLOAT.2: /[-+]?([0-9]+\.[0-9]*([eE][-+]?[0-9]+)?|[0-9]+[eE][-+]?[0-9]+|\.[0-9]+([eE][-+]?[0-9]+)?)/
    STRING: /"(?:[^"\\\n]|\\.)*"/ | /'(?:[^'\\\n]|\\.)*'/
    LINE_COMMENT: /\/\/[^\n]*/
    BLOCK_COMMENT: /\/\*[\s\S]*?\*\//

    %import common.WS
    %ignore WS
    %ignore LINE_COMMENT
    %ignore BLOCK_COMMENT
"""

parser = Lark(
    grammar,
    start='start',
    parser='lalr',
    propagate_positions=True,
)


def parse_int(text: str) -> int:
    """Integer literal in protobuf syntax: decimal, 0x hex or leading-zero octal."""
    sign = 1
    if text[0] in '+-':
        sign = -1 if text[0] == '-' else 1
        text = text[1:]
    if text[:2] in ('0x', '0X'):
        return sign * int(text[2:], 16)
    if len(text) > 1 and text[0] == '0':
        return sign * int(text[1:], 8)
    return sign * int(text)


def _unquote(token: str) -> str:
    body = token[1:-1]
    return body.encode('latin-1', 'backslashreplace').decode('unicode_escape')


class _Option:
    def __init__(self, name, value):
        self.name = name
        self.value = value


class _Import:
    def __init__(self, name, kind):
        self.name = name
        self.kind = kind


class _Label:
    def __init__(self, value):
        self.value = value


class _Oneof:
    def __init__(self, name, fields, options):
        self.name = name
        self.fields = fields
        self.options = options


class _Ignored:
    """Parsed but not part of the model: reserved, extensions, extend blocks."""


_IGNORED = _Ignored()


def _collect_options(items):
    return {item.name: item.value for item in items if isinstance(item, _Option)}


@v_args(inline=True)
class ProtoTransformer(Transformer):
    """Builds schema_model objects bottom-up. Full names are assigned by the loader."""

    def __init__(self, file_name: str):
        super().__init__()
        self.file_name = file_name

    # --- literals ---
    def string(self, *tokens):
        return ''.join(_unquote(str(t)) for t in tokens)

    def const_ident(self, token):
        text = str(token)
        if text == 'true':
            return True
        if text == 'false':
            return False
        if text in ('inf', 'nan'):
            return float(text)
        return text

    def const_neg_ident(self, token):
        text = str(token)
        if text in ('inf', 'nan'):
            return -float(text)
        return f"-{text}"

    def const_int(self, token):
        return parse_int(str(token))

    def const_float(self, token):
        return float(str(token))

    def const_string(self, value):
        return value

    def const_aggregate(self, value):
        return value

    # Aggregate literals are kept as normalised text format: '{key: value ...}'.
    def aggregate(self, *fields):
        return '{' + ' '.join(fields) + '}'

    def agg_field(self, key, value):
        return f"{key}: {value}"

    def agg_key(self, token):
        return f"[{token}]" if token.type == 'TYPE_NAME' else str(token)

    def agg_neg(self, token):
        return f"-{token}"

    def agg_strings(self, *tokens):
        return ' '.join(str(t) for t in tokens)

    def agg_list(self, *items):
        return '[' + ', '.join(str(item) for item in items) + ']'

    def option_name(self, *parts):
        head = str(parts[0])
        if head.startswith('.'):
            head = head[1:]
        # Parenthesised extension names are kept in parentheses, as written.
        name = head if parts[0].type == 'NAME' else f"({head})"
        return '.'.join([name] + [str(p) for p in parts[1:]])

    # --- file level ---
    def syntax(self, value):
        return ('syntax', value)

    def edition(self, value):
        return ('edition', value)

    def package(self, token):
        return ('package', str(token))

    def import_stmt(self, *items):
        kind = None
        if isinstance(items[0], Token) and items[0].type == 'IMPORT_KIND':
            kind = str(items[0])
            items = items[1:]
        return _Import(items[0], kind)

    def option_stmt(self, name, value):
        return _Option(name, value)

    def field_option(self, name, value):
        return _Option(name, value)

    def field_options(self, *options):
        return _collect_options(options)

    # --- messages ---
    def label(self, token):
        return _Label(str(token))

    def field(self, *items):
        items = list(items)
        label = None
        if isinstance(items[0], _Label):
            label = items.pop(0).value
        type_token, name_token, number_token = items[0], items[1], items[2]
        options = items[3] if len(items) > 3 else {}
        return ProtoField(str(name_token), str(type_token), parse_int(str(number_token)), label=label,
                          options=options, line=name_token.line)

    def map_field(self, key_type, value_type, name_token, number_token, options=None):
        return ProtoField(str(name_token), str(value_type), parse_int(str(number_token)), label='repeated',
                          map_key_type=str(key_type), options=options or {}, line=name_token.line)

    def oneof_field(self, type_token, name_token, number_token, options=None):
        return ProtoField(str(name_token), str(type_token), parse_int(str(number_token)),
                          options=options or {}, line=name_token.line)

    def oneof(self, name_token, *items):
        fields = [i for i in items if isinstance(i, ProtoField)]
        return _Oneof(str(name_token), fields, _collect_options(items))

    def message_body(self, *items):
        return items

    def message(self, name_token, body):
        msg = ProtoMessage(str(name_token), line=name_token.line)
        for item in body:
            if isinstance(item, ProtoField):
                msg.fields.append(item)
            elif isinstance(item, _Oneof):
                msg.oneofs.append(item.name)
                for f in item.fields:
                    f.oneof = item.name
                    msg.fields.append(f)
            elif isinstance(item, ProtoMessage):
                msg.messages.append(item)
            elif isinstance(item, ProtoEnum):
                msg.enums.append(item)
        msg.options = _collect_options(body)
        return msg

    def extensions(self, *items):
        return _IGNORED

    def reserved(self, *items):
        return _IGNORED

    def extend(self, *items):
        return _IGNORED

    def ranges(self, *items):
        return items

    def range(self, *items):
        return items

    def reserved_names(self, *items):
        return items

    # --- enums ---
    def enum_value(self, name_token, number_token, options=None):
        return (str(name_token), parse_int(str(number_token)))

    def enum_def(self, name_token, *items):
        enum = ProtoEnum(str(name_token), line=name_token.line)
        for item in items:
            if isinstance(item, tuple):
                enum.values[item[0]] = item[1]
        enum.options = _collect_options(items)
        return enum

    # --- services ---
    def rpc_tail(self, *items):
        return _collect_options(items)

    def rpc(self, name_token, *items):
        items = list(items)
        request_stream = isinstance(items[0], Token) and items[0].type == 'STREAM'
        if request_stream:
            items.pop(0)
        request_type = str(items.pop(0))
        response_stream = isinstance(items[0], Token) and items[0].type == 'STREAM'
        if response_stream:
            items.pop(0)
        response_type = str(items.pop(0))
        options = items[0] if items else {}
        return ProtoMethod(str(name_token), request_type, response_type, request_stream=request_stream,
                           response_stream=response_stream, options=options, line=name_token.line)

    def service(self, name_token, *items):
        methods = [i for i in items if isinstance(i, ProtoMethod)]
        return ProtoService(str(name_token), methods=methods, options=_collect_options(items), line=name_token.line)

    def start(self, *items):
        proto_file = ProtoFile(self.file_name)
        for item in items:
            if isinstance(item, tuple) and item[0] == 'syntax':
                proto_file.syntax = item[1]
            elif isinstance(item, tuple) and item[0] == 'edition':
                proto_file.syntax = 'editions'
            elif isinstance(item, tuple) and item[0] == 'package':
                proto_file.package = item[1]
            elif isinstance(item, _Import):
                proto_file.imports.append((item.name, item.kind))
            elif isinstance(item, ProtoMessage):
                proto_file.messages.append(item)
            elif isinstance(item, ProtoEnum):
                proto_file.enums.append(item)
            elif isinstance(item, ProtoService):
                proto_file.services.append(item)
        proto_file.options = _collect_options(items)
        return proto_file


def parse_proto(text: str, file_name: str = '<string>') -> ProtoFile:
    """Parse .proto source text into a ProtoFile (full names not yet assigned)."""
    try:
        tree = parser.parse(text)
    except UnexpectedInput as exc:
        raise ProtoSyntaxError(file_name, f"unexpected input at column {exc.column}", line=exc.line) from exc
    try:
        return ProtoTransformer(file_name).transform(tree)
    except VisitError as exc:
        raise ProtoSyntaxError(file_name, str(exc.orig_exc)) from exc
