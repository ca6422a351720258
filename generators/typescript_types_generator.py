"""
TypeScript declarations for the TypeScript target: types.ts and, in semantic
mode, jsonSemanticTypes.ts. Messages become interfaces, enums become enums and
package segments become nested namespaces.
"""
from namespace_tree import NamespaceNode
from type_resolver import TypeResolver
from generators.declaration_emitter import FieldDeclaration, resolve_fields, scope_contents
from generators.generator_utils import FILE_TIP_TS

SEMANTIC_IMPORT = "import { ArraySchemaWithGenerics, BooleanSchema, NumberSchema, StringSchema } from 'json-semantic';"

ICASE_INTERFACE = """
export interface ICase<Request, Response> {
    id: string;
    name: string;
    desc?: string;
    request: Request;
    response?: Response;
    error?: {
        code: number,
        details: string,
        metadata: {
            internalRepr: {}
        }
    }
}
"""


def ts_field_type(decl: FieldDeclaration, json_semantic: bool = False) -> str:
    ref = decl.ref
    ts_type = ref.scalar.typescript if ref.is_scalar else ref.name
    if decl.is_map:
        return f"{{ [key: string]: {ts_type} }}"
    semantic = None
    if json_semantic and ref.semantic:
        semantic = ref.semantic if ref.is_scalar else f"{ref.semantic}<{ts_type}>"
    if ref.is_array:
        if semantic:
            return f"Array<{ts_type} | {semantic}>"
        return f"{ts_type}[]"
    if semantic:
        return f"{ts_type} | {semantic}"
    return ts_type


def generate_typescript_declarations(node: NamespaceNode, resolver: TypeResolver, json_semantic: bool = False,
                                     depth: int = 0) -> str:
    text = ''
    space = ' ' * (depth * 2)
    contents = scope_contents(node)
    if contents.messages:
        blocks = []
        for name, message in contents.messages:
            lines = [f"{space}export interface {name} {{"]
            for decl in resolve_fields(message, resolver):
                optional = '' if decl.required else '?'
                lines.append(f"{space}  '{decl.name}'{optional}: {ts_field_type(decl, json_semantic)};")
            lines.append(f"{space}}}")
            blocks.append('\n'.join(lines) + '\n')
        text += '\n\n'.join(blocks) + '\n\n'
    if contents.enums:
        blocks = []
        for name, enum in contents.enums:
            lines = [f"{space}export enum {name} {{"]
            lines += [f"{space}  {key} = {value}," for key, value in enum.values.items()]
            lines.append(f"{space}}}")
            blocks.append('\n'.join(lines) + '\n')
        text += '\n\n'.join(blocks) + '\n\n'
    for name, child in contents.nested:
        text += f"{space}export namespace {name} {{\n"
        text += generate_typescript_declarations(child, resolver, json_semantic, depth + 1)
        text += f"{space}}}\n"
    return text


def generate_typescript_types(node: NamespaceNode, resolver: TypeResolver) -> str:
    """Contents of types.ts."""
    return FILE_TIP_TS + '\n' + generate_typescript_declarations(node, resolver)


def generate_typescript_semantic_types(node: NamespaceNode, resolver: TypeResolver) -> str:
    """Contents of jsonSemanticTypes.ts."""
    return (FILE_TIP_TS + '\n' + SEMANTIC_IMPORT + '\n\n'
            + generate_typescript_declarations(node, resolver, json_semantic=True)
            + ICASE_INTERFACE)
