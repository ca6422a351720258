"""
One module per service at <package path>/<Service>.py. Each unary method gets a
legacy coroutine (request, metadata, options) -> response and a V2 coroutine
taking keyword arguments -> CallResult(response, metadata). Streaming methods
are not supported by the call wrapper and are skipped.
"""
import logging
import re
from typing import List, Tuple

from schema_model import ProtoService, get_package_name
from type_resolver import TypeResolver
from generators.generator_utils import FILE_TIP_PY, package_path, py_dotted_name, py_name, relative_import_prefix

logger = logging.getLogger(__name__)


def service_module_path(service: ProtoService) -> str:
    package = get_package_name(service.full_name)
    if package:
        return f"{package_path(package)}/{service.name}.py"
    return f"{service.name}.py"


def accessor_name(service_name: str) -> str:
    """'UserService' -> 'get_user_service'."""
    snake = re.sub(r'(?<=[a-z0-9])([A-Z])', r'_\1', service_name)
    snake = re.sub(r'([A-Z]+)([A-Z][a-z])', r'\1_\2', snake)
    return f"get_{snake.lower()}"


def _method_lines(method_name: str, request_type: str, response_type: str) -> List[str]:
    name = py_name(method_name)
    return [
        f"    async def {name}(",
        '        self,',
        f"        request: types.{request_type},",
        '        metadata: _t.Optional[MetadataMap] = None,',
        '        options: _t.Optional[CallOptionsLike] = None,',
        f"    ) -> types.{response_type}:",
        f'        """Deprecated: use {method_name}V2."""',
        f"        return await self.handlers[{method_name!r}](request, metadata, options)",
        '',
        f"    async def {method_name}V2(",
        '        self,',
        '        *,',
        f"        request: types.{request_type},",
        '        metadata: _t.Optional[MetadataMap] = None,',
        '        options: _t.Optional[CallOptionsLike] = None,',
        '    ) -> CallResult:',
        f"        return await self.handlers[{method_name!r}].v2(request, metadata, options)",
    ]


def generate_service_module(service: ProtoService, resolver: TypeResolver) -> Tuple[str, str]:
    """(path relative to the base directory, module text) for one service."""
    module_path = service_module_path(service)
    dots = relative_import_prefix(module_path)
    package = get_package_name(service.full_name)
    class_name = py_name(service.name)

    lines = [
        FILE_TIP_PY,
        'from __future__ import annotations',
        '',
        'import typing as _t',
        '',
        'from grpc_runtime.call_options import CallOptionsLike',
        'from grpc_runtime.call_wrapper import CallResult, ServiceClient',
        'from grpc_runtime.metadata import MetadataMap',
        '',
        f"from {dots} import types",
        f"from {dots}get_grpc_client import code_gen_config, get_grpc_client",
        f"from {dots}grpc_obj import grpc_object",
        '',
        '',
        f"class {class_name}(ServiceClient):",
        f"    SERVICE_NAME = {service.full_name!r}",
        f"    FILE_NAME = {(service.filename or '').replace(chr(92), '/')!r}",
        f"    definition = grpc_object.service({service.full_name!r})",
        '    log_options = code_gen_config.log_options',
        '    call_options = code_gen_config.call_options',
    ]
    for method in sorted(service.methods, key=lambda m: m.name):
        if not method.is_unary:
            logger.warning("Skipping streaming method %s", method.full_name)
            continue
        request_type = py_dotted_name(resolver.resolve(method.request_type, package).name)
        response_type = py_dotted_name(resolver.resolve(method.response_type, package).name)
        lines.append('')
        lines += _method_lines(method.name, request_type, response_type)
    lines += [
        '',
        '',
        f"def {accessor_name(service.name)}() -> {class_name}:",
        f"    return get_grpc_client({class_name})",
    ]
    return module_path, '\n'.join(lines) + '\n'
