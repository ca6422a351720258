"""
Shared utilities for the code generators (Python, TypeScript).
Handles file headers, deterministic ordering, identifier mangling and relative paths.
"""
import keyword
import os
from typing import Any, Dict, List, Mapping, Tuple

FILE_TIP_PY = '# This file is auto generated by grpc-code-gen, do not edit!'
FILE_TIP_TS = '// This file is auto generated by grpc-code-gen, do not edit!'


def sorted_items(mapping: Mapping[str, Any]) -> List[Tuple[str, Any]]:
    """Items ordered by key code points, the order every emitter uses."""
    return sorted(mapping.items(), key=lambda item: item[0])


def is_identifier(name: str) -> bool:
    return name.isidentifier() and not keyword.iskeyword(name)


def py_name(name: str) -> str:
    """Python-safe spelling of a proto identifier: keywords get a trailing underscore."""
    if keyword.iskeyword(name):
        return f"{name}_"
    return name


def py_dotted_name(full_name: str) -> str:
    return '.'.join(py_name(segment) for segment in full_name.split('.'))


def package_path(package: str) -> str:
    """'a.b.c' -> 'a/b/c'."""
    return package.replace('.', '/')


def relative_path(from_file: str, to_path: str) -> str:
    """Path of to_path relative to the directory of from_file, with forward slashes."""
    relative = os.path.relpath(to_path, os.path.dirname(from_file))
    return relative.replace(os.sep, '/')


def relative_import_prefix(module_path: str) -> str:
    """
    Leading dots that reach the base package from a generated module, given its
    path relative to the base directory ('helloworld/Greeter.py' -> '..').
    """
    depth = len(module_path.replace('\\', '/').split('/'))
    return '.' * depth


def indent(lines: List[str], level: int) -> List[str]:
    prefix = '    ' * level
    return [f"{prefix}{line}" if line else line for line in lines]


def package_dirs(file_paths: List[str]) -> List[str]:
    """Every directory (relative, '' for the base) that holds one of file_paths."""
    dirs = {''}
    for path in file_paths:
        parts = path.split('/')[:-1]
        for i in range(1, len(parts) + 1):
            dirs.add('/'.join(parts[:i]))
    return sorted(dirs)


def write_files(base_dir: str, files: Dict[str, Any]):
    """Write rendered files (str or bytes) below base_dir, creating directories."""
    for rel_path, content in sorted(files.items()):
        path = os.path.join(base_dir, *rel_path.split('/'))
        os.makedirs(os.path.dirname(path), exist_ok=True)
        if isinstance(content, bytes):
            with open(path, 'wb') as f:
                f.write(content)
        else:
            with open(path, 'w', encoding='utf-8', newline='\n') as f:
                f.write(content)
