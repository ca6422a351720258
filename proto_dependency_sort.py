"""
Dependency sort for ProtoFiles based on their imports.
Raises an error if a cycle is detected.
"""
from typing import Dict, List

from codegen_errors import DependencyCycleError
from schema_model import ProtoFile


def topological_sort_proto_files(files: Dict[str, ProtoFile]) -> List[ProtoFile]:
    """
    Given a dict of import name -> ProtoFile, returns a list of ProtoFiles sorted so that
    dependencies come first. Imports that are not in the dict are ignored here; the loader
    validates them. Raises DependencyCycleError if a cycle is detected.
    """
    visited = set()
    temp_mark = set()
    result = []

    def visit(name: str):
        if name in visited:
            return
        if name in temp_mark:
            raise DependencyCycleError(f"Cycle detected involving {name}")
        temp_mark.add(name)
        proto_file = files[name]
        for dep_name, _ in proto_file.imports:
            if dep_name in files:
                visit(dep_name)
        temp_mark.remove(name)
        visited.add(name)
        result.append(proto_file)

    for name in sorted(files):
        visit(name)
    return result
