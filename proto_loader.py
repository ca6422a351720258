# proto_loader.py
# Collects .proto files from local directories or git repositories, resolves their
# imports and returns the SchemaRoot used by the generators.
import logging
import os
import shutil
import subprocess
from typing import Callable, Dict, List, Optional, Sequence
from urllib.parse import urlsplit, urlunsplit

from codegen_errors import SchemaConfigError
from proto_dependency_sort import topological_sort_proto_files
from proto_parser import parse_proto
from schema_model import ProtoFile, SchemaRoot
from well_known_protos import WELL_KNOWN_PROTOS, is_well_known

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = os.path.join(os.getcwd(), '.grpc-code-gen')
MIN_SOURCES = 1


def is_git_url(source: str) -> bool:
    return (
        source.startswith(('http://', 'https://', 'ssh://', 'git@', 'git://'))
        or source.endswith('.git')
    )


def with_access_token(url: str, access_token: Optional[str]) -> str:
    """Embed an access token into an https clone URL."""
    if not access_token:
        return url
    parts = urlsplit(url)
    if parts.scheme not in ('http', 'https'):
        return url
    host = parts.netloc.rsplit('@', 1)[-1]
    return urlunsplit((parts.scheme, f"oauth2:{access_token}@{host}", parts.path, parts.query, parts.fragment))


def repo_dir_name(url: str) -> str:
    name = url.rstrip('/').replace(':', '/').split('/')[-1]
    if name.endswith('.git'):
        name = name[:-4]
    return name


def fetch_git_source(url: str, cache_dir: str, branch: Optional[str] = None,
                     access_token: Optional[str] = None) -> str:
    """Shallow-clone a repository into <cache_dir>/repos/<name> and return that directory."""
    dest = os.path.join(cache_dir, 'repos', repo_dir_name(url))
    if os.path.exists(dest):
        shutil.rmtree(dest)
    os.makedirs(os.path.dirname(dest), exist_ok=True)
    cmd = ['git', 'clone', '--depth', '1']
    if branch:
        cmd += ['--branch', branch]
    cmd += [with_access_token(url, access_token), dest]
    logger.info("Cloning %s%s", url, f" ({branch})" if branch else '')
    try:
        subprocess.run(cmd, check=True, capture_output=True, text=True)
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or '').strip()
        if access_token:
            stderr = stderr.replace(access_token, '***')
        raise SchemaConfigError(f"Failed to clone {url}: {stderr}") from exc
    return dest


def collect_proto_files(root_dir: str) -> List[str]:
    """Paths of every .proto file under root_dir, relative to it, in sorted order."""
    found = []
    for dirpath, dirnames, filenames in os.walk(root_dir):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith('.'))
        for filename in sorted(filenames):
            if filename.endswith('.proto'):
                rel = os.path.relpath(os.path.join(dirpath, filename), root_dir)
                found.append(rel.replace(os.sep, '/'))
    return found


def load_proto_file(path: str, name: str, source_root: Optional[str] = None) -> ProtoFile:
    with open(path, 'r', encoding='utf-8') as f:
        text = f.read()
    proto_file = parse_proto(text, name)
    if source_root:
        proto_file.source_path = f"{os.path.basename(os.path.normpath(source_root))}/{name}"
    return proto_file


def load_schema(sources: Sequence[str], branch: Optional[str] = None, access_token: Optional[str] = None,
                cache_dir: str = DEFAULT_CACHE_DIR,
                resolve_path: Optional[Callable[[str], str]] = None) -> SchemaRoot:
    """
    Load every .proto file of the given sources (directories or git URLs).

    Raises SchemaConfigError when fewer than MIN_SOURCES sources are given, when a
    source is not a directory, or when an import is neither loaded nor a bundled
    well-known type.
    """
    if len(sources) < MIN_SOURCES:
        raise SchemaConfigError(f"At least {MIN_SOURCES} proto source is required, got {len(sources)}")

    files: Dict[str, ProtoFile] = {}
    for source in sources:
        root_dir = fetch_git_source(source, cache_dir, branch, access_token) if is_git_url(source) else source
        if not os.path.isdir(root_dir):
            raise SchemaConfigError(f"Proto source is not a directory: {source}")
        for name in collect_proto_files(root_dir):
            if name in files:
                logger.warning("Duplicate proto file %s in %s ignored", name, source)
                continue
            files[name] = load_proto_file(os.path.join(root_dir, name), name, root_dir)

    _resolve_imports(files, resolve_path)
    ordered = topological_sort_proto_files(files)
    for proto_file in ordered:
        proto_file.assign_full_names()
    logger.info("Loaded %d proto files from %d sources", len(ordered), len(sources))
    return SchemaRoot(ordered)


def _resolve_imports(files: Dict[str, ProtoFile], resolve_path: Optional[Callable[[str], str]]):
    pending = list(files.values())
    while pending:
        proto_file = pending.pop(0)
        resolved = []
        for name, kind in proto_file.imports:
            target = resolve_path(name) if resolve_path else name
            if target not in files:
                if not is_well_known(target):
                    raise SchemaConfigError(
                        f"Import '{name}' of '{proto_file.name}' is not in the proto sources "
                        f"or the known dependencies"
                    )
                well_known = parse_proto(WELL_KNOWN_PROTOS[target], target)
                files[target] = well_known
                pending.append(well_known)
            resolved.append((target, kind))
        proto_file.imports = resolved
