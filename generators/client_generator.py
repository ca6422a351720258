"""
get_grpc_client.py: the process-wide client factory of the generated package,
bound to the config files of the project the code was generated in.
"""
import os

from generators.generator_utils import FILE_TIP_PY, relative_path

CLIENT_MODULE = 'get_grpc_client.py'
CODE_GEN_CONFIG_FILE = 'grpc-code-gen.config.json'
LOCAL_SERVICE_CONFIG_FILE = 'grpc-service.config.json'
CACHE_DIR = '.grpc-code-gen'


def generate_get_grpc_client(base_dir: str, project_dir: str, config_path: str = None) -> str:
    """Paths to the config files are written relative to the generated module."""
    module_path = os.path.join(base_dir, CLIENT_MODULE)

    def rel(path):
        return relative_path(module_path, path)

    config_path = config_path or os.path.join(project_dir, CODE_GEN_CONFIG_FILE)
    lines = [
        FILE_TIP_PY,
        'import os',
        '',
        'from grpc_runtime.client_config import GrpcClientFactory, load_code_gen_config',
        '',
        '_HERE = os.path.dirname(os.path.abspath(__file__))',
        '',
        f"code_gen_config = load_code_gen_config(os.path.join(_HERE, {rel(config_path)!r}))",
        '',
        'factory = GrpcClientFactory(',
        f"    global_config_path=os.path.join(_HERE, {rel(os.path.join(project_dir, CACHE_DIR, 'config.json'))!r}),",
        f"    local_config_path=os.path.join(_HERE, {rel(os.path.join(project_dir, LOCAL_SERVICE_CONFIG_FILE))!r}),",
        '    code_gen_config=code_gen_config,',
        f"    ca_path=os.path.join(_HERE, {rel(os.path.join(project_dir, CACHE_DIR, 'ca.pem'))!r}),",
        ')',
        '',
        '',
        'def get_grpc_client(service_cls):',
        '    return factory.get_client(service_cls)',
    ]
    return '\n'.join(lines) + '\n'
