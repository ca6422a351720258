"""
Client construction for generated services.

The logical service name comes from the proto file path the service was declared
in ('user-proto/user/v1/user.proto' -> 'user'). Its address and credentials come
from the local override file when that file lists the service, otherwise from the
global config written under .grpc-code-gen/.
"""
import json
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

import grpc

from grpc_runtime.errors import ConfigurationMissingError
from grpc_runtime.transport import create_channel

logger = logging.getLogger(__name__)

SERVICE_NAME_PATTERN = re.compile(r'(?:^|/)([^/]+)-proto/')
DEFAULT_KEEPALIVE_TIME_MS = 3000
DEFAULT_KEEPALIVE_TIMEOUT_MS = 2000

ClientOptions = Union[Mapping[str, Any], Callable[[Dict[str, Any]], Mapping[str, Any]], None]


@dataclass
class ServiceConfig:
    server_name: str
    server_port: int
    cert_pem_path: Optional[str] = None

    @property
    def address(self) -> str:
        return f"{self.server_name}:{self.server_port}"

    @classmethod
    def from_mapping(cls, name: str, data: Mapping[str, Any]) -> 'ServiceConfig':
        try:
            return cls(data['server_name'], int(data['server_port']), data.get('cert_pem_path'))
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigurationMissingError(name, f"Invalid config for service {name}: {exc}") from exc


@dataclass
class CodeGenConfig:
    """Contents of grpc-code-gen.config.json. Unknown keys are ignored."""
    client_options: ClientOptions = None
    log_options: Optional[Dict[str, Any]] = None
    call_options: Optional[Dict[str, Any]] = None
    loader_options: Optional[Dict[str, Any]] = None
    base_dir: Optional[str] = None
    target: Optional[str] = None
    json_semantic_types: Optional[bool] = None
    service_code: Optional[bool] = None
    sources: List[str] = field(default_factory=list)
    branch: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'CodeGenConfig':
        return cls(
            client_options=data.get('clientOptions'),
            log_options=data.get('logOptions'),
            call_options=data.get('callOptions'),
            loader_options=data.get('loaderOptions'),
            base_dir=data.get('baseDir'),
            target=data.get('target'),
            json_semantic_types=data.get('jsonSemanticTypes'),
            service_code=data.get('serviceCode'),
            sources=list(data.get('sources') or []),
            branch=data.get('branch'),
        )


def load_json_file(path: str) -> Dict[str, Any]:
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def load_code_gen_config(path: Optional[str]) -> CodeGenConfig:
    """The code-gen config, or the defaults when the file does not exist."""
    if not path or not os.path.exists(path):
        return CodeGenConfig()
    return CodeGenConfig.from_mapping(load_json_file(path))


def load_service_configs(path: str) -> Dict[str, ServiceConfig]:
    data = load_json_file(path)
    return {name: ServiceConfig.from_mapping(name, entry) for name, entry in data.items()}


def service_name_from_file(file_name: str) -> Optional[str]:
    match = SERVICE_NAME_PATTERN.search(file_name.replace('\\', '/'))
    return match.group(1) if match else None


def default_channel_options(server_name: str) -> Dict[str, Any]:
    return {
        'grpc.ssl_target_name_override': server_name,
        'grpc.keepalive_time_ms': DEFAULT_KEEPALIVE_TIME_MS,
        'grpc.keepalive_timeout_ms': DEFAULT_KEEPALIVE_TIMEOUT_MS,
    }


def build_channel_options(server_name: str, client_options: ClientOptions = None) -> Dict[str, Any]:
    """Defaults merged with clientOptions, or transformed by it when it is callable."""
    defaults = default_channel_options(server_name)
    if callable(client_options):
        return dict(client_options(defaults))
    defaults.update(client_options or {})
    return defaults


class GrpcClientFactory:
    def __init__(self, global_config_path: str, local_config_path: Optional[str] = None,
                 code_gen_config: Optional[CodeGenConfig] = None, ca_path: Optional[str] = None,
                 channel_factory: Callable = create_channel):
        self.global_config_path = global_config_path
        self.local_config_path = local_config_path
        self.code_gen_config = code_gen_config or CodeGenConfig()
        self.ca_path = ca_path
        self.channel_factory = channel_factory
        self._global_configs: Optional[Dict[str, ServiceConfig]] = None
        self._local_configs: Optional[Dict[str, ServiceConfig]] = None
        self._clients: Dict[type, Any] = {}

    @property
    def has_local_config(self) -> bool:
        return bool(self.local_config_path) and os.path.exists(self.local_config_path)

    def global_configs(self) -> Dict[str, ServiceConfig]:
        if self._global_configs is None:
            if not os.path.exists(self.global_config_path):
                raise ConfigurationMissingError(
                    self.global_config_path,
                    f"Global service config {self.global_config_path} not found, run grpc-code-gen first",
                )
            self._global_configs = load_service_configs(self.global_config_path)
        return self._global_configs

    def local_configs(self) -> Dict[str, ServiceConfig]:
        if self._local_configs is None:
            self._local_configs = {}
            if self.has_local_config:
                self._local_configs = load_service_configs(self.local_config_path)
                logger.info("Use local service config %s: %s", self.local_config_path,
                            json.dumps(load_json_file(self.local_config_path), indent=2))
        return self._local_configs

    def resolve(self, file_name: str) -> Tuple[str, ServiceConfig]:
        """(logical service name, config) for the service declared in file_name."""
        server_name = service_name_from_file(file_name)
        if server_name is None:
            raise ConfigurationMissingError(file_name)
        config = self.local_configs().get(server_name)
        if config is None:
            if self.has_local_config:
                logger.warning("Service: %s not setting local, use global config, please ensure have set hosts",
                               server_name)
            config = self.global_configs().get(server_name)
        if config is None:
            raise ConfigurationMissingError(file_name)
        return server_name, config

    def credentials_for(self, config: ServiceConfig) -> Optional[grpc.ChannelCredentials]:
        if not config.cert_pem_path:
            return None
        ca_path = self.ca_path or config.cert_pem_path
        with open(ca_path, 'rb') as f:
            return grpc.ssl_channel_credentials(root_certificates=f.read())

    def get_client(self, service_cls):
        """The cached client instance for a generated ServiceClient subclass."""
        client = self._clients.get(service_cls)
        if client is None:
            server_name, config = self.resolve(service_cls.FILE_NAME)
            credentials = self.credentials_for(config)
            options = build_channel_options(server_name, self.code_gen_config.client_options)
            channel = self.channel_factory(config.address, credentials, options)
            client = service_cls(config.address, credentials, options, channel=channel)
            self._clients[service_cls] = client
        return client
