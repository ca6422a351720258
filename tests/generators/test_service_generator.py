import logging

import pytest

from generators.service_generator import accessor_name, generate_service_module, service_module_path

GREETER = '''
syntax = "proto3";
package helloworld;
message HelloRequest { string name = 1; }
message HelloReply { string message = 1; }
service Greeter {
  rpc SayHello (HelloRequest) returns (HelloReply);
  rpc Chat (stream HelloRequest) returns (stream HelloReply);
  rpc Alpha (HelloRequest) returns (helloworld.HelloReply);
}
'''


def greeter_module(declarations_from_text, text=GREETER, file_name='helloworld/helloworld.proto'):
    _, resolver, root = declarations_from_text({file_name: text})
    service = root.inspect_namespace().services[0]
    return generate_service_module(service, resolver)


def test_accessor_name():
    assert accessor_name('Greeter') == 'get_greeter'
    assert accessor_name('UserService') == 'get_user_service'
    assert accessor_name('HTTPGateway') == 'get_http_gateway'
    assert accessor_name('V2Api') == 'get_v2_api'


def test_module_path_follows_package(declarations_from_text):
    path, _ = greeter_module(declarations_from_text)
    assert path == 'helloworld/Greeter.py'


def test_module_contents(declarations_from_text):
    path, text = greeter_module(declarations_from_text)
    compile(text, path, 'exec')
    assert 'from .. import types' in text
    assert 'from ..get_grpc_client import code_gen_config, get_grpc_client' in text
    assert 'from ..grpc_obj import grpc_object' in text
    assert 'class Greeter(ServiceClient):' in text
    assert "    SERVICE_NAME = 'helloworld.Greeter'" in text
    assert "    FILE_NAME = 'helloworld/helloworld.proto'" in text
    assert "    definition = grpc_object.service('helloworld.Greeter')" in text
    assert '        request: types.helloworld.HelloRequest,' in text
    assert '    ) -> types.helloworld.HelloReply:' in text
    assert "        return await self.handlers['SayHello'](request, metadata, options)" in text
    assert "        return await self.handlers['SayHello'].v2(request, metadata, options)" in text
    assert text.endswith('def get_greeter() -> Greeter:\n    return get_grpc_client(Greeter)\n')


def test_methods_are_sorted_and_streaming_is_skipped(declarations_from_text, caplog):
    with caplog.at_level(logging.WARNING, logger='generators.service_generator'):
        _, text = greeter_module(declarations_from_text)
    assert 'Chat' not in text
    assert text.index('async def Alpha(') < text.index('async def AlphaV2(') < text.index('async def SayHello(')
    assert 'Skipping streaming method helloworld.Greeter.Chat' in caplog.text


def test_v2_methods_take_keyword_arguments(declarations_from_text):
    _, text = greeter_module(declarations_from_text)
    assert ('    async def SayHelloV2(\n'
            '        self,\n'
            '        *,\n'
            '        request: types.helloworld.HelloRequest,\n') in text
    assert '"""Deprecated: use SayHelloV2."""' in text


def test_root_package_service(declarations_from_text):
    text = '''
    syntax = "proto3";
    message Ping {}
    service Health { rpc Check (Ping) returns (Ping); }
    '''
    _, resolver, root = declarations_from_text({'health.proto': text})
    service = root.inspect_namespace().services[0]
    assert service_module_path(service) == 'Health.py'
    path, module = generate_service_module(service, resolver)
    assert 'from . import types' in module
    assert 'request: types.Ping,' in module
    compile(module, path, 'exec')


if __name__ == "__main__":
    pytest.main([__file__])
