from schema_model import ProtoEnum, ProtoMessage
from symbol_tables import build_symbol_tables


def make_message(full_name):
    msg = ProtoMessage(full_name.split('.')[-1])
    msg.full_name = full_name
    return msg


def make_enum(full_name):
    enum = ProtoEnum(full_name.split('.')[-1], {'ZERO': 0})
    enum.full_name = full_name
    return enum


def test_tables_are_keyed_by_full_name():
    foo = make_message('a.Foo')
    kind = make_enum('a.Kind')
    tables = build_symbol_tables([foo], [kind])
    assert tables.messages == {'a.Foo': foo}
    assert tables.enums == {'a.Kind': kind}
    assert 'a.Foo' in tables and 'a.Kind' in tables
    assert 'a.Bar' not in tables


def test_last_duplicate_wins():
    first, second = make_message('a.Foo'), make_message('a.Foo')
    tables = build_symbol_tables([first, second], [])
    assert tables.messages['a.Foo'] is second


def test_get_prefers_messages():
    msg = make_message('a.Same')
    enum = make_enum('a.Same')
    tables = build_symbol_tables([msg], [enum])
    assert tables.get('a.Same') is msg
    assert tables.get('a.Other') is None
