# symbol_tables.py
# Flat lookup tables from fully-qualified name to message/enum definition.
from typing import Dict, Iterable, NamedTuple

from schema_model import ProtoEnum, ProtoMessage


class SymbolTables(NamedTuple):
    messages: Dict[str, ProtoMessage]
    enums: Dict[str, ProtoEnum]

    def get(self, full_name: str):
        """Message first, then enum; None when the name is unknown."""
        if full_name in self.messages:
            return self.messages[full_name]
        return self.enums.get(full_name)

    def __contains__(self, full_name):
        return full_name in self.messages or full_name in self.enums


def build_symbol_tables(messages: Iterable[ProtoMessage], enums: Iterable[ProtoEnum]) -> SymbolTables:
    """
    Key every message and enum by its full_name. Duplicates are not reported:
    the last one in input order wins.
    """
    message_table: Dict[str, ProtoMessage] = {}
    enum_table: Dict[str, ProtoEnum] = {}
    for msg in messages:
        message_table[msg.full_name] = msg
    for enum in enums:
        enum_table[enum.full_name] = enum
    return SymbolTables(message_table, enum_table)
