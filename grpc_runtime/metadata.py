"""
Request/response metadata as a key -> value-list structure.

Keys are lower-cased on insertion as gRPC requires. Keys ending in '-bin' carry
bytes; every other value is stored as text.
"""
from collections import OrderedDict
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

MetadataValue = Union[str, int, float, bytes]
MetadataMap = Mapping[str, MetadataValue]

BINARY_SUFFIX = '-bin'


def is_binary_key(key: str) -> bool:
    return key.endswith(BINARY_SUFFIX)


def _normalize_value(key: str, value: Any) -> Union[str, bytes]:
    if is_binary_key(key):
        if isinstance(value, str):
            return value.encode('utf-8')
        return bytes(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode('utf-8')
    return str(value)


class Metadata:
    def __init__(self, pairs: Optional[Iterable[Tuple[str, Any]]] = None):
        self._entries: Dict[str, List[Union[str, bytes]]] = OrderedDict()
        for key, value in pairs or ():
            self.add(key, value)

    @classmethod
    def from_pairs(cls, pairs: Optional[Iterable[Tuple[str, Any]]]) -> 'Metadata':
        return cls(pairs)

    def add(self, key: str, value: Any):
        key = key.lower()
        self._entries.setdefault(key, []).append(_normalize_value(key, value))

    def set(self, key: str, value: Any):
        key = key.lower()
        self._entries[key] = [_normalize_value(key, value)]

    def remove(self, key: str):
        self._entries.pop(key.lower(), None)

    def get(self, key: str) -> List[Union[str, bytes]]:
        return list(self._entries.get(key.lower(), []))

    def get_map(self) -> Dict[str, Union[str, bytes]]:
        """One value per key; repeated values are joined with ','."""
        result: Dict[str, Union[str, bytes]] = {}
        for key, values in self._entries.items():
            if not values:
                continue
            if is_binary_key(key):
                result[key] = b','.join(bytes(v) for v in values)
            else:
                result[key] = ','.join(values)
        return result

    def to_tuple(self) -> Tuple[Tuple[str, Union[str, bytes]], ...]:
        """Flattened (key, value) pairs in the form grpc expects."""
        return tuple((key, value) for key, values in self._entries.items() for value in values)

    def clone(self) -> 'Metadata':
        return Metadata(self.to_tuple())

    def keys(self) -> List[str]:
        return list(self._entries)

    def __contains__(self, key):
        return key.lower() in self._entries

    def __iter__(self) -> Iterator[Tuple[str, Union[str, bytes]]]:
        return iter(self.to_tuple())

    def __len__(self):
        return len(self._entries)

    def __eq__(self, other):
        if not isinstance(other, Metadata):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self):
        return f"Metadata({self.to_tuple()!r})"


def to_metadata(metadata: Union[Metadata, MetadataMap, None]) -> Metadata:
    """Build Metadata from a plain key -> scalar mapping, adding each key once."""
    if isinstance(metadata, Metadata):
        return metadata.clone()
    result = Metadata()
    if metadata:
        for key, value in metadata.items():
            result.add(key, value)
    return result
