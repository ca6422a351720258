"""
Semantic-schema marker types referenced by json_semantic_types.py. A field typed
Union[int, NumberSchema] accepts either a concrete value or a schema describing
the values it may take, which is how test cases (ICase) describe expectations.
"""
from typing import Any, Dict, Generic, Optional, TypeVar

from typing_extensions import NotRequired, TypedDict

T = TypeVar('T')
RequestT = TypeVar('RequestT')
ResponseT = TypeVar('ResponseT')


class SemanticSchema:
    kind = 'any'

    def __init__(self, description: Optional[str] = None, **rules: Any):
        self.description = description
        self.rules = rules

    def __eq__(self, other):
        return (type(self) is type(other) and self.description == other.description
                and self.rules == other.rules)

    def __repr__(self):
        return f"{type(self).__name__}(description={self.description!r}, rules={self.rules!r})"


class NumberSchema(SemanticSchema):
    kind = 'number'


class BooleanSchema(SemanticSchema):
    kind = 'boolean'


class StringSchema(SemanticSchema):
    kind = 'string'


class ArraySchemaWithGenerics(SemanticSchema, Generic[T]):
    kind = 'array'

    def __init__(self, items: Optional[T] = None, description: Optional[str] = None, **rules: Any):
        super().__init__(description, **rules)
        self.items = items


class CaseError(TypedDict):
    code: int
    details: str
    metadata: Dict[str, Any]


class ICase(TypedDict, Generic[RequestT, ResponseT]):
    id: str
    name: str
    desc: NotRequired[str]
    request: RequestT
    response: NotRequired[ResponseT]
    error: NotRequired[CaseError]
