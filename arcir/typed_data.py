"""Typed value storage used by IR nodes and type definitions."""

from __future__ import annotations

import enum
import math
import struct
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Iterator, Optional

if TYPE_CHECKING:
    from arcir.node import Node


class DataType(enum.IntEnum):
    """Data types known to the IR."""

    VOID = 0
    BOOL = 1
    INT8 = 2
    INT16 = 3
    INT32 = 4
    INT64 = 5
    UINT8 = 6
    UINT16 = 7
    UINT32 = 8
    UINT64 = 9
    FLOAT32 = 10
    FLOAT64 = 11
    POINTER = 12
    ARRAY = 13
    STRUCT = 14
    FUNCTION = 15
    VECTOR = 16


class PtrQualifier(enum.IntFlag):
    """Qualifiers attached to pointer types."""

    NONE = 0
    CONST = 1 << 0
    RESTRICT = 1 << 1
    WRITEONLY = 1 << 2
    NOMUTABLE = 1 << 3


class TypedDataMismatch(TypeError):
    """Raised when a value is read as a type other than the one held."""


@dataclass(frozen=True)
class VoidData:
    """The single value of the void type; all instances compare equal."""


@dataclass(eq=False)
class VectorData:
    """Vector type: element type and number of lanes."""

    elem_type: DataType = DataType.VOID
    lane_count: int = 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VectorData):
            return NotImplemented
        return self.elem_type == other.elem_type


@dataclass
class PointerData:
    """Pointer type; ``pointee`` of None marks a forward or self reference."""

    pointee: Optional["Node"] = None
    addr_space: int = 0
    qualifier: PtrQualifier = PtrQualifier.NONE


@dataclass
class ArrayData:
    """Array value: its element nodes, element type and length."""

    elements: list = field(default_factory=list)
    elem_type: DataType = DataType.VOID
    count: int = 0


@dataclass
class StructField:
    """One field of a struct: interned name id, type and type data."""

    name: int
    type: DataType
    data: "TypedData" = field(default_factory=lambda: TypedData())

    def __iter__(self) -> Iterator[Any]:
        return iter((self.name, self.type, self.data))


@dataclass
class StructData:
    """Struct type: fields, alignment and interned name id."""

    fields: list = field(default_factory=list)
    alignment: int = 8
    name: int = 0


@dataclass
class FunctionData:
    """Function type; parameters are found through PARAM nodes."""

    return_type: Optional["TypedData"] = None


VOID_VALUE = VoidData()

_INT_RANGES = {
    DataType.INT8: (-(1 << 7), (1 << 7) - 1),
    DataType.INT16: (-(1 << 15), (1 << 15) - 1),
    DataType.INT32: (-(1 << 31), (1 << 31) - 1),
    DataType.INT64: (-(1 << 63), (1 << 63) - 1),
    DataType.UINT8: (0, (1 << 8) - 1),
    DataType.UINT16: (0, (1 << 16) - 1),
    DataType.UINT32: (0, (1 << 32) - 1),
    DataType.UINT64: (0, (1 << 64) - 1),
}

_COMPOSITE_TYPES = {
    DataType.POINTER: PointerData,
    DataType.ARRAY: ArrayData,
    DataType.STRUCT: StructData,
    DataType.FUNCTION: FunctionData,
    DataType.VECTOR: VectorData,
}

_PYTHON_TYPES = {
    DataType.BOOL: bool,
    **{dt: int for dt in _INT_RANGES},
    DataType.FLOAT32: float,
    DataType.FLOAT64: float,
    **_COMPOSITE_TYPES,
}


def _to_float32(value: float) -> float:
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def _validate(data_type: DataType, value: Any) -> Any:
    if data_type is DataType.VOID:
        if value is None or isinstance(value, VoidData):
            return VOID_VALUE
        raise TypeError(f"VOID cannot hold {value!r}")
    if data_type is DataType.BOOL:
        if not isinstance(value, bool):
            raise TypeError(f"BOOL requires a bool, got {type(value).__name__}")
        return value
    if data_type in _INT_RANGES:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"{data_type.name} requires an int, got {type(value).__name__}")
        low, high = _INT_RANGES[data_type]
        if not low <= value <= high:
            raise ValueError(f"{value} does not fit in {data_type.name}")
        return value
    if data_type in (DataType.FLOAT32, DataType.FLOAT64):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"{data_type.name} requires a float, got {type(value).__name__}")
        value = float(value)
        return _to_float32(value) if data_type is DataType.FLOAT32 else value
    expected = _COMPOSITE_TYPES[data_type]
    if not isinstance(value, expected):
        raise TypeError(f"{data_type.name} requires {expected.__name__}, got {type(value).__name__}")
    return value


def _copy_value(data_type: DataType, value: Any) -> Any:
    if data_type is DataType.ARRAY:
        return replace(value, elements=list(value.elements))
    if data_type is DataType.STRUCT:
        fields = [StructField(f.name, f.type, f.data.copy()) for f in value.fields]
        return replace(value, fields=fields)
    if data_type in _COMPOSITE_TYPES:
        return replace(value)
    return value


class TypedData:
    """A value tagged with the DataType it holds."""

    __slots__ = ("_type", "_value")

    def __init__(self, data_type: DataType = DataType.VOID, value: Any = None) -> None:
        self._type = DataType.VOID
        self._value: Any = VOID_VALUE
        self.set(data_type, value)

    @property
    def type(self) -> DataType:
        """The data type currently held."""
        return self._type

    def get(self, data_type: DataType) -> Any:
        """Return the held value, which must be of ``data_type``."""
        data_type = DataType(data_type)
        if data_type is not self._type:
            raise TypedDataMismatch(
                f"TypedData.get() type mismatch: expected {data_type.name}, "
                f"but holding {self._type.name}"
            )
        return self._value

    def set(self, data_type: DataType, value: Any) -> None:
        """Replace the held value with ``value`` of ``data_type``."""
        data_type = DataType(data_type)
        self._value = _validate(data_type, value)
        self._type = data_type

    def is_type(self, python_type: type) -> bool:
        """Whether the held value is represented by ``python_type``."""
        return _PYTHON_TYPES.get(self._type) is python_type

    def copy(self) -> "TypedData":
        """Return an independent copy; node references are shared."""
        result = TypedData()
        result._type = self._type
        result._value = _copy_value(self._type, self._value)
        return result

    def take(self) -> "TypedData":
        """Move the held value into a new instance, leaving this one VOID."""
        result = TypedData()
        result._type, result._value = self._type, self._value
        self._type, self._value = DataType.VOID, VOID_VALUE
        return result

    def __copy__(self) -> "TypedData":
        return self.copy()

    def __repr__(self) -> str:
        if self._type is DataType.VOID:
            return "TypedData(VOID)"
        return f"TypedData({self._type.name}, {self._value!r})"