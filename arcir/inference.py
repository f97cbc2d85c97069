"""Type promotion rules for binary operations and pointer qualifier checks."""

from __future__ import annotations

from dataclasses import replace
from typing import Optional

from arcir.node import Node
from arcir.typed_data import (
    ArrayData,
    DataType,
    FunctionData,
    PointerData,
    PtrQualifier,
    StructData,
    TypedData,
    VectorData,
)

_INTEGER_RANKS = {
    DataType.INT8: 0,
    DataType.UINT8: 0,
    DataType.INT16: 1,
    DataType.UINT16: 1,
    DataType.INT32: 2,
    DataType.UINT32: 2,
    DataType.INT64: 3,
    DataType.UINT64: 3,
}

_NON_PRIMITIVE = frozenset(
    {DataType.POINTER, DataType.ARRAY, DataType.STRUCT, DataType.FUNCTION, DataType.VECTOR}
)


def is_float_t(data_type: DataType) -> bool:
    """Whether ``data_type`` is a floating-point type."""
    return data_type in (DataType.FLOAT32, DataType.FLOAT64)


def is_integer_t(data_type: DataType) -> bool:
    """Whether ``data_type`` is a signed or unsigned integer type."""
    return data_type in _INTEGER_RANKS


def get_integer_rank(data_type: DataType) -> int:
    """Width rank of an integer type: 0 for 8 bits up to 3 for 64 bits."""
    try:
        return _INTEGER_RANKS[data_type]
    except KeyError:
        raise ValueError(f"{DataType(data_type).name} is not an integer type") from None


def _promote_vectors(lhs: Node, rhs: Node) -> bool:
    lhs_vec = lhs.value.get(DataType.VECTOR)
    rhs_vec = rhs.value.get(DataType.VECTOR)
    promoted = infer_primitive_types(lhs_vec.elem_type, rhs_vec.elem_type)
    if promoted is DataType.VOID:
        return False
    lhs.value.set(DataType.VECTOR, replace(lhs_vec, elem_type=promoted))
    rhs.value.set(DataType.VECTOR, replace(rhs_vec, elem_type=promoted))
    return True


def infer_binary_t(lhs: Optional[Node], rhs: Optional[Node]) -> bool:
    """Promote both operands of a binary operation to a common type.

    Returns False when the operands cannot be combined.
    """
    if lhs is None or rhs is None:
        return False

    lhs_type = lhs.type_kind
    rhs_type = rhs.type_kind
    if lhs_type == rhs_type:
        if lhs_type is DataType.VECTOR:
            lhs_vec = lhs.value.get(DataType.VECTOR)
            rhs_vec = rhs.value.get(DataType.VECTOR)
            if lhs_vec.elem_type == rhs_vec.elem_type:
                return True
            return _promote_vectors(lhs, rhs)
        return True

    if DataType.VOID in (lhs_type, rhs_type):
        return False

    if DataType.VECTOR in (lhs_type, rhs_type):
        # mixing vectors with scalars is ambiguous and therefore rejected
        if lhs_type is not DataType.VECTOR or rhs_type is not DataType.VECTOR:
            return False
        return _promote_vectors(lhs, rhs)

    promoted = infer_primitive_types(lhs_type, rhs_type)
    if promoted is DataType.VOID:
        return False
    lhs.type_kind = promoted
    rhs.type_kind = promoted
    return True


def infer_primitive_types(lhs: DataType, rhs: DataType) -> DataType:
    """The common type of two primitive types, or VOID when there is none."""
    lhs = DataType(lhs)
    rhs = DataType(rhs)
    if lhs is rhs:
        return lhs

    if lhs in _NON_PRIMITIVE or rhs in _NON_PRIMITIVE:
        return DataType.VOID

    if lhs is DataType.BOOL:
        lhs = DataType.INT32
    if rhs is DataType.BOOL:
        rhs = DataType.INT32

    if is_float_t(lhs) or is_float_t(rhs):
        if lhs is DataType.FLOAT32 and rhs is DataType.FLOAT32:
            return DataType.FLOAT32
        return DataType.FLOAT64

    if not is_integer_t(lhs) or not is_integer_t(rhs):
        return DataType.VOID

    minimum = get_integer_rank(DataType.INT32)
    if get_integer_rank(lhs) < minimum:
        lhs = DataType.INT32
    if get_integer_rank(rhs) < minimum:
        rhs = DataType.INT32

    if lhs is rhs:
        return lhs

    lhs_rank = get_integer_rank(lhs)
    rhs_rank = get_integer_rank(rhs)
    if lhs_rank == rhs_rank:
        # mixed signedness: widen to a signed type, except at 64 bits
        if lhs_rank == 2:
            return DataType.INT64
        if lhs_rank == 3:
            return DataType.UINT64
        return DataType.VOID

    return lhs if lhs_rank > rhs_rank else rhs


def _default_value(data_type: DataType):
    if data_type is DataType.VOID:
        return None
    if data_type is DataType.BOOL:
        return False
    if is_integer_t(data_type):
        return 0
    if is_float_t(data_type):
        return 0.0
    return {
        DataType.POINTER: PointerData,
        DataType.ARRAY: ArrayData,
        DataType.STRUCT: StructData,
        DataType.FUNCTION: FunctionData,
        DataType.VECTOR: VectorData,
    }[data_type]()


def set_t(data: TypedData, data_type: DataType) -> None:
    """Reset ``data`` to hold the default value of ``data_type``."""
    try:
        data_type = DataType(data_type)
    except ValueError:
        raise ValueError("Unknown DataType") from None
    data.set(data_type, _default_value(data_type))


def has_pointer_qualifier(pointer: Optional[Node], qualifier: PtrQualifier) -> bool:
    """Whether ``pointer`` is a pointer node carrying any bit of ``qualifier``."""
    if (
        pointer is None
        or pointer.type_kind is not DataType.POINTER
        or pointer.value.type is not DataType.POINTER
    ):
        return False
    return bool(pointer.value.get(DataType.POINTER).qualifier & qualifier)


def is_const_pointer(pointer: Optional[Node]) -> bool:
    """Whether ``pointer`` is const-qualified."""
    return has_pointer_qualifier(pointer, PtrQualifier.CONST)


def is_restrict_pointer(pointer: Optional[Node]) -> bool:
    """Whether ``pointer`` is restrict-qualified."""
    return has_pointer_qualifier(pointer, PtrQualifier.RESTRICT)


def is_writeonly_pointer(pointer: Optional[Node]) -> bool:
    """Whether ``pointer`` is write-only."""
    return has_pointer_qualifier(pointer, PtrQualifier.WRITEONLY)


def is_nomutable_pointer(pointer: Optional[Node]) -> bool:
    """Whether ``pointer`` itself cannot be modified."""
    return has_pointer_qualifier(pointer, PtrQualifier.NOMUTABLE)