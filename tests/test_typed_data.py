import pytest

from arcir.typed_data import (
    ArrayData,
    DataType,
    FunctionData,
    PointerData,
    PtrQualifier,
    StructData,
    StructField,
    TypedData,
    TypedDataMismatch,
    VectorData,
    VoidData,
)


@pytest.fixture
def data():
    return TypedData()


def test_default_constructor(data):
    assert data.type == DataType.VOID


def test_set_trivial_data(data):
    data.set(DataType.INT32, 42)
    assert data.type == DataType.INT32
    assert data.get(DataType.INT32) == 42


def test_set_bool_data(data):
    data.set(DataType.BOOL, True)
    assert data.type == DataType.BOOL
    assert data.get(DataType.BOOL) is True
    data.set(DataType.BOOL, False)
    assert data.get(DataType.BOOL) is False


def test_set_float_data(data):
    data.set(DataType.FLOAT32, 3.14)
    assert data.type == DataType.FLOAT32
    assert data.get(DataType.FLOAT32) == pytest.approx(3.14, rel=1e-6)


def test_float32_is_rounded_to_single_precision(data):
    data.set(DataType.FLOAT32, 0.1)
    assert data.get(DataType.FLOAT32) != 0.1
    assert data.get(DataType.FLOAT32) == pytest.approx(0.1, rel=1e-6)


def test_set_pointer_data(data):
    dummy = object()
    data.set(DataType.POINTER, PointerData(pointee=dummy, addr_space=1))
    assert data.type == DataType.POINTER
    retrieved = data.get(DataType.POINTER)
    assert retrieved.pointee is dummy
    assert retrieved.addr_space == 1
    assert retrieved.qualifier == PtrQualifier.NONE


def test_set_vector_data(data):
    data.set(DataType.VECTOR, VectorData(elem_type=DataType.FLOAT32))
    assert data.type == DataType.VECTOR
    assert data.get(DataType.VECTOR).elem_type == DataType.FLOAT32


def test_vector_equality_ignores_lane_count():
    assert VectorData(DataType.INT32, 4) == VectorData(DataType.INT32, 8)
    assert VectorData(DataType.INT32, 4) != VectorData(DataType.FLOAT32, 4)


def test_set_array_data(data):
    elems = [object(), object(), object()]
    data.set(DataType.ARRAY, ArrayData(elements=list(elems), elem_type=DataType.INT32))
    assert data.type == DataType.ARRAY
    retrieved = data.get(DataType.ARRAY)
    assert len(retrieved.elements) == 3
    assert all(a is b for a, b in zip(retrieved.elements, elems))
    assert retrieved.elem_type == DataType.INT32


def test_set_struct_data(data):
    field1 = TypedData(DataType.INT32, 42)
    field2 = TypedData(DataType.FLOAT32, 3.14)
    struct_data = StructData(
        fields=[
            StructField(1, DataType.INT32, field1),
            StructField(2, DataType.FLOAT32, field2),
        ],
        alignment=8,
        name=123,
    )
    data.set(DataType.STRUCT, struct_data)
    assert data.type == DataType.STRUCT
    retrieved = data.get(DataType.STRUCT)
    assert len(retrieved.fields) == 2
    name_id, field_type, field_data = retrieved.fields[0]
    assert name_id == 1
    assert field_type == DataType.INT32
    assert field_data.get(DataType.INT32) == 42
    name_id, field_type, field_data = retrieved.fields[1]
    assert name_id == 2
    assert field_type == DataType.FLOAT32
    assert field_data.get(DataType.FLOAT32) == pytest.approx(3.14, rel=1e-6)
    assert retrieved.alignment == 8
    assert retrieved.name == 123


def test_self_reference_struct(data):
    next_type = TypedData(DataType.POINTER, PointerData(pointee=None, addr_space=0))
    node_struct = StructData(
        fields=[
            StructField(1, DataType.POINTER, next_type),
            StructField(2, DataType.INT32, TypedData()),
        ],
        alignment=8,
        name=99,
    )
    data.set(DataType.STRUCT, node_struct)
    retrieved = data.get(DataType.STRUCT)
    assert len(retrieved.fields) == 2
    assert retrieved.name == 99
    assert retrieved.fields[0].name == 1
    assert retrieved.fields[0].type == DataType.POINTER
    assert retrieved.fields[0].data.type == DataType.POINTER
    assert retrieved.fields[1].name == 2
    assert retrieved.fields[1].type == DataType.INT32
    assert retrieved.fields[1].data.type == DataType.VOID


def test_nested_struct_instance(data):
    street = TypedData(DataType.POINTER, PointerData(pointee=None, addr_space=0))
    zip_code = TypedData(DataType.INT32, 12345)
    addr_struct = StructData(
        fields=[
            StructField(10, DataType.POINTER, street),
            StructField(11, DataType.INT32, zip_code),
        ],
        alignment=4,
        name=50,
    )
    addr_val = TypedData(DataType.STRUCT, addr_struct)
    age_val = TypedData(DataType.INT32, 30)
    person_struct = StructData(
        fields=[
            StructField(20, DataType.STRUCT, addr_val),
            StructField(21, DataType.INT32, age_val),
        ],
        alignment=8,
        name=60,
    )
    data.set(DataType.STRUCT, person_struct)
    assert data.type == DataType.STRUCT
    person = data.get(DataType.STRUCT)
    assert len(person.fields) == 2
    assert person.name == 60
    assert person.fields[0].type == DataType.STRUCT
    nested = person.fields[0].data.get(DataType.STRUCT)
    assert nested.name == 50
    assert len(nested.fields) == 2
    assert nested.fields[0].type == DataType.POINTER
    assert nested.fields[0].data.get(DataType.POINTER).addr_space == 0
    assert nested.fields[1].data.get(DataType.INT32) == 12345
    assert person.fields[1].type == DataType.INT32
    assert person.fields[1].data.get(DataType.INT32) == 30


def test_type_check(data):
    data.set(DataType.INT32, 42)
    assert data.is_type(int) is True
    assert data.is_type(float) is False
    assert data.is_type(bool) is False


def test_type_check_void_is_never_matched(data):
    assert data.is_type(VoidData) is False
    assert data.is_type(int) is False


def test_type_mismatch_raises(data):
    data.set(DataType.INT32, 42)
    with pytest.raises(TypedDataMismatch):
        data.get(DataType.FLOAT32)
    with pytest.raises(TypedDataMismatch):
        data.get(DataType.BOOL)


def test_mismatch_message_names_types(data):
    data.set(DataType.INT32, 1)
    with pytest.raises(TypedDataMismatch, match="expected FLOAT64, but holding INT32"):
        data.get(DataType.FLOAT64)


def test_copy(data):
    data.set(DataType.INT32, 42)
    copied = data.copy()
    assert copied.type == DataType.INT32
    assert copied.get(DataType.INT32) == 42
    assert data.get(DataType.INT32) == 42


def test_copy_is_independent_for_structs(data):
    inner = TypedData(DataType.INT32, 1)
    data.set(DataType.STRUCT, StructData(fields=[StructField(1, DataType.INT32, inner)]))
    copied = data.copy()
    copied.get(DataType.STRUCT).fields[0].data.set(DataType.INT32, 7)
    copied.get(DataType.STRUCT).fields.append(StructField(2, DataType.BOOL))
    original = data.get(DataType.STRUCT)
    assert len(original.fields) == 1
    assert original.fields[0].data.get(DataType.INT32) == 1


def test_take_moves_array(data):
    elem1, elem2 = object(), object()
    data.set(DataType.ARRAY, ArrayData(elements=[elem1, elem2], elem_type=DataType.INT32))
    moved = data.take()
    assert moved.type == DataType.ARRAY
    moved_array = moved.get(DataType.ARRAY)
    assert len(moved_array.elements) == 2
    assert moved_array.elements[0] is elem1
    assert moved_array.elements[1] is elem2
    assert data.type == DataType.VOID


def test_take_moves_pointer(data):
    pointee = object()
    data.set(DataType.POINTER, PointerData(pointee=pointee, addr_space=2))
    other = data.take()
    assert other.type == DataType.POINTER
    ptr = other.get(DataType.POINTER)
    assert ptr.pointee is pointee
    assert ptr.addr_space == 2
    assert data.type == DataType.VOID


def test_overwrite_data(data):
    data.set(DataType.INT32, 42)
    assert data.get(DataType.INT32) == 42
    data.set(DataType.FLOAT32, 3.14)
    assert data.type == DataType.FLOAT32
    assert data.get(DataType.FLOAT32) == pytest.approx(3.14, rel=1e-6)
    with pytest.raises(TypedDataMismatch):
        data.get(DataType.INT32)


def test_void_type(data):
    assert data.type == DataType.VOID
    first = data.get(DataType.VOID)
    second = data.get(DataType.VOID)
    assert first == second
    assert first == VoidData()


def test_void_get_on_non_void_raises(data):
    data.set(DataType.BOOL, True)
    with pytest.raises(TypedDataMismatch):
        data.get(DataType.VOID)


def test_function_type(data):
    data.set(DataType.FUNCTION, FunctionData())
    assert data.type == DataType.FUNCTION
    assert data.get(DataType.FUNCTION).return_type is None


@pytest.mark.parametrize(
    "data_type, value",
    [
        (DataType.INT8, 128),
        (DataType.INT8, -129),
        (DataType.UINT8, 256),
        (DataType.UINT32, -1),
        (DataType.INT64, 1 << 63),
    ],
)
def test_integer_out_of_range(data, data_type, value):
    with pytest.raises(ValueError):
        data.set(data_type, value)


@pytest.mark.parametrize(
    "data_type, value",
    [
        (DataType.BOOL, 1),
        (DataType.INT32, True),
        (DataType.INT32, 1.5),
        (DataType.FLOAT64, "x"),
        (DataType.POINTER, VectorData()),
        (DataType.VOID, 3),
    ],
)
def test_wrong_python_type_rejected(data, data_type, value):
    with pytest.raises(TypeError):
        data.set(data_type, value)
    assert data.type == DataType.VOID


def test_constructor_with_value():
    data = TypedData(DataType.UINT16, 20)
    assert data.type == DataType.UINT16
    assert data.get(DataType.UINT16) == 20