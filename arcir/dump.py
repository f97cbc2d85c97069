"""Textual rendering of modules, regions and nodes."""

from __future__ import annotations

import math
import struct
import sys
import threading
from decimal import Decimal
from typing import Optional, Union

from arcir.node import Node, NodeTraits, NodeType
from arcir.region import Module, Region
from arcir.typed_data import DataType, PointerData, StructData, TypedData

_DATA_TYPE_NAMES = {
    DataType.VOID: "void",
    DataType.BOOL: "bool",
    DataType.INT8: "i8",
    DataType.INT16: "i16",
    DataType.INT32: "i32",
    DataType.INT64: "i64",
    DataType.UINT8: "u8",
    DataType.UINT16: "u16",
    DataType.UINT32: "u32",
    DataType.UINT64: "u64",
    DataType.FLOAT32: "f32",
    DataType.FLOAT64: "f64",
    DataType.POINTER: "ptr",
    DataType.ARRAY: "arr",
    DataType.STRUCT: "struct",
    DataType.FUNCTION: "fn",
    DataType.VECTOR: "vec",
}

_NODE_TYPE_NAMES = {
    NodeType.ENTRY: "entry",
    NodeType.EXIT: "exit",
    NodeType.PARAM: "param",
    NodeType.LIT: "",
    NodeType.ADD: "add",
    NodeType.SUB: "sub",
    NodeType.MUL: "mul",
    NodeType.DIV: "div",
    NodeType.MOD: "mod",
    NodeType.GT: "gt",
    NodeType.GTE: "gte",
    NodeType.LT: "lt",
    NodeType.LTE: "lte",
    NodeType.EQ: "eq",
    NodeType.NEQ: "neq",
    NodeType.BAND: "band",
    NodeType.BOR: "bor",
    NodeType.BXOR: "bxor",
    NodeType.BNOT: "bnot",
    NodeType.BSHL: "bshl",
    NodeType.BSHR: "bshr",
    NodeType.RET: "ret",
    NodeType.FUNCTION: "fn",
    NodeType.CALL: "call",
    NodeType.ALLOC: "alloc",
    NodeType.LOAD: "load",
    NodeType.STORE: "store",
    NodeType.ADDR_OF: "addr_of",
    NodeType.PTR_LOAD: "ptr_load",
    NodeType.PTR_STORE: "ptr_store",
    NodeType.PTR_ADD: "ptr_add",
    NodeType.CAST: "cast",
    NodeType.ATOMIC_LOAD: "atomic_load",
    NodeType.ATOMIC_STORE: "atomic_store",
    NodeType.ATOMIC_CAS: "atomic_cas",
    NodeType.JUMP: "jump",
    NodeType.BRANCH: "branch",
    NodeType.INVOKE: "invoke",
    NodeType.VECTOR_BUILD: "vector_build",
    NodeType.VECTOR_EXTRACT: "vector_extract",
    NodeType.VECTOR_SPLAT: "vector_splat",
    NodeType.ACCESS: "access",
}

_PADDING_SIZES = {
    DataType.UINT8: 1,
    DataType.UINT16: 2,
    DataType.UINT32: 4,
    DataType.UINT64: 8,
}

_TRAIT_WORDS = (
    (NodeTraits.EXPORT, "export "),
    (NodeTraits.DRIVER, "driver "),
    (NodeTraits.EXTERN, "extern "),
    (NodeTraits.VOLATILE, "volatile "),
)

_INTEGER_TYPES = frozenset(
    {
        DataType.INT8,
        DataType.INT16,
        DataType.INT32,
        DataType.INT64,
        DataType.UINT8,
        DataType.UINT16,
        DataType.UINT32,
        DataType.UINT64,
    }
)


def _dttstr(data_type: DataType) -> str:
    return _DATA_TYPE_NAMES.get(data_type, "unknown")


def _ntttstr(node_type: NodeType) -> str:
    return _NODE_TYPE_NAMES.get(node_type, "unknown")


def _is_padding_field(name: str) -> bool:
    return name.startswith("__pad")


def _round_float32(value: float) -> float:
    return struct.unpack("<f", struct.pack("<f", value))[0]


def _format_float(value: float, single: bool) -> str:
    """Shortest round-trip text, choosing fixed or scientific notation by length."""
    negative = math.copysign(1.0, value) < 0
    if math.isnan(value):
        return "-nan" if negative else "nan"
    if math.isinf(value):
        return "-inf" if negative else "inf"

    if single:
        text = f"{value:.9g}"
        for precision in range(1, 10):
            candidate = f"{value:.{precision}g}"
            if _round_float32(float(candidate)) == value:
                text = candidate
                break
    else:
        text = repr(value)

    _, digit_tuple, exponent = Decimal(text).as_tuple()
    digits = "".join(map(str, digit_tuple))
    stripped = digits.rstrip("0")
    exponent += len(digits) - len(stripped)
    digits = stripped
    if not digits:
        digits, exponent = "0", 0

    if exponent >= 0:
        fixed = digits + "0" * exponent
    else:
        point = len(digits) + exponent
        if point > 0:
            fixed = f"{digits[:point]}.{digits[point:]}"
        else:
            fixed = "0." + "0" * (-point) + digits

    sci_exponent = len(digits) - 1 + exponent
    mantissa = digits[0] + (f".{digits[1:]}" if len(digits) > 1 else "")
    sci = f"{mantissa}e{'-' if sci_exponent < 0 else '+'}{abs(sci_exponent):02d}"

    body = fixed if len(fixed) <= len(sci) else sci
    return ("-" if negative else "") + body


def _literal_text(node: Node) -> str:
    kind = node.type_kind
    if kind is DataType.BOOL:
        return "true" if node.value.get(DataType.BOOL) else "false"
    if kind in _INTEGER_TYPES:
        return str(node.value.get(kind))
    if kind is DataType.FLOAT32:
        return _format_float(node.value.get(DataType.FLOAT32), single=True)
    if kind is DataType.FLOAT64:
        return _format_float(node.value.get(DataType.FLOAT64), single=False)
    return "?"


def _resolve_type_name(type_data: TypedData, module: Module) -> str:
    if type_data.type is not DataType.STRUCT:
        return _dttstr(type_data.type)
    struct_data = type_data.get(DataType.STRUCT)
    struct_name = module.strtable.get(struct_data.name)
    if struct_name in module.typemap:
        return struct_name
    return f"struct {struct_name}"


def _pointer_type_str(ptr_data: PointerData, module: Module, context_struct: str = "") -> str:
    pointee = ptr_data.pointee
    if pointee is None:
        return f"ptr<{context_struct}>" if context_struct else "ptr<unknown>"
    if pointee.type_kind is DataType.STRUCT and pointee.value.type is DataType.STRUCT:
        return f"ptr<{_resolve_type_name(pointee.value, module)}>"
    return f"ptr<{_dttstr(pointee.type_kind)}>"


def _field_type_str(field_type: DataType, field_data: TypedData, module: Module, context: str) -> str:
    if field_type is DataType.POINTER and field_data.type is DataType.POINTER:
        return _pointer_type_str(field_data.get(DataType.POINTER), module, context)
    if field_type is DataType.STRUCT and field_data.type is DataType.STRUCT:
        return _resolve_type_name(field_data, module)
    return _dttstr(field_type)


def _resolve_access_type(node: Node, module: Module) -> str:
    """Look up an ACCESS node's field type in the struct definition it indexes."""
    if len(node.inputs) < 2:
        return "unknown"
    container, index_node = node.inputs[0], node.inputs[1]
    if index_node.ir_type is not NodeType.LIT or index_node.type_kind is not DataType.UINT32:
        return "unknown"
    field_index = index_node.value.get(DataType.UINT32)

    if container.type_kind is not DataType.STRUCT or container.value.type is not DataType.STRUCT:
        return "unknown"
    struct_name = _resolve_type_name(container.value, module)

    definition = module.typemap.get(struct_name)
    if definition is None or definition.type is not DataType.STRUCT:
        return "unknown"

    fields = (
        (field_type, field_data)
        for name_id, field_type, field_data in definition.get(DataType.STRUCT).fields
        if not _is_padding_field(module.strtable.get(name_id))
    )
    for position, (field_type, field_data) in enumerate(fields):
        if position == field_index:
            return _field_type_str(field_type, field_data, module, struct_name)
    return "unknown"


def _type_string(node: Node, module: Module) -> str:
    """The complete type of ``node`` as written in a dump."""
    kind = node.type_kind
    if kind is DataType.POINTER:
        if node.ir_type is NodeType.ACCESS and node.value.type is DataType.POINTER:
            ptr_data = node.value.get(DataType.POINTER)
            if ptr_data.pointee is None and node.inputs:
                container = node.inputs[0]
                if container.type_kind is DataType.STRUCT and container.value.type is DataType.STRUCT:
                    return f"ptr<{_resolve_type_name(container.value, module)}>"
            return _pointer_type_str(ptr_data, module)
        if node.ir_type is NodeType.LOAD and node.inputs:
            source = node.inputs[0]
            if source.type_kind is DataType.POINTER:
                return _type_string(source, module)
        if node.ir_type is NodeType.ACCESS:
            return _resolve_access_type(node, module)
        if node.value.type is DataType.POINTER:
            return _pointer_type_str(node.value.get(DataType.POINTER), module)
        return "ptr<unknown>"
    if kind is DataType.ARRAY:
        arr_data = node.value.get(DataType.ARRAY)
        return f"arr<{_dttstr(arr_data.elem_type)} x {arr_data.count}>"
    if kind is DataType.VECTOR:
        vec_data = node.value.get(DataType.VECTOR)
        return f"vec<{_dttstr(vec_data.elem_type)} x {vec_data.lane_count}>"
    if kind is DataType.STRUCT:
        if node.value.type is DataType.STRUCT:
            return _resolve_type_name(node.value, module)
        return "struct"
    if kind is DataType.FUNCTION:
        params = ", ".join(_dttstr(item.type_kind) for item in node.inputs)
        return f"fn({params}) -> {_dttstr(_return_type(node))}"
    return _dttstr(kind)


def _return_type(node: Node) -> DataType:
    fn_data = node.value.get(DataType.FUNCTION)
    return fn_data.return_type.type if fn_data.return_type is not None else DataType.VOID


def _traits_prefix(node: Node) -> str:
    return "".join(word for trait, word in _TRAIT_WORDS if node.traits & trait)


def _struct_definition(name: str, struct_data: StructData, module: Module) -> str:
    parts = [f"    {name} = struct"]
    if struct_data.alignment != 8:
        parts.append(f" alignas({struct_data.alignment})")
    parts.append(" {\n")

    pending_padding = 0
    for name_id, field_type, field_data in struct_data.fields:
        field_name = module.strtable.get(name_id)
        if _is_padding_field(field_name):
            pending_padding += _PADDING_SIZES.get(field_type, 0)
            continue
        if pending_padding > 0:
            parts.append(f"        /* {pending_padding} bytes padding */\n")
            pending_padding = 0
        parts.append(f"        {field_name}: {_field_type_str(field_type, field_data, module, name)},\n")

    if pending_padding > 0:
        parts.append(f"        /* {pending_padding} bytes padding */\n")
    parts.append("    };\n")
    return "".join(parts)


def _is_inline_literal(node: Node) -> bool:
    return node.ir_type is NodeType.LIT and len(node.users) == 1


class Dumper:
    """Renders IR as text, numbering nodes in the order they are first seen."""

    def __init__(self) -> None:
        self._numbers: dict[Node, int] = {}

    def reset(self) -> None:
        """Forget all node numbers; the next node seen becomes %1."""
        self._numbers = {}

    def _number(self, node: Node) -> int:
        number = self._numbers.get(node)
        if number is None:
            number = len(self._numbers) + 1
            self._numbers[node] = number
        return number

    def _operand(self, node: Optional[Node]) -> str:
        if node is None:
            return "null"
        if _is_inline_literal(node):
            return "#" + _literal_text(node)
        return f"%{self._number(node)}"

    def _operands(self, inputs: list) -> str:
        return ", ".join(self._operand(item) for item in inputs)

    def dump_module(self, module: Module) -> str:
        """Render a whole module, restarting node numbering."""
        self.reset()
        parts = [f"#! module: {module.name}\n"]

        typedefs = module.typemap
        if typedefs:
            parts.append("section .__def\n")
            for name, definition in typedefs.items():
                if definition.type is DataType.STRUCT:
                    parts.append(_struct_definition(name, definition.get(DataType.STRUCT), module))
                else:
                    parts.append(f"    {name} = {_dttstr(definition.type)};\n")
            parts.append("end .__def\n\n")

        rodata = module.rodata
        if rodata is not None:
            parts.append("section .__rodata\n")
            for node in rodata.nodes:
                if node.ir_type is not NodeType.ENTRY:
                    parts.append(f"    {self.dump_node(node, module)};\n")
            parts.append("end .__rodata\n\n")

        for func in module.functions:
            if func.ir_type is not NodeType.FUNCTION:
                continue
            parts.append(_traits_prefix(func))
            return_type = _return_type(func)
            func_name = module.strtable.get(func.str_id)
            params = ", ".join(
                f"{_type_string(param, module)} %{self._number(param)}"
                for param in func.inputs
                if param.ir_type is NodeType.PARAM
            )
            parts.append(f"fn @{func_name}({params}) -> {_dttstr(return_type)}\n{{\n")
            region = next((child for child in module.root.children if child.name == func_name), None)
            if region is not None:
                parts.append(self._function_region(region, module))
            parts.append("}\n")

        return "".join(parts)

    def _function_region(self, region: Region, module: Module) -> str:
        parts = [f"    ${region.name}:\n"]
        for node in region.nodes:
            if node.ir_type is NodeType.ENTRY:
                parts.append("        entry\n")
            elif node.ir_type is NodeType.PARAM or _is_inline_literal(node):
                continue
            else:
                parts.append(f"        {self.dump_node(node, module)};\n")
        for child in region.children:
            parts.append(self._function_region(child, module))
        return "".join(parts)

    def dump_region(self, region: Region, module: Module) -> str:
        """Render a region, its nodes and its child regions."""
        parts = [f"${region.name}:\n"]
        for node in region.nodes:
            parts.append(f"    {self.dump_node(node, module)};\n")
        for child in region.children:
            parts.append("\n")
            parts.append(self.dump_region(child, module))
        return "".join(parts)

    def dump_node(self, node: Node, module: Module) -> str:
        """Render a single node."""
        kind = node.ir_type
        if kind is NodeType.ENTRY:
            return "entry"

        if kind is NodeType.RET:
            return "ret" + (" " + self._operands(node.inputs) if node.inputs else "")

        if kind is NodeType.BRANCH:
            number = self._number(node)
            condition = self._number(node.inputs[0])
            return (
                f"%{number} = branch %{condition} ? ${node.inputs[1].parent.name}"
                f" : ${node.inputs[2].parent.name}"
            )

        if kind is NodeType.JUMP:
            number = self._number(node)
            return f"%{number} = jump ${node.inputs[0].parent.name}"

        if kind is NodeType.CALL:
            number = self._number(node)
            text = f"%{number} = "
            if node.type_kind is not DataType.VOID:
                text += f"{_type_string(node, module)} "
            callee = module.strtable.get(node.inputs[0].str_id)
            return text + f"call @{callee}({self._operands(node.inputs[1:])})"

        if kind is NodeType.INVOKE:
            number = self._number(node)
            text = f"%{number} = "
            if node.type_kind is not DataType.VOID:
                text += f"{_type_string(node, module)} "
            callee = module.strtable.get(node.inputs[0].str_id)
            text += f"invoke @{callee}, ${node.inputs[1].parent.name}, ${node.inputs[2].parent.name}"
            return text + "".join(", " + self._operand(arg) for arg in node.inputs[3:])

        number = self._number(node)
        if kind is NodeType.ALLOC:
            text = f"%{number} = alloc<{_type_string(node, module)}>"
            if node.inputs:
                text += " " + self._operands(node.inputs)
            return text

        text = f"%{number} = "
        if node.type_kind is not DataType.VOID:
            text += f"{_type_string(node, module)} "
        text += _ntttstr(kind)
        if kind is NodeType.LIT:
            text += _literal_text(node)
        elif kind is NodeType.CAST:
            text += f"<{_type_string(node, module)}> " + self._operands(node.inputs)
        elif node.inputs:
            text += " " + self._operands(node.inputs)
        return text


_local = threading.local()


def _shared_dumper() -> Dumper:
    dumper = getattr(_local, "dumper", None)
    if dumper is None:
        dumper = Dumper()
        _local.dumper = dumper
    return dumper


def dump_module(module: Module) -> str:
    """Render a module with this thread's shared numbering, restarting it."""
    return _shared_dumper().dump_module(module)


def dump_region(region: Region, module: Module) -> str:
    """Render a region with this thread's shared numbering."""
    return _shared_dumper().dump_region(region, module)


def dump_node(node: Node, module: Module) -> str:
    """Render a node with this thread's shared numbering."""
    return _shared_dumper().dump_node(node, module)


def dump_dbg(item: Union[Module, Region, Node], module: Optional[Module] = None) -> None:
    """Write the rendering of a module, region or node to standard error."""
    if isinstance(item, Module):
        text = dump_module(item)
    elif isinstance(item, Region):
        text = dump_region(item, module if module is not None else item.module)
    elif isinstance(item, Node):
        if module is None:
            if item.parent is None:
                raise ValueError("a module is required to dump a node outside any region")
            module = item.parent.module
        text = dump_node(item, module)
    else:
        raise TypeError(f"cannot dump {type(item).__name__}")
    print(text, file=sys.stderr)