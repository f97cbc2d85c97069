"""Common subexpression elimination over the IR graph."""

from __future__ import annotations

import enum
import struct
from collections import deque
from dataclasses import dataclass
from typing import Hashable, Optional, Protocol

from arcir.node import Node, NodeTraits, NodeType
from arcir.region import Module, Region
from arcir.typed_data import DataType


class AliasResult(enum.Enum):
    """How two memory accesses relate to each other."""

    NO_ALIAS = enum.auto()
    MAY_ALIAS = enum.auto()
    PARTIAL_ALIAS = enum.auto()
    MUST_ALIAS = enum.auto()


@dataclass(frozen=True)
class MemoryLocation:
    """The memory a load touches; an offset of -1 means it is unknown."""

    allocation_site: Optional[Node] = None
    offset: int = -1
    size: int = 0
    access_type: DataType = DataType.VOID


class _AliasInfo(Protocol):
    def memory_location(self, node: Node) -> Optional[MemoryLocation]: ...

    def alias(self, a: Node, b: Node) -> AliasResult: ...


_LOAD_TYPES = frozenset({NodeType.LOAD, NodeType.PTR_LOAD, NodeType.ATOMIC_LOAD})

_ELIGIBLE_TYPES = frozenset(
    {
        NodeType.ADD,
        NodeType.SUB,
        NodeType.MUL,
        NodeType.DIV,
        NodeType.MOD,
        NodeType.GT,
        NodeType.GTE,
        NodeType.LT,
        NodeType.LTE,
        NodeType.EQ,
        NodeType.NEQ,
        NodeType.BAND,
        NodeType.BOR,
        NodeType.BXOR,
        NodeType.BNOT,
        NodeType.BSHL,
        NodeType.BSHR,
        NodeType.LOAD,
        NodeType.PTR_LOAD,
        NodeType.ATOMIC_LOAD,
        NodeType.ADDR_OF,
        NodeType.PTR_ADD,
        NodeType.CAST,
        NodeType.LIT,
        NodeType.PARAM,
        NodeType.VECTOR_BUILD,
        NodeType.VECTOR_EXTRACT,
        NodeType.VECTOR_SPLAT,
        NodeType.ACCESS,
        NodeType.FROM,
    }
)

_COMMUTATIVE_TYPES = frozenset(
    {
        NodeType.ADD,
        NodeType.MUL,
        NodeType.BAND,
        NodeType.BOR,
        NodeType.BXOR,
        NodeType.EQ,
        NodeType.NEQ,
    }
)

_INTEGER_LITERALS = frozenset(
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


class CommonSubexpressionEliminationPass:
    """Replaces uses of expressions that repeat an earlier, equivalent one.

    Value numbers are positive integers; 0 means no number could be given.
    """

    def __init__(self) -> None:
        self._value_numbers: dict[Node, int] = {}
        self._expression_to_node: dict[int, Node] = {}
        self._keys: dict[Hashable, int] = {}
        self._next_value_number = 1

    def name(self) -> str:
        """The name of the pass."""
        return "common-subexpression-elimination"

    def require(self) -> list[str]:
        """Analyses that must run before this pass."""
        return ["type-based-alias-analysis"]

    def invalidates(self) -> list[str]:
        """Analyses this pass invalidates."""
        return []

    def run(self, module: Module, alias_info: Optional[_AliasInfo] = None) -> list[Region]:
        """Eliminate common subexpressions; return the regions that may have changed.

        Without ``alias_info`` loads are assumed to possibly alias.
        """
        self._value_numbers = {}
        self._expression_to_node = {}
        self._keys = {}
        self._next_value_number = 1

        modified: list[Region] = []
        if self._process_module(module, alias_info) > 0:
            numbered_parents = [node.parent for node in self._value_numbers]
            worklist: deque[Region] = deque([module.root])
            while worklist:
                current = worklist.popleft()
                if any(parent is current for parent in numbered_parents):
                    modified.append(current)
                worklist.extend(current.children)
        return modified

    def _process_module(self, module: Module, alias_info: Optional[_AliasInfo]) -> int:
        total = self._process_region(module.root, alias_info)
        for func in module.functions:
            if func.ir_type is not NodeType.FUNCTION:
                continue
            func_name = module.strtable.get(func.str_id)
            region = next((child for child in module.root.children if child.name == func_name), None)
            if region is not None:
                total += self._process_region(region, alias_info)
        return total

    def _process_region(self, region: Optional[Region], alias_info: Optional[_AliasInfo]) -> int:
        if region is None:
            return 0
        eliminated = 0
        worklist: deque[Region] = deque([region])
        while worklist:
            current = worklist.popleft()
            for node in current.nodes:
                if not self.is_eligible_for_cse(node):
                    continue
                vn = self._compute_v(node, alias_info)
                if vn == 0:
                    continue
                existing = self._expression_to_node.get(vn)
                if existing is not None:
                    if (
                        self.is_load_operation(node)
                        and self.is_load_operation(existing)
                        and self._loads_may_alias(existing, node, alias_info)
                    ):
                        continue
                    if self.replace_all_uses(node, existing):
                        eliminated += 1
                        continue
                self._expression_to_node[vn] = node
                self._value_numbers[node] = vn
            worklist.extend(current.children)
        return eliminated

    def _fresh(self) -> int:
        number = self._next_value_number
        self._next_value_number += 1
        return number

    def _number_for(self, key: Hashable) -> int:
        number = self._keys.get(key)
        if number is None:
            number = self._fresh()
            self._keys[key] = number
        return number

    def _compute_v(self, node: Optional[Node], alias_info: Optional[_AliasInfo]) -> int:
        if node is None:
            return 0
        cached = self._value_numbers.get(node)
        if cached is not None:
            return cached

        if node.ir_type is NodeType.LIT:
            vn = self._compute_lv(node)
        elif node.ir_type in _LOAD_TYPES:
            vn = self._compute_ldv(node, alias_info)
        elif node.inputs:
            vn = self._compute_exprv(node)
        else:
            vn = self._fresh()

        if vn != 0:
            self._value_numbers[node] = vn
        return vn

    def _compute_lv(self, node: Node) -> int:
        if node is None or node.ir_type is not NodeType.LIT:
            raise ValueError("literal value numbering requires a LIT node")
        kind = node.type_kind
        if kind is DataType.BOOL:
            payload: Hashable = int(node.value.get(DataType.BOOL))
        elif kind in _INTEGER_LITERALS:
            payload = node.value.get(kind)
        elif kind is DataType.FLOAT32:
            payload = int.from_bytes(struct.pack("<f", node.value.get(DataType.FLOAT32)), "little")
        elif kind is DataType.FLOAT64:
            payload = int.from_bytes(struct.pack("<d", node.value.get(DataType.FLOAT64)), "little")
        elif kind is DataType.VECTOR:
            return self._compute_veclv(node)
        else:
            raise RuntimeError(f"unsupported literal type for CSE: {int(kind)}")
        return self._number_for(("lit", kind, payload))

    def _compute_veclv(self, node: Node) -> int:
        if node.type_kind is not DataType.VECTOR:
            raise ValueError("vector literal value numbering requires a VECTOR node")
        vec = node.value.get(DataType.VECTOR)
        elements: tuple[int, ...] = ()
        if node.ir_type is NodeType.VECTOR_BUILD:
            numbers = []
            for element in node.inputs:
                if element is None or element.ir_type is not NodeType.LIT:
                    return 0
                numbers.append(self._compute_lv(element))
            elements = tuple(numbers)
        return self._number_for(("vec", vec.elem_type, vec.lane_count, elements))

    def _compute_exprv(self, node: Node) -> int:
        if not node.inputs:
            return 0
        input_vns = []
        for item in node.inputs:
            if item is None:
                return 0
            vn = self._value_numbers.get(item)
            if vn is None:
                return 0
            input_vns.append(vn)

        if node.ir_type is NodeType.FROM:
            input_vns.sort()
        elif self.is_commutative(node.ir_type) and len(input_vns) == 2:
            input_vns.sort()

        return self._number_for(("expr", node.ir_type, node.type_kind, tuple(input_vns)))

    def _compute_ldv(self, node: Node, alias_info: Optional[_AliasInfo]) -> int:
        if not self.is_load_operation(node):
            raise ValueError("load value numbering requires a load operation")
        if not node.inputs or node.inputs[0] is None:
            return self._fresh()

        address = node.inputs[0]
        addr_vn = self._value_numbers.get(address)
        if addr_vn is None:
            addr_vn = self._compute_v(address, alias_info)
            if addr_vn == 0:
                return 0

        location_key: tuple = ()
        location = alias_info.memory_location(node) if alias_info is not None else None
        if location is not None:
            parts: list = [location.allocation_site]
            if location.offset != -1:
                parts.append(location.offset)
            parts.extend((location.size, location.access_type))
            location_key = tuple(parts)

        ordering_key = 0
        if node.ir_type is NodeType.ATOMIC_LOAD and len(node.inputs) > 1:
            ordering = node.inputs[1]
            if ordering is None or ordering.ir_type is not NodeType.LIT:
                return 0
            ordering_key = self._compute_lv(ordering)

        return self._number_for(
            ("load", node.ir_type, node.type_kind, addr_vn, location_key, ordering_key)
        )

    @staticmethod
    def is_load_operation(node: Optional[Node]) -> bool:
        """Whether ``node`` reads memory."""
        return node is not None and node.ir_type in _LOAD_TYPES

    @staticmethod
    def is_eligible_for_cse(node: Optional[Node]) -> bool:
        """Whether ``node`` is free of side effects and may be merged."""
        if node is None or node.ir_type not in _ELIGIBLE_TYPES:
            return False
        return not node.traits & NodeTraits.VOLATILE

    @staticmethod
    def is_commutative(node_type: NodeType) -> bool:
        """Whether the operands of ``node_type`` may be swapped."""
        return node_type in _COMMUTATIVE_TYPES

    def _loads_may_alias(self, a: Node, b: Node, alias_info: Optional[_AliasInfo]) -> bool:
        if not self.is_load_operation(a) or not self.is_load_operation(b) or alias_info is None:
            return True
        return alias_info.alias(a, b) in (AliasResult.MAY_ALIAS, AliasResult.PARTIAL_ALIAS)

    @staticmethod
    def replace_all_uses(node_to_replace: Optional[Node], replacement_node: Optional[Node]) -> bool:
        """Point every user of ``node_to_replace`` at ``replacement_node`` instead."""
        if node_to_replace is None or replacement_node is None or node_to_replace is replacement_node:
            return False
        if node_to_replace.ir_type is NodeType.ENTRY:
            return False

        for user in list(node_to_replace.users):
            if user is None:
                continue
            if any(item is node_to_replace for item in user.inputs):
                user.inputs = [
                    replacement_node if item is node_to_replace else item for item in user.inputs
                ]
                if all(existing is not user for existing in replacement_node.users):
                    replacement_node.users.append(user)
        node_to_replace.users.clear()
        return True