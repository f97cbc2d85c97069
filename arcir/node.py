"""IR node definition and the enumerations that describe nodes."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from arcir.typed_data import DataType, TypedData

if TYPE_CHECKING:
    from arcir.region import Region


class NodeType(enum.IntEnum):
    """The operation an IR node performs."""

    ENTRY = 0
    EXIT = enum.auto()
    PARAM = enum.auto()
    LIT = enum.auto()
    ADD = enum.auto()
    SUB = enum.auto()
    MUL = enum.auto()
    DIV = enum.auto()
    MOD = enum.auto()
    GT = enum.auto()
    GTE = enum.auto()
    LT = enum.auto()
    LTE = enum.auto()
    EQ = enum.auto()
    NEQ = enum.auto()
    BAND = enum.auto()
    BOR = enum.auto()
    BXOR = enum.auto()
    BNOT = enum.auto()
    BSHL = enum.auto()
    BSHR = enum.auto()
    RET = enum.auto()
    FUNCTION = enum.auto()
    CALL = enum.auto()
    ALLOC = enum.auto()
    LOAD = enum.auto()
    STORE = enum.auto()
    ADDR_OF = enum.auto()
    PTR_LOAD = enum.auto()
    PTR_STORE = enum.auto()
    PTR_ADD = enum.auto()
    CAST = enum.auto()
    ATOMIC_LOAD = enum.auto()
    ATOMIC_STORE = enum.auto()
    ATOMIC_CAS = enum.auto()
    JUMP = enum.auto()
    BRANCH = enum.auto()
    INVOKE = enum.auto()
    VECTOR_BUILD = enum.auto()
    VECTOR_EXTRACT = enum.auto()
    VECTOR_SPLAT = enum.auto()
    ACCESS = enum.auto()
    FROM = enum.auto()


class AtomicOrdering(enum.IntEnum):
    """Memory ordering of atomic operations."""

    RELAXED = 0
    ACQUIRE = 1 << 0
    RELEASE = 1 << 1
    EXCLUSIVE = 1 << 4
    ACQ_REL = (1 << 0) | (1 << 1)
    SEQ_CST = (1 << 0) | (1 << 1) | (1 << 3)


class NodeTraits(enum.IntFlag):
    """Bit flags describing special properties of a node."""

    NONE = 0
    EXTERN = 1 << 0
    DRIVER = 1 << 1
    EXPORT = 1 << 2
    VOLATILE = 1 << 3
    READONLY = 1 << 4


@dataclass(eq=False)
class Node:
    """A node of the IR graph; identity is what distinguishes nodes."""

    inputs: list = field(default_factory=list, repr=False)
    users: list = field(default_factory=list, repr=False)
    parent: Optional["Region"] = field(default=None, repr=False)
    ir_type: NodeType = NodeType.ENTRY
    traits: NodeTraits = NodeTraits.NONE
    value: TypedData = field(default_factory=TypedData)
    type_kind: DataType = DataType.VOID
    str_id: int = 0

    def has_trait(self, trait: NodeTraits) -> bool:
        """Whether any bit of ``trait`` is set on this node."""
        return bool(self.traits & trait)