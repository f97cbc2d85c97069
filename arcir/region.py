"""Regions that group IR nodes, and the module that owns them."""

from __future__ import annotations

from typing import Iterable, Optional, Union

from arcir.node import Node, NodeType
from arcir.string_table import StringTable
from arcir.typed_data import TypedData

_TERMINATORS = frozenset({NodeType.RET, NodeType.JUMP, NodeType.BRANCH, NodeType.INVOKE})


class Region:
    """An ordered list of nodes with nested child regions."""

    def __init__(self, name: str, module: "Module", parent: Optional["Region"] = None) -> None:
        self._module = module
        self._parent = parent
        self._children: list[Region] = []
        self._region_id = module.intern_str(name)
        self._nodes: list[Node] = []
        self.append(Node(ir_type=NodeType.ENTRY, str_id=self._region_id))
        if parent is not None:
            parent.add_child(self)

    @property
    def name(self) -> str:
        """The name of the region."""
        return self._module.strtable.get(self._region_id)

    @property
    def parent(self) -> Optional["Region"]:
        """The enclosing region, or None for a top-level region."""
        return self._parent

    @property
    def module(self) -> "Module":
        """The module that owns this region."""
        return self._module

    @property
    def children(self) -> tuple["Region", ...]:
        """The child regions, in the order they were added."""
        return tuple(self._children)

    @property
    def nodes(self) -> tuple[Node, ...]:
        """The nodes of the region, in order."""
        return tuple(self._nodes)

    def add_child(self, child: "Region") -> None:
        """Record ``child`` as a child region."""
        if all(existing is not child for existing in self._children):
            self._children.append(child)

    def append(self, node: Node) -> None:
        """Append ``node`` to the end of this region."""
        node.parent = self
        self._nodes.append(node)

    def remove(self, *args: Union[Node, Iterable[Node]]) -> None:
        """Remove the given nodes, or every node of given iterables, from this region."""
        targets: list[Node] = []
        for item in args:
            if isinstance(item, Node):
                targets.append(item)
            else:
                targets.extend(item)
        for node in targets:
            if node not in self._nodes:
                raise ValueError(f"node is not in region {self.name!r}")
        for node in targets:
            self._nodes.remove(node)
            node.parent = None

    def _position(self, node: Node) -> int:
        try:
            return self._nodes.index(node)
        except ValueError:
            raise ValueError(f"node is not in region {self.name!r}") from None

    def insert_before(self, before: Node, node: Node) -> None:
        """Insert ``node`` directly before ``before``."""
        position = self._position(before)
        node.parent = self
        self._nodes.insert(position, node)

    def insert_after(self, after: Node, node: Node) -> None:
        """Insert ``node`` directly after ``after``."""
        position = self._position(after)
        node.parent = self
        self._nodes.insert(position + 1, node)

    def insert(self, node: Node) -> None:
        """Insert ``node`` at the beginning of this region."""
        node.parent = self
        self._nodes.insert(0, node)

    def is_terminated(self) -> bool:
        """Whether the region ends with a return, jump, branch or invoke."""
        return bool(self._nodes) and self._nodes[-1].ir_type in _TERMINATORS

    def dominates_via_tree(self, possibly_dominated: Optional["Region"]) -> bool:
        """Whether this region is ``possibly_dominated`` or one of its ancestors."""
        current = possibly_dominated
        while current is not None:
            if current is self:
                return True
            current = current.parent
        return False

    def replace(self, old_node: Node, new_node: Node, rewire: bool = True) -> bool:
        """Put ``new_node`` where ``old_node`` was; optionally move its uses over."""
        if old_node is new_node or old_node not in self._nodes:
            return False
        self._nodes[self._nodes.index(old_node)] = new_node
        new_node.parent = self
        old_node.parent = None
        if rewire:
            for user in list(old_node.users):
                user.inputs = [new_node if item is old_node else item for item in user.inputs]
                if all(existing is not user for existing in new_node.users):
                    new_node.users.append(user)
            old_node.users.clear()
            for source in old_node.inputs:
                if source is not None:
                    source.users = [user for user in source.users if user is not old_node]
        return True

    def entry(self) -> Optional[Node]:
        """The ENTRY node of the region, if it has one."""
        return next((node for node in self._nodes if node.ir_type is NodeType.ENTRY), None)

    def __repr__(self) -> str:
        return f"Region({self.name!r})"


class Module:
    """A compilation unit: strings, type definitions, functions and regions."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._strtable = StringTable()
        self._typemap: dict[str, TypedData] = {}
        self._functions: list[Node] = []
        self._root = Region(".__global", self)
        self._rodata = Region(".__rodata", self)

    @property
    def name(self) -> str:
        """The module's name."""
        return self._name

    @property
    def strtable(self) -> StringTable:
        """The module's string table."""
        return self._strtable

    @property
    def typemap(self) -> dict[str, TypedData]:
        """Named type definitions, in definition order."""
        return self._typemap

    @property
    def functions(self) -> list[Node]:
        """The function nodes of the module."""
        return self._functions

    @property
    def root(self) -> Region:
        """The global region."""
        return self._root

    @property
    def rodata(self) -> Region:
        """The read-only data region."""
        return self._rodata

    def intern_str(self, text: str) -> int:
        """Intern ``text`` in the module's string table."""
        return self._strtable.intern(text)

    def create_region(self, name: str, parent: Optional[Region] = None) -> Region:
        """Create a region under ``parent``, or under the root region by default."""
        return Region(name, self, parent if parent is not None else self._root)

    def add_function(self, node: Node) -> Node:
        """Register a function node with the module."""
        self._functions.append(node)
        return node

    def define_type(self, name: str, data: TypedData) -> None:
        """Register a named type definition."""
        self._typemap[name] = data

    def __repr__(self) -> str:
        return f"Module({self._name!r})"