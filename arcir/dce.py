"""Dead code elimination: removes nodes that nothing live depends on."""

from __future__ import annotations

from collections import deque
from typing import Optional

from arcir.node import Node, NodeTraits, NodeType
from arcir.region import Module, Region

_ROOT_TYPES = frozenset(
    {
        NodeType.ENTRY,
        NodeType.FUNCTION,
        NodeType.RET,
        NodeType.EXIT,
        NodeType.PARAM,
        NodeType.BRANCH,
        NodeType.JUMP,
        NodeType.INVOKE,
        NodeType.STORE,
        NodeType.PTR_STORE,
        NodeType.ATOMIC_STORE,
        NodeType.ATOMIC_CAS,
        NodeType.CALL,
    }
)


class DeadCodeElimination:
    """Marks nodes reachable from side-effecting roots and removes the rest."""

    def __init__(self) -> None:
        self._alive: set[Node] = set()
        self._dead: dict[Node, None] = {}

    def name(self) -> str:
        """The name of the pass."""
        return "dead-code-elimination"

    def invalidates(self) -> list[str]:
        """Analyses this pass invalidates."""
        return []

    def run(self, module: Module) -> list[Region]:
        """Remove dead nodes; return the regions that lost nodes."""
        self._alive = set()
        self._dead = {}

        self._find_live_nodes(module.root)
        for func in module.functions:
            if func.ir_type is not NodeType.FUNCTION:
                continue
            func_name = module.strtable.get(func.str_id)
            region = next((child for child in module.root.children if child.name == func_name), None)
            if region is not None:
                self._find_live_nodes(region)

        self._find_dead_nodes(module.root)
        return self._remove_dead_nodes()

    def _find_live_nodes(self, region: Optional[Region]) -> None:
        if region is None:
            return
        worklist: deque[Node] = deque()
        regions = [region]
        while regions:
            current = regions.pop()
            for node in current.nodes:
                if self.is_root_node(node) and node not in self._alive:
                    self._alive.add(node)
                    worklist.append(node)
            regions.extend(current.children)

        while worklist:
            current_node = worklist.popleft()
            for item in current_node.inputs:
                if item is not None and item not in self._alive:
                    self._alive.add(item)
                    worklist.append(item)

    def _find_dead_nodes(self, region: Optional[Region]) -> None:
        if region is None:
            return
        regions = [region]
        while regions:
            current = regions.pop()
            for node in current.nodes:
                if node not in self._alive:
                    self._dead[node] = None
            regions.extend(current.children)

    def _remove_dead_nodes(self) -> list[Region]:
        modified: dict[Region, None] = {}
        for node in self._dead:
            for item in node.inputs:
                if item is None:
                    continue
                position = next(
                    (index for index, user in enumerate(item.users) if user is node), None
                )
                if position is not None:
                    del item.users[position]
            parent = node.parent
            if parent is not None:
                parent.remove(node)
                modified[parent] = None
        return list(modified)

    @staticmethod
    def is_root_node(node: Optional[Node]) -> bool:
        """Whether ``node`` must be kept regardless of its users."""
        if node is None:
            return False
        if DeadCodeElimination.is_global_scope(node.parent):
            return True
        if node.ir_type in _ROOT_TYPES:
            return True
        return bool(node.traits & NodeTraits.VOLATILE)

    @staticmethod
    def is_global_scope(region: Optional[Region]) -> bool:
        """Whether ``region`` is a top-level region without a parent."""
        return region is not None and region.parent is None