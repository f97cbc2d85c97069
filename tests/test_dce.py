import pytest

from arcir.dce import DeadCodeElimination
from arcir.node import Node, NodeTraits, NodeType
from arcir.region import Module
from arcir.typed_data import DataType


def make(region, ir_type, inputs=(), traits=NodeTraits.NONE):
    node = Node(ir_type=ir_type, type_kind=DataType.INT32, inputs=list(inputs), traits=traits)
    region.append(node)
    for item in inputs:
        item.users.append(node)
    return node


@pytest.fixture
def setup():
    module = Module("m")
    region = module.create_region("f")
    return module, region


def test_pass_metadata():
    dce = DeadCodeElimination()
    assert dce.name() == "dead-code-elimination"
    assert dce.invalidates() == []


def test_unused_node_removed(setup):
    module, region = setup
    p = make(region, NodeType.PARAM)
    dead = make(region, NodeType.ADD, inputs=(p, p))
    make(region, NodeType.RET, inputs=(p,))
    modified = DeadCodeElimination().run(module)
    assert modified == [region]
    assert dead not in region.nodes
    assert dead.parent is None
    assert all(user is not dead for user in p.users)


def test_dead_chain_removed_entirely(setup):
    module, region = setup
    lit = make(region, NodeType.LIT)
    add = make(region, NodeType.ADD, inputs=(lit, lit))
    make(region, NodeType.MUL, inputs=(add, lit))
    DeadCodeElimination().run(module)
    assert [node.ir_type for node in region.nodes] == [NodeType.ENTRY]


def test_live_chain_kept(setup):
    module, region = setup
    lit = make(region, NodeType.LIT)
    add = make(region, NodeType.ADD, inputs=(lit, lit))
    ret = make(region, NodeType.RET, inputs=(add,))
    before = region.nodes
    assert DeadCodeElimination().run(module) == []
    assert region.nodes == before
    assert ret.inputs == [add]


def test_store_operands_kept(setup):
    module, region = setup
    slot = make(region, NodeType.ALLOC)
    value = make(region, NodeType.LIT)
    make(region, NodeType.STORE, inputs=(value, slot))
    DeadCodeElimination().run(module)
    assert slot in region.nodes
    assert value in region.nodes


def test_volatile_node_kept(setup):
    module, region = setup
    lit = make(region, NodeType.LIT)
    vol = make(region, NodeType.LOAD, inputs=(lit,), traits=NodeTraits.VOLATILE)
    DeadCodeElimination().run(module)
    assert vol in region.nodes
    assert lit in region.nodes


def test_global_nodes_always_kept():
    module = Module("m")
    unused = make(module.root, NodeType.ADD)
    assert DeadCodeElimination().run(module) == []
    assert unused in module.root.nodes


def test_nested_region_dead_nodes_removed(setup):
    module, region = setup
    child = module.create_region("inner", region)
    dead = make(child, NodeType.SUB)
    modified = DeadCodeElimination().run(module)
    assert modified == [child]
    assert dead not in child.nodes


def test_scope_predicates(setup):
    module, region = setup
    assert not DeadCodeElimination.is_global_scope(None)
    assert DeadCodeElimination.is_global_scope(module.root)
    assert not DeadCodeElimination.is_global_scope(region)
    assert not DeadCodeElimination.is_root_node(None)
    assert DeadCodeElimination.is_root_node(make(region, NodeType.CALL))
    assert not DeadCodeElimination.is_root_node(make(region, NodeType.ADD))