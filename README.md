# arcir

`arcir` is a small compiler intermediate representation: a graph of nodes
grouped into regions, which belong to a module. It provides:

- `arcir.string_table` – `StringTable`, which interns strings as small
  integer ids (the empty string is always id 0).
- `arcir.typed_data` – `DataType`, `PtrQualifier` and `TypedData`, a value
  tagged with its data type, plus the composite payloads `VectorData`,
  `PointerData`, `ArrayData`, `StructData` (with `StructField`) and
  `FunctionData`. Reading a value as the wrong type raises
  `TypedDataMismatch`.
- `arcir.node` – `Node` with its `NodeType`, `NodeTraits` and
  `AtomicOrdering` enumerations.
- `arcir.region` – `Region` (ordered nodes and child regions, insertion,
  removal, replacement, tree dominance) and `Module` (string table, named
  type definitions, function list, a `.__global` root region and a
  `.__rodata` region).
- `arcir.inference` – type promotion for binary operations
  (`infer_binary_t`, `infer_primitive_types`), `set_t`, and pointer
  qualifier checks such as `is_const_pointer`.
- `arcir.dump` – a text rendering of modules, regions and nodes
  (`dump_module`, `dump_region`, `dump_node`, `dump_dbg`, or a `Dumper`
  with its own node numbering).
- `arcir.cse` – `CommonSubexpressionEliminationPass`.
- `arcir.dce` – `DeadCodeElimination`.

## Installation

```
pip install .
```

## Examples

Interned strings:

```python
from arcir.string_table import StringTable

table = StringTable()
hello = table.intern("hello")
assert table.get(hello) == "hello"
assert table.intern("") == 0
```

Type promotion follows C-like rules: integers narrower than 32 bits widen to
`INT32`, mixed integer and float operands become `FLOAT64`, and pointers,
arrays, structs, functions and vectors never mix implicitly (the result is
`VOID`):

```python
from arcir.typed_data import DataType
from arcir.inference import infer_primitive_types

assert infer_primitive_types(DataType.INT8, DataType.UINT16) is DataType.INT32
assert infer_primitive_types(DataType.INT32, DataType.FLOAT32) is DataType.FLOAT64
```

Building a few nodes by hand, dumping one and removing the unused ones:

```python
from arcir.dce import DeadCodeElimination
from arcir.dump import Dumper
from arcir.node import Node, NodeType
from arcir.region import Module
from arcir.typed_data import DataType, TypedData

module = Module("example")
body = module.create_region("main")

lhs = Node(ir_type=NodeType.LIT, type_kind=DataType.INT32, value=TypedData(DataType.INT32, 2))
rhs = Node(ir_type=NodeType.LIT, type_kind=DataType.INT32, value=TypedData(DataType.INT32, 3))
add = Node(ir_type=NodeType.ADD, type_kind=DataType.INT32, inputs=[lhs, rhs])
lhs.users.append(add)
rhs.users.append(add)
for node in (lhs, rhs, add):
    body.append(node)

assert Dumper().dump_node(add, module) == "%1 = i32 add #2, #3"

# nothing live uses the addition, so it and its literals are removed
assert DeadCodeElimination().run(module) == [body]
assert [node.ir_type for node in body.nodes] == [NodeType.ENTRY]
```

`CommonSubexpressionEliminationPass().run(module, alias_info)` merges
repeated side-effect-free expressions and returns the regions that may have
changed. `alias_info` is any object with `memory_location(node)` (returning a
`MemoryLocation` or `None`) and `alias(a, b)` (returning an `AliasResult`);
without it, repeated loads are assumed to possibly alias and are kept.

## What this package does not do

There is no builder API, no pass manager or task graph to schedule passes,
no alias analysis of its own, no parser for the text the dumper writes, and
no command-line tool. Nodes are created and linked directly, keeping
`inputs` and `users` consistent yourself, and passes are run by calling them.

## Running the tests

```
pip install .[test]
pytest
```