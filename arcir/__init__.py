"""Graph-based compiler IR: typed nodes, regions and modules, type inference, text dumps, CSE and DCE."""

__version__ = "0.1.0"

__all__ = [
    "string_table",
    "typed_data",
    "node",
    "region",
    "inference",
    "dump",
    "cse",
    "dce",
]