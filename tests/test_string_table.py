import pytest

from arcir.string_table import StringTable


@pytest.fixture
def table():
    return StringTable()


def test_interning_same_and_different(table):
    id1 = table.intern("hello")
    id2 = table.intern("world")
    id3 = table.intern("hello")
    assert id1 != id2
    assert id1 == id3
    assert table.get(id1) == "hello"
    assert table.get(id2) == "world"


def test_empty_string_interning(table):
    empty1 = table.intern("")
    empty2 = table.intern("")
    assert empty1 == empty2 == 0
    assert table.get(empty1) == ""


def test_ids_are_sequential_from_one(table):
    assert table.intern("a") == 1
    assert table.intern("b") == 2
    assert table.intern("a") == 1


def test_invalid_id_raises(table):
    with pytest.raises(IndexError):
        table.get(5)
    with pytest.raises(IndexError):
        table.get(-1)


def test_contains_and_len(table):
    assert "" in table
    assert "x" not in table
    assert len(table) == 1
    table.intern("x")
    assert "x" in table
    assert len(table) == 2


def test_clear_resets_table(table):
    table.intern("alpha")
    table.intern("beta")
    table.clear()
    assert len(table) == 1
    assert "alpha" not in table
    assert table.intern("gamma") == 1
    assert table.get(0) == ""