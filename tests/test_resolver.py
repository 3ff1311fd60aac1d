from declprune.declarations import DeclarationRecord
from declprune.resolver import find_unused, is_allowed


def declared(*names):
    return {name: DeclarationRecord(name=name, path=f"{name}.swift", offset=0, length=10)
            for name in names}


def test_unused_is_declared_minus_used():
    records = declared("Foo", "Bar", "Baz")
    unused = find_unused(records, ["Bar", "Other", "Int"])

    assert unused == {"Foo", "Baz"}
    assert records["Bar"].used is True
    assert records["Foo"].used is False


def test_allow_list_exact_and_pattern():
    records = declared("AppDelegate", "LoginViewModel", "Helper")
    unused = find_unused(records, [], allow_list=["AppDelegate", "*ViewModel"])
    assert unused == {"Helper"}


def test_nothing_declared():
    assert find_unused({}, ["Foo"]) == set()


def test_unused_subset_of_declared():
    records = declared("A", "B")
    assert find_unused(records, ["C"]) <= set(records)


def test_is_allowed():
    assert is_allowed("Foo", ["Foo"])
    assert is_allowed("FooCoordinator", ["*Coordinator"])
    assert not is_allowed("foocoordinator", ["*Coordinator"])
    assert not is_allowed("Foo", [])
