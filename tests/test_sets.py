from perfbench.benchmark.sets import Set


def test_new_set_is_empty():
    s = Set()
    assert len(s) == 0


def test_add():
    s = Set()
    s.add("element")
    assert "element" in s


def test_remove():
    s = Set()
    s.add("element")
    s.remove("element")
    assert "element" not in s


def test_remove_missing_is_noop():
    s = Set()
    s.add("element")
    s.remove("other")
    assert len(s) == 1
    assert "element" in s


def test_contains():
    s = Set()
    s.add("element")
    assert "element" in s
    assert "missing" not in s


def test_size():
    s = Set()
    s.add("element1")
    s.add("element2")
    assert len(s) == 2


def test_duplicates_counted_once():
    s = Set()
    s.add("element")
    s.add("element")
    assert len(s) == 1
    assert sorted(s) == ["element"]