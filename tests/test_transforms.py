"""map / filter / pluck / reduce / first / last / group_by / sort_by."""
import logging
import operator
from collections import namedtuple
from dataclasses import dataclass

import numpy as np

from collect import Collect, collection

Point = namedtuple("Point", ["a", "b"])


@dataclass
class Row:
    a: int


class Plain:
    def __init__(self, a):
        self.a = a


def test_map_preserves_keys_and_receiver():
    coll = Collect({"a": 1, "b": 2})
    mapped = coll.map(lambda v, k: f"{k}{v}")
    assert mapped.all() == {"a": "a1", "b": "b2"}
    assert list(mapped.keys()) == list(coll.keys())
    assert coll.all() == {"a": 1, "b": 2}


def test_map_accepts_single_argument_callbacks():
    assert Collect([1, 2, 3]).map(lambda v: v * 10).all() == {0: 10, 1: 20, 2: 30}
    assert Collect([-1, 2]).map(abs).all() == {0: 1, 1: 2}


def test_filter_without_callback_keeps_truthy_values():
    coll = Collect([0, 1, "", None, "x", [], [0], False, Collect(), Collect([1])])
    kept = coll.filter()
    assert list(kept.keys()) == [1, 4, 6, 9]
    assert kept[4] == "x"


def test_filter_preserves_original_keys():
    assert collection([1, 2, 3, 4]).filter(lambda v: v % 2 == 0).all() == {1: 2, 3: 4}
    assert Collect({"a": 1, "b": 2}).filter(lambda v, k: k != "a").all() == {"b": 2}
    assert Collect([0, 3]).filter(operator.truth).all() == {1: 3}


def test_pluck_dispatches_over_record_shapes():
    values = [
        {"a": 1},
        {"b": 2},
        Point(a=3, b=0),
        Row(a=4),
        Plain(None),
        "a",
        5,
        Collect({"a": 6}),
        {"a": None},
        Plain(7),
    ]
    assert Collect(values).pluck("a").all() == {0: 1, 1: 3, 2: 4, 3: 6, 4: None, 5: 7}


def test_pluck_reindexes_from_zero():
    coll = Collect({"x": {"id": 1}, "y": {"name": "n"}, "z": {"id": 3}})
    assert coll.pluck("id").all() == {0: 1, 1: 3}


def test_pluck_numpy_structured_records():
    table = np.array([(1, 2.0), (3, 4.0)], dtype=[("id", "i4"), ("w", "f8")])
    coll = Collect(table)
    assert coll.pluck("id").all() == {0: 1, 1: 3}
    assert coll.pluck("missing").count() == 0


def test_reduce_folds_in_order():
    coll = Collect({"a": 1, "b": 2, "c": 3})
    assert coll.reduce(lambda carry, v: carry + v, 0) == 6
    assert coll.reduce(lambda carry, v, k: carry + k, "") == "abc"
    assert Collect().reduce(lambda carry, v: carry + v) is None


def test_first():
    coll = Collect([None, 1, 2, 3])
    assert coll.first(default="d") is None
    assert coll.first(lambda v: v is not None and v > 1) == 2
    assert coll.first(lambda v, k: k == 3) == 3
    assert coll.first(lambda v: v == 99, "d") == "d"
    assert Collect().first(default="empty") == "empty"


def test_last():
    assert Collect([1, 2, 3]).last() == 3
    assert Collect().last("d") == "d"
    # Falsy last values fall back to the default.
    assert Collect([1, 0]).last("d") == "d"
    assert Collect([1, ""]).last() is None


def test_group_by_field():
    coll = collection({"x": {"g": "A"}, "y": {"g": "B"}, "z": {"g": "A"}})
    groups = coll.group_by("g")
    assert list(groups.keys()) == ["A", "B"]
    assert groups.get("A").count() == 2
    assert groups["A"].all() == {0: {"g": "A"}, 1: {"g": "A"}}


def test_group_by_callable_keeps_relative_order():
    groups = Collect([1, 2, 3, 4, 5]).group_by(lambda v: v % 2)
    assert list(groups.keys()) == [1, 0]
    assert groups[1].all() == {0: 1, 1: 3, 2: 5}
    assert groups[0].all() == {0: 2, 1: 4}


def test_group_by_unresolved_values_go_to_none():
    groups = Collect([{"g": "A"}, "loose", {"other": 1}]).group_by("g")
    assert groups[None].all() == {0: "loose", 1: {"other": 1}}
    assert groups["A"].count() == 1


def test_group_by_numpy_field_values_are_python_keys():
    table = np.array([(1,), (2,), (1,)], dtype=[("k", "i8")])
    groups = Collect(table).group_by("k")
    assert sorted(groups.keys()) == [1, 2]
    assert all(type(k) is int for k in groups.keys())


def test_sort_by_reindexes():
    coll = collection({"c": {"n": 3}, "a": {"n": 1}, "b": {"n": 2}})
    assert coll.sort_by("n").all() == {0: {"n": 1}, 1: {"n": 2}, 2: {"n": 3}}


def test_sort_by_descending_and_stable():
    rows = [{"n": 1, "id": "a"}, {"n": 2, "id": "b"}, {"n": 1, "id": "c"}]
    ascending = Collect(rows).sort_by("n").pluck("id").all()
    descending = Collect(rows).sort_by("n", descending=True).pluck("id").all()
    assert list(ascending.values()) == ["a", "c", "b"]
    assert list(descending.values()) == ["b", "a", "c"]


def test_sort_by_missing_fields_sort_first():
    rows = [{"n": 2}, {"x": 1}, Row(a=0), {"n": 1}]
    assert list(Collect(rows).sort_by("n").values()) == [{"x": 1}, Row(a=0), {"n": 1}, {"n": 2}]


def test_sort_by_loosely_equal_keys_tie():
    rows = [{"n": None, "id": 1}, {"n": 0, "id": 2}, {"n": False, "id": 3}]
    assert list(Collect(rows).sort_by("n").pluck("id").values()) == [1, 2, 3]
    assert list(Collect(rows).sort_by("n", True).pluck("id").values()) == [1, 2, 3]


def test_sort_by_numeric_strings_compare_as_numbers():
    rows = [{"n": "10"}, {"n": 9}, {"n": "9.5"}]
    assert list(Collect(rows).sort_by("n").pluck("n").values()) == [9, "9.5", "10"]


def test_transforms_do_not_mutate_receiver():
    rows = [{"n": 2, "g": "x"}, {"n": 1, "g": "y"}]
    coll = Collect(rows)
    before = coll.all()
    coll.map(lambda v: v["n"])
    coll.filter(lambda v: v["n"] > 1)
    coll.pluck("n")
    coll.group_by("g")
    coll.sort_by("n")
    assert coll.all() == before


def test_python_only_float_spellings_are_not_numeric_strings():
    rows = [{"n": "1_0"}, {"n": "9"}]
    assert list(Collect(rows).sort_by("n").pluck("n").values()) == ["1_0", "9"]
    rows = [{"n": "inf"}, {"n": 5}]
    # "inf" is compared as text against "5".
    assert list(Collect(rows).sort_by("n").pluck("n").values()) == [5, "inf"]
    assert list(Collect([{"n": "1e1"}, {"n": 9}]).sort_by("n").pluck("n").values()) == [9, "1e1"]


def test_pluck_logs_skipped_values(caplog):
    caplog.set_level(logging.DEBUG, logger="collect")
    Collect([{"a": 1}, "loose", 3]).pluck("a")
    assert any("skipped 2 of 3" in r.getMessage() for r in caplog.records)
