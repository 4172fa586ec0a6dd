"""Tests for ProjectedMap (ordered map over projected keys)."""

from dataclasses import dataclass
from enum import Enum

import pytest

from projmap.map import PMap
from projmap.projected import ProjectedMap


class Animal(Enum):
    Cat = "cat"
    Mouse = "mouse"
    Dog = "dog"


def animal_index(animal: Animal) -> int:
    match animal:
        case Animal.Cat:
            return 0
        case Animal.Mouse:
            return 1
        case Animal.Dog:
            return 2


@dataclass(frozen=True)
class Point:
    """Keys with equality but no ordering."""

    x: int
    y: int


def point_surrogate(point: Point) -> tuple[int, int]:
    return (point.x, point.y)


def test_empty_creation():
    """Test creating an empty ProjectedMap."""
    pmap: ProjectedMap[Animal, int, str] = ProjectedMap.empty(animal_index)
    assert pmap.null()
    assert pmap.size() == 0
    assert len(pmap) == 0
    assert not pmap
    assert pmap.list() == []


def test_singleton_creation():
    """Test creating a one-entry ProjectedMap."""
    pmap = ProjectedMap.singleton(Animal.Dog, "Spike", animal_index)
    assert pmap.size() == 1
    assert pmap.lookup(Animal.Dog) == "Spike"
    assert pmap.list() == [(Animal.Dog, "Spike")]


def test_cat_and_mouse():
    """Lookups and listing follow the projection, not insertion order."""
    pmap = ProjectedMap.mk(animal_index, [(Animal.Mouse, "Jerry"), (Animal.Cat, "Tom")])

    assert pmap.lookup(Animal.Cat) == "Tom"
    assert pmap.lookup(Animal.Dog) is None
    assert pmap.contains(Animal.Mouse)
    assert Animal.Mouse in pmap
    assert Animal.Dog not in pmap
    assert pmap.list() == [(Animal.Cat, "Tom"), (Animal.Mouse, "Jerry")]
    assert list(pmap.keys()) == [Animal.Cat, Animal.Mouse]
    assert list(pmap.values()) == ["Tom", "Jerry"]


def test_unorderable_keys():
    """Keys without an ordering are sorted by their surrogates."""
    pmap = ProjectedMap.mk(
        point_surrogate,
        [(Point(2, 0), "c"), (Point(0, 5), "a"), (Point(1, -1), "b")],
    )
    assert list(pmap.keys()) == [Point(0, 5), Point(1, -1), Point(2, 0)]
    assert pmap[Point(1, -1)] == "b"


def test_mk_last_write_wins():
    """Colliding surrogates keep the later pair, key and value both."""
    pmap = ProjectedMap.mk(str.lower, [("Apple", 1), ("banana", 2), ("APPLE", 3)])

    assert pmap.size() == 2
    assert pmap.list() == [("APPLE", 3), ("banana", 2)]


def test_insert_replaces_stored_key():
    """Inserting a colliding key replaces the stored key as well as the value."""
    pmap = ProjectedMap.empty(str.lower).insert("Hello", 1).insert("HELLO", 2)

    assert pmap.size() == 1
    assert pmap.lookup("hello") == 2
    assert pmap.lookup_key("Hello") == "HELLO"
    assert pmap.lookup_key("missing") is None


def test_insert_operator():
    """The >> operator inserts."""
    pmap = ProjectedMap.empty(animal_index) >> (Animal.Dog, "Spike") >> (
        Animal.Cat,
        "Tom",
    )
    assert pmap.list() == [(Animal.Cat, "Tom"), (Animal.Dog, "Spike")]


def test_get_and_getitem():
    """get() raises or defaults on misses; [] raises."""
    pmap = ProjectedMap.singleton(Animal.Cat, "Tom", animal_index)

    assert pmap.get(Animal.Cat) == "Tom"
    assert pmap.get(Animal.Dog, "nobody") == "nobody"
    with pytest.raises(KeyError):
        pmap.get(Animal.Dog)
    with pytest.raises(KeyError):
        pmap[Animal.Dog]


def test_update_inserts_changes_and_removes():
    """update() covers insert, change and delete through one function."""
    pmap = ProjectedMap.mk(str.lower, [("one", 1)])

    inserted = pmap.update("Two", lambda old: 2 if old is None else old + 1)
    assert inserted.list() == [("one", 1), ("Two", 2)]

    changed = inserted.update("ONE", lambda old: None if old is None else old * 10)
    assert changed.list() == [("ONE", 10), ("Two", 2)]

    removed = changed.update("two", lambda _: None)
    assert removed.list() == [("ONE", 10)]

    untouched = removed.update("absent", lambda _: None)
    assert untouched == removed


def test_remove():
    """remove() deletes by surrogate and ignores missing keys."""
    pmap = ProjectedMap.mk(str.lower, [("A", 1), ("B", 2)])

    assert pmap.remove("a").list() == [("B", 2)]
    assert pmap.remove("z") is pmap
    assert pmap.list() == [("A", 1), ("B", 2)]


def test_remove_all_keeps_projection():
    """remove_all() empties the map but keeps projecting keys the same way."""
    pmap = ProjectedMap.mk(str.lower, [("A", 1)])
    emptied: ProjectedMap[str, str, str] = pmap.remove_all()

    assert emptied.null()
    assert emptied.to_surrogate is pmap.to_surrogate
    assert emptied.insert("b", "x").insert("a", "y").list() == [("a", "y"), ("b", "x")]


def test_any_all_boundaries():
    """any() is False and all() is True on an empty map."""
    empty = ProjectedMap.empty(animal_index)
    assert not empty.any(lambda _k, _v: True)
    assert empty.all(lambda _k, _v: False)

    pmap = ProjectedMap.mk(animal_index, [(Animal.Cat, 3), (Animal.Dog, 5)])
    assert pmap.any(lambda _, v: v > 4)
    assert not pmap.all(lambda _, v: v > 4)
    assert pmap.all(lambda k, _: k != Animal.Mouse)


def test_map_keeps_keys_and_projection():
    """map() changes values only."""
    pmap = ProjectedMap.mk(str.lower, [("B", 2), ("a", 1)])
    mapped = pmap.map(lambda k, v: f"{k}={v}")

    assert mapped.list() == [("a", "a=1"), ("B", "B=2")]
    assert mapped.insert("A", "new").list() == [("A", "new"), ("B", "B=2")]


def test_folds():
    """Left folds ascend and right folds descend."""
    pmap = ProjectedMap.mk(
        animal_index, [(Animal.Dog, "d"), (Animal.Cat, "c"), (Animal.Mouse, "m")]
    )
    assert pmap.fold_with_key(lambda acc, _, v: acc + v, "") == "cmd"
    assert pmap.fold_right_with_key(lambda _, v, acc: acc + v, "") == "dmc"
    assert [k for k, _ in reversed(pmap)] == [Animal.Dog, Animal.Mouse, Animal.Cat]


def test_filter_and_partition():
    """filter() and partition() keep the projection."""
    pmap = ProjectedMap.mk(str.lower, [("a", 1), ("B", 2), ("c", 3), ("D", 4)])

    evens = pmap.filter(lambda _, v: v % 2 == 0)
    assert evens.list() == [("B", 2), ("D", 4)]
    assert evens.insert("b", 20).list() == [("b", 20), ("D", 4)]

    yes, no = pmap.partition(lambda k, _: k.isupper())
    assert yes.list() == [("B", 2), ("D", 4)]
    assert no.list() == [("a", 1), ("c", 3)]
    assert no.contains("A")


def test_filter_map():
    """filter_map() drops None results and changes the value type."""
    pmap = ProjectedMap.mk(str.lower, [("a", "1"), ("b", "x"), ("c", "3")])
    parsed = pmap.filter_map(lambda _, v: int(v) if v.isdigit() else None)

    assert parsed.list() == [("a", 1), ("c", 3)]
    assert pmap.filter_map(lambda _, v: v) == pmap


def test_union_prefers_left():
    """On collision the left map's key and value win."""
    left = ProjectedMap.mk(str.lower, [("Key", "left"), ("only-left", 1)])
    right = ProjectedMap.mk(str.lower, [("KEY", "right"), ("only-right", 2)])

    assert (left | right).list() == [
        ("Key", "left"),
        ("only-left", 1),
        ("only-right", 2),
    ]
    assert right.union(left).lookup_key("key") == "KEY"


def test_intersection_and_difference():
    """Intersection and difference keep left keys and values."""
    left = ProjectedMap.mk(str.lower, [("A", 1), ("B", 2), ("C", 3)])
    right = ProjectedMap.mk(str.lower, [("b", "x"), ("c", "y"), ("d", "z")])

    assert (left & right).list() == [("B", 2), ("C", 3)]
    assert left.intersection(right).lookup_key("b") == "B"
    assert (left - right).list() == [("A", 1)]
    assert right.difference(left).list() == [("d", "z")]


def test_merge_visits_each_surrogate_once():
    """merge() walks both maps together in ascending surrogate order."""
    left = ProjectedMap.mk(str.lower, [("A", 1), ("C", 3), ("E", 5)])
    right = ProjectedMap.mk(str.lower, [("b", 20), ("c", 30), ("f", 60)])

    events = left.merge(
        right,
        lambda k, v, acc: acc + [("left", k, v)],
        lambda k, a, b, acc: acc + [("both", k, a, b)],
        lambda k, v, acc: acc + [("right", k, v)],
        [],
    )
    assert events == [
        ("left", "A", 1),
        ("right", "b", 20),
        ("both", "C", 3, 30),
        ("left", "E", 5),
        ("right", "f", 60),
    ]


def test_merge_with_empty_sides():
    """merge() with one empty side only calls the other one-sided step."""
    pmap = ProjectedMap.mk(animal_index, [(Animal.Cat, 1), (Animal.Dog, 2)])
    empty = pmap.remove_all()

    def fail(*_args):
        raise AssertionError("unexpected step")

    assert pmap.merge(empty, lambda _, v, acc: acc + v, fail, fail, 0) == 3
    assert empty.merge(pmap, fail, fail, lambda _, v, acc: acc + v, 0) == 3


def test_group_by_parity():
    """Groups keep the relative input order of their items."""
    groups = ProjectedMap.group_by(
        lambda n: "odd" if n % 2 else "even",
        lambda parity: 1 if parity == "odd" else 0,
        [1, 2, 3, 4],
    )
    assert groups.lookup("odd") == [1, 3]
    assert groups.lookup("even") == [2, 4]
    assert groups.list() == [("even", [2, 4]), ("odd", [1, 3])]


def test_group_by_keeps_first_key():
    """A group's key is the one derived from its first item."""
    groups = ProjectedMap.group_by(
        lambda word: word[0], str.lower, ["Apple", "avocado", "banana"]
    )
    assert groups.list() == [("A", ["Apple", "avocado"]), ("b", ["banana"])]


def test_to_pmap_drops_keys():
    """to_pmap() returns a plain surrogate-keyed map."""
    pmap = ProjectedMap.mk(animal_index, [(Animal.Mouse, "Jerry"), (Animal.Cat, "Tom")])
    assert pmap.to_pmap() == PMap.mk([(0, "Tom"), (1, "Jerry")])


def test_find_min_max():
    """Extreme entries follow the surrogate order."""
    pmap = ProjectedMap.mk(
        animal_index, [(Animal.Dog, "d"), (Animal.Cat, "c"), (Animal.Mouse, "m")]
    )
    assert ProjectedMap.empty(animal_index).find_min() is None

    min_result = pmap.find_min()
    assert min_result is not None
    key, value, rest = min_result
    assert (key, value) == (Animal.Cat, "c")
    assert list(rest.keys()) == [Animal.Mouse, Animal.Dog]

    max_result = pmap.find_max()
    assert max_result is not None
    rest, key, value = max_result
    assert (key, value) == (Animal.Dog, "d")
    assert rest.size() == 2


def test_equality_ignores_projection():
    """Maps with equal contents are equal even with distinct projections."""
    first = ProjectedMap.mk(lambda s: s.lower(), [("a", 1), ("b", 2)])
    second = ProjectedMap.mk(str.lower, [("b", 2), ("a", 1)])

    assert first == second
    assert first != second.insert("c", 3)
    assert first != second.insert("A", 1)
    assert first != [("a", 1), ("b", 2)]


def test_not_hashable():
    """Maps compare by contents, so they cannot be hashed."""
    with pytest.raises(TypeError):
        hash(ProjectedMap.empty(str.lower))


def test_repr_and_persistence():
    """repr lists entries; operations never change the receiver."""
    pmap = ProjectedMap.mk(str.lower, [("b", 2), ("a", 1)])
    pmap.insert("c", 3)
    pmap.remove("a")
    pmap.update("b", lambda _: None)

    assert repr(pmap) == "ProjectedMap([('a', 1), ('b', 2)])"
