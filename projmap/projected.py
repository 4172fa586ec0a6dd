"""Persistent ordered map over keys of any type.

A ProjectedMap accepts keys that have no natural ordering (or no ordering at
all) by asking the caller for a projection function that turns each key into
a surrogate of some totally-ordered type. Entries are stored in a PMap keyed
by that surrogate, and each slot keeps the original key next to its value so
that keys can be handed back unchanged.

Every entry (c, (k, v)) in the underlying storage satisfies
to_surrogate(k) == c. The projection must be injective over the keys that are
actually inserted: two keys with the same surrogate share one slot, and the
most recent insert replaces both the stored key and its value.

All iteration, folding, and merging follows ascending surrogate order, never
insertion order and never any ordering of the keys themselves.

Example:
    >>> from enum import Enum
    >>> from projmap import ProjectedMap
    >>> class Animal(Enum):
    ...     Cat = 0
    ...     Mouse = 1
    ...     Dog = 2
    >>> pets = ProjectedMap.mk(
    ...     lambda a: a.value, [(Animal.Mouse, "Jerry"), (Animal.Cat, "Tom")]
    ... )
    >>> pets.lookup(Animal.Cat)
    'Tom'
    >>> pets.lookup(Animal.Dog) is None
    True
    >>> [animal.name for animal in pets.keys()]
    ['Cat', 'Mouse']
"""

from __future__ import annotations

import logging
from typing import (
    Any,
    Callable,
    Iterable,
    Iterator,
    List,
    Optional,
    Tuple,
    Union,
    override,
)

from projmap.codec import (
    DecodeError,
    Decoder,
    Encoder,
    decode_object,
    decode_pairs,
    encode_object,
    encode_pairs,
)
from projmap.common import MISSING, Iterating, Missing, Ordering, Sized, compare
from projmap.map import PMap

__all__ = ["ProjectedMap"]


class ProjectedMap[K, C, V](Sized, Iterating[Tuple[K, V]]):
    """An ordered map from keys K to values V, indexed by surrogates C.

    Instances are immutable; every operation returns a new map that carries
    the same projection. Binary operations keep the left operand's projection
    and assume both maps project into the same surrogate domain.

    Equality compares stored entries only. Projection functions are never
    compared, so two maps built with different (but agreeing) projections
    are equal when their contents are.
    """

    def __init__(
        self, storage: PMap[C, Tuple[K, V]], to_surrogate: Callable[[K], C]
    ) -> None:
        """Wrap existing storage.

        Args:
            storage: Surrogate-keyed entries holding (key, value) pairs.
            to_surrogate: Projection from keys to surrogates.

        Note:
            Every entry must already satisfy to_surrogate(key) == surrogate.
            Use empty(), singleton() or mk() for safe construction.
        """
        self._storage = storage
        self._to_surrogate = to_surrogate

    @staticmethod
    def empty(to_surrogate: Callable[[K], C]) -> ProjectedMap[K, C, V]:
        """Create an empty map that projects keys with to_surrogate."""
        return ProjectedMap(PMap.empty(), to_surrogate)

    @staticmethod
    def singleton(
        key: K, value: V, to_surrogate: Callable[[K], C]
    ) -> ProjectedMap[K, C, V]:
        """Create a map containing a single entry."""
        return ProjectedMap(
            PMap.singleton(to_surrogate(key), (key, value)), to_surrogate
        )

    @staticmethod
    def mk(
        to_surrogate: Callable[[K], C], pairs: Iterable[Tuple[K, V]]
    ) -> ProjectedMap[K, C, V]:
        """Create a map from (key, value) pairs.

        Time Complexity: O(n log n) where n is the number of pairs

        Args:
            to_surrogate: Projection from keys to surrogates.
            pairs: Entries to insert in order. When two keys share a
                surrogate the later pair wins, key and value both.

        Returns:
            A map containing the given entries.
        """
        storage: PMap[C, Tuple[K, V]] = PMap.mk(
            (to_surrogate(key), (key, value)) for key, value in pairs
        )
        return ProjectedMap(storage, to_surrogate)

    @staticmethod
    def group_by[T](
        to_key: Callable[[T], K],
        to_surrogate: Callable[[K], C],
        items: Iterable[T],
    ) -> ProjectedMap[K, C, List[T]]:
        """Group items by a derived key.

        Items whose keys share a surrogate land in one group, in the same
        relative order as in the input. Each group keeps the key derived from
        its first item.

        Example:
            >>> odd_even = ProjectedMap.group_by(
            ...     lambda n: "odd" if n % 2 else "even", len, [1, 2, 3, 4]
            ... )
            >>> odd_even.list()
            [('odd', [1, 3]), ('even', [2, 4])]
        """
        storage: PMap[C, Tuple[K, List[T]]] = PMap.empty()
        for item in items:
            key = to_key(item)
            surrogate = to_surrogate(key)
            found = storage.lookup(surrogate)
            if found is None:
                storage = storage.put(surrogate, (key, [item]))
            else:
                # The group list is private to this build
                found[1].append(item)
        return ProjectedMap(storage, to_surrogate)

    @property
    def to_surrogate(self) -> Callable[[K], C]:
        """The projection this map uses, for building compatible maps."""
        return self._to_surrogate

    def remove_all[W](self) -> ProjectedMap[K, C, W]:
        """Return an empty map with the same projection and any value type."""
        return ProjectedMap(PMap.empty(), self._to_surrogate)

    def _with[W](self, storage: PMap[C, Tuple[K, W]]) -> ProjectedMap[K, C, W]:
        return ProjectedMap(storage, self._to_surrogate)

    @override
    def null(self) -> bool:
        return self._storage.null()

    @override
    def size(self) -> int:
        return self._storage.size()

    @override
    def iter(self) -> Iterator[Tuple[K, V]]:
        """Iterate over (key, value) pairs in ascending surrogate order."""
        for _, entry in self._storage.iter():
            yield entry

    def reversed(self) -> Iterator[Tuple[K, V]]:
        """Iterate over (key, value) pairs in descending surrogate order."""
        for _, entry in self._storage.reversed():
            yield entry

    def keys(self) -> Iterator[K]:
        """Iterate over the stored keys in ascending surrogate order."""
        for key, _ in self.iter():
            yield key

    def values(self) -> Iterator[V]:
        """Iterate over values in ascending surrogate order of their keys."""
        for _, value in self.iter():
            yield value

    def items(self) -> Iterator[Tuple[K, V]]:
        """Iterate over (key, value) pairs in ascending surrogate order."""
        yield from self.iter()

    def insert(self, key: K, value: V) -> ProjectedMap[K, C, V]:
        """Insert an entry, replacing any entry that shares its surrogate.

        Time Complexity: O(log n)

        The replaced entry loses both its key and its value: afterwards
        lookup_key() returns the key given here.
        """
        return self._with(self._storage.put(self._to_surrogate(key), (key, value)))

    def update(
        self, key: K, fn: Callable[[Optional[V]], Optional[V]]
    ) -> ProjectedMap[K, C, V]:
        """Insert, change, or remove the entry at key's surrogate.

        Time Complexity: O(log n)

        Args:
            key: The key to update. If fn produces a value, this key is
                stored with it even if a different key held the slot before.
            fn: Receives the current value (None if absent) and returns the
                new value, or None to remove the entry.

        Returns:
            A new map with the entry updated.
        """
        surrogate = self._to_surrogate(key)
        found = self._storage.lookup(surrogate)
        new_value = fn(None if found is None else found[1])
        if new_value is None:
            return self._with(self._storage.remove(surrogate))
        return self._with(self._storage.put(surrogate, (key, new_value)))

    def remove(self, key: K) -> ProjectedMap[K, C, V]:
        """Remove the entry at key's surrogate, if there is one.

        Time Complexity: O(log n)
        """
        storage = self._storage.remove(self._to_surrogate(key))
        return self if storage is self._storage else self._with(storage)

    def contains(self, key: K) -> bool:
        """Check whether some entry shares key's surrogate.

        Time Complexity: O(log n)
        """
        return self._storage.contains(self._to_surrogate(key))

    def __contains__(self, key: K) -> bool:
        return self.contains(key)

    def lookup(self, key: K) -> Optional[V]:
        """Get the value at key's surrogate, or None if there is none.

        Time Complexity: O(log n)
        """
        found = self._storage.lookup(self._to_surrogate(key))
        return None if found is None else found[1]

    def lookup_key(self, key: K) -> Optional[K]:
        """Get the stored key at key's surrogate, or None if there is none.

        When the projection discards information the stored key can differ
        from the one passed in, which lets callers recover a canonical form.

        Time Complexity: O(log n)
        """
        found = self._storage.lookup(self._to_surrogate(key))
        return None if found is None else found[0]

    def get(self, key: K, default: Union[V, Missing] = MISSING) -> V:
        """Get the value at key's surrogate.

        Time Complexity: O(log n)

        Args:
            key: The key to look up.
            default: Value to return if key is not found. If not provided and key
                    is not found, raises KeyError.

        Raises:
            KeyError: If key is not found and no default is provided.
        """
        found = self._storage.lookup(self._to_surrogate(key))
        if found is None:
            if isinstance(default, Missing):
                raise KeyError(key)
            return default
        return found[1]

    def __getitem__(self, key: K) -> V:
        return self.get(key)

    def any(self, predicate: Callable[[K, V], bool]) -> bool:
        """Check whether predicate holds for some entry. False when empty."""
        return any(predicate(key, value) for key, value in self.iter())

    def all(self, predicate: Callable[[K, V], bool]) -> bool:
        """Check whether predicate holds for every entry. True when empty."""
        return all(predicate(key, value) for key, value in self.iter())

    def find_min(self) -> Optional[Tuple[K, V, ProjectedMap[K, C, V]]]:
        """Find the entry with the smallest surrogate.

        Returns:
            None if the map is empty, otherwise the key, the value, and a new
            map with that entry removed.
        """
        result = self._storage.find_min()
        if result is None:
            return None
        _, (key, value), remaining = result
        return (key, value, self._with(remaining))

    def find_max(self) -> Optional[Tuple[ProjectedMap[K, C, V], K, V]]:
        """Find the entry with the largest surrogate.

        Returns:
            None if the map is empty, otherwise a new map with that entry
            removed, the key, and the value.
        """
        result = self._storage.find_max()
        if result is None:
            return None
        remaining, _, (key, value) = result
        return (self._with(remaining), key, value)

    def map[W](self, fn: Callable[[K, V], W]) -> ProjectedMap[K, C, W]:
        """Transform every value with fn(key, value), keeping keys in place."""
        return self._with(
            self._storage.map_values(
                lambda entry: (entry[0], fn(entry[0], entry[1]))
            )
        )

    def fold_with_key[Z](self, fn: Callable[[Z, K, V], Z], acc: Z) -> Z:
        """Fold entries in ascending surrogate order.

        Args:
            fn: Takes the accumulator, key, and value; returns the new accumulator.
            acc: The initial accumulator value.
        """
        result = acc
        for key, value in self.iter():
            result = fn(result, key, value)
        return result

    def fold_right_with_key[Z](self, fn: Callable[[K, V, Z], Z], acc: Z) -> Z:
        """Fold entries in descending surrogate order.

        Args:
            fn: Takes the key, value, and accumulator; returns the new accumulator.
            acc: The initial accumulator value.
        """
        result = acc
        for key, value in self.reversed():
            result = fn(key, value, result)
        return result

    def filter(self, predicate: Callable[[K, V], bool]) -> ProjectedMap[K, C, V]:
        """Keep the entries for which predicate(key, value) holds."""
        return self._with(self._storage.filter(lambda _, entry: predicate(*entry)))

    def partition(
        self, predicate: Callable[[K, V], bool]
    ) -> Tuple[ProjectedMap[K, C, V], ProjectedMap[K, C, V]]:
        """Split into (matching, non-matching) maps sharing this projection."""
        yes, no = self._storage.partition(lambda _, entry: predicate(*entry))
        return (self._with(yes), self._with(no))

    def filter_map[W](
        self, fn: Callable[[K, V], Optional[W]]
    ) -> ProjectedMap[K, C, W]:
        """Transform values with fn(key, value), dropping entries mapped to None."""

        def step(_: C, entry: Tuple[K, V]) -> Union[Tuple[K, W], Missing]:
            key, value = entry
            new_value = fn(key, value)
            return MISSING if new_value is None else (key, new_value)

        return self._with(self._storage.filter_map(step))

    def union(self, other: ProjectedMap[K, C, V]) -> ProjectedMap[K, C, V]:
        """Combine entries of both maps, preferring this map's on collision.

        Time Complexity: O(m log(n/m+1)) where m <= n are sizes of the maps
        """
        return self._with(self._storage.merge(other._storage))

    def intersection(self, other: ProjectedMap[K, C, Any]) -> ProjectedMap[K, C, V]:
        """Keep this map's entries whose surrogates also appear in other."""
        return self._with(self._storage.intersection(other._storage))

    def difference(self, other: ProjectedMap[K, C, Any]) -> ProjectedMap[K, C, V]:
        """Keep this map's entries whose surrogates do not appear in other."""
        return self._with(self._storage.difference(other._storage))

    def merge[B, R](
        self,
        other: ProjectedMap[K, C, B],
        only_left: Callable[[K, V, R], R],
        both: Callable[[K, V, B, R], R],
        only_right: Callable[[K, B, R], R],
        acc: R,
    ) -> R:
        """Fold over the entries of two maps together in ascending surrogate order.

        Each surrogate present in either map is visited exactly once:
        only_left(key, value, acc) when only this map has it,
        only_right(key, value, acc) when only other has it, and
        both(key, value, other_value, acc) when both do, using this map's key.

        Time Complexity: O(m + n) plus the cost of the callbacks

        Args:
            other: The map to walk alongside this one.
            only_left: Accumulator step for entries only in this map.
            both: Accumulator step for surrogates in both maps.
            only_right: Accumulator step for entries only in other.
            acc: The initial accumulator value.

        Returns:
            The final accumulator value.
        """
        result = acc
        lefts = self._storage.iter()
        rights = other._storage.iter()
        left = next(lefts, None)
        right = next(rights, None)
        while left is not None and right is not None:
            left_surrogate, (left_key, left_value) = left
            right_surrogate, (right_key, right_value) = right
            cmp = compare(left_surrogate, right_surrogate)
            if cmp == Ordering.Lt:
                result = only_left(left_key, left_value, result)
                left = next(lefts, None)
            elif cmp == Ordering.Gt:
                result = only_right(right_key, right_value, result)
                right = next(rights, None)
            else:
                result = both(left_key, left_value, right_value, result)
                left = next(lefts, None)
                right = next(rights, None)
        while left is not None:
            _, (left_key, left_value) = left
            result = only_left(left_key, left_value, result)
            left = next(lefts, None)
        while right is not None:
            _, (right_key, right_value) = right
            result = only_right(right_key, right_value, result)
            right = next(rights, None)
        return result

    def to_pmap(self) -> PMap[C, V]:
        """Drop the stored keys, keeping a plain surrogate-keyed map."""
        return self._storage.map_values(lambda entry: entry[1])

    @staticmethod
    def decode(
        key_from_text: Callable[[str, V], K],
        to_surrogate: Callable[[K], C],
        value_decoder: Decoder[V],
    ) -> Decoder[ProjectedMap[K, C, V]]:
        """Build a decoder for maps encoded as JSON objects.

        Each field's value is decoded first; the key is then rebuilt from the
        field name and the decoded value, since some key encodings depend on
        the value they label. Fields are inserted in document order, so
        colliding surrogates keep the last field.

        Args:
            key_from_text: Rebuilds a key from a field name and its decoded value.
            to_surrogate: Projection for the resulting map.
            value_decoder: Decoder for each field's value.

        Returns:
            A decoder raising DecodeError if the input is not an object or
            any value fails to decode.
        """

        def decode(raw: Any) -> ProjectedMap[K, C, V]:
            pairs = decode_object(raw, value_decoder)
            return ProjectedMap.mk(
                to_surrogate,
                ((key_from_text(text, value), value) for text, value in pairs),
            )

        return decode

    @staticmethod
    def decode_fallible(
        parse_key: Callable[[str, V], K],
        to_surrogate: Callable[[K], C],
        value_decoder: Decoder[V],
    ) -> Decoder[ProjectedMap[K, C, V]]:
        """Build a decoder for JSON objects whose field names may not parse.

        Like decode(), except parse_key may reject a field by raising
        ValueError. The first rejected field aborts the whole decode with a
        DecodeError carrying parse_key's message; no partial map is returned.
        """

        def parse(text: str, value: V) -> K:
            try:
                return parse_key(text, value)
            except DecodeError as err:
                logging.debug("Rejected key %r: %s", text, err.message)
                raise err.at(text) from err
            except ValueError as err:
                logging.debug("Rejected key %r: %s", text, err)
                raise DecodeError(str(err), (text,)) from err

        return ProjectedMap.decode(parse, to_surrogate, value_decoder)

    @staticmethod
    def decode_list(
        to_surrogate: Callable[[K], C],
        pair_decoder: Decoder[Tuple[K, V]],
    ) -> Decoder[ProjectedMap[K, C, V]]:
        """Build a decoder for maps encoded as JSON arrays of entries.

        Use this form when keys cannot be rendered faithfully as field names.
        Entries are inserted in array order, so colliding surrogates keep the
        last entry.
        """

        def decode(raw: Any) -> ProjectedMap[K, C, V]:
            return ProjectedMap.mk(to_surrogate, decode_pairs(raw, pair_decoder))

        return decode

    def encode(
        self, key_to_text: Callable[[K], str], value_encoder: Encoder[V]
    ) -> dict[str, Any]:
        """Encode as a JSON object with fields in ascending surrogate order.

        key_to_text should be injective over the stored keys; a repeated
        field name keeps only the last value.
        """
        return encode_object(
            ((key_to_text(key), value) for key, value in self.iter()), value_encoder
        )

    def encode_list(self, pair_encoder: Callable[[K, V], Any]) -> List[Any]:
        """Encode as a JSON array of entries in ascending surrogate order."""
        return encode_pairs(self.iter(), pair_encoder)

    def __eq__(self, other: object) -> bool:
        # Projections are functions and are never compared
        if not isinstance(other, ProjectedMap):
            return NotImplemented
        return self._storage == other._storage

    def __repr__(self) -> str:
        return f"ProjectedMap({self.list()})"

    def __reversed__(self) -> Iterator[Tuple[K, V]]:
        return self.reversed()

    def __rshift__(self, pair: Tuple[K, V]) -> ProjectedMap[K, C, V]:
        """Alias for insert()."""
        key, value = pair
        return self.insert(key, value)

    def __or__(self, other: ProjectedMap[K, C, V]) -> ProjectedMap[K, C, V]:
        """Alias for union()."""
        return self.union(other)

    def __and__(self, other: ProjectedMap[K, C, Any]) -> ProjectedMap[K, C, V]:
        """Alias for intersection()."""
        return self.intersection(other)

    def __sub__(self, other: ProjectedMap[K, C, Any]) -> ProjectedMap[K, C, V]:
        """Alias for difference()."""
        return self.difference(other)
