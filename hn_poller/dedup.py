"""
Policies that decide which ids in a listing still need fetching.

A policy is any object with ``compute_new_ids(listing, known)`` where
``listing`` is the ordered id sequence from upstream and ``known`` is a
predicate telling whether an id is already stored (or being fetched).
"""

from typing import Callable, Protocol, Sequence

Known = Callable[[int], bool]


class DedupPolicy(Protocol):
    def compute_new_ids(self, listing: Sequence[int], known: Known) -> list[int]: ...


class MonotonicPrefixPolicy:
    """Everything from the first unknown id onward is new.

    Scans the listing in order and stops at the first id that is not known;
    that id and every id after it are returned, whether or not they are known.
    Ids before it are skipped without further checks.

    This assumes upstream returns already-seen ids as a contiguous prefix, so
    all new ids form a contiguous suffix. When that does not hold it fails in
    two ways:

    - known ids after the first unknown one are fetched again. With a
      newest-first listing that is nearly the whole listing whenever a new
      story shows up;
    - ids before the first unknown one are skipped without a second look. An
      id counted as known only because its fetch is still in flight is not
      dispatched again in that cycle, and if the fetch then fails it is only
      retried if it is still inside the (possibly truncated) listing later.
    """

    def compute_new_ids(self, listing: Sequence[int], known: Known) -> list[int]:
        for i, item_id in enumerate(listing):
            if not known(item_id):
                return list(listing[i:])
        return []


class SetDifferencePolicy:
    """Every id not known, in listing order."""

    def compute_new_ids(self, listing: Sequence[int], known: Known) -> list[int]:
        seen = set()
        new_ids = []
        for item_id in listing:
            if item_id in seen or known(item_id):
                continue
            seen.add(item_id)
            new_ids.append(item_id)
        return new_ids


POLICIES = {
    "prefix": MonotonicPrefixPolicy,
    "difference": SetDifferencePolicy,
}


def get_policy(name: str) -> DedupPolicy:
    try:
        return POLICIES[name]()
    except KeyError:
        raise ValueError(f"Unknown dedup policy {name!r}. Use one of {list(POLICIES)}.")
