from __future__ import annotations

from collections.abc import Collection, Iterable, Mapping, Sequence
from typing import Iterator

from packhints.catalog import AssetCatalog
from packhints.records import AssetId, AssetRecordStore


def direct_dependencies(catalog: AssetCatalog, asset_id: AssetId) -> list[AssetId] | None:
    # A lookup failure means the asset has no known dependencies.
    try:
        return catalog.get_direct_dependencies(asset_id)
    except LookupError:
        return None


def is_excluded(
    catalog: AssetCatalog,
    asset_id: AssetId,
    exclusions: Collection[AssetId],
    wildcard_exclusions: Sequence[str],
) -> bool:
    if asset_id in exclusions:
        return True
    return any(catalog.path_matches_wildcard(asset_id, pattern) for pattern in wildcard_exclusions)


def propagate_pack_id(
    root: AssetId,
    pack_id: int,
    store: AssetRecordStore,
    catalog: AssetCatalog,
    exclusions: Collection[AssetId] = frozenset(),
    wildcard_exclusions: Sequence[str] = (),
) -> int:
    dependencies = direct_dependencies(catalog, root)
    if not dependencies:
        return 0

    on_stack: set[AssetId] = {root}
    finished: set[AssetId] = set()
    stack: list[tuple[AssetId, Iterator[AssetId]]] = [(root, iter(dependencies))]
    expanded = 1

    while stack:
        node, edges = stack[-1]
        target = next(edges, None)
        if target is None:
            stack.pop()
            on_stack.discard(node)
            finished.add(node)
            continue

        if not target.is_valid():
            continue
        if is_excluded(catalog, target, exclusions, wildcard_exclusions):
            continue

        store.set_pack_id(target, pack_id)

        # Back edges and finished subtrees are labelled, not expanded again.
        if target in on_stack or target in finished:
            continue

        child_dependencies = direct_dependencies(catalog, target)
        if not child_dependencies:
            finished.add(target)
            continue

        on_stack.add(target)
        stack.append((target, iter(child_dependencies)))
        expanded += 1

    return expanded


def cascade_assignments(
    roots_by_pack: Mapping[int, Iterable[AssetId]],
    store: AssetRecordStore,
    catalog: AssetCatalog,
    exclusions: Collection[AssetId] = frozenset(),
    wildcard_exclusions: Sequence[str] = (),
) -> AssetRecordStore:
    # Lower pack ids run last and overwrite.
    for pack_id in sorted(roots_by_pack, reverse=True):
        for root in sorted(roots_by_pack[pack_id]):
            if not root.is_valid() or root not in store:
                continue
            store.set_pack_id(root, pack_id)
            propagate_pack_id(root, pack_id, store, catalog, exclusions, wildcard_exclusions)
    return store


def collect_dependencies(
    seeds: Iterable[AssetId],
    catalog: AssetCatalog,
    exclusions: Collection[AssetId] = frozenset(),
    wildcard_exclusions: Sequence[str] = (),
) -> list[AssetId]:
    visited: set[AssetId] = set()
    ordered: list[AssetId] = []
    stack: list[AssetId] = []

    for seed in seeds:
        if not seed.is_valid() or seed in visited:
            continue
        if is_excluded(catalog, seed, exclusions, wildcard_exclusions):
            continue
        visited.add(seed)
        ordered.append(seed)
        stack.append(seed)

        while stack:
            node = stack.pop()
            for target in direct_dependencies(catalog, node) or []:
                if not target.is_valid() or target in visited:
                    continue
                if is_excluded(catalog, target, exclusions, wildcard_exclusions):
                    continue
                visited.add(target)
                ordered.append(target)
                stack.append(target)

    return ordered
