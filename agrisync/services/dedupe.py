from __future__ import annotations

from typing import Any, Callable, Dict, Hashable, Iterable, List, Sequence

from agrisync.services.transform import to_text

Record = Dict[str, Any]


def dedupe(records: Iterable[Record], key_fn: Callable[[Record], Hashable]) -> List[Record]:
    """Keep the first record seen for each key, preserving order."""
    seen: set = set()
    unique: List[Record] = []
    for record in records:
        key = key_fn(record)
        if key in seen:
            continue
        seen.add(key)
        unique.append(record)
    return unique


def merge_by_key(
    base: Iterable[Record],
    extra: Iterable[Record],
    key: str,
    fields: Sequence[str],
    enrich: Sequence[str],
) -> List[Record]:
    """
    Field-level union of two sources describing the same object.

    ``base`` seeds one entry per key holding ``fields`` (first record wins)
    and ``None`` for each ``enrich`` field. An ``extra`` record whose key is
    already present fills in the ``enrich`` fields; otherwise it becomes a
    partial entry with whatever of ``fields``/``enrich`` it carries and
    ``None`` elsewhere. Keys are compared as text, so `2` and `"2"` meet in
    one entry; the entry keeps the first raw key value seen. The result is
    unique by ``key``.
    """
    merged: Dict[Any, Record] = {}
    enriched: set = set()

    for record in base:
        k = to_text(record.get(key))
        if k in merged:
            continue
        entry = {f: record.get(f) for f in fields}
        entry.update({f: None for f in enrich})
        entry[key] = record.get(key)
        entry["source"] = "base"
        merged[k] = entry

    for record in extra:
        k = to_text(record.get(key))
        if k in merged:
            if k in enriched:
                continue
            entry = merged[k]
            entry.update({f: record.get(f) for f in enrich})
            if entry["source"] == "base":
                entry["source"] = "both"
            enriched.add(k)
            continue
        entry = {f: record.get(f) for f in fields}
        entry.update({f: record.get(f) for f in enrich})
        entry[key] = record.get(key)
        entry["source"] = "extra"
        merged[k] = entry
        enriched.add(k)

    return list(merged.values())
