"""
Selection closure expansion.

TestRail records a case against exactly one section; nothing is inherited.
Answering "what is the coverage of these folders" therefore means fetching
cases from the selected sections, from every section below them, and (by
default) from every section on the path above them.

Closure order is deterministic: selected ids in request order, then their
ancestors (nearest first), then descendants in section-list order.
"""

from typing import Iterable, Iterator, Literal

from app.services.sections import Section, SectionCycleError, is_root_parent

SelectionMode = Literal["inclusive", "strict"]


def build_parent_map(sections: Iterable[Section]) -> dict[int, int | None]:
    return {section.id: section.parent_id for section in sections}


def iter_ancestors(section_id: int, parent_map: dict[int, int | None]) -> Iterator[int]:
    """Yield the ancestors of ``section_id``, nearest first.

    The walk stops at a root or at a parent id missing from ``parent_map``
    (that id is still yielded). Revisiting an id raises ``SectionCycleError``.
    """
    visited = {section_id}
    chain = [section_id]
    current = parent_map.get(section_id)
    while not is_root_parent(current):
        if current in visited:
            raise SectionCycleError(current, chain)
        visited.add(current)
        chain.append(current)
        yield current
        current = parent_map.get(current)


def expand_selection(
    sections: Iterable[Section],
    selected_ids: Iterable[int],
    *,
    mode: SelectionMode = "inclusive",
    include_ancestors: bool = True,
) -> list[int]:
    """Return the section ids whose cases make up the coverage of ``selected_ids``.

    ``mode="strict"`` returns just the (de-duplicated) selection.
    ``include_ancestors=False`` leaves out the sections above the selection,
    whose own cases otherwise count towards the result.
    """
    selected = list(dict.fromkeys(int(sid) for sid in selected_ids))
    if mode == "strict" or not selected:
        return selected

    sections = list(sections)
    parent_map = build_parent_map(sections)
    selected_set = set(selected)
    closure: dict[int, None] = dict.fromkeys(selected)

    if include_ancestors:
        for section_id in selected:
            for ancestor in iter_ancestors(section_id, parent_map):
                closure.setdefault(ancestor, None)

    for section in sections:
        for ancestor in iter_ancestors(section.id, parent_map):
            if ancestor in selected_set:
                closure.setdefault(section.id, None)
                break

    return list(closure)
