"""
Section hierarchy reconstruction.

TestRail returns the sections of a suite as a flat list in which every entry
names its parent through ``parent_id``. This module turns that list into a
forest of ``SectionNode`` objects for display and selection.

Rules:
- ``parent_id`` of ``None`` or ``0`` marks a root section.
- A section whose parent is not part of the list (an orphan) is kept and
  promoted to a root.
- Siblings keep the relative order they had in the input.
- The builder never walks up a parent chain, so a malformed (cyclic) list
  cannot make it loop. Sections caught in a cycle are unreachable from any
  root and make the builder raise ``SectionCycleError``.
- ``parent_id`` is passed through as received, so a root may carry ``0``.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable


class SectionCycleError(Exception):
    """Raised when a parent chain revisits a section."""

    def __init__(self, section_id: int, chain: list[int]):
        path = " -> ".join(str(s) for s in chain + [section_id])
        super().__init__(f"Section parent chain contains a cycle: {path}")
        self.section_id = section_id
        self.chain = chain


def _coerce_id(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def is_root_parent(parent_id: int | None) -> bool:
    return parent_id is None or parent_id == 0


@dataclass(frozen=True)
class Section:
    """A TestRail section as consumed by the coverage dashboard."""

    id: int
    name: str
    parent_id: int | None = None

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "Section":
        section_id = _coerce_id(raw.get("id"))
        if section_id is None:
            raise ValueError(f"Section without a valid id: {raw!r}")
        parent_id = _coerce_id(raw.get("parent_id"))
        name = raw.get("name")
        return cls(id=section_id, name=str(name) if name is not None else "", parent_id=parent_id)


def parse_sections(raw_sections: Iterable[Any]) -> list[Section]:
    """Convert raw TestRail section payloads, dropping entries without a usable id."""
    sections: list[Section] = []
    for raw in raw_sections:
        if not isinstance(raw, dict):
            print(f"[SECTIONS] Skipping non-object section entry: {type(raw).__name__}", flush=True)
            continue
        try:
            sections.append(Section.from_api(raw))
        except ValueError as exc:
            print(f"[SECTIONS] Skipping section: {exc}", flush=True)
    return sections


@dataclass
class SectionNode:
    """A section plus its child nodes."""

    id: int
    name: str
    parent_id: int | None
    children: list["SectionNode"] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "parent_id": self.parent_id,
            "children": [child.to_dict() for child in self.children],
        }


def build_section_tree(sections: Iterable[Section]) -> list[SectionNode]:
    """Build the section forest and return its root nodes."""
    sections = list(sections)
    nodes: dict[int, SectionNode] = {
        s.id: SectionNode(id=s.id, name=s.name, parent_id=s.parent_id) for s in sections
    }

    roots: list[SectionNode] = []
    for section in sections:
        node = nodes[section.id]
        parent = None if is_root_parent(section.parent_id) else nodes.get(section.parent_id)
        if parent is not None:
            parent.children.append(node)
        else:
            roots.append(node)

    reachable = {node.id for node in flatten_tree(roots)}
    if len(reachable) != len(nodes):
        stranded = [s.id for s in sections if s.id not in reachable]
        print(
            f"[SECTIONS] {len(stranded)} section(s) unreachable from any root: {stranded}",
            flush=True,
        )
        raise _cycle_error(stranded[0], {s.id: s.parent_id for s in sections})
    return roots


def _cycle_error(start: int, parent_of: dict[int, int | None]) -> SectionCycleError:
    # A section unreachable from every root can only lead into a cycle
    chain: list[int] = []
    current = start
    while current not in chain:
        chain.append(current)
        current = parent_of[current]
    return SectionCycleError(current, chain[chain.index(current):])


def flatten_tree(roots: Iterable[SectionNode]) -> list[SectionNode]:
    """Return every node of the forest in pre-order."""
    ordered: list[SectionNode] = []
    stack = list(reversed(list(roots)))
    while stack:
        node = stack.pop()
        ordered.append(node)
        stack.extend(reversed(node.children))
    return ordered
