"""Tests for section parsing and tree reconstruction."""

import unittest

from hypothesis import given, settings
from hypothesis import strategies as st

from app.services.sections import (
    Section,
    SectionCycleError,
    build_section_tree,
    flatten_tree,
    parse_sections,
)


@st.composite
def gen_section_forest(draw):
    """Generate an acyclic flat section list in shuffled order."""
    count = draw(st.integers(min_value=0, max_value=40))
    sections = []
    for index in range(count):
        section_id = index + 1
        # Parents always have a smaller id, so the graph is acyclic
        parent = draw(
            st.one_of(
                st.none(),
                st.just(0),
                st.integers(min_value=1, max_value=section_id - 1) if section_id > 1 else st.none(),
                st.integers(min_value=1000, max_value=2000),  # orphan
            )
        )
        sections.append(Section(id=section_id, name=f"S{section_id}", parent_id=parent))
    return draw(st.permutations(sections))


class TestParseSections(unittest.TestCase):
    def test_parent_id_is_kept_as_received(self):
        sections = parse_sections(
            [
                {"id": 1, "name": "A", "parent_id": None},
                {"id": "2", "name": "B", "parent_id": 0},
                {"id": 3, "name": "C", "parent_id": "1"},
            ]
        )
        self.assertEqual([s.parent_id for s in sections], [None, 0, 1])
        self.assertEqual(sections[1].id, 2)

    def test_entries_without_ids_are_skipped(self):
        sections = parse_sections([{"name": "no id"}, "junk", {"id": 5, "name": "ok"}])
        self.assertEqual([s.id for s in sections], [5])

    def test_missing_name_defaults_to_empty_string(self):
        self.assertEqual(Section.from_api({"id": 1}).name, "")


class TestBuildSectionTree(unittest.TestCase):
    def test_builds_nested_children(self):
        sections = [
            Section(3, "Payments", 2),
            Section(1, "Root", None),
            Section(2, "Checkout", 1),
            Section(4, "Refunds", 2),
        ]
        roots = build_section_tree(sections)

        self.assertEqual([r.id for r in roots], [1])
        checkout = roots[0].children[0]
        self.assertEqual(checkout.id, 2)
        # Siblings keep input order
        self.assertEqual([c.id for c in checkout.children], [3, 4])

    def test_orphan_becomes_root(self):
        roots = build_section_tree([Section(1, "Root", None), Section(2, "Orphan", 99)])
        self.assertEqual([r.id for r in roots], [1, 2])
        self.assertEqual(roots[1].parent_id, 99)

    def test_to_dict_is_recursive(self):
        roots = build_section_tree([Section(1, "Root", None), Section(2, "Child", 1)])
        self.assertEqual(
            roots[0].to_dict(),
            {
                "id": 1,
                "name": "Root",
                "parent_id": None,
                "children": [{"id": 2, "name": "Child", "parent_id": 1, "children": []}],
            },
        )

    def test_zero_parent_is_root_and_echoed(self):
        roots = build_section_tree([Section(1, "Root", 0), Section(2, "Child", 1)])
        self.assertEqual([r.id for r in roots], [1])
        self.assertEqual(roots[0].to_dict()["parent_id"], 0)

    def test_cycle_raises_instead_of_dropping_sections(self):
        sections = [Section(1, "Root", None), Section(2, "A", 3), Section(3, "B", 2)]
        with self.assertRaises(SectionCycleError) as ctx:
            build_section_tree(sections)
        self.assertEqual(ctx.exception.chain, [2, 3])
        self.assertEqual(ctx.exception.section_id, 2)

    def test_section_hanging_off_a_cycle_reports_the_cycle(self):
        sections = [Section(4, "Leaf", 2), Section(2, "A", 3), Section(3, "B", 2)]
        with self.assertRaises(SectionCycleError) as ctx:
            build_section_tree(sections)
        self.assertEqual(ctx.exception.chain, [2, 3])

    def test_self_parent_is_a_cycle(self):
        with self.assertRaises(SectionCycleError):
            build_section_tree([Section(7, "Loop", 7)])

    def test_empty_input(self):
        self.assertEqual(build_section_tree([]), [])

    @settings(max_examples=100, deadline=None)
    @given(sections=gen_section_forest())
    def test_round_trip_preserves_every_id_once(self, sections):
        roots = build_section_tree(sections)
        flattened = [node.id for node in flatten_tree(roots)]
        self.assertEqual(sorted(flattened), sorted(s.id for s in sections))

    @settings(max_examples=100, deadline=None)
    @given(sections=gen_section_forest())
    def test_roots_are_exactly_sections_without_known_parent(self, sections):
        known = {s.id for s in sections}
        expected = [s.id for s in sections if s.parent_id in (None, 0) or s.parent_id not in known]
        self.assertEqual([r.id for r in build_section_tree(sections)], expected)


class TestSectionCycleError(unittest.TestCase):
    def test_message_lists_chain(self):
        exc = SectionCycleError(2, [2, 3])
        self.assertIn("2 -> 3 -> 2", str(exc))


if __name__ == "__main__":
    unittest.main()
