"""Property-based tests for selection closure expansion."""

import pytest
from hypothesis import assume, given, settings
from hypothesis import strategies as st

from app.services.closure import build_parent_map, expand_selection, iter_ancestors
from app.services.sections import Section, SectionCycleError

TREE = [
    Section(1, "Root", None),
    Section(2, "Checkout", 1),
    Section(3, "Payments", 2),
    Section(4, "Refunds", 2),
    Section(5, "Search", 1),
    Section(6, "Standalone", 0),
    Section(7, "Cards", 3),
]


@st.composite
def gen_forest_and_selection(draw):
    """Generate an acyclic section list and a selection drawn from its ids."""
    count = draw(st.integers(min_value=1, max_value=30))
    sections = []
    for index in range(count):
        section_id = index + 1
        if section_id == 1:
            parent = None
        else:
            parent = draw(st.one_of(st.none(), st.integers(min_value=1, max_value=section_id - 1)))
        sections.append(Section(id=section_id, name=f"S{section_id}", parent_id=parent))
    sections = draw(st.permutations(sections))
    selected = draw(st.lists(st.sampled_from([s.id for s in sections]), max_size=6))
    return sections, selected


def test_selecting_a_leaf_pulls_in_its_ancestors():
    assert expand_selection(TREE, [7]) == [7, 3, 2, 1]


def test_selecting_an_inner_node_pulls_in_descendants_in_list_order():
    assert expand_selection(TREE, [2]) == [2, 1, 3, 4, 7]


def test_ancestors_can_be_left_out():
    assert expand_selection(TREE, [2], include_ancestors=False) == [2, 3, 4, 7]


def test_strict_mode_returns_only_the_selection():
    assert expand_selection(TREE, [3, 5, 3]) != [3, 5]
    assert expand_selection(TREE, [3, 5, 3], mode="strict") == [3, 5]


def test_empty_selection():
    assert expand_selection(TREE, []) == []


def test_unknown_parent_is_included_and_walk_stops():
    sections = [Section(10, "Orphan", 99), Section(11, "Child", 10)]
    assert expand_selection(sections, [11]) == [11, 10, 99]


def test_unknown_selected_id_is_kept():
    assert expand_selection(TREE, [404]) == [404]


def test_iter_ancestors_nearest_first():
    assert list(iter_ancestors(7, build_parent_map(TREE))) == [3, 2, 1]


def test_cycle_in_selected_chain_raises():
    sections = [Section(1, "A", 2), Section(2, "B", 1)]
    with pytest.raises(SectionCycleError):
        expand_selection(sections, [1])


def test_self_parent_raises():
    with pytest.raises(SectionCycleError):
        list(iter_ancestors(5, {5: 5}))


def test_cycle_elsewhere_in_list_raises_during_descendant_scan():
    sections = TREE + [Section(20, "Loop A", 21), Section(21, "Loop B", 20)]
    with pytest.raises(SectionCycleError):
        expand_selection(sections, [5])


@settings(max_examples=150, deadline=None)
@given(data=gen_forest_and_selection())
def test_closure_is_superset_of_selection(data):
    sections, selected = data
    closure = expand_selection(sections, selected)
    assert set(selected) <= set(closure)
    assert len(closure) == len(set(closure))


@settings(max_examples=150, deadline=None)
@given(data=gen_forest_and_selection())
def test_closure_contains_ancestors_and_descendants_of_selection(data):
    sections, selected = data
    assume(selected)
    closure = set(expand_selection(sections, selected))
    parent_map = build_parent_map(sections)
    children: dict[int, list[int]] = {}
    for section in sections:
        if section.parent_id:
            children.setdefault(section.parent_id, []).append(section.id)

    for section_id in selected:
        # every ancestor is present
        assert set(iter_ancestors(section_id, parent_map)) <= closure
        # every descendant is present
        stack = list(children.get(section_id, []))
        while stack:
            child = stack.pop()
            assert child in closure
            stack.extend(children.get(child, []))


@settings(max_examples=150, deadline=None)
@given(data=gen_forest_and_selection())
def test_closure_contains_nothing_unrelated(data):
    sections, selected = data
    parent_map = build_parent_map(sections)
    selected_set = set(selected)
    for section_id in expand_selection(sections, selected):
        ancestors = set(iter_ancestors(section_id, parent_map))
        related = (
            section_id in selected_set
            or ancestors & selected_set
            or any(section_id in set(iter_ancestors(s, parent_map)) for s in selected_set)
        )
        assert related
