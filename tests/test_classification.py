"""
Unit tests for the Classification Engine.

Covers the edit-mode rules (one main group, at most four sub-categories,
group exclusivity), filter mode (no rules), primary category derivation,
and invariants over random command sequences.
"""

import random

import pytest

from newsdesk.taxonomy import MainGroup
from newsdesk.services.classification import (
    Accepted,
    ClassificationEngine,
    EditSelection,
    FilterSelection,
    MAX_SUB_CATEGORIES,
    REASON_MAXIMUM_REACHED,
    REASON_PRIMARY_EDIT_ONLY,
    REASON_SELECT_MAIN_FIRST,
    Rejected,
)


def apply(engine, result):
    """Persist a command result the way a caller does."""
    assert result.success, result.message
    return ClassificationEngine(engine.catalog, result.selection)


class TestQueries:
    """Test read-only engine queries."""

    def test_main_groups_are_the_fixed_nine(self, catalog):
        """main_groups should return the nine groups in order."""
        engine = ClassificationEngine.for_edit(catalog)
        assert len(engine.main_groups()) == 9
        assert engine.main_groups()[0] is MainGroup.LIVE_WORLD
        assert engine.main_groups()[-1] is MainGroup.TECH

    def test_sub_and_all_categories_share_the_partition(self, catalog):
        """Sub and all categories should return the same group partition."""
        engine = ClassificationEngine.for_filter(catalog)
        assert engine.sub_categories_for(MainGroup.SPORTS) == engine.all_categories_for(MainGroup.SPORTS)
        assert [c.category_id for c in engine.sub_categories_for(MainGroup.SPORTS)] == [20, 21]

    def test_selected_categories_keep_selection_order(self, catalog):
        """Selected categories should follow selection order."""
        engine = ClassificationEngine.for_edit(catalog, [12, 10], MainGroup.POLITICS)
        assert [c.category_id for c in engine.selected_categories()] == [12, 10]

    def test_selected_categories_skip_unknown_ids(self, catalog):
        """Ids missing from the catalog should be skipped."""
        engine = ClassificationEngine.for_filter(catalog, [10, 999])
        assert [c.category_id for c in engine.selected_categories()] == [10]

    def test_selected_count_for_group(self, catalog):
        """Selected counts should be tallied per group."""
        engine = ClassificationEngine.for_filter(catalog, [10, 11, 20])
        assert engine.selected_count_for(MainGroup.POLITICS) == 2
        assert engine.selected_count_for(MainGroup.SPORTS) == 1
        assert engine.selected_count_for(MainGroup.TECH) == 0

    def test_repeated_ids_in_snapshot_are_collapsed(self, catalog):
        """Repeated ids in a snapshot should collapse to first occurrence."""
        engine = ClassificationEngine.for_filter(catalog, [10, 20, 10])
        assert engine.selected_ids == [10, 20]


class TestDisablement:
    """Test isDisabled / disabledReason in edit mode."""

    def test_no_main_group_disables_everything(self, catalog):
        """Without a main group every category should be disabled."""
        engine = ClassificationEngine.for_edit(catalog)
        assert engine.is_disabled(10)
        assert engine.disabled_reason(10) == REASON_SELECT_MAIN_FIRST

    def test_cross_group_id_is_disabled(self, catalog):
        """Categories of another group should be disabled."""
        engine = ClassificationEngine.for_edit(catalog, [10], MainGroup.POLITICS)
        assert engine.is_disabled(20) is True
        assert engine.disabled_reason(20) == REASON_SELECT_MAIN_FIRST
        assert engine.disabled_reason(20) != REASON_MAXIMUM_REACHED

    def test_unknown_id_is_disabled(self, catalog):
        """Ids missing from the catalog should be disabled."""
        engine = ClassificationEngine.for_edit(catalog, [], MainGroup.POLITICS)
        assert engine.disabled_reason(999) == REASON_SELECT_MAIN_FIRST

    def test_cap_disables_unselected_ids_only(self, catalog):
        """At the cap only unselected ids should be disabled."""
        engine = ClassificationEngine.for_edit(catalog, [10, 11, 12, 13], MainGroup.POLITICS)
        assert engine.disabled_reason(14) == REASON_MAXIMUM_REACHED
        for selected in (10, 11, 12, 13):
            assert engine.is_disabled(selected) is False
            assert engine.disabled_reason(selected) is None

    def test_group_mismatch_reported_before_cap(self, catalog):
        """Group mismatch should be reported even at the cap."""
        engine = ClassificationEngine.for_edit(catalog, [10, 11, 12, 13], MainGroup.POLITICS)
        assert engine.disabled_reason(20) == REASON_SELECT_MAIN_FIRST

    def test_same_group_under_cap_is_enabled(self, catalog):
        """Same-group ids under the cap should be enabled."""
        engine = ClassificationEngine.for_edit(catalog, [10], MainGroup.POLITICS)
        assert engine.is_disabled(11) is False
        assert engine.disabled_reason(11) is None


class TestToggleEditMode:
    """Test toggle_sub_category in edit mode."""

    def test_scenario_first_toggle_becomes_primary(self, catalog):
        """The first toggled category should become primary."""
        engine = ClassificationEngine.for_edit(catalog, [], MainGroup.POLITICS)
        result = engine.toggle_sub_category(10)

        assert result.success is True
        assert result.new_selected_ids == [10]
        assert apply(engine, result).primary_category().category_id == 10

    def test_scenario_fifth_toggle_is_rejected(self, catalog):
        """A fifth sub-category should be rejected."""
        engine = ClassificationEngine.for_edit(catalog, [], MainGroup.POLITICS)
        for category_id in (10, 11, 12):
            engine = apply(engine, engine.toggle_sub_category(category_id))
        assert len(engine.selected_ids) == 3

        engine = apply(engine, engine.toggle_sub_category(13))
        assert engine.selected_ids == [10, 11, 12, 13]

        result = engine.toggle_sub_category(14)
        assert result.success is False
        assert result.message == "Maximum of 4 sub-categories already selected"
        assert result.new_selected_ids is None
        assert engine.selected_ids == [10, 11, 12, 13]

    def test_removal_always_succeeds(self, catalog):
        """Removing a selected id should always succeed."""
        engine = ClassificationEngine.for_edit(catalog, [10, 11, 12, 13], MainGroup.POLITICS)
        result = engine.toggle_sub_category(11)
        assert result.success is True
        assert result.new_selected_ids == [10, 12, 13]

    def test_removal_of_out_of_group_id_from_inconsistent_snapshot(self, catalog):
        """An out-of-group id in a snapshot should still be removable."""
        engine = ClassificationEngine.for_edit(catalog, [10, 20], MainGroup.POLITICS)
        result = engine.toggle_sub_category(20)
        assert result.success is True
        assert result.new_selected_ids == [10]

    def test_cross_group_toggle_is_rejected(self, catalog):
        """Toggling a category of another group should be rejected."""
        engine = ClassificationEngine.for_edit(catalog, [10], MainGroup.POLITICS)
        result = engine.toggle_sub_category(20)
        assert isinstance(result, Rejected)
        assert result.message == REASON_SELECT_MAIN_FIRST

    def test_rejection_is_idempotent(self, catalog):
        """Repeating a rejected toggle should give the same rejection."""
        engine = ClassificationEngine.for_edit(catalog, [10, 11, 12, 13], MainGroup.POLITICS)
        first = engine.toggle_sub_category(14)
        second = engine.toggle_sub_category(14)
        assert first == second
        assert first.success is False
        assert engine.selected_ids == [10, 11, 12, 13]

    def test_commands_do_not_mutate_the_engine(self, catalog):
        """Commands should leave the engine's selection untouched."""
        engine = ClassificationEngine.for_edit(catalog, [10], MainGroup.POLITICS)
        engine.toggle_sub_category(11)
        engine.select_main_group(MainGroup.SPORTS)
        assert engine.selection == EditSelection(MainGroup.POLITICS, (10,))

    def test_to_dict_shapes(self, catalog):
        """Results should serialize to the success/message shape."""
        engine = ClassificationEngine.for_edit(catalog, [], MainGroup.POLITICS)
        assert engine.toggle_sub_category(10).to_dict() == {"success": True, "new_selected_ids": [10]}
        assert engine.toggle_sub_category(20).to_dict() == {
            "success": False,
            "message": REASON_SELECT_MAIN_FIRST,
        }


class TestSelectMainGroup:
    """Test select_main_group."""

    def test_scenario_switch_clears_and_enables_new_group(self, catalog):
        """Switching groups should clear and enable the new group."""
        engine = ClassificationEngine.for_edit(catalog, [10, 11], MainGroup.POLITICS)
        result = engine.select_main_group(MainGroup.SPORTS)

        assert result.success is True
        assert result.new_selected_ids == []
        assert result.cleared_ids == (10, 11)

        engine = apply(engine, result)
        result = engine.toggle_sub_category(20)
        assert result.success is True
        assert result.new_selected_ids == [20]

    def test_reselecting_same_group_still_clears(self, catalog):
        """Choosing the active group again should still clear."""
        engine = ClassificationEngine.for_edit(catalog, [10], MainGroup.POLITICS)
        result = engine.select_main_group(MainGroup.POLITICS)
        assert result.selection == EditSelection(MainGroup.POLITICS, ())

    def test_switch_drops_explicit_primary(self, catalog):
        """Switching groups should drop an explicit primary."""
        engine = ClassificationEngine.for_edit(catalog, [10, 11], MainGroup.POLITICS, primary_id=11)
        result = engine.select_main_group(MainGroup.TECH)
        assert result.selection.primary_id is None

    def test_group_given_as_key(self, catalog):
        """A main group passed as its string key should behave like the enum member."""
        engine = ClassificationEngine.for_edit(catalog, [], "politics")
        assert engine.selection.group is MainGroup.POLITICS
        assert engine.toggle_sub_category(10).success is True

        result = ClassificationEngine.for_edit(catalog).select_main_group("sports")
        assert result.selection.group is MainGroup.SPORTS
        assert apply(engine, result).toggle_sub_category(20).success is True

    def test_unknown_group_key_is_rejected(self, catalog):
        """An unknown group key should raise instead of selecting nothing."""
        with pytest.raises(ValueError):
            ClassificationEngine.for_edit(catalog).select_main_group("weather")

    def test_filter_mode_is_a_no_op(self, catalog):
        """Selecting a main group in filter mode should change nothing."""
        engine = ClassificationEngine.for_filter(catalog, [10, 20])
        result = engine.select_main_group(MainGroup.SPORTS)
        assert isinstance(result, Accepted)
        assert result.selection == FilterSelection((10, 20))


class TestFilterMode:
    """Test filter mode: no group exclusivity and no cap."""

    def test_scenario_nothing_is_disabled(self, catalog):
        """Filter mode should disable nothing."""
        engine = ClassificationEngine.for_filter(catalog, [10, 20])
        for category in catalog:
            assert engine.is_disabled(category.category_id) is False
            assert engine.disabled_reason(category.category_id) is None
        assert engine.is_disabled(999) is False

    def test_scenario_every_toggle_succeeds(self, catalog):
        """Every filter-mode toggle should succeed."""
        engine = ClassificationEngine.for_filter(catalog, [10, 20])
        for category in catalog:
            assert engine.toggle_sub_category(category.category_id).success is True

    def test_no_cap(self, catalog):
        """Filter mode should allow more than four categories."""
        engine = ClassificationEngine.for_filter(catalog)
        for category in catalog:
            engine = apply(engine, engine.toggle_sub_category(category.category_id))
        assert len(engine.selected_ids) == len(catalog)
        assert len(engine.selected_ids) > MAX_SUB_CATEGORIES

    def test_toggle_removes_selected(self, catalog):
        """Toggling a selected id in filter mode should remove it."""
        engine = ClassificationEngine.for_filter(catalog, [10, 20])
        result = engine.toggle_sub_category(10)
        assert result.new_selected_ids == [20]

    def test_primary_is_edit_only(self, catalog):
        """Setting a primary in filter mode should be rejected."""
        engine = ClassificationEngine.for_filter(catalog, [10])
        result = engine.set_primary_category(10)
        assert result.success is False
        assert result.message == REASON_PRIMARY_EDIT_ONLY


class TestPrimaryCategory:
    """Test primary category derivation and the explicit override."""

    def test_scenario_empty_then_first_toggle(self, catalog):
        """Primary should be None until the first toggle."""
        engine = ClassificationEngine.for_edit(catalog, [], MainGroup.SPORTS)
        assert engine.primary_category() is None

        engine = apply(engine, engine.toggle_sub_category(21))
        assert engine.primary_category().category_id == 21

    def test_first_selected_wins(self, catalog):
        """The earliest selected id should be primary."""
        engine = ClassificationEngine.for_edit(catalog, [12, 10, 11], MainGroup.POLITICS)
        assert engine.primary_category().category_id == 12

    def test_later_toggles_do_not_change_primary(self, catalog):
        """Later toggles should not change the primary."""
        engine = ClassificationEngine.for_edit(catalog, [11], MainGroup.POLITICS)
        engine = apply(engine, engine.toggle_sub_category(10))
        assert engine.primary_category().category_id == 11

    def test_removing_primary_promotes_next_in_order(self, catalog):
        """Removing the primary should promote the next id."""
        engine = ClassificationEngine.for_edit(catalog, [11, 10, 12], MainGroup.POLITICS)
        engine = apply(engine, engine.toggle_sub_category(11))
        assert engine.primary_category().category_id == 10

    def test_explicit_primary_on_selected_id(self, catalog):
        """An explicit primary should override first-selected."""
        engine = ClassificationEngine.for_edit(catalog, [10, 11], MainGroup.POLITICS)
        engine = apply(engine, engine.set_primary_category(11))
        assert engine.primary_category().category_id == 11
        assert engine.selected_ids == [10, 11]

    def test_explicit_primary_adds_unselected_id(self, catalog):
        """Picking an unselected primary should also select it."""
        engine = ClassificationEngine.for_edit(catalog, [10], MainGroup.POLITICS)
        engine = apply(engine, engine.set_primary_category(12))
        assert engine.selected_ids == [10, 12]
        assert engine.primary_category().category_id == 12

    def test_explicit_primary_respects_rules(self, catalog):
        """Picking a primary should obey the toggle rules."""
        engine = ClassificationEngine.for_edit(catalog, [10, 11, 12, 13], MainGroup.POLITICS)
        assert engine.set_primary_category(14) == Rejected(REASON_MAXIMUM_REACHED)
        assert engine.set_primary_category(20) == Rejected(REASON_SELECT_MAIN_FIRST)

    def test_removing_explicit_primary_falls_back_to_first(self, catalog):
        """Removing an explicit primary should fall back to first-selected."""
        engine = ClassificationEngine.for_edit(catalog, [10, 11, 12], MainGroup.POLITICS, primary_id=12)
        engine = apply(engine, engine.toggle_sub_category(12))
        assert engine.selection.primary_id is None
        assert engine.primary_category().category_id == 10

    def test_stale_explicit_primary_is_ignored(self, catalog):
        """An explicit primary that is not selected should be ignored."""
        engine = ClassificationEngine.for_edit(catalog, [10, 11], MainGroup.POLITICS, primary_id=13)
        assert engine.primary_category().category_id == 10

    def test_filter_mode_primary_is_first(self, catalog):
        """Filter mode primary should be the first selected id."""
        engine = ClassificationEngine.for_filter(catalog, [20, 10])
        assert engine.primary_category().category_id == 20


def _random_edit_walk(catalog, seed, steps=200):
    """Yield (engine, result) for a random sequence of edit-mode commands."""
    rng = random.Random(seed)
    ids = [c.category_id for c in catalog] + [999]
    groups = list(MainGroup)
    engine = ClassificationEngine.for_edit(catalog)

    for _ in range(steps):
        roll = rng.random()
        if roll < 0.1:
            result = engine.select_main_group(rng.choice(groups))
        elif roll < 0.2:
            result = engine.set_primary_category(rng.choice(ids))
        else:
            result = engine.toggle_sub_category(rng.choice(ids))
        if result.success:
            engine = ClassificationEngine(catalog, result.selection)
        yield engine, result


class TestEditModeInvariants:
    """Invariants over random edit-mode command sequences."""

    @pytest.mark.parametrize("seed", range(25))
    def test_cap_group_and_primary_invariants(self, catalog, seed):
        """Random edits should keep cap, group and primary invariants."""
        for engine, _ in _random_edit_walk(catalog, seed):
            selection = engine.selection
            assert 0 <= len(selection.ids) <= MAX_SUB_CATEGORIES
            assert len(set(selection.ids)) == len(selection.ids)
            for category_id in selection.ids:
                assert catalog.group_of(category_id) is selection.group

            primary = engine.primary_category()
            if selection.ids:
                assert primary is not None
                assert primary.category_id in selection.ids
            else:
                assert primary is None

    @pytest.mark.parametrize("seed", range(10))
    def test_main_group_switch_always_clears(self, catalog, seed):
        """A group switch should clear from any reachable state."""
        for engine, _ in _random_edit_walk(catalog, seed, steps=50):
            result = engine.select_main_group(MainGroup.SPORTS)
            assert result.success is True
            assert result.new_selected_ids == []

    @pytest.mark.parametrize("seed", range(10))
    def test_rejections_never_change_state(self, catalog, seed):
        """Rejected commands should never change the selection."""
        previous = ClassificationEngine.for_edit(catalog)
        for engine, result in _random_edit_walk(catalog, seed):
            if not result.success:
                assert engine.selection == previous.selection
                assert result.message in (REASON_SELECT_MAIN_FIRST, REASON_MAXIMUM_REACHED)
            previous = engine
