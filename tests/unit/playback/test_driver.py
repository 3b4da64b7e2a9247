"""Unit tests for the playback driver (local playback)."""

import math

import pytest

from crafttree.config import MAX_PLAYBACK_SPEED, MIN_PLAYBACK_SPEED, base_delay_for
from crafttree.core.hierarchy import RecipeHierarchy, link_id
from crafttree.core.normalizer import normalize_tree
from crafttree.core.types import Algorithm, AnimationSource, PlaybackState, RevealKind
from crafttree.playback.driver import PlaybackDriver
from crafttree.render.surface import RecordingSurface


@pytest.fixture
def surface():
    return RecordingSurface()


@pytest.fixture
def driver(timeline, surface):
    return PlaybackDriver(timeline, surface=surface)


def assert_links_consistent(driver):
    """Every drawn link has both endpoints drawn."""
    rendered = driver.state.rendered_node_ids
    for lid in driver.state.rendered_link_ids:
        parent_id, child_id = lid.split("->")
        assert parent_id in rendered and child_id in rendered


def assert_every_node_attached(driver, hierarchy):
    """Every drawn non-root node has at least one drawn link."""
    linked = set()
    for lid in driver.state.rendered_link_ids:
        linked.update(lid.split("->"))
    for node_id in driver.state.rendered_node_ids:
        if node_id != hierarchy.root.id:
            assert node_id in linked


class TestLocalPlayback:
    def test_bfs_run_completes(self, driver, surface, timeline, brick_hierarchy):
        driver.start(brick_hierarchy, Algorithm.BFS)
        timeline.run_until_idle()

        assert surface.nodes == ["n0", "n1", "n4", "n2", "n3"]
        assert sorted(surface.links) == ["n0->n1", "n0->n4", "n1->n2", "n1->n3"]
        assert driver.playback_state is PlaybackState.COMPLETED
        assert driver.state.active_source is AnimationSource.LOCAL
        assert driver.progress_percent == 100
        assert not driver.state.is_running
        assert_every_node_attached(driver, brick_hierarchy)

    def test_dfs_order_on_surface(self, driver, surface, timeline, brick_hierarchy):
        driver.start(brick_hierarchy, "dfs")
        timeline.run_until_idle()
        assert surface.nodes == ["n2", "n1", "n0", "n3", "n4"]

    def test_steps_are_paced(self, driver, surface, timeline, brick_hierarchy):
        driver.start(brick_hierarchy, Algorithm.BFS)

        timeline.advance(0)
        assert surface.nodes == ["n0"]
        timeline.advance(0.49)
        assert surface.nodes == ["n0"]
        timeline.advance(0.02)
        assert surface.nodes == ["n0", "n1"]

    def test_link_drawn_as_soon_as_both_ends_exist(self, driver, surface, timeline, brick_hierarchy):
        driver.start(brick_hierarchy, Algorithm.BFS)
        timeline.advance(0.5)
        assert surface.links == ["n0->n1"]
        assert_links_consistent(driver)

    def test_links_stay_consistent_throughout(self, driver, timeline, brick_hierarchy):
        driver.start(brick_hierarchy, Algorithm.DFS)
        while driver.is_running:
            timeline.advance(0.1)
            assert_links_consistent(driver)

    def test_progress_reported(self, timeline, surface, brick_hierarchy):
        progress = []
        driver = PlaybackDriver(timeline, surface=surface, on_progress=progress.append)
        driver.start(brick_hierarchy, Algorithm.BFS)
        timeline.run_until_idle()
        assert progress == pytest.approx([0.0, 20.0, 40.0, 60.0, 80.0, 100.0])

    def test_events_recorded(self, driver, timeline, brick_hierarchy):
        driver.start(brick_hierarchy, Algorithm.BFS)
        timeline.run_until_idle()

        events = driver.state.events
        assert [e.sequence_index for e in events] == list(range(len(events)))
        link_events = [e for e in events if e.kind is RevealKind.LINK]
        assert ("Brick", "Mud") in {(e.source_name, e.target_name) for e in link_events}
        assert len(link_events) == 4

    def test_single_node_tree(self, driver, surface, timeline):
        hierarchy = RecipeHierarchy.from_tree(normalize_tree({"name": "Air"}))
        driver.start(hierarchy, Algorithm.BIDIRECTIONAL)
        timeline.run_until_idle()
        assert surface.nodes == ["n0"]
        assert surface.links == []
        assert driver.playback_state is PlaybackState.COMPLETED


class TestPlaybackSpeed:
    def test_speed_scales_delay(self, driver, surface, timeline, brick_hierarchy):
        driver.set_playback_speed(2.0)
        driver.start(brick_hierarchy, Algorithm.BFS)
        timeline.advance(0.25)
        assert len(surface.nodes) == 2

    def test_dfs_is_slower(self, driver, brick_hierarchy):
        driver.start(brick_hierarchy, Algorithm.DFS)
        assert driver.step_delay() == pytest.approx(0.8)
        driver.start(brick_hierarchy, Algorithm.BFS)
        assert driver.step_delay() == pytest.approx(0.5)

    def test_custom_base_delays(self, timeline, brick_hierarchy):
        driver = PlaybackDriver(timeline, base_delays={"dfs": 2.0})
        driver.start(brick_hierarchy, Algorithm.DFS)
        assert driver.step_delay() == pytest.approx(2.0)
        driver.start(brick_hierarchy, Algorithm.BFS)
        assert driver.step_delay() == pytest.approx(base_delay_for("bfs"))

    def test_change_applies_to_next_step(self, driver, surface, timeline, brick_hierarchy):
        driver.start(brick_hierarchy, Algorithm.BFS)
        timeline.advance(0)
        driver.set_playback_speed(5.0)

        timeline.advance(0.5)
        assert len(surface.nodes) == 2
        timeline.advance(0.1)
        assert len(surface.nodes) == 3

    @pytest.mark.parametrize("speed", [0, -1, math.nan, True, "fast"])
    def test_rejects_non_positive(self, driver, speed):
        with pytest.raises(ValueError):
            driver.set_playback_speed(speed)

    def test_clamps(self, driver):
        assert driver.set_playback_speed(1000) == MAX_PLAYBACK_SPEED
        assert driver.set_playback_speed(0.001) == MIN_PLAYBACK_SPEED


class TestCancellation:
    def test_cancel_stops_everything(self, driver, surface, timeline, brick_hierarchy):
        driver.start(brick_hierarchy, Algorithm.BFS)
        timeline.advance(0.6)
        drawn = list(surface.nodes)

        driver.cancel()
        assert timeline.pending_count == 0
        assert driver.playback_state is PlaybackState.CANCELLED
        assert not driver.is_running

        timeline.run_until_idle()
        assert surface.nodes == drawn

    def test_cancel_is_idempotent(self, driver, brick_hierarchy):
        driver.start(brick_hierarchy, Algorithm.BFS)
        driver.cancel()
        driver.cancel()
        assert driver.playback_state is PlaybackState.CANCELLED

    def test_restart_replaces_previous_run(self, timeline, surface, brick_hierarchy):
        states = []
        driver = PlaybackDriver(timeline, surface=surface, on_state_change=states.append)
        other = RecipeHierarchy.from_tree(normalize_tree({"name": "Steam", "ingredients": ["Water", "Fire"]}))

        first = driver.start(brick_hierarchy, Algorithm.BFS)
        timeline.advance(0.6)
        driver.start(other, Algorithm.BFS)
        timeline.run_until_idle()

        assert first.disposed
        assert surface.clear_count == 2
        assert surface.nodes == ["n0", "n1", "n2"]
        assert driver.state.rendered_node_ids == {"n0", "n1", "n2"}
        assert states == [
            PlaybackState.RUNNING,
            PlaybackState.CANCELLED,
            PlaybackState.RUNNING,
            PlaybackState.COMPLETED,
        ]

    def test_dispose_resets(self, driver, timeline, brick_hierarchy):
        driver.start(brick_hierarchy, Algorithm.BFS)
        timeline.advance(1.0)
        driver.dispose()

        assert driver.playback_state is PlaybackState.IDLE
        assert driver.state.rendered_node_ids == set()
        assert driver.hierarchy is None
        assert timeline.pending_count == 0


class TestRenderFailure:
    def test_failure_cancels_and_shows_error(self, timeline, brick_hierarchy):
        surface = RecordingSurface(fail_on={"Fire"})
        driver = PlaybackDriver(timeline, surface=surface)
        driver.start(brick_hierarchy, Algorithm.BFS)
        timeline.run_until_idle()

        assert driver.playback_state is PlaybackState.CANCELLED
        assert "cannot draw Fire" in driver.state.advisory_error
        assert surface.errors and "cannot draw Fire" in surface.errors[0]
        assert surface.nodes == []
        assert timeline.pending_count == 0


class TestStaticRender:
    def test_render_static_draws_everything(self, driver, surface, brick_hierarchy):
        driver.render_static(brick_hierarchy)

        assert surface.nodes == ["n0", "n1", "n2", "n3", "n4"]
        assert surface.links == [link_id(p, c) for p, c in brick_hierarchy.links()]
        assert driver.playback_state is PlaybackState.COMPLETED
        assert driver.progress_percent == 100
