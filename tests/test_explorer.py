"""Tests for the interactive correlation explorer."""

import json
from unittest.mock import MagicMock

import pytest

from explorer import CorrelationExplorer
from generator.base import BaseCache
from generator.state import Point, generate
from generator.stats import pearson
from generator.tween import ManualFrameScheduler


@pytest.fixture
def set_answer():
    return MagicMock()


@pytest.fixture
def explorer(set_answer):
    return CorrelationExplorer(set_answer=set_answer, scheduler=ManualFrameScheduler())


def _answers(blob):
    return json.loads(blob["answers"]["correlation"])


class TestInitialState:
    """Tests for explorer construction."""

    def test_defaults(self, explorer):
        assert explorer.params.num_points == 30
        assert explorer.params.seed == 42
        assert len(explorer.state.generated_points) == 30
        assert round(explorer.generated_r, 2) == 0.80

    def test_answer_pushed_on_init(self, explorer, set_answer):
        set_answer.assert_called_once()
        blob = set_answer.call_args[0][0]
        assert blob["status"] is True
        assert _answers(blob)["correlationStrength"] == 0.8
        assert _answers(blob)["userPointCount"] == 0

    def test_readout(self, explorer):
        text = explorer.readout_text()
        assert text["formatted"] == "0.80"
        assert text["label"] == "Very Strong Positive"

    def test_degraded_parameters(self):
        ex = CorrelationExplorer({"correlation": "abc", "seed": "x", "numPoints": "25"})
        assert ex.params.correlation == 0.7
        assert ex.params.seed == 777
        assert len(ex.state.generated_points) == 25
        assert abs(ex.generated_r - 0.7) < 1e-6

    def test_too_few_points(self):
        set_answer = MagicMock()
        ex = CorrelationExplorer({"numPoints": 1}, set_answer=set_answer)
        assert ex.state.generated_points == ()
        assert ex.generated_r is None
        assert ex.readout_text()["formatted"] == "—"
        assert ex.render() is None
        assert _answers(set_answer.call_args[0][0])["combinedR"] is None


class TestSlider:
    """Tests for set_correlation()."""

    def test_tweens_to_target(self, explorer):
        explorer.set_correlation(-0.3)
        explorer.scheduler.run_until_idle()
        assert abs(explorer.generated_r - (-0.3)) < 1e-6
        assert explorer.state.generated_points == generate(-0.3, 30, 42).points
        assert explorer.state.displayed_r == explorer.combined_r

    def test_intermediate_frames(self, explorer):
        explorer.set_correlation(0.2)
        explorer.scheduler.step()
        assert 0.2 < explorer.state.display_correlation < 0.8

    def test_records_action(self, explorer, set_answer):
        explorer.set_correlation(0.5)
        assert explorer.session.state["correlation_strength"] == 0.5
        assert _answers(set_answer.call_args[0][0])["correlationStrength"] == 0.5

    @pytest.mark.parametrize("value", ["abc", None, float("nan")])
    def test_ignores_bad_input(self, explorer, set_answer, value):
        explorer.set_correlation(value)
        assert explorer.session.steps == []
        assert set_answer.call_count == 1

    def test_reuses_cached_base(self):
        cache = BaseCache()
        ex = CorrelationExplorer(cache=cache)
        ex.set_correlation(0.1)
        ex.scheduler.run_until_idle()
        assert cache.misses == 1
        assert len(cache) == 1


class TestUserPoints:
    """Tests for adding, moving and removing user points."""

    def test_add_point(self, explorer):
        assert explorer.add_user_point(9.5, 0.5)
        assert explorer.state.user_points == [Point(9.5, 0.5)]
        expected = pearson([*explorer.state.generated_points, Point(9.5, 0.5)])
        assert explorer.combined_r == expected
        assert explorer.combined_r < explorer.generated_r

    def test_outside_box_rejected(self, explorer):
        assert not explorer.add_user_point(11.0, 5.0)
        assert not explorer.add_user_point(5.0, -0.1)
        assert explorer.state.user_points == []
        assert explorer.session.steps == []

    def test_readout_settles_on_combined_r(self, explorer):
        explorer.add_user_point(9.5, 0.5)
        explorer.scheduler.run_until_idle()
        assert explorer.state.displayed_r == explorer.combined_r

    def test_delete_move_undo_clear(self, explorer):
        explorer.add_user_point(1.0, 1.0)
        explorer.add_user_point(2.0, 2.0)
        explorer.add_user_point(3.0, 3.0)
        assert explorer.move_user_point(0, 4.0, 4.0)
        assert explorer.delete_user_point(1)
        assert explorer.state.user_points == [Point(4.0, 4.0), Point(3.0, 3.0)]
        assert explorer.undo_user_point()
        assert explorer.state.user_points == [Point(4.0, 4.0)]
        explorer.clear_points()
        assert explorer.state.user_points == []
        assert explorer.session.state["user_points"] == []

    def test_invalid_indices(self, explorer):
        assert not explorer.delete_user_point(0)
        assert not explorer.move_user_point(3, 1.0, 1.0)
        assert not explorer.undo_user_point()
        explorer.add_user_point(1.0, 1.0)
        assert not explorer.delete_user_point("0")
        assert not explorer.move_user_point(True, 2.0, 2.0)
        assert explorer.state.user_points == [Point(1.0, 1.0)]

    def test_numeric_strings_accepted(self, explorer):
        assert explorer.add_user_point("5", " 2.5 ")
        assert explorer.move_user_point(0, "6", "7")
        assert explorer.state.user_points == [Point(6.0, 7.0)]

    @pytest.mark.parametrize("x,y", [
        ("abc", 5.0),
        (5.0, None),
        (float("nan"), 5.0),
        (5.0, float("inf")),
        ([5], 5.0),
        (True, 5.0),
    ])
    def test_ignores_bad_coordinates(self, explorer, set_answer, x, y):
        assert not explorer.add_user_point(x, y)
        explorer.add_user_point(1.0, 1.0)
        assert not explorer.move_user_point(0, x, y)
        assert explorer.state.user_points == [Point(1.0, 1.0)]
        assert len(explorer.session.steps) == 1

    def test_answer_counts_points(self, explorer, set_answer):
        explorer.add_user_point(5.0, 5.0)
        answers = _answers(set_answer.call_args[0][0])
        assert answers["userPointCount"] == 1
        assert answers["combinedR"] == round(explorer.combined_r, 4)


class TestReplay:
    """A provenance state restores the same stimulus."""

    def test_restore_matches_live_session(self, explorer):
        explorer.set_correlation(-0.6)
        explorer.add_user_point(2.0, 8.0)
        explorer.add_user_point(7.0, 3.0)
        explorer.scheduler.run_until_idle()

        replayed = CorrelationExplorer(provenance_state=explorer.session.provenance_state)
        assert replayed.state.generated_points == explorer.state.generated_points
        assert replayed.state.user_points == explorer.state.user_points
        assert replayed.combined_r == explorer.combined_r
        assert replayed.state.displayed_r == explorer.combined_r
        assert replayed.scheduler.pending == 0

    def test_restore_camel_case(self):
        ex = CorrelationExplorer(provenance_state={
            "correlationStrength": 0.25,
            "userPoints": [{"x": 1, "y": 2}],
        })
        assert abs(ex.generated_r - 0.25) < 1e-6
        assert ex.state.user_points == [Point(1.0, 2.0)]

    def test_malformed_strength_keeps_parameter_value(self):
        ex = CorrelationExplorer(provenance_state={"correlationStrength": "abc"})
        assert ex.state.correlation_strength == 0.8
        assert round(ex.generated_r, 2) == 0.80

    def test_numeric_string_strength(self):
        ex = CorrelationExplorer(provenance_state={"correlation_strength": "-0.4"})
        assert abs(ex.generated_r - (-0.4)) < 1e-6

    def test_malformed_points_skipped(self):
        ex = CorrelationExplorer(provenance_state={
            "userPoints": [{"x": 1.0}, {"x": "a", "y": 2}, "3,4", None, {"x": "2", "y": 3}],
        })
        assert ex.state.user_points == [Point(2.0, 3.0)]
        assert ex.session.state["user_points"] == [{"x": 2.0, "y": 3.0}]

    def test_points_not_a_list(self):
        ex = CorrelationExplorer(provenance_state={"userPoints": "oops", "correlationStrength": 0.5})
        assert ex.state.user_points == []
        assert abs(ex.generated_r - 0.5) < 1e-6

    def test_non_dict_state_ignored(self):
        ex = CorrelationExplorer(provenance_state=["not", "a", "dict"])
        assert round(ex.generated_r, 2) == 0.80


class TestRender:
    """Tests for render()."""

    def test_svg(self, explorer):
        explorer.add_user_point(5.0, 5.0)
        svg = explorer.render()
        assert svg.count('class="point"') == 30
        assert svg.count('class="user-point"') == 1
        assert 'class="slope-line"' not in svg

    def test_host_style_parameters(self):
        ex = CorrelationExplorer({"showSlopeLine": "true", "axisMode": "tight"})
        assert ex.render().count('class="slope-line"') == 1

    def test_title(self):
        ex = CorrelationExplorer({"showTitle": "1"})
        assert '<text class="title"' in ex.render()
        assert "r = 0.80" in ex.render()
        assert 'class="title"' not in CorrelationExplorer().render()
