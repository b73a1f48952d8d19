"""RetargetingEngine: visibility gating, smoothing, clamping and emission."""

import pytest
from conftest import ASSETS, make_pose
from lib_pose import OverlayLine, OverlayPoint, PoseLandmarks
from lib_retarget import RetargetConfig, RetargetingEngine, VisibilityState
from lib_retarget.config import HEAD_JOINTS
from lib_robot import load_urdf


def engine_with(sink, **config):
    return RetargetingEngine(RetargetConfig(**config), sink=sink)


class TestProcess:
    def test_full_body_emits_every_controlled_joint_in_order(self, standing, sink):
        engine = engine_with(sink)
        result = engine.process(standing)
        assert result.state is VisibilityState.FULL_BODY
        assert list(result.commands) == engine.controlled_joints
        assert [name for name, _ in sink.calls] == engine.controlled_joints

    def test_commands_respect_limits(self, standing, sink):
        engine = engine_with(sink)
        for name, value in engine.process(standing).commands.items():
            lower, upper = engine.limit(name)
            assert lower <= value <= upper, name

    def test_raw_values_are_clamped(self, standing, sink):
        # ankle raw value is -0.85, below the -0.79 limit
        result = engine_with(sink).process(standing)
        assert result.commands["r_ankle_y"] == pytest.approx(-0.79)

    def test_first_frame_seeds_smoothing(self, standing, sink):
        result = engine_with(sink).process(standing)
        assert result.commands["head_y"] == pytest.approx(-0.375)

    def test_smoothing_converges_from_reset(self, sink):
        engine = engine_with(sink)
        engine.reset()
        turned = make_pose(moves={0: (0.51, 0.15)})
        target = 0.01 * 45 * 1.25
        values = [engine.process(turned).commands["head_z"] for _ in range(21)]
        assert all(b > a for a, b in zip(values, values[1:]))
        assert values[-1] >= 0.99 * target

    def test_left_leg_disabled_by_default(self, standing, sink):
        result = engine_with(sink).process(standing)
        assert "l_knee_y" not in result.commands
        assert "r_knee_y" in result.commands

    def test_enabling_left_leg(self, standing, sink):
        result = engine_with(sink, legs={"left": {"enabled": True}}).process(standing)
        assert "l_knee_y" in result.commands

    def test_enabled_left_leg_keeps_mirrored_sign(self, sink):
        # left knee pushed outward (image +x for the left side) is abduction
        engine = engine_with(sink, legs={"left": {"enabled": True}})
        result = engine.process(make_pose(moves={25: (0.62, 0.68)}))
        assert result.commands["l_hip_y"] == pytest.approx(0.06 * 5.0)

    def test_overlay_is_produced(self, standing, sink):
        overlay = list(engine_with(sink).process(standing).overlay)
        assert any(isinstance(p, OverlayLine) for p in overlay)
        assert any(isinstance(p, OverlayPoint) for p in overlay)


class TestInvalidRegions:
    def test_invalid_region_emits_defaults(self, sink):
        engine = engine_with(sink, defaults={"l_elbow_y": -1.0})
        result = engine.process(make_pose(hidden=(15,)))
        assert result.state is VisibilityState.FULL_BODY
        assert "left_arm" in result.invalid_regions
        assert result.commands["l_elbow_y"] == -1.0

    def test_invalid_region_leaves_smoothing_memory(self, standing, sink):
        engine = engine_with(sink)
        engine.process(standing)
        before = engine.smoother.value("l_elbow_y")
        engine.process(make_pose(hidden=(15,)))
        assert engine.smoother.value("l_elbow_y") == before

    def test_never_seen_region_is_not_seeded(self, sink):
        engine = engine_with(sink)
        engine.process(make_pose(hidden=(15,)))
        assert "l_elbow_y" not in engine.smoother


class TestVisibilityGating:
    def test_head_only_moves_only_the_head(self, head_only, sink):
        engine = engine_with(sink, defaults={"abs_x": 0.1})
        result = engine.process(head_only)
        assert result.state is VisibilityState.HEAD_ONLY
        assert result.commands["abs_x"] == 0.1
        assert result.commands["head_y"] == pytest.approx(-0.375)
        assert result.invalid_regions == ()

    def test_none_resets_to_defaults(self, standing, nobody, sink):
        engine = engine_with(sink, defaults={"head_z": 0.3})
        engine.process(standing)
        result = engine.process(nobody)
        assert result.state is VisibilityState.NONE
        assert result.commands["head_z"] == 0.3
        assert engine.smoother.value("head_z") == 0.3
        assert list(result.overlay)

    def test_empty_landmarks_clear_overlay(self, sink):
        result = engine_with(sink).process(PoseLandmarks.empty())
        assert result.state is VisibilityState.NONE
        assert list(result.overlay) == []

    def test_head_joints_are_controlled(self, sink):
        engine = engine_with(sink)
        assert set(HEAD_JOINTS) <= set(engine.controlled_joints)


class TestReset:
    def test_defaults_are_clamped(self, sink):
        engine = engine_with(sink, defaults={"l_elbow_y": 5.0})
        result = engine.reset()
        assert result.commands["l_elbow_y"] == pytest.approx(0.02)
        assert result.state is VisibilityState.NONE
        assert list(result.overlay) == []

    def test_reset_seeds_smoothing_with_emitted_values(self, sink):
        engine = engine_with(sink, defaults={"l_elbow_y": 5.0})
        result = engine.reset()
        assert engine.smoother.value("l_elbow_y") == result.commands["l_elbow_y"]
        assert sink.last()["l_elbow_y"] == result.commands["l_elbow_y"]

    def test_reset_reseeds_smoothing(self, standing, sink):
        engine = engine_with(sink)
        engine.process(standing)
        engine.reset()
        assert engine.smoother.value("head_y") == 0.0

    def test_without_sink(self, standing):
        engine = RetargetingEngine()
        assert engine.process(standing).state is VisibilityState.FULL_BODY


class TestTreeSink:
    def test_tree_receives_commands(self, standing):
        tree = load_urdf(ASSETS / "humanoid.urdf")
        engine = RetargetingEngine(tree=tree)
        result = engine.process(standing)
        assert tree.joint("head_y").value == pytest.approx(result.commands["head_y"])

    def test_tree_limits_take_precedence(self):
        tree = load_urdf(ASSETS / "humanoid.urdf")
        tree.joint("abs_x").lower = -0.1
        tree.joint("abs_x").upper = 0.1
        engine = RetargetingEngine(tree=tree)
        assert engine.limit("abs_x") == (-0.1, 0.1)
        assert engine.clamp("abs_x", 1.0) == 0.1
