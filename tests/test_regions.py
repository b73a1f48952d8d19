"""Region algorithms on synthetic poses."""

import math
from collections import deque

import pytest
from conftest import STANDING, make_pose
from lib_pose import PoseIndex
from lib_retarget import (
    RetargetConfig,
    RetargetContext,
    retarget_arm,
    retarget_head,
    retarget_leg,
    retarget_torso,
)
from lib_retarget.geometry import angle_between, deviation_from_horizontal
from lib_retarget.regions import map_lean

CFG = RetargetConfig()


def t_pose_left(elbow=(0.70, 0.25), wrist=(0.80, 0.25)):
    return make_pose(moves={13: elbow, 15: wrist})


class TestTorso:
    def test_upright_subject(self, standing):
        values = retarget_torso(standing, CFG.torso)
        assert values["abs_x"] == 0.0
        assert values["abs_z"] == 0.0
        assert values["abs_y"] == pytest.approx(map_lean(0.0, CFG.torso))

    def test_side_bend_sign_follows_shoulder_drop(self):
        # left shoulder lower in the image than the right
        pose = make_pose(moves={11: (0.60, 0.29)})
        values = retarget_torso(pose, CFG.torso)
        assert values["abs_x"] == pytest.approx(-(0.04 / 0.2))

    def test_side_bend_dead_zone(self):
        pose = make_pose(moves={11: (0.60, 0.255)})
        assert retarget_torso(pose, CFG.torso)["abs_x"] == 0.0

    def test_twist_from_depth(self):
        pose = make_pose(moves={11: (0.60, 0.25, 0.1), 12: (0.40, 0.25, -0.1)})
        assert retarget_torso(pose, CFG.torso)["abs_z"] == pytest.approx(0.2 * 1.5)

    def test_twist_dead_zone(self):
        pose = make_pose(moves={11: (0.60, 0.25, 0.01)})
        assert retarget_torso(pose, CFG.torso)["abs_z"] == 0.0

    def test_invalid_hip_disables_region(self):
        assert retarget_torso(make_pose(hidden=(23,)), CFG.torso) is None

    def test_lean_map_saturates(self):
        cfg = CFG.torso
        assert map_lean(-1.0, cfg) == cfg.lean_min
        assert map_lean(1.0, cfg) == cfg.lean_max
        assert map_lean(cfg.lean_neutral_angle, cfg) == pytest.approx(cfg.lean_straight)

    def test_lean_map_is_monotonic(self):
        angles = [-0.3 + 0.05 * i for i in range(13)]
        values = [map_lean(a, CFG.torso) for a in angles]
        assert values == sorted(values)


class TestHead:
    def test_facing_camera(self, standing):
        values = retarget_head(standing, CFG.head)
        assert values["head_z"] == pytest.approx(0.0)
        # nose 0.02 below the eyes, shoulders 0.2 apart -> factor 1.25
        assert values["head_y"] == pytest.approx(-0.02 * 15 * 1.25)

    def test_turn_sign_follows_nose(self):
        pose = make_pose(moves={0: (0.52, 0.15)})
        assert retarget_head(pose, CFG.head)["head_z"] > 0.0

    def test_zero_shoulder_width_uses_max_factor(self):
        pose = make_pose(moves={0: (0.51, 0.15), 11: (0.5, 0.25), 12: (0.5, 0.25)})
        values = retarget_head(pose, CFG.head)
        assert values["head_z"] == pytest.approx(0.01 * 45 * 2.5)

    def test_far_subject_factor_is_bounded(self):
        pose = make_pose(moves={0: (0.51, 0.15), 11: (0.51, 0.25), 12: (0.49, 0.25)})
        values = retarget_head(pose, CFG.head)
        assert values["head_z"] == pytest.approx(0.01 * 45 * CFG.head.distance_factor_max)

    def test_hidden_ear_disables_region(self):
        assert retarget_head(make_pose(hidden=(PoseIndex.LEFT_EAR,)), CFG.head) is None


class TestLeg:
    def test_straight_leg(self, standing):
        values = retarget_leg(standing, "right", CFG.legs.right)
        assert values["r_hip_y"] == 0.0
        assert values["r_knee_y"] == pytest.approx(0.06)
        assert values["r_ankle_y"] == pytest.approx(-(0.85 - 0.68) * 5)

    def test_right_angle_knee(self):
        pose = make_pose(moves={28: (0.61, 0.68)})
        values = retarget_leg(pose, "right", CFG.legs.right)
        assert values["r_knee_y"] == pytest.approx(-1.14)

    def test_fully_folded_knee(self):
        pose = make_pose(moves={28: (0.44, 0.55)})
        values = retarget_leg(pose, "right", CFG.legs.right)
        assert values["r_knee_y"] == pytest.approx(-2.34)

    def test_spread_uses_side_sign(self):
        pose = make_pose(moves={26: (0.40, 0.68)})
        values = retarget_leg(pose, "right", CFG.legs.right)
        assert values["r_hip_y"] == pytest.approx(-1.0 * -0.04 * 8)

    def test_left_leg_prefix(self, standing):
        values = retarget_leg(standing, "left", CFG.legs.left)
        assert set(values) == {"l_hip_y", "l_knee_y", "l_ankle_y"}

    def test_coincident_points_give_nan(self):
        pose = make_pose(moves={26: STANDING[24]})
        assert math.isnan(retarget_leg(pose, "right", CFG.legs.right)["r_knee_y"])


class TestArm:
    def test_arm_hanging_down(self, standing):
        values = retarget_arm(standing, "left", CFG.arms, deque(maxlen=10))
        assert values["l_shoulder_x"] == CFG.arms.forward_value
        assert values["l_arm_z"] == 0.0

    def test_t_pose(self):
        values = retarget_arm(t_pose_left(), "left", CFG.arms, deque(maxlen=10))
        assert values["l_shoulder_x"] == pytest.approx(0.0)
        assert values["l_shoulder_y"] == pytest.approx(0.0)
        assert values["l_elbow_y"] == pytest.approx(0.02)

    def test_right_angle_elbow(self):
        pose = t_pose_left(wrist=(0.70, 0.15))
        values = retarget_arm(pose, "left", CFG.arms, deque(maxlen=10))
        assert values["l_elbow_y"] == pytest.approx(-2.58 + 2.6 * 0.5)

    def test_right_elbow_uses_mirrored_range(self):
        pose = make_pose(moves={14: (0.30, 0.25), 16: (0.30, 0.15)})
        values = retarget_arm(pose, "right", CFG.arms, deque(maxlen=10))
        assert values["r_elbow_y"] == pytest.approx(2.58 - 2.6 * 0.5)

    def test_shoulder_interpolates_inside_span(self):
        # upper arm 0.2 rad above horizontal
        dx, dy = math.cos(0.2) * 0.1, -math.sin(0.2) * 0.1
        pose = t_pose_left(elbow=(0.6 + dx, 0.25 + dy), wrist=(0.6 + 2 * dx, 0.25 + 2 * dy))
        values = retarget_arm(pose, "left", CFG.arms, deque(maxlen=10))
        expected = (0.2 / CFG.arms.interpolation_span) * CFG.arms.forward_value
        assert values["l_shoulder_x"] == pytest.approx(expected)
        assert values["l_shoulder_y"] == pytest.approx(-math.sin(0.2) * 1.5)

    def test_hands_forward_after_history_fills(self):
        history = deque(maxlen=CFG.arms.history_size)
        for _ in range(CFG.arms.history_size):
            retarget_arm(t_pose_left(), "left", CFG.arms, history)
        short = t_pose_left(elbow=(0.63, 0.25), wrist=(0.66, 0.25))
        values = retarget_arm(short, "left", CFG.arms, history)
        assert values["l_shoulder_x"] == CFG.arms.forward_value
        assert values["l_shoulder_y"] == 0.0

    def test_no_hands_forward_while_history_is_short(self):
        history = deque(maxlen=CFG.arms.history_size)
        retarget_arm(t_pose_left(), "left", CFG.arms, history)
        short = t_pose_left(elbow=(0.63, 0.25), wrist=(0.66, 0.25))
        values = retarget_arm(short, "left", CFG.arms, history)
        assert values["l_shoulder_x"] == pytest.approx(0.0)

    def test_history_is_bounded(self):
        history = deque(maxlen=3)
        for _ in range(5):
            retarget_arm(t_pose_left(), "left", CFG.arms, history)
        assert len(history) == 3

    def test_invalid_wrist_disables_region(self):
        history = deque(maxlen=10)
        assert retarget_arm(make_pose(hidden=(15,)), "left", CFG.arms, history) is None
        assert len(history) == 0


class TestContext:
    def test_contexts_do_not_share_state(self):
        a, b = RetargetContext(CFG), RetargetContext(CFG)
        a.smoother.smooth("abs_x", 1.0)
        a.arm_history["left"].append(0.3)
        assert "abs_x" not in b.smoother
        assert len(b.arm_history["left"]) == 0

    def test_history_size_follows_config(self):
        ctx = RetargetContext(RetargetConfig(arms={"history_size": 4}))
        assert ctx.arm_history["right"].maxlen == 4


class TestGeometry:
    def test_angle_between_zero_vector(self):
        assert math.isnan(angle_between((0.0, 0.0), (1.0, 0.0)))

    def test_deviation_from_horizontal(self):
        assert deviation_from_horizontal(math.pi - 0.1) == pytest.approx(0.1)
        assert deviation_from_horizontal(-0.2) == pytest.approx(0.2)
        assert deviation_from_horizontal(math.pi / 2) == pytest.approx(math.pi / 2)
