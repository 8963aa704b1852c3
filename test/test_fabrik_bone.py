import numpy as np
import pytest

from fabrik3d.fabrik_bone import FabrikBone
from fabrik3d.fabrik_errors import FabrikConfigurationError
from fabrik3d.fabrik_joint import JointType
from fabrik3d.fabrik_vector import X_AXIS, Y_AXIS, Z_AXIS


def test_bone_from_points():
    bone = FabrikBone([0, 0, 0], [0, 2, 0])
    assert bone.length == pytest.approx(2.0)
    assert np.allclose(bone.direction, Y_AXIS)
    assert bone.joint_type is JointType.BALL
    assert bone.rotor_constraint_degs == 180.0


def test_bone_from_direction():
    bone = FabrikBone.from_direction([1, 0, 0], [0, 0, 3], 0.5)
    assert np.allclose(bone.end, [1.0, 0.0, 0.5])
    assert np.allclose(bone.direction, Z_AXIS)


@pytest.mark.parametrize('direction, length', [((0, 0, 0), 1.0), (Y_AXIS, 0.0), (Y_AXIS, -1.0)])
def test_bone_from_direction_rejects_degenerate_input(direction, length):
    with pytest.raises(FabrikConfigurationError):
        FabrikBone.from_direction([0, 0, 0], direction, length)


def test_zero_length_bone_rejected():
    with pytest.raises(FabrikConfigurationError):
        FabrikBone([1, 1, 1], [1, 1, 1])


def test_rotor_constraint_validated():
    with pytest.raises(FabrikConfigurationError):
        FabrikBone([0, 0, 0], [1, 0, 0], rotor_constraint_degs=181)
    bone = FabrikBone([0, 0, 0], [1, 0, 0], rotor_constraint_degs=45)
    with pytest.raises(FabrikConfigurationError):
        bone.rotor_constraint_degs = -5


def test_locations_cannot_be_mutated_in_place():
    bone = FabrikBone([0, 0, 0], [1, 0, 0])
    with pytest.raises(ValueError):
        bone.start[0] = 3.0


def test_place_keeps_configured_length():
    bone = FabrikBone([0, 0, 0], [0, 1.5, 0])

    bone.place_from_start([1, 1, 1], X_AXIS)
    assert np.allclose(bone.end, [2.5, 1.0, 1.0])
    assert bone.live_length() == pytest.approx(1.5)

    bone.place_from_end([0, 0, 0], Z_AXIS)
    assert np.allclose(bone.start, [0.0, 0.0, -1.5])
    assert np.allclose(bone.direction, Z_AXIS)


def test_direction_survives_coincident_points():
    bone = FabrikBone([0, 0, 0], [1, 0, 0])
    bone.set_end_location([0, 0, 0])
    assert np.allclose(bone.direction, X_AXIS)
    bone.set_end_location([0, 0, 2])
    assert np.allclose(bone.direction, Z_AXIS)


def test_translate():
    bone = FabrikBone([0, 0, 0], [1, 0, 0])
    bone.translate(np.array([0.0, 2.0, 0.0]))
    assert np.allclose(bone.start, [0.0, 2.0, 0.0])
    assert np.allclose(bone.end, [1.0, 2.0, 0.0])


def test_snapshot_restore():
    bone = FabrikBone([0, 0, 0], [1, 0, 0])
    state = bone.snapshot()
    bone.place_from_start([5, 5, 5], Y_AXIS)
    bone.restore(state)
    assert np.array_equal(bone.start, [0.0, 0.0, 0.0])
    assert np.array_equal(bone.end, [1.0, 0.0, 0.0])
    assert np.allclose(bone.direction, X_AXIS)


def test_name_truncated():
    bone = FabrikBone([0, 0, 0], [1, 0, 0], name='b' * 150)
    assert len(bone.name) == 100
    assert bone.get_joint() is bone.joint
    assert np.array_equal(bone.get_direction(), bone.direction)
