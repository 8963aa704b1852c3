import numpy as np
import pytest

from fabrik3d.fabrik_bone import FabrikBone
from fabrik3d.fabrik_chain import BaseboneConstraintType, FabrikChain
from fabrik3d.fabrik_errors import FabrikConfigurationError
from fabrik3d.fabrik_joint import JointType
from fabrik3d.fabrik_vector import (
    X_AXIS,
    Y_AXIS,
    Z_AXIS,
    angle_between_degs,
    distance_between,
    signed_angle_between_degs,
)


def make_chain(num_bones=3, length=1.0, name='arm', **kwargs):
    """Straight chain from the origin along +Y."""
    chain = FabrikChain(name, **kwargs)
    chain.add_bone(FabrikBone([0, 0, 0], [0, length, 0]))
    for _ in range(num_bones - 1):
        chain.add_consecutive_bone(Y_AXIS, length)
    return chain


def assert_chain_intact(chain, lengths):
    for i, bone in enumerate(chain.bones):
        assert bone.live_length() == pytest.approx(lengths[i], abs=1e-9)
        if i > 0:
            assert np.allclose(bone.start, chain.bones[i - 1].end, atol=1e-12)


class TestAssembly:
    def test_consecutive_bones(self):
        chain = make_chain(3, 0.5)
        assert chain.num_bones == len(chain) == 3
        assert chain.chain_length == pytest.approx(1.5)
        assert np.allclose(chain.effector_location, [0.0, 1.5, 0.0])
        assert np.array_equal(chain.base_location, chain.fixed_base_location)

    def test_consecutive_bone_needs_base_bone(self):
        with pytest.raises(FabrikConfigurationError):
            FabrikChain('empty').add_consecutive_bone(Y_AXIS, 1.0)

    def test_bones_must_be_contiguous(self):
        chain = make_chain(1)
        with pytest.raises(FabrikConfigurationError):
            chain.add_bone(FabrikBone([5, 0, 0], [6, 0, 0]))

    def test_hinged_bone_needs_hinge_type(self):
        chain = make_chain(1)
        with pytest.raises(FabrikConfigurationError):
            chain.add_consecutive_hinged_bone(Y_AXIS, 1.0, JointType.BALL, X_AXIS, 90, 90, Z_AXIS)

    def test_freely_rotating_hinged_bone(self):
        chain = make_chain(1)
        bone = chain.add_consecutive_freely_rotating_hinged_bone(Y_AXIS, 1.0, JointType.GLOBAL_HINGE, Z_AXIS)
        assert bone.joint.is_free_hinge
        assert np.dot(bone.joint.reference_axis, Z_AXIS) == pytest.approx(0.0, abs=1e-12)

    @pytest.mark.parametrize('setting, value', [
        ('tolerance', -0.1),
        ('max_iterations', 0),
        ('min_iteration_change', -1e-3),
    ])
    def test_tuning_validated(self, setting, value):
        chain = make_chain(1)
        with pytest.raises(FabrikConfigurationError):
            setattr(chain, setting, value)


class TestSolve:
    def test_reachable_target(self):
        chain = make_chain(3)
        target = np.array([1.0, 1.5, 0.0])

        residual = chain.solve_for_target(target)

        assert residual <= chain.tolerance
        assert distance_between(chain.effector_location, target) == pytest.approx(residual)
        assert np.array_equal(chain.base_location, [0.0, 0.0, 0.0])
        assert_chain_intact(chain, [1.0, 1.0, 1.0])
        assert chain.last_solve_result()['converged']

    def test_target_already_reached(self):
        chain = make_chain(3)
        residual = chain.solve_for_target([0.0, 3.0, 0.0])
        assert residual == pytest.approx(0.0)
        assert chain.last_iteration_count == 0

    def test_unreachable_target_straightens_chain(self):
        chain = make_chain(3)
        target = np.array([5.0, 5.0, 0.0])

        residual = chain.solve_for_target(target)

        assert residual == pytest.approx(np.linalg.norm(target) - 3.0)
        direction = target / np.linalg.norm(target)
        for bone in chain.bones:
            assert np.allclose(bone.direction, direction)
        assert_chain_intact(chain, [1.0, 1.0, 1.0])

    def test_unreachable_target_is_stable(self):
        chain = make_chain(3)
        target = [0.0, 2.0, 5.0]

        first = chain.solve_for_target(target)
        pose = [bone.end.copy() for bone in chain.bones]
        second = chain.solve_for_target(target)

        assert second == pytest.approx(first)
        for bone, end in zip(chain.bones, pose):
            assert np.allclose(bone.end, end, atol=1e-12)

    def test_straight_chain_with_target_on_its_line(self):
        chain = make_chain(3)
        residual = chain.solve_for_target([0.0, 2.0, 0.0])
        assert residual <= chain.tolerance
        assert_chain_intact(chain, [1.0, 1.0, 1.0])

    def test_anchor_moves_chain(self):
        chain = make_chain(2)
        anchor = np.array([1.0, 2.0, 3.0])
        chain.solve(anchor, anchor + [0.5, 1.0, 0.5])
        assert np.array_equal(chain.base_location, anchor)
        assert np.array_equal(chain.fixed_base_location, anchor)
        assert np.array_equal(chain.last_base_location, anchor)

    def test_residual_matches_pose_when_not_converged(self):
        chain = make_chain(3)
        chain.set_rotor_basebone_constraint(BaseboneConstraintType.GLOBAL_ROTOR, Y_AXIS, 0)
        for bone in chain.bones[1:]:
            bone.rotor_constraint_degs = 0
        target = np.array([1.0, 1.0, 0.0])

        residual = chain.solve_for_target(target)

        assert residual == pytest.approx(distance_between(chain.effector_location, target))
        assert residual > chain.tolerance
        assert np.allclose(chain.effector_location, [0.0, 3.0, 0.0], atol=1e-9)
        assert not chain.last_solve_result()['converged']

    def test_locked_rotors_stay_straight_for_target_on_line(self):
        chain = make_chain(3)
        chain.set_rotor_basebone_constraint(BaseboneConstraintType.GLOBAL_ROTOR, Y_AXIS, 0)
        for bone in chain.bones[1:]:
            bone.rotor_constraint_degs = 0

        residual = chain.solve_for_target([0.0, 0.5, 0.0])

        assert residual == pytest.approx(2.5)
        for bone in chain.bones:
            assert angle_between_degs(bone.direction, Y_AXIS) <= 1e-3
        assert_chain_intact(chain, [1.0, 1.0, 1.0])

    def test_locked_hinges_stay_straight_for_target_on_line(self):
        chain = make_chain(1)
        chain.set_rotor_basebone_constraint(BaseboneConstraintType.GLOBAL_ROTOR, Y_AXIS, 0)
        for _ in range(2):
            chain.add_consecutive_hinged_bone(Y_AXIS, 1.0, JointType.GLOBAL_HINGE, X_AXIS, 0, 0, Y_AXIS)

        residual = chain.solve_for_target([0.0, 0.5, 0.0])

        assert residual == pytest.approx(2.5)
        for bone in chain.bones:
            assert np.dot(bone.direction, X_AXIS) == pytest.approx(0.0, abs=1e-9)
            assert angle_between_degs(bone.direction, Y_AXIS) <= 1e-3

    def test_reachable_targets_within_tolerance(self):
        rng = np.random.default_rng(7)
        full_reach = 2.0
        radii = list(rng.uniform(0.0, full_reach, 60)) + [
            0.99 * full_reach, 0.995 * full_reach, 0.999 * full_reach, 0.05, 0.025, 0.01,
        ]

        for radius in radii:
            direction = rng.normal(size=3)
            target = radius * direction / np.linalg.norm(direction)
            chain = make_chain(4, 0.5)

            residual = chain.solve_for_target(target)

            assert residual <= chain.tolerance, f'radius {radius:.4f}, residual {residual:.4f}'
            assert_chain_intact(chain, [0.5] * 4)

    def test_live_chain_length_after_solve(self):
        chain = make_chain(3, 0.5)
        chain.solve_for_target([0.3, 0.8, 0.4])
        assert chain.live_chain_length() == pytest.approx(chain.chain_length, abs=1e-9)

        chain.solve_for_target([4.0, 0.0, 0.0])
        assert chain.live_chain_length() == pytest.approx(1.5, abs=1e-9)

    def test_free_base_reaches_target(self):
        chain = make_chain(3)
        chain.set_fixed_base_mode(False)
        residual = chain.solve_for_target([1.0, 1.0, 1.0])
        assert residual <= chain.tolerance
        assert_chain_intact(chain, [1.0, 1.0, 1.0])


class TestBaseboneConstraints:
    def test_global_rotor_limits_base_bone(self):
        chain = make_chain(3)
        chain.set_rotor_basebone_constraint(BaseboneConstraintType.GLOBAL_ROTOR, Y_AXIS, 30)
        chain.solve_for_target([2.0, 0.5, 0.0])
        assert angle_between_degs(chain.get_bone(0).direction, Y_AXIS) <= 30.0 + 1e-6
        assert_chain_intact(chain, [1.0, 1.0, 1.0])

    def test_global_rotor_needs_fixed_base(self):
        chain = make_chain(2)
        chain.set_rotor_basebone_constraint(BaseboneConstraintType.GLOBAL_ROTOR, Y_AXIS, 30)
        with pytest.raises(FabrikConfigurationError):
            chain.set_fixed_base_mode(False)

        free = make_chain(2)
        free.set_fixed_base_mode(False)
        with pytest.raises(FabrikConfigurationError):
            free.set_rotor_basebone_constraint(BaseboneConstraintType.GLOBAL_ROTOR, Y_AXIS, 30)

    def test_rotor_constraint_type_checked(self):
        chain = make_chain(2)
        with pytest.raises(FabrikConfigurationError):
            chain.set_rotor_basebone_constraint(BaseboneConstraintType.GLOBAL_HINGE, Y_AXIS, 30)
        with pytest.raises(FabrikConfigurationError):
            chain.set_hinge_basebone_constraint(BaseboneConstraintType.LOCAL_ROTOR, X_AXIS, 90, 90, Y_AXIS)

    def test_global_hinge_keeps_base_bone_in_plane(self):
        chain = make_chain(3)
        chain.set_hinge_basebone_constraint(BaseboneConstraintType.GLOBAL_HINGE, X_AXIS, 90, 90, Y_AXIS)
        chain.solve_for_target([0.5, 1.0, 1.0])

        base_direction = chain.get_bone(0).direction
        assert np.dot(base_direction, X_AXIS) == pytest.approx(0.0, abs=1e-9)
        angle = signed_angle_between_degs(Y_AXIS, base_direction, X_AXIS)
        assert -90.0 - 1e-6 <= angle <= 90.0 + 1e-6

    def test_local_rotor_follows_host_direction(self):
        chain = make_chain(2)
        chain.set_rotor_basebone_constraint(BaseboneConstraintType.LOCAL_ROTOR, Z_AXIS, 20)
        # Local Z is the host bone direction
        chain.update_host_direction(X_AXIS)
        assert np.allclose(chain.basebone_relative_constraint_uv, X_AXIS)

        chain.solve_for_target([0.5, 1.5, 0.5])
        assert angle_between_degs(chain.get_bone(0).direction, X_AXIS) <= 20.0 + 1e-6

    def test_freely_rotating_hinged_basebone(self):
        chain = make_chain(2)
        chain.set_freely_rotating_global_hinged_basebone(Z_AXIS)
        assert chain.basebone_constraint_type is BaseboneConstraintType.GLOBAL_HINGE
        assert chain.get_bone(0).joint.is_free_hinge
        assert not chain.is_unconstrained()

        chain.set_freely_rotating_local_hinged_basebone(Z_AXIS)
        assert chain.basebone_constraint_type is BaseboneConstraintType.LOCAL_HINGE

    def test_local_hinge_bone_limits(self):
        chain = make_chain(1)
        chain.set_rotor_basebone_constraint(BaseboneConstraintType.GLOBAL_ROTOR, Y_AXIS, 0)
        chain.add_consecutive_hinged_bone(Z_AXIS, 1.0, JointType.LOCAL_HINGE, X_AXIS, 0, 90, Y_AXIS)

        for target in ([0.0, 2.0, 0.5], [0.0, 0.2, -1.0], [0.0, 1.5, 0.8], [1.0, 1.0, 1.0]):
            chain.solve_for_target(target)
            hinge_bone = chain.get_bone(1)
            rotation_axis, reference_axis = hinge_bone.joint.hinge_axes(chain.get_bone(0).direction)
            assert np.dot(hinge_bone.direction, rotation_axis) == pytest.approx(0.0, abs=1e-9)
            angle = signed_angle_between_degs(reference_axis, hinge_bone.direction, rotation_axis)
            assert -1e-6 <= angle <= 90.0 + 1e-6


class TestEmbeddedTarget:
    def test_embedded_target_mode_required(self):
        chain = make_chain(2)
        with pytest.raises(FabrikConfigurationError):
            chain.solve_for_embedded_target()

    def test_solve_for_embedded_target(self):
        chain = make_chain(2)
        chain.set_embedded_target_mode(True)
        chain.update_embedded_target([1.0, 1.0, 0.0])
        residual = chain.solve_for_embedded_target()
        assert residual <= chain.tolerance
        assert np.array_equal(chain.last_target_location, [1.0, 1.0, 0.0])


def test_last_solve_result_keys():
    chain = make_chain(2)
    chain.solve_for_target([0.5, 1.0, 0.5])
    result = chain.last_solve_result()
    assert set(result) == {'converged', 'iterations', 'final_error'}
    assert result['final_error'] == chain.current_solve_distance
