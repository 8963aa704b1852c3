import numpy as np
import pytest

from fabrik3d.fabrik_bone import BoneConnectionPoint, FabrikBone
from fabrik3d.fabrik_chain import BaseboneConstraintType, FabrikChain
from fabrik3d.fabrik_errors import FabrikConfigurationError
from fabrik3d.fabrik_initialization import FabrikInitialization
from fabrik3d.fabrik_structure import ChainConnection, FabrikStructure
from fabrik3d.fabrik_vector import X_AXIS, Y_AXIS


def make_chain(name, start=(0.0, 0.0, 0.0), direction=Y_AXIS, num_bones=2, length=1.0):
    chain = FabrikChain(name)
    chain.add_bone(FabrikBone.from_direction(start, direction, length))
    for _ in range(num_bones - 1):
        chain.add_consecutive_bone(direction, length)
    return chain


@pytest.fixture
def structure():
    structure = FabrikStructure('test')
    structure.add_chain(make_chain('trunk', num_bones=3))
    structure.connect_chain(make_chain('branch', direction=X_AXIS), 'trunk', 1)
    return structure


def test_connect_moves_chain_to_host_bone(structure):
    trunk = structure.get_chain_by_name('trunk')
    branch = structure.get_chain_by_name('branch')

    assert np.array_equal(branch.base_location, trunk.get_bone(1).end)
    assert branch.fixed_base_mode
    assert branch.connected_chain_name == 'trunk'
    assert branch.connected_bone_index == 1
    assert branch.connection_point is BoneConnectionPoint.END
    assert structure.get_connection('branch') == ChainConnection('trunk', 1, BoneConnectionPoint.END)


def test_connected_chain_follows_host_after_solve(structure):
    residuals = structure.solve_for_targets({'trunk': [1.0, 2.0, 0.5], 'branch': [1.5, 2.5, 0.0]})

    trunk = structure.get_chain_by_name('trunk')
    branch = structure.get_chain_by_name('branch')
    assert set(residuals) == {'trunk', 'branch'}
    assert np.array_equal(branch.base_location, trunk.get_bone(1).end)


def test_chain_without_target_holds_shape(structure):
    branch = structure.get_chain_by_name('branch')
    shape = [bone.end - bone.start for bone in branch.bones]

    residuals = structure.solve_for_targets({'trunk': [1.0, 2.0, 0.5]})

    trunk = structure.get_chain_by_name('trunk')
    assert 'branch' not in residuals
    assert np.array_equal(branch.base_location, trunk.get_bone(1).end)
    for bone, offset in zip(branch.bones, shape):
        assert np.allclose(bone.end - bone.start, offset)


def test_connect_to_bone_start():
    structure = FabrikStructure()
    structure.add_chain(make_chain('trunk', start=(0.0, 1.0, 0.0)))
    branch = structure.connect_chain(make_chain('branch', direction=X_AXIS), 'trunk', 0,
                                     BoneConnectionPoint.START)
    assert np.array_equal(branch.base_location, [0.0, 1.0, 0.0])

    structure.solve_for_targets({'trunk': [1.0, 1.5, 0.0], 'branch': [0.5, 0.5, 0.0]})
    assert np.array_equal(branch.base_location, structure.get_chain(0).base_location)


def test_connect_by_index(structure):
    leaf = structure.connect_chain(make_chain('leaf'), 1, 0)
    assert leaf.connected_chain_name == 'branch'
    assert [chain.name for chain in structure.solve_order()] == ['trunk', 'branch', 'leaf']


@pytest.mark.parametrize('host, bone_index', [('missing', 0), ('trunk', 3), ('trunk', -1), (7, 0)])
def test_invalid_connection(structure, host, bone_index):
    with pytest.raises(FabrikConfigurationError):
        structure.connect_chain(make_chain('leaf'), host, bone_index)
    assert structure.get_chain_by_name('leaf') is None


def test_connection_point_validated(structure):
    with pytest.raises(FabrikConfigurationError):
        structure.connect_chain(make_chain('leaf'), 'trunk', 0, 'middle')


def test_duplicate_and_empty_chains_rejected(structure):
    with pytest.raises(FabrikConfigurationError):
        structure.add_chain(make_chain('trunk'))
    with pytest.raises(FabrikConfigurationError):
        structure.add_chain(FabrikChain('empty'))
    with pytest.raises(FabrikConfigurationError):
        structure.connect_chain(structure.get_chain_by_name('trunk'), 'trunk', 0)


def test_connected_chain_keeps_fixed_base(structure):
    with pytest.raises(FabrikConfigurationError):
        structure.get_chain_by_name('branch').set_fixed_base_mode(False)

    structure.set_fixed_base_mode(False)
    assert not structure.get_chain_by_name('trunk').fixed_base_mode
    assert structure.get_chain_by_name('branch').fixed_base_mode


def test_fixed_base_mode_unchanged_when_a_chain_refuses(structure):
    pinned = make_chain('pinned', start=(2.0, 0.0, 0.0))
    pinned.set_rotor_basebone_constraint(BaseboneConstraintType.GLOBAL_ROTOR, Y_AXIS, 30)
    structure.add_chain(pinned)

    with pytest.raises(FabrikConfigurationError):
        structure.set_fixed_base_mode(False)

    assert all(chain.fixed_base_mode for chain in structure.chains)


def test_local_rotor_base_follows_host_bone():
    structure = FabrikStructure()
    structure.add_chain(make_chain('trunk', num_bones=3))
    branch = make_chain('branch', direction=X_AXIS)
    branch.set_rotor_basebone_constraint(BaseboneConstraintType.LOCAL_ROTOR, [0.0, 0.0, 1.0], 15)
    structure.connect_chain(branch, 'trunk', 1)

    structure.solve_for_targets({'trunk': [1.5, 1.5, 0.0], 'branch': [3.0, 3.0, 0.0]})

    host_direction = structure.get_chain_by_name('trunk').get_bone(1).direction
    assert np.allclose(branch.host_direction, host_direction)
    assert np.allclose(branch.basebone_relative_constraint_uv, host_direction)


def test_embedded_target_used_by_structure(structure):
    branch = structure.get_chain_by_name('branch')
    branch.set_embedded_target_mode(True)
    branch.update_embedded_target([1.0, 1.5, 0.0])

    residuals = structure.solve_for_targets({'trunk': [0.5, 2.5, 0.0], 'branch': [9.0, 9.0, 9.0]})
    assert np.array_equal(branch.last_target_location, [1.0, 1.5, 0.0])
    assert 'branch' in residuals


def test_solve_for_target_solves_every_chain(structure):
    residuals = structure.solve_for_target([0.5, 2.0, 0.5])
    assert set(residuals) == {'trunk', 'branch'}
    assert all(np.isfinite(list(residuals.values())))


def test_solving_is_deterministic():
    first = FabrikInitialization.create_connected_chain_demo()
    second = FabrikInitialization.create_connected_chain_demo()
    targets = {'chain1': [0.5, 1.5, 0.5], 'chain2': [1.5, 1.0, -0.5]}

    for _ in range(3):
        assert first.solve_for_targets(targets) == second.solve_for_targets(targets)

    for chain_a, chain_b in zip(first.chains, second.chains):
        for bone_a, bone_b in zip(chain_a.bones, chain_b.bones):
            assert np.array_equal(bone_a.start, bone_b.start)
            assert np.array_equal(bone_a.end, bone_b.end)
