#!/usr/bin/env python3
"""
FABRIK Structure - Multi-Chain Orchestrator
===========================================
A collection of chains, some anchored to a point on another chain.

Chains are solved in topological order of the connection graph so that a
connected chain always reads its host bone after the host solved this tick.
"""

import logging
from dataclasses import dataclass
from graphlib import CycleError, TopologicalSorter
from typing import Dict, List, Mapping, Optional, Union

from skeleton_config import system as sys_config
from .fabrik_bone import BoneConnectionPoint
from .fabrik_chain import FabrikChain
from .fabrik_errors import FabrikConfigurationError
from .fabrik_vector import vec3

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChainConnection:
    """Anchor of a connected chain: a start or end point of a bone on a host chain."""
    host_chain_name: str
    host_bone_index: int
    connection_point: BoneConnectionPoint = BoneConnectionPoint.END


class FabrikStructure:
    """
    Multi-chain FABRIK structure.

    Use add_chain() for chains anchored at a fixed location and
    connect_chain() for chains that follow a bone of another chain.
    """

    def __init__(self, name: str = sys_config.DEFAULT_STRUCTURE_NAME):
        self.name = str(name)[:sys_config.MAX_NAME_LENGTH]
        self._chains: List[FabrikChain] = []
        self._chains_by_name: Dict[str, FabrikChain] = {}
        self._connections: Dict[str, ChainConnection] = {}
        self._solve_order: List[FabrikChain] = []

    # ================================================================== assembly

    def add_chain(self, chain: FabrikChain) -> FabrikChain:
        """Register an unconnected chain."""
        self._register(chain)
        self._solve_order = self._compute_solve_order()
        return chain

    def connect_chain(self, chain: FabrikChain, host_chain: Union[str, int], host_bone_index: int,
                      connection_point: BoneConnectionPoint = BoneConnectionPoint.END) -> FabrikChain:
        """
        Register a chain whose base follows a bone of an already registered chain.

        The chain is moved so its base bone starts on the connection point and
        is switched to fixed base mode.

        Args:
            chain: Chain to add
            host_chain: Host chain name, or its index in registration order
            host_bone_index: Index of the host bone
            connection_point: START or END of the host bone

        Raises:
            FabrikConfigurationError: Unknown host, bone index out of range,
                duplicate or empty chain
        """
        host = self._resolve_host(host_chain)
        if not isinstance(connection_point, BoneConnectionPoint):
            raise FabrikConfigurationError(f"Unknown connection point: {connection_point!r}")
        if not 0 <= host_bone_index < host.num_bones:
            raise FabrikConfigurationError(
                f"Bone index {host_bone_index} is out of range for chain '{host.name}' "
                f"with {host.num_bones} bones"
            )
        if chain is host:
            raise FabrikConfigurationError(f"Chain '{chain.name}' cannot connect to itself")

        self._register(chain)
        connection = ChainConnection(host.name, int(host_bone_index), connection_point)
        self._connections[chain.name] = connection

        chain.connected_chain_name = host.name
        chain.connected_bone_index = connection.host_bone_index
        chain.connection_point = connection_point
        chain.set_fixed_base_mode(True)

        host_bone = host.get_bone(connection.host_bone_index)
        chain.update_host_direction(host_bone.direction)
        chain.translate_to(self._connection_location(connection))

        try:
            self._solve_order = self._compute_solve_order()
        except FabrikConfigurationError:
            self._unregister(chain)
            raise
        return chain

    def _register(self, chain: FabrikChain) -> None:
        if not isinstance(chain, FabrikChain):
            raise FabrikConfigurationError(f"Expected a FabrikChain, got {type(chain).__name__}")
        if chain.num_bones == 0:
            raise FabrikConfigurationError(f"Chain '{chain.name}' has no bones")
        if chain.name in self._chains_by_name:
            raise FabrikConfigurationError(f"A chain named '{chain.name}' already exists in '{self.name}'")
        self._chains.append(chain)
        self._chains_by_name[chain.name] = chain

    def _unregister(self, chain: FabrikChain) -> None:
        self._chains.remove(chain)
        del self._chains_by_name[chain.name]
        self._connections.pop(chain.name, None)

    def _resolve_host(self, host_chain: Union[str, int]) -> FabrikChain:
        if isinstance(host_chain, str):
            host = self._chains_by_name.get(host_chain)
            if host is None:
                raise FabrikConfigurationError(f"Unknown host chain '{host_chain}'")
            return host
        if isinstance(host_chain, int) and 0 <= host_chain < len(self._chains):
            return self._chains[host_chain]
        raise FabrikConfigurationError(f"Unknown host chain {host_chain!r}")

    def _compute_solve_order(self) -> List[FabrikChain]:
        """Chains in dependency order: every host before the chains connected to it."""
        graph = {chain.name: set() for chain in self._chains}
        for name, connection in self._connections.items():
            graph[name].add(connection.host_chain_name)

        sorter = TopologicalSorter(graph)
        try:
            order = list(sorter.static_order())
        except CycleError as exc:
            raise FabrikConfigurationError(f"Chain connections form a cycle: {exc.args[1]}") from exc

        # static_order() is not stable; keep registration order among independent chains
        depth: Dict[str, int] = {}
        for name in order:
            connection = self._connections.get(name)
            depth[name] = 0 if connection is None else depth[connection.host_chain_name] + 1
        registration = {chain.name: i for i, chain in enumerate(self._chains)}
        names = sorted(order, key=lambda n: (depth[n], registration[n]))
        return [self._chains_by_name[name] for name in names]

    # ================================================================== lookup

    @property
    def chains(self) -> List[FabrikChain]:
        """Chains in registration order."""
        return list(self._chains)

    @property
    def connections(self) -> Dict[str, ChainConnection]:
        return dict(self._connections)

    @property
    def num_chains(self) -> int:
        return len(self._chains)

    def solve_order(self) -> List[FabrikChain]:
        return list(self._solve_order)

    def get_chain(self, index: int) -> FabrikChain:
        return self._chains[index]

    def get_chain_by_name(self, name: str) -> Optional[FabrikChain]:
        return self._chains_by_name.get(name)

    def get_connection(self, chain_name: str) -> Optional[ChainConnection]:
        return self._connections.get(chain_name)

    def set_fixed_base_mode(self, value: bool) -> None:
        """Pin or free the base of every unconnected chain. All or nothing."""
        unconnected = [chain for chain in self._chains if chain.name not in self._connections]
        for chain in unconnected:
            chain.check_fixed_base_mode(value)
        for chain in unconnected:
            chain.set_fixed_base_mode(value)

    # ================================================================== solving

    def _connection_location(self, connection: ChainConnection):
        host_bone = self._chains_by_name[connection.host_chain_name].get_bone(connection.host_bone_index)
        if connection.connection_point is BoneConnectionPoint.START:
            return host_bone.start
        return host_bone.end

    def _resolve_anchor(self, chain: FabrikChain):
        connection = self._connections.get(chain.name)
        if connection is None:
            return chain.fixed_base_location

        host_bone = self._chains_by_name[connection.host_chain_name].get_bone(connection.host_bone_index)
        chain.update_host_direction(host_bone.direction)
        return self._connection_location(connection)

    def solve_for_targets(self, targets: Mapping[str, object]) -> Dict[str, float]:
        """
        Solve every chain toward its named target.

        Chains without a target (and not in embedded target mode) keep their
        shape; a connected one still follows its host bone.

        Args:
            targets: Mapping of chain name to target location [x, y, z]

        Returns:
            Residual end effector distance per solved chain
        """
        residuals: Dict[str, float] = {}
        for chain in self._solve_order:
            anchor = self._resolve_anchor(chain)

            if chain.embedded_target_mode:
                target = chain.embedded_target
            else:
                target = targets.get(chain.name)

            if target is None:
                chain.hold(anchor)
                continue

            residuals[chain.name] = chain.solve(anchor, vec3(target))

        unsolved = sorted(name for name, distance in residuals.items()
                          if distance > self._chains_by_name[name].tolerance)
        if unsolved:
            logger.debug(f"Structure '{self.name}': chains not within tolerance: {unsolved}")
        return residuals

    def solve_for_target(self, target) -> Dict[str, float]:
        """Solve every chain toward the same target."""
        target = vec3(target)
        return self.solve_for_targets({chain.name: target for chain in self._chains})

    def __repr__(self) -> str:
        return f"FabrikStructure(name={self.name!r}, chains={[c.name for c in self._chains]})"
