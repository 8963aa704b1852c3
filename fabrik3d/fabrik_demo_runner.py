#!/usr/bin/env python3
"""
FABRIK Demo Runner
==================
Runs a preset rig for a number of solver ticks. Targets wander in a seeded
random walk (the robot leg cycles through its fixed targets); every tick the
structure is solved and per-chain residuals are logged. The final pose can be
plotted with matplotlib.
"""

import argparse
import logging
import os
from typing import Dict, List, Optional

import numpy as np

from skeleton_config import motion as motion_config
from skeleton_config import system as sys_config
from skeleton_config import visualization as viz_config
from .fabrik_initialization import PRESETS, FabrikInitialization
from .fabrik_kinematics import calculate_structure_pose

logger = logging.getLogger(__name__)


class FabrikDemoRunner:
    def __init__(self, rig: str = 'humanoid',
                 tolerance: float = motion_config.FABRIK_TOLERANCE,
                 max_iterations: int = motion_config.FABRIK_MAX_ITERATIONS,
                 seed: Optional[int] = None,
                 target_range: float = motion_config.DEMO_TARGET_RANGE,
                 target_step: float = motion_config.DEMO_TARGET_STEP):
        if rig not in PRESETS:
            raise ValueError(f"Unknown rig '{rig}', choose one of {sorted(PRESETS)}")

        self.rig = rig
        self.structure = PRESETS[rig]()
        for chain in self.structure.chains:
            chain.tolerance = tolerance
            chain.max_iterations = max_iterations

        self.rng = np.random.default_rng(seed)
        self.target_range = target_range
        self.target_step = target_step
        self.tick_count = 0

        # Start every target at its chain's end effector
        self.targets: Dict[str, np.ndarray] = {
            chain.name: chain.effector_location.copy() for chain in self.structure.chains
        }
        self.leg_targets = FabrikInitialization.robot_leg_targets() if rig == 'robot_leg' else None

        logger.info('FABRIK demo started')
        logger.info(f'  Rig: {rig} ({self.structure.num_chains} chains)')
        logger.info(f'  Tolerance: {tolerance}')
        logger.info(f'  Max iterations: {max_iterations}')
        logger.info(f'  Seed: {seed}')

    def move_targets(self) -> None:
        """Advance every target by one random-walk step, or to the next robot leg target."""
        if self.leg_targets is not None:
            target = self.leg_targets[self.tick_count % len(self.leg_targets)]
            for name in self.targets:
                self.targets[name] = np.array(target)
            return

        for name, target in self.targets.items():
            step = self.rng.uniform(-self.target_step, self.target_step, size=3)
            self.targets[name] = np.clip(target + step, -self.target_range, self.target_range)

    def tick(self) -> Dict[str, float]:
        """Move targets and solve once. Returns residual distance per chain."""
        self.move_targets()
        residuals = self.structure.solve_for_targets(self.targets)
        self.tick_count += 1

        for name, distance in residuals.items():
            chain = self.structure.get_chain_by_name(name)
            if distance <= chain.tolerance:
                logger.debug(f'  Tick {self.tick_count} {name}: ✓ distance {distance:.4f}')
            else:
                logger.debug(
                    f'  Tick {self.tick_count} {name}: ✗ distance {distance:.4f} '
                    f'after {chain.last_iteration_count} iterations'
                )
        return residuals

    def run(self, ticks: int = motion_config.DEMO_TICKS) -> List[Dict[str, float]]:
        history = [self.tick() for _ in range(ticks)]

        for chain in self.structure.chains:
            distances = [residuals[chain.name] for residuals in history if chain.name in residuals]
            if not distances:
                continue
            solved = sum(1 for d in distances if d <= chain.tolerance)
            logger.info(
                f'{chain.name}: solved {solved}/{len(distances)} ticks, '
                f'mean residual {np.mean(distances):.4f}, max {np.max(distances):.4f}'
            )
        return history

    def plot(self, output_path: str) -> None:
        """Save a 3-D plot of the current pose and targets."""
        import matplotlib
        matplotlib.use('Agg')
        import matplotlib.pyplot as plt

        fig = plt.figure(figsize=(8, 8))
        ax = fig.add_subplot(projection='3d')

        poses = calculate_structure_pose(self.structure)
        for i, (name, pose) in enumerate(poses.items()):
            chain_color = viz_config.CHAIN_COLORS[i % len(viz_config.CHAIN_COLORS)]
            for bone_pose, bone in zip(pose['bones'], self.structure.get_chain_by_name(name).bones):
                color = bone.color or chain_color
                points = np.vstack([bone_pose['start'], bone_pose['end']])
                ax.plot(points[:, 0], points[:, 1], points[:, 2],
                        color=color, linewidth=viz_config.BONE_LINE_WIDTH)
                ax.scatter(*bone_pose['end'], color=color, s=viz_config.JOINT_MARKER_SIZE)

            target = self.targets.get(name)
            if target is not None:
                ax.scatter(*target, color=viz_config.TARGET_COLOR, marker='x',
                           s=viz_config.TARGET_MARKER_SIZE)

        limit = viz_config.PLOT_AXIS_LIMIT
        ax.set_xlim(-limit, limit)
        ax.set_ylim(-limit, limit)
        ax.set_zlim(-limit, limit)
        ax.set_xlabel('X')
        ax.set_ylabel('Y')
        ax.set_zlabel('Z')
        ax.set_title(f'{self.rig} after {self.tick_count} ticks')

        plt.tight_layout()
        plt.savefig(output_path, dpi=150, bbox_inches='tight')
        plt.close(fig)
        logger.info(f'Plot saved to {output_path}')


def parse_args(args=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Run a FABRIK preset rig against moving targets.')
    parser.add_argument('--rig', default='humanoid', choices=sorted(PRESETS))
    parser.add_argument('--ticks', type=int, default=motion_config.DEMO_TICKS)
    parser.add_argument('--tolerance', type=float, default=motion_config.FABRIK_TOLERANCE)
    parser.add_argument('--max-iterations', type=int, default=motion_config.FABRIK_MAX_ITERATIONS)
    parser.add_argument('--seed', type=int, default=None)
    parser.add_argument('--plot', metavar='PATH', default=None,
                        help='save a plot of the final pose (needs matplotlib)')
    parser.add_argument('--debug', action='store_true')
    return parser.parse_args(args)


def main(args=None):
    options = parse_args(args)

    debug = options.debug or os.environ.get(sys_config.DEBUG_ENV_VAR) == '1'
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO, format=sys_config.LOG_FORMAT)

    runner = FabrikDemoRunner(
        rig=options.rig,
        tolerance=options.tolerance,
        max_iterations=options.max_iterations,
        seed=options.seed,
    )

    try:
        runner.run(options.ticks)
    except KeyboardInterrupt:
        pass
    finally:
        if options.plot:
            runner.plot(options.plot)


if __name__ == '__main__':
    main()
