"""
conftest.py - pytest fixtures shared across the test suite.

Provides scenes, collision managers with a registered mobile box, and
planner configurations so that individual test modules stay short.
"""

import math

import numpy as np
import pytest

from sixdof_planner import (
    BoxGeometry,
    CollisionManager,
    Configuration,
    PlannerConfig,
    Scene,
)


# =========================================================================
# Configurations
# =========================================================================

@pytest.fixture()
def rng() -> np.random.Generator:
    return np.random.default_rng(12345)


@pytest.fixture()
def start_config() -> Configuration:
    """(0, 0, 0) + identity orientation."""
    return Configuration.identity()


@pytest.fixture()
def target_config() -> Configuration:
    """(5, 5, 5) + 90° about Z."""
    return Configuration.from_euler([5.0, 5.0, 5.0], [0.0, 0.0, math.pi / 2])


# =========================================================================
# Scenes
# =========================================================================

@pytest.fixture()
def empty_scene() -> Scene:
    return Scene()


@pytest.fixture()
def block_scene() -> Scene:
    """单个障碍物挡在 (0,0,0) 与 (5,5,5) 之间"""
    scene = Scene()
    scene.add_obstacle([1.5, 1.5, 1.5], [3.5, 3.5, 3.5], name="block")
    return scene


@pytest.fixture()
def enclosed_target_scene() -> Scene:
    """用六块墙把 (5,5,5) 附近封闭，目标不可达"""
    scene = Scene()
    lo, hi, t = 4.0, 6.0, 0.2
    scene.add_obstacle([lo - t, lo - t, lo - t], [hi + t, hi + t, lo], name="bottom")
    scene.add_obstacle([lo - t, lo - t, hi], [hi + t, hi + t, hi + t], name="top")
    scene.add_obstacle([lo - t, lo - t, lo], [lo, hi + t, hi], name="west")
    scene.add_obstacle([hi, lo - t, lo], [hi + t, hi + t, hi], name="east")
    scene.add_obstacle([lo, lo - t, lo], [hi, lo, hi], name="south")
    scene.add_obstacle([lo, hi, lo], [hi, hi + t, hi], name="north")
    return scene


# =========================================================================
# Collision managers
# =========================================================================

@pytest.fixture()
def mobile_geometry() -> BoxGeometry:
    """0.2 × 0.2 × 0.2 的小方块"""
    return BoxGeometry([0.1, 0.1, 0.1])


def _manager_with_mobile(scene: Scene, geometry: BoxGeometry):
    manager = CollisionManager.from_scene(scene)
    mobile = manager.register_dynamic_object(geometry, name="mobile")
    return manager, mobile


@pytest.fixture()
def empty_manager(empty_scene, mobile_geometry):
    """(manager, mobile) in free space"""
    return _manager_with_mobile(empty_scene, mobile_geometry)


@pytest.fixture()
def block_manager(block_scene, mobile_geometry):
    return _manager_with_mobile(block_scene, mobile_geometry)


@pytest.fixture()
def enclosed_manager(enclosed_target_scene, mobile_geometry):
    return _manager_with_mobile(enclosed_target_scene, mobile_geometry)


# =========================================================================
# Planner configuration
# =========================================================================

@pytest.fixture()
def planner_config() -> PlannerConfig:
    """位置区间覆盖 start/target，迭代上限较小以保证测试快速结束"""
    return PlannerConfig(
        radius=1.0,
        max_spacing=0.1,
        max_iterations=5000,
        position_interval=(-1.0, 6.0),
        log_interval=0,
    )
