"""test/test_planner_base.py - 规划器公共功能测试"""
import math

import numpy as np
import pytest

from sixdof_planner.collision import BoxGeometry
from sixdof_planner.configuration import Configuration
from sixdof_planner.models import PlannerConfig
from sixdof_planner.planner_base import SixDofPlannerBase, validate_intervals


@pytest.fixture
def block_planner(block_manager, planner_config):
    manager, mobile = block_manager
    return SixDofPlannerBase(manager, mobile, planner_config, seed=0)


@pytest.fixture
def free_planner(empty_manager, planner_config):
    manager, mobile = empty_manager
    return SixDofPlannerBase(manager, mobile, planner_config, seed=0)


def _c(x, y, z):
    return Configuration([x, y, z])


class TestIntervals:

    def test_valid(self):
        intervals = validate_intervals([(-1, 1)] * 6)
        assert intervals == [(-1.0, 1.0)] * 6

    def test_wrong_count(self):
        with pytest.raises(ValueError):
            validate_intervals([(-1, 1)] * 5)

    def test_min_greater_than_max(self):
        with pytest.raises(ValueError):
            validate_intervals([(-1, 1)] * 5 + [(1, -1)])

    def test_non_finite(self):
        with pytest.raises(ValueError):
            validate_intervals([(-1, 1)] * 5 + [(0, math.inf)])

    def test_constructor_rejects_invalid(self, empty_manager):
        manager, mobile = empty_manager
        with pytest.raises(ValueError):
            SixDofPlannerBase(manager, mobile, intervals=[(0, 1)] * 3)

    def test_degenerate_interval_allowed(self, empty_manager):
        manager, mobile = empty_manager
        planner = SixDofPlannerBase(manager, mobile, intervals=[(2.0, 2.0)] * 3 + [(0.0, 0.0)] * 3)
        c = planner.random_configuration()
        np.testing.assert_allclose(c.translation, [2, 2, 2])
        assert c.is_close(Configuration([2, 2, 2]))


class TestSampling:

    def test_random_configuration_in_bounds(self, free_planner):
        for _ in range(200):
            c = free_planner.random_configuration()
            assert np.all(c.translation >= -1.0)
            assert np.all(c.translation <= 6.0)
            assert np.linalg.norm(c.orientation) == pytest.approx(1.0)

    def test_reproducible_with_seed(self, empty_manager, planner_config):
        manager, mobile = empty_manager
        a = SixDofPlannerBase(manager, mobile, planner_config, seed=3)
        b = SixDofPlannerBase(manager, mobile, planner_config, seed=3)
        for _ in range(10):
            assert a.random_configuration().is_close(b.random_configuration(), atol=0.0)

    def test_rotation_radius_defaults_to_bounding_radius(self, free_planner):
        assert free_planner.metric.rotation_radius == pytest.approx(math.sqrt(0.03))

    def test_rotation_radius_from_config(self, empty_manager):
        manager, mobile = empty_manager
        planner = SixDofPlannerBase(manager, mobile, PlannerConfig(rotation_radius=2.0))
        assert planner.metric.rotation_radius == 2.0


class TestCollisionQueries:

    def test_config_collision(self, block_planner):
        assert block_planner.check_config_collision(_c(2.5, 2.5, 2.5)) is True
        assert block_planner.check_config_collision(Configuration.identity()) is False

    def test_distance_to_obstacles(self, block_planner):
        d = block_planner.distance_to_obstacles(Configuration.identity())
        assert d == pytest.approx(math.sqrt(3) * 1.4, abs=1e-3)
        assert block_planner.distance_to_obstacles(_c(2.5, 2.5, 2.5)) == 0.0

    def test_segment_through_obstacle(self, block_planner):
        assert block_planner.check_segment_collision(_c(0, 0, 0), _c(5, 5, 5), 0.1) is True

    def test_free_segment(self, block_planner):
        assert block_planner.check_segment_collision(_c(0, 0, 0), _c(0, 5, 0), 0.1) is False

    def test_short_segment_not_checked(self, block_planner):
        """端点距离不超过间距时不调用碰撞预言机"""
        manager = block_planner.collision_manager
        before = manager.n_collision_checks
        assert block_planner.check_segment_collision(_c(2.5, 2.5, 2.5), _c(2.5, 2.5, 2.55), 0.1) is False
        assert manager.n_collision_checks == before

    def test_endpoints_not_checked(self, block_planner):
        """端点碰撞由调用方负责，线段检测只看内部插值点"""
        inside = _c(2.5, 2.5, 2.5)
        assert block_planner.check_segment_collision(inside, inside, 0.1) is False
        # 两端在障碍物外，中点穿过障碍物
        assert block_planner.check_segment_collision(_c(2.5, 2.5, 1.0), _c(2.5, 2.5, 4.0), 0.1) is True

    def test_rotation_sweep(self, empty_manager):
        """纯旋转线段：细长物体转动时扫过障碍物"""
        manager, _ = empty_manager
        rod = manager.register_dynamic_object(BoxGeometry([1.0, 0.05, 0.05]), name="rod")
        manager.unregister(manager.dynamic_objects[0])
        manager.register_static_object(BoxGeometry([0.1, 0.1, 0.1]), translation=[0.6, 0.6, 0.0])
        planner = SixDofPlannerBase(manager, rod, PlannerConfig())
        a = Configuration.identity()
        b = Configuration.from_euler([0, 0, 0], [0, 0, math.pi / 2])
        assert planner.check_config_collision(a) is False
        assert planner.check_config_collision(b) is False
        assert planner.check_segment_collision(a, b, 0.05) is True

    def test_invalid_spacing(self, block_planner):
        with pytest.raises(ValueError):
            block_planner.check_segment_collision(_c(0, 0, 0), _c(1, 0, 0), 0.0)

    def test_is_path_valid(self, block_planner):
        assert block_planner.is_path_valid([_c(0, 0, 0), _c(5, 5, 5)]) is False
        assert block_planner.is_path_valid([_c(0, 0, 0), _c(0, 0, 5), _c(5, 5, 5)]) is True
        assert block_planner.is_path_valid([_c(2.5, 2.5, 2.5)]) is False


class TestLimitDistance:

    def test_close_target_returned_unchanged(self, free_planner):
        target = _c(0.3, 0, 0)
        assert free_planner.limit_distance(_c(0, 0, 0), target, 1.0) is target

    def test_translation_limited(self, free_planner):
        source = _c(0, 0, 0)
        limited = free_planner.limit_distance(source, _c(4, 0, 0), 1.0)
        d = free_planner.configuration_distance(source, limited)
        assert d <= 1.0
        assert d == pytest.approx(1.0, abs=1e-6)
        np.testing.assert_allclose(limited.translation, [1, 0, 0], atol=1e-6)

    def test_random_pairs_respect_bound(self, free_planner):
        for _ in range(30):
            a = free_planner.random_configuration()
            b = free_planner.random_configuration()
            limited = free_planner.limit_distance(a, b, 0.5)
            assert free_planner.configuration_distance(a, limited) <= 0.5 + 1e-9


class TestTryConnect:

    def test_new_node_within_radius(self, free_planner):
        tree = free_planner._new_tree(0)
        tree.add_node(Configuration.identity(), 1.0)
        for _ in range(50):
            sample = free_planner.random_configuration()
            nearest, _ = tree.nearest(sample)
            node = free_planner.try_connect(tree, sample, 1.0, 0.1)
            assert node is not None
            assert node.parent_id == nearest.node_id
            assert free_planner.configuration_distance(
                nearest.configuration, node.configuration) <= nearest.radius + 1e-9
        assert tree.n_nodes == 51
        assert tree.total_trials() == 50

    def test_blocked_extension(self, block_planner):
        tree = block_planner._new_tree(0)
        tree.add_node(_c(1.2, 1.2, 1.2), 1.0)
        assert block_planner.try_connect(tree, _c(2.5, 2.5, 2.5), 1.0, 0.1) is None
        assert tree.n_nodes == 1
        assert tree.root.n_trials == 1
        assert tree.root.n_successes == 0

    def test_adaptive_radius_shrinks_step(self, empty_manager):
        manager, mobile = empty_manager
        planner = SixDofPlannerBase(
            manager, mobile, PlannerConfig(adaptive_radius=True, position_interval=(-5, 5)))
        tree = planner._new_tree(0)
        tree.add_node(Configuration.identity(), 2.0)
        tree.root.n_trials = 3
        tree.root.n_successes = 0
        node = planner.try_connect(tree, _c(10, 0, 0), 2.0, 0.1)
        # (0 + 1) / (4 + 1) · 2.0
        np.testing.assert_allclose(node.configuration.translation, [0.4, 0, 0], atol=1e-6)


class TestOptimize:

    def test_free_space_collapses_to_endpoints(self, free_planner):
        path = [_c(0, 0, 0), _c(1, 2, 0), _c(2, -1, 1), _c(3, 3, 3), _c(5, 5, 5)]
        result = free_planner.optimize(path)
        assert len(result) == 2
        assert result[0] is path[0]
        assert result[-1] is path[-1]

    def test_around_obstacle(self, block_planner):
        path = [_c(0, 0, 0), _c(0, 0, 2), _c(0, 0, 5), _c(2, 2, 5), _c(5, 5, 5)]
        assert block_planner.is_path_valid(path)
        result = block_planner.optimize(path)
        assert result[0] is path[0]
        assert result[-1] is path[-1]
        assert 3 <= len(result) <= len(path)
        for a, b in zip(result, result[1:]):
            assert not block_planner.check_segment_collision(a, b, 0.1)
        assert block_planner.path_length(result) <= block_planner.path_length(path) + 1e-9

    def test_short_paths_unchanged(self, free_planner):
        path = [_c(0, 0, 0), _c(1, 0, 0)]
        assert free_planner.optimize(path) == path
        assert free_planner.path_length(path) == pytest.approx(1.0)
        assert free_planner.path_length([]) == 0.0
