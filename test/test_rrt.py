"""test/test_rrt.py - 单向 RRT 测试"""
import math

import numpy as np
import pytest

from sixdof_planner.configuration import Configuration
from sixdof_planner.models import PlannerConfig
from sixdof_planner.rrt import SixDofRRT


def _planner(manager_and_mobile, config, seed=0):
    manager, mobile = manager_and_mobile
    return SixDofRRT(manager, mobile, config, seed=seed)


class TestRRT:

    def test_free_space(self, empty_manager, planner_config, start_config, target_config):
        planner = _planner(empty_manager, planner_config)
        result = planner.plan(start_config, target_config, seed=1)
        assert result.success
        assert result.n_iterations == 1
        assert len(result.path) == 3
        assert result.path[0] is start_config
        assert result.path[-1] is target_config

    def test_full_goal_bias_steers_to_target(self, empty_manager, start_config, target_config):
        config = PlannerConfig(radius=1.0, max_iterations=100, position_interval=(-1.0, 6.0),
                               goal_bias=1.0, log_interval=0)
        planner = _planner(empty_manager, config)
        result = planner.plan(start_config, target_config)
        assert result.success
        np.testing.assert_allclose(result.path[1].translation, [1 / math.sqrt(3)] * 3, atol=1e-6)

    def test_around_obstacle(self, block_manager, start_config, target_config):
        config = PlannerConfig(radius=1.0, max_spacing=0.1, max_iterations=5000,
                               position_interval=(-1.0, 6.0), goal_bias=0.1, log_interval=0)
        planner = _planner(block_manager, config)
        result = planner.plan(start_config, target_config, seed=4)
        assert result.success, result.message
        assert result.path[0] is start_config
        assert result.path[-1] is target_config
        assert planner.is_path_valid(result.path)

    def test_partial_path_when_unreachable(self, enclosed_manager, start_config, target_config):
        config = PlannerConfig(radius=1.0, max_spacing=0.1, max_iterations=50,
                               position_interval=(-1.0, 7.0), goal_bias=0.2, log_interval=0)
        planner = _planner(enclosed_manager, config)
        result = planner.plan(start_config, target_config, seed=2)
        assert not result.success
        assert result.n_iterations == 50
        assert len(result.path) >= 1
        assert result.path[0] is start_config
        assert result.path_length == pytest.approx(planner.path_length(result.path))
        # 部分路径终点不会比起点离目标更远
        d_end = planner.configuration_distance(result.path[-1], target_config)
        assert d_end <= planner.configuration_distance(start_config, target_config)

    def test_missing_budget_rejected(self, empty_manager, start_config, target_config):
        planner = _planner(empty_manager, PlannerConfig(position_interval=(-1.0, 6.0)))
        with pytest.raises(ValueError):
            planner.plan(start_config, target_config)

    def test_endpoint_collision(self, block_manager, planner_config, start_config):
        planner = _planner(block_manager, planner_config)
        result = planner.plan(start_config, Configuration([2.5, 2.5, 2.5]))
        assert not result.success
        assert result.path == []
        assert result.n_nodes == 0
