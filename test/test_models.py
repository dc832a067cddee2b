"""test/test_models.py - 数据模型测试"""
import json
import math

import numpy as np
import pytest

from sixdof_planner.configuration import Configuration
from sixdof_planner.models import Obstacle, PlannerConfig, PlannerNode, PlannerResult


class TestObstacle:

    def test_properties(self):
        obs = Obstacle([0, 0, 0], [2, 1, 4], name="b")
        np.testing.assert_allclose(obs.center, [1, 0.5, 2])
        np.testing.assert_allclose(obs.size, [2, 1, 4])
        assert obs.volume == pytest.approx(8.0)
        assert obs.contains_point(np.array([1.0, 1.0, 4.0]))
        assert not obs.contains_point(np.array([1.0, 1.1, 0.0]))

    def test_degenerate_allowed(self):
        obs = Obstacle([0, 0, 0], [0, 1, 1])
        assert obs.volume == 0.0

    def test_to_dict(self):
        d = Obstacle([0, 0, 0], [1, 1, 1], name="x").to_dict()
        assert d == {'min': [0.0, 0.0, 0.0], 'max': [1.0, 1.0, 1.0], 'name': 'x'}


class TestPlannerNode:

    def test_effective_radius(self):
        node = PlannerNode(0, Configuration.identity(), radius=2.0)
        assert node.effective_radius() == 2.0
        assert node.effective_radius(adaptive=True) == 2.0
        node.n_trials = 3
        node.n_successes = 1
        assert node.effective_radius() == 2.0
        assert node.effective_radius(adaptive=True) == pytest.approx(1.0)

    def test_defaults(self):
        node = PlannerNode(5, Configuration.identity())
        assert node.parent_id is None
        assert node.tree_id == -1


class TestPlannerConfig:

    def test_defaults(self):
        cfg = PlannerConfig()
        assert cfg.radius == 1.0
        assert cfg.max_spacing == 0.1
        assert cfg.bisection_iterations == 32
        assert cfg.angle_interval == (-math.pi, math.pi)
        assert cfg.timeout is None
        assert cfg.max_iterations is None

    def test_sampling_intervals(self):
        cfg = PlannerConfig(position_interval=(-2.0, 3.0), angle_interval=(-1.0, 1.0))
        assert cfg.sampling_intervals() == [(-2.0, 3.0)] * 3 + [(-1.0, 1.0)] * 3

    def test_json_round_trip(self, tmp_path):
        cfg = PlannerConfig(radius=0.5, max_iterations=None, timeout=2.5,
                            position_interval=(-4.0, 4.0), adaptive_radius=True)
        filepath = tmp_path / "sub" / "config.json"
        saved = cfg.to_json(filepath)
        assert saved == str(filepath)
        loaded = PlannerConfig.from_json(filepath)
        assert loaded == cfg
        assert isinstance(loaded.position_interval, tuple)

    def test_from_dict_ignores_unknown(self):
        cfg = PlannerConfig.from_dict({'radius': 0.3, 'no_such_field': 1})
        assert cfg.radius == 0.3
        assert cfg.max_spacing == PlannerConfig().max_spacing


class TestPlannerResult:

    def test_defaults(self):
        result = PlannerResult()
        assert result.success is False
        assert result.path == []
        assert result.n_waypoints == 0
        assert result.phase_times == {}
        assert PlannerResult().path is not result.path

    def test_save_and_load_path(self, tmp_path):
        path = [
            Configuration.identity(),
            Configuration.from_euler([1, 2, 3], [0.1, 0.2, 0.3]),
        ]
        result = PlannerResult(success=True, path=path, path_length=3.7,
                               n_iterations=12, message="ok")
        filepath = tmp_path / "path.json"
        result.save_path(filepath, scene_json="scene.json")

        with open(filepath, encoding='utf-8') as f:
            raw = json.load(f)
        assert raw['n_waypoints'] == 2
        assert raw['scene_json'] == "scene.json"

        data = PlannerResult.load_path(filepath)
        assert data['success'] is True
        assert data['path_length'] == pytest.approx(3.7)
        assert len(data['path']) == 2
        for a, b in zip(path, data['path']):
            assert a.is_close(b, atol=1e-12)
