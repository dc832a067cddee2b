"""test/test_obstacles.py - 场景管理测试"""
import numpy as np
import pytest

from sixdof_planner.obstacles import Scene


class TestScene:

    def test_add(self):
        scene = Scene()
        obs = scene.add_obstacle([0, 0, 0], [1, 2, 3], name="box")
        assert len(scene) == 1
        assert scene.n_obstacles == 1
        assert scene.get_obstacles()[0] is obs
        np.testing.assert_allclose(obs.center, [0.5, 1.0, 1.5])

    def test_auto_name(self):
        scene = Scene()
        a = scene.add_obstacle([0, 0, 0], [1, 1, 1])
        b = scene.add_obstacle([2, 2, 2], [3, 3, 3])
        assert a.name == "obstacle_0"
        assert b.name == "obstacle_1"

    def test_remove_obstacles(self):
        scene = Scene()
        scene.add_obstacle([0, 0, 0], [1, 1, 1], name="a")
        scene.add_obstacle([2, 2, 2], [3, 3, 3], name="b")
        scene.add_obstacle([4, 4, 4], [5, 5, 5], name="c")
        assert scene.remove_obstacles(["a", "c", "missing"]) == 2
        assert [o.name for o in scene] == ["b"]
        assert scene.remove_obstacles(["a"]) == 0
        assert len(scene) == 1

    def test_get_obstacles_is_copy(self):
        scene = Scene()
        scene.add_obstacle([0, 0, 0], [1, 1, 1])
        obstacles = scene.get_obstacles()
        obstacles.clear()
        assert len(scene) == 1

    def test_invalid_obstacle(self):
        scene = Scene()
        with pytest.raises(ValueError):
            scene.add_obstacle([1, 0, 0], [0, 1, 1])
        with pytest.raises(ValueError):
            scene.add_obstacle([0, 0], [1, 1])
        assert len(scene) == 0

    def test_bounds(self):
        scene = Scene()
        assert scene.bounds() is None
        scene.add_obstacle([0, 0, 0], [1, 1, 1])
        scene.add_obstacle([-2, 0.5, 3], [-1, 4, 5])
        np.testing.assert_allclose(scene.bounds(), [[-2, 0, 0], [1, 4, 5]])


class TestSceneSerialization:

    def test_json_round_trip(self, tmp_path, block_scene):
        block_scene.add_obstacle([-1, -1, -1], [-0.5, -0.5, -0.5])
        filepath = tmp_path / "scene.json"
        block_scene.to_json(filepath)

        loaded = Scene.from_json(filepath)
        assert len(loaded) == 2
        for a, b in zip(block_scene, loaded):
            assert a.name == b.name
            np.testing.assert_allclose(a.min_point, b.min_point)
            np.testing.assert_allclose(a.max_point, b.max_point)

    def test_from_dict(self):
        scene = Scene.from_dict({
            'obstacles': [
                {'min': [0, 0, 0], 'max': [1, 1, 1], 'name': 'wall'},
                {'min': [2, 2, 2], 'max': [3, 3, 3]},
            ]
        })
        assert [o.name for o in scene] == ["wall", "obstacle_1"]
        assert len(Scene.from_dict({})) == 0

    def test_to_dict_list(self, block_scene):
        items = block_scene.to_dict_list()
        assert items == [{'min': [1.5, 1.5, 1.5], 'max': [3.5, 3.5, 3.5], 'name': 'block'}]


class TestRandomScenes:

    def test_random(self, rng):
        scene = Scene.random(20, rng, extent=5.0, min_half_size=0.1, max_half_size=0.5)
        assert len(scene) == 20
        for obs in scene:
            assert np.all(np.abs(obs.center) <= 5.0 + 1e-12)
            assert np.all(obs.size >= 0.2 - 1e-12)
            assert np.all(obs.size <= 1.0 + 1e-12)

    def test_random_reproducible(self):
        a = Scene.random(5, np.random.default_rng(7))
        b = Scene.random(5, np.random.default_rng(7))
        for oa, ob in zip(a, b):
            np.testing.assert_array_equal(oa.min_point, ob.min_point)

    def test_random_shell_keeps_origin_clear(self, rng):
        scene = Scene.random_shell(30, rng, inner_radius=3.0, outer_radius=6.0, half_size=0.5)
        assert len(scene) == 30
        for obs in scene:
            r = float(np.linalg.norm(obs.center))
            assert 3.0 - 1e-9 <= r <= 6.0 + 1e-9
            assert not obs.contains_point(np.zeros(3))
