"""
sixdof_planner/obstacles.py - 障碍物与场景管理

管理工作空间中的静态 AABB 障碍物集合，提供场景配置、随机生成和序列化。
"""

import json
import logging
import math
from pathlib import Path
from typing import List, Dict, Any, Iterable, Optional

import numpy as np

from .models import Obstacle

logger = logging.getLogger(__name__)


class Scene:
    """工作空间场景管理

    管理一组 AABB 障碍物，提供添加、按名称批量移除和持久化功能。
    ``CollisionManager.from_scene`` 将其中每个障碍物注册为静态对象。

    Example:
        >>> scene = Scene()
        >>> scene.add_obstacle([0.5, -0.3, 0], [0.8, 0.3, 0.5], name="墙")
        >>> scene.add_obstacle([-0.5, -0.5, 0], [-0.2, 0.5, 0.4], name="柱")
        >>> manager = CollisionManager.from_scene(scene)
    """

    def __init__(self) -> None:
        self._obstacles: List[Obstacle] = []

    @property
    def n_obstacles(self) -> int:
        return len(self._obstacles)

    def __len__(self) -> int:
        return len(self._obstacles)

    def __iter__(self):
        return iter(self._obstacles)

    def add_obstacle(
        self,
        min_point: Any,
        max_point: Any,
        name: str = "",
    ) -> Obstacle:
        """添加一个 AABB 障碍物

        Args:
            min_point: AABB 最小角点 [x, y, z]
            max_point: AABB 最大角点 [x, y, z]
            name: 障碍物名称（为空时自动命名）

        Returns:
            创建的 Obstacle 实例
        """
        if not name:
            name = f"obstacle_{self.n_obstacles}"

        obs = Obstacle(min_point=min_point, max_point=max_point, name=name)
        self._obstacles.append(obs)
        logger.debug("添加障碍物 '%s': min=%s, max=%s", name,
                     obs.min_point.tolist(), obs.max_point.tolist())
        return obs

    def remove_obstacles(self, names: Iterable[str]) -> int:
        """移除名称在 names 中的障碍物，返回移除数量"""
        names = set(names)
        kept = [obs for obs in self._obstacles if obs.name not in names]
        n_removed = len(self._obstacles) - len(kept)
        self._obstacles = kept
        return n_removed

    def get_obstacles(self) -> List[Obstacle]:
        """获取所有障碍物"""
        return list(self._obstacles)

    def bounds(self) -> Optional[np.ndarray]:
        """所有障碍物的整体包围盒 (2, 3)；空场景返回 None"""
        if not self._obstacles:
            return None
        mins = np.min([o.min_point for o in self._obstacles], axis=0)
        maxs = np.max([o.max_point for o in self._obstacles], axis=0)
        return np.stack([mins, maxs])

    # ── 随机生成 ──

    @classmethod
    def random(
        cls,
        n_obstacles: int,
        rng: np.random.Generator,
        extent: float = 10.0,
        min_half_size: float = 0.2,
        max_half_size: float = 1.0,
    ) -> 'Scene':
        """在立方体 [-extent, extent]^3 内随机生成障碍物

        Args:
            n_obstacles: 障碍物数量
            rng: 随机数生成器
            extent: 障碍物中心的采样范围
            min_half_size: 最小半边长
            max_half_size: 最大半边长
        """
        scene = cls()
        for i in range(n_obstacles):
            center = rng.uniform(-extent, extent, size=3)
            hw = rng.uniform(min_half_size, max_half_size, size=3)
            scene.add_obstacle(center - hw, center + hw, name=f"obs_{i}")
        logger.info("随机生成场景: %d 个障碍物, extent=%.2f", n_obstacles, extent)
        return scene

    @classmethod
    def random_shell(
        cls,
        n_obstacles: int,
        rng: np.random.Generator,
        inner_radius: float = 2.0,
        outer_radius: float = 8.0,
        half_size: float = 0.8,
    ) -> 'Scene':
        """在球壳 inner_radius ≤ r ≤ outer_radius 内随机放置障碍物

        原点附近保持空旷，适合以原点为起点的演示。
        """
        scene = cls()
        for i in range(n_obstacles):
            r = rng.uniform(inner_radius, outer_radius)
            phi = rng.uniform(0, 2 * math.pi)
            costh = rng.uniform(-1, 1)
            sinth = math.sqrt(1 - costh ** 2)
            center = r * np.array([sinth * math.cos(phi), sinth * math.sin(phi), costh])
            hw = rng.uniform(0.3 * half_size, half_size, size=3)
            scene.add_obstacle(center - hw, center + hw, name=f"obs_{i}")
        return scene

    # ── 序列化 ──

    def to_dict_list(self) -> List[Dict[str, Any]]:
        """[{'min': [x,y,z], 'max': [x,y,z], 'name': str}, ...]"""
        return [obs.to_dict() for obs in self._obstacles]

    def to_json(self, filepath: str | Path) -> None:
        """保存场景到 JSON 文件"""
        data = {'obstacles': self.to_dict_list()}
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    @classmethod
    def from_json(cls, filepath: str | Path) -> 'Scene':
        """从 JSON 文件加载场景"""
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Scene':
        """从字典加载场景

        Args:
            data: {'obstacles': [{'min': [...], 'max': [...], 'name': ...}, ...]}
        """
        scene = cls()
        for item in data.get('obstacles', []):
            scene.add_obstacle(
                min_point=item['min'],
                max_point=item['max'],
                name=item.get('name', ''),
            )
        return scene

    def __repr__(self) -> str:
        return f"Scene(n_obstacles={self.n_obstacles})"
