"""
sixdof_planner/path_smoother.py - 路径后处理

提供位姿路径的简化与优化：
1. 贪心 shortcut：若 path[i] → path[i+2] 无碰撞则删除 path[i+1]
2. 随机 shortcut：随机选两点尝试直连，若无碰撞则移除中间点
3. 随机松弛：把路径点沿其入边滑向前驱，只要两条相邻边都无碰撞
4. 等间距重采样

所有操作保持首尾位姿不变，且不增加路径点数（重采样除外）。
"""

import logging
from typing import Callable, List, Optional, Protocol

import numpy as np

from .configuration import Configuration

logger = logging.getLogger(__name__)


class SegmentChecker(Protocol):
    """PathSmoother 依赖的碰撞检测接口（SixDofPlannerBase 实现）"""

    def check_segment_collision(
        self, start: Configuration, end: Configuration, max_spacing: float,
    ) -> bool: ...

    def configuration_distance(self, c1: Configuration, c2: Configuration) -> float: ...


class PathSmoother:
    """路径后处理器

    Args:
        checker: 碰撞检测器（提供线段碰撞检测与位姿度量）
        max_spacing: 线段碰撞检测的离散化间距
        rng: 随机数生成器

    Example:
        >>> smoother = PathSmoother(planner, max_spacing=0.1)
        >>> short = smoother.optimize(path, relax_attempts=100)
        >>> dense = smoother.resample(short, resolution=0.2)
    """

    def __init__(
        self,
        checker: SegmentChecker,
        max_spacing: float = 0.1,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.checker = checker
        self.max_spacing = max_spacing
        self.rng = rng if rng is not None else np.random.default_rng()

    def _edge_free(self, a: Configuration, b: Configuration) -> bool:
        return not self.checker.check_segment_collision(a, b, self.max_spacing)

    def shortcut_greedy(self, path: List[Configuration]) -> List[Configuration]:
        """贪心 shortcut

        从头扫描，若 path[i] → path[i+2] 可直连则删除 path[i+1] 并在
        同一 i 上重试，否则前进。
        """
        path = list(path)
        n_before = len(path)
        i = 0
        while i + 2 < len(path):
            if self._edge_free(path[i], path[i + 2]):
                del path[i + 1]
            else:
                i += 1

        if len(path) < n_before:
            logger.debug("贪心 shortcut: 路径从 %d → %d 个点", n_before, len(path))
        return path

    def shortcut(
        self,
        path: List[Configuration],
        max_iters: int = 100,
    ) -> List[Configuration]:
        """随机 shortcut 优化

        反复随机选两个非相邻路径点，若它们之间的直线段无碰撞，
        则移除中间所有点。

        Args:
            path: 原始路径
            max_iters: 最大迭代次数

        Returns:
            优化后的路径
        """
        if len(path) <= 2:
            return list(path)

        path = list(path)
        n_before = len(path)
        improved = 0

        for _ in range(max_iters):
            if len(path) <= 2:
                break

            i = int(self.rng.integers(0, len(path) - 2))
            j = int(self.rng.integers(i + 2, len(path)))

            if self._edge_free(path[i], path[j]):
                path = path[:i + 1] + path[j:]
                improved += 1

        if improved > 0:
            logger.info("Shortcut 优化: 移除 %d 个中间段, 路径从 %d → %d 个点",
                        improved, n_before, len(path))
        return path

    def relax(
        self,
        path: List[Configuration],
        n_attempts: int = 100,
    ) -> List[Configuration]:
        """随机松弛

        每轮对每个中间点 path[i] 取 t ~ U(0, 1)，候选点为
        path[i-1] 到 path[i] 的插值；若 path[i-1] → 候选点 与
        候选点 → path[i+1] 均无碰撞则替换。

        沿插值路径两项距离均随 t 线性变化，所以替换不会增加路径长度。
        """
        if len(path) <= 2:
            return list(path)

        path = list(path)
        n_moved = 0
        for _ in range(n_attempts):
            for i in range(1, len(path) - 1):
                t = float(self.rng.uniform(0.0, 1.0))
                candidate = path[i - 1].interpolate(path[i], t)
                if (self._edge_free(candidate, path[i + 1])
                        and self._edge_free(path[i - 1], candidate)):
                    path[i] = candidate
                    n_moved += 1

        logger.debug("随机松弛: %d 轮, 移动 %d 次", n_attempts, n_moved)
        return path

    def optimize(
        self,
        path: List[Configuration],
        relax_attempts: int = 100,
        shortcut_iters: int = 0,
    ) -> List[Configuration]:
        """贪心 shortcut → (可选) 随机 shortcut → 随机松弛"""
        if len(path) <= 2:
            return list(path)
        path = self.shortcut_greedy(path)
        if shortcut_iters > 0:
            path = self.shortcut(path, max_iters=shortcut_iters)
        return self.relax(path, n_attempts=relax_attempts)

    def resample(
        self,
        path: List[Configuration],
        resolution: float = 0.1,
    ) -> List[Configuration]:
        """等间距重采样

        每段按位姿度量下的长度等分，使相邻点间距不超过 resolution。
        """
        if len(path) <= 1:
            return list(path)

        resampled = [path[0]]
        for i in range(1, len(path)):
            seg_len = self.checker.configuration_distance(path[i - 1], path[i])
            if seg_len < 1e-10:
                continue
            n_steps = max(1, int(np.ceil(seg_len / resolution)))
            for k in range(1, n_steps + 1):
                resampled.append(path[i - 1].interpolate(path[i], k / n_steps))

        return resampled


def compute_path_length(
    path: List[Configuration],
    metric: Callable[[Configuration, Configuration], float],
) -> float:
    """计算位姿度量下的路径总长度"""
    if len(path) < 2:
        return 0.0
    return sum(metric(path[i - 1], path[i]) for i in range(1, len(path)))
