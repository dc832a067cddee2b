"""
sixdof_planner/planner_base.py - 六自由度规划器基类

两种 RRT 规划器共享的功能：
- 在六个采样区间 (x, y, z, angle X, angle Y, angle Z) 内均匀采样位姿
- 位姿度量（旋转尺度默认取移动物体的包围半径）
- 碰撞预言机适配：设置移动物体位姿后查询碰撞 / 距离
- 线段碰撞检测：递归二分，间距不超过 max_spacing 的子段直接接受
- 步长截断：二分搜索插值参数，使新位姿到源位姿的距离不超过上限
- 树扩展 try_connect：最近节点 → 截断 → 碰撞检测 → 新节点
- 路径优化：委托给 PathSmoother
"""

import logging
import math
import time
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .collision import CollisionManager, DynamicCollisionObject
from .configuration import Configuration, ConfigurationMetric
from .models import PlannerConfig, PlannerNode, PlannerResult
from .path_smoother import PathSmoother, compute_path_length
from .rrt_tree import RRTTree
from .utils.seed import make_rng
from .utils.timing import Timer

logger = logging.getLogger(__name__)


def validate_intervals(intervals: Sequence[Tuple[float, float]]) -> List[Tuple[float, float]]:
    """检查六个采样区间

    Raises:
        ValueError: 区间数量不为 6、含非有限值或 min > max
    """
    result = [(float(lo), float(hi)) for lo, hi in intervals]
    if len(result) != 6:
        raise ValueError(f"需要 6 个采样区间 (x, y, z, angle X, angle Y, angle Z)，实际 {len(result)} 个")
    for i, (lo, hi) in enumerate(result):
        if not (math.isfinite(lo) and math.isfinite(hi)):
            raise ValueError(f"区间 {i} 含非有限值: ({lo}, {hi})")
        if lo > hi:
            raise ValueError(f"区间 {i} 的 min > max: ({lo}, {hi})")
    return result


class SixDofPlannerBase:
    """六自由度规划器基类

    Args:
        collision_manager: 碰撞预言机
        mobile: 已注册到 collision_manager 的移动物体句柄
        config: 规划参数（默认 PlannerConfig()）
        intervals: 六个采样区间，缺省时由 config 的 position_interval /
            angle_interval 生成
        seed: 随机种子（None 时按时间生成）

    Raises:
        ValueError: 采样区间非法
    """

    def __init__(
        self,
        collision_manager: CollisionManager,
        mobile: DynamicCollisionObject,
        config: Optional[PlannerConfig] = None,
        intervals: Optional[Sequence[Tuple[float, float]]] = None,
        seed: Optional[int] = None,
    ) -> None:
        self.collision_manager = collision_manager
        self.mobile = mobile
        self.config = config or PlannerConfig()
        self.intervals = validate_intervals(
            intervals if intervals is not None else self.config.sampling_intervals())

        rotation_radius = self.config.rotation_radius
        if rotation_radius is None:
            rotation_radius = mobile.geometry.bounding_radius
        self.metric = ConfigurationMetric(rotation_radius)
        self.rng = make_rng(seed)

        self._lows = np.array([lo for lo, _ in self.intervals])
        self._highs = np.array([hi for _, hi in self.intervals])

    def reseed(self, seed: Optional[int]) -> None:
        self.rng = make_rng(seed)

    # ── 采样与度量 ──

    def random_configuration(self) -> Configuration:
        """在采样区间内均匀采样一个位姿"""
        dofs = self.rng.uniform(self._lows, self._highs)
        return Configuration.from_euler(dofs[:3], dofs[3:])

    def configuration_distance(self, c1: Configuration, c2: Configuration) -> float:
        return self.metric(c1, c2)

    # ── 碰撞检测 ──

    def check_config_collision(self, configuration: Configuration) -> bool:
        """单位姿碰撞检测

        Returns:
            True = 存在碰撞, False = 无碰撞
        """
        self.mobile.set_pose(configuration)
        return self.collision_manager.do_collide()

    def distance_to_obstacles(self, configuration: Configuration) -> float:
        """移动物体在该位姿下到静态障碍物的最小距离"""
        self.mobile.set_pose(configuration)
        return self.collision_manager.compute_distance()

    def check_segment_collision(
        self,
        start: Configuration,
        end: Configuration,
        max_spacing: float,
    ) -> bool:
        """线段碰撞检测

        若两端距离不超过 max_spacing 直接接受；否则检测中点，
        中点无碰撞时对两半递归。端点本身不在此检测。

        Args:
            start: 起点位姿
            end: 终点位姿
            max_spacing: 离散化间距（须 > 0）

        Returns:
            True = 存在碰撞, False = 无碰撞
        """
        if max_spacing <= 0.0:
            raise ValueError(f"max_spacing 须为正: {max_spacing}")
        return self._segment_collides(start, end, max_spacing)

    def _segment_collides(
        self, start: Configuration, end: Configuration, max_spacing: float,
    ) -> bool:
        if self.metric(start, end) <= max_spacing:
            return False
        middle = start.interpolate(end, 0.5)
        if self.check_config_collision(middle):
            return True
        return (self._segment_collides(start, middle, max_spacing)
                or self._segment_collides(middle, end, max_spacing))

    # ── 步长截断 ──

    def limit_distance(
        self,
        source: Configuration,
        target: Configuration,
        max_distance: float,
    ) -> Configuration:
        """沿 source → target 截取距 source 不超过 max_distance 的最远位姿

        target 本身足够近时原样返回；否则对插值参数二分
        bisection_iterations 次，返回满足约束的最大 t 对应的位姿。
        """
        if self.metric(source, target) <= max_distance:
            return target
        lo, hi = 0.0, 1.0
        for _ in range(self.config.bisection_iterations):
            middle = (lo + hi) * 0.5
            if self.metric(source, source.interpolate(target, middle)) <= max_distance:
                lo = middle
            else:
                hi = middle
        return source.interpolate(target, lo)

    # ── 路径后处理 ──

    def optimize(
        self,
        path: List[Configuration],
        max_spacing: Optional[float] = None,
    ) -> List[Configuration]:
        """路径优化：贪心 shortcut 后随机松弛

        输出首尾不变、路径点数不增加，且每条边通过线段碰撞检测。
        """
        if max_spacing is None:
            max_spacing = self.config.max_spacing
        smoother = PathSmoother(self, max_spacing, rng=self.rng)
        n_before = len(path)
        result = smoother.optimize(
            path,
            relax_attempts=self.config.relax_attempts,
            shortcut_iters=self.config.shortcut_iters,
        )
        logger.info("路径优化: %d → %d 个点, 长度 %.4f → %.4f",
                    n_before, len(result),
                    self.path_length(path), self.path_length(result))
        return result

    def path_length(self, path: List[Configuration]) -> float:
        return compute_path_length(path, self.metric)

    def is_path_valid(self, path: List[Configuration], max_spacing: Optional[float] = None) -> bool:
        """路径点与相邻边均无碰撞"""
        if max_spacing is None:
            max_spacing = self.config.max_spacing
        if any(self.check_config_collision(c) for c in path):
            return False
        return all(not self.check_segment_collision(path[i - 1], path[i], max_spacing)
                   for i in range(1, len(path)))

    # ── 树扩展 ──

    def try_connect(
        self,
        tree: RRTTree,
        random_config: Configuration,
        radius: float,
        max_spacing: float,
    ) -> Optional[PlannerNode]:
        """尝试向 random_config 扩展一步

        1. 查询最近节点并记一次尝试
        2. 将 random_config 截断到最近节点步长以内，得到候选位姿
        3. 候选位姿碰撞或边 nearest → 候选 不可行时放弃
        4. 否则记一次成功，以 radius 为步长创建子节点

        Returns:
            新节点，扩展失败时为 None
        """
        nearest, _ = tree.nearest(random_config)
        nearest.n_trials += 1
        step = nearest.effective_radius(self.config.adaptive_radius)
        candidate = self.limit_distance(nearest.configuration, random_config, step)

        if (self.check_config_collision(candidate)
                or self.check_segment_collision(nearest.configuration, candidate, max_spacing)):
            return None

        nearest.n_successes += 1
        node_id = tree.add_node(candidate, radius, parent_id=nearest.node_id)
        return tree[node_id]

    def _new_tree(self, tree_id: int) -> RRTTree:
        return RRTTree(tree_id, self.metric, rng=self.rng)

    def _check_endpoints(
        self,
        start: Configuration,
        target: Configuration,
        result: PlannerResult,
    ) -> bool:
        """始末位姿碰撞检测，失败时写入 result.message"""
        if self.check_config_collision(start):
            result.message = "起始位姿存在碰撞"
            logger.error(result.message)
            return False
        if self.check_config_collision(target):
            result.message = "目标位姿存在碰撞"
            logger.error(result.message)
            return False
        return True

    def _require_budget(self) -> None:
        if self.config.max_iterations is None and self.config.timeout is None:
            raise ValueError("规划需要迭代次数或时间预算: 请设置 max_iterations 或 timeout")

    def _budget_exhausted(self, iteration: int, t0: float) -> Optional[str]:
        """迭代次数或时间预算耗尽时返回描述，否则 None"""
        max_iterations = self.config.max_iterations
        if max_iterations is not None and iteration >= max_iterations:
            return f"达到最大迭代次数 {max_iterations}，未找到路径"
        timeout = self.config.timeout
        if timeout is not None and time.time() - t0 >= timeout:
            return f"超时 ({timeout:.2f}s)，未找到路径"
        return None

    def _log_progress(self, iteration: int, trees: Sequence[RRTTree]) -> None:
        n_nodes = sum(t.n_nodes for t in trees)
        n_queries = sum(t.stats.n_queries for t in trees)
        n_evals = sum(t.stats.n_distance_evals for t in trees)
        logger.info("迭代 %d: RRT 节点数 %d, 距离计算 %d, 平均每次查询 %.1f",
                    iteration, n_nodes, n_evals,
                    n_evals / n_queries if n_queries else 0.0)

    def _finish(
        self,
        result: PlannerResult,
        trees: Sequence[RRTTree],
        timer: Timer,
        t0: float,
        n_checks_before: int,
    ) -> PlannerResult:
        """填写统计字段，成功时按配置优化路径"""
        if result.success and self.config.optimize_path and len(result.path) > 2:
            with timer.phase('optimize'):
                result.path = self.optimize(result.path)

        result.path_length = self.path_length(result.path)
        result.n_nodes = sum(t.n_nodes for t in trees)
        result.n_nearest_queries = sum(t.stats.n_queries for t in trees)
        result.n_distance_evals = sum(t.stats.n_distance_evals for t in trees)
        result.n_collision_checks = self.collision_manager.n_collision_checks - n_checks_before
        result.phase_times = timer.to_dict()
        result.computation_time = time.time() - t0
        return result
