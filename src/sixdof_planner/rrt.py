"""
sixdof_planner/rrt.py - 单向 RRT 规划器

从起点生长一棵树；每次成功扩展后尝试把新节点直接连到目标。
预算耗尽时返回从起点到距目标最近节点的部分路径（success=False）。
"""

import logging
import time
from typing import List, Optional

from .configuration import Configuration
from .models import PlannerResult
from .planner_base import SixDofPlannerBase
from .rrt_tree import RRTTree
from .utils.timing import Timer

logger = logging.getLogger(__name__)


class SixDofRRT(SixDofPlannerBase):
    """六自由度单向 RRT 规划器

    config.goal_bias > 0 时以该概率直接把目标位姿作为采样点。
    """

    def _sample(self, target: Configuration) -> Configuration:
        goal_bias = self.config.goal_bias
        if goal_bias > 0.0 and self.rng.uniform() < goal_bias:
            return target
        return self.random_configuration()

    def plan(
        self,
        start: Configuration,
        target: Configuration,
        radius: Optional[float] = None,
        max_spacing: Optional[float] = None,
        seed: Optional[int] = None,
    ) -> PlannerResult:
        """执行单向 RRT 规划

        Args:
            start: 起始位姿
            target: 目标位姿
            radius: 新节点步长（默认 config.radius）
            max_spacing: 线段碰撞检测间距（默认 config.max_spacing）
            seed: 随机种子

        Returns:
            PlannerResult；失败时 path 为部分路径（始末点碰撞时为空）

        Raises:
            ValueError: 未设置 max_iterations 与 timeout 中的任何一项
        """
        t0 = time.time()
        self._require_budget()
        if seed is not None:
            self.reseed(seed)
        radius = self.config.radius if radius is None else radius
        max_spacing = self.config.max_spacing if max_spacing is None else max_spacing

        result = PlannerResult()
        timer = Timer()
        n_checks_before = self.collision_manager.n_collision_checks
        trees: List[RRTTree] = []

        with timer.phase('validate'):
            endpoints_ok = self._check_endpoints(start, target, result)
        if not endpoints_ok:
            return self._finish(result, trees, timer, t0, n_checks_before)

        logger.info("RRT 开始规划: radius=%.4f, max_spacing=%.4f, goal_bias=%.2f",
                    radius, max_spacing, self.config.goal_bias)

        tree = self._new_tree(0)
        trees = [tree]
        tree.add_node(start, radius)

        iteration = 0
        with timer.phase('grow'):
            while True:
                exhausted = self._budget_exhausted(iteration, t0)
                if exhausted is not None:
                    result.message = exhausted
                    logger.warning("%s (节点数 %d)，返回部分路径", exhausted, tree.n_nodes)
                    nearest, _ = tree.nearest(target)
                    partial = tree.path_to_root(nearest.node_id)
                    partial.reverse()
                    result.path = partial
                    break

                iteration += 1
                if self.config.log_interval > 0 and iteration % self.config.log_interval == 0:
                    self._log_progress(iteration, trees)

                new_node = self.try_connect(tree, self._sample(target), radius, max_spacing)
                if new_node is None:
                    continue

                if not self.check_segment_collision(new_node.configuration, target, max_spacing):
                    path = tree.path_to_root(new_node.node_id)
                    path.reverse()
                    if not new_node.configuration.is_close(target):
                        path.append(target)
                    result.path = path
                    result.success = True
                    result.message = f"RRT 找到路径: {len(path)} 个路径点, {iteration} 次迭代"
                    logger.info(result.message)
                    break

        result.n_iterations = iteration
        return self._finish(result, trees, timer, t0, n_checks_before)
