"""
sixdof_planner/birrt.py - 双向 RRT 规划器

从起点与目标各生长一棵 RRT 树，每次迭代：
1. 采样两个独立的随机位姿
2. 起点树向第一个扩展，目标树向第二个扩展
3. 对新生长出的节点，在另一棵树中找最近节点并尝试直连；
   直连可行即找到路径

路径重建：起点侧连接节点沿父链走到根后反转，再接上目标侧连接
节点沿父链走到根，得到 start → target 的位姿序列。
"""

import logging
import time
from typing import List, Optional

from .configuration import Configuration
from .models import PlannerNode, PlannerResult
from .planner_base import SixDofPlannerBase
from .rrt_tree import RRTTree
from .utils.timing import Timer

logger = logging.getLogger(__name__)

START_TREE_ID = 0
TARGET_TREE_ID = 1


class SixDofBiRRT(SixDofPlannerBase):
    """六自由度双向 RRT 规划器

    Example:
        >>> manager = CollisionManager.from_scene(scene)
        >>> mobile = manager.register_dynamic_object(BoxGeometry([0.2, 0.1, 0.1]))
        >>> planner = SixDofBiRRT(manager, mobile, PlannerConfig(position_interval=(-10, 10)))
        >>> result = planner.plan(start, target, seed=42)
        >>> if result.success:
        ...     print(f"路径点数: {len(result.path)}")
    """

    def plan(
        self,
        start: Configuration,
        target: Configuration,
        radius: Optional[float] = None,
        max_spacing: Optional[float] = None,
        seed: Optional[int] = None,
    ) -> PlannerResult:
        """执行双向 RRT 规划

        Args:
            start: 起始位姿
            target: 目标位姿
            radius: 新节点步长（默认 config.radius）
            max_spacing: 线段碰撞检测间距（默认 config.max_spacing）
            seed: 随机种子（给定时重置随机数生成器）

        Returns:
            PlannerResult；始末位姿碰撞或预算耗尽时 success=False

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

        # ---- Step 0: 验证始末点 ----
        with timer.phase('validate'):
            endpoints_ok = self._check_endpoints(start, target, result)
        if not endpoints_ok:
            return self._finish(result, trees, timer, t0, n_checks_before)

        logger.info("BiRRT 开始规划: radius=%.4f, max_spacing=%.4f, %s",
                    radius, max_spacing, self.metric)

        # ---- Step 1: 两棵树 ----
        start_tree = self._new_tree(START_TREE_ID)
        target_tree = self._new_tree(TARGET_TREE_ID)
        trees = [start_tree, target_tree]
        start_tree.add_node(start, radius)
        target_tree.add_node(target, radius)

        # ---- Step 2: 主循环 ----
        iteration = 0
        with timer.phase('grow'):
            while True:
                exhausted = self._budget_exhausted(iteration, t0)
                if exhausted is not None:
                    result.message = exhausted
                    logger.warning("%s (节点数 %d)", exhausted,
                                   start_tree.n_nodes + target_tree.n_nodes)
                    break

                iteration += 1
                if self.config.log_interval > 0 and iteration % self.config.log_interval == 0:
                    self._log_progress(iteration, trees)

                random1 = self.random_configuration()
                random2 = self.random_configuration()

                start_new = self.try_connect(start_tree, random1, radius, max_spacing)
                target_new = self.try_connect(target_tree, random2, radius, max_spacing)

                if start_new is not None:
                    bridge = self._find_bridge(start_new, target_tree, max_spacing)
                    if bridge is not None:
                        result.path = self.compute_plan(start_tree, start_new.node_id,
                                                        target_tree, bridge.node_id)
                        break
                if target_new is not None:
                    bridge = self._find_bridge(target_new, start_tree, max_spacing)
                    if bridge is not None:
                        result.path = self.compute_plan(start_tree, bridge.node_id,
                                                        target_tree, target_new.node_id)
                        break

        result.n_iterations = iteration
        if result.path:
            result.success = True
            result.message = f"BiRRT 找到路径: {len(result.path)} 个路径点, {iteration} 次迭代"
            logger.info(result.message)

        return self._finish(result, trees, timer, t0, n_checks_before)

    def _find_bridge(
        self,
        node: PlannerNode,
        other: RRTTree,
        max_spacing: float,
    ) -> Optional[PlannerNode]:
        """另一棵树中距 node 最近的节点，若两者可直连则返回它"""
        nearest, _ = other.nearest(node.configuration)
        if self.check_segment_collision(node.configuration, nearest.configuration, max_spacing):
            return None
        return nearest

    @staticmethod
    def compute_plan(
        start_tree: RRTTree,
        start_node_id: int,
        target_tree: RRTTree,
        target_node_id: int,
    ) -> List[Configuration]:
        """由两侧连接节点重建 start → target 路径"""
        path = start_tree.path_to_root(start_node_id)
        path.reverse()
        path.extend(target_tree.path_to_root(target_node_id))
        return path
