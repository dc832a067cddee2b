"""
sixdof_planner/rrt_tree.py - RRT 树（arena + VP-Tree）

一棵 RRT 树由两部分组成：
- arena：只追加的 PlannerNode 列表，节点下标即 node_id
- VP-Tree：以 node_id 为元素的最近邻索引，距离经 arena 解引用后
  用位姿度量计算

父节点引用同样是下标，因此 arena 是节点的唯一拥有者。节点从不删除，
下标在树的生命周期内始终有效。
"""

import logging
from typing import Callable, List, Optional, Tuple

import numpy as np

from .configuration import Configuration
from .models import PlannerNode
from .vp_tree import VPTree, SearchStats

logger = logging.getLogger(__name__)


class RRTTree:
    """单棵 RRT 树

    Args:
        tree_id: 树 ID（日志与结果统计用）
        metric: 位姿度量 d(c1, c2)
        rng: VP-Tree 重建时使用的随机数生成器

    Example:
        >>> tree = RRTTree(0, metric, rng)
        >>> root = tree.add_node(start, radius=1.0)
        >>> child = tree.add_node(c, radius=1.0, parent_id=root)
        >>> tree.path_to_root(child)
        [c, start]
    """

    def __init__(
        self,
        tree_id: int,
        metric: Callable[[Configuration, Configuration], float],
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.tree_id = tree_id
        self.metric = metric
        self.nodes: List[PlannerNode] = []
        self.stats = SearchStats()
        self.index: VPTree[int, Configuration] = VPTree(
            distance=self._node_distance,
            search_distance=self._query_distance,
            rng=rng,
        )

    def _node_distance(self, a: int, b: int) -> float:
        return self.metric(self.nodes[a].configuration, self.nodes[b].configuration)

    def _query_distance(self, a: int, query: Configuration) -> float:
        return self.metric(self.nodes[a].configuration, query)

    @property
    def n_nodes(self) -> int:
        return len(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def __getitem__(self, node_id: int) -> PlannerNode:
        return self.nodes[node_id]

    @property
    def root(self) -> PlannerNode:
        return self.nodes[0]

    def add_node(
        self,
        configuration: Configuration,
        radius: float,
        parent_id: Optional[int] = None,
    ) -> int:
        """追加节点到 arena 并登记到 VP-Tree

        Returns:
            新节点的 node_id
        """
        if parent_id is not None and not 0 <= parent_id < len(self.nodes):
            raise ValueError(f"父节点 {parent_id} 不在树 {self.tree_id} 中")
        node_id = len(self.nodes)
        self.nodes.append(PlannerNode(
            node_id=node_id,
            configuration=configuration,
            parent_id=parent_id,
            radius=radius,
            tree_id=self.tree_id,
        ))
        self.index.add(node_id)
        logger.debug("树 %d: 添加节点 %d (父=%s)", self.tree_id, node_id, parent_id)
        return node_id

    def nearest(self, configuration: Configuration) -> Tuple[PlannerNode, float]:
        """最近节点及其距离（查询统计累加到 self.stats）"""
        node_id, dist = self.index.query(configuration, self.stats)
        return self.nodes[node_id], dist

    def path_to_root(self, node_id: int) -> List[Configuration]:
        """从 node_id 沿父链走到根，返回位姿序列 [node, ..., root]"""
        path: List[Configuration] = []
        current: Optional[int] = node_id
        while current is not None:
            node = self.nodes[current]
            path.append(node.configuration)
            current = node.parent_id
        return path

    def total_trials(self) -> int:
        return sum(n.n_trials for n in self.nodes)

    def __repr__(self) -> str:
        return f"RRTTree(id={self.tree_id}, n_nodes={self.n_nodes})"
