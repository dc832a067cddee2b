"""
sixdof_planner/vp_tree.py - Vantage-point 树（度量空间最近邻索引）

通用的可增量构建 VP-Tree，只依赖注入的距离函数：
- ``distance(data, data)``：数据元素之间的距离（插入/切分时使用）
- ``search_distance(data, query)``：数据元素与查询键之间的距离（查询时使用）

结构：
- 叶节点：centroid + 至多 BUCKET_SIZE 个元素的 bucket
- 内部节点：centroid + limit + 左右子节点
  （左子树 d(centroid, x) ≤ limit，右子树 d(centroid, x) ≥ limit）
- radius：centroid 到子树中任意元素的最大距离

bucket 满时切分，之后节点永久为内部节点。元素数相对上次重建翻倍时，
收集全部元素并以随机顺序重新插入（reorganize），保持期望查询深度为
对数级。

查询使用分支定界：若 d(centroid, q) > radius + 当前最优距离，整棵
子树被剪枝；内部节点先搜索 q 所在一侧，仅在超平面测试允许时搜索另一侧。

使用方式：
    tree = VPTree(distance=metric)
    for x in data:
        tree.add(x)
    nearest = tree.nearest_neighbour(q)
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Generic, List, Optional, Tuple, TypeVar

import numpy as np

logger = logging.getLogger(__name__)

T = TypeVar('T')
Q = TypeVar('Q')

BUCKET_SIZE = 16


@dataclass
class SearchStats:
    """查询统计（显式传入查询，替代全局计数器）

    Attributes:
        n_queries: 最近邻查询次数
        n_distance_evals: 查询过程中的距离计算次数
    """
    n_queries: int = 0
    n_distance_evals: int = 0

    @property
    def avg_distance_evals(self) -> float:
        if self.n_queries == 0:
            return 0.0
        return self.n_distance_evals / self.n_queries

    def merge(self, other: 'SearchStats') -> None:
        self.n_queries += other.n_queries
        self.n_distance_evals += other.n_distance_evals


# ─────────────────────────────────────────────────────
#  节点
# ─────────────────────────────────────────────────────

@dataclass
class VPTreeNode(Generic[T]):
    """VP-Tree 节点

    Attributes:
        centroid: 中心元素（本身也是树中存储的数据）
        bucket: 叶节点中存储的其它元素
        radius: centroid 到子树中所有插入元素的最大距离
        limit: 划分左右子树的距离阈值
        left: 左子节点 (d(centroid, x) ≤ limit)
        right: 右子节点 (d(centroid, x) ≥ limit)
    """
    centroid: T
    bucket: List[T] = field(default_factory=list, repr=False)
    radius: float = 0.0
    limit: float = math.inf
    left: Optional['VPTreeNode[T]'] = field(default=None, repr=False)
    right: Optional['VPTreeNode[T]'] = field(default=None, repr=False)

    def is_leaf(self) -> bool:
        return self.left is None and self.right is None


# ─────────────────────────────────────────────────────
#  树
# ─────────────────────────────────────────────────────

class VPTree(Generic[T, Q]):
    """Vantage-point 树

    树拥有全部节点，禁止复制（copy / deepcopy 抛 TypeError）。

    Args:
        distance: 数据元素之间的距离函数
        search_distance: 数据元素到查询键的距离函数（默认同 distance）
        rng: 重建时打乱插入顺序的随机数生成器
        bucket_size: 叶节点 bucket 容量（须为 ≥ 4 的偶数）

    Example:
        >>> tree = VPTree(distance=lambda a, b: abs(a - b))
        >>> for v in [3.0, 1.0, 7.0]:
        ...     tree.add(v)
        >>> tree.nearest_neighbour(6.2)
        7.0
    """

    def __init__(
        self,
        distance: Callable[[T, T], float],
        search_distance: Optional[Callable[[T, Q], float]] = None,
        rng: Optional[np.random.Generator] = None,
        bucket_size: int = BUCKET_SIZE,
    ) -> None:
        if bucket_size < 4 or bucket_size % 2 != 0:
            raise ValueError(f"bucket_size 须为 >= 4 的偶数: {bucket_size}")
        self._distance = distance
        self._search_distance = search_distance if search_distance is not None else distance
        self._rng = rng if rng is not None else np.random.default_rng()
        self.bucket_size = bucket_size
        self.root: Optional[VPTreeNode[T]] = None
        self._n_data = 0
        self._reorganize_at = 2 * bucket_size
        self.n_reorganizations = 0

    def __len__(self) -> int:
        return self._n_data

    def __copy__(self):
        raise TypeError("VPTree 不可复制")

    def __deepcopy__(self, memo):
        raise TypeError("VPTree 不可复制")

    # ──────────────────────────────────────────────
    #  插入
    # ──────────────────────────────────────────────

    def add(self, value: T) -> None:
        """插入元素

        元素数达到上次重建时的两倍后，先重建再插入。
        """
        if self._n_data >= self._reorganize_at:
            self._reorganize_at = 2 * self._n_data
            self.reorganize()
        self._insert(value)
        self._n_data += 1

    def _insert(self, value: T) -> None:
        if self.root is None:
            self.root = VPTreeNode(centroid=value)
        else:
            self._add(self.root, value)

    def _add(self, node: VPTreeNode[T], value: T) -> None:
        """沿路由规则下行到叶节点并放入 bucket"""
        while True:
            d = self._distance(node.centroid, value)
            if d > node.radius:
                node.radius = d
            if node.is_leaf():
                break
            node = node.left if d <= node.limit else node.right

        node.bucket.append(value)
        if len(node.bucket) >= self.bucket_size:
            self._split(node)

    def _split(self, node: VPTreeNode[T]) -> None:
        """将满 bucket 的叶节点分裂为内部节点

        按到 centroid 的距离排序，limit 取排序后第 bucket_size/2 - 1 个
        元素的距离；最近元素作左子节点 centroid，最远元素作右子节点
        centroid，其余元素按路由规则插入子节点。
        """
        dists = [self._distance(node.centroid, v) for v in node.bucket]
        order = sorted(range(len(node.bucket)), key=dists.__getitem__)

        node.limit = dists[order[self.bucket_size // 2 - 1]]
        node.left = VPTreeNode(centroid=node.bucket[order[0]])
        node.right = VPTreeNode(centroid=node.bucket[order[-1]])

        for i in order[1:-1]:
            child = node.left if dists[i] <= node.limit else node.right
            self._add(child, node.bucket[i])
        node.bucket = []

    # ──────────────────────────────────────────────
    #  重建
    # ──────────────────────────────────────────────

    def collect(self) -> List[T]:
        """收集树中全部元素（centroid + bucket）"""
        result: List[T] = []
        if self.root is None:
            return result
        stack = [self.root]
        while stack:
            node = stack.pop()
            result.append(node.centroid)
            result.extend(node.bucket)
            if node.right is not None:
                stack.append(node.right)
            if node.left is not None:
                stack.append(node.left)
        return result

    def reorganize(self) -> None:
        """扁平化后以随机顺序重新插入全部元素"""
        if self.root is None:
            return
        collected = self.collect()
        logger.debug("VPTree 重建: %d 个元素", len(collected))
        self.root = None
        for i in self._rng.permutation(len(collected)):
            self._insert(collected[i])
        self.n_reorganizations += 1

    # ──────────────────────────────────────────────
    #  查询
    # ──────────────────────────────────────────────

    def nearest_neighbour(self, query: Q, stats: Optional[SearchStats] = None) -> T:
        """返回距 query 最近的元素

        Raises:
            LookupError: 树为空
        """
        return self.query(query, stats)[0]

    def query(self, query: Q, stats: Optional[SearchStats] = None) -> Tuple[T, float]:
        """最近邻查询，返回 (元素, 距离)

        Args:
            query: 查询键
            stats: 可选的统计对象，累加查询次数与距离计算次数

        Raises:
            LookupError: 树为空
        """
        if self.root is None:
            raise LookupError("VPTree 为空，无法查询最近邻")
        if stats is None:
            stats = SearchStats()
        stats.n_queries += 1
        best, best_d = self._search(self.root, query, stats)
        return best, best_d

    def _search(
        self,
        root: VPTreeNode[T],
        query: Q,
        stats: SearchStats,
    ) -> Tuple[Optional[T], float]:
        """显式栈实现的分支限界搜索

        栈帧 (node, d_c)：d_c 为 None 表示待访问的节点；否则表示 node 的
        近侧子树已搜索完毕，出栈时以当前 best_d 重新做超平面测试，
        决定是否进入远侧子树。
        """
        best: Optional[T] = None
        best_d = math.inf
        stack: List[Tuple[VPTreeNode[T], Optional[float]]] = [(root, None)]

        while stack:
            node, d_c = stack.pop()

            if d_c is not None:
                if d_c <= node.limit:
                    if d_c + best_d > node.limit:
                        stack.append((node.right, None))
                elif d_c - best_d <= node.limit:
                    stack.append((node.left, None))
                continue

            d_c = self._search_distance(node.centroid, query)
            stats.n_distance_evals += 1

            # 整棵子树都不可能更近
            if d_c > node.radius + best_d:
                continue
            if d_c < best_d:
                best, best_d = node.centroid, d_c
                if best_d == 0.0:
                    break

            if node.is_leaf():
                for v in node.bucket:
                    d = self._search_distance(v, query)
                    stats.n_distance_evals += 1
                    if d < best_d:
                        best, best_d = v, d
                        if best_d == 0.0:
                            break
                if best_d == 0.0:
                    break
                continue

            stack.append((node, d_c))
            stack.append((node.left if d_c <= node.limit else node.right, None))

        return best, best_d

    # ──────────────────────────────────────────────
    #  统计
    # ──────────────────────────────────────────────

    def get_stats(self) -> dict:
        """返回树的统计信息"""
        n_nodes = 0
        n_leaves = 0
        depths: List[int] = []

        if self.root is not None:
            stack = [(self.root, 0)]
            while stack:
                node, depth = stack.pop()
                n_nodes += 1
                if node.is_leaf():
                    n_leaves += 1
                    depths.append(depth)
                else:
                    stack.append((node.left, depth + 1))
                    stack.append((node.right, depth + 1))

        return {
            'n_data': self._n_data,
            'n_nodes': n_nodes,
            'n_leaves': n_leaves,
            'max_depth': max(depths) if depths else 0,
            'avg_depth': float(np.mean(depths)) if depths else 0.0,
            'n_reorganizations': self.n_reorganizations,
        }
