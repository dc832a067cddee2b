"""
sixdof_planner - 六自由度刚体 RRT 路径规划

在 3D 平移 + 单位四元数朝向构成的位姿空间中，为一个移动刚体规划
无碰撞路径。

核心思路：
1. 在六个采样区间内均匀采样随机位姿
2. 用 VP-Tree 查询树中距采样点最近的节点
3. 沿插值路径把采样点截断到步长以内，检测点与线段碰撞
4. 起点树与目标树交替生长，新节点尝试与另一棵树直连
5. 连通后沿父链重建路径，可选 shortcut / 松弛优化

碰撞检测通过 CollisionManager（python-fcl 后端）完成，规划器只依赖
其设置位姿与查询碰撞的接口。
"""

from .configuration import (
    Configuration,
    ConfigurationMetric,
    euler_to_quaternion,
    quaternion_angle,
    quaternion_slerp,
)
from .vp_tree import VPTree, VPTreeNode, SearchStats, BUCKET_SIZE
from .models import (
    Obstacle,
    PlannerNode,
    PlannerConfig,
    PlannerResult,
)
from .obstacles import Scene
from .collision import (
    BoxGeometry,
    CollisionManager,
    CollisionObject,
    StaticCollisionObject,
    DynamicCollisionObject,
)
from .rrt_tree import RRTTree
from .planner_base import SixDofPlannerBase, validate_intervals
from .birrt import SixDofBiRRT
from .rrt import SixDofRRT
from .path_smoother import PathSmoother, compute_path_length
from .metrics import PathMetrics, evaluate_result

__version__ = "0.1.0"

__all__ = [
    # 位姿与度量
    'Configuration',
    'ConfigurationMetric',
    'euler_to_quaternion',
    'quaternion_angle',
    'quaternion_slerp',
    # 最近邻索引
    'VPTree',
    'VPTreeNode',
    'SearchStats',
    'BUCKET_SIZE',
    # 碰撞
    'BoxGeometry',
    'CollisionManager',
    'CollisionObject',
    'StaticCollisionObject',
    'DynamicCollisionObject',
    # 数据模型与场景
    'Obstacle',
    'PlannerNode',
    'PlannerConfig',
    'PlannerResult',
    'Scene',
    # 规划器
    'RRTTree',
    'SixDofPlannerBase',
    'validate_intervals',
    'SixDofBiRRT',
    'SixDofRRT',
    'PathSmoother',
    'compute_path_length',
    # 评价指标
    'PathMetrics',
    'evaluate_result',
]
