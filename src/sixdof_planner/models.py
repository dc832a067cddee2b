"""
sixdof_planner/models.py - 规划器数据模型

定义六自由度规划器使用的核心数据结构：Obstacle、PlannerNode、
PlannerConfig、PlannerResult。
"""

import json
import math
from pathlib import Path
from typing import List, Tuple, Dict, Optional, Any
from dataclasses import dataclass, field, fields as dc_fields
from datetime import datetime

import numpy as np

from .configuration import Configuration


@dataclass
class Obstacle:
    """AABB 障碍物

    在工作空间 (Cartesian) 中定义的轴对齐包围盒。

    Attributes:
        min_point: AABB 最小角点 [x, y, z]
        max_point: AABB 最大角点 [x, y, z]
        name: 障碍物名称（可选）
    """
    min_point: np.ndarray
    max_point: np.ndarray
    name: str = ""

    def __post_init__(self) -> None:
        self.min_point = np.asarray(self.min_point, dtype=np.float64)
        self.max_point = np.asarray(self.max_point, dtype=np.float64)
        if self.min_point.shape != (3,) or self.max_point.shape != (3,):
            raise ValueError("min_point 和 max_point 须为 3 维")
        if np.any(self.min_point > self.max_point):
            raise ValueError(
                f"min_point {self.min_point.tolist()} 大于 "
                f"max_point {self.max_point.tolist()}")

    @property
    def center(self) -> np.ndarray:
        """障碍物中心点"""
        return (self.min_point + self.max_point) / 2.0

    @property
    def size(self) -> np.ndarray:
        """各轴尺寸"""
        return self.max_point - self.min_point

    @property
    def volume(self) -> float:
        return float(np.prod(self.size))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'min': self.min_point.tolist(),
            'max': self.max_point.tolist(),
            'name': self.name,
        }

    def contains_point(self, point: np.ndarray) -> bool:
        """检查点是否在障碍物 AABB 内"""
        return bool(np.all(point >= self.min_point) and np.all(point <= self.max_point))


@dataclass
class PlannerNode:
    """RRT 树节点

    节点由所属树的 arena（只追加的列表）独占，node_id 即其在 arena
    中的下标；父节点引用与 VP-Tree 中的条目都是下标而非对象引用。

    Attributes:
        node_id: 节点在 arena 中的下标
        configuration: 节点位姿
        parent_id: 父节点下标（根节点为 None）
        radius: 扩展步长上限（位姿度量下）
        tree_id: 所属树的 ID
        n_trials: 作为最近节点被尝试扩展的次数
        n_successes: 扩展成功次数
    """
    node_id: int
    configuration: Configuration
    parent_id: Optional[int] = None
    radius: float = 1.0
    tree_id: int = -1
    n_trials: int = 0
    n_successes: int = 0

    def effective_radius(self, adaptive: bool = False) -> float:
        """扩展步长

        adaptive=True 时按扩展成功率缩放：
        radius · (n_successes + 1) / (n_trials + 1)
        """
        if not adaptive:
            return self.radius
        return self.radius * (self.n_successes + 1) / (self.n_trials + 1)


@dataclass
class PlannerConfig:
    """六自由度 RRT 规划器参数配置

    Attributes:
        radius: 新节点的扩展步长上限（位姿度量下）
        max_spacing: 线段碰撞检测的离散化间距
        max_iterations: 最大迭代次数，None 表示不限
            （max_iterations 与 timeout 至少设置一项，否则 plan 拒绝执行）
        timeout: 最大规划时间 (s)，None 表示不限
        position_interval: x, y, z 的采样区间
        angle_interval: 三个欧拉角的采样区间 (rad)
        rotation_radius: 度量中旋转项的尺度，None 时取移动物体的包围半径
        bisection_iterations: 步长截断的二分次数
        adaptive_radius: 是否按扩展成功率自适应缩放节点步长
        goal_bias: 单树 RRT 直接采样目标位姿的概率 [0, 1]
        optimize_path: 成功后是否做路径优化
        shortcut_iters: 随机 shortcut 最大迭代次数
        relax_attempts: 路径松弛轮数
        log_interval: 每隔多少次迭代输出一次进度日志
    """
    radius: float = 1.0
    max_spacing: float = 0.1
    max_iterations: Optional[int] = None
    timeout: Optional[float] = None
    position_interval: Tuple[float, float] = (-1.0, 1.0)
    angle_interval: Tuple[float, float] = (-math.pi, math.pi)
    rotation_radius: Optional[float] = None
    bisection_iterations: int = 32
    adaptive_radius: bool = False
    goal_bias: float = 0.0
    optimize_path: bool = False
    shortcut_iters: int = 100
    relax_attempts: int = 100
    log_interval: int = 1000

    def sampling_intervals(self) -> List[Tuple[float, float]]:
        """六个采样区间 (x, y, z, angle X, angle Y, angle Z)"""
        return [tuple(self.position_interval)] * 3 + [tuple(self.angle_interval)] * 3

    # ── JSON 序列化 ──

    def to_dict(self) -> Dict[str, Any]:
        """转为字典"""
        return {f.name: getattr(self, f.name) for f in dc_fields(self)}

    def to_json(self, filepath: str | Path) -> str:
        """保存到 JSON 文件

        Returns:
            保存的文件路径字符串
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
        return str(filepath)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlannerConfig':
        """从字典创建（忽略未知字段，缺失字段用默认值）"""
        valid_fields = {f.name for f in dc_fields(cls)}
        filtered = {k: v for k, v in data.items() if k in valid_fields}
        for key in ('position_interval', 'angle_interval'):
            if key in filtered:
                filtered[key] = tuple(filtered[key])
        return cls(**filtered)

    @classmethod
    def from_json(cls, filepath: str | Path) -> 'PlannerConfig':
        """从 JSON 文件加载"""
        filepath = Path(filepath)
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls.from_dict(data)


@dataclass
class PlannerResult:
    """路径规划结果

    Attributes:
        success: 是否成功找到路径
        path: 位姿序列 [start, ..., target]（失败时可能为部分路径或空）
        computation_time: 总计算时间 (s)
        path_length: 路径总长度（位姿度量下）
        n_iterations: 主循环迭代次数
        n_nodes: 所有树创建的节点总数
        n_collision_checks: 碰撞预言机查询次数
        n_nearest_queries: 最近邻查询次数
        n_distance_evals: 最近邻查询中的距离计算次数
        phase_times: 各阶段耗时 {phase: seconds}
        message: 描述信息
        timestamp: 时间戳
    """
    success: bool = False
    path: List[Configuration] = field(default_factory=list)
    computation_time: float = 0.0
    path_length: float = 0.0
    n_iterations: int = 0
    n_nodes: int = 0
    n_collision_checks: int = 0
    n_nearest_queries: int = 0
    n_distance_evals: int = 0
    phase_times: Dict[str, float] = field(default_factory=dict)
    message: str = ""
    timestamp: str = field(
        default_factory=lambda: datetime.now().strftime('%Y%m%d_%H%M%S'))

    @property
    def n_waypoints(self) -> int:
        return len(self.path)

    # ── 路径序列化 ─────────────────────────────────────────

    def save_path(self, filepath: str | Path, scene_json: str = "") -> str:
        """将规划路径保存为 JSON 文件

        Args:
            filepath: 输出 JSON 路径
            scene_json: 关联的场景 JSON 路径

        Returns:
            保存的文件路径字符串
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        data: Dict[str, Any] = {
            "scene_json": str(scene_json) if scene_json else "",
            "success": self.success,
            "path": [c.to_dict() for c in self.path],
            "n_waypoints": len(self.path),
            "path_length": self.path_length,
            "computation_time": self.computation_time,
            "n_iterations": self.n_iterations,
            "n_nodes": self.n_nodes,
            "n_collision_checks": self.n_collision_checks,
            "message": self.message,
            "timestamp": self.timestamp,
        }
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        return str(filepath)

    @staticmethod
    def load_path(filepath: str | Path) -> Dict[str, Any]:
        """从 JSON 文件加载规划路径

        Returns:
            字典，``path`` 字段已转换为 List[Configuration]，其余为元数据
        """
        filepath = Path(filepath)
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)

        data['path'] = [Configuration.from_dict(c) for c in data['path']]
        return data
