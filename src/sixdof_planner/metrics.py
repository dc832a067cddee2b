"""
sixdof_planner/metrics.py - 路径质量评价指标

提供路径质量评估：
- 路径长度（位姿度量）与平移 / 旋转分量长度
- 效率指标（路径长度 / 起终点距离）
- 安全裕度（移动物体到障碍物的最小 / 平均距离）
- 计算统计（时间、碰撞检测次数、最近邻查询）
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

import numpy as np

from .configuration import Configuration, quaternion_angle
from .models import PlannerResult
from .planner_base import SixDofPlannerBase

logger = logging.getLogger(__name__)


@dataclass
class PathMetrics:
    """路径质量指标汇总

    Attributes:
        path_length: 位姿度量下的路径总长度
        translation_length: 平移分量总长度
        rotation_angle: 旋转分量总角度 (rad)
        direct_distance: 起终点距离
        length_ratio: 路径长度 / 起终点距离 (≥1.0, 越接近1越高效)
        min_clearance: 最小安全裕度
        avg_clearance: 平均安全裕度
        n_waypoints: 路径点数量
        computation_time: 规划计算时间 (s)
        n_collision_checks: 碰撞检测调用次数
        n_nodes: RRT 节点总数
        avg_distance_evals: 每次最近邻查询的平均距离计算次数
        phase_times: 各阶段耗时
    """
    path_length: float = 0.0
    translation_length: float = 0.0
    rotation_angle: float = 0.0
    direct_distance: float = 0.0
    length_ratio: float = float('inf')
    min_clearance: float = float('inf')
    avg_clearance: float = float('inf')
    n_waypoints: int = 0
    computation_time: float = 0.0
    n_collision_checks: int = 0
    n_nodes: int = 0
    avg_distance_evals: float = 0.0
    phase_times: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """转为字典"""
        return {
            'path_length': self.path_length,
            'translation_length': self.translation_length,
            'rotation_angle': self.rotation_angle,
            'direct_distance': self.direct_distance,
            'length_ratio': self.length_ratio,
            'min_clearance': self.min_clearance,
            'avg_clearance': self.avg_clearance,
            'n_waypoints': self.n_waypoints,
            'computation_time': self.computation_time,
            'n_collision_checks': self.n_collision_checks,
            'n_nodes': self.n_nodes,
            'avg_distance_evals': self.avg_distance_evals,
            'phase_times': dict(self.phase_times),
        }

    def summary(self) -> str:
        """返回可读的指标摘要"""
        lines = [
            "=" * 50,
            "路径质量指标",
            "=" * 50,
            f"路径长度:           {self.path_length:.4f}",
            f"平移长度:           {self.translation_length:.4f}",
            f"旋转角度:           {self.rotation_angle:.4f} rad",
            f"起终点距离:         {self.direct_distance:.4f}",
            f"路径效率 (比值):    {self.length_ratio:.4f}",
            f"最小安全裕度:       {self.min_clearance:.6f}",
            f"平均安全裕度:       {self.avg_clearance:.6f}",
            f"路径点数:           {self.n_waypoints}",
            f"计算时间:           {self.computation_time:.3f} s",
            f"碰撞检测次数:       {self.n_collision_checks}",
            f"RRT 节点数:         {self.n_nodes}",
            f"平均距离计算/查询:  {self.avg_distance_evals:.1f}",
            "=" * 50,
        ]
        return "\n".join(lines)


def compute_component_lengths(path: List[Configuration]) -> Tuple[float, float]:
    """平移分量长度与旋转分量角度之和"""
    translation = 0.0
    rotation = 0.0
    for i in range(1, len(path)):
        translation += float(np.linalg.norm(path[i].translation - path[i - 1].translation))
        rotation += quaternion_angle(path[i - 1].orientation, path[i].orientation)
    return translation, rotation


def compute_clearance(
    path: List[Configuration],
    planner: SixDofPlannerBase,
    n_samples_per_segment: int = 5,
) -> Tuple[float, float]:
    """沿路径采样计算安全裕度

    每段取 n_samples_per_segment 个等分插值点（含段首），再加终点。

    Returns:
        (min_clearance, avg_clearance)；无障碍物或空路径时为 (inf, inf)
    """
    if not path or planner.collision_manager.n_static == 0:
        return math.inf, math.inf

    clearances: List[float] = []
    for i in range(len(path) - 1):
        for t in np.linspace(0.0, 1.0, n_samples_per_segment, endpoint=False):
            c = path[i].interpolate(path[i + 1], float(t))
            clearances.append(planner.distance_to_obstacles(c))
    clearances.append(planner.distance_to_obstacles(path[-1]))

    return float(np.min(clearances)), float(np.mean(clearances))


def evaluate_result(
    result: PlannerResult,
    planner: SixDofPlannerBase,
    n_samples_per_segment: int = 5,
) -> PathMetrics:
    """评估规划结果的路径质量

    Args:
        result: 规划结果
        planner: 产生该结果的规划器（提供度量与碰撞预言机）
        n_samples_per_segment: 安全裕度每段采样数
    """
    path = result.path
    metrics = PathMetrics(
        n_waypoints=len(path),
        computation_time=result.computation_time,
        n_collision_checks=result.n_collision_checks,
        n_nodes=result.n_nodes,
        phase_times=dict(result.phase_times),
    )
    if result.n_nearest_queries > 0:
        metrics.avg_distance_evals = result.n_distance_evals / result.n_nearest_queries

    if not path:
        return metrics

    metrics.path_length = planner.path_length(path)
    metrics.translation_length, metrics.rotation_angle = compute_component_lengths(path)
    metrics.direct_distance = planner.configuration_distance(path[0], path[-1])
    if metrics.direct_distance > 1e-10:
        metrics.length_ratio = metrics.path_length / metrics.direct_distance
    metrics.min_clearance, metrics.avg_clearance = compute_clearance(
        path, planner, n_samples_per_segment)

    logger.debug("路径评估: 长度 %.4f, 最小裕度 %.4f",
                 metrics.path_length, metrics.min_clearance)
    return metrics
