"""
sixdof_planner/configuration.py - 六自由度位姿与度量

定义规划器搜索空间中的位姿 (Configuration)：
- 平移：3D 向量
- 朝向：单位四元数，scalar-last 顺序 (x, y, z, w)，与 scipy 一致

以及位姿插值 (lerp + slerp) 和位姿空间度量 ConfigurationMetric。

度量定义::

    d(c1, c2) = max(‖t1 - t2‖, rotation_radius · θ(q1, q2))

θ 为两朝向之间的测地旋转角 (∈ [0, π])，rotation_radius 为移动物体
顶点到其原点的最大距离，因此旋转项是物体上任意点在旋转中经过的
弧长上界。两项均为度量，取 max 后仍满足三角不等式（VP-Tree 剪枝依赖
这一点）；沿 lerp/slerp 插值路径两项均随 t 线性增长，因此到起点的
距离单调（步长截断的二分搜索依赖这一点）。
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Sequence

import numpy as np
from scipy.spatial.transform import Rotation


IDENTITY_QUATERNION = np.array([0.0, 0.0, 0.0, 1.0])


# ─────────────────────────────────────────────────────
#  四元数工具
# ─────────────────────────────────────────────────────

def euler_to_quaternion(euler_angles: Sequence[float]) -> np.ndarray:
    """欧拉角 → 四元数

    依次绕 X、Y、Z 轴旋转，按四元数连乘 q = qX · qY · qZ 组合
    （即 scipy 的内旋 ``'XYZ'``）。

    Args:
        euler_angles: (angle_x, angle_y, angle_z)，单位 rad

    Returns:
        单位四元数 (x, y, z, w)
    """
    ax, ay, az = np.asarray(euler_angles, dtype=np.float64).reshape(3)
    qx = Rotation.from_rotvec([ax, 0.0, 0.0]).as_quat()
    qy = Rotation.from_rotvec([0.0, ay, 0.0]).as_quat()
    qz = Rotation.from_rotvec([0.0, 0.0, az]).as_quat()
    return quaternion_multiply(quaternion_multiply(qx, qy), qz)


def quaternion_multiply(q1: np.ndarray, q2: np.ndarray) -> np.ndarray:
    """Hamilton 乘积 q1 · q2（scalar-last）"""
    x1, y1, z1, w1 = q1
    x2, y2, z2, w2 = q2
    return np.array([
        w1 * x2 + x1 * w2 + y1 * z2 - z1 * y2,
        w1 * y2 - x1 * z2 + y1 * w2 + z1 * x2,
        w1 * z2 + x1 * y2 - y1 * x2 + z1 * w2,
        w1 * w2 - x1 * x2 - y1 * y2 - z1 * z2,
    ])


def quaternion_slerp(q0: np.ndarray, q1: np.ndarray, t: float) -> np.ndarray:
    """球面线性插值（走最短弧）

    t=0 精确返回 q0；t=1 返回与 q1 表示同一旋转的四元数（可能反号）。
    """
    if t <= 0.0:
        return q0.copy()
    dot = float(np.dot(q0, q1))
    if dot < 0.0:
        q1 = -q1
        dot = -dot
    if t >= 1.0:
        return q1.copy()
    if dot > 0.9995:
        # 夹角过小，退化为归一化线性插值
        q = q0 + t * (q1 - q0)
        return q / np.linalg.norm(q)
    theta_0 = math.acos(dot)
    sin_theta_0 = math.sin(theta_0)
    theta = theta_0 * t
    s0 = math.sin(theta_0 - theta) / sin_theta_0
    s1 = math.sin(theta) / sin_theta_0
    q = s0 * q0 + s1 * q1
    return q / np.linalg.norm(q)


def quaternion_angle(q0: np.ndarray, q1: np.ndarray) -> float:
    """两个朝向之间的测地旋转角 θ ∈ [0, π]

    用 4·atan2(‖q0 - q1‖, ‖q0 + q1‖)（q1 先与 q0 同号），
    相同输入精确返回 0，且对参数交换精确对称。
    """
    if float(np.dot(q0, q1)) < 0.0:
        q1 = -q1
    return 4.0 * math.atan2(float(np.linalg.norm(q0 - q1)),
                            float(np.linalg.norm(q0 + q1)))


# ─────────────────────────────────────────────────────
#  位姿
# ─────────────────────────────────────────────────────

@dataclass(frozen=True, eq=False)
class Configuration:
    """六自由度位姿（不可变值类型）

    Attributes:
        translation: 平移 [x, y, z]
        orientation: 单位四元数 (x, y, z, w)，构造时自动归一化
    """
    translation: np.ndarray
    orientation: np.ndarray = field(default_factory=lambda: IDENTITY_QUATERNION.copy())

    def __post_init__(self) -> None:
        t = np.array(self.translation, dtype=np.float64).reshape(3)
        q = np.array(self.orientation, dtype=np.float64).reshape(4)
        norm = float(np.linalg.norm(q))
        if not np.isfinite(norm) or norm < 1e-12:
            raise ValueError(f"非法四元数: {q.tolist()}")
        q = q / norm
        t.setflags(write=False)
        q.setflags(write=False)
        object.__setattr__(self, 'translation', t)
        object.__setattr__(self, 'orientation', q)

    @classmethod
    def identity(cls) -> 'Configuration':
        return cls(np.zeros(3), IDENTITY_QUATERNION)

    @classmethod
    def from_euler(
        cls,
        translation: Sequence[float],
        euler_angles: Sequence[float],
    ) -> 'Configuration':
        """由平移 + 欧拉角 (X, Y, Z 顺序) 构造"""
        return cls(translation, euler_to_quaternion(euler_angles))

    def interpolate(self, other: 'Configuration', t: float) -> 'Configuration':
        """在本位姿与 other 之间插值

        平移线性插值，朝向球面线性插值。t=0 返回自身，t=1 返回 other。

        Args:
            other: 目标位姿
            t: 插值参数 [0, 1]
        """
        if t <= 0.0:
            return self
        if t >= 1.0:
            return other
        translation = self.translation + t * (other.translation - self.translation)
        orientation = quaternion_slerp(self.orientation, other.orientation, t)
        return Configuration(translation, orientation)

    def rotation_matrix(self) -> np.ndarray:
        """朝向对应的 3x3 旋转矩阵"""
        return Rotation.from_quat(self.orientation).as_matrix()

    def is_close(self, other: 'Configuration', atol: float = 1e-6) -> bool:
        """平移与旋转均在容差内（四元数正负号视为同一旋转）"""
        if not np.allclose(self.translation, other.translation, atol=atol):
            return False
        return quaternion_angle(self.orientation, other.orientation) <= atol

    # ── 序列化 ──

    def to_dict(self) -> Dict[str, Any]:
        return {
            'translation': self.translation.tolist(),
            'orientation': self.orientation.tolist(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Configuration':
        return cls(data['translation'], data.get('orientation', IDENTITY_QUATERNION))

    def __repr__(self) -> str:
        t = ", ".join(f"{v:.4f}" for v in self.translation)
        q = ", ".join(f"{v:.4f}" for v in self.orientation)
        return f"Configuration(t=[{t}], q=[{q}])"


class ConfigurationMetric:
    """位姿空间度量

    d(c1, c2) = max(平移距离, rotation_radius · 旋转角)

    Args:
        rotation_radius: 旋转项的尺度（移动物体顶点到原点的最大距离）。
            为 0 时退化为纯平移距离。

    Example:
        >>> metric = ConfigurationMetric(rotation_radius=0.5)
        >>> metric(c1, c2)
    """

    def __init__(self, rotation_radius: float = 1.0) -> None:
        if rotation_radius < 0.0:
            raise ValueError(f"rotation_radius 不能为负: {rotation_radius}")
        self.rotation_radius = float(rotation_radius)

    def translation_distance(self, c1: Configuration, c2: Configuration) -> float:
        return float(np.linalg.norm(c1.translation - c2.translation))

    def rotation_distance(self, c1: Configuration, c2: Configuration) -> float:
        return self.rotation_radius * quaternion_angle(c1.orientation, c2.orientation)

    def __call__(self, c1: Configuration, c2: Configuration) -> float:
        return max(self.translation_distance(c1, c2),
                   self.rotation_distance(c1, c2))

    def __repr__(self) -> str:
        return f"ConfigurationMetric(rotation_radius={self.rotation_radius:.4f})"
