"""
sixdof_planner/collision.py - 碰撞预言机（python-fcl 后端）

规划器只通过以下约定使用碰撞检测：
- 注册一个移动物体（dynamic object），得到句柄
- 通过句柄设置位姿（平移 + 四元数 / 欧拉角）
- 询问当前位姿下是否与任何静态物体或其他动态物体相交
- （可选）询问当前位姿到静态物体的最小距离

几何体为 fcl.Box，每个句柄持有一个 fcl.CollisionObject。静态对象
注册在 DynamicAABBTreeCollisionManager 宽相中，动态对象作为外部对象
对其查询；动态对象之间逐对调用 fcl.collide。

四元数约定：本包使用 scalar-last (x, y, z, w)，fcl.Transform 需要
scalar-first (w, x, y, z)。
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import fcl
import numpy as np
from scipy.spatial.transform import Rotation

from .configuration import Configuration, euler_to_quaternion, IDENTITY_QUATERNION
from .models import Obstacle
from .obstacles import Scene

logger = logging.getLogger(__name__)


def _to_wxyz(quaternion: np.ndarray) -> np.ndarray:
    return np.roll(quaternion, 1)


@dataclass
class BoxGeometry:
    """长方体几何

    Attributes:
        half_extents: 三个局部轴上的半长
        offset: 盒中心相对物体原点的偏移（物体局部坐标）
    """
    half_extents: np.ndarray
    offset: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self) -> None:
        self.half_extents = np.asarray(self.half_extents, dtype=np.float64).reshape(3)
        self.offset = np.asarray(self.offset, dtype=np.float64).reshape(3)
        if np.any(self.half_extents < 0.0):
            raise ValueError(f"half_extents 不能为负: {self.half_extents.tolist()}")

    @classmethod
    def from_size(cls, size: Sequence[float], offset: Optional[Sequence[float]] = None) -> 'BoxGeometry':
        """由完整边长构造"""
        half = np.asarray(size, dtype=np.float64) / 2.0
        return cls(half, np.zeros(3) if offset is None else offset)

    @property
    def size(self) -> np.ndarray:
        return 2.0 * self.half_extents

    @property
    def bounding_radius(self) -> float:
        """物体原点到任意顶点的最大距离"""
        return float(np.linalg.norm(np.abs(self.offset) + self.half_extents))

    def to_fcl(self) -> fcl.Box:
        x, y, z = self.size
        return fcl.Box(float(x), float(y), float(z))


# ─────────────────────────────────────────────────────
#  碰撞对象句柄
# ─────────────────────────────────────────────────────

class CollisionObject:
    """注册到 CollisionManager 的碰撞对象句柄

    每次修改位姿都会同步 fcl 对象的变换；静态对象同时刷新所在的宽相。
    """

    is_dynamic = False

    def __init__(
        self,
        geometry: BoxGeometry,
        object_id: int,
        name: str = "",
        translation: Optional[Sequence[float]] = None,
        orientation: Optional[Sequence[float]] = None,
    ) -> None:
        self.geometry = geometry
        self.object_id = object_id
        self.name = name or f"object_{object_id}"
        self._translation = np.zeros(3)
        self._orientation = IDENTITY_QUATERNION.copy()
        self._rotation = np.eye(3)
        self._fcl = fcl.CollisionObject(geometry.to_fcl(), fcl.Transform())
        self._broadphase: Optional[fcl.DynamicAABBTreeCollisionManager] = None
        if translation is not None:
            self._translation = np.asarray(translation, dtype=np.float64).reshape(3).copy()
        if orientation is not None:
            self._set_quaternion(orientation)
        self._sync()

    @property
    def translation(self) -> np.ndarray:
        return self._translation.copy()

    @property
    def orientation(self) -> np.ndarray:
        """朝向四元数 (x, y, z, w)"""
        return self._orientation.copy()

    @property
    def rotation(self) -> np.ndarray:
        return self._rotation.copy()

    @property
    def fcl_object(self) -> fcl.CollisionObject:
        return self._fcl

    @property
    def world_center(self) -> np.ndarray:
        """盒中心的世界坐标（含 offset）"""
        return self._translation + self._rotation @ self.geometry.offset

    def set_translation(self, translation: Sequence[float]) -> None:
        self._translation = np.asarray(translation, dtype=np.float64).reshape(3).copy()
        self._sync()

    def set_orientation(self, quaternion: Sequence[float]) -> None:
        """设置朝向（四元数 scalar-last，自动归一化）"""
        self._set_quaternion(quaternion)
        self._sync()

    def set_orientation_euler(self, euler_angles: Sequence[float]) -> None:
        """设置朝向（欧拉角，依次绕 X、Y、Z）"""
        self.set_orientation(euler_to_quaternion(euler_angles))

    def set_pose(self, configuration: Configuration) -> None:
        self._translation = np.array(configuration.translation)
        self._orientation = np.array(configuration.orientation)
        self._rotation = configuration.rotation_matrix()
        self._sync()

    def _set_quaternion(self, quaternion: Sequence[float]) -> None:
        q = np.asarray(quaternion, dtype=np.float64).reshape(4)
        norm = float(np.linalg.norm(q))
        if not np.isfinite(norm) or norm < 1e-12:
            raise ValueError(f"非法四元数: {q.tolist()}")
        self._orientation = q / norm
        self._rotation = Rotation.from_quat(self._orientation).as_matrix()

    def _sync(self) -> None:
        self._fcl.setTransform(fcl.Transform(_to_wxyz(self._orientation), self.world_center))
        if self._broadphase is not None:
            self._broadphase.update(self._fcl)

    def __repr__(self) -> str:
        kind = "dynamic" if self.is_dynamic else "static"
        return f"{type(self).__name__}(id={self.object_id}, name='{self.name}', {kind})"


class StaticCollisionObject(CollisionObject):
    """静态障碍物"""
    is_dynamic = False


class DynamicCollisionObject(CollisionObject):
    """移动物体（规划对象）"""
    is_dynamic = True


# ─────────────────────────────────────────────────────
#  管理器
# ─────────────────────────────────────────────────────

class CollisionManager:
    """碰撞预言机

    管理静态与动态碰撞对象，回答当前位姿下的碰撞与距离查询。

    Example:
        >>> manager = CollisionManager.from_scene(scene)
        >>> mobile = manager.register_dynamic_object(BoxGeometry([0.1, 0.1, 0.1]))
        >>> mobile.set_pose(config)
        >>> manager.do_collide()
        False
    """

    def __init__(self) -> None:
        self._static: Dict[int, StaticCollisionObject] = {}
        self._dynamic: Dict[int, DynamicCollisionObject] = {}
        self._broadphase = fcl.DynamicAABBTreeCollisionManager()
        self._broadphase.setup()
        self._next_id = 0
        self._n_collision_checks = 0
        self._n_distance_queries = 0

    @classmethod
    def from_scene(cls, scene: Scene) -> 'CollisionManager':
        """将场景中所有障碍物注册为静态对象"""
        manager = cls()
        for obs in scene.get_obstacles():
            manager.register_obstacle(obs)
        logger.debug("由场景创建 CollisionManager: %d 个静态对象", manager.n_static)
        return manager

    # ── 计数 ──

    @property
    def n_collision_checks(self) -> int:
        """累计 do_collide 调用次数"""
        return self._n_collision_checks

    @property
    def n_distance_queries(self) -> int:
        return self._n_distance_queries

    def reset_counter(self) -> None:
        """重置碰撞检测计数器"""
        self._n_collision_checks = 0
        self._n_distance_queries = 0

    @property
    def n_static(self) -> int:
        return len(self._static)

    @property
    def n_dynamic(self) -> int:
        return len(self._dynamic)

    @property
    def static_objects(self) -> List[StaticCollisionObject]:
        return list(self._static.values())

    @property
    def dynamic_objects(self) -> List[DynamicCollisionObject]:
        return list(self._dynamic.values())

    # ── 注册 ──

    def register_static_object(
        self,
        geometry: BoxGeometry,
        translation: Optional[Sequence[float]] = None,
        orientation: Optional[Sequence[float]] = None,
        name: str = "",
    ) -> StaticCollisionObject:
        """注册静态对象

        Args:
            geometry: 对象几何
            translation: 位置（默认原点）
            orientation: 四元数朝向 (x, y, z, w)（默认单位旋转）
            name: 名称
        """
        obj = StaticCollisionObject(
            geometry, self._next_id, name, translation,
            orientation if orientation is not None else IDENTITY_QUATERNION)
        self._static[obj.object_id] = obj
        self._next_id += 1
        self._broadphase.registerObject(obj.fcl_object)
        self._broadphase.update()
        obj._broadphase = self._broadphase
        return obj

    def register_dynamic_object(self, geometry: BoxGeometry, name: str = "") -> DynamicCollisionObject:
        """注册移动物体，初始位姿为原点 + 单位旋转"""
        obj = DynamicCollisionObject(geometry, self._next_id, name)
        self._dynamic[obj.object_id] = obj
        self._next_id += 1
        logger.debug("注册动态对象 '%s' (bounding_radius=%.4f)",
                     obj.name, geometry.bounding_radius)
        return obj

    def register_obstacle(self, obstacle: Obstacle) -> StaticCollisionObject:
        """将 AABB 障碍物注册为静态对象"""
        geometry = BoxGeometry(obstacle.size / 2.0)
        return self.register_static_object(geometry, obstacle.center, name=obstacle.name)

    def unregister(self, obj: CollisionObject) -> None:
        """注销对象

        Raises:
            KeyError: 对象未注册到本管理器
        """
        table = self._dynamic if obj.is_dynamic else self._static
        if table.get(obj.object_id) is not obj:
            raise KeyError(f"对象未注册: {obj!r}")
        del table[obj.object_id]
        if not obj.is_dynamic:
            self._broadphase.unregisterObject(obj.fcl_object)
            self._broadphase.update()
            obj._broadphase = None

    # ── 查询 ──

    def _collides_with_static(self, obj: DynamicCollisionObject) -> bool:
        if not self._static:
            return False
        cdata = fcl.CollisionData(request=fcl.CollisionRequest())
        self._broadphase.collide(obj.fcl_object, cdata, fcl.defaultCollisionCallback)
        return cdata.result.is_collision

    @staticmethod
    def _pair_collides(a: CollisionObject, b: CollisionObject) -> bool:
        n_contacts = fcl.collide(a.fcl_object, b.fcl_object,
                                 fcl.CollisionRequest(), fcl.CollisionResult())
        return n_contacts > 0

    def do_collide(self) -> bool:
        """当前位姿下是否存在碰撞

        检查每个动态对象与所有静态对象、以及动态对象两两之间。
        静态对象之间不检查。

        Returns:
            True = 存在碰撞, False = 无碰撞
        """
        self._n_collision_checks += 1
        dynamic = list(self._dynamic.values())
        for i, obj in enumerate(dynamic):
            if self._collides_with_static(obj):
                return True
            for other in dynamic[i + 1:]:
                if self._pair_collides(obj, other):
                    return True
        return False

    def compute_distance(self) -> float:
        """动态对象到静态对象的最小距离

        重叠时为 0；没有静态或动态对象时为 inf。
        """
        self._n_distance_queries += 1
        best = math.inf
        for obj in self._dynamic.values():
            for static in self._static.values():
                d = fcl.distance(obj.fcl_object, static.fcl_object,
                                 fcl.DistanceRequest(), fcl.DistanceResult())
                # fcl 在相交时返回非正值
                if d <= 0.0:
                    return 0.0
                best = min(best, d)
        return best

    def __repr__(self) -> str:
        return f"CollisionManager(n_static={self.n_static}, n_dynamic={self.n_dynamic})"
