"""
examples/plan_demo.py - 六自由度 RRT 规划演示

流程：
  1. 加载或随机生成障碍物场景
  2. 注册移动物体（长方体）
  3. 确定始末位姿
  4. 配置规划器
  5. 执行规划
  6. 评估路径质量
  7. 保存场景 / 配置 / 路径 JSON

用法:
    python examples/plan_demo.py
    python examples/plan_demo.py --seed 123 --n-obs 20 --optimize
    python examples/plan_demo.py --scene scene.json --config config.json --planner rrt
"""

from __future__ import annotations

import argparse
import logging
import math
from datetime import datetime
from pathlib import Path

import numpy as np

from sixdof_planner import (
    BoxGeometry,
    CollisionManager,
    Configuration,
    PlannerConfig,
    PlannerResult,
    Scene,
    SixDofBiRRT,
    SixDofRRT,
)
from sixdof_planner.metrics import evaluate_result
from sixdof_planner.utils import Timer, make_seed

# ── 日志配置 ──────────────────────────────────────────────
LOG_FMT = "[%(asctime)s] %(levelname)-7s %(name)s: %(message)s"
logging.basicConfig(level=logging.INFO, format=LOG_FMT, datefmt="%H:%M:%S")
logger = logging.getLogger("plan_demo")


def find_blocking_obstacles(
    scene: Scene,
    geometry: BoxGeometry,
    configurations: list[Configuration],
) -> list[str]:
    """返回与给定位姿下移动物体相交的障碍物名称"""
    blocking = []
    for obs in scene.get_obstacles():
        single = CollisionManager()
        single.register_obstacle(obs)
        mobile = single.register_dynamic_object(geometry)
        for c in configurations:
            mobile.set_pose(c)
            if single.do_collide():
                blocking.append(obs.name)
                break
    return blocking


def log_planner_result(result: PlannerResult) -> None:
    """记录规划结果"""
    lines = [
        "=" * 60,
        "  规划结果",
        "=" * 60,
        f"  状态        : {'✓ 成功' if result.success else '✗ 失败'}",
        f"  消息        : {result.message}",
        f"  计算时间    : {result.computation_time:.3f} s",
        f"  迭代次数    : {result.n_iterations}",
        f"  节点数      : {result.n_nodes}",
        f"  碰撞检测数  : {result.n_collision_checks}",
        f"  最近邻查询  : {result.n_nearest_queries} "
        f"(距离计算 {result.n_distance_evals})",
        f"  路径点数    : {len(result.path)}",
        f"  路径长度    : {result.path_length:.4f}",
        "=" * 60,
    ]
    logger.info("\n%s", "\n".join(lines))


def main() -> int:
    parser = argparse.ArgumentParser(description="六自由度 RRT 规划演示")
    parser.add_argument("--seed", type=int, default=None,
                        help="随机种子 (默认: 随机)")
    parser.add_argument("--scene", type=str, default=None,
                        help="场景 JSON (默认: 随机生成)")
    parser.add_argument("--n-obs", type=int, default=12,
                        help="随机场景障碍物数量 (默认: 12)")
    parser.add_argument("--layout", choices=("shell", "random"), default="shell",
                        help="随机场景布局: 球壳或整个立方体 (默认: shell)")
    parser.add_argument("--config", type=str, default=None,
                        help="规划器配置 JSON")
    parser.add_argument("--planner", choices=("birrt", "rrt"), default="birrt",
                        help="规划器类型 (默认: birrt)")
    parser.add_argument("--max-iter", type=int, default=None,
                        help="覆盖配置中的最大迭代次数 (默认配置: 20000)")
    parser.add_argument("--timeout", type=float, default=None,
                        help="覆盖配置中的超时时间 (s)")
    parser.add_argument("--optimize", action="store_true",
                        help="成功后优化路径")
    parser.add_argument("--mobile-size", type=float, nargs=3,
                        default=(0.6, 0.3, 0.2), metavar=("SX", "SY", "SZ"),
                        help="移动长方体边长")
    parser.add_argument("--output", type=str, default="examples/output",
                        help="输出目录")
    args = parser.parse_args()

    rng_seed = make_seed(args.seed)
    rng = np.random.default_rng(rng_seed)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    output_dir = Path(args.output) / f"plan_{timestamp}"
    output_dir.mkdir(parents=True, exist_ok=True)

    logger.info("=" * 60)
    logger.info("  六自由度 RRT 规划演示")
    logger.info("  随机种子: %d", rng_seed)
    logger.info("  输出目录: %s", output_dir)
    logger.info("=" * 60)

    timer = Timer()

    # ────────────────────────────────────────────────────────
    # Step 1: 场景
    # ────────────────────────────────────────────────────────
    logger.info("▶ Step 1/7: 准备场景")
    with timer.phase('scene'):
        if args.scene:
            scene = Scene.from_json(args.scene)
            logger.info("  从 %s 加载 %d 个障碍物", args.scene, scene.n_obstacles)
        elif args.layout == "shell":
            scene = Scene.random_shell(args.n_obs, rng)
        else:
            scene = Scene.random(args.n_obs, rng)

    # ────────────────────────────────────────────────────────
    # Step 2: 始末位姿
    # ────────────────────────────────────────────────────────
    logger.info("▶ Step 2/7: 始末位姿")
    geometry = BoxGeometry.from_size(args.mobile_size)
    start = Configuration.identity()
    target = Configuration.from_euler([5.0, 5.0, 5.0], [0.0, 0.0, math.pi / 2])
    logger.info("  起点: %s", start)
    logger.info("  终点: %s", target)
    if not args.scene:
        with timer.phase('clear_endpoints'):
            blocking = find_blocking_obstacles(scene, geometry, [start, target])
            scene.remove_obstacles(blocking)
        if blocking:
            logger.info("  移除了 %d 个与始末点冲突的障碍物: %s",
                        len(blocking), ", ".join(blocking))
    extent = scene.bounds()
    if extent is not None:
        logger.info("  场景范围: min=%s, max=%s",
                    np.round(extent[0], 3).tolist(), np.round(extent[1], 3).tolist())

    # ────────────────────────────────────────────────────────
    # Step 3: 碰撞预言机与移动物体
    # ────────────────────────────────────────────────────────
    logger.info("▶ Step 3/7: 注册移动物体 size=%s", list(args.mobile_size))
    with timer.phase('collision_setup'):
        manager = CollisionManager.from_scene(scene)
        mobile = manager.register_dynamic_object(geometry, name="mobile")
    logger.info("  %r, bounding_radius=%.4f", manager, geometry.bounding_radius)

    # ────────────────────────────────────────────────────────
    # Step 4: 规划器配置
    # ────────────────────────────────────────────────────────
    logger.info("▶ Step 4/7: 配置规划器")
    if args.config:
        config = PlannerConfig.from_json(args.config)
    else:
        config = PlannerConfig(position_interval=(-2.0, 8.0), max_iterations=20000)
    if args.max_iter is not None:
        config.max_iterations = args.max_iter
    if args.timeout is not None:
        config.timeout = args.timeout
    if args.optimize:
        config.optimize_path = True
    if config.max_iterations is None and config.timeout is None:
        logger.error("配置中 max_iterations 与 timeout 均未设置，请用 --max-iter 或 --timeout 指定预算")
        return 2
    for key, value in config.to_dict().items():
        logger.info("  %-22s: %s", key, value)

    planner_cls = SixDofBiRRT if args.planner == "birrt" else SixDofRRT
    try:
        planner = planner_cls(manager, mobile, config)
    except ValueError as e:
        logger.error("规划器配置非法: %s", e)
        return 2

    # ────────────────────────────────────────────────────────
    # Step 5: 规划
    # ────────────────────────────────────────────────────────
    logger.info("▶ Step 5/7: 执行 %s 规划", planner_cls.__name__)
    with timer.phase('plan'):
        result = planner.plan(start, target, seed=rng_seed)
    log_planner_result(result)

    # ────────────────────────────────────────────────────────
    # Step 6: 指标
    # ────────────────────────────────────────────────────────
    if result.success:
        logger.info("▶ Step 6/7: 评估路径质量指标")
        with timer.phase('metrics'):
            metrics = evaluate_result(result, planner)
        logger.info("\n%s", metrics.summary())
    else:
        logger.warning("  ⊘ 规划失败，跳过质量指标")

    # ────────────────────────────────────────────────────────
    # Step 7: 保存
    # ────────────────────────────────────────────────────────
    logger.info("▶ Step 7/7: 保存结果")
    with timer.phase('save'):
        scene_json = output_dir / "scene.json"
        scene.to_json(scene_json)
        config.to_json(output_dir / "config.json")
        path_json = result.save_path(output_dir / "path.json", scene_json=str(scene_json))
    logger.info("  路径 JSON 已保存到 %s", path_json)

    logger.info("演示各步骤耗时:\n%s", timer.summary())
    return 0 if result.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
