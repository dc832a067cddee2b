"""
utils/timing.py - 阶段计时器

记录规划各阶段耗时，同名阶段多次进入时累加。
"""

import time
from contextlib import contextmanager
from typing import Dict, Iterator

_UNIT_SCALE = {"ms": 1000.0, "s": 1.0}


class Timer:
    """阶段计时器"""

    def __init__(self) -> None:
        self.records: Dict[str, float] = {}

    @contextmanager
    def phase(self, name: str) -> Iterator[None]:
        """记录 name 阶段的耗时 (秒)，异常退出时同样计入."""
        t0 = time.perf_counter()
        try:
            yield
        finally:
            self.records[name] = self.records.get(name, 0.0) + time.perf_counter() - t0

    @property
    def total(self) -> float:
        return sum(self.records.values())

    def to_dict(self) -> Dict[str, float]:
        return {**self.records, "total": self.total}

    def summary(self, unit: str = "ms") -> str:
        """逐行列出各阶段耗时与占比，末行为合计

        Args:
            unit: "ms" 或 "s"
        """
        if unit not in _UNIT_SCALE:
            raise ValueError(f"未知时间单位: {unit}")
        scale = _UNIT_SCALE[unit]
        total = self.total
        lines = []
        for name, sec in self.records.items():
            share = 100.0 * sec / total if total > 0.0 else 0.0
            lines.append(f"  {name:<16s}{sec * scale:10.2f} {unit:<2s} {share:5.1f}%")
        lines.append(f"  {'TOTAL':<16s}{total * scale:10.2f} {unit}")
        return "\n".join(lines)
