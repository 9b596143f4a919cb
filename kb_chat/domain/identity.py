"""ID 与时钟工具。

IdGenerator 生成的 ID 以毫秒时间戳为基础，但保证在整个进程内严格递增：
高水位记录在类属性上，所有实例共享，因此各组件各自创建的生成器也不会
在同一毫秒内给出重复的 ID。ID 采用定长补零的十进制字符串，字符串排序
与生成顺序一致。

回复类消息（例如 Agent 对某条用户消息的回复）不再重新读取时钟，
而是通过 reply_id() 从触发消息的 ID 确定性地派生，排序上紧跟在
触发消息之后、下一个 new_id() 之前。
"""

import time
from datetime import datetime, timezone
from typing import Callable


ID_WIDTH = 16


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IdGenerator:
    """进程内单调递增的 ID 生成器。"""

    # 进程级高水位，所有实例共享
    _last = 0

    def __init__(self, clock_ms: Callable[[], int] = lambda: time.time_ns() // 1_000_000):
        self._clock_ms = clock_ms

    def new_id(self) -> str:
        value = max(int(self._clock_ms()), IdGenerator._last + 1)
        IdGenerator._last = value
        return f"{value:0{ID_WIDTH}d}"

    @staticmethod
    def reply_id(trigger_id: str) -> str:
        """基于触发消息 ID 派生回复 ID（"<trigger>.1"）。"""

        return f"{trigger_id}.1"
