"""取消信号。

一次 process() 调用的所有模型请求与存储访问共享同一个 CancellationToken；
任一环节发现已取消就抛出 OperationCancelled，已写入会话的轮次不回滚。
"""

import threading
from typing import Optional

from .exceptions import OperationCancelled


class CancellationToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled()


def check_cancelled(token: Optional[CancellationToken]) -> None:
    """token 为空时视为不可取消。"""

    if token is not None:
        token.raise_if_cancelled()
