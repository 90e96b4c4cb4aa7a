"""
PerCallTransport：每次调用新建连接资源，调用结束后无条件关闭。
"""

from __future__ import annotations

import contextlib

import httpcore

from lambda_runtime.transport.pool import PoolTransport, closing_pool


class PerCallTransport(PoolTransport):
    """
    最简单的 transport（也是 runtime 的默认实现）。

    说明：
    - 不持有任何跨调用状态；每次 fetch/post 都要重新建连；
    - 连接在成功与失败路径上都会被关闭。
    """

    def _fetch_pool(self) -> "contextlib.AbstractContextManager[httpcore.ConnectionPool]":
        """每次 fetch 新建并在退出时关闭。"""

        return closing_pool(self._new_pool())

    def _post_pool(self) -> "contextlib.AbstractContextManager[httpcore.ConnectionPool]":
        """每次 post 新建并在退出时关闭。"""

        return closing_pool(self._new_pool())
