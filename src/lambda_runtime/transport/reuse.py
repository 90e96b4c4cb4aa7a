"""
ReuseTransport：跨 invocation 复用 fetch / post 两个连接资源。

约束：
- 两个资源都在首次使用时惰性创建；
- 某个资源上的调用失败（网络错误、非 2xx）时，先关闭并丢弃该资源再抛出，
  下一次调用重新创建，不在可能已损坏的连接上继续发请求；
- `close()` / `with` 退出 / 对象回收时确定性释放，且不向外抛异常。
"""

from __future__ import annotations

import contextlib
import logging
from typing import Iterator, Optional

import httpcore

from lambda_runtime.transport.pool import HTTPCORE_ERRORS, PoolTransport

logger = logging.getLogger(__name__)


class ReuseTransport(PoolTransport):
    """持久连接 transport（keep-alive 复用）。"""

    def __init__(self, **kwargs) -> None:  # type: ignore[no-untyped-def]
        """参数同 PoolTransport。"""

        super().__init__(**kwargs)
        self._fetch: Optional[httpcore.ConnectionPool] = None
        self._post: Optional[httpcore.ConnectionPool] = None

    @contextlib.contextmanager
    def _fetch_pool(self) -> Iterator[httpcore.ConnectionPool]:
        """产出复用的 fetch 连接；作用域内出错则丢弃。"""

        if self._fetch is None:
            logger.debug("Opening fetch connection")
            self._fetch = self._new_pool()
        try:
            yield self._fetch
        except BaseException:
            self._discard_fetch()
            raise

    @contextlib.contextmanager
    def _post_pool(self) -> Iterator[httpcore.ConnectionPool]:
        """产出复用的 post 连接；作用域内出错则丢弃。"""

        if self._post is None:
            logger.debug("Opening post connection")
            self._post = self._new_pool()
        try:
            yield self._post
        except BaseException:
            self._discard_post()
            raise

    def _discard_fetch(self) -> None:
        """关闭并丢弃 fetch 连接。"""

        pool, self._fetch = self._fetch, None
        if pool is not None:
            logger.warning("Discarding fetch connection after a failed call")
            _close_quietly(pool)

    def _discard_post(self) -> None:
        """关闭并丢弃 post 连接。"""

        pool, self._post = self._post, None
        if pool is not None:
            logger.warning("Discarding post connection after a failed call")
            _close_quietly(pool)

    @property
    def has_open_connections(self) -> bool:
        """是否仍持有任一连接资源（主要用于测试断言）。"""

        return self._fetch is not None or self._post is not None

    def close(self) -> None:
        """释放全部连接资源（幂等）。"""

        for attr in ("_fetch", "_post"):
            pool = getattr(self, attr, None)
            setattr(self, attr, None)
            if pool is not None:
                _close_quietly(pool)

    def __del__(self) -> None:
        """对象回收时兜底释放；解释器退出阶段也不得抛出。"""

        with contextlib.suppress(Exception):
            self.close()


def _close_quietly(pool: httpcore.ConnectionPool) -> None:
    """关闭 pool；关闭过程中的 httpcore 异常只记 debug 日志。"""

    try:
        pool.close()
    except HTTPCORE_ERRORS:
        logger.debug("Ignoring error while closing connection", exc_info=True)
