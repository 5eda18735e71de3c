"""Feed 抓取客户端."""

import logging

import httpx

from feedpager.core.errors import NetworkError
from feedpager.fetcher.document import FeedDocument, parse, validate

logger = logging.getLogger(__name__)

USER_AGENT = "feedpager/0.1"


class FeedFetcher:
    """下载并解析单个 Feed."""

    def __init__(
        self,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
            transport=transport,
        )

    async def close(self) -> None:
        """关闭客户端."""
        await self._client.aclose()

    async def fetch(self, url: str) -> FeedDocument:
        """抓取并解析 Feed.

        Raises:
            NetworkError: 网络错误或非 2xx 响应
            DecodeError: 内容不是可识别的 Feed
        """
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise NetworkError(f"抓取 {url} 失败: {e}") from e

        return parse(response.content, url)

    async def fetch_valid(self, url: str) -> FeedDocument:
        """抓取、解析并校验 Feed（订阅时使用）."""
        document = await self.fetch(url)
        return validate(document)
