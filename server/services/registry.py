"""Route registry - explicit table of hot list routes with handler dispatch.

Routes are registered by name in ``_build_route_table``; there is no
directory scanning. The registry also shapes the uniform API response.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, TYPE_CHECKING

from core.logging import get_logger, log_execution_time
from services.handlers import (
    BAIDU_TABS, BILIBILI_PARTITIONS, JUEJIN_CATEGORIES,
    HotList, RouteOptions,
    handle_36kr, handle_baidu, handle_bilibili, handle_hackernews,
    handle_juejin, handle_sspai, handle_thepaper, handle_toutiao,
    handle_v2ex, handle_weibo, handle_zhihu,
)

if TYPE_CHECKING:
    from services.fetcher import HttpFetcher

logger = get_logger(__name__)

Handler = Callable[["HttpFetcher", RouteOptions], Awaitable[HotList]]


class RouteNotFound(KeyError):
    """No route registered under the requested name."""


@dataclass
class RouteSpec:
    """A registered route and its descriptive metadata."""
    name: str
    title: str
    type: str
    link: str
    handler: Handler
    description: str = ""
    params: Dict[str, Dict[str, str]] = field(default_factory=dict)


class RouteRegistry:
    """Maps route names to handlers and renders their responses."""

    def __init__(self, fetcher: "HttpFetcher"):
        self.fetcher = fetcher
        self._routes = self._build_route_table()

    def _build_route_table(self) -> Dict[str, RouteSpec]:
        routes = [
            RouteSpec("weibo", "微博", "热搜榜", "https://s.weibo.com/top/summary/", handle_weibo,
                      description="实时热点，每分钟更新一次"),
            RouteSpec("zhihu", "知乎", "热榜", "https://www.zhihu.com/hot", handle_zhihu),
            RouteSpec("bilibili", "哔哩哔哩", "热榜 · 全站", "https://www.bilibili.com/v/popular/rank/all",
                      handle_bilibili, description="你所热爱的，就是你的生活",
                      params={"type": BILIBILI_PARTITIONS}),
            RouteSpec("baidu", "百度", "热搜榜", "https://top.baidu.com/board", handle_baidu,
                      params={"type": BAIDU_TABS}),
            RouteSpec("toutiao", "今日头条", "热榜", "https://www.toutiao.com/", handle_toutiao),
            RouteSpec("thepaper", "澎湃新闻", "热榜", "https://www.thepaper.cn/", handle_thepaper),
            RouteSpec("36kr", "36氪", "热榜", "https://m.36kr.com/hot-list-m", handle_36kr),
            RouteSpec("juejin", "稀土掘金", "文章榜 · 综合", "https://juejin.cn/hot/articles", handle_juejin,
                      params={"type": JUEJIN_CATEGORIES}),
            RouteSpec("sspai", "少数派", "热榜", "https://sspai.com/", handle_sspai),
            RouteSpec("v2ex", "V2EX", "主题榜", "https://www.v2ex.com/", handle_v2ex),
            RouteSpec("hackernews", "Hacker News", "Popular", "https://news.ycombinator.com/",
                      handle_hackernews),
        ]
        return {route.name: route for route in routes}

    def names(self) -> List[str]:
        return list(self._routes)

    def get(self, name: str) -> RouteSpec:
        try:
            return self._routes[name]
        except KeyError:
            raise RouteNotFound(name) from None

    def describe(self) -> List[Dict[str, str]]:
        """Route listing for the ``/all`` endpoint."""
        return [{"name": name, "path": f"/{name}"} for name in self._routes]

    async def render(self, name: str, options: Optional[RouteOptions] = None) -> Dict[str, Any]:
        """Run a route's handler and build the uniform response body.

        Raises:
            RouteNotFound: Unknown route name.
            FetchError: The upstream fetch failed.
        """
        route = self.get(name)
        options = options or RouteOptions()
        start_time = time.time()

        hot_list = await route.handler(self.fetcher, options)

        data = hot_list.data
        if options.limit is not None:
            data = data[:options.limit]

        log_execution_time(logger, f"route:{name}", start_time, time.time(),
                           from_cache=hot_list.from_cache, total=len(data))

        body: Dict[str, Any] = {
            "name": route.name,
            "title": route.title,
            "type": hot_list.type or route.type,
            "link": route.link,
        }
        if route.description:
            body["description"] = route.description
        if route.params:
            body["params"] = route.params
        body.update({
            "total": len(data),
            "fromCache": hot_list.from_cache,
            "updateTime": hot_list.update_time,
            "data": data,
        })
        return body
