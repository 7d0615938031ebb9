"""Platform handlers package.

Each handler is a short fetch-and-transform coroutine
``handle_x(fetcher, options) -> HotList``, organized by category:
- social.py: Weibo, Zhihu, V2EX, Hacker News
- video.py: Bilibili
- tech.py: Juejin, SSPAI
- news.py: Baidu, Toutiao, The Paper, 36Kr
- common.py: RouteOptions, HotList and item helpers
"""

from .common import (
    RouteOptions,
    HotList,
    hot_item,
)

# Community handlers
from .social import (
    handle_weibo,
    handle_zhihu,
    handle_v2ex,
    handle_hackernews,
)

# Video handlers
from .video import (
    handle_bilibili,
    BILIBILI_PARTITIONS,
)

# Tech handlers
from .tech import (
    handle_juejin,
    handle_sspai,
    JUEJIN_CATEGORIES,
)

# News handlers
from .news import (
    handle_baidu,
    handle_toutiao,
    handle_thepaper,
    handle_36kr,
    BAIDU_TABS,
)

__all__ = [
    "RouteOptions",
    "HotList",
    "hot_item",
    "handle_weibo",
    "handle_zhihu",
    "handle_v2ex",
    "handle_hackernews",
    "handle_bilibili",
    "handle_juejin",
    "handle_sspai",
    "handle_baidu",
    "handle_toutiao",
    "handle_thepaper",
    "handle_36kr",
    "BILIBILI_PARTITIONS",
    "JUEJIN_CATEGORIES",
    "BAIDU_TABS",
]
