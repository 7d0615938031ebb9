"""Tech community handlers - Juejin, SSPAI."""

from typing import TYPE_CHECKING

from services.handlers.common import (
    HotList, RouteOptions, hot_item, parse_hot, require, to_millis,
)

if TYPE_CHECKING:
    from services.fetcher import HttpFetcher

JUEJIN_CATEGORIES = {
    "1": "综合",
    "6809637769959178254": "后端",
    "6809637767543259144": "前端",
    "6809635626879549454": "Android",
    "6809635626661445640": "iOS",
    "6809637773935378440": "人工智能",
    "6809637771511070734": "开发工具",
    "6809637776263217160": "代码人生",
    "6809637772874219534": "阅读",
}


async def handle_juejin(fetcher: "HttpFetcher", options: RouteOptions) -> HotList:
    """Juejin article ranking for a category."""
    category = options.params.get("type", "1")
    if category not in JUEJIN_CATEGORIES:
        category = "1"

    result = await fetcher.get(
        "https://api.juejin.cn/content_api/v1/content/article_rank",
        params={"category_id": category, "type": "hot"},
        no_cache=options.no_cache,
        validate=require("data", err_no=0),
    )

    items = []
    for entry in result.data["data"]:
        content = entry.get("content") or {}
        article_id = content.get("content_id")
        items.append(hot_item(
            article_id,
            content.get("title", ""),
            f"https://juejin.cn/post/{article_id}",
            author=(entry.get("author") or {}).get("name"),
            desc=content.get("brief"),
            hot=parse_hot((entry.get("content_counter") or {}).get("hot_rank")),
        ))
    return HotList.from_fetch(result, items, type=f"文章榜 · {JUEJIN_CATEGORIES[category]}")


async def handle_sspai(fetcher: "HttpFetcher", options: RouteOptions) -> HotList:
    """SSPAI popular articles."""
    result = await fetcher.get(
        "https://sspai.com/api/v1/article/tag/page/get",
        params={"limit": 40, "tag": "热门文章"},
        no_cache=options.no_cache,
        validate=require("data", error=0),
    )

    items = [
        hot_item(
            article["id"],
            article["title"],
            f"https://sspai.com/post/{article['id']}",
            cover=article.get("banner"),
            author=(article.get("author") or {}).get("nickname"),
            desc=article.get("summary"),
            hot=article.get("like_count"),
            timestamp=to_millis(article.get("released_time")),
        )
        for article in result.data["data"]
    ]
    return HotList.from_fetch(result, items)
