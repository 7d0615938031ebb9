"""Community handlers - Weibo, Zhihu, V2EX, Hacker News."""

from typing import TYPE_CHECKING
from urllib.parse import quote

from services.handlers.common import (
    HotList, RouteOptions, hot_item, parse_hot, require, to_millis,
)

if TYPE_CHECKING:
    from services.fetcher import HttpFetcher


async def handle_weibo(fetcher: "HttpFetcher", options: RouteOptions) -> HotList:
    """Weibo real-time hot search."""
    result = await fetcher.get(
        "https://weibo.com/ajax/side/hotSearch",
        no_cache=options.no_cache,
        validate=require("data", "realtime", ok=1),
    )

    items = []
    for entry in result.data["data"]["realtime"]:
        if entry.get("is_ad"):
            continue
        word = entry["word"]
        query = entry.get("word_scheme") or f"#{word}#"
        items.append(hot_item(
            entry.get("mid") or word,
            word,
            f"https://s.weibo.com/weibo?q={quote(query)}&t=31&band_rank=1&Refer=top",
            desc=entry.get("note") or word,
            author=entry.get("flag_desc"),
            hot=entry.get("num"),
            timestamp=to_millis(entry.get("onboard_time")),
            mobile_url=f"https://m.weibo.cn/search?containerid={quote('100103type=1&q=' + query)}",
        ))
    return HotList.from_fetch(result, items)


async def handle_zhihu(fetcher: "HttpFetcher", options: RouteOptions) -> HotList:
    """Zhihu hot questions."""
    result = await fetcher.get(
        "https://api.zhihu.com/topstory/hot-lists/total",
        params={"limit": 50},
        no_cache=options.no_cache,
        validate=require("data"),
    )

    items = []
    for entry in result.data["data"]:
        target = entry.get("target", {})
        question_id = target.get("id")
        children = entry.get("children") or [{}]
        question_url = f"https://www.zhihu.com/question/{question_id}"
        items.append(hot_item(
            question_id,
            target.get("title", ""),
            question_url,
            cover=children[0].get("thumbnail"),
            desc=target.get("excerpt"),
            hot=parse_hot(entry.get("detail_text")),
            timestamp=to_millis(target.get("created")),
        ))
    return HotList.from_fetch(result, items)


async def handle_v2ex(fetcher: "HttpFetcher", options: RouteOptions) -> HotList:
    """V2EX hot topics."""
    result = await fetcher.get(
        "https://www.v2ex.com/api/topics/hot.json",
        no_cache=options.no_cache,
    )

    items = [
        hot_item(
            topic["id"],
            topic["title"],
            topic.get("url") or f"https://www.v2ex.com/t/{topic['id']}",
            author=(topic.get("member") or {}).get("username"),
            desc=topic.get("content"),
            hot=topic.get("replies"),
            timestamp=to_millis(topic.get("created")),
        )
        for topic in result.data
    ]
    return HotList.from_fetch(result, items)


async def handle_hackernews(fetcher: "HttpFetcher", options: RouteOptions) -> HotList:
    """Hacker News front page (via the Algolia search API)."""
    result = await fetcher.get(
        "https://hn.algolia.com/api/v1/search",
        params={"tags": "front_page", "hitsPerPage": 30},
        no_cache=options.no_cache,
        validate=require("hits"),
    )

    items = []
    for hit in result.data["hits"]:
        item_url = f"https://news.ycombinator.com/item?id={hit['objectID']}"
        items.append(hot_item(
            hit["objectID"],
            hit.get("title") or hit.get("story_title") or "",
            hit.get("url") or item_url,
            author=hit.get("author"),
            hot=hit.get("points"),
            timestamp=to_millis(hit.get("created_at_i")),
            mobile_url=item_url,
        ))
    return HotList.from_fetch(result, items)
