"""News handlers - Baidu, Toutiao, The Paper, 36Kr."""

import json
import re
from typing import TYPE_CHECKING, Any, Dict, List
from urllib.parse import quote

from services.handlers.common import (
    HotList, RouteOptions, hot_item, parse_hot, require, to_millis,
)

if TYPE_CHECKING:
    from services.fetcher import HttpFetcher

BAIDU_TABS = {
    "realtime": "热搜",
    "novel": "小说",
    "movie": "电影",
    "teleplay": "电视剧",
    "car": "汽车",
    "game": "游戏",
}

_BAIDU_DATA = re.compile(r"<!--s-data:(.*?)-->", re.S)


def _baidu_cards(html: str) -> List[Dict[str, Any]]:
    match = _BAIDU_DATA.search(html)
    if not match:
        raise ValueError("s-data block not found")
    return json.loads(match.group(1))["data"]["cards"][0]["content"]


def _validate_baidu(html: str) -> None:
    try:
        _baidu_cards(html)
    except (KeyError, IndexError, TypeError) as e:
        raise ValueError(f"unexpected s-data layout: {e!r}") from e


async def handle_baidu(fetcher: "HttpFetcher", options: RouteOptions) -> HotList:
    """Baidu hot search board (scraped from the embedded page data)."""
    tab = options.params.get("type", "realtime")
    if tab not in BAIDU_TABS:
        tab = "realtime"

    result = await fetcher.get(
        "https://top.baidu.com/board",
        params={"tab": tab},
        no_cache=options.no_cache,
        response_type="text",
        validate=_validate_baidu,
    )

    items = []
    for entry in _baidu_cards(result.data):
        query = entry.get("query") or entry.get("word", "")
        items.append(hot_item(
            entry.get("index", query),
            entry.get("word", query),
            f"https://www.baidu.com/s?wd={quote(query)}",
            cover=entry.get("img"),
            desc=entry.get("desc"),
            hot=parse_hot(entry.get("hotScore")),
            mobile_url=entry.get("rawUrl") or entry.get("appUrl"),
        ))
    return HotList.from_fetch(result, items, type=f"{BAIDU_TABS[tab]}榜")


async def handle_toutiao(fetcher: "HttpFetcher", options: RouteOptions) -> HotList:
    """Toutiao hot board."""
    result = await fetcher.get(
        "https://www.toutiao.com/hot-event/hot-board/",
        params={"origin": "toutiao_pc"},
        no_cache=options.no_cache,
        validate=require("data"),
    )

    items = []
    for entry in result.data["data"]:
        cluster_id = entry["ClusterIdStr"]
        items.append(hot_item(
            cluster_id,
            entry["Title"],
            f"https://www.toutiao.com/trending/{cluster_id}/",
            cover=(entry.get("Image") or {}).get("url"),
            hot=parse_hot(entry.get("HotValue")),
            mobile_url=(
                "https://api.toutiaoapi.com/feoffline/amos_land/new/html/main/index.html"
                f"?topic_id={cluster_id}"
            ),
        ))
    return HotList.from_fetch(result, items)


async def handle_thepaper(fetcher: "HttpFetcher", options: RouteOptions) -> HotList:
    """The Paper sidebar hot news."""
    result = await fetcher.get(
        "https://cache.thepaper.cn/contentapi/wwwIndex/rightSidebar",
        no_cache=options.no_cache,
        validate=require("data", "hotNews"),
    )

    items = [
        hot_item(
            news["contId"],
            news["name"],
            f"https://www.thepaper.cn/newsDetail_forward_{news['contId']}",
            cover=news.get("pic"),
            hot=parse_hot(news.get("praiseTimes")),
            timestamp=to_millis(news.get("pubTimeLong")),
            mobile_url=f"https://m.thepaper.cn/newsDetail_forward_{news['contId']}",
        )
        for news in result.data["data"]["hotNews"]
    ]
    return HotList.from_fetch(result, items)


async def handle_36kr(fetcher: "HttpFetcher", options: RouteOptions) -> HotList:
    """36Kr hot ranking (POST gateway API)."""
    result = await fetcher.post(
        "https://gateway.36kr.com/api/mis/nav/home/nav/rank/hot",
        json={"partner_id": "wap", "param": {"siteId": 1, "platformId": 2}},
        headers={"Content-Type": "application/json; charset=utf-8"},
        no_cache=options.no_cache,
        validate=require("data", "hotRankList", code=0),
    )

    items = []
    for entry in result.data["data"]["hotRankList"]:
        material = entry.get("templateMaterial") or {}
        item_id = entry.get("itemId")
        if item_id is None:
            continue
        items.append(hot_item(
            item_id,
            material.get("widgetTitle", ""),
            f"https://www.36kr.com/p/{item_id}",
            cover=material.get("widgetImage"),
            author=material.get("authorName"),
            hot=material.get("statRead"),
            timestamp=to_millis(material.get("publishTime")),
            mobile_url=f"https://m.36kr.com/p/{item_id}",
        ))
    return HotList.from_fetch(result, items)
