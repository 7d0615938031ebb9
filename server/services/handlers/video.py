"""Video platform handlers - Bilibili."""

from typing import TYPE_CHECKING

from services.handlers.common import HotList, RouteOptions, hot_item, require, to_millis

if TYPE_CHECKING:
    from services.fetcher import HttpFetcher

# Ranking partitions accepted by the ``type`` query parameter.
BILIBILI_PARTITIONS = {
    "0": "全站",
    "1": "动画",
    "3": "音乐",
    "4": "游戏",
    "5": "娱乐",
    "36": "知识",
    "119": "鬼畜",
    "129": "舞蹈",
    "155": "时尚",
    "160": "生活",
    "181": "影视",
    "188": "科技",
    "211": "美食",
    "217": "动物圈",
    "234": "运动",
}


async def handle_bilibili(fetcher: "HttpFetcher", options: RouteOptions) -> HotList:
    """Bilibili ranking for the requested partition (defaults to the whole site)."""
    partition = options.params.get("type", "0")
    if partition not in BILIBILI_PARTITIONS:
        partition = "0"

    result = await fetcher.get(
        "https://api.bilibili.com/x/web-interface/ranking/v2",
        params={"rid": partition, "type": "all"},
        headers={"Referer": "https://www.bilibili.com/ranking/all"},
        no_cache=options.no_cache,
        validate=require("data", "list", code=0),
    )

    items = []
    for video in result.data["data"]["list"]:
        bvid = video["bvid"]
        stat = video.get("stat") or {}
        items.append(hot_item(
            bvid,
            video["title"],
            video.get("short_link_v2") or f"https://www.bilibili.com/video/{bvid}",
            cover=(video.get("pic") or "").replace("http:", "https:") or None,
            author=(video.get("owner") or {}).get("name"),
            desc=video.get("desc") or "该视频暂无简介",
            hot=stat.get("view"),
            timestamp=to_millis(video.get("pubdate")),
            mobile_url=f"https://m.bilibili.com/video/{bvid}",
        ))
    return HotList.from_fetch(result, items, type=f"热榜 · {BILIBILI_PARTITIONS[partition]}")
