"""
Формирование сводки о новых эмодзи.
"""

from datetime import datetime, timezone
from typing import List, Optional, Sequence

from emoji_notifier.models import Asset, Summary

SUMMARY_TITLE = "New Emoji"
SUMMARY_COLOR = 0x5ae9ff

# лимит Discord на embed.description
DESCRIPTION_LIMIT = 4096


def format_asset_line(asset: Asset) -> str:
    return f"{asset.render()} (`:{asset.name}:`)"


def build_summary(
    guild_name: str,
    assets: Sequence[Asset],
    now: Optional[datetime] = None
) -> Summary:
    """
    Сводка для одной гильдии за окно агрегации.

    Args:
        guild_name: Название гильдии (подпись в footer)
        assets: Новые эмодзи после дедупликации
        now: Время сводки (по умолчанию - текущее, UTC)
    """
    timestamp = now or datetime.now(timezone.utc)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)

    return Summary(
        title=SUMMARY_TITLE,
        count=len(assets),
        lines=[format_asset_line(asset) for asset in assets],
        footer=guild_name,
        timestamp=timestamp.astimezone(timezone.utc),
        color=SUMMARY_COLOR,
        header=f":new: **{len(assets)} emoji(s)** are added to the server!",
    )


def split_description(summary: Summary, limit: int = DESCRIPTION_LIMIT) -> List[str]:
    """
    Разбиение описания сводки на страницы не длиннее limit символов.

    Строка эмодзи не разрывается; заголовок остается на первой странице.
    """
    pages: List[List[str]] = [[]]
    size = len(summary.header) + 2
    for line in summary.lines:
        if pages[-1] and size + len(line) + 1 > limit:
            pages.append([])
            size = 0
        pages[-1].append(line)
        size += len(line) + 1

    descriptions = ["\n".join(page) for page in pages]
    descriptions[0] = f"{summary.header}\n\n{descriptions[0]}"
    return descriptions
