"""
排名服務：依成績排序玩家

排名規則：
1. 總桿數少的在前
2. 總桿數相同時，打比較多洞的在前
3. 仍然相同時，維持加入順序（position）
"""
from dataclasses import dataclass
from typing import Iterable, List, Tuple

from models import Player
from services.scoring_service import PlayerTotals


@dataclass(frozen=True)
class Standing:
    rank: int
    player: Player
    totals: PlayerTotals


def rank_players(rows: Iterable[Tuple[Player, PlayerTotals]]) -> List[Standing]:
    """
    把 (Player, PlayerTotals) 排成名次

    注意：「打比較多洞的在前」代表 70 桿 18 洞會排在 70 桿 17 洞前面，
    但也會讓沒打完的球局在某些情況下排在前面。保留原本的規則，沒有改。

    範例：
        (70, 18), (70, 17), (68, 18) -> (68, 18), (70, 18), (70, 17)
    """
    ordered = sorted(
        rows,
        key=lambda row: (row[1].total_strokes, -row[1].holes_played, row[0].position)
    )
    return [
        Standing(rank=index + 1, player=player, totals=totals)
        for index, (player, totals) in enumerate(ordered)
    ]
