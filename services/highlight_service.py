"""
Score highlights: derived records for notable hole scores.

Only created the first time a hole is recorded for a player; corrections to an
existing entry never produce a second highlight. Highlights belong to one
player and are removed with them.
"""
from typing import List, Optional

from sqlalchemy.orm import Session

from models import HighlightKind, Player, ScoreEntry, ScoreHighlight

_STROKE_HIGHLIGHTS = {
    1: (HighlightKind.HOLE_IN_ONE, "HOLE IN ONE! {name} just aced hole {hole}!"),
    2: (HighlightKind.EAGLE, "Eagle! {name} scored 2 on hole {hole}!"),
    3: (HighlightKind.BIRDIE, "Birdie! {name} scored 3 on hole {hole}!"),
}


def classify_score(strokes: int, is_first_score: bool) -> Optional[HighlightKind]:
    # Par is not tracked here, so eagle and birdie assume a par 4.
    if strokes in _STROKE_HIGHLIGHTS:
        return _STROKE_HIGHLIGHTS[strokes][0]
    if is_first_score:
        return HighlightKind.FIRST_SCORE
    return None


def record_highlight(player: Player, entry: ScoreEntry, is_first_score: bool,
                     db: Session) -> Optional[ScoreHighlight]:
    """Add a highlight for a newly created score entry, if it is notable."""
    kind = classify_score(entry.strokes, is_first_score)
    if kind is None:
        return None

    if kind == HighlightKind.FIRST_SCORE:
        message = f"{player.name} just recorded their first score of the round!"
    else:
        message = _STROKE_HIGHLIGHTS[entry.strokes][1].format(
            name=player.name, hole=entry.hole_number
        )

    highlight = ScoreHighlight(
        session_id=player.session_id,
        player_id=player.id,
        hole_number=entry.hole_number,
        kind=kind,
        message=message
    )
    db.add(highlight)
    return highlight


def list_highlights(session_id, db: Session) -> List[ScoreHighlight]:
    return db.query(ScoreHighlight).filter(
        ScoreHighlight.session_id == session_id
    ).order_by(ScoreHighlight.created_at).all()
