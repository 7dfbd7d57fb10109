"""Parent dashboard: a markdown comparison of several children's learning stats.

Everything here is deterministic; no model is involved.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Union

Number = Union[int, float]

NO_DATA_SUMMARY = (
    "Moe needs learning data to compare your children. Once they log study sessions, "
    "you'll see highlights, gaps, and next steps here."
)

NEXT_STEPS = [
    "- Schedule a 15-minute family study block to help everyone log fresh progress.",
    "- Rotate Moe's Word Bank missions so each learner practices pronunciation and spelling.",
    "- Revisit goals in the parent dashboard next week to see how the gaps close.",
]

LOW_STREAK_PERCENT = 25
IDLE_HOURS = 0.25


@dataclass
class ChildMetrics:
    id: str
    name: str
    words_learned: Number = 0
    hours_learned: Number = 0
    weekly_progress: Number = 0
    total_sessions: Number = 0
    recent_words: List[str] = field(default_factory=list)


def _metric(value: Any) -> Number:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value if math.isfinite(value) else 0


def _num(value: Number) -> Number:
    """Render whole floats without a trailing ``.0``."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _plural(value: Number) -> str:
    return "" if value == 1 else "s"


def format_hours(value: Number) -> str:
    return f"{_num(_round_half_up(value * 10) / 10)} hour{_plural(value)}"


def format_words(value: Number) -> str:
    return f"{_num(value)} word{_plural(value)}"


def normalize_children(children: Sequence[Any]) -> List[ChildMetrics]:
    normalized = []
    for index, raw in enumerate(children):
        child: Dict[str, Any] = raw if isinstance(raw, dict) else {}
        name = child.get("name")
        name = name.strip() if isinstance(name, str) else ""
        recent = child.get("recentWords")
        normalized.append(ChildMetrics(
            id=str(child["id"]) if child.get("id") is not None else f"child-{index}",
            name=name or "Unknown Learner",
            words_learned=_metric(child.get("wordsLearned")),
            hours_learned=_metric(child.get("hoursLearned")),
            weekly_progress=_metric(child.get("weeklyProgress")),
            total_sessions=_metric(child.get("totalSessions")),
            recent_words=[w for w in recent if isinstance(w, str) and w.strip()] if isinstance(recent, list) else [],
        ))
    return normalized


def _names(children: List[ChildMetrics]) -> str:
    return ", ".join(c.name for c in children)


def compare_children(children: Sequence[Any]) -> str:
    """Build the markdown summary shown on the parent dashboard."""
    kids = normalize_children(children)
    if not kids:
        return NO_DATA_SUMMARY

    count = len(kids)
    average_words = sum(c.words_learned for c in kids) / count
    average_hours = sum(c.hours_learned for c in kids) / count
    average_weekly = sum(c.weekly_progress for c in kids) / count

    # stable sorts: ties keep the order the children were sent in
    words_leaders = sorted(kids, key=lambda c: c.words_learned, reverse=True)
    practice_leaders = sorted(kids, key=lambda c: c.hours_learned, reverse=True)

    top_vocabulary, bottom_vocabulary = words_leaders[0], words_leaders[-1]
    vocabulary_gap = top_vocabulary.words_learned - bottom_vocabulary.words_learned
    top_practice, bottom_practice = practice_leaders[0], practice_leaders[-1]
    practice_gap = top_practice.hours_learned - bottom_practice.hours_learned

    lines = [
        f"**Moe compared {count} learner{_plural(count)}.**",
        "",
        "### Quick Highlights",
        "",
        f"- **Vocabulary leader:** {top_vocabulary.name} with {format_words(top_vocabulary.words_learned)} logged.",
        f"- **Study-time leader:** {top_practice.name} at {format_hours(top_practice.hours_learned)} total.",
        f"- **Average pace:** {format_words(_round_half_up(average_words))}, {format_hours(average_hours)}, "
        f"and {_round_half_up(average_weekly)}% weekly streaks.",
    ]
    if vocabulary_gap > 0 and count > 1:
        lines.append(
            f"- **Vocabulary gap:** {top_vocabulary.name} is ahead of {bottom_vocabulary.name} "
            f"by {format_words(vocabulary_gap)}."
        )
    if practice_gap > 0 and count > 1:
        lines.append(
            f"- **Practice gap:** {top_practice.name} has {format_hours(_round_half_up(practice_gap * 10) / 10)} "
            f"more study time than {bottom_practice.name}."
        )

    behind = [c for c in kids if c.words_learned < average_words * 0.5]
    low_streak = [c for c in kids if c.weekly_progress < LOW_STREAK_PERCENT]
    idle = [c for c in kids if c.total_sessions == 0 or c.hours_learned < IDLE_HOURS]

    support = []
    if behind:
        support.append(
            f"- Vocabulary boost needed for {_names(behind)}. "
            "Encourage daily \"Hear It\" and Word Bank missions to close the gap."
        )
    if low_streak:
        support.append(
            f"- Weekly streaks are under 25% for {_names(low_streak)}. "
            "Set a simple goal (one reading or math session) to rebuild momentum."
        )
    if idle:
        support.append(
            f"- Missing study time: {_names(idle)} barely logged any minutes this week. "
            "Schedule a short guided session."
        )
    if support:
        lines += ["", "### Where Support Is Needed", "", *support]

    wins = []
    for child in kids:
        if child.words_learned >= average_words and child.weekly_progress >= average_weekly:
            wins.append(f"- {child.name} is on track, use their progress to motivate siblings.")
        elif child.recent_words:
            added = len(child.recent_words)
            wins.append(
                f"- {child.name} added {added} new word{_plural(added)}: {', '.join(child.recent_words[:3])}."
            )
    if wins:
        lines += ["", "### Celebrate Wins", "", *wins]

    lines += ["", "### Next Steps", "", *NEXT_STEPS]
    return "\n".join(lines)
