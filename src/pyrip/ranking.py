"""Fuzzy matching and ordering of process entities."""

from collections.abc import Callable, Iterable

from pyrip.models import ProcessEntity, RankedEntry, RankedView, SortField

NO_MATCH = 0

# Scoring weights
MATCH = 16
CONSECUTIVE = 8
BOUNDARY = 8
GAP_START = -3
GAP_EXTEND = -1
LEADING_CAP = 8

SEPARATORS = frozenset("-_./: ")

# Primary sort keys; ascending order after the key is applied
SORT_KEYS: dict[SortField, Callable[[ProcessEntity], tuple]] = {
    SortField.CPU: lambda e: (-e.cpu_percent,),
    SortField.MEM: lambda e: (-e.memory_bytes,),
    SortField.PID: lambda e: (e.pid,),
    SortField.NAME: lambda e: (e.name.casefold(),),
    SortField.PORT: lambda e: (0, min(e.ports)) if e.ports else (1, 0),
}


def _is_boundary(target: str, index: int) -> bool:
    """Check whether a position starts a word inside target."""
    if index == 0:
        return True
    prev, cur = target[index - 1], target[index]
    if prev in SEPARATORS:
        return True
    return prev.isdigit() != cur.isdigit()


def _match_positions(query: str, target: str) -> list[int] | None:
    """Find the tightest window where query is a subsequence of target."""
    qi = 0
    end = -1
    for ti, ch in enumerate(target):
        if ch == query[qi]:
            qi += 1
            if qi == len(query):
                end = ti
                break
    if end < 0:
        return None

    # Walk back from the earliest end to shrink the window
    qi = len(query) - 1
    start = end
    for ti in range(end, -1, -1):
        if target[ti] == query[qi]:
            qi -= 1
            if qi < 0:
                start = ti
                break

    positions: list[int] = []
    qi = 0
    for ti in range(start, end + 1):
        if qi < len(query) and target[ti] == query[qi]:
            positions.append(ti)
            qi += 1
    return positions


def fuzzy_score(query: str, target: str) -> int:
    """
    Score target against query as a case-insensitive subsequence match.

    Returns NO_MATCH when the query characters do not all appear in order.
    Otherwise the score is positive: contiguous runs and matches at the
    start of a word score higher, gaps and a late start score lower.
    """
    if not query:
        return NO_MATCH
    query = query.lower()
    target = target.lower()
    if len(query) > len(target):
        return NO_MATCH

    positions = _match_positions(query, target)
    if positions is None:
        return NO_MATCH

    score = 0
    prev: int | None = None
    for pos in positions:
        score += MATCH
        if _is_boundary(target, pos):
            score += BOUNDARY
        if prev is not None:
            gap = pos - prev - 1
            if gap == 0:
                score += CONSECUTIVE
            else:
                score += GAP_START + GAP_EXTEND * (gap - 1)
        prev = pos
    score -= min(positions[0], LEADING_CAP)
    return max(score, 1)


def score_entity(entity: ProcessEntity, query: str) -> int:
    """Best score over the entity's name and, in ports mode, its ports."""
    best = fuzzy_score(query, entity.name)
    for label in entity.port_labels:
        best = max(best, fuzzy_score(query, label))
    return best


def rank(entities: Iterable[ProcessEntity], query: str, sort_field: SortField) -> RankedView:
    """
    Filter and order entities for display.

    With an empty query every entity is kept with a neutral score. Ties on
    the sort field are broken by score (descending), then pid.
    """
    entities = tuple(entities)
    universe = frozenset(entity.pid for entity in entities)

    if query:
        scored = [(entity, score_entity(entity, query)) for entity in entities]
        scored = [(entity, score) for entity, score in scored if score > NO_MATCH]
    else:
        scored = [(entity, NO_MATCH) for entity in entities]

    primary = SORT_KEYS[sort_field]
    scored.sort(key=lambda item: (*primary(item[0]), -item[1], item[0].pid))

    return RankedView(
        entries=tuple(RankedEntry(entity=entity, score=score) for entity, score in scored),
        universe=universe,
    )


def next_sort_field(current: SortField, ports_mode: bool = False) -> SortField:
    """Cycle to the next sort field, skipping PORT outside ports mode."""
    fields = [f for f in SortField if ports_mode or f is not SortField.PORT]
    if current not in fields:
        return fields[0]
    return fields[(fields.index(current) + 1) % len(fields)]
