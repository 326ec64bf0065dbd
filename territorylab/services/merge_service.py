"""
Merge Service - reconcile regenerated content with starred selections.

Merging is positional: territory i of the new output lines up with territory
i of the previous output, because new ids are freshly minted on every
generation. A regeneration that returns a different number of territories
cannot be lined up and raises MergeError.

Rules per position i:
- Previous territory starred: keep it verbatim, discard the new one entirely
  (its unstarred headlines are frozen too).
- Otherwise: keep the previous id; per headline index, keep the previous
  headline if starred, else take the new one.

Also holds the StarredItems toggle helpers.
"""

import logging
from typing import Dict, List

from ..core.exceptions import TerritoryLabError
from .models import GeneratedOutput, Headline, StarredItems, Territory

logger = logging.getLogger(__name__)


class MergeError(TerritoryLabError):
    """Regenerated output cannot be lined up with the previous output."""


# ============================================================================
# Merge
# ============================================================================

def _merge_headlines(
    previous: List[Headline],
    new: List[Headline],
    starred_indices: List[int]
) -> List[Headline]:
    kept = {h for h in starred_indices if 0 <= h < len(previous)}
    count = max([len(new)] + [h + 1 for h in kept])

    merged = []
    for h in range(count):
        if h in kept:
            merged.append(previous[h].model_copy(deep=True))
        elif h < len(new):
            merged.append(new[h].model_copy(update={"starred": False}, deep=True))
    return merged


def _merge_territory(previous: Territory, new: Territory, starred: StarredItems) -> Territory:
    if starred.is_territory_starred(previous.id):
        return previous.model_copy(deep=True)

    headlines = _merge_headlines(
        previous.headlines,
        new.headlines,
        starred.headlines.get(previous.id, []),
    )
    merged = new.model_copy(update={"id": previous.id, "starred": False}, deep=True)
    merged.headlines = headlines
    return merged


def merge_regenerated_output(
    new_output: GeneratedOutput,
    previous_output: GeneratedOutput,
    starred: StarredItems
) -> GeneratedOutput:
    """
    Merge a regeneration into the previous output.

    Neither input is modified. Compliance and overall confidence come from
    the new output, unless every territory is pinned.

    Args:
        new_output: Freshly generated (and scored) output
        previous_output: Output the user starred items in
        starred: Pinned territory ids and headline indices

    Returns:
        Merged GeneratedOutput

    Raises:
        MergeError: If the territory counts differ
    """
    if len(new_output.territories) != len(previous_output.territories):
        raise MergeError(
            f"Cannot merge regeneration: {len(new_output.territories)} new territories "
            f"vs {len(previous_output.territories)} previous"
        )

    territories = [
        _merge_territory(previous, new, starred)
        for previous, new in zip(previous_output.territories, new_output.territories)
    ]

    pinned = sum(1 for t in previous_output.territories if starred.is_territory_starred(t.id))
    logger.info(f"Merged regeneration: {pinned}/{len(territories)} territories pinned")

    # Nothing new survives a full pin, so the previous compliance still applies
    source = previous_output if pinned == len(territories) else new_output

    return GeneratedOutput(
        territories=territories,
        compliance=source.compliance.model_copy(deep=True),
        overall_confidence=source.overall_confidence,
    )


def mark_starred(output: GeneratedOutput, starred: StarredItems) -> GeneratedOutput:
    """Set territory/headline starred flags from StarredItems, in place."""
    for territory in output.territories:
        territory.starred = starred.is_territory_starred(territory.id)
        for index, headline in enumerate(territory.headlines):
            headline.starred = starred.is_headline_starred(territory.id, index)
    return output


# ============================================================================
# Starred item helpers
# ============================================================================

def toggle_territory_starred(starred: StarredItems, territory_id: str) -> StarredItems:
    """
    Star or un-star a territory.

    Un-starring also clears every starred headline of that territory.
    """
    if territory_id in starred.territories:
        return StarredItems(
            territories=[t for t in starred.territories if t != territory_id],
            headlines={k: list(v) for k, v in starred.headlines.items() if k != territory_id},
        )
    return StarredItems(
        territories=starred.territories + [territory_id],
        headlines={k: list(v) for k, v in starred.headlines.items()},
    )


def toggle_headline_starred(starred: StarredItems, territory_id: str, headline_index: int) -> StarredItems:
    """Star or un-star one headline; an emptied territory entry is removed."""
    headlines = {k: list(v) for k, v in starred.headlines.items()}
    indices = headlines.get(territory_id, [])

    if headline_index in indices:
        remaining = [i for i in indices if i != headline_index]
        if remaining:
            headlines[territory_id] = remaining
        else:
            headlines.pop(territory_id, None)
    else:
        headlines[territory_id] = indices + [headline_index]

    return StarredItems(territories=list(starred.territories), headlines=headlines)


def clear_starred_items() -> StarredItems:
    return StarredItems()


def starred_counts(starred: StarredItems) -> Dict[str, int]:
    return {
        "territories": len(starred.territories),
        "headlines": sum(len(indices) for indices in starred.headlines.values()),
    }
