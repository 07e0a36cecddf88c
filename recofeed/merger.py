import random
from typing import List, Optional

from recofeed.models import RecommendationCandidate


def merge_candidates(
    existing: List[RecommendationCandidate],
    new_batch: List[RecommendationCandidate],
) -> List[RecommendationCandidate]:
    """
    Append a batch to the loaded list, keeping the first occurrence per external_id.

    Existing entries win over new ones with the same id, so merging the same
    batch twice changes nothing after the first merge. Neither input is mutated.
    """
    merged: List[RecommendationCandidate] = []
    seen = set()
    for candidate in list(existing) + list(new_batch):
        if candidate.external_id in seen:
            continue
        seen.add(candidate.external_id)
        merged.append(candidate)
    return merged


def order_batch(
    batch: List[RecommendationCandidate],
    seed: Optional[int] = None,
) -> List[RecommendationCandidate]:
    """Provider order when `seed` is None, otherwise a reproducible shuffle."""
    ordered = list(batch)
    if seed is not None:
        random.Random(seed).shuffle(ordered)
    return ordered
