from __future__ import annotations

import math
from datetime import date
from typing import Dict, List, Optional, Sequence

from missionboard.core.errors import ValidationError
from missionboard.core.logging import log_event
from missionboard.features.scoring.service import RankingService, ranking_service
from missionboard.models.challenge import Payout
from missionboard.models.scoring import ParticipantScore


def prize_pool(entry_fee: int, participant_count: int) -> int:
    if entry_fee < 0 or participant_count < 0:
        raise ValidationError("entry_fee and participant_count must be >= 0")
    return entry_fee * participant_count


def compute_payouts(
    rankings: Sequence[ParticipantScore],
    entry_fee: int,
    distribution: Dict[int, float],
    participant_count: Optional[int] = None,
) -> List[Payout]:
    """
    Split the prize pool by final rank.

    Rank is the 1-based position in the ranked list. Each paid rank gets
    floor(pool * percent / 100); ranks with no percentage are omitted.
    """
    pool = prize_pool(entry_fee, len(rankings) if participant_count is None else participant_count)
    payouts: List[Payout] = []
    for index, score in enumerate(rankings):
        rank = index + 1
        percentage = distribution.get(rank, 0.0)
        if percentage > 0:
            amount = int(math.floor(pool * percentage / 100))
            payouts.append(Payout(user_id=score.user_id, rank=rank, percentage=percentage, amount=amount))
    return payouts


class PayoutService:
    def __init__(self, rankings: Optional[RankingService] = None):
        self._rankings = rankings or ranking_service

    def payouts_for_challenge(self, challenge_id: str, today: Optional[date] = None) -> dict:
        challenge = self._rankings.get_challenge(challenge_id)
        rankings = self._rankings.rank_challenge(challenge_id, today=today)
        payouts = compute_payouts(
            rankings,
            challenge.entry_fee,
            challenge.prize_distribution,
            participant_count=len(challenge.participant_ids),
        )
        pool = prize_pool(challenge.entry_fee, len(challenge.participant_ids))
        log_event(
            "info",
            "payouts.computed",
            challenge_id=challenge_id,
            event_type="payouts.computed",
            extra={"pool": pool, "paid_ranks": len(payouts)},
        )
        return {"prizePool": pool, "payouts": [payout.to_dict() for payout in payouts]}


# Singleton service
payout_service = PayoutService()
