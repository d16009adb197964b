"""Privacy score endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...schemas.onboarding import PrivacyScoreResponse, ScoreBreakdownModel, ScoreWeightsModel
from ...services.container import ServiceContainer
from ...services.session import SessionAccessor, require_user_id
from ..dependencies import get_services, get_session

router = APIRouter(tags=["privacy-score"])


@router.get("/privacy-score", response_model=PrivacyScoreResponse, status_code=status.HTTP_200_OK)
def get_privacy_score(
    services: ServiceContainer = Depends(get_services),
    session: SessionAccessor = Depends(get_session),
) -> PrivacyScoreResponse:
    score = services.scores.score_for(require_user_id(session))
    return PrivacyScoreResponse(
        total=score.total,
        individual=ScoreBreakdownModel(
            guides=score.individual.guides,
            address=score.individual.address,
            urls=score.individual.urls,
        ),
        weights=ScoreWeightsModel(
            guides=score.weights.guides,
            address=score.weights.address,
            urls=score.weights.urls,
        ),
    )
