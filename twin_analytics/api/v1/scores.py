"""POST /v1/scores - monthly aggregation and five-pillar scores"""

import logging
import time

from fastapi import APIRouter, HTTPException, Request

from twin_analytics.api.dependencies import get_request_id
from twin_analytics.api.v1.schemas import ScoresResponse, TransactionsRequest
from twin_analytics.domain.aggregation import aggregate_monthly
from twin_analytics.domain.exceptions import ValidationError
from twin_analytics.domain.scoring import calculate_scores
from twin_analytics.infrastructure.observability.logging import log_analysis
from twin_analytics.infrastructure.observability.metrics import record_scores

router = APIRouter()


@router.post("/scores", response_model=ScoresResponse)
def create_scores(request_body: TransactionsRequest, request: Request):
    """
    Aggregate a transaction history by month and score it.

    Histories under two months return the neutral score set.
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        months = aggregate_monthly(request_body.domain_transactions())
        scores = calculate_scores(months)

    except ValidationError as e:
        logging.warning(f"Invalid scoring input: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    record_scores("scores", scores.overall)
    log_analysis(request_id, "scores", "ok", (time.time() - start_time) * 1000, months=len(months))

    return ScoresResponse(months=[m.to_dict() for m in months], scores=scores.to_dict())
