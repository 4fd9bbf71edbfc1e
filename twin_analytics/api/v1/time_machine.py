"""Time machine presets and projections"""

import logging
import time
from typing import List

from fastapi import APIRouter, HTTPException, Request

from twin_analytics.api.dependencies import get_request_id
from twin_analytics.api.v1.schemas import ModifierSchema, TimeMachineRequest, TimeMachineResponse
from twin_analytics.config import settings
from twin_analytics.domain.aggregation import aggregate_monthly
from twin_analytics.domain.exceptions import ValidationError
from twin_analytics.domain.time_machine import list_presets, simulate
from twin_analytics.infrastructure.observability.logging import log_analysis
from twin_analytics.infrastructure.observability.metrics import record_scores

router = APIRouter()


@router.get("/time-machine/presets", response_model=List[ModifierSchema])
def get_presets():
    """List preset modifier bundles without simulating"""
    return [ModifierSchema(id=preset_id, **vars(modifier)) for preset_id, modifier in list_presets().items()]


@router.post("/time-machine", response_model=TimeMachineResponse)
def create_projection(request_body: TimeMachineRequest, request: Request):
    """Project the supplied history forward under the given modifiers"""
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        transactions = request_body.domain_transactions()
        modifiers = [m.to_domain() for m in request_body.modifiers]
        months = aggregate_monthly(transactions)
        result = simulate(
            months,
            transactions,
            modifiers,
            months_forward=request_body.months_forward,
            anchor_month=request_body.anchor_month,
            max_horizon=settings.max_horizon_months,
        )

    except ValidationError as e:
        logging.warning(f"Invalid time machine input: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    record_scores("time_machine", result.projected_scores.overall)
    log_analysis(
        request_id,
        "time_machine",
        "ok",
        (time.time() - start_time) * 1000,
        months_forward=result.months_projected,
        modifiers=len(modifiers),
    )

    return TimeMachineResponse(**result.to_dict())
