"""Stress test catalog and runs"""

import logging
import time
from typing import List

from fastapi import APIRouter, HTTPException, Request

from twin_analytics.api.dependencies import get_request_id
from twin_analytics.api.v1.schemas import ScenarioSchema, StressTestRequest, StressTestResponse
from twin_analytics.domain.aggregation import aggregate_monthly
from twin_analytics.domain.exceptions import ScenarioNotFoundError, ValidationError
from twin_analytics.domain.scoring import calculate_scores
from twin_analytics.domain.stress_test import list_scenarios, run_stress_test
from twin_analytics.infrastructure.observability.logging import log_analysis
from twin_analytics.infrastructure.observability.metrics import record_scores, stress_scenario_counter

router = APIRouter()


@router.get("/stress/scenarios", response_model=List[ScenarioSchema])
def get_scenarios():
    """List built-in stress scenarios without running anything"""
    return [ScenarioSchema(id=s.id, label=s.label, description=s.description) for s in list_scenarios()]


@router.post("/stress/{scenario_id}", response_model=StressTestResponse)
def create_stress_test(scenario_id: str, request_body: StressTestRequest, request: Request):
    """
    Run one stress scenario against the supplied history.

    Flow:
    1. Aggregate transactions by month
    2. Score the baseline history
    3. Apply the scenario to a copy and re-score it
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        months = aggregate_monthly(request_body.domain_transactions())
        baseline = calculate_scores(months)
        result = run_stress_test(baseline, months, scenario_id, request_body.stress_input())

    except ScenarioNotFoundError as e:
        logging.warning(f"Unknown scenario: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=404, detail=str(e))

    except ValidationError as e:
        logging.warning(f"Invalid stress test input: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    stress_scenario_counter.labels(scenario=result.scenario_id).inc()
    record_scores("stress_test", result.stressed_scores.overall)
    log_analysis(
        request_id,
        "stress_test",
        result.impact_severity,
        (time.time() - start_time) * 1000,
        scenario_id=result.scenario_id,
    )

    return StressTestResponse(**result.to_dict())
