"""POST /v1/anomalies - anomaly report over a transaction history"""

import time

from fastapi import APIRouter, Request

from twin_analytics.api.dependencies import get_request_id
from twin_analytics.api.v1.schemas import AnomalyReportResponse, TransactionsRequest
from twin_analytics.domain.aggregation import aggregate_monthly
from twin_analytics.domain.anomalies import detect_anomalies
from twin_analytics.infrastructure.observability.logging import log_analysis
from twin_analytics.infrastructure.observability.metrics import record_anomalies

router = APIRouter()


@router.post("/anomalies", response_model=AnomalyReportResponse)
def create_anomaly_report(request_body: TransactionsRequest, request: Request):
    """Detect spending spikes, missing deposits, new recurring charges and more"""
    start_time = time.time()
    request_id = get_request_id(request)

    transactions = request_body.domain_transactions()
    report = detect_anomalies(aggregate_monthly(transactions), transactions)

    record_anomalies(report.findings)
    log_analysis(
        request_id,
        "anomalies",
        "ok",
        (time.time() - start_time) * 1000,
        findings=len(report.findings),
        health_score=report.health_score,
    )

    return AnomalyReportResponse(**report.to_dict())
