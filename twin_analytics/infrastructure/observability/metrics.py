"""Prometheus metrics for analysis volume, score distribution, and anomaly findings"""

from typing import Iterable

from prometheus_client import Counter, Histogram

from twin_analytics.domain.models import Anomaly

# Analysis metrics
analysis_counter = Counter(
    "twin_analysis_total",
    "Total analyses run",
    ["operation"],  # scores | stress_test | time_machine | anomalies
)

stress_scenario_counter = Counter(
    "twin_stress_scenario_total",
    "Stress scenarios run by id",
    ["scenario"],
)

anomaly_findings_counter = Counter(
    "twin_anomaly_findings_total",
    "Anomaly findings emitted",
    ["category", "severity"],
)

overall_score_histogram = Histogram(
    "twin_overall_score",
    "Distribution of computed overall scores",
    buckets=[10, 20, 30, 40, 50, 60, 70, 80, 90, 100],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_scores(operation: str, overall: float) -> None:
    """Record an analysis run and the overall score it produced"""
    analysis_counter.labels(operation=operation).inc()
    overall_score_histogram.observe(overall)


def record_anomalies(findings: Iterable[Anomaly]) -> None:
    analysis_counter.labels(operation="anomalies").inc()
    for finding in findings:
        anomaly_findings_counter.labels(category=finding.category, severity=finding.severity).inc()
