"""Prometheus metrics for monitoring forecasts, alerts and savings recommendations"""

from prometheus_client import Counter, Histogram

# Engine metrics
engine_run_counter = Counter(
    "saverflow_engine_runs_total",
    "Total engine runs completed",
)

simulation_duration_histogram = Histogram(
    "saverflow_simulation_duration_seconds",
    "Wall time of a full engine run",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Findings
risk_alert_counter = Counter(
    "saverflow_risk_alerts_total",
    "Risk alerts emitted",
    ["severity"],  # critical | warning | info
)

anomaly_counter = Counter(
    "saverflow_anomalies_total",
    "Anomalies detected",
    ["type"],
)

# Recommendations
safe_to_save_counter = Counter(
    "saverflow_safe_to_save_total",
    "Safe-to-save outcomes",
    ["outcome"],  # recommended | withheld
)

runway_zone_counter = Counter(
    "saverflow_runway_zone_total",
    "Runway buffer zone per run",
    ["zone"],  # safe | caution | critical
)


def record_engine_run(result) -> None:
    """Record metrics for one EngineResult"""
    engine_run_counter.inc()
    simulation_duration_histogram.observe(result.duration_ms / 1000)

    for risk in result.risks:
        risk_alert_counter.labels(severity=risk.severity).inc()

    for anomaly in result.anomalies:
        anomaly_counter.labels(type=anomaly.type).inc()

    outcome = "recommended" if result.safe_to_save.amount > 0 else "withheld"
    safe_to_save_counter.labels(outcome=outcome).inc()

    runway_zone_counter.labels(zone=result.runway.buffer_zones.zone).inc()
