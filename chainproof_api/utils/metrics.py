"""Prometheus metrics."""

from prometheus_client import Counter, Gauge, Histogram

# Protection metrics
protection_requests = Counter(
    "chainproof_protection_requests_total",
    "Total protection requests",
    ["outcome"],
)

protection_duration = Histogram(
    "chainproof_protection_duration_seconds",
    "Protection request duration",
)

active_protections = Gauge(
    "chainproof_active_protections",
    "Protection requests in progress",
)

optional_stage_failures = Counter(
    "chainproof_optional_stage_failures_total",
    "Optional pipeline stages that failed and were skipped",
    ["stage"],
)

# Certificate metrics
certificates_issued = Counter(
    "chainproof_certificates_issued_total",
    "Total certificates issued",
)

certificate_verifications = Counter(
    "chainproof_certificate_verifications_total",
    "Total certificate verifications",
    ["result"],
)

# Revocation metrics
revocations = Counter(
    "chainproof_revocations_total",
    "Total revocations",
    ["resource_type"],
)
