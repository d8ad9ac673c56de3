"""Prometheus metrics for the document control service.

Counters are incremented by the services at the point an operation
succeeds or is refused; the HTTP histogram is fed by the request middleware.
"""

from prometheus_client import Counter, Histogram

http_request_duration_seconds = Histogram(
    "doccontrol_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "status_code"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)

documents_created_total = Counter(
    "doccontrol_documents_created_total",
    "Documents created",
    ["numbered"]  # numbered: true|false
)

document_numbers_allocated_total = Counter(
    "doccontrol_document_numbers_allocated_total",
    "Document numbers handed out by the sequence allocator"
)

checkout_operations_total = Counter(
    "doccontrol_checkout_operations_total",
    "Checkout lock operations",
    ["operation", "outcome"]  # operation: checkout|checkin|cancel|force_cancel, outcome: ok|grace
)

workflow_transitions_total = Counter(
    "doccontrol_workflow_transitions_total",
    "Approval workflow transitions",
    ["from_status", "to_status"]
)

policy_refusals_total = Counter(
    "doccontrol_policy_refusals_total",
    "Operations refused by legal hold, retention, checkout or access rules",
    ["code"]
)

folder_template_applications_total = Counter(
    "doccontrol_folder_template_applications_total",
    "Folder template applications",
    ["outcome"]  # ok|inactive
)
