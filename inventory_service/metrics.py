from prometheus_client import Counter, Histogram

# Histogram: time spent applying one message, decode to commit
inventory_event_processing_duration_seconds = Histogram(
    "inventory_event_processing_duration_seconds",
    "Inventory event processing duration in seconds",
    buckets=(0.005, 0.01, 0.05, 0.1, 0.5, 1, 2, 5),
)

# Counter: terminal outcome of every event, labeled by category
inventory_events_total = Counter(
    "inventory_events_total",
    "Total number of inventory events handled",
    ["category", "outcome"],
)

inventory_stock_adjustments_total = Counter(
    "inventory_stock_adjustments_total",
    "Total number of stock line writes",
    ["source"],  # sale | adjustment
)

inventory_negative_stock_blocked_total = Counter(
    "inventory_negative_stock_blocked_total",
    "Total number of stock changes blocked by the negative stock policy",
)
