import enum


class Outcome(enum.Enum):
    """Terminal state of one event. All of them consume the message."""

    APPLIED = "APPLIED"
    DUPLICATE_SKIPPED = "DUPLICATE_SKIPPED"
    VALIDATION_REJECTED = "VALIDATION_REJECTED"
    POLICY_REJECTED = "POLICY_REJECTED"
