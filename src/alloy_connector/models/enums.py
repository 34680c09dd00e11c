"""String enums for Alloy environments, outcomes and webhook event types."""

from enum import StrEnum


class AlloyEnvironment(StrEnum):
    PRODUCTION = "production"
    SANDBOX = "sandbox"
    CUSTOM = "custom"


class HttpMethod(StrEnum):
    GET = "get"
    POST = "post"
    PUT = "put"
    PATCH = "patch"
    DELETE = "delete"


class ResultShape(StrEnum):
    SINGLE = "single"
    COLLECTION = "collection"
    ACK = "ack"
    PAGINATED = "paginated"


class Outcome(StrEnum):
    APPROVED = "approved"
    DENIED = "denied"
    MANUAL_REVIEW = "manual_review"
    PENDING = "pending"
    ERROR = "error"


class RiskLevel(StrEnum):
    VERY_LOW = "very_low"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"
    CRITICAL = "critical"


class EntityType(StrEnum):
    INDIVIDUAL = "individual"
    BUSINESS = "business"
    TRUST = "trust"
    NON_PROFIT = "non_profit"
    GOVERNMENT = "government"


# --- Webhook event types, grouped by category ---


class EntityEvent(StrEnum):
    CREATED = "entity.created"
    UPDATED = "entity.updated"
    ARCHIVED = "entity.archived"
    RESTORED = "entity.restored"
    MERGED = "entity.merged"
    RISK_CHANGED = "entity.risk_changed"


class EvaluationEvent(StrEnum):
    STARTED = "evaluation.started"
    COMPLETED = "evaluation.completed"
    APPROVED = "evaluation.approved"
    DENIED = "evaluation.denied"
    PENDING_REVIEW = "evaluation.pending_review"
    FAILED = "evaluation.failed"
    MANUAL_REVIEW_REQUIRED = "evaluation.manual_review_required"


class ApplicationEvent(StrEnum):
    CREATED = "application.created"
    SUBMITTED = "application.submitted"
    APPROVED = "application.approved"
    DENIED = "application.denied"
    PENDING = "application.pending"
    UPDATED = "application.updated"
    ARCHIVED = "application.archived"


class DocumentEvent(StrEnum):
    UPLOADED = "document.uploaded"
    VERIFIED = "document.verified"
    FAILED = "document.failed"
    EXPIRED = "document.expired"
    REJECTED = "document.rejected"


class IdentityEvent(StrEnum):
    VERIFIED = "identity.verified"
    FAILED = "identity.failed"
    PENDING = "identity.pending"
    WATCHLIST_HIT = "identity.watchlist_hit"
    WATCHLIST_CLEARED = "identity.watchlist_cleared"


class BusinessEvent(StrEnum):
    VERIFIED = "business.verified"
    FAILED = "business.failed"
    KYB_COMPLETED = "business.kyb_completed"
    UPDATED = "business.updated"


class ReviewEvent(StrEnum):
    ASSIGNED = "review.assigned"
    COMPLETED = "review.completed"
    ESCALATED = "review.escalated"
    TIMEOUT = "review.timeout"


class CaseEvent(StrEnum):
    CREATED = "case.created"
    UPDATED = "case.updated"
    CLOSED = "case.closed"
    ESCALATED = "case.escalated"
    ASSIGNED = "case.assigned"


class RiskEvent(StrEnum):
    SCORE_CHANGED = "risk.score_changed"
    HIGH_DETECTED = "risk.high_detected"
    ALERT = "risk.alert"
    THRESHOLD_EXCEEDED = "risk.threshold_exceeded"


class DecisionEvent(StrEnum):
    MADE = "decision.made"
    OVERRIDDEN = "decision.overridden"
    ESCALATED = "decision.escalated"


class WatchlistEvent(StrEnum):
    NEW_HIT = "watchlist.new_hit"
    HIT_CONFIRMED = "watchlist.hit_confirmed"
    HIT_DISMISSED = "watchlist.hit_dismissed"
    MONITORING_ALERT = "watchlist.monitoring_alert"


class WebhookEvent(StrEnum):
    CREATED = "webhook.created"
    UPDATED = "webhook.updated"
    DELETED = "webhook.deleted"
    DELIVERY_SUCCESS = "webhook.delivery.success"
    DELIVERY_FAILED = "webhook.delivery.failed"


EVENT_CATEGORIES: dict[str, type[StrEnum]] = {
    "entity": EntityEvent,
    "evaluation": EvaluationEvent,
    "application": ApplicationEvent,
    "document": DocumentEvent,
    "identity": IdentityEvent,
    "business": BusinessEvent,
    "review": ReviewEvent,
    "case": CaseEvent,
    "risk": RiskEvent,
    "decision": DecisionEvent,
    "watchlist": WatchlistEvent,
    "webhook": WebhookEvent,
}

ALL_EVENT_TYPES: frozenset[str] = frozenset(
    member.value for enum_cls in EVENT_CATEGORIES.values() for member in enum_cls
)
