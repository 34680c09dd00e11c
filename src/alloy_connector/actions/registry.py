"""Declarative table of every Alloy REST operation exposed as an action.

Each ``(resource, operation)`` pair maps to one :class:`OperationSpec`. Path
placeholders name the action parameters they are filled from, so
``/v1/entities/{entity_token}`` requires an ``entity_token`` parameter.
"""

from __future__ import annotations

import string
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

from alloy_connector.errors.exceptions import UnknownOperationError
from alloy_connector.models.enums import HttpMethod, ResultShape

Params = dict[str, Any]
Builder = Callable[[Params], dict[str, Any] | None]


@dataclass(frozen=True)
class OperationSpec:
    """How one action maps onto an Alloy endpoint."""

    method: HttpMethod
    path: str
    shape: ResultShape = ResultShape.SINGLE
    body: Builder | None = None
    query: Builder | None = None
    required: tuple[str, ...] = ()
    # Resource category whose wrapper key holds collection records.
    collection: str | None = None
    # Parameter echoed back in the acknowledgement of a delete.
    ack_param: str | None = None
    # Extra keys merged into a single-item result.
    merge: dict[str, Any] = field(default_factory=dict)
    uses_default_workflow: bool = False
    # Dispatcher method used instead of a plain JSON request.
    handler: str | None = None

    @property
    def path_params(self) -> tuple[str, ...]:
        return tuple(
            name for _, name, _, _ in string.Formatter().parse(self.path) if name
        )

    @property
    def required_params(self) -> tuple[str, ...]:
        return self.path_params + tuple(p for p in self.required if p not in self.path_params)

    @property
    def idempotent(self) -> bool:
        return self.method in (HttpMethod.GET, HttpMethod.PUT, HttpMethod.DELETE)

    def render_path(self, params: Params) -> str:
        values = {name: quote(str(params[name]), safe="") for name in self.path_params}
        return self.path.format(**values)

    def build_body(self, params: Params) -> dict[str, Any] | None:
        return self.body(params) if self.body else None

    def build_query(self, params: Params) -> dict[str, Any] | None:
        return self.query(params) if self.query else None


# ---------------------------------------------------------------------------
# Body / query builders
# ---------------------------------------------------------------------------


def _data(name: str) -> Builder:
    """Body is the object passed in parameter *name* (empty when absent)."""
    return lambda params: dict(params.get(name) or {})


def _fields(**mapping: str) -> Builder:
    """Body built from named parameters, absent ones sent as empty strings."""
    return lambda params: {key: params.get(src, "") for key, src in mapping.items()}


def _const(**values: Any) -> Builder:
    return lambda params: dict(values)


def _entity_create(params: Params) -> dict[str, Any]:
    body = {**(params.get("entity_data") or {}), **(params.get("additional_fields") or {})}
    if params.get("external_id"):
        body["external_entity_id"] = params["external_id"]
    return body


def _entity_search(params: Params) -> dict[str, Any]:
    query: dict[str, Any] = {"q": params["search_query"]}
    if params.get("search_fields"):
        query["fields"] = ",".join(params["search_fields"])
    return query


def _evaluation_run(params: Params) -> dict[str, Any]:
    body = {"entity_token": params["entity_token"], **(params.get("evaluation_data") or {})}
    if params.get("workflow_token"):
        body["workflow_token"] = params["workflow_token"]
    return body


def _manual_review(params: Params) -> dict[str, Any]:
    body = {"decision": params["decision"]}
    if params.get("reason"):
        body["reason"] = params["reason"]
    return body


def _merge(params: Params) -> dict[str, Any]:
    return {
        "primary_entity_token": params["primary_entity_token"],
        "secondary_entity_token": params["secondary_entity_token"],
    }


# ---------------------------------------------------------------------------
# OperationSpec constructors
# ---------------------------------------------------------------------------


def _get(path: str, **kwargs: Any) -> OperationSpec:
    return OperationSpec(HttpMethod.GET, path, **kwargs)


def _post(path: str, body: Builder | None = None, **kwargs: Any) -> OperationSpec:
    return OperationSpec(HttpMethod.POST, path, body=body, **kwargs)


def _put(path: str, body: Builder, **kwargs: Any) -> OperationSpec:
    return OperationSpec(HttpMethod.PUT, path, body=body, **kwargs)


def _patch(path: str, body: Builder, **kwargs: Any) -> OperationSpec:
    return OperationSpec(HttpMethod.PATCH, path, body=body, **kwargs)


def _delete(path: str, ack_param: str | None = None) -> OperationSpec:
    shape = ResultShape.ACK if ack_param else ResultShape.SINGLE
    return OperationSpec(HttpMethod.DELETE, path, shape=shape, ack_param=ack_param)


def _collection(path: str, category: str, **kwargs: Any) -> OperationSpec:
    return OperationSpec(
        HttpMethod.GET, path, shape=ResultShape.COLLECTION, collection=category, **kwargs
    )


def _paginated(path: str) -> OperationSpec:
    return OperationSpec(HttpMethod.GET, path, shape=ResultShape.PAGINATED)


_REASON = _fields(reason="reason")

OPERATIONS: dict[str, dict[str, OperationSpec]] = {
    "entity": {
        "create": _post("/v1/entities", _entity_create, required=("entity_data",)),
        "get": _get("/v1/entities/{entity_token}"),
        "update": _put("/v1/entities/{entity_token}", _data("update_data"), required=("update_data",)),
        "delete": _delete("/v1/entities/{entity_token}", ack_param="entity_token"),
        "list": _paginated("/v1/entities"),
        "search": _collection(
            "/v1/entities", "entity", query=_entity_search, required=("search_query",)
        ),
        "getByExternalId": _get("/v1/entities/external/{external_id}"),
        "getEvaluations": _collection("/v1/entities/{entity_token}/evaluations", "evaluation"),
        "getDocuments": _collection("/v1/entities/{entity_token}/documents", "document"),
        "getEvents": _collection("/v1/entities/{entity_token}/events", "event"),
        "archive": _post("/v1/entities/{entity_token}/archive"),
        "restore": _post("/v1/entities/{entity_token}/restore"),
        "merge": _post(
            "/v1/entities/merge", _merge,
            required=("primary_entity_token", "secondary_entity_token"),
        ),
        "getRiskScore": _get("/v1/entities/{entity_token}/risk-score"),
    },
    "evaluation": {
        "run": _post(
            "/v1/evaluations", _evaluation_run,
            required=("entity_token",), uses_default_workflow=True,
        ),
        "get": _get("/v1/evaluations/{evaluation_token}"),
        "getStatus": _get("/v1/evaluations/{evaluation_token}/status"),
        "getResult": _get("/v1/evaluations/{evaluation_token}/result"),
        "getOutcome": _get("/v1/evaluations/{evaluation_token}/outcome"),
        "list": _paginated("/v1/evaluations"),
        "getByEntity": _collection("/v1/entities/{entity_token}/evaluations", "evaluation"),
        "retry": _post("/v1/evaluations/{evaluation_token}/retry"),
        "getEvents": _collection("/v1/evaluations/{evaluation_token}/events", "event"),
        "getData": _get("/v1/evaluations/{evaluation_token}/data"),
        "getRequiredActions": _get("/v1/evaluations/{evaluation_token}/required-actions"),
        "completeManualReview": _post(
            "/v1/evaluations/{evaluation_token}/review", _manual_review, required=("decision",)
        ),
    },
    "journey": {
        "get": _get("/v1/journeys/{journey_token}"),
        "getAll": _collection("/v1/journeys", "journey"),
        "getSteps": _get("/v1/journeys/{journey_token}/steps"),
        "getVersion": _get("/v1/journeys/{journey_token}/versions/{version}"),
        "getConfig": _get("/v1/journeys/{journey_token}/config"),
        "start": _post("/v1/journeys/{journey_token}/start", _data("entity_data")),
        "getStatus": _get("/v1/journey-applications/{application_token}/status"),
        "getOutcome": _get("/v1/journey-applications/{application_token}/outcome"),
    },
    "document": {
        "get": _get("/v1/documents/{document_token}"),
        "list": _collection("/v1/documents", "document"),
        "delete": _delete("/v1/documents/{document_token}", ack_param="document_token"),
        "getByEntity": _collection("/v1/entities/{entity_token}/documents", "document"),
        "getStatus": _get("/v1/documents/{document_token}/status"),
        "getVerification": _get("/v1/documents/{document_token}/verification"),
        "getData": _get("/v1/documents/{document_token}/data"),
        "getExtractedFields": _get("/v1/documents/{document_token}/fields"),
        "verify": _post("/v1/documents/{document_token}/verify"),
        "update": _patch("/v1/documents/{document_token}", _data("update_data")),
        "upload": OperationSpec(
            HttpMethod.POST, "/v1/documents",
            required=("entity_token", "document_type", "content_base64", "mime_type"),
            handler="upload",
        ),
        "getImage": OperationSpec(
            HttpMethod.GET, "/v1/documents/{document_token}/image", handler="download_image"
        ),
    },
    "identity": {
        "verify": _post("/v1/identity/verify", _data("entity_data")),
        "getVerification": _get("/v1/identity/{verification_token}"),
        "getMatch": _get("/v1/identity/{verification_token}/match"),
        "getData": _get("/v1/identity/{verification_token}/data"),
        "getWatchlistResults": _get("/v1/identity/{verification_token}/watchlist"),
        "getKycResult": _get("/v1/identity/{verification_token}/kyc"),
        "getScore": _get("/v1/identity/{verification_token}/score"),
        "getAttributes": _get("/v1/identity/{verification_token}/attributes"),
        "getHistory": _get("/v1/identity/{verification_token}/history"),
        "reverify": _post("/v1/identity/{verification_token}/reverify"),
    },
    "business": {
        "verify": _post("/v1/business/verify", _data("business_data")),
        "getVerification": _get("/v1/business/{verification_token}"),
        "getData": _get("/v1/business/{verification_token}/data"),
        "getOwners": _get("/v1/business/{verification_token}/owners"),
        "getDocuments": _get("/v1/business/{verification_token}/documents"),
        "getWatchlist": _get("/v1/business/{verification_token}/watchlist"),
        "getKybResult": _get("/v1/business/{verification_token}/kyb"),
        "getScore": _get("/v1/business/{verification_token}/score"),
        "getRegistration": _get("/v1/business/{verification_token}/registration"),
        "getAddress": _get("/v1/business/{verification_token}/address"),
    },
    "watchlist": {
        "screenEntity": _post(
            "/v1/watchlist/screen", _fields(entity_token="entity_token"), required=("entity_token",)
        ),
        "screenIndividual": _post("/v1/watchlist/individual", _data("individual_data")),
        "screenBusiness": _post("/v1/watchlist/business", _data("business_data")),
        "getHits": _get("/v1/watchlist/{screening_token}/hits"),
        "getHitDetails": _get("/v1/watchlist/{screening_token}/hits/{hit_id}"),
        "dismissHit": _post("/v1/watchlist/{screening_token}/hits/{hit_id}/dismiss", _REASON),
        "confirmHit": _post("/v1/watchlist/{screening_token}/hits/{hit_id}/confirm"),
        "getHistory": _get("/v1/watchlist/history/{entity_token}"),
        "getMonitoring": _get("/v1/watchlist/monitoring/{entity_token}"),
        "enableMonitoring": _post("/v1/watchlist/monitoring/{entity_token}", _const(enabled=True)),
        "disableMonitoring": _post("/v1/watchlist/monitoring/{entity_token}", _const(enabled=False)),
        "getSources": _get("/v1/watchlist/sources"),
    },
    "risk": {
        "getAssessment": _get("/v1/risk/{entity_token}/assessment"),
        "getScore": _get("/v1/risk/{entity_token}/score"),
        "getFactors": _get("/v1/risk/{entity_token}/factors"),
        "getLevel": _get("/v1/risk/{entity_token}/level"),
        "updateScore": _put("/v1/risk/{entity_token}/score", _data("score_data")),
        "getHistory": _get("/v1/risk/{entity_token}/history"),
        "getRules": _get("/v1/risk/rules"),
        "getSignals": _get("/v1/risk/{entity_token}/signals"),
        "calculate": _post("/v1/risk/calculate", _data("calculation_data")),
        "getThreshold": _get("/v1/risk/threshold"),
    },
    "decision": {
        "get": _get("/v1/decisions/{decision_token}"),
        "getRules": _get("/v1/decisions/{decision_token}/rules"),
        "getFactors": _get("/v1/decisions/{decision_token}/factors"),
        "override": _post("/v1/decisions/{decision_token}/override", _data("override_data")),
        "getHistory": _get("/v1/decisions/history/{entity_token}"),
        "getPending": _get("/v1/decisions/pending"),
        "approve": _post("/v1/decisions/{decision_token}/approve", _REASON),
        "deny": _post("/v1/decisions/{decision_token}/deny", _REASON),
        "escalate": _post("/v1/decisions/{decision_token}/escalate", _REASON),
        "getAudit": _get("/v1/decisions/{decision_token}/audit"),
    },
    "review": {
        "getQueue": _get("/v1/reviews/queue"),
        "get": _get("/v1/reviews/{review_token}"),
        "assign": _post(
            "/v1/reviews/{review_token}/assign", _fields(user_id="user_id"), required=("user_id",)
        ),
        "complete": _post(
            "/v1/reviews/{review_token}/complete",
            _fields(decision="decision", reason="reason"),
            required=("decision",),
        ),
        "getHistory": _get("/v1/reviews/history"),
        "getPending": _get("/v1/reviews/pending"),
        "getStats": _get("/v1/reviews/stats"),
        "addNote": _post("/v1/reviews/{review_token}/notes", _fields(note="note"), required=("note",)),
        "getNotes": _get("/v1/reviews/{review_token}/notes"),
        "escalate": _post("/v1/reviews/{review_token}/escalate", _REASON),
    },
    "case": {
        "create": _post("/v1/cases", _data("case_data")),
        "get": _get("/v1/cases/{case_token}"),
        "update": _put("/v1/cases/{case_token}", _data("update_data")),
        "close": _post("/v1/cases/{case_token}/close", _fields(resolution="resolution")),
        "list": _paginated("/v1/cases"),
        "getByEntity": _collection("/v1/cases/entity/{entity_token}", "case"),
        "assign": _post(
            "/v1/cases/{case_token}/assign", _fields(user_id="user_id"), required=("user_id",)
        ),
        "getHistory": _get("/v1/cases/{case_token}/history"),
        "addNote": _post("/v1/cases/{case_token}/notes", _fields(note="note"), required=("note",)),
        "getNotes": _get("/v1/cases/{case_token}/notes"),
        "getDocuments": _get("/v1/cases/{case_token}/documents"),
        "linkEntity": _post(
            "/v1/cases/{case_token}/entities",
            _fields(entity_token="entity_token"),
            required=("entity_token",),
        ),
        "getStatus": _get("/v1/cases/{case_token}/status"),
    },
    "workflow": {
        "getAll": _get("/v1/workflows"),
        "get": _get("/v1/workflows/{workflow_token}"),
        "getSteps": _get("/v1/workflows/{workflow_token}/steps"),
        "getOutcome": _get("/v1/workflows/{workflow_token}/outcome"),
        "getVersion": _get("/v1/workflows/{workflow_token}/versions/{version}"),
        "execute": _post("/v1/workflows/{workflow_token}/execute", _data("execution_data")),
        "getStatus": _get("/v1/workflows/executions/{execution_token}/status"),
        "getConfig": _get("/v1/workflows/{workflow_token}/config"),
    },
    "rule": {
        "getAll": _get("/v1/rules"),
        "get": _get("/v1/rules/{rule_id}"),
        "getConditions": _get("/v1/rules/{rule_id}/conditions"),
        "getActions": _get("/v1/rules/{rule_id}/actions"),
        "test": _post("/v1/rules/{rule_id}/test", _data("test_data")),
        "getPerformance": _get("/v1/rules/{rule_id}/performance"),
        "getActive": _get("/v1/rules/active"),
        "getHistory": _get("/v1/rules/{rule_id}/history"),
    },
    "tag": {
        "add": _post(
            "/v1/entities/{entity_token}/tags", _fields(tag="tag_name"), required=("tag_name",)
        ),
        "remove": _delete("/v1/entities/{entity_token}/tags/{tag_name}"),
        "getAll": _get("/v1/tags"),
        "getByEntity": _get("/v1/entities/{entity_token}/tags"),
        "create": _post("/v1/tags", _data("tag_data")),
        "delete": _delete("/v1/tags/{tag_id}", ack_param="tag_id"),
        "search": _get("/v1/tags/search", query=_fields(q="query"), required=("query",)),
        "getStats": _get("/v1/tags/stats"),
    },
    "event": {
        "getAll": _get("/v1/events"),
        "get": _get("/v1/events/{event_id}"),
        "getByEntity": _get("/v1/events/entity/{entity_token}"),
        "getByType": _get(
            "/v1/events/type", query=_fields(type="event_type"), required=("event_type",)
        ),
        "search": _get("/v1/events/search", query=_fields(q="query"), required=("query",)),
        "getTimeline": _get("/v1/events/timeline/{entity_token}"),
        "export": _post("/v1/events/export", _data("export_params")),
        "getTypes": _get("/v1/events/types"),
    },
    "webhook": {
        "create": _post("/v1/webhooks", _data("webhook_data")),
        "get": _get("/v1/webhooks/{webhook_id}"),
        "update": _put("/v1/webhooks/{webhook_id}", _data("update_data")),
        "delete": _delete("/v1/webhooks/{webhook_id}", ack_param="webhook_id"),
        "list": _get("/v1/webhooks"),
        "test": _post("/v1/webhooks/{webhook_id}/test"),
        "getEvents": _get("/v1/webhooks/{webhook_id}/events"),
        "getDeliveries": _get("/v1/webhooks/{webhook_id}/deliveries"),
        "retry": _post("/v1/webhooks/{webhook_id}/deliveries/{delivery_id}/retry"),
    },
    "report": {
        "generate": _post("/v1/reports", _data("report_data")),
        "get": _get("/v1/reports/{report_id}"),
        "list": _get("/v1/reports"),
        "getStatus": _get("/v1/reports/{report_id}/status"),
        "download": _get("/v1/reports/{report_id}/download"),
        "schedule": _post("/v1/reports/schedule", _data("schedule_data")),
        "getTemplates": _get("/v1/reports/templates"),
        "getCompliance": _get("/v1/reports/compliance"),
        "getRisk": _get("/v1/reports/risk"),
        "getVolume": _get("/v1/reports/volume"),
    },
    "audit": {
        "getLog": _get("/v1/audit"),
        "getEvents": _get("/v1/audit/events"),
        "getByEntity": _get("/v1/audit/entity/{entity_token}"),
        "getByUser": _get("/v1/audit/user/{user_id}"),
        "search": _get("/v1/audit/search", query=_fields(q="query"), required=("query",)),
        "export": _post("/v1/audit/export", _data("export_params")),
        "getCompliance": _get("/v1/audit/compliance"),
        "getAccess": _get("/v1/audit/access"),
    },
    "integration": {
        "getAll": _get("/v1/integrations"),
        "getStatus": _get("/v1/integrations/{integration_id}/status"),
        "test": _post("/v1/integrations/{integration_id}/test"),
        "getConfig": _get("/v1/integrations/{integration_id}/config"),
        "getProviders": _get("/v1/providers"),
        "getProviderStatus": _get("/v1/providers/{provider_id}/status"),
        "getDataSources": _get("/v1/data-sources"),
    },
    "analytics": {
        "getDashboard": _get("/v1/analytics/dashboard"),
        "getApplicationStats": _get("/v1/analytics/applications"),
        "getApprovalRate": _get("/v1/analytics/approval-rate"),
        "getRejectionRate": _get("/v1/analytics/rejection-rate"),
        "getReviewTime": _get("/v1/analytics/review-time"),
        "getFunnel": _get("/v1/analytics/funnel"),
        "getVolume": _get("/v1/analytics/volume"),
        "getRiskDistribution": _get("/v1/analytics/risk-distribution"),
        "export": _post("/v1/analytics/export", _data("export_params")),
    },
    "user": {
        "getAll": _get("/v1/users"),
        "get": _get("/v1/users/{user_id}"),
        "create": _post("/v1/users", _data("user_data")),
        "update": _put("/v1/users/{user_id}", _data("update_data")),
        "delete": _delete("/v1/users/{user_id}", ack_param="user_id"),
        "getPermissions": _get("/v1/users/{user_id}/permissions"),
        "updateRole": _put("/v1/users/{user_id}/role", _fields(role="role"), required=("role",)),
        "getActivity": _get("/v1/users/{user_id}/activity"),
    },
    "utility": {
        "validateApiKey": _get("/v1/validate"),
        "getApiStatus": _get("/v1/status"),
        "getRateLimits": _get("/v1/rate-limits"),
        "getSupportedCountries": _get("/v1/parameters/countries"),
        "getSupportedDocuments": _get("/v1/parameters/document-types"),
        "getDocumentRequirements": _get("/v1/parameters/document-requirements"),
        "testConnection": _get("/v1/ping", merge={"success": True}),
        "getSdkVersion": _get("/v1/version"),
    },
}


def get_operation(resource: str, operation: str) -> OperationSpec:
    """Look up a registered operation or raise :class:`UnknownOperationError`."""
    operations = OPERATIONS.get(resource)
    if operations is None:
        raise UnknownOperationError(resource)
    spec = operations.get(operation)
    if spec is None:
        raise UnknownOperationError(resource, operation)
    return spec


def describe_operations() -> list[dict[str, Any]]:
    """Flat listing of every registered operation, sorted by resource."""
    return [
        {
            "resource": resource,
            "operation": name,
            "method": spec.method.upper(),
            "path": spec.path,
            "required": list(spec.required_params),
            "shape": spec.shape.value,
        }
        for resource in sorted(OPERATIONS)
        for name, spec in OPERATIONS[resource].items()
    ]
