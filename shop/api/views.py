"""
GraphQL view with idempotency and logging support.
"""
import hashlib
import json
import logging
from uuid import uuid4

from ariadne import graphql_sync
from django.conf import settings
from django.db import IntegrityError, transaction
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods
from graphql import OperationType, parse
from graphql.error import GraphQLSyntaxError

from shop.api.middleware import (
    ErrorHandler,
    ValidationError,
    format_graphql_error,
    resolve_caller,
)
from shop.api.schema import build_services, schema
from shop.infra.models import IdempotencyKey

logger = logging.getLogger(__name__)

# GraphQL mutation field -> stored idempotency operation
MUTATION_OPERATIONS = {
    "addToCart": "ADD_TO_CART",
    "updateCartLine": "UPDATE_CART_LINE",
    "removeCartLine": "REMOVE_CART_LINE",
    "clearCart": "CLEAR_CART",
    "placeOrder": "PLACE_ORDER",
    "updateOrderStatus": "UPDATE_ORDER_STATUS",
}


class StorefrontGraphQLView:
    """GraphQL view with idempotency and structured logging."""

    def dispatch(self, request):
        """Handle GraphQL request with idempotency."""
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        idempotency_key = request.headers.get("Idempotency-Key")

        if request.method == "GET":
            return JsonResponse({"message": "GraphQL endpoint. Use POST for queries."})

        try:
            caller = resolve_caller(request)
            data = self._parse_body(request)
        except ValidationError as e:
            return ErrorHandler.handle_error(e)

        logger.info(
            "graphql_request",
            extra={
                "request_id": request_id,
                "user_id": caller.id if caller else None,
                "idempotency_key": idempotency_key[:8] + "..." if idempotency_key else None,
                "operation": data.get("operationName") or "graphql",
            },
        )

        operation = self._extract_operation(data)
        if idempotency_key and caller and operation:
            response = self._dispatch_idempotent(request, data, caller, operation, idempotency_key, request_id)
        else:
            response = self._execute(request, data, caller)

        logger.info(
            "graphql_response",
            extra={
                "request_id": request_id,
                "user_id": caller.id if caller else None,
                "status": response.status_code,
            },
        )
        return response

    def _dispatch_idempotent(self, request, data, caller, operation, idempotency_key, request_id):
        """
        Run a keyed mutation at most once.

        The key row is inserted before the mutation executes, in the same
        transaction. A concurrent request with the same key blocks on the
        unique constraint until this one commits or rolls back, then replays
        the stored response.
        """
        request_hash = self._create_request_hash(data.get("query", ""), data.get("variables") or {})
        lookup = {"key": idempotency_key, "user_id": caller.id, "operation": operation}

        with transaction.atomic():
            try:
                with transaction.atomic():
                    record = IdempotencyKey.objects.create(request_hash=request_hash, **lookup)
            except IntegrityError:
                record = None

            if record is not None:
                response = self._execute(request, data, caller)
                payload = json.loads(response.content)

                # Only error-free results are replayed; failures may be retried after a fix
                if response.status_code == 200 and not payload.get("errors"):
                    record.response_payload = payload
                    record.save(update_fields=["response_payload", "updated_at"])
                else:
                    record.delete()
                return response

        existing = IdempotencyKey.objects.filter(**lookup).first()
        log_extra = {
            "request_id": request_id,
            "user_id": caller.id,
            "idempotency_key": idempotency_key,
            "operation": operation,
        }

        if existing is not None and existing.request_hash != request_hash:
            logger.warning("idempotency_key_conflict", extra=log_extra)
            return ErrorHandler.duplicate_request()

        if existing is None or existing.response_payload is None:
            # Holder rolled back, or is still running on a backend without blocking inserts
            logger.warning("idempotency_key_in_flight", extra=log_extra)
            return ErrorHandler.request_in_progress()

        logger.info("idempotent_request_cached", extra=log_extra)
        return JsonResponse(existing.response_payload, safe=False)

    def _execute(self, request, data: dict, caller):
        """Execute GraphQL query."""
        success, result = graphql_sync(
            schema,
            data,
            context_value={
                "request": request,
                "caller": caller,
                "services": build_services(),
            },
            error_formatter=format_graphql_error,
            debug=settings.DEBUG,
        )
        status_code = 200 if success else 400
        return JsonResponse(result, status=status_code)

    def _parse_body(self, request) -> dict:
        try:
            data = json.loads(request.body)
        except json.JSONDecodeError:
            raise ValidationError("Invalid JSON")
        if not isinstance(data, dict) or not isinstance(data.get("query"), str):
            raise ValidationError("Request body must be an object with a 'query' string")
        return data

    def _create_request_hash(self, query: str, variables: dict) -> str:
        """Create hash of request for deduplication."""
        content = json.dumps({"query": query, "variables": variables}, sort_keys=True)
        return hashlib.sha256(content.encode()).hexdigest()

    def _extract_operation(self, data: dict) -> str | None:
        """Idempotency operation for a single-mutation document, else None."""
        try:
            document = parse(data["query"])
        except GraphQLSyntaxError:
            return None

        operation_name = data.get("operationName")
        for definition in document.definitions:
            if getattr(definition, "operation", None) != OperationType.MUTATION:
                continue
            if operation_name and (definition.name is None or definition.name.value != operation_name):
                continue
            selections = definition.selection_set.selections
            if len(selections) == 1 and getattr(selections[0], "name", None):
                return MUTATION_OPERATIONS.get(selections[0].name.value)
        return None


@csrf_exempt
@require_http_methods(["GET", "POST"])
def graphql_view(request):
    """GraphQL endpoint."""
    view = StorefrontGraphQLView()
    return view.dispatch(request)
