"""
Qup Backend - GraphQL Schema and Router
=========================================

Error reporting:
    QupError subclasses surface with their message and `extensions.code`
    (UNAUTHENTICATED, FORBIDDEN, NOT_FOUND, BAD_USER_INPUT, ...). Any other
    exception is masked behind a generic message and logged with its
    traceback. Query validation errors pass through untouched.

Transactions:
    A GraphQL response with errors is still HTTP 200, so the session
    dependency would commit. RollbackOnError rolls the request's session back
    first whenever the result carries errors, and drops the events the
    failed document queued for subscribers.
"""

import logging
from typing import List, Optional

import strawberry
from graphql import GraphQLError
from graphql.validation import NoSchemaIntrospectionCustomRule
from strawberry.extensions import AddValidationRules, MaskErrors, QueryDepthLimiter, SchemaExtension
from strawberry.fastapi import GraphQLRouter
from strawberry.types import ExecutionContext

from qup.config import settings
from qup.core import pubsub
from qup.exceptions import GENERIC_ERROR_MESSAGE, QupError
from qup.graphql.context import get_context
from qup.graphql.mutations import Mutation
from qup.graphql.queries import Query
from qup.graphql.subscriptions import Subscription

logger = logging.getLogger(__name__)


def should_mask_error(error: GraphQLError) -> bool:
    original = error.original_error
    return original is not None and not isinstance(original, QupError)


class RollbackOnError(SchemaExtension):
    async def on_operation(self):
        yield
        result = self.execution_context.result
        db = getattr(self.execution_context.context, "db", None)
        if db is not None and result is not None and getattr(result, "errors", None):
            await db.rollback()
            pubsub.discard_pending(db)


class QupSchema(strawberry.Schema):
    def process_errors(
        self,
        errors: List[GraphQLError],
        execution_context: Optional[ExecutionContext] = None,
    ) -> None:
        for error in errors:
            original = error.original_error
            if isinstance(original, QupError) and original.status_code < 500:
                logger.info("GraphQL %s at %s: %s", original.graphql_code, error.path, original.message)
            elif original is None:
                logger.info("GraphQL request rejected: %s", error.message)
            else:
                logger.error("GraphQL resolver error at %s: %s", error.path, error.message, exc_info=original)


def _extensions() -> list:
    extensions = [
        QueryDepthLimiter(max_depth=10),
        MaskErrors(should_mask_error=should_mask_error, error_message=GENERIC_ERROR_MESSAGE),
        RollbackOnError,
    ]
    if not settings.graphql_introspection:
        extensions.append(AddValidationRules([NoSchemaIntrospectionCustomRule]))
    return extensions


schema = QupSchema(
    query=Query,
    mutation=Mutation,
    subscription=Subscription,
    extensions=_extensions(),
)

graphql_router = GraphQLRouter(schema, context_getter=get_context)
