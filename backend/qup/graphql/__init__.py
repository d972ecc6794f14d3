"""
GraphQL API (strawberry) mounted at /graphql.

Queries and mutations run over HTTP POST; subscriptions over websockets
(graphql-transport-ws or graphql-ws). Resolvers call the same services as
the REST routers.
"""
