"""
Qup Backend - HTTP Middleware
===============================

Middleware Chain (outermost first):
    Request → [Rate Limit] → [Request ID] → [Access Log] → [GZip] → [CORS] → Router

    - Rate limiting rejects abusive clients before any other work
    - The request ID is set before the access log so every line carries it
    - GraphQL websocket connections bypass these (HTTP-only) middlewares
"""
