# Middleware package init
"""
Naksh Backend — Middleware Package
====================================

Request path (outermost first):
    [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → route

    Rate limit first so abusive traffic costs nothing; request id before
    logging so every access line carries it.

errors.py is not a Starlette middleware: it holds the terminal error
handler that main.register_exception_handlers() installs for APIError,
framework HTTP errors, request validation errors and any other Exception.
"""
