# Routes package init
"""
Naksh Backend — API Routes Package
====================================

What:  HTTP route handlers, one module per resource.
How:   Every router uses `route_class=BoundaryRoute`, so whatever a handler
       or its dependencies raise reaches the exception handlers as an
       APIError. Handlers return envelopes built by naksh.responses.

Route Inventory:
    - users.py:          /api/users          profile create / read / update
    - posts.py:          /api/posts          feed, create, detail, delete, comments
                         /api/comments       create, delete
    - reactions.py:      /api/reactions      toggle, remove, list, check, stats
    - follows.py:        /api/follows        follow, unfollow, lists, stats
    - chats.py:          /api/chats          create, list, history, read-all
                         /api/messages       send, delivery marks, status
    - moderation.py:     /api/moderation     report, review, removal, suspension
    - device_tokens.py:  /api/device-tokens  register, list, unregister
    - media.py:          /api/media          uploads, delete
    - health.py:         /health, /api

Routes stay THIN: parse the request, call a service, wrap the result.
"""
