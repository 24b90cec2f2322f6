# Providers package init
"""
Naksh Backend — External Collaborators
========================================

    - identity.py:  IdentityProvider / GatewayIdentityProvider (Clerk at the edge)
    - media.py:     MediaHost / CloudinaryMediaHost (httpx + tenacity)

Both are created once in main.create_app(), stored on `app.state`, and
handed to routes through FastAPI dependencies so tests can replace them.
"""
