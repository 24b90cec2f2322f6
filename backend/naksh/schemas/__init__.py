# Schemas package init
"""
Naksh Backend — API Schemas
=============================

Pydantic request/response models, one module per resource. All inherit
`CamelModel` (common.py): camelCase on the wire, ORM-readable.
"""
