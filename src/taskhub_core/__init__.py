"""TaskHub Core - users, projects and tasks with role and assignment based access control.

Modules:
- access_policy: who may do what to which resource
- integrity: referential and date-range checks on payloads
- services: per-resource operations returning response envelopes
- crud: database queries
- api: FastAPI application, routers and error handlers
"""

__version__ = "1.0.0"
