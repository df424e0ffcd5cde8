"""v1 API routes.

Workspace-scoped routes follow the pattern:
/api/v1/w/{workspace_id}/...

Invite token routes live under /api/v1/invites/...
"""

from api.routes.v1.workspaces import router as workspaces_router
from api.routes.v1.invites import router as invites_router
from api.routes.v1.roles import router as roles_router

__all__ = [
    "workspaces_router",
    "invites_router",
    "roles_router",
]
