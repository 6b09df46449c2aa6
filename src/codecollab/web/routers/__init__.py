from codecollab.web.routers.collaboration import router as collaboration_router
from codecollab.web.routers.files import router as files_router
from codecollab.web.routers.projects import router as projects_router
from codecollab.web.routers.pusher import router as pusher_router
from codecollab.web.routers.users import router as users_router

__all__ = [
    "collaboration_router",
    "files_router",
    "projects_router",
    "pusher_router",
    "users_router",
]
