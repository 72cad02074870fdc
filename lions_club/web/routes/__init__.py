from . import (
    admin,
    announcements,
    checkins,
    events,
    files,
    frontend,
    health,
    members,
    payments,
    push,
    registrations,
    webhook,
)

# frontend last: its catch-all would shadow everything registered after it
API_ROUTES = [
    health.routes,
    webhook.routes,
    members.routes,
    events.routes,
    registrations.routes,
    checkins.routes,
    announcements.routes,
    files.routes,
    payments.routes,
    push.routes,
    admin.routes,
]
FRONTEND_ROUTES = frontend.routes
