MODULE_ID = "maintenance"
MODULE_VERSION = "1.0.0"
MODULE_DESCRIPTION = "Maintenance records, recurrence, due-state classification and the due-check sweep"

ROUTES = [
    "maintenance.routes",
]

TABLES = [
    "maintenance_records",
]

PUBLISHES = [
    "maintenance.scheduled",
    "maintenance.completed",
    "maintenance.cancelled",
    "maintenance.rescheduled",
    "maintenance.sweep_completed",
]

SUBSCRIBES = []

IMPLEMENTS = []

REQUIRES = ["MaintenanceNotifier"]

DAEMONS = [
    "due_check_runner",
]


def register(app, registry) -> None:
    """Register the maintenance module routes."""
    from modules.maintenance import routes

    app.include_router(routes.router, prefix="/api")
    app.include_router(routes.router, prefix="/api/v1")
