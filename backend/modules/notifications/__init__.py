MODULE_ID = "notifications"
MODULE_VERSION = "1.0.0"
MODULE_DESCRIPTION = "In-app notifications, the maintenance notification dispatcher and the push webhook"

ROUTES = [
    "notifications.routes",
]

TABLES = [
    "notifications",
]

PUBLISHES = [
    "notification.created",
]

SUBSCRIBES = [
    "notification.created",
]

IMPLEMENTS = ["MaintenanceNotifier"]

REQUIRES = []

DAEMONS = []


def register(app, registry) -> None:
    """Register the notifications module: routes and MaintenanceNotifier."""
    from modules.notifications import routes
    from modules.notifications.dispatcher import MaintenanceDispatcher

    app.include_router(routes.router, prefix="/api")
    app.include_router(routes.router, prefix="/api/v1")

    registry.register_provider("MaintenanceNotifier", MaintenanceDispatcher())


def register_subscribers(bus) -> None:
    """Register all notifications module event subscribers."""
    from modules.notifications import webhook
    webhook.register_subscribers(bus)
