# core/events.py - canonical event type definitions
# All cross-module communication should use these constants as event_type values.

# Maintenance events
MAINTENANCE_SCHEDULED = "maintenance.scheduled"         # {maintenance_id, asset_id, scheduled_date}
MAINTENANCE_COMPLETED = "maintenance.completed"         # {maintenance_id, asset_id, next_maintenance_date, follow_up_id}
MAINTENANCE_CANCELLED = "maintenance.cancelled"         # {maintenance_id, asset_id}
MAINTENANCE_RESCHEDULED = "maintenance.rescheduled"     # {maintenance_id, asset_id, scheduled_date}
SWEEP_COMPLETED = "maintenance.sweep_completed"         # {overdue_count, due_today_count, notifications_created}

# Notification events
NOTIFICATION_CREATED = "notification.created"           # {notification_id, maintenance_id, asset_id, title, message, priority}
