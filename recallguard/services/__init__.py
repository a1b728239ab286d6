from recallguard.services.notification_dispatcher import (
    NotificationDispatcher,
    SubscriptionRegistry,
    build_alert_payload,
)

__all__ = ["NotificationDispatcher", "SubscriptionRegistry", "build_alert_payload"]
