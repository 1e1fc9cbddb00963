import structlog


class ActivityLogger:
    """Audit trail: one structured log line per business action."""

    def __init__(self, logger=None):
        self.logger = logger or structlog.get_logger("audit")

    async def log(self, event):
        self.logger.info(
            event.action,
            user_id=event.user_id,
            entity_type=event.entity_type,
            entity_id=event.entity_id,
            details=event.details,
        )
