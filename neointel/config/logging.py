import logging


def configure_logging(level: str) -> None:
    """Install a single stream handler for the engine and service loggers."""

    class _SafeFormatter(logging.Formatter):
        def format(self, record: logging.LogRecord) -> str:
            if not hasattr(record, "patient_id"):
                record.patient_id = "-"
            return super().format(record)

    handler = logging.StreamHandler()
    handler.setFormatter(
        _SafeFormatter(
            "%(asctime)s %(levelname)s %(name)s "
            "patient_id=%(patient_id)s %(message)s"
        )
    )

    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)
