import logging
import sys
from pythonjsonlogger import json

from inventory_service.config import get_settings

SERVICE_NAME = "inventory-service"


def get_logger():
    logger = logging.getLogger(SERVICE_NAME)

    if logger.handlers:
        return logger

    logger.setLevel(get_settings().log_level)

    handler = logging.StreamHandler(sys.stdout)

    formatter = json.JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(topic)s %(partition)s %(offset)s %(event_type)s %(message)s",
        static_fields={"service": SERVICE_NAME},
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger
