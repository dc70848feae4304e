from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str) -> None:
    # basicConfig ne fait rien si un handler existe déjà (uvicorn, pytest)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("backend").setLevel(level)
