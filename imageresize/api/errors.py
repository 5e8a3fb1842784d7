"""
Mapping of resize failures onto HTTP errors.
"""

from contextlib import contextmanager
from typing import Iterator

import structlog
from fastapi import HTTPException, status

from imageresize.backends.base import BackendError
from imageresize.pipeline.modifiers import ModifierValidationError

logger = structlog.get_logger(__name__)


@contextmanager
def resize_errors() -> Iterator[None]:
    try:
        yield
    except ModifierValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(e), "errors": e.errors},
        ) from e
    except BackendError as e:
        logger.error(
            "backend_failed",
            backend=e.backend_name,
            error_code=e.error_code,
            error=e.message,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e),
        ) from e
