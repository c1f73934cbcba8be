import logging
from contextlib import contextmanager

from fastapi import HTTPException

logger = logging.getLogger(__name__)


@contextmanager
def service_errors(action: str):
    """
    서비스 예외 → HTTP 응답 매핑

    ValueError 400, PermissionError 403, LookupError 404, 그 외 500.
    """
    try:
        yield
    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"{action} 실패: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))
