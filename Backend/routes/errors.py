"""
Shapes validation failures into the 400 responses the API returns.
"""
from typing import Any, Dict, List, Sequence

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


def validation_error_detail(errors: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Keeps location, message and type. Submitted values are never echoed."""
    return [
        {
            "loc": list(error.get("loc", ())),
            "msg": error.get("msg"),
            "type": error.get("type"),
        }
        for error in errors
    ]


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": validation_error_detail(exc.errors())},
    )
