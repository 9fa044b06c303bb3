from pydantic import BaseModel
from typing import Any
from fastapi.responses import JSONResponse

class Envelope(BaseModel):
    """Shape of every JSON response the API returns."""
    error: str = ""
    code: int
    message: str = ""
    data: Any = None

def envelope(code: int, error: str = "", message: str = "", data: Any = None, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=code,
        content=Envelope(error=error, code=code, message=message, data=data).model_dump(mode="json"),
        headers=headers,
    )
