"""Uniform response envelope shared by success and error responses."""

from typing import Any, List, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field


class ApiResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status_code: int = Field(alias="statusCode")
    data: Any = None
    message: str = "Success"
    success: bool = True
    errors: Optional[List[Any]] = None

    @classmethod
    def build(
        cls,
        status_code: int,
        data: Any = None,
        message: str = "Success",
        errors: Optional[List[Any]] = None,
    ) -> "ApiResponse":
        return cls(
            status_code=status_code,
            data=data,
            message=message,
            success=status_code < 400,
            errors=errors,
        )

    def to_content(self) -> dict:
        content = {
            "statusCode": self.status_code,
            "data": self.data,
            "message": self.message,
            "success": self.success,
        }
        if not self.success:
            content["errors"] = self.errors or []
        return jsonable_encoder(content)


def respond(status_code: int, data: Any = None, message: str = "Success") -> JSONResponse:
    envelope = ApiResponse.build(status_code, {} if data is None else data, message)
    return JSONResponse(status_code=status_code, content=envelope.to_content())
