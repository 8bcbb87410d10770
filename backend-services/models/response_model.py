from pydantic import BaseModel, Field


class ErrorEnvelope(BaseModel):
    error: str = Field(..., min_length=1, max_length=255)
    code: str = Field(..., min_length=1, max_length=64)
    details: str | None = Field(None, max_length=1024)
    status: int | None = Field(None)

    def to_content(self) -> dict:
        return self.model_dump(exclude_none=True)


class ResponseModel(BaseModel):
    status_code: int = Field(200)

    response_headers: dict | None = Field(None)

    body: bytes | None = Field(None)
    content_type: str | None = Field(None)
    response: dict | list | None = Field(None)

    error: ErrorEnvelope | None = Field(None)
