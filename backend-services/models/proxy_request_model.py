"""
The contents of this file are property of Doorman Dev, LLC
Review the Apache License 2.0 for valid authorization of use
See https://github.com/apidoorman/doorman for more information
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Operation(str, Enum):
    GENERATE = 'generate'
    USER_LOOKUP = 'user-lookup'
    OTP_GENERATE = 'otp-generate'
    OTP_VERIFY = 'otp-verify'
    REGISTER = 'register'
    IMAGE = 'image'
    ANALYTICS = 'analytics'


class Framing(str, Enum):
    MULTIPART = 'multipart'
    JSON = 'json'
    NONE = 'none'


class Attachment(BaseModel):
    field_name: str = Field('photo', description='Multipart part name')
    filename: str | None = Field(None, description='Client supplied file name')
    content_type: str = Field('', description='Declared MIME type')
    content: bytes = Field(b'', description='Raw file bytes')

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def size_mib(self) -> float:
        return self.size / (1024 * 1024)


class ProxyRequest(BaseModel):
    """One inbound call, discarded once its response has been emitted."""

    operation: Operation
    request_id: str
    framing: Framing = Framing.JSON
    fields: dict[str, Any] = Field(default_factory=dict)
    attachments: dict[str, Attachment] = Field(default_factory=dict)
    path_params: dict[str, str] = Field(default_factory=dict)
