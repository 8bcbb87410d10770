"""
The contents of this file are property of Doorman Dev, LLC
Review the Apache License 2.0 for valid authorization of use
See https://github.com/apidoorman/doorman for more information
"""

import json
from typing import Any

from pydantic import BaseModel, Field


class UpstreamTarget(BaseModel):
    base_url: str
    path: str = ''

    @property
    def url(self) -> str:
        if not self.path:
            return self.base_url
        return self.base_url + '/' + self.path.lstrip('/')


class UpstreamResult(BaseModel):
    status_code: int
    content_type: str = Field('application/json')
    body: bytes = Field(b'')

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.body.decode('utf-8', errors='replace')

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()

    @property
    def declares_json(self) -> bool:
        return 'application/json' in (self.content_type or '').lower()

    def parsed_json(self) -> Any:
        """Return the decoded JSON body or None when the body is not JSON."""
        if self.is_empty:
            return None
        try:
            return json.loads(self.text)
        except ValueError:
            return None

    def has_valid_json(self) -> bool:
        if self.is_empty:
            return False
        try:
            json.loads(self.text)
        except ValueError:
            return False
        return True
