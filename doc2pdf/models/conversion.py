from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class ConversionRequest(BaseModel):
    data: Optional[str] = Field(default=None, description="Source document, base64 encoded.")
    fileType: Optional[str] = Field(default=None, description="Source file extension, e.g. docx.")
    messageID: Optional[str] = Field(default=None, description="Caller correlation id, only logged.")

    @field_validator("messageID", mode="before")
    @classmethod
    def _numeric_message_id(cls, value: Any) -> Any:
        # integration engines often send numeric ids; 0 counts as missing
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value) if value else None
        return value
