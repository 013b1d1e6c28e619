"""Pydantic models for attachments and the sink payload.

The sink is a Google Apps Script web app, so the payload keeps its camelCase
keys (``rowData``, ``fileData``, ``mimeType``) via field aliases.
"""

import base64

from pydantic import BaseModel, ConfigDict, Field


class UploadedFile(BaseModel):
    """A résumé file attached by the operator."""

    name: str
    mime_type: str
    data: bytes

    @property
    def base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    @property
    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64}"


class FileData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    mime_type: str = Field(alias="mimeType")
    base64: str

    @classmethod
    def from_upload(cls, upload: UploadedFile) -> "FileData":
        return cls(name=upload.name, mime_type=upload.mime_type, base64=upload.base64)


class ExportPayload(BaseModel):
    """One extracted row plus the optional original file, as POSTed to the sink."""

    model_config = ConfigDict(populate_by_name=True)

    row_data: list[str] = Field(alias="rowData")
    file_data: FileData | None = Field(default=None, alias="fileData")

    def to_json(self) -> str:
        """Serialise with sink field names, omitting ``fileData`` when there is no attachment."""
        return self.model_dump_json(by_alias=True, exclude_none=True)
