"""File-processing request and response schemas."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ProcessFileRequest(BaseModel):
    """Body of ``POST /process-file``.

    ``filePath`` and ``fileName`` come from the upload that just completed; the
    file record identified by ``fileId`` is the one whose cache is written.
    """

    file_id: UUID = Field(alias="fileId")
    file_path: str = Field(alias="filePath", min_length=1)
    file_name: str = Field(alias="fileName", min_length=1)
    file_type: str | None = Field(default=None, alias="fileType")

    model_config = ConfigDict(populate_by_name=True)
