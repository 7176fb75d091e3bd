"""Wire models for the scan service API.

The service speaks camelCase JSON; fields are aliased and unknown keys
are ignored so newer service versions do not break older clients.
"""

from pydantic import BaseModel, ConfigDict, Field

from codescan.constants import ScanStatus

_WIRE = ConfigDict(populate_by_name=True, extra="ignore")


class CreateUploadUrlResponse(BaseModel):
    model_config = _WIRE

    upload_url: str = Field(alias="uploadUrl")
    upload_id: str = Field(alias="uploadId")
    request_id: str | None = Field(default=None, alias="requestId")


class CreateScanResponse(BaseModel):
    model_config = _WIRE

    job_id: str = Field(alias="jobId")
    status: ScanStatus
    request_id: str | None = Field(default=None, alias="requestId")


class GetScanResponse(BaseModel):
    model_config = _WIRE

    status: ScanStatus
    error_message: str | None = Field(default=None, alias="errorMessage")
    request_id: str | None = Field(default=None, alias="requestId")


class ListFindingsResponse(BaseModel):
    model_config = _WIRE

    code_scan_findings: str = Field(alias="codeScanFindings")
    next_token: str | None = Field(default=None, alias="nextToken")
    request_id: str | None = Field(default=None, alias="requestId")
