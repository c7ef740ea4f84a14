# backend/portfolio_calculator/schemas/upload.py
"""
Pydantic schemas for dataset upload operations.
"""

from pydantic import BaseModel, Field

from portfolio_calculator.services.ingestion import ImportResult


# =============================================================================
# ERROR SCHEMAS
# =============================================================================

class ImportIssueResponse(BaseModel):
    """Details about a single error during import."""

    row_number: int = Field(
        ...,
        description="Row number where error occurred (0 for file-level errors)"
    )
    stage: str = Field(
        ...,
        description="Processing stage: parsing, validation, persistence"
    )
    error_type: str = Field(
        ...,
        description="Error category for programmatic handling"
    )
    message: str = Field(
        ...,
        description="Human-readable error description"
    )
    field: str | None = Field(
        default=None,
        description="Specific field that caused the error"
    )


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class ImportResponse(BaseModel):
    """
    Response schema for dataset uploads.

    The request itself succeeded whenever this is returned; `success` says
    whether the rows were stored (all of them) or rejected (none of them).
    """

    success: bool = Field(..., description="True if every row was stored")
    dataset: str = Field(..., description="investments, transactions or quotes")
    filename: str = Field(..., description="Original filename")
    total_rows: int = Field(..., description="Total number of data rows in file")
    imported_count: int = Field(..., description="Number of rows stored")
    replaced_count: int = Field(
        default=0,
        description="Existing rows of the dataset removed by this import"
    )
    error_count: int = Field(..., description="Number of errors")
    errors: list[ImportIssueResponse] = Field(
        default_factory=list,
        description="Detailed error information"
    )

    @classmethod
    def from_result(cls, result: ImportResult) -> "ImportResponse":
        return cls(
            success=result.success,
            dataset=result.dataset.value,
            filename=result.filename,
            total_rows=result.total_rows,
            imported_count=result.imported_count,
            replaced_count=result.replaced_count,
            error_count=result.error_count,
            errors=[
                ImportIssueResponse(
                    row_number=e.row_number,
                    stage=e.stage,
                    error_type=e.error_type,
                    message=e.message,
                    field=e.field,
                )
                for e in result.errors
            ],
        )


class SupportedFormatsResponse(BaseModel):
    """Datasets and file formats accepted by the upload endpoint."""

    datasets: list[str] = Field(..., description="Dataset names usable in /upload/{dataset}")
    extensions: list[str] = Field(..., description="Supported file extensions")
