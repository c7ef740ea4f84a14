# backend/portfolio_calculator/routers/upload.py
"""
Dataset upload endpoints.

- GET /upload/formats - Accepted datasets and file types
- POST /upload/{dataset} - Import investments, transactions or quotes

Key features:
- Atomic import (all rows or none)
- Replaces the dataset by default so re-uploads never double-count
- Detailed error reporting per row
"""

import logging

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile, status
from sqlalchemy.orm import Session

from portfolio_calculator.database import get_db
from portfolio_calculator.dependencies import get_ingestion_service
from portfolio_calculator.middleware.rate_limit import limiter, RATE_LIMIT_DEFAULT, RATE_LIMIT_UPLOAD
from portfolio_calculator.schemas.errors import ErrorDetail
from portfolio_calculator.schemas.upload import ImportResponse, SupportedFormatsResponse
from portfolio_calculator.services.constants import MAX_UPLOAD_FILE_SIZE_BYTES
from portfolio_calculator.services.ingestion import (
    Dataset,
    IngestionService,
    get_supported_extensions,
)

logger = logging.getLogger(__name__)

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/upload",
    tags=["Upload"],
)


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get(
    "/formats",
    response_model=SupportedFormatsResponse,
    summary="List accepted datasets and file formats",
)
@limiter.limit(RATE_LIMIT_DEFAULT)
def get_supported_formats(request: Request) -> SupportedFormatsResponse:
    return SupportedFormatsResponse(
        datasets=[d.value for d in Dataset],
        extensions=get_supported_extensions(),
    )


@router.post(
    "/{dataset}",
    response_model=ImportResponse,
    summary="Upload a dataset file",
    response_description="Import result (check 'success')",
    responses={
        400: {"model": ErrorDetail, "description": "Unsupported file type"},
        413: {"description": "File too large"},
    },
)
@limiter.limit(RATE_LIMIT_UPLOAD)
def upload_dataset(
        request: Request,  # Required for rate limiting
        dataset: Dataset,
        file: UploadFile = File(..., description="Semicolon-delimited CSV file"),
        replace: bool = Query(
            default=True,
            description="Delete the dataset's existing rows before importing"
        ),
        db: Session = Depends(get_db),
        ingestion_service: IngestionService = Depends(get_ingestion_service),
) -> ImportResponse:
    """
    Import one of the three datasets.

    | Dataset | Header |
    |---------|--------|
    | `investments` | `InvestorId;InvestmentId;InvestmentType;ISIN;City;FondsInvestor` |
    | `transactions` | `InvestmentId;Type;Date;Value` |
    | `quotes` | `ISIN;Date;PricePerShare` |

    **Atomic:** If ANY row is invalid, NOTHING is stored. The response is 200
    either way; `success` and `errors` tell which.

    ```bash
    curl -X POST "http://localhost:8000/upload/investments" -F "file=@Investments.csv"
    ```
    """
    filename = file.filename or "unknown"
    logger.info(f"Upload request: {filename} -> {dataset.value} (replace={replace})")

    file_content = file.file.read()
    file_size = len(file_content)
    file.file.seek(0)

    if file_size > MAX_UPLOAD_FILE_SIZE_BYTES:
        max_mb = MAX_UPLOAD_FILE_SIZE_BYTES / (1024 * 1024)
        actual_mb = file_size / (1024 * 1024)
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large: {actual_mb:.1f}MB exceeds maximum of {max_mb:.0f}MB"
        )

    # UnsupportedFileTypeError propagates to the global IngestionError handler
    result = ingestion_service.import_file(
        db=db,
        dataset=dataset,
        file=file.file,
        filename=filename,
        content_type=file.content_type,
        replace=replace,
    )

    if result.success:
        logger.info(f"Upload successful: {result.imported_count} {dataset.value} rows")
    else:
        logger.warning(f"Upload rejected: {result.error_count} errors")

    return ImportResponse.from_result(result)
