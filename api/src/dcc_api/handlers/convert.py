#!/usr/bin/env python3
"""
Handlers for source XML to DCC conversion.

Batch conversion runs one mapping pass per uploaded file with controlled
concurrency: a shared semaphore bounds parallel conversions system-wide and
every file gets its own timeout. A failing file never fails the batch.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List

from fastapi import HTTPException, UploadFile

from ..core.config import batch_config
from ..core.dependencies import get_profile_registry
from ..models.models import ConvertAndGenerateResponse, ProfileLoadReport
from ..services.domain.dcc_xml import generate_dcc_xml
from ..services.domain.mapping import SourceXmlParseError, convert_xml_to_dcc_json, detect_profile
from ..services.profiles import MappingProfileError, load_profile_from_dict, parse_profile_text

logger = logging.getLogger(__name__)

# Shared semaphore for system-wide concurrency control
# Configurable via BATCH_MAX_CONCURRENT_OPERATIONS environment variable
# Lazy-initialized to avoid event loop issues at module load time
_conversion_semaphore = None


def _get_semaphore() -> asyncio.Semaphore:
    """Get or create the conversion semaphore."""
    global _conversion_semaphore
    if _conversion_semaphore is None:
        _conversion_semaphore = asyncio.Semaphore(batch_config.MAX_CONCURRENT_OPERATIONS)
    return _conversion_semaphore


def _create_success_result(
    filename: str,
    dcc_json: Dict[str, Any],
    report: ProfileLoadReport
) -> Dict[str, Any]:
    """Create success result dictionary for a single file."""
    return {
        "filename": filename,
        "status": "success",
        "profile_name": report.profile.name,
        "dcc_json": dcc_json,
        "skipped_rules": [rule.model_dump() for rule in report.skipped]
    }


def _create_error_result(filename: str, error_message: str) -> Dict[str, Any]:
    """Create error result dictionary for a single file."""
    return {
        "filename": filename,
        "status": "failed",
        "error": error_message
    }


def resolve_profile(profile_json: str = None, profile_name: str = None) -> ProfileLoadReport | None:
    """Pick the profile a request asks for.

    Args:
        profile_json: Profile document sent with the request (JSON text)
        profile_name: Name of a profile from PROFILE_DIR

    Returns:
        The profile load report, or None when the profile should be detected per file

    Raises:
        HTTPException: 400 for an invalid uploaded profile, 404 for an unknown name
    """
    if profile_json:
        try:
            report = load_profile_from_dict(parse_profile_text(profile_json))
        except MappingProfileError as e:
            raise HTTPException(status_code=400, detail=f"Invalid mapping profile: {str(e)}")
        logger.info(
            f"Using uploaded profile '{report.profile.name}' ({len(report.skipped)} rules skipped)",
            extra={"profile_name": report.profile.name}
        )
        return report

    if profile_name:
        for _, report in get_profile_registry():
            if report.profile.name == profile_name:
                logger.info(f"Using profile '{profile_name}'", extra={"profile_name": profile_name})
                return report
        raise HTTPException(status_code=404, detail=f"Mapping profile '{profile_name}' not found")

    return None


def _detect_report(xml_content: bytes) -> ProfileLoadReport | None:
    reports = [report for _, report in get_profile_registry()]
    profile = detect_profile(xml_content, [report.profile for report in reports])
    if profile is None:
        return None
    return next(report for report in reports if report.profile is profile)


async def _read_upload(file: UploadFile) -> bytes:
    """Read an uploaded file, enforcing MAX_UPLOAD_BYTES."""
    content = await file.read()
    if len(content) > batch_config.MAX_UPLOAD_BYTES:
        raise ValueError(
            f"File is {len(content)} bytes; the maximum is {batch_config.MAX_UPLOAD_BYTES} bytes (MAX_UPLOAD_BYTES)"
        )
    return content


async def _convert_single_file(file: UploadFile, report: ProfileLoadReport | None) -> Dict[str, Any]:
    """Convert a single XML file to DCC-JSON with error handling.

    This function is called concurrently for multiple files, controlled by semaphore.

    Args:
        file: Uploaded source XML file
        report: Profile to apply; None detects the profile from the document

    Returns:
        Result dictionary with success or error status
    """
    try:
        # Acquire semaphore to limit concurrent conversions
        async with _get_semaphore():
            logger.info(f"Starting conversion for: {file.filename}", extra={"file_name": file.filename})

            try:
                xml_content = await _read_upload(file)
                logger.debug(f"Read XML file: {file.filename} ({len(xml_content)} bytes)")
            except Exception as e:
                logger.error(f"Failed to read XML file {file.filename}: {e}")
                return _create_error_result(file.filename, f"Failed to read file: {str(e)}")

            if report is None:
                report = _detect_report(xml_content)
                if report is None:
                    return _create_error_result(
                        file.filename,
                        "No mapping profile matches this document. Upload a profile or choose one by name."
                    )

            try:
                dcc_json = await asyncio.to_thread(convert_xml_to_dcc_json, xml_content, report.profile)
            except SourceXmlParseError as e:
                logger.error(f"XML parse error for {file.filename}: {e}")
                return _create_error_result(file.filename, f"Invalid XML: {str(e)}")
            except Exception as e:
                logger.error(f"Unexpected conversion error for {file.filename}: {e}")
                return _create_error_result(file.filename, f"Unexpected error: {str(e)}")

            logger.info(
                f"Conversion successful for: {file.filename}",
                extra={"file_name": file.filename, "profile_name": report.profile.name}
            )
            return _create_success_result(file.filename, dcc_json, report)

    except asyncio.TimeoutError:
        logger.error(f"Conversion timed out for: {file.filename}")
        return _create_error_result(file.filename, "Conversion timed out")
    except Exception as e:
        logger.error(f"Unexpected error processing {file.filename}: {e}")
        return _create_error_result(file.filename, f"Unexpected error: {str(e)}")


async def handle_xml_to_dcc_json_batch(
    files: List[UploadFile],
    profile_json: str = None,
    profile_name: str = None
) -> Dict[str, Any]:
    """
    Handle batch source XML to DCC-JSON conversion request.

    Args:
        files: List of uploaded XML files
        profile_json: Optional mapping profile document (JSON text)
        profile_name: Optional name of a profile in PROFILE_DIR

    Returns:
        Dictionary with:
        - files_processed: int - total files in batch
        - successful: int - number of successful conversions
        - failed: int - number of failed conversions
        - results: List[Dict] - per-file results

    Raises:
        HTTPException: For batch-level error conditions
    """
    logger.info(f"Starting batch conversion for {len(files)} files")

    try:
        # Validate batch size (configurable via BATCH_MAX_CONVERSION_FILES env var)
        max_files = batch_config.get_batch_limit('conversion')
        if len(files) > max_files:
            raise HTTPException(
                status_code=400,
                detail=f"Batch size exceeds maximum of {max_files} files. "
                       f"Received {len(files)} files. "
                       f"To increase this limit, set BATCH_MAX_CONVERSION_FILES in your .env file and restart the API service."
            )

        report = resolve_profile(profile_json, profile_name)
        if report is None and not get_profile_registry():
            raise HTTPException(
                status_code=400,
                detail="No mapping profile provided and no profiles are configured for detection (PROFILE_DIR)."
            )

        logger.info(f"Processing {len(files)} files with max {batch_config.MAX_CONCURRENT_OPERATIONS} concurrent conversions")

        tasks = [
            asyncio.wait_for(_convert_single_file(file, report), timeout=batch_config.OPERATION_TIMEOUT)
            for file in files
        ]

        # Execute all tasks (semaphore controls actual concurrency)
        results = await asyncio.gather(*tasks, return_exceptions=True)

        processed_results = []
        for i, result in enumerate(results):
            if isinstance(result, Exception):
                logger.error(f"Task failed for {files[i].filename}: {result}")
                processed_results.append(_create_error_result(
                    files[i].filename,
                    f"Processing error: {str(result) or type(result).__name__}"
                ))
            else:
                processed_results.append(result)

        successful = sum(1 for r in processed_results if r["status"] == "success")
        failed = len(processed_results) - successful

        logger.info(f"Batch conversion complete: {successful} successful, {failed} failed")

        return {
            "files_processed": len(files),
            "successful": successful,
            "failed": failed,
            "results": processed_results
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during batch conversion: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Unexpected error during batch conversion: {str(e)}"
        )


def _convert_and_generate(xml_content: bytes, report: ProfileLoadReport):
    dcc_json = convert_xml_to_dcc_json(xml_content, report.profile)
    xml_text, warnings = generate_dcc_xml(dcc_json)
    return dcc_json, xml_text, warnings


async def handle_xml_to_dcc(
    file: UploadFile,
    profile_json: str = None,
    profile_name: str = None
) -> ConvertAndGenerateResponse:
    """Convert one source XML file and generate DCC XML in a single step.

    Raises:
        HTTPException: 400 for unreadable/unparseable input or no matching profile,
            504 when conversion exceeds BATCH_OPERATION_TIMEOUT
    """
    try:
        xml_content = await _read_upload(file)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    report = resolve_profile(profile_json, profile_name)

    try:
        if report is None:
            report = await asyncio.wait_for(
                asyncio.to_thread(_detect_report, xml_content),
                timeout=batch_config.OPERATION_TIMEOUT
            )
            if report is None:
                raise HTTPException(
                    status_code=400,
                    detail="No mapping profile matches this document. Upload a profile or choose one by name."
                )

        dcc_json, xml_text, warnings = await asyncio.wait_for(
            asyncio.to_thread(_convert_and_generate, xml_content, report),
            timeout=batch_config.OPERATION_TIMEOUT
        )
    except SourceXmlParseError as e:
        raise HTTPException(status_code=400, detail=f"Invalid XML: {str(e)}")
    except asyncio.TimeoutError:
        logger.error(f"Conversion timed out for: {file.filename}")
        raise HTTPException(
            status_code=504,
            detail=f"Conversion timed out after {batch_config.OPERATION_TIMEOUT} seconds. "
                   f"To increase this limit, set BATCH_OPERATION_TIMEOUT in your .env file and restart the API service."
        )

    logger.info(
        f"Generated DCC for {file.filename} with {len(warnings)} warnings",
        extra={"file_name": file.filename, "profile_name": report.profile.name}
    )

    return ConvertAndGenerateResponse(
        filename=Path(file.filename or "certificate.xml").name,
        profile_name=report.profile.name,
        dcc_json=dcc_json,
        xml=xml_text,
        warnings=warnings,
        skipped_rules=report.skipped
    )
