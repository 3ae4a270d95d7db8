#!/usr/bin/env python3

import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, List

from fastapi import Body, Depends, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from .core.auth import verify_token
from .core.dependencies import get_profile_registry
from .core.env_utils import getenv_list
from .core.logging import setup_logging
from .models.models import ConvertAndGenerateResponse, GenerateResponse

logger = logging.getLogger(__name__)

# Application start time for uptime calculation
_app_start_time = time.time()

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    setup_logging()
    logger.info("Starting DCC converter service")

    profiles = get_profile_registry()
    logger.info(f"{len(profiles)} mapping profiles available for detection")

    yield

    # Shutdown
    logger.info("Shutting down DCC converter service")


app = FastAPI(
    title="DCC Converter API",
    description="API for converting calibration certificate XML into Digital Calibration Certificates",
    version=os.getenv("APP_VERSION", "unknown"),
    lifespan=lifespan
)

# CORS middleware
allowed_origins = getenv_list("CORS_ORIGINS", ["http://localhost:3000"])
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add version header middleware
@app.middleware("http")
async def add_version_header(request, call_next):
    """Add version information to response headers"""
    response = await call_next(request)
    response.headers["X-API-Version"] = os.getenv("APP_VERSION", "unknown")
    return response

@app.get("/healthz")
async def health_check():
    """Liveness probe - checks if application is alive and can serve requests"""
    current_time = time.time()
    return {
        "status": "healthy",
        "timestamp": current_time,
        "uptime": current_time - _app_start_time,
        "api_version": os.getenv("APP_VERSION", "unknown"),
        "dcc_schema_version": "3.3.0"
    }


# Profile Routes

@app.get("/api/profiles")
async def list_profiles(token: str = Depends(verify_token)):
    """List mapping profiles available for selection and auto-detection"""
    from .handlers.profiles import handle_list_profiles
    return handle_list_profiles()


# Conversion Routes

@app.post("/api/convert/xml-to-dcc-json")
async def convert_xml_to_dcc_json(
    files: List[UploadFile] = File(None),
    file: UploadFile = File(None),
    profile: str = Form(None),
    profile_name: str = Form(None),
    token: str = Depends(verify_token)
):
    """Convert calibration certificate XML file(s) to DCC-JSON.

    Supports both single file and batch conversion. The mapping profile is
    taken from the uploaded profile JSON, else from profile_name, else
    detected per file from the configured profiles.

    Args:
        files: Multiple XML files to convert (for batch processing)
        file: Single XML file to convert
        profile: Optional mapping profile document (JSON text)
        profile_name: Optional name of a configured profile
        token: Authentication token

    Returns:
        Batch result with per-file status, DCC-JSON and skipped rules
    """
    from .handlers.convert import handle_xml_to_dcc_json_batch

    if file and files:
        files = [file] + files
    elif file:
        files = [file]
    elif not files:
        raise HTTPException(
            status_code=400,
            detail="No files provided. Please upload at least one XML file."
        )

    return await handle_xml_to_dcc_json_batch(files, profile, profile_name)


@app.post("/api/convert/xml-to-dcc", response_model=ConvertAndGenerateResponse)
async def convert_xml_to_dcc(
    file: UploadFile = File(...),
    profile: str = Form(None),
    profile_name: str = Form(None),
    token: str = Depends(verify_token)
):
    """Convert one XML file to DCC-JSON and DCC XML in a single step"""
    from .handlers.convert import handle_xml_to_dcc
    return await handle_xml_to_dcc(file, profile, profile_name)


# Generation Routes

@app.post("/api/generate/dcc-xml", response_model=GenerateResponse)
async def generate_dcc_xml(
    dcc_json: Dict[str, Any] = Body(...),
    token: str = Depends(verify_token)
):
    """Generate DCC XML from (possibly edited) DCC-JSON"""
    from .handlers.generate import handle_generate_dcc_xml
    return handle_generate_dcc_xml(dcc_json)


# Inspection Routes

@app.post("/api/inspect/xml-tree")
async def inspect_xml_tree(
    file: UploadFile = File(...),
    token: str = Depends(verify_token)
):
    """Element tree and rule source paths of a source XML file"""
    from .handlers.inspect import handle_xml_tree
    return await handle_xml_tree(file)


if __name__ == "__main__":
    import uvicorn
    host = os.getenv("API_HOST", "0.0.0.0")  # nosec B104
    port = int(os.getenv("API_PORT", "8000"))
    uvicorn.run(app, host=host, port=port)
