#!/usr/bin/env python3
"""Handler for source XML structure inspection (profile authoring aid)."""

import logging
from typing import Any, Dict

from fastapi import HTTPException, UploadFile

from ..core.config import batch_config
from ..services.domain.mapping import flatten_xml_paths, parse_xml_to_tree

logger = logging.getLogger(__name__)


async def handle_xml_tree(file: UploadFile) -> Dict[str, Any]:
    """Return the element tree and every usable rule source path of an XML file.

    Raises:
        HTTPException: 400 when the file is too large or not well-formed XML
    """
    content = await file.read()
    if len(content) > batch_config.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=400,
            detail=f"File exceeds maximum size of {batch_config.MAX_UPLOAD_BYTES} bytes"
        )

    tree = parse_xml_to_tree(content)
    if tree is None:
        raise HTTPException(status_code=400, detail=f"File '{file.filename}' is not well-formed XML")

    paths = flatten_xml_paths(tree)
    logger.info(f"Inspected {file.filename}: {len(paths)} paths", extra={"file_name": file.filename})
    return {
        "filename": file.filename,
        "tree": tree.to_dict(),
        "paths": paths
    }
