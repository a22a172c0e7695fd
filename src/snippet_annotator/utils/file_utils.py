"""
File Utilities - reading instruction files and preparing output paths
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

import chardet

logger = logging.getLogger(__name__)

# Instruction and response files are small; this is plenty for detection
ENCODING_SAMPLE_BYTES = 10000


def detect_file_encoding(file_path: str) -> str:
    """
    Detect the encoding of a text file

    Args:
        file_path: Path to the file

    Returns:
        Detected encoding name, 'utf-8' when detection is unsure
    """
    try:
        with open(file_path, 'rb') as f:
            raw_data = f.read(ENCODING_SAMPLE_BYTES)
    except OSError as e:
        logger.warning(f"Error detecting encoding for {file_path}: {e}")
        return 'utf-8'

    result = chardet.detect(raw_data)
    encoding = result.get('encoding') or 'utf-8'
    confidence = result.get('confidence') or 0

    logger.debug(f"Detected encoding for {file_path}: {encoding} (confidence: {confidence:.2f})")

    if confidence < 0.5:
        return 'utf-8'
    return encoding


def safe_read_text_file(file_path: str, encoding: Optional[str] = None) -> str:
    """
    Read a text file, detecting its encoding and falling back to common
    encodings when decoding fails

    Args:
        file_path: Path to the file
        encoding: Specific encoding to use (optional)

    Returns:
        File contents as string
    """
    if not encoding:
        encoding = detect_file_encoding(file_path)

    try:
        with open(file_path, 'r', encoding=encoding) as f:
            return f.read()
    except (UnicodeDecodeError, LookupError):
        for fallback in ['utf-8', 'cp1252', 'latin-1']:
            if fallback == encoding:
                continue
            try:
                with open(file_path, 'r', encoding=fallback) as f:
                    logger.warning(f"Used fallback encoding {fallback} for {file_path}")
                    return f.read()
            except UnicodeDecodeError:
                continue
        raise


def read_json_file(file_path: str) -> Any:
    """Read and parse a JSON file of any text encoding."""
    text = safe_read_text_file(file_path)
    # utf-8-sig files decoded as utf-8 keep the BOM
    return json.loads(text.lstrip('\ufeff'))


def ensure_parent_directory(file_path: str) -> bool:
    """
    Ensure the directory that will hold `file_path` exists

    Returns:
        True if the directory exists or was created successfully
    """
    try:
        Path(file_path).parent.mkdir(parents=True, exist_ok=True)
        return True
    except OSError as e:
        logger.error(f"Error creating directory for {file_path}: {e}")
        return False
