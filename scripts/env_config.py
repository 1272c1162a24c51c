#!/usr/bin/env python3
"""
CENTRALIZED ENVIRONMENT CONFIGURATION
Ensures environment variables are loaded consistently across the console
"""

import os
import logging
from pathlib import Path
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Get the project root directory (where .env file is located)
PROJECT_ROOT = Path(__file__).parent.parent.absolute()
ENV_FILE = PROJECT_ROOT / '.env'

# Global flag to track if environment has been loaded
_ENV_LOADED = False

def ensure_env_loaded():
    """Ensure environment variables are loaded exactly once"""
    global _ENV_LOADED

    if not _ENV_LOADED:
        # Load .env file from project root
        if ENV_FILE.exists():
            load_dotenv(ENV_FILE)
            logger.info(f"Environment loaded from {ENV_FILE}")
        else:
            logger.debug(f"No .env file found at {ENV_FILE}")

        _ENV_LOADED = True

    return _ENV_LOADED

def get_env_var(key: str, default: str = None) -> str:
    """Get environment variable with automatic loading"""
    ensure_env_loaded()
    return os.getenv(key, default)

def _parse_int_list(raw: str, default: list) -> list:
    try:
        values = [int(part) for part in raw.split(',') if part.strip()]
    except ValueError:
        logger.warning(f"Invalid integer list '{raw}', using {default}")
        return default
    return values or default

def get_app_config() -> dict:
    """Get runtime settings for parsing, drafts and OCR"""
    ensure_env_loaded()
    return {
        'timezone': os.getenv('APP_TIMEZONE', 'America/Los_Angeles'),
        'draft_store_path': os.getenv('DRAFT_STORE_PATH', str(PROJECT_ROOT / 'data' / 'ocr_draft.json')),
        'default_sort_order': int(os.getenv('DEFAULT_SORT_ORDER', '1000')),
        'ocr_psm_modes': _parse_int_list(os.getenv('OCR_PSM_MODES', '6,3,11'), [6, 3, 11]),
        'tesseract_cmd': os.getenv('TESSERACT_CMD'),
        'debug_mode': os.getenv('DEBUG_MODE', 'false').lower() == 'true'
    }

def check_env_status() -> dict:
    """Check environment configuration status"""
    ensure_env_loaded()

    app_config = get_app_config()
    return {
        'env_file_exists': ENV_FILE.exists(),
        'env_file_path': str(ENV_FILE),
        'env_loaded': _ENV_LOADED,
        'timezone': app_config['timezone'],
        'has_tesseract_override': bool(app_config['tesseract_cmd']),
    }
