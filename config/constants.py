import os
from typing import Dict, Any, List

__version__ = "1.0.0"

CACHE_PREFIX = "wrenchd-ivhc"
CACHE_VERSION = "v1"

CACHE_CLASSES = {
    'static': 'static',
    'api': 'api',
    'image': 'images',
}

API_PREFIX = "/api/"

SYNC_TAG = "sync-pending-data"

SYNC_START = "SYNC_START"
SYNC_COMPLETE = "SYNC_COMPLETE"

OFFLINE_MESSAGE = "Saved offline, will sync when online"

STATIC_MANIFEST: List[str] = [
    '/',
    '/static/js/bundle.js',
    '/static/css/main.css',
    '/manifest.json',
    '/wrenchd_ivhc_icon_512x512.png',
    '/wrenchd_ivhc_icon_192x192.png',
]

PUSH_DEFAULTS = {
    'title': 'Wrenchd IVHC',
    'body': 'New update available',
    'icon': '/wrenchd_ivhc_icon_192x192.png',
    'badge': '/wrenchd_ivhc_icon_192x192.png',
    'vibrate': [100, 50, 100],
    'primary_key': 1,
    'click_url': '/',
}

DEFAULT_CONFIG: Dict[str, Any] = {
    'origin': 'http://localhost:5000',
    'cache_prefix': CACHE_PREFIX,
    'cache_version': CACHE_VERSION,
    'cache_db_path': os.path.join('.vhc_offline', 'caches.db'),
    'storage_db_path': os.path.join('.vhc_offline', 'offline.db'),
    'request_timeout': 15.0,
    'replay_timeout': 30,
    'replay_retries': 2,
    'replay_backoff_factor': 0.5,
    'log_level': 'WARNING',
    'user_agent': f'WrenchdIVHC-Offline/{__version__}',
}

OFFLINE_STORES = {
    'jobs': 'id',
    'vhc_data': 'jobId',
    'fit_finish_data': 'jobId',
    'vehicles': 'vrm',
    'customers': 'id',
    'user_data': 'id',
}

PENDING_OP_TYPES = [
    'CREATE_JOB',
    'UPDATE_JOB',
    'DELETE_JOB',
    'CREATE_VHC',
    'UPDATE_VHC',
    'CREATE_FIT_FINISH',
    'UPDATE_FIT_FINISH',
]

SECURITY_CONTROLS = {
    'max_url_length': 2048,
    'allowed_schemes': ['http', 'https'],
    'allowed_methods': ['GET', 'HEAD', 'POST', 'PUT', 'PATCH', 'DELETE'],
    'max_path_depth': 20,
}

EXIT_CODES = {
    'SUCCESS': 0,
    'USAGE_ERROR': 1,
    'NETWORK_ERROR': 2,
    'CONFIG_ERROR': 3,
    'STORAGE_ERROR': 4,
    'SYNC_ERROR': 5,
    'UNKNOWN_ERROR': 255
}

ENV_VARS = {
    'VHC_ORIGIN': 'origin',
    'VHC_CACHE_VERSION': 'cache_version',
    'VHC_CACHE_DB': 'cache_db_path',
    'VHC_STORAGE_DB': 'storage_db_path',
    'VHC_TIMEOUT': 'request_timeout',
    'VHC_LOG_LEVEL': 'log_level',
    'VHC_LOG_FILE': 'log_file',
}


def get_version() -> str:
    return __version__


def cache_name(kind: str, version: str = CACHE_VERSION, prefix: str = CACHE_PREFIX) -> str:
    return f"{prefix}-{CACHE_CLASSES[kind]}-{version}"


def current_cache_names(version: str = CACHE_VERSION, prefix: str = CACHE_PREFIX) -> List[str]:
    return [cache_name(k, version, prefix) for k in CACHE_CLASSES]


def is_valid_timeout(timeout: Any) -> bool:
    return isinstance(timeout, (int, float)) and 0 < timeout <= 300
