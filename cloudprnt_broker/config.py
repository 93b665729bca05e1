"""
CloudPRNT Broker Configuration
"""

import os


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() == 'true'


# =============================================================================
# Server Configuration
# =============================================================================

PORT = int(os.environ.get('PORT', os.environ.get('CLOUDPRNT_PORT', 3000)))
HOST = os.environ.get('CLOUDPRNT_HOST', '0.0.0.0')
DEBUG = _env_bool('CLOUDPRNT_DEBUG', 'false')
LOG_LEVEL = os.environ.get('CLOUDPRNT_LOG_LEVEL', 'INFO').upper()

# Request body limit for JSON submissions and printer status posts
MAX_BODY_BYTES = 1024 * 1024

# Unauthenticated job listing at /api/debug/jobs
DEBUG_ENDPOINTS = _env_bool('CLOUDPRNT_DEBUG_ENDPOINTS', 'true')

# =============================================================================
# CORS
# =============================================================================

# Kiosk origins allowed to submit orders from the browser
DEFAULT_ALLOWED_ORIGINS = [
    'https://brilliant-cascaron-a302b3.netlify.app',
    'http://localhost:4173',
    'http://localhost:5173',
    'http://localhost:3000',
]

_origins = os.environ.get('CLOUDPRNT_ALLOWED_ORIGINS', '')
ALLOWED_ORIGINS = (
    [o.strip() for o in _origins.split(',') if o.strip()]
    if _origins else DEFAULT_ALLOWED_ORIGINS
)

# =============================================================================
# CloudPRNT Protocol
# =============================================================================

MEDIA_TYPES = ['text/plain']
CONTENT_TYPE = 'text/plain; charset=utf-8'

# Seconds the printer should wait before polling again after a job is handed out
POLL_INTERVAL = int(os.environ.get('CLOUDPRNT_POLL_INTERVAL', 5))

# Printer status code on DELETE that means "printed OK"
SUCCESS_STATUS = '0'

# Reject (409) instead of tolerating repeat or premature acknowledgements
STRICT_ACK = _env_bool('CLOUDPRNT_STRICT_ACK', 'false')

# =============================================================================
# Storage Configuration
# =============================================================================

# Finished (done/error) jobs kept in memory; 0 keeps all of them
MAX_FINISHED_JOBS = int(os.environ.get('CLOUDPRNT_MAX_FINISHED_JOBS', 0))
