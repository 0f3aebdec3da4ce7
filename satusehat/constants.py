"""
Library constants.

These values are intentionally not configurable via environment variables.
"""

# Token/auth
TOKEN_ANTICIPATION_SECONDS = 300  # Treat tokens as expired this long before the server does
TOKEN_CACHE_KEY = "satusehat:auth_detail"

# Request limits
REQUEST_TIMEOUT_SECONDS = 30

# KYC envelope encryption
RSA_KEY_SIZE = 2048
RSA_PUBLIC_EXPONENT = 65537
AES_KEY_SIZE = 32  # AES-256
GCM_IV_SIZE = 12
GCM_TAG_SIZE = 16
ENVELOPE_LINE_WIDTH = 76
ENVELOPE_BEGIN = "-----BEGIN ENCRYPTED MESSAGE-----"
ENVELOPE_END = "-----END ENCRYPTED MESSAGE-----"

# KYC public key files
PRODUCTION_PEM_FILE = "publickey.pem"
SANDBOX_PEM_FILE = "publickey.sandbox.pem"

# KFA pagination
KFA_DEFAULT_PAGE = 1
KFA_DEFAULT_PAGE_SIZE = 50
