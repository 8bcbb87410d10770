"""
The contents of this file are property of Doorman Dev, LLC
Review the Apache License 2.0 for valid authorization of use
See https://github.com/apidoorman/doorman for more information
"""

class Headers:
    REQUEST_ID = 'X-Request-ID'
    CONTENT_DISPOSITION = 'Content-Disposition'

class Defaults:
    FALLBACK_BASE_URL = 'https://scaleup.frameforge.one'
    UPSTREAM_PREFIX = 'scaleup2026'
    GENERATE_TIMEOUT_SECONDS = 75.0
    UPSTREAM_TIMEOUT_SECONDS = 30.0
    CONNECT_TIMEOUT_SECONDS = 5.0
    MAX_PHOTO_BYTES = 2 * 1024 * 1024
    MAX_BODY_SIZE_BYTES = 5_242_880
    CONTENT_TYPE = 'application/json'
    BINARY_CONTENT_TYPE = 'application/octet-stream'
    IMAGE_FILENAME = 'image.png'
    IMAGE_DISPOSITION = 'attachment'
    IMAGE_PROXY_ALLOWED_HOSTS = ('scaleup.frameforge.one', '.amazonaws.com')

class ImageTypes:
    ALLOWED = ('image/jpeg', 'image/png', 'image/jpg')

class RequiredFields:
    GENERATE = (
        'name',
        'email',
        'phone_no',
        'district',
        'category',
        'organization',
        'prompt_type',
        'photo',
    )
    OTP_GENERATE = ('phoneNumber',)
    OTP_VERIFY = ('phoneNumber', 'otp')
    REGISTER = ('name', 'email', 'phone_no', 'district', 'category', 'organization')

class Messages:
    UNEXPECTED = 'An unexpected error occurred'
    PHOTO_REQUIRED = 'Photo is required'
    INVALID_IMAGE_FORMAT = 'Invalid image format'
    IMAGE_TOO_LARGE = 'Image file too large'
    INVALID_IDENTIFIER = 'Invalid user ID or phone number format'
    NOT_CONFIGURED = 'Upstream service not configured'
    UNREACHABLE = 'Backend unreachable'
    TIMEOUT = 'Backend timeout'
    PROCESSING = 'Backend processing'
    BACKEND_ERROR = 'Backend error'
    INVALID_RESPONSE = 'Invalid response'
    REQUEST_TOO_LARGE = 'Request body too large'
    IMAGE_FETCH_FAILED = 'Failed to fetch image'
    URL_REQUIRED = 'URL is required'
    URL_NOT_ALLOWED = 'URL host is not allowed'
    INVALID_RANGE = 'Invalid analytics range'
