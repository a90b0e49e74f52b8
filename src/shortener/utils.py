import re
from datetime import datetime, timezone
from logging import getLogger
from urllib.parse import urlsplit

from fastapi import Request
from pydantic import HttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from config import SHORT_URL_BASE
from shortener.errors import InvalidShortCode, InvalidURL

logger = getLogger('shortener_utils')

MAX_URL_LENGTH = 2048
MAX_SHORT_CODE_LENGTH = 20

_http_url = TypeAdapter(HttpUrl)

SHORT_CODE_RE = re.compile(rf'^[A-Za-z0-9_-]{{1,{MAX_SHORT_CODE_LENGTH}}}$')
SUSPICIOUS_PATTERNS = (
    re.compile(r'\.\.'),             # path traversal
    re.compile(r'%[0-9a-f]{2}', re.I),
    re.compile(r'[<>\'"&]'),
    re.compile(r'\x00'),
    re.compile(r'\\'),
    re.compile(r'/'),
)

SCHEME_RE = re.compile(r'^[A-Za-z][A-Za-z0-9+.-]*://')


def normalize_url(url: str) -> str:
    url = url.strip()
    # other schemes are left alone so validation rejects them
    if not SCHEME_RE.match(url):
        url = 'https://' + url
        logger.debug(f"Fixed url to {url}")
    return url


def is_valid_url(url: str) -> bool:
    if not url or len(url) > MAX_URL_LENGTH or any(c.isspace() for c in url):
        return False
    if urlsplit(url).scheme not in ('http', 'https'):
        return False
    try:
        _http_url.validate_python(url)
    except PydanticValidationError:
        return False
    return True


def validate_and_fix_url(url: str) -> str:
    """Prepends https:// when the scheme is missing and checks the result is a usable http(s) URL."""
    if not url or not url.strip():
        raise InvalidURL("URL is required")
    url = normalize_url(url)
    if len(url) > MAX_URL_LENGTH:
        raise InvalidURL(f"URL is too long (maximum {MAX_URL_LENGTH} characters)")
    if not is_valid_url(url):
        raise InvalidURL()
    return url


def extract_domain(url: str) -> str | None:
    return urlsplit(url).hostname


def check_short_code(short_code: str, client_ip: str | None = None) -> str:
    if not SHORT_CODE_RE.fullmatch(short_code) or any(p.search(short_code) for p in SUSPICIOUS_PATTERNS):
        logger.warning(f"Blocked malicious short code attempt: {short_code!r} from IP: {client_ip}")
        raise InvalidShortCode()
    return short_code


def generate_url_from_short_code(short_code: str) -> str:
    return f'{SHORT_URL_BASE}/{short_code}'


def get_client_ip(request: Request) -> str | None:
    forwarded = request.headers.get('x-forwarded-for')
    if forwarded:
        return forwarded.split(',')[0].strip()
    real_ip = request.headers.get('x-real-ip')
    if real_ip:
        return real_ip
    return request.client.host if request.client else None


def as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
