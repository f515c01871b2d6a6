import re
from urllib.parse import urlparse, urljoin
from typing import Optional, Tuple

from config.constants import SECURITY_CONTROLS
from ..models.exceptions import (
    URLValidationException,
    ValidationException,
)

class URLValidator:
    def __init__(self):
        self.allowed_schemes = SECURITY_CONTROLS['allowed_schemes']
        self.max_url_length = SECURITY_CONTROLS['max_url_length']
        self.max_path_depth = SECURITY_CONTROLS['max_path_depth']

    def validate_url(self, url: str, base_url: Optional[str] = None) -> Tuple[bool, str]:
        if not url or not isinstance(url, str):
            return False, "URL must be a non-empty string"

        if base_url and not url.startswith(("http://", "https://")):
            try:
                url = urljoin(base_url, url)
            except Exception as e:
                return False, f"URL join failed: {e}"

        if len(url) > self.max_url_length:
            return False, "URL too long"

        try:
            parsed = urlparse(url)

            if parsed.scheme not in self.allowed_schemes:
                return False, f"Invalid scheme: {parsed.scheme}"

            if not parsed.netloc:
                return False, "Missing network location"

            ok, err = self._validate_path(parsed.path or "/")
            if not ok:
                return False, err

            if parsed.username or parsed.password:
                return False, "Credentials in URL are not allowed"

            return True, ""

        except Exception as e:
            return False, f"URL parsing error: {e}"

    def _validate_path(self, path: str) -> Tuple[bool, str]:
        if ".." in path:
            return False, "Path contains traversal sequences"
        if re.search(r'[<>"\']', path):
            return False, "Path contains dangerous characters"
        if path.count("/") > self.max_path_depth:
            return False, "Path too deep"
        return True, ""

    def resolve(self, url: str, base_url: Optional[str] = None) -> str:
        valid, err = self.validate_url(url, base_url)
        if not valid:
            raise URLValidationException(f"URL validation failed: {err}", field="url", value=url)
        if base_url and not url.startswith(("http://", "https://")):
            url = urljoin(base_url, url)
        return url


class InputSanitizer:
    def __init__(self):
        self.allowed_methods = SECURITY_CONTROLS['allowed_methods']

    def sanitize_string(self, input_str: str, max_length: int = 4096) -> str:
        if not input_str:
            return ""
        s = input_str[:max_length]
        s = re.sub(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]", "", s)
        s = " ".join(s.split())
        return s

    def parse_header(self, raw: str) -> Tuple[str, str]:
        if ":" not in raw:
            raise ValidationException("Header must look like 'Name: value'", field="header", value=raw)
        k, v = raw.split(":", 1)
        k, v = self.sanitize_string(k.strip(), 256), self.sanitize_string(v.strip(), 2048)
        if not k or not v:
            raise ValidationException("Header name and value must not be empty", field="header", value=raw)
        return k, v

    def validate_method(self, method: str) -> str:
        m = (method or "").upper()
        if m not in self.allowed_methods:
            raise ValidationException(f"Unsupported HTTP method: {method}", field="method", value=method)
        return m

url_validator = URLValidator()
input_sanitizer = InputSanitizer()
