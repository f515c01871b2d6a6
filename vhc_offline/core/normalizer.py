import posixpath
from urllib.parse import urlsplit, urlunsplit

from ..models.exceptions import URLValidationException

DEFAULT_PORTS = {"http": 80, "https": 443}


class URLNormalizer:
    """Canonical request identity for cache lookups.

    Scheme and host are lower-cased, default ports, credentials and fragments
    are dropped, dot segments and repeated slashes are collapsed. The query
    string is kept verbatim.
    """

    def normalize_url(self, url: str) -> str:
        parts = urlsplit(url)
        scheme = parts.scheme.lower()
        host = (parts.hostname or "").lower()
        if ":" in host:
            host = f"[{host}]"
        try:
            port = parts.port
        except ValueError as e:
            raise URLValidationException(f"Invalid port in {url}: {e}", field="url", value=url)
        if port is not None and port != DEFAULT_PORTS.get(scheme):
            host = f"{host}:{port}"
        return urlunsplit((scheme, host, self.normalize_path(parts.path), parts.query, ""))

    def normalize_path(self, path: str) -> str:
        if not path or path == "/":
            return "/"
        clean = posixpath.normpath("/" + path.lstrip("/"))
        if path.endswith("/") and clean != "/":
            clean += "/"
        return clean

    def request_key(self, method: str, url: str) -> str:
        return f"{(method or 'GET').upper()} {self.normalize_url(url)}"


url_normalizer = URLNormalizer()
