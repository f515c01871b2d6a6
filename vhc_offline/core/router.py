from enum import Enum
from urllib.parse import urlparse

from config.constants import API_PREFIX
from ..models.http import SWRequest


class Strategy(Enum):
    API = "api"
    IMAGE = "image"
    STATIC = "static"


class RequestRouter:
    def __init__(self, api_prefix: str = API_PREFIX):
        self.api_prefix = api_prefix

    def classify(self, request: SWRequest) -> Strategy:
        path = urlparse(request.url).path or "/"
        if path.startswith(self.api_prefix):
            return Strategy.API
        if request.destination == "image":
            return Strategy.IMAGE
        return Strategy.STATIC
