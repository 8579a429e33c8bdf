from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"


class APIConnector(ABC):
    """
    Contract for partner API clients.

    A connector owns authentication headers and error mapping for one
    partner; callers see decoded JSON or an ``APIException``.
    """

    @abstractmethod
    async def request(
        self,
        method: HttpMethod,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
    ) -> Any:
        """
        Send one request and decode the JSON answer.

        Args:
            method: HTTP verb
            path: Endpoint path below the connector's base URL
            params: Query string parameters
            json: Request body, serialized as JSON

        Raises:
            UpstreamFailureError: On a non-success status
            IntegrationException: When the partner cannot be reached or
                answers with something other than JSON
        """

    @staticmethod
    def build_url(base_url: str, path: str) -> str:
        """Join a base URL and an endpoint path with exactly one slash."""
        return f"{base_url.rstrip('/')}/{path.lstrip('/')}"
