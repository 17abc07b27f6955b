"""HTTP client for the external prediction backend"""
import json
from typing import Any, Dict, List, Optional
import httpx
from app.utils.exceptions import (
    ApiError,
    AuthenticationApiError,
    ConnectivityError,
    ValidationApiError
)
from app.utils.logger import logger


def _field_name(loc) -> str:
    """Pick the field name out of a `loc` path such as ["body", "UCS (MPa)"]"""
    if isinstance(loc, (list, tuple)) and loc:
        return str(loc[1]) if len(loc) > 1 else str(loc[-1])
    return str(loc) if loc is not None else ""


def _itemize(detail: List[Any]) -> List[Dict[str, str]]:
    items = []
    for item in detail:
        if isinstance(item, dict):
            items.append({"field": _field_name(item.get("loc")), "message": str(item.get("msg", ""))})
        else:
            items.append({"field": "", "message": str(item)})
    return items


def error_from_response(response: httpx.Response) -> ApiError:
    """
    Convert a non-2xx backend response into the matching exception.

    Message precedence: itemized validation list, string `detail`,
    `Error <status>: <reason>`; bodies that are not JSON become
    `Error <status>: <body or reason>`.
    """
    status_code = response.status_code
    reason = response.reason_phrase or ""
    error_class = AuthenticationApiError if status_code in (401, 403) else ApiError
    text = response.text

    try:
        data = json.loads(text)
    except ValueError:
        return error_class(status_code, f"Error {status_code}: {text or reason}")

    detail = data.get("detail") if isinstance(data, dict) else None

    if isinstance(detail, list):
        fields = _itemize(detail)
        message = "Validation error: " + ", ".join(f"{f['field']}: {f['message']}" for f in fields)
        if error_class is AuthenticationApiError:
            return error_class(status_code, message, detail)
        return ValidationApiError(status_code, message, fields, detail)

    if detail:
        return error_class(status_code, str(detail), detail)

    return error_class(status_code, f"Error {status_code}: {reason}", data)


class ApiClient:
    """
    Authenticated JSON client for the prediction backend.

    A client is bound to at most one bearer token. It does not retry, queue
    or cache; every error propagates to the caller.
    """

    def __init__(self, http: httpx.AsyncClient, token: Optional[str] = None):
        """
        Args:
            http: Shared connection pool configured with the backend base URL
            token: Bearer token attached to every request when present
        """
        self._http = http
        self.token = token

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def request(self, method: str, path: str, body: Optional[Any] = None) -> Any:
        """
        Send one request and decode the JSON answer.

        Returns:
            Parsed JSON, or None for an empty body

        Raises:
            ApiError: Backend answered with a non-2xx status
            ConnectivityError: Backend could not be reached
        """
        logger.debug(f"Backend request: {method} {path}")
        try:
            response = await self._http.request(
                method,
                path,
                headers=self._headers(),
                content=json.dumps(body) if body is not None else None
            )
        except httpx.TransportError as e:
            logger.error(f"Cannot reach prediction backend ({method} {path}): {str(e)}")
            raise ConnectivityError(f"Cannot reach server: {str(e)}") from e

        if not response.is_success:
            error = error_from_response(response)
            logger.warning(f"Backend error ({method} {path}): {response.status_code} {error.message}")
            raise error

        logger.info(f"Backend response: {response.status_code} - {method} {path}")
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(response.status_code, f"Invalid JSON from server: {str(e)}") from e

    async def get(self, path: str) -> Any:
        return await self.request("GET", path)

    async def post(self, path: str, body: Optional[Any] = None) -> Any:
        return await self.request("POST", path, body)

    async def put(self, path: str, body: Optional[Any] = None) -> Any:
        return await self.request("PUT", path, body)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)
