"""REST client for the hosted backend (documents database and teams service)."""

import logging
from typing import Optional

import requests

from flowcraft.services.errors import (
    RemoteFetchError,
    RemoteNotFoundError,
    RemoteWriteError,
)
from flowcraft.services.query import serialize

logger = logging.getLogger(__name__)


class BackendClient:
    """Thin wrapper around the backend's REST API.

    Read failures raise RemoteFetchError, write failures RemoteWriteError and
    a 404 on any call raises RemoteNotFoundError. There are no retries.
    """

    def __init__(self, endpoint: str, project_id: str, database_id: str,
                 api_key: Optional[str] = None, timeout: float = 30,
                 session: Optional[requests.Session] = None):
        self.endpoint = endpoint.rstrip("/")
        self.project_id = project_id
        self.database_id = database_id
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "Content-Type": "application/json",
            "X-Appwrite-Project": project_id,
        })
        if api_key:
            self.session.headers["X-Appwrite-Key"] = api_key

    def _request(self, method: str, path: str, params: Optional[dict] = None,
                 payload: Optional[dict] = None):
        """Make a request and return the decoded JSON body (None when empty)."""
        error_class = RemoteFetchError if method == "GET" else RemoteWriteError

        try:
            response = self.session.request(
                method,
                f"{self.endpoint}{path}",
                params=params,
                json=payload,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"{method} {path} failed: {e}")
            raise error_class(f"Failed to reach backend: {e}") from e

        if response.status_code == 404:
            raise RemoteNotFoundError(f"Not found: {path}", status_code=404)

        if response.status_code >= 400:
            logger.error(f"{method} {path} returned {response.status_code}")
            raise error_class(
                f"Backend error: {response.status_code}",
                status_code=response.status_code
            )

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"{method} {path} returned a non-JSON body")
            raise error_class(
                f"Invalid response from backend: {e}",
                status_code=response.status_code
            ) from e

    def _get_listing(self, path: str, params: Optional[dict] = None) -> dict:
        """GET a list endpoint whose body must be a JSON object."""
        data = self._request("GET", path, params=params)
        if not isinstance(data, dict):
            raise RemoteFetchError(f"Unexpected response body from {path}")
        return data

    def _documents_path(self, collection_id: str) -> str:
        return f"/databases/{self.database_id}/collections/{collection_id}/documents"

    # Documents

    def list_documents(self, collection_id: str, queries: Optional[list] = None) -> dict:
        params = {"queries[]": serialize(queries)} if queries else None
        data = self._get_listing(self._documents_path(collection_id), params=params)
        return {
            "documents": data.get("documents", []),
            "total": data.get("total", 0)
        }

    def get_document(self, collection_id: str, document_id: str) -> dict:
        return self._request("GET", f"{self._documents_path(collection_id)}/{document_id}")

    def create_document(self, collection_id: str, data: dict,
                        document_id: str = "unique()") -> dict:
        return self._request(
            "POST",
            self._documents_path(collection_id),
            payload={"documentId": document_id, "data": data}
        )

    def update_document(self, collection_id: str, document_id: str, data: dict) -> dict:
        return self._request(
            "PATCH",
            f"{self._documents_path(collection_id)}/{document_id}",
            payload={"data": data}
        )

    def delete_document(self, collection_id: str, document_id: str) -> None:
        self._request("DELETE", f"{self._documents_path(collection_id)}/{document_id}")

    # Teams

    def list_teams(self) -> dict:
        data = self._get_listing("/teams")
        return {"teams": data.get("teams", []), "total": data.get("total", 0)}

    def get_team(self, team_id: str) -> dict:
        return self._request("GET", f"/teams/{team_id}")

    def create_team(self, team_id: str, name: str, roles: list) -> dict:
        return self._request(
            "POST", "/teams",
            payload={"teamId": team_id, "name": name, "roles": list(roles)}
        )

    def update_team_prefs(self, team_id: str, prefs: dict) -> dict:
        return self._request("PUT", f"/teams/{team_id}/prefs", payload={"prefs": prefs})

    def delete_team(self, team_id: str) -> None:
        self._request("DELETE", f"/teams/{team_id}")

    def list_memberships(self, team_id: str) -> dict:
        data = self._get_listing(f"/teams/{team_id}/memberships")
        return {"memberships": data.get("memberships", []), "total": data.get("total", 0)}

    def create_membership(self, team_id: str, email: str, roles: list,
                          url: Optional[str] = None, name: Optional[str] = None) -> dict:
        payload = {"email": email, "roles": list(roles)}
        if url:
            payload["url"] = url
        if name:
            payload["name"] = name
        return self._request("POST", f"/teams/{team_id}/memberships", payload=payload)

    def update_membership(self, team_id: str, membership_id: str, roles: list) -> dict:
        return self._request(
            "PATCH", f"/teams/{team_id}/memberships/{membership_id}",
            payload={"roles": list(roles)}
        )

    def update_membership_status(self, team_id: str, membership_id: str,
                                 user_id: str, secret: str) -> dict:
        return self._request(
            "PATCH", f"/teams/{team_id}/memberships/{membership_id}/status",
            payload={"userId": user_id, "secret": secret}
        )

    def delete_membership(self, team_id: str, membership_id: str) -> None:
        self._request("DELETE", f"/teams/{team_id}/memberships/{membership_id}")
