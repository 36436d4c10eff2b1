"""In-memory backend with the same interface as BackendClient.

Used for local development (``BACKEND = "memory"``) and tests. Documents are
stored per collection and filtered with the same query semantics the hosted
backend applies.
"""

import copy
import threading
import uuid
from datetime import datetime, timezone
from typing import Optional

from flowcraft.services.errors import RemoteNotFoundError, RemoteWriteError
from flowcraft.services.models import format_timestamp
from flowcraft.services.query import comparable, matches


def _now() -> str:
    return format_timestamp(datetime.now(timezone.utc))


def _sort_key(attribute: str):
    def key(document):
        value = document.get(attribute)
        # Missing values sort last
        return (value is None, comparable(value) if value is not None else 0)
    return key


class MemoryBackend:

    def __init__(self):
        self._collections = {}
        self._teams = {}
        self._memberships = {}
        self._lock = threading.Lock()

    def _collection(self, collection_id: str) -> dict:
        return self._collections.setdefault(collection_id, {})

    # Documents

    def list_documents(self, collection_id: str, queries: Optional[list] = None) -> dict:
        queries = queries or []
        with self._lock:
            documents = [copy.deepcopy(d) for d in self._collection(collection_id).values()]

        found = [d for d in documents if all(matches(q, d) for q in queries)]
        total = len(found)

        for query in queries:
            if query["method"] == "orderAsc":
                found.sort(key=_sort_key(query["attribute"]))
            elif query["method"] == "orderDesc":
                present = [d for d in found if d.get(query["attribute"]) is not None]
                missing = [d for d in found if d.get(query["attribute"]) is None]
                present.sort(key=_sort_key(query["attribute"]), reverse=True)
                found = present + missing

        offsets = [q["values"][0] for q in queries if q["method"] == "offset"]
        limits = [q["values"][0] for q in queries if q["method"] == "limit"]
        start = offsets[-1] if offsets else 0
        if limits:
            found = found[start:start + limits[-1]]
        else:
            found = found[start:]

        return {"documents": found, "total": total}

    def get_document(self, collection_id: str, document_id: str) -> dict:
        with self._lock:
            document = self._collection(collection_id).get(document_id)
            if document is None:
                raise RemoteNotFoundError(f"Document not found: {document_id}", status_code=404)
            return copy.deepcopy(document)

    def create_document(self, collection_id: str, data: dict,
                        document_id: str = "unique()") -> dict:
        if document_id == "unique()":
            document_id = uuid.uuid4().hex

        with self._lock:
            collection = self._collection(collection_id)
            if document_id in collection:
                raise RemoteWriteError(f"Document already exists: {document_id}", status_code=409)
            timestamp = _now()
            document = copy.deepcopy(data)
            document.update({
                "$id": document_id,
                "$collectionId": collection_id,
                "$createdAt": timestamp,
                "$updatedAt": timestamp,
            })
            collection[document_id] = document
            return copy.deepcopy(document)

    def update_document(self, collection_id: str, document_id: str, data: dict) -> dict:
        with self._lock:
            document = self._collection(collection_id).get(document_id)
            if document is None:
                raise RemoteNotFoundError(f"Document not found: {document_id}", status_code=404)
            document.update({k: v for k, v in data.items() if not k.startswith("$")})
            document["$updatedAt"] = _now()
            return copy.deepcopy(document)

    def delete_document(self, collection_id: str, document_id: str) -> None:
        with self._lock:
            if self._collection(collection_id).pop(document_id, None) is None:
                raise RemoteNotFoundError(f"Document not found: {document_id}", status_code=404)

    # Teams

    def list_teams(self) -> dict:
        with self._lock:
            teams = [copy.deepcopy(t) for t in self._teams.values()]
        return {"teams": teams, "total": len(teams)}

    def get_team(self, team_id: str) -> dict:
        with self._lock:
            team = self._teams.get(team_id)
            if team is None:
                raise RemoteNotFoundError(f"Team not found: {team_id}", status_code=404)
            return copy.deepcopy(team)

    def create_team(self, team_id: str, name: str, roles: list) -> dict:
        with self._lock:
            if team_id in self._teams:
                raise RemoteWriteError(f"Team already exists: {team_id}", status_code=409)
            timestamp = _now()
            self._teams[team_id] = {
                "$id": team_id,
                "name": name,
                "total": 0,
                "prefs": {},
                "$createdAt": timestamp,
                "$updatedAt": timestamp,
            }
            self._memberships[team_id] = {}
            return copy.deepcopy(self._teams[team_id])

    def update_team_prefs(self, team_id: str, prefs: dict) -> dict:
        with self._lock:
            team = self._teams.get(team_id)
            if team is None:
                raise RemoteNotFoundError(f"Team not found: {team_id}", status_code=404)
            team["prefs"] = dict(prefs)
            return copy.deepcopy(team["prefs"])

    def delete_team(self, team_id: str) -> None:
        with self._lock:
            if self._teams.pop(team_id, None) is None:
                raise RemoteNotFoundError(f"Team not found: {team_id}", status_code=404)
            self._memberships.pop(team_id, None)

    def _team_memberships(self, team_id: str) -> dict:
        if team_id not in self._teams:
            raise RemoteNotFoundError(f"Team not found: {team_id}", status_code=404)
        return self._memberships[team_id]

    def list_memberships(self, team_id: str) -> dict:
        with self._lock:
            memberships = [copy.deepcopy(m) for m in self._team_memberships(team_id).values()]
        return {"memberships": memberships, "total": len(memberships)}

    def create_membership(self, team_id: str, email: str, roles: list,
                          url: Optional[str] = None, name: Optional[str] = None) -> dict:
        with self._lock:
            memberships = self._team_memberships(team_id)
            membership_id = uuid.uuid4().hex
            memberships[membership_id] = {
                "$id": membership_id,
                "teamId": team_id,
                "teamName": self._teams[team_id]["name"],
                "userId": email,
                "userName": name or "",
                "userEmail": email,
                "roles": list(roles),
                "confirm": False,
                "invited": _now(),
                "joined": None,
            }
            self._teams[team_id]["total"] = len(memberships)
            return copy.deepcopy(memberships[membership_id])

    def _membership(self, team_id: str, membership_id: str) -> dict:
        membership = self._team_memberships(team_id).get(membership_id)
        if membership is None:
            raise RemoteNotFoundError(f"Membership not found: {membership_id}", status_code=404)
        return membership

    def update_membership(self, team_id: str, membership_id: str, roles: list) -> dict:
        with self._lock:
            membership = self._membership(team_id, membership_id)
            membership["roles"] = list(roles)
            return copy.deepcopy(membership)

    def update_membership_status(self, team_id: str, membership_id: str,
                                 user_id: str, secret: str) -> dict:
        with self._lock:
            membership = self._membership(team_id, membership_id)
            membership.update({"userId": user_id, "confirm": True, "joined": _now()})
            return copy.deepcopy(membership)

    def delete_membership(self, team_id: str, membership_id: str) -> None:
        with self._lock:
            self._membership(team_id, membership_id)
            del self._memberships[team_id][membership_id]
            self._teams[team_id]["total"] = len(self._memberships[team_id])
