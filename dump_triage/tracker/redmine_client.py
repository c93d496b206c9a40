"""
Redmine REST client.

Uses HTTP basic authentication (or an API key) over a `requests.Session`.
Endpoints:
    GET  /users/current.json
    GET  /projects/<id>.json
    GET  /projects/<id>/memberships.json   (paginated)
    POST /issues.json
"""

import logging
from typing import Optional, List, Dict, Any

import requests

from ..core.errors import AuthenticationFailed, ProjectNotFound, TrackerUnavailable
from .base import TrackerSession, TrackerUser, TrackerProject

logger = logging.getLogger(__name__)

USER_AGENT = "dump-triage/1.0"
PAGE_SIZE = 100

# Raised while picking fields out of a JSON body that is not shaped like Redmine's
MALFORMED_RESPONSE = (KeyError, TypeError, ValueError, AttributeError)


class RedmineSession(TrackerSession):
    """Authenticated Redmine session."""

    def __init__(self, base_url: str, http: requests.Session, timeout: int = 30):
        self.base_url = base_url.rstrip("/")
        self.http = http
        self.timeout = timeout
        self._current_user: Optional[TrackerUser] = None

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            return self.http.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise TrackerUnavailable(f"{method} {url} failed: {e}")

    @staticmethod
    def _json(response: requests.Response) -> Dict[str, Any]:
        try:
            return response.json()
        except ValueError:
            raise TrackerUnavailable(f"Invalid JSON from {response.url}: {response.text[:200]}")

    def current_user(self) -> TrackerUser:
        if self._current_user is not None:
            return self._current_user

        response = self._request("GET", "users/current.json")
        if response.status_code in (401, 403):
            raise AuthenticationFailed(f"Redmine rejected the credentials ({response.status_code})")
        if response.status_code != 200:
            raise TrackerUnavailable(f"GET users/current.json returned {response.status_code}")

        try:
            user = self._json(response)["user"]
            name = f"{user.get('firstname', '')} {user.get('lastname', '')}".strip() or user.get("login", "")
            self._current_user = TrackerUser(id=int(user["id"]), name=name)
        except MALFORMED_RESPONSE as e:
            raise TrackerUnavailable(f"Unexpected users/current.json response from {self.base_url}: {e!r}")
        return self._current_user

    def resolve_project(self, identifier: str) -> TrackerProject:
        response = self._request("GET", f"projects/{identifier}.json")
        if response.status_code in (403, 404):
            raise ProjectNotFound(f"Project '{identifier}' not found ({response.status_code})")
        if response.status_code != 200:
            raise TrackerUnavailable(f"GET projects/{identifier}.json returned {response.status_code}")

        try:
            project = self._json(response)["project"]
            project_id = int(project["id"])
        except MALFORMED_RESPONSE as e:
            raise TrackerUnavailable(f"Unexpected projects/{identifier}.json response: {e!r}")

        members = self._project_members(identifier)
        if not members:
            raise ProjectNotFound(f"Project '{identifier}' has no members")

        return TrackerProject(
            id=project_id,
            identifier=project.get("identifier", identifier),
            name=project.get("name", ""),
            members=tuple(members)
        )

    def _project_members(self, identifier: str) -> List[TrackerUser]:
        """All user memberships; group memberships are skipped."""
        members: List[TrackerUser] = []
        offset = 0

        while True:
            response = self._request("GET", f"projects/{identifier}/memberships.json",
                                     params={"limit": PAGE_SIZE, "offset": offset})
            if response.status_code in (403, 404):
                raise ProjectNotFound(f"Memberships of '{identifier}' unavailable ({response.status_code})")
            if response.status_code != 200:
                raise TrackerUnavailable(f"GET memberships returned {response.status_code}")

            try:
                data = self._json(response)
                page = data.get("memberships", [])
                for membership in page:
                    user = membership.get("user")
                    if user and "id" in user:
                        members.append(TrackerUser(id=int(user["id"]), name=user.get("name", "")))
                total_count = int(data.get("total_count", 0))
            except MALFORMED_RESPONSE as e:
                raise TrackerUnavailable(f"Unexpected memberships response for '{identifier}': {e!r}")

            offset += len(page)
            if not page or offset >= total_count:
                break

        logger.debug(f"Project {identifier}: {len(members)} members")
        return members

    def create_issue(self, subject: str, description: str, assignee: Optional[TrackerUser],
                     author: TrackerUser, project: TrackerProject) -> int:
        """
        Create an issue.

        Redmine records the authenticated account as the author, so `author`
        must be the session's current user.
        """
        issue: Dict[str, Any] = {
            "project_id": project.id,
            "subject": subject,
            "description": description,
        }
        if assignee is not None:
            issue["assigned_to_id"] = assignee.id

        logger.debug(f"Creating issue in {project.identifier} as {author.name}")
        response = self._request("POST", "issues.json", json={"issue": issue})
        if response.status_code != 201:
            errors = ""
            if response.status_code == 422:
                try:
                    errors = ": " + "; ".join(str(e) for e in self._json(response).get("errors", []))
                except MALFORMED_RESPONSE:
                    errors = f": {response.text[:200]}"
            raise TrackerUnavailable(f"Issue creation failed ({response.status_code}){errors}")

        try:
            return int(self._json(response)["issue"]["id"])
        except MALFORMED_RESPONSE as e:
            raise TrackerUnavailable(f"Unexpected issues.json response: {e!r}")

    def close(self):
        self.http.close()


def authenticate(url: str, user: Optional[str] = None, password: Optional[str] = None,
                 api_key: Optional[str] = None, timeout: int = 30) -> RedmineSession:
    """
    Open a Redmine session and verify the credentials.

    Raises:
        AuthenticationFailed: credentials rejected
        TrackerUnavailable: server unreachable or misbehaving
    """
    http = requests.Session()
    http.headers.update({'User-Agent': USER_AGENT})
    if api_key:
        http.headers.update({'X-Redmine-API-Key': api_key})
    else:
        http.auth = (user or "", password or "")

    session = RedmineSession(url, http, timeout)
    try:
        identity = session.current_user()
    except Exception:
        session.close()
        raise

    logger.info(f"Authenticated to {url} as {identity.name}")
    return session
