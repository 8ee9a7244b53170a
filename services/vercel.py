import logging
from typing import Any, Dict, List, Optional

import requests

from burbar_admin.config import get_secret, load_config

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.vercel.com"


class DeploymentProviderError(Exception):
    """Raised when the Vercel API call fails or returns a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class VercelClient:
    def __init__(
        self,
        token: str,
        *,
        base_url: str = API_BASE_URL,
        team_id: Optional[str] = None,
        timeout_seconds: int = 15,
    ):
        if not token:
            raise DeploymentProviderError("Vercel token is not configured")
        self.base_url = base_url.rstrip("/")
        self.team_id = team_id or None
        self.timeout_seconds = int(timeout_seconds)
        self._session = requests.Session()
        self._session.headers.update(
            {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}
        )

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> "VercelClient":
        cfg = config or load_config()
        vercel_cfg = cfg.get("vercel", {}) if isinstance(cfg.get("vercel"), dict) else {}
        return cls(
            get_secret("vercel", "token_env_var", "VERCEL_TOKEN", cfg),
            base_url=str(vercel_cfg.get("base_url") or API_BASE_URL),
            team_id=vercel_cfg.get("team_id"),
            timeout_seconds=int(vercel_cfg.get("timeout_seconds", 15)),
        )

    def close(self) -> None:
        self._session.close()

    def _request(self, method: str, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        query = dict(params or {})
        if self.team_id:
            query["teamId"] = self.team_id
        url = f"{self.base_url}{endpoint}"
        try:
            response = self._session.request(method, url, params=query or None, timeout=self.timeout_seconds)
        except requests.RequestException as exc:
            raise DeploymentProviderError(f"Vercel API request failed: {exc}") from exc

        if not response.ok:
            try:
                body = response.json()
            except ValueError:
                body = {}
            error = body.get("error") if isinstance(body, dict) else None
            message = (error or {}).get("message") if isinstance(error, dict) else None
            message = message or (body.get("message") if isinstance(body, dict) else None) or "Unknown error"
            logger.warning("Vercel %s %s -> %s: %s", method, endpoint, response.status_code, message)
            raise DeploymentProviderError(
                f"Vercel API Error: {response.status_code} - {message}",
                status_code=response.status_code,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {}

    def list_deployments(self, project_id: Optional[str] = None, limit: int = 20) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"limit": int(limit)}
        if project_id:
            params["projectId"] = project_id
        return list(self._request("GET", "/v6/deployments", params).get("deployments") or [])

    def get_deployment(self, deployment_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/v13/deployments/{deployment_id}")

    def delete_deployment(self, deployment_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/v13/deployments/{deployment_id}")

    def cancel_deployment(self, deployment_id: str) -> Dict[str, Any]:
        return self._request("PATCH", f"/v12/deployments/{deployment_id}/cancel")

    def list_projects(self) -> List[Dict[str, Any]]:
        return list(self._request("GET", "/v9/projects").get("projects") or [])

    def deployment_events(self, deployment_id: str) -> List[Dict[str, Any]]:
        events = self._request("GET", f"/v2/deployments/{deployment_id}/events")
        return list(events) if isinstance(events, list) else []
