"""Vercel deployment operations.

Production deployments are never deleted through this server: ``safe_delete``
re-reads the deployment and refuses any production target, and cleanup goes
through the same check.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from services.schemas import CleanupDeploymentsInput, DeploymentIdInput, EmptyInput, ListDeploymentsInput
from services.tool_server import ToolError, ToolServer
from services.vercel import DeploymentProviderError, VercelClient

logger = logging.getLogger(__name__)

SERVER_NAME = "burbar-vercel"
CLEANUP_FETCH_LIMIT = 100
LOG_TAIL = 20
DAY_MS = 24 * 60 * 60 * 1000


def _ms_to_iso(value: Any) -> Optional[str]:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc).isoformat()


def _target(deployment: Dict[str, Any]) -> str:
    return deployment.get("target") or "preview"


def _deployment_id(deployment: Dict[str, Any]) -> str:
    return deployment.get("uid") or deployment.get("id") or ""


def _summary(deployment: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": _deployment_id(deployment),
        "url": deployment.get("url"),
        "state": deployment.get("state") or deployment.get("readyState"),
        "createdAt": deployment.get("createdAt"),
        "created": _ms_to_iso(deployment.get("createdAt")),
        "projectId": deployment.get("projectId"),
        "target": _target(deployment),
        "source": deployment.get("source") or "git",
    }


def safe_delete(client: VercelClient, deployment_id: str) -> Dict[str, Any]:
    deployment = client.get_deployment(deployment_id)
    if _target(deployment) == "production":
        raise ToolError(
            "Cannot delete production deployments for safety reasons. "
            "Use the Vercel dashboard for production changes."
        )
    client.delete_deployment(deployment_id)
    logger.info("Deleted deployment %s (%s)", deployment_id, deployment.get("url"))
    return deployment


def cleanup_candidates(
    deployments: List[Dict[str, Any]],
    *,
    cutoff_ms: int,
    keep_count: int,
    exclude_production: bool,
) -> List[Dict[str, Any]]:
    """Old, settled deployments beyond the ``keep_count`` most recent."""
    eligible = [
        d
        for d in deployments
        if int(d.get("createdAt") or 0) < cutoff_ms
        and (d.get("state") or d.get("readyState")) != "BUILDING"
        and not (exclude_production and _target(d) == "production")
    ]
    eligible.sort(key=lambda d: int(d.get("createdAt") or 0), reverse=True)
    return eligible[keep_count:]


def build_deployment_server(client: VercelClient, *, clock: Callable[[], float] = time.time) -> ToolServer:
    server = ToolServer(SERVER_NAME, expected_errors=(DeploymentProviderError,))
    server.on_shutdown(client.close)

    @server.operation("list_deployments", "List deployments for a project", ListDeploymentsInput)
    def list_deployments(params: ListDeploymentsInput) -> Dict[str, Any]:
        deployments = client.list_deployments(params.projectId, params.limit)
        if params.status:
            deployments = [d for d in deployments if (d.get("state") or d.get("readyState")) == params.status]
        return {"total": len(deployments), "deployments": [_summary(d) for d in deployments]}

    @server.operation("get_deployment", "Get details of a specific deployment", DeploymentIdInput)
    def get_deployment(params: DeploymentIdInput) -> Dict[str, Any]:
        deployment = client.get_deployment(params.deploymentId)
        details = _summary(deployment)
        building_at, ready_at = deployment.get("buildingAt"), deployment.get("ready")
        details["buildDurationSeconds"] = (
            round((int(ready_at) - int(building_at)) / 1000) if building_at and ready_at else None
        )
        return details

    @server.operation(
        "delete_deployment",
        "Delete a non-production deployment (production deployments are always refused)",
        DeploymentIdInput,
    )
    def delete_deployment(params: DeploymentIdInput) -> Dict[str, Any]:
        deployment = safe_delete(client, params.deploymentId)
        return {
            "deleted": True,
            "id": params.deploymentId,
            "url": deployment.get("url"),
            "previousState": deployment.get("state") or deployment.get("readyState"),
        }

    @server.operation(
        "cleanup_old_deployments",
        "Delete old deployments, keeping the most recent ones and never touching production",
        CleanupDeploymentsInput,
    )
    def cleanup_old_deployments(params: CleanupDeploymentsInput) -> Dict[str, Any]:
        cutoff_ms = int(clock() * 1000) - params.olderThanDays * DAY_MS
        deployments = client.list_deployments(params.projectId, CLEANUP_FETCH_LIMIT)
        targets = cleanup_candidates(
            deployments,
            cutoff_ms=cutoff_ms,
            keep_count=params.keepCount,
            exclude_production=params.excludeProduction,
        )

        deleted: List[Dict[str, Any]] = []
        errors: List[Dict[str, str]] = []
        for deployment in targets:
            deployment_id = _deployment_id(deployment)
            try:
                safe_delete(client, deployment_id)
            except (ToolError, DeploymentProviderError) as exc:
                errors.append({"deployment": deployment_id, "error": str(exc)})
                continue
            deleted.append(_summary(deployment))

        logger.info("Deployment cleanup: %d deleted, %d failed", len(deleted), len(errors))
        return {
            "deletedCount": len(deleted),
            "failedCount": len(errors),
            "deleted": deleted,
            "errors": errors,
        }

    @server.operation("list_projects", "List all Vercel projects", EmptyInput)
    def list_projects(params: EmptyInput) -> Dict[str, Any]:
        projects = client.list_projects()
        return {
            "total": len(projects),
            "projects": [
                {
                    "id": p.get("id"),
                    "name": p.get("name"),
                    "framework": p.get("framework") or "Unknown",
                    "created": _ms_to_iso(p.get("createdAt")),
                }
                for p in projects
            ],
        }

    @server.operation("cancel_deployment", "Cancel a deployment that is currently building", DeploymentIdInput)
    def cancel_deployment(params: DeploymentIdInput) -> Dict[str, Any]:
        client.cancel_deployment(params.deploymentId)
        return {"cancelled": True, "id": params.deploymentId}

    @server.operation("get_deployment_logs", "Get the latest build events of a deployment", DeploymentIdInput)
    def get_deployment_logs(params: DeploymentIdInput) -> Dict[str, Any]:
        events = client.deployment_events(params.deploymentId)[-LOG_TAIL:]
        lines = [
            {"created": _ms_to_iso(e.get("created")), "text": e.get("text") or (e.get("payload") or {}).get("text")}
            for e in events
        ]
        return {
            "id": params.deploymentId,
            "events": lines,
            "message": None if lines else "No logs available for this deployment",
        }

    return server
