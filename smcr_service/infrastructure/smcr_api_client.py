# Client for the remote SM&CR REST backend
import logging
from typing import Any, Dict, List, Optional, Union

import httpx

from smcr_service.app.config import settings
from smcr_service.app.models.documents import DocumentUpload
from smcr_service.app.observability import remote_calls_counter, remote_failures_counter
from smcr_service.app.service.exceptions import SmcrApiError

logger = logging.getLogger(__name__)

Payload = Dict[str, Any]


class SmcrApiClient:
    """
    One coroutine per backend operation. Responses are returned as decoded JSON
    (rows are loosely typed; see ``smcr_service.app.service.mappers``).
    Non-2xx responses raise SmcrApiError; transport errors propagate as httpx.RequestError.
    """
    def __init__(self, http_client: httpx.AsyncClient, base_path: Optional[str] = None):
        self.http_client = http_client
        self.base_path = (base_path if base_path is not None else settings.SMCR_API_PREFIX).rstrip("/")

    async def _request(self, method: str, path: str, operation: str, **kwargs) -> Any:
        url = f"{self.base_path}{path}"
        remote_calls_counter.add(1, {"operation": operation})
        logger.debug(f"{method} {url} ({operation})")
        response = await self.http_client.request(method, url, **kwargs)

        if not response.is_success:
            message = f"Request failed ({response.status_code})"
            details = None
            try:
                data = response.json()
            except ValueError:
                data = None
            if isinstance(data, dict):
                if data.get("error"):
                    message = str(data["error"])
                if data.get("details"):
                    details = str(data["details"])
            remote_failures_counter.add(1, {"operation": operation, "status": response.status_code})
            logger.warning(f"{operation} failed with status {response.status_code}: {message}")
            raise SmcrApiError(status=response.status_code, message=message, details=details)

        if response.status_code == 204:
            return None
        if "application/json" in response.headers.get("content-type", ""):
            return response.json()
        return response.text

    # --- Firms ---

    async def get_firms(self) -> Any:
        return await self._request("GET", "/firms", "get_firms")

    async def create_firm(self, name: str) -> Any:
        return await self._request("POST", "/firms", "create_firm", json={"name": name})

    async def get_firm(self, firm_id: str) -> Any:
        return await self._request("GET", f"/firms/{firm_id}", "get_firm")

    async def update_firm(self, firm_id: str, updates: Payload) -> Any:
        return await self._request("PATCH", f"/firms/{firm_id}", "update_firm", json=updates)

    # --- People ---

    async def get_people(self, firm_id: str) -> Any:
        return await self._request("GET", f"/firms/{firm_id}/people", "get_people")

    async def create_person(self, firm_id: str, payload: Payload) -> Any:
        return await self._request("POST", f"/firms/{firm_id}/people", "create_person", json=payload)

    async def update_person(self, person_id: str, payload: Payload) -> Any:
        return await self._request("PATCH", f"/people/{person_id}", "update_person", json=payload)

    async def delete_person(self, person_id: str) -> Any:
        return await self._request("DELETE", f"/people/{person_id}", "delete_person")

    async def get_person_documents(self, person_id: str) -> Any:
        return await self._request("GET", f"/people/{person_id}/documents", "get_person_documents")

    async def upload_person_document(self, person_id: str, upload: DocumentUpload) -> Any:
        data = {"category": upload.category}
        if upload.notes:
            data["notes"] = upload.notes
        files = {"file": (upload.filename, upload.content, upload.content_type)}
        return await self._request(
            "POST", f"/people/{person_id}/documents", "upload_person_document", data=data, files=files
        )

    async def delete_document(self, document_id: str) -> Any:
        return await self._request("DELETE", f"/documents/{document_id}", "delete_document")

    async def get_training_items(self, person_id: str) -> Any:
        return await self._request("GET", f"/people/{person_id}/training", "get_training_items")

    async def create_training_items(self, person_id: str, items: Union[Payload, List[Payload]]) -> Any:
        payload = items if isinstance(items, list) else [items]
        return await self._request("POST", f"/people/{person_id}/training", "create_training_items", json=payload)

    async def update_training_item(self, person_id: str, payload: Payload) -> Any:
        return await self._request("PATCH", f"/people/{person_id}/training", "update_training_item", json=payload)

    # --- Roles ---

    async def get_roles(self, firm_id: str) -> Any:
        return await self._request("GET", f"/firms/{firm_id}/roles", "get_roles")

    async def create_role(self, firm_id: str, payload: Payload) -> Any:
        return await self._request("POST", f"/firms/{firm_id}/roles", "create_role", json=payload)

    async def update_role(self, role_id: str, payload: Payload) -> Any:
        return await self._request("PATCH", f"/roles/{role_id}", "update_role", json=payload)

    async def delete_role(self, role_id: str) -> Any:
        return await self._request("DELETE", f"/roles/{role_id}", "delete_role")

    # --- Workflows ---

    async def get_workflows(self, firm_id: str) -> Any:
        return await self._request("GET", f"/firms/{firm_id}/workflows", "get_workflows")

    async def create_workflow(self, firm_id: str, payload: Payload) -> Any:
        return await self._request("POST", f"/firms/{firm_id}/workflows", "create_workflow", json=payload)

    async def update_workflow(self, workflow_id: str, payload: Payload) -> Any:
        return await self._request("PATCH", f"/workflows/{workflow_id}", "update_workflow", json=payload)

    async def delete_workflow(self, workflow_id: str) -> Any:
        return await self._request("DELETE", f"/workflows/{workflow_id}", "delete_workflow")

    async def get_workflow_documents(self, workflow_id: str) -> Any:
        return await self._request("GET", f"/workflows/{workflow_id}/documents", "get_workflow_documents")

    async def upload_workflow_document(
        self,
        workflow_id: str,
        upload: DocumentUpload,
        step_id: str,
        summary: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Any:
        data = {"stepId": step_id}
        if summary:
            data["summary"] = summary
        if status:
            data["status"] = status
        files = {"file": (upload.filename, upload.content, upload.content_type)}
        return await self._request(
            "POST", f"/workflows/{workflow_id}/documents", "upload_workflow_document", data=data, files=files
        )

    # --- Assessments ---

    async def get_assessments(self, firm_id: str) -> Any:
        return await self._request("GET", f"/firms/{firm_id}/assessments", "get_assessments")

    async def create_assessment(self, firm_id: str, payload: Payload) -> Any:
        return await self._request("POST", f"/firms/{firm_id}/assessments", "create_assessment", json=payload)

    async def update_assessment(self, assessment_id: str, payload: Payload) -> Any:
        return await self._request("PATCH", f"/assessments/{assessment_id}", "update_assessment", json=payload)

    async def delete_assessment(self, assessment_id: str) -> Any:
        return await self._request("DELETE", f"/assessments/{assessment_id}", "delete_assessment")

    # --- Breaches ---

    async def get_breaches(self, firm_id: str) -> Any:
        return await self._request("GET", f"/firms/{firm_id}/breaches", "get_breaches")

    async def create_breach(self, firm_id: str, payload: Payload) -> Any:
        return await self._request("POST", f"/firms/{firm_id}/breaches", "create_breach", json=payload)

    async def update_breach(self, breach_id: str, payload: Payload) -> Any:
        return await self._request("PATCH", f"/breaches/{breach_id}", "update_breach", json=payload)

    async def add_breach_timeline_entry(self, breach_id: str, payload: Payload) -> Any:
        return await self._request("POST", f"/breaches/{breach_id}/timeline", "add_breach_timeline_entry", json=payload)

    async def delete_breach(self, breach_id: str) -> Any:
        return await self._request("DELETE", f"/breaches/{breach_id}", "delete_breach")

    # --- Group entities (not firm-scoped) ---

    async def get_group_entities(self) -> Any:
        return await self._request("GET", "/group-entities", "get_group_entities")

    async def create_group_entity(self, payload: Payload) -> Any:
        return await self._request("POST", "/group-entities", "create_group_entity", json=payload)

    async def update_group_entity(self, entity_id: str, payload: Payload) -> Any:
        return await self._request("PATCH", f"/group-entities/{entity_id}", "update_group_entity", json=payload)

    async def delete_group_entity(self, entity_id: str) -> Any:
        return await self._request("DELETE", f"/group-entities/{entity_id}", "delete_group_entity")
