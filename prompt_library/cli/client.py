"""API client for the prompt library REST API."""

from __future__ import annotations

from typing import Any

import httpx


class LibraryClient:
    """HTTP client wrapping the prompt library endpoints used by the CLI."""

    def __init__(self, base_url: str = "http://localhost:8400", timeout: float = 30) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(base_url=f"{self.base_url}/api/v1", timeout=timeout)

    def _check(self, resp: httpx.Response) -> httpx.Response:
        if resp.status_code >= 400:
            try:
                detail = resp.json().get("detail", resp.text)
            except (ValueError, AttributeError):
                detail = resp.text
            raise RuntimeError(f"API error ({resp.status_code}): {detail}")
        return resp

    def _json(self, resp: httpx.Response) -> Any:
        return self._check(resp).json()

    # --- Prompts ---

    def list_prompts(self, **params: Any) -> list[dict]:
        return self._json(self._client.get("/prompts", params=params))

    def create_prompt(self, data: dict) -> dict:
        return self._json(self._client.post("/prompts", json=data))

    def get_prompt(self, prompt_id: str) -> dict:
        return self._json(self._client.get(f"/prompts/{prompt_id}"))

    def delete_prompt(self, prompt_id: str) -> None:
        self._check(self._client.delete(f"/prompts/{prompt_id}"))

    # --- Projects ---

    def list_projects(self) -> list[dict]:
        return self._json(self._client.get("/projects"))

    def create_project(self, data: dict) -> dict:
        return self._json(self._client.post("/projects", json=data))

    def active_project(self) -> dict:
        return self._json(self._client.get("/projects/active"))

    def set_active_project(self, project_id: str) -> dict:
        return self._json(self._client.put("/projects/active", json={"projectId": project_id}))

    def add_to_project(self, project_id: str, prompt_id: str) -> dict:
        return self._json(self._client.post(f"/projects/{project_id}/prompts/{prompt_id}"))

    # --- Consolidation ---

    def consolidate(self, project_id: str) -> dict:
        return self._json(self._client.get(f"/projects/{project_id}/consolidation"))

    def export(self, project_id: str, fmt: str) -> tuple[bytes, str | None]:
        """Raw export bytes and the server-suggested filename."""
        resp = self._check(self._client.get(f"/projects/{project_id}/export/{fmt}"))
        disposition = resp.headers.get("content-disposition", "")
        filename = None
        if "filename=" in disposition:
            filename = disposition.split("filename=", 1)[1].strip('"')
        return resp.content, filename
