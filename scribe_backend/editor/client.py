from typing import Optional

import httpx

from .autosave import DEFAULT_TITLE


class NotesApiError(Exception):
    """Non-2xx response from the notes API."""

    def __init__(self, status_code, detail):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


# PUBLIC_INTERFACE
class NotesApiClient:
    """
    Async client for the notes API, used by the editor.

    update_note doubles as the save callable for AutosaveController:
        AutosaveController(functools.partial(client.update_note, note_id))
    """

    def __init__(self, base_url="http://localhost:8000", token: Optional[str] = None,
                 client: Optional[httpx.AsyncClient] = None, timeout=10.0):
        self._headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method, url, **kwargs):
        response = await self._client.request(method, url, headers=self._headers, **kwargs)
        if response.is_error:
            try:
                detail = response.json().get("detail", response.text)
            except ValueError:
                detail = response.text
            raise NotesApiError(response.status_code, detail)
        return response.json()

    async def list_notes(self, q=None):
        params = {"q": q} if q else None
        return await self._request("GET", "/notes", params=params)

    async def create_note(self, title=DEFAULT_TITLE, content=""):
        return await self._request("POST", "/notes", json={"title": title, "content": content})

    async def get_note(self, note_id):
        return await self._request("GET", f"/notes/{note_id}")

    async def update_note(self, note_id, title, content):
        return await self._request("PUT", f"/notes/{note_id}", json={"title": title, "content": content})

    async def delete_note(self, note_id):
        return await self._request("DELETE", f"/notes/{note_id}")

    async def share_note(self, note_id):
        return await self._request("POST", "/share", json={"noteId": note_id})

    async def unshare_note(self, note_id):
        return await self._request("DELETE", "/share", json={"noteId": note_id})

    async def get_shared_note(self, share_id):
        return await self._request("GET", f"/shared/{share_id}")
