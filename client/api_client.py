# client/api_client.py
"""HTTP client for the Story Forge API, used by UIs and scripts."""
from typing import Any, Dict, List, Optional
from urllib.parse import unquote, urlparse

import requests

from utils.logger import get_logger

log = get_logger(__name__)


class ApiError(RuntimeError):
    def __init__(self, status: int, message: str, payload: Any = None):
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message
        self.payload = payload


def storage_path_from_url(url: str, bucket: str = "images") -> Optional[str]:
    """Object path inside ``bucket`` for a public storage URL, else None."""
    parts = [unquote(p) for p in urlparse(url).path.split("/")]
    if bucket not in parts:
        return None
    idx = parts.index(bucket)
    rest = parts[idx + 1:]
    return "/".join(rest) if rest else None


class StoryForgeClient:
    def __init__(self, base_url: str, api_key: Optional[str] = None, timeout: float = 60.0,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        if api_key:
            self.session.headers["X-API-Key"] = api_key

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        kwargs.setdefault("timeout", self.timeout)
        resp = self.session.request(method, f"{self.base_url}{path}", **kwargs)
        if not resp.ok:
            ctype = resp.headers.get("content-type", "")
            if "application/json" in ctype:
                payload = resp.json()
                raise ApiError(resp.status_code, payload.get("error") or "Request failed", payload)
            log.error("non-JSON error from %s: %s", path, resp.text[:200])
            raise ApiError(resp.status_code, "Server error occurred. Please try again.")
        return resp

    def _json(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        return self._request(method, path, **kwargs).json()

    def _audio(self, path: str, **kwargs) -> bytes:
        resp = self._request("POST", path, **kwargs)
        if "audio" not in resp.headers.get("content-type", ""):
            raise ApiError(resp.status_code, "Invalid response format received")
        return resp.content

    # -------- chat --------
    def send_message(self, message: str) -> Dict[str, Any]:
        return self._json("POST", "/chat", json={"message": message})

    def record_exchange(self, message: str, response: str, source: str = "voice_conversation",
                        conversation_id: Optional[str] = None) -> Dict[str, Any]:
        body = {"message": message, "response": response, "source": source}
        if conversation_id:
            body["conversation_id"] = conversation_id
        return self._json("POST", "/chat", json=body)

    def chat_history(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        params = {"limit": limit} if limit else None
        return self._json("GET", "/chat-history", params=params).get("chats", [])

    def delete_chat(self, chat_id: int) -> bool:
        return bool(self._json("DELETE", "/chat-history", params={"id": chat_id}).get("success"))

    # -------- posts --------
    def posts(self) -> List[Dict[str, Any]]:
        return self._json("GET", "/posts-history").get("posts", [])

    def create_post(self, **fields) -> Dict[str, Any]:
        return self._json("POST", "/posts-history", json=fields)["post"]

    def update_post(self, post_id: int, **changes) -> Dict[str, Any]:
        return self._json("PUT", "/posts-history", json={"id": post_id, **changes})["post"]

    # -------- voice --------
    def voice_history(self) -> List[Dict[str, Any]]:
        return self._json("GET", "/voice-history").get("voice", [])

    def voice_chat(self, audio: bytes, filename: str = "recording.webm", content_type: str = "audio/webm",
                   include_context: bool = True) -> bytes:
        return self._audio(
            "/voice-chat",
            files={"audio": (filename, audio, content_type)},
            data={"include_context": "true" if include_context else "false"},
        )

    def speech_to_speech(self, audio: bytes, filename: str = "recording.webm", content_type: str = "audio/webm") -> bytes:
        return self._audio("/voice-speech-to-speech", files={"audio": (filename, audio, content_type)})

    def agent_action(self, agent_id: str, action: str) -> Dict[str, Any]:
        return self._json("POST", "/voice-conversational-agent", json={"agentId": agent_id, "action": action})

    def agent_audio(self, agent_id: str, audio: bytes, filename: str = "input.webm",
                    content_type: str = "audio/webm") -> bytes:
        return self._audio(
            "/voice-conversational-agent",
            files={"audio": (filename, audio, content_type)},
            data={"agentId": agent_id},
        )

    # -------- images --------
    def upload_image(self, data: bytes, filename: str, content_type: str, post_id: Optional[int] = None,
                     folder: Optional[str] = None) -> Dict[str, Any]:
        form = {}
        if post_id is not None:
            form["postId"] = str(post_id)
        if folder:
            form["folder"] = folder
        return self._json("POST", "/upload-image", files={"file": (filename, data, content_type)}, data=form)

    def list_images(self, folder: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"folder": folder} if folder else None
        return self._json("GET", "/upload-image", params=params).get("files", [])

    def delete_image(self, path: str) -> bool:
        return bool(self._json("DELETE", "/upload-image", params={"path": path}).get("success"))

    def remove_post_image(self, post_id: int, image_url: str) -> Dict[str, Any]:
        """Delete the stored file behind ``image_url`` and clear the post's image keys."""
        path = storage_path_from_url(image_url)
        if path:
            self.delete_image(path)
        return self.update_post(
            post_id, metadata={"image_url": None, "image_path": None, "image_filename": None},
        )
