"""File hosting clients for license documents and business images."""
from __future__ import annotations

import base64
import re
import time
from pathlib import Path
from typing import Any, Dict

import requests
from flask import current_app
from werkzeug.utils import secure_filename

from dinedesk_ext.errors import UpstreamError

LICENSE_FOLDER = "business-licenses"
IMAGE_FOLDER = "business-images"


class FileHostBase:
    """Accepts a named blob and returns a stable public URL."""

    def __init__(self, app=None) -> None:
        self.app = app or current_app
        self.timeout = int(self.app.config.get("FILE_HOST_TIMEOUT_SECS", 20))

    def upload(self, content: bytes, file_name: str, folder: str) -> str:  # pragma: no cover - interface
        raise NotImplementedError


class LocalFileHost(FileHostBase):
    """Writes uploads beneath a local directory. Used in development and tests."""

    def __init__(self, app=None) -> None:
        super().__init__(app)
        root = Path(self.app.config.get("FILE_HOST_LOCAL_DIR", "uploads"))
        if not root.is_absolute():
            root = Path(self.app.instance_path) / root
        self.root = root
        self.base_url = str(self.app.config.get("FILE_HOST_PUBLIC_BASE_URL", "/uploads")).rstrip("/")

    def upload(self, content: bytes, file_name: str, folder: str) -> str:
        target_dir = self.root / folder
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            (target_dir / file_name).write_bytes(content)
        except OSError as exc:
            raise UpstreamError(user_msg="Failed to upload file", detail=str(exc)) from exc
        return f"{self.base_url}/{folder}/{file_name}"


class GitHubFileHost(FileHostBase):
    """Commits uploads to a repository through the GitHub contents API."""

    def __init__(self, app=None) -> None:
        super().__init__(app)
        self.token = self.app.config.get("GITHUB_TOKEN", "")
        self.repo = self.app.config.get("GITHUB_REPO", "")
        self.branch = self.app.config.get("GITHUB_BRANCH", "main")
        self.api_url = str(self.app.config.get("GITHUB_API_URL", "https://api.github.com")).rstrip("/")

    def upload(self, content: bytes, file_name: str, folder: str) -> str:
        if not self.token or not self.repo:
            raise UpstreamError(user_msg="Failed to upload file", detail="GitHub file host is not configured")
        path = f"{folder}/{file_name}"
        url = f"{self.api_url}/repos/{self.repo}/contents/{path}"
        body = {
            "message": f"Upload {file_name}",
            "content": base64.b64encode(content).decode("ascii"),
            "branch": self.branch,
        }
        headers = {
            "Authorization": f"token {self.token}",
            "Accept": "application/vnd.github+json",
        }
        try:
            response = requests.put(url, json=body, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise UpstreamError(user_msg="Failed to upload file", detail=str(exc)) from exc

        if not response.ok:
            raise UpstreamError(
                user_msg="Failed to upload file",
                detail=f"GitHub responded {response.status_code}: {_error_message(response)}",
            )
        payload: Dict[str, Any] = response.json()
        download_url = (payload.get("content") or {}).get("download_url")
        if not download_url:
            raise UpstreamError(user_msg="Failed to upload file", detail="GitHub response lacked a download URL")
        return download_url


def _error_message(response: requests.Response) -> str:
    try:
        return str(response.json().get("message", ""))
    except ValueError:
        return response.text[:200]


_BACKENDS = {
    "local": LocalFileHost,
    "github": GitHubFileHost,
}


def get_file_host() -> FileHostBase:
    backend = str(current_app.config.get("FILE_HOST_BACKEND", "local")).lower()
    host_cls = _BACKENDS.get(backend)
    if host_cls is None:
        raise UpstreamError(user_msg="Failed to upload file", detail=f"Unknown file host backend: {backend}")
    return host_cls(current_app)


def generate_file_name(original_name: str, owner_label: str) -> str:
    """Build a unique, filesystem-safe name from a label and the original extension."""
    extension = file_extension(original_name)
    clean_label = re.sub(r"[^a-zA-Z0-9]", "_", owner_label) or "file"
    stamp = int(time.time() * 1000)
    name = f"{clean_label}_{stamp}"
    if extension:
        name = f"{name}.{extension}"
    return secure_filename(name) or f"file_{stamp}"


def file_extension(file_name: str | None) -> str:
    if not file_name or "." not in file_name:
        return ""
    return file_name.rsplit(".", 1)[1].lower()
