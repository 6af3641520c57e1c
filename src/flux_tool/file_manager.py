"""Saving generated images to local disk."""

import logging
import os
import re
import tempfile
import time
from datetime import datetime
from typing import Any, Dict, Optional

import requests

from flux_tool.errors import SaveError
from flux_tool.schemas import SaveResult

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR = os.path.join("~", "Downloads", "flux-generated")
IMAGE_EXTENSION_RE = re.compile(r"\.(jpg|jpeg|png)$", re.IGNORECASE)


class FileManager:
    """Resolves output locations and writes downloaded images."""

    def __init__(
        self,
        default_output_dir: Optional[str] = None,
        session: Optional[requests.Session] = None,
        request_timeout: float = 60.0,
    ):
        self.default_output_dir = os.path.abspath(
            os.path.expanduser(default_output_dir or DEFAULT_OUTPUT_DIR)
        )
        # None means a fresh connection per request through the requests module
        self.session = session
        self.request_timeout = request_timeout

    def resolve_path(self, custom_path: Optional[str] = None) -> str:
        """Turn a caller-supplied directory into an absolute one.

        Absolute paths are kept, ``~/`` is expanded to the home directory and
        anything else is taken relative to the default output directory.
        """
        if not custom_path:
            return self.default_output_dir
        if os.path.isabs(custom_path):
            return custom_path
        if custom_path.startswith("~/"):
            return os.path.join(os.path.expanduser("~"), custom_path[2:])
        return os.path.join(self.default_output_dir, custom_path)

    def generate_filename(self, prompt: str, model: str, timestamp: Optional[str] = None) -> str:
        """Build ``<prompt>_<model>_<timestamp>`` without an extension."""
        if timestamp is None:
            now = datetime.now()
            timestamp = now.strftime("%Y%m%d_%H%M%S") + f"{now.microsecond // 1000:03d}"

        clean_prompt = re.sub(r"[^a-zA-Z0-9\s_-]", "", prompt).strip()
        clean_prompt = re.sub(r"\s+", "_", clean_prompt)[:50]
        clean_model = re.sub(r"[^a-zA-Z0-9-]", "-", model)
        return f"{clean_prompt}_{clean_model}_{timestamp}"

    def fetch_image(self, url: str) -> bytes:
        http = requests if self.session is None else self.session
        resp = http.get(url, timeout=self.request_timeout)
        resp.raise_for_status()
        return resp.content

    def _write_atomic(self, full_path: str, data: bytes) -> None:
        # the destination only ever appears complete
        fd, tmp_path = tempfile.mkstemp(dir=os.path.dirname(full_path), suffix=".part")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_path, full_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def save_image_from_url(
        self,
        image_url: str,
        output_path: Optional[str] = None,
        filename: Optional[str] = None,
        prompt: Optional[str] = None,
        model: Optional[str] = None,
        output_format: Optional[str] = None,
    ) -> str:
        """Download ``image_url`` and write it to disk.

        Returns:
            The full path of the saved file

        Raises:
            SaveError: if the directory, download or write fails
        """
        try:
            directory = self.resolve_path(output_path)
            os.makedirs(directory, exist_ok=True)

            final_name = filename
            if not final_name and prompt and model:
                final_name = self.generate_filename(prompt, model)
            elif not final_name:
                final_name = f"generated_image_{int(time.time() * 1000)}"

            if not IMAGE_EXTENSION_RE.search(final_name):
                extension = "jpg" if (output_format or "jpeg") == "jpeg" else "png"
                final_name = f"{final_name}.{extension}"

            full_path = os.path.join(directory, final_name)
            image_data = self.fetch_image(image_url)
            self._write_atomic(full_path, image_data)
        except (OSError, requests.RequestException) as e:
            logger.error(f"Failed to save image from {image_url}: {e}")
            raise SaveError(f"Failed to save image: {e}") from e

        logger.info(f"Saved {len(image_data)} bytes to {full_path}")
        return full_path

    def get_file_info(self, file_path: str) -> Dict[str, Any]:
        try:
            stats = os.stat(file_path)
        except OSError:
            return {"path": file_path, "exists": False}
        return {
            "path": file_path,
            "size": stats.st_size,
            "modified_at": datetime.fromtimestamp(stats.st_mtime).isoformat(),
            "exists": True,
        }

    def save_generated_image(self, image_url: str, **options) -> SaveResult:
        """Save an image and describe where it went.

        Accepts the same keyword options as ``save_image_from_url``.
        """
        saved_path = self.save_image_from_url(image_url, **options)
        info = self.get_file_info(saved_path)
        return SaveResult(
            saved_path=saved_path,
            filename=os.path.basename(saved_path),
            directory=os.path.dirname(saved_path),
            size=info.get("size"),
        )
