"""Clipboard screenshot capture and upload for issue bodies.

``gh gist create`` rejects binary files, so the image is pushed with git into a
freshly created gist and linked through its raw URL.
"""

from __future__ import annotations

import logging
import shutil
from datetime import datetime
from pathlib import Path

from PIL import Image, ImageGrab

from devflow.errors import DevflowError, NothingToDoError
from devflow.github.gh import GhClient
from devflow.gitops.git import clone
from devflow.shell import CommandRunner, run_command

logger = logging.getLogger(__name__)

_IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif", ".bmp"}


def grab_clipboard_image(destination: Path) -> Path:
    """Save the clipboard image as PNG at ``destination``."""

    grabbed = ImageGrab.grabclipboard()
    if isinstance(grabbed, list):
        # Copied files arrive as a list of paths.
        image_files = [
            Path(name) for name in grabbed if Path(name).suffix.lower() in _IMAGE_SUFFIXES
        ]
        if not image_files:
            raise NothingToDoError("Clipboard holds files but none of them is an image.")
        grabbed = Image.open(image_files[0])
    if grabbed is None:
        raise NothingToDoError("Clipboard does not contain an image.")

    destination.parent.mkdir(parents=True, exist_ok=True)
    grabbed.save(destination, format="PNG")
    logger.info("Clipboard image saved to %s (%dx%d)", destination, *grabbed.size)
    return destination


def screenshot_filename(now: datetime | None = None) -> str:
    stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    return f"screenshot-{stamp}.png"


def screenshot_markdown(url: str, *, alt: str = "screenshot") -> str:
    return f"![{alt}]({url})"


class GistImageUploader:
    """Host an image in a secret gist and return its raw URL."""

    def __init__(
        self,
        *,
        gh: GhClient,
        workdir: Path,
        runner: CommandRunner = run_command,
    ) -> None:
        self.gh = gh
        self.workdir = workdir
        self._runner = runner

    def upload(self, image_path: Path) -> str:
        placeholder = self.workdir / "README.md"
        placeholder.write_text(f"Screenshot {image_path.name}\n", "utf-8")
        gist_url = self.gh.create_gist(placeholder, description=f"Screenshot {image_path.name}")
        gist_id = gist_url.rstrip("/").rsplit("/", 1)[-1]
        if not gist_id:
            raise DevflowError(f"Unexpected gist URL from gh: {gist_url!r}")

        checkout = clone(
            f"https://gist.github.com/{gist_id}.git",
            self.workdir / "gist",
            runner=self._runner,
        )
        shutil.copyfile(image_path, checkout.repo_path / image_path.name)
        checkout.add(image_path.name)
        checkout.commit(f"Add {image_path.name}")
        checkout.push()

        login = self.gh.current_login()
        url = f"https://gist.githubusercontent.com/{login}/{gist_id}/raw/{image_path.name}"
        logger.info("Screenshot uploaded: %s", url)
        return url
