"""
=============================================================================
DIRECTORY LISTING
=============================================================================

Renders an HTML table of a directory's immediate children.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  root/docs                                   ← heading             │
    │                                                                      │
    │   Size   Name                                                        │
    │   ────   ────────────────────                                        │
    │   5      /docs/a.txt                         ← link, root removed    │
    │   4096   /docs/images/                       ← "/" marks a directory │
    └─────────────────────────────────────────────────────────────────────┘

Entries appear in whatever order the filesystem returns them. Nothing is
sorted, so the order may differ between calls and platforms.

Links are root-relative URL paths. They are HTML-escaped but NOT
percent-encoded, because the server never percent-decodes request paths:
a link to "my file.txt" must come back as "my file.txt".

=============================================================================
"""

import html
import logging
import os
import stat
from pathlib import Path
from typing import Union


logger = logging.getLogger(__name__)


class DirectoryRenderer:
    """
    Builds directory listing pages for paths under a document root.

    Usage:
        renderer = DirectoryRenderer("/srv/www")
        page = renderer.render(Path("/srv/www/docs"))
    """

    def __init__(self, root: Union[str, Path]):
        self.root = str(Path(root).resolve())

    def url_path(self, path: Union[str, Path]) -> str:
        """
        Turn an absolute path under the root into a URL path.

            /srv/www            → ""
            /srv/www/a.txt      → "/a.txt"
        """
        path = str(path)
        if path.startswith(self.root):
            path = path[len(self.root):]
        if path and not path.startswith("/"):
            path = "/" + path
        return path

    def render(self, path: Union[str, Path]) -> str:
        """
        Render the listing page for a directory.

        Args:
            path: Canonical path of a directory inside the root.

        Returns:
            The HTML page.

        Raises:
            OSError: If the directory itself cannot be read.
        """
        heading = html.escape("root" + self.url_path(path))
        rows = ["<tr><th>Size</th><th>Name</th></tr>"]

        with os.scandir(path) as entries:
            for entry in entries:
                try:
                    # Follows symlinks, like the size/type a browser user expects
                    info = entry.stat()
                except OSError as e:
                    # Vanished or dangling between scandir() and stat()
                    logger.debug(f"Skipping {entry.path}: {e}")
                    continue

                link = self.url_path(entry.path)
                if stat.S_ISDIR(info.st_mode):
                    link += "/"
                link = html.escape(link)

                rows.append(
                    f"<tr><td>{info.st_size}</td>"
                    f"<td><a href='{link}'>{link}</a></td></tr>"
                )

        return (
            "<!DOCTYPE html>\n"
            f"<html><head><title>Index of {heading}</title></head><body>"
            f"<h1>{heading}</h1><br><br>"
            f"<table style='width:50%'>{''.join(rows)}</table>"
            "</body></html>\n"
        )
