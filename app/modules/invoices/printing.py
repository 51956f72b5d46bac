"""
Print surfaces: where a rendered invoice goes to become paper or a PDF.

Printing happens in two steps. load() places the document on the surface
and returns only once the surface holds the complete document; that return
is the ready signal. trigger() then starts the output. No fixed delay sits
between them.
"""
from pathlib import Path
from typing import Optional
import logging
import os
import re
import shlex
import subprocess
import tempfile

logger = logging.getLogger(__name__)


class PrintError(Exception):
    pass


class PrintSurface:
    """Interface of an output surface"""

    def load(self, document: str, name: str) -> Path:
        raise NotImplementedError

    def trigger(self, loaded: Path) -> None:
        raise NotImplementedError


class SpoolPrintSurface(PrintSurface):
    """
    Writes invoices into a spool directory and optionally hands each file to
    a print command (e.g. "lp -d shop_printer"). Without a command the
    spooled HTML is the artifact, ready to be opened and saved as PDF.
    """

    def __init__(self, spool_dir: str, command: Optional[str] = None):
        self.spool_dir = Path(spool_dir)
        self.command = command

    def load(self, document: str, name: str) -> Path:
        self.spool_dir.mkdir(parents=True, exist_ok=True)
        safe_name = re.sub(r'[^A-Za-z0-9_\-]', '_', name) or "invoice"
        target = self.spool_dir / f"{safe_name}.html"

        # Write to a temp file and rename, so the target only ever holds a whole document
        fd, tmp_path = tempfile.mkstemp(dir=self.spool_dir, suffix=".part")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(document)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, target)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise PrintError(f"Unable to spool invoice: {e}")

        logger.debug(f"Invoice spooled at {target}")
        return target

    def trigger(self, loaded: Path) -> None:
        if not self.command:
            logger.info(f"Invoice ready at {loaded}")
            return

        args = shlex.split(self.command) + [str(loaded)]
        try:
            subprocess.run(args, check=True, capture_output=True, timeout=60)
        except (OSError, subprocess.SubprocessError) as e:
            raise PrintError(f"Print command failed: {e}")
        logger.info(f"Invoice {loaded.name} sent to printer")


def print_document(surface: PrintSurface, document: str, name: str) -> Path:
    """Load the document, wait for the surface to report it ready, then print."""
    loaded = surface.load(document, name)
    surface.trigger(loaded)
    return loaded
