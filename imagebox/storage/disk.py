import os
import re
import threading
import time
import logging

from imagebox.exceptions import StartupError

log = logging.getLogger(__name__)

_SAFE_EXTENSION = re.compile(r"^\.[A-Za-z0-9]{1,16}$")


class _MillisecondClock:
    """Hands out strictly increasing millisecond timestamps within the process."""

    def __init__(self):
        self._lock = threading.Lock()
        self._last = 0

    def next(self) -> int:
        now = int(time.time() * 1000)
        with self._lock:
            if now <= self._last:
                now = self._last + 1
            self._last = now
            return now


_clock = _MillisecondClock()


# -------------------------
# Disk Storage
# -------------------------
class DiskStorage:
    def __init__(self, upload_dir: str):
        self.upload_dir = os.path.abspath(upload_dir)
        self.destination = None

    def resolve_destination(self) -> str:
        """Creates the upload directory if needed. Any failure is fatal at startup."""
        try:
            if not os.path.isdir(self.upload_dir):
                os.makedirs(self.upload_dir, exist_ok=True)
                log.info("Created upload directory: %s", self.upload_dir)
            if not os.access(self.upload_dir, os.W_OK):
                raise PermissionError(f"Upload directory is not writable: {self.upload_dir}")
        except OSError as e:
            log.error("Failed to prepare upload directory %s: %s", self.upload_dir, e)
            raise StartupError(f"Cannot use upload directory {self.upload_dir}: {e}") from e
        self.destination = self.upload_dir
        return self.destination

    @staticmethod
    def generate_filename(original_name: str) -> str:
        ext = os.path.splitext(os.path.basename(original_name or ""))[1]
        if not _SAFE_EXTENSION.match(ext):
            ext = ""
        return f"img-{_clock.next()}{ext}"

    def write(self, filename: str, data: bytes) -> str:
        destination = self.destination or self.resolve_destination()
        path = os.path.join(destination, filename)
        # never overwrite an existing upload
        with open(path, "xb") as fh:
            fh.write(data)
        log.debug("Wrote %d bytes to %s", len(data), path)
        return path

    def close(self):
        log.info("Closed disk storage")
