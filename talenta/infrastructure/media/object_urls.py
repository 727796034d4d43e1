"""Local preview URLs for in-memory audio blobs."""

from pathlib import Path
import shutil
import tempfile

from attrs import define, field

from talenta.config import get_logger
from talenta.domain.entities import AudioBlob

logger = get_logger(__name__).bind(service="media")


@define(slots=True)
class TempFileObjectUrls:
    """Writes blobs to temporary files and hands out ``file://`` URLs.

    Revoking a URL deletes its file. ``close()`` revokes everything still
    outstanding and removes the directory.
    """

    directory: Path = field(
        factory=lambda: Path(tempfile.mkdtemp(prefix="talenta-")), converter=Path
    )
    _paths: dict[str, Path] = field(factory=dict, init=False, repr=False)
    _counter: int = field(default=0, init=False, repr=False)

    def create(self, blob: AudioBlob) -> str:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._counter += 1
        path = self.directory / f"blob-{self._counter}.{blob.extension}"
        path.write_bytes(blob.data)
        url = path.resolve().as_uri()
        self._paths[url] = path
        logger.debug(f"Created object URL {url}", size=blob.size)
        return url

    def revoke(self, url: str) -> None:
        path = self._paths.pop(url, None)
        if path is None:
            return
        path.unlink(missing_ok=True)

    def path_for(self, url: str) -> Path | None:
        return self._paths.get(url)

    @property
    def outstanding(self) -> list[str]:
        return list(self._paths)

    def close(self) -> None:
        for url in list(self._paths):
            self.revoke(url)
        shutil.rmtree(self.directory, ignore_errors=True)
