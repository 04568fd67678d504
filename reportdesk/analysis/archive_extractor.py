import io
import zipfile
import zlib

from reportdesk.analysis.exceptions import InvalidArchive, NoTabularFileFound


class ArchiveExtractor:
    """Pulls the first CSV member out of a zip archive as text."""

    def __init__(self, extension: str = ".csv", encoding: str = "utf-8-sig") -> None:
        self._extension = extension.lower()
        self._encoding = encoding

    def find_member(self, archive: zipfile.ZipFile) -> str:
        """Name of the first entry, in archive order, with the tabular extension."""
        for name in archive.namelist():
            if name.endswith("/"):
                continue
            if name.lower().endswith(self._extension):
                return name
        raise NoTabularFileFound("No CSV file found in the downloaded report archive.")

    def extract_csv(self, blob: bytes) -> str:
        """Return the decoded text of the archive's CSV member.

        Raises:
            InvalidArchive: if blob is not a readable zip archive, or its CSV
                member is encrypted or uses an unsupported compression method.
            NoTabularFileFound: if the archive has no CSV entry.
        """
        try:
            with zipfile.ZipFile(io.BytesIO(blob)) as archive:
                member = self.find_member(archive)
                raw = archive.read(member)
        except (zipfile.BadZipFile, zlib.error, EOFError) as exc:
            raise InvalidArchive(f"Downloaded file is not a valid zip archive: {exc}") from exc
        except (RuntimeError, NotImplementedError) as exc:
            # Encrypted members and unsupported compression methods.
            raise InvalidArchive(f"Cannot read the report archive: {exc}") from exc
        return raw.decode(self._encoding, errors="replace")
