import asyncio
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Union

from core.config import settings
from core.exceptions import PreviewConversionError, UnsupportedDocumentError


logger = logging.getLogger(__name__)

# The converter keeps a per-user profile directory and cannot run twice at once
_CONVERSION_LOCK = asyncio.Lock()

SUPPORTED_EXTENSIONS = {".doc", ".docx", ".odt", ".rtf", ".txt"}


class ResumePreviewConverter:
    """
    Convert an uploaded resume (DOC, DOCX, ODT, RTF...) to PDF for preview.

    Conversions are serialized process-wide. Each one waits at most
    ``timeout`` seconds for the converter; on timeout the process is killed
    and PreviewConversionError is raised. Failures are not retried.
    """

    def __init__(
        self,
        converter: Optional[str] = None,
        timeout: Optional[float] = None,
        lock: Optional[asyncio.Lock] = None,
    ):
        self.converter = converter or settings.resume_preview_converter
        self.timeout = timeout if timeout is not None else settings.resume_preview_timeout_seconds
        self.lock = lock or _CONVERSION_LOCK

    def build_command(self, source: Path, output_dir: Path) -> list[str]:
        return [
            self.converter,
            "--headless",
            "--convert-to",
            "pdf",
            "--outdir",
            str(output_dir),
            str(source),
        ]

    async def convert(self, source_path: Union[str, Path]) -> bytes:
        """Return the PDF bytes for ``source_path``."""
        source = Path(source_path)
        if not source.is_file():
            raise PreviewConversionError(f"Source file not found: {source.name}")

        async with self.lock:
            output_dir = Path(tempfile.mkdtemp(prefix="resume-preview-"))
            try:
                await self._run(source, output_dir)
                return self._read_output(source, output_dir)
            finally:
                shutil.rmtree(output_dir, ignore_errors=True)

    async def convert_upload(self, filename: str, content: bytes) -> bytes:
        """
        Convert an uploaded document held in memory.

        Only the base name of ``filename`` is used, and its extension must be
        one the converter accepts.

        Raises:
            UnsupportedDocumentError: empty upload or unsupported extension
            PreviewConversionError: the conversion itself failed
        """
        name = Path(filename).name
        if Path(name).suffix.lower() not in SUPPORTED_EXTENSIONS:
            raise UnsupportedDocumentError(f"Cannot preview '{name}'")
        if not content:
            raise UnsupportedDocumentError("Uploaded document is empty")

        upload_dir = Path(tempfile.mkdtemp(prefix="resume-upload-"))
        try:
            source = upload_dir / name
            source.write_bytes(content)
            return await self.convert(source)
        finally:
            shutil.rmtree(upload_dir, ignore_errors=True)

    async def _run(self, source: Path, output_dir: Path) -> None:
        try:
            process = await asyncio.create_subprocess_exec(
                *self.build_command(source, output_dir),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise PreviewConversionError(f"Could not start converter: {exc}") from exc

        try:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            await self._kill(process)
            logger.warning("Preview conversion of %s timed out after %ss", source.name, self.timeout)
            raise PreviewConversionError(
                f"Conversion timed out after {self.timeout} seconds"
            )
        except BaseException:
            # Cancelled while waiting: never leave the converter running
            if process.returncode is None:
                logger.warning("Preview conversion of %s cancelled", source.name)
                await self._kill(process)
            raise

        if process.returncode != 0:
            detail = (stderr or b"").decode("utf-8", errors="replace").strip()[:500]
            logger.warning(
                "Preview conversion of %s failed with exit code %s: %s",
                source.name,
                process.returncode,
                detail,
            )
            raise PreviewConversionError(
                f"Converter exited with code {process.returncode}"
            )

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process) -> None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
        await process.wait()

    def _read_output(self, source: Path, output_dir: Path) -> bytes:
        pdf_path = output_dir / f"{source.stem}.pdf"
        if not pdf_path.is_file():
            raise PreviewConversionError("Converter produced no PDF output")
        data = pdf_path.read_bytes()
        logger.info("Converted %s to PDF preview (%d bytes)", source.name, len(data))
        return data
